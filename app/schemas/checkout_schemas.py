# app/schemas/checkout_schemas.py
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CheckoutRequest(CamelModel):
    # anything else the client sends (price, amount...) is ignored
    batch_id: int


class OrderHandle(CamelModel):
    id: str               # provider order id
    amount: int           # minor units
    currency: str
    key_id: str
    batch_title: str
    user_name: str
    user_email: str


class CheckoutResult(BaseModel):
    kind: Literal["granted", "awaiting-payment"]
    order: Optional[OrderHandle] = None


class CheckoutResponse(CamelModel):
    success: bool = True
    free: bool
    order: Optional[OrderHandle] = None


class RazorpayPaymentVerifySchema(BaseModel):
    razorpay_order_id: str
    razorpay_payment_id: str
    razorpay_signature: str


class PaymentVerifyResponse(CamelModel):
    success: bool = True
    access_granted: bool
