"""
Provider event envelopes. Only the fields the confirmation handler reads
are modelled; everything else in the payload is ignored.
"""
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter


PAYMENT_CAPTURED = "payment.captured"
PAYMENT_FAILED = "payment.failed"
HANDLED_EVENTS = {PAYMENT_CAPTURED, PAYMENT_FAILED}


class EventEnvelope(BaseModel):
    event: str


class PaymentEntity(BaseModel):
    id: str
    order_id: str
    amount: Optional[int] = None
    currency: Optional[str] = None
    status: Optional[str] = None


class PaymentWrapper(BaseModel):
    entity: PaymentEntity


class PaymentPayload(BaseModel):
    payment: PaymentWrapper


class PaymentCapturedEvent(BaseModel):
    event: Literal["payment.captured"]
    payload: PaymentPayload

    @property
    def payment(self) -> PaymentEntity:
        return self.payload.payment.entity


class PaymentFailedEvent(BaseModel):
    event: Literal["payment.failed"]
    payload: PaymentPayload

    @property
    def payment(self) -> PaymentEntity:
        return self.payload.payment.entity


ProviderEvent = Annotated[
    Union[PaymentCapturedEvent, PaymentFailedEvent],
    Field(discriminator="event"),
]

_provider_event_adapter = TypeAdapter(ProviderEvent)


def parse_provider_event(raw_body: bytes):
    """
    Returns a PaymentCapturedEvent / PaymentFailedEvent, or None for event
    kinds that are not handled. Raises pydantic.ValidationError when the
    body is not JSON or a handled event is missing required fields.
    """
    envelope = EventEnvelope.model_validate_json(raw_body)
    if envelope.event not in HANDLED_EVENTS:
        return None
    return _provider_event_adapter.validate_json(raw_body)
