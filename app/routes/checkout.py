import logging
from typing import Any, Optional

from fastapi import APIRouter, Body, Depends
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from sqlmodel import Session

from app.database import get_session
from app.models.user import User
from app.schemas.checkout_schemas import (
    CheckoutRequest,
    CheckoutResponse,
    PaymentVerifyResponse,
    RazorpayPaymentVerifySchema,
)
from app.services.access_grant_service import has_active_access
from app.services.checkout_service import initiate_checkout
from app.services.errors import (
    CheckoutError,
    CheckoutFailed,
    InvalidSignature,
    OrderMismatch,
)
from app.services.order_ledger import find_order_by_provider_order_id
from app.services.razorpay_gateway import RazorpayGateway, get_payment_gateway
from app.utils.token import get_current_user, get_optional_user

router = APIRouter()
logger = logging.getLogger(__name__)


def _error_response(error: CheckoutError) -> JSONResponse:
    return JSONResponse(
        status_code=error.status_code,
        content={"success": False, "error": error.message},
    )


@router.post("/batch", response_model=CheckoutResponse, response_model_exclude_none=True)
def checkout_batch(
    payload: Any = Body(None),
    session: Session = Depends(get_session),
    current_user: Optional[User] = Depends(get_optional_user),
    gateway: RazorpayGateway = Depends(get_payment_gateway),
):
    try:
        batch_id = CheckoutRequest.model_validate(payload).batch_id
    except ValidationError:
        batch_id = None

    try:
        result = initiate_checkout(session, current_user, batch_id, gateway)
    except CheckoutError as e:
        return _error_response(e)
    except Exception:
        session.rollback()
        logger.exception(f"Checkout failed for batch {batch_id}")
        return _error_response(CheckoutFailed())

    if result.kind == "granted":
        return CheckoutResponse(free=True)

    return CheckoutResponse(free=False, order=result.order)


# Client-side callback after the payment widget closes. Used for UI
# feedback only: access is granted by the webhook, never here.
@router.post("/verify", response_model=PaymentVerifyResponse)
def verify_payment(
    payload: RazorpayPaymentVerifySchema,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
    gateway: RazorpayGateway = Depends(get_payment_gateway),
):
    order = find_order_by_provider_order_id(session, payload.razorpay_order_id)
    if order is None or order.user_id != current_user.id:
        return _error_response(OrderMismatch())

    if not gateway.verify_payment_signature(
        payload.razorpay_order_id,
        payload.razorpay_payment_id,
        payload.razorpay_signature,
    ):
        return _error_response(InvalidSignature())

    return PaymentVerifyResponse(
        access_granted=has_active_access(session, current_user.id, order.batch_id)
    )
