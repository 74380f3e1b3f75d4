"""
Provider confirmation handler: the only path that grants access for paid batches.

Flow:
  1. Verify the HMAC signature over the raw body
  2. Parse the event (payment.captured / payment.failed; others ignored)
  3. captured: compare-and-set the order to paid, then create the grant
     failed:   move a created order to failed

Two gates make redelivery safe: the conditional paid update (only one
delivery can win it) and the one-active-grant unique index.

IMPORTANT: handle_provider_event never raises. Every outcome, including
an unexpected internal failure, is acknowledged with HTTP 200 because the
provider retries anything else and would keep hammering an order whose
state is already correct. Failures are logged and reported as
WebhookOutcome.error so they stay distinguishable from idempotent no-ops.
Do not "fix" this into propagating exceptions.
"""
import logging
from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session

from app.constants.order_status import OrderStatus
from app.models.batch import Batch
from app.schemas.webhook_schemas import (
    PaymentCapturedEvent,
    PaymentFailedEvent,
    parse_provider_event,
)
from app.services.access_grant_service import (
    create_grant,
    find_active_grant,
    grant_expiry_months,
)
from app.services.order_event_service import log_order_event
from app.services.order_ledger import (
    find_order_by_provider_order_id,
    mark_order_failed,
    mark_order_paid,
)
from app.utils.dates import utcnow

logger = logging.getLogger(__name__)


class WebhookOutcome(str, Enum):
    success = "success"
    already_processed = "already_processed"
    purchase_exists = "purchase_exists"
    order_not_found = "order_not_found"
    failed_recorded = "failed_recorded"
    ignored = "ignored"
    invalid_signature = "invalid_signature"
    malformed = "malformed"
    error = "error"


def handle_provider_event(
    session: Session,
    raw_body: bytes,
    signature: Optional[str],
    gateway,
    now: Optional[datetime] = None,
) -> WebhookOutcome:
    try:
        return _process_event(session, raw_body, signature, gateway, now or utcnow())
    except Exception:
        session.rollback()
        logger.exception("Webhook processing failed; acknowledged without retry")
        return WebhookOutcome.error


def _process_event(
    session: Session,
    raw_body: bytes,
    signature: Optional[str],
    gateway,
    now: datetime,
) -> WebhookOutcome:
    if not gateway.verify_webhook_signature(raw_body, signature):
        logger.warning("Webhook signature mismatch; payload discarded")
        return WebhookOutcome.invalid_signature

    try:
        event = parse_provider_event(raw_body)
    except ValidationError as e:
        logger.warning(f"Malformed webhook payload: {e.error_count()} validation errors")
        return WebhookOutcome.malformed

    if event is None:
        return WebhookOutcome.ignored

    if isinstance(event, PaymentCapturedEvent):
        return _handle_payment_captured(session, event, now)

    return _handle_payment_failed(session, event)


def _handle_payment_captured(
    session: Session, event: PaymentCapturedEvent, now: datetime
) -> WebhookOutcome:
    payment = event.payment
    provider_order_id = payment.order_id

    order = find_order_by_provider_order_id(session, provider_order_id)
    if order is None:
        logger.error(f"Order not found for provider order {provider_order_id}")
        return WebhookOutcome.order_not_found

    if order.status == OrderStatus.paid.value:
        logger.info(f"Order {provider_order_id} already paid; duplicate delivery")
        return WebhookOutcome.already_processed

    order_id, user_id, batch_id = order.id, order.user_id, order.batch_id

    if not mark_order_paid(session, provider_order_id, payment.id):
        # a concurrent delivery got there first
        session.rollback()
        logger.info(f"Order {provider_order_id} paid by a concurrent delivery")
        return WebhookOutcome.already_processed

    _log_paid(session, order_id, payment.id)

    if find_active_grant(session, user_id, batch_id, now) is not None:
        session.commit()
        logger.info(f"Active grant already exists: user {user_id}, batch {batch_id}")
        return WebhookOutcome.purchase_exists

    batch = session.get(Batch, batch_id)
    try:
        grant = create_grant(
            session,
            user_id=user_id,
            batch_id=batch_id,
            order_id=order_id,
            expiry_months=grant_expiry_months(batch),
            now=now,
        )
        session.commit()
    except IntegrityError:
        # lost the grant race; keep the payment recorded
        session.rollback()
        if mark_order_paid(session, provider_order_id, payment.id):
            _log_paid(session, order_id, payment.id)
        session.commit()
        logger.info(f"Grant created concurrently: user {user_id}, batch {batch_id}")
        return WebhookOutcome.purchase_exists

    logger.info(
        f"Access granted for order {provider_order_id}: user {user_id}, "
        f"batch {batch_id}, valid till {grant.valid_till.isoformat()}"
    )
    return WebhookOutcome.success


def _handle_payment_failed(
    session: Session, event: PaymentFailedEvent
) -> WebhookOutcome:
    provider_order_id = event.payment.order_id

    order = find_order_by_provider_order_id(session, provider_order_id)
    if order is None:
        logger.error(f"Order not found for failed payment {provider_order_id}")
        return WebhookOutcome.order_not_found

    order_id = order.id
    if not mark_order_failed(session, provider_order_id):
        session.rollback()
        logger.info(f"Failure for order {provider_order_id} ignored; order is not pending")
        return WebhookOutcome.ignored

    log_order_event(
        session,
        order_id,
        OrderStatus.failed.value,
        "Payment failed",
        created_by="webhook",
        meta={"provider_payment_id": event.payment.id},
    )
    session.commit()
    logger.info(f"Order {provider_order_id} marked failed")
    return WebhookOutcome.failed_recorded


def _log_paid(session: Session, order_id: int, provider_payment_id: str):
    log_order_event(
        session,
        order_id,
        OrderStatus.paid.value,
        "Payment captured",
        created_by="webhook",
        meta={"provider_payment_id": provider_payment_id},
    )
