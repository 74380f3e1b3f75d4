"""
Order ledger: one row per checkout attempt, keyed by the provider's order id.

Status changes go through single conditional UPDATEs so that two
concurrent confirmations cannot both observe "not yet paid". The
mark_* helpers do not commit; the caller owns the transaction.
"""
import logging
from datetime import timedelta
from typing import List, Optional

from sqlalchemy import update
from sqlmodel import Session, select

from app.constants.order_status import OrderStatus, statuses_leading_to
from app.models.order import Order
from app.services.order_event_service import log_order_event
from app.utils.dates import utcnow

logger = logging.getLogger(__name__)


def create_order_record(
    session: Session,
    *,
    user_id: int,
    batch_id: int,
    amount: int,
    currency: str,
    provider: str,
    provider_order_id: str,
) -> Order:
    order = Order(
        user_id=user_id,
        batch_id=batch_id,
        amount=amount,
        currency=currency,
        provider=provider,
        provider_order_id=provider_order_id,
        status=OrderStatus.created.value,
    )
    session.add(order)
    session.flush()

    log_order_event(
        session,
        order.id,
        OrderStatus.created.value,
        "Payment order created",
        created_by=f"user:{user_id}",
        meta={"provider_order_id": provider_order_id, "amount": amount},
    )

    session.commit()
    session.refresh(order)
    return order


def find_order_by_provider_order_id(
    session: Session, provider_order_id: str
) -> Optional[Order]:
    return session.exec(
        select(Order).where(Order.provider_order_id == provider_order_id)
    ).first()


def mark_order_paid(
    session: Session,
    provider_order_id: str,
    provider_payment_id: Optional[str] = None,
) -> bool:
    """Compare-and-set to paid. True only for the caller that made the change."""
    result = session.exec(
        update(Order)
        .where(Order.provider_order_id == provider_order_id)
        .where(Order.status.in_(statuses_leading_to(OrderStatus.paid)))
        .values(
            status=OrderStatus.paid.value,
            provider_payment_id=provider_payment_id,
            updated_at=utcnow(),
        )
    )
    return result.rowcount == 1


def mark_order_failed(session: Session, provider_order_id: str) -> bool:
    """created -> failed. A paid order is never moved back."""
    result = session.exec(
        update(Order)
        .where(Order.provider_order_id == provider_order_id)
        .where(Order.status.in_(statuses_leading_to(OrderStatus.failed)))
        .values(status=OrderStatus.failed.value, updated_at=utcnow())
    )
    return result.rowcount == 1


def expire_stale_orders(
    session: Session,
    older_than_hours: int,
    now=None,
) -> int:
    """
    Fail orders left in "created" longer than the cut-off (abandoned checkouts).
    Each row is moved with its own conditional update so a capture landing
    mid-sweep is never overwritten.
    """
    now = now or utcnow()
    cutoff = now - timedelta(hours=older_than_hours)

    stale: List[Order] = session.exec(
        select(Order)
        .where(Order.status == OrderStatus.created.value)
        .where(Order.created_at < cutoff)
    ).all()

    expired = 0
    for order in stale:
        order_id = order.id
        if not mark_order_failed(session, order.provider_order_id):
            continue
        log_order_event(
            session,
            order_id,
            "expired",
            "Payment not completed in time",
            meta={"older_than_hours": older_than_hours},
        )
        expired += 1

    session.commit()
    logger.info(f"Expired {expired} unpaid orders")
    return expired
