"""
Checkout orchestration for batch purchases.

  1. Validate caller and batch
  2. Price 0  -> grant access immediately, no order
  3. Price > 0 -> create the provider order, then the Order row

Access for paid batches is granted only by the provider's confirmation
event (see payment_webhook).
"""
import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session

from app.config import settings
from app.models.batch import Batch
from app.models.user import User
from app.schemas.checkout_schemas import CheckoutResult, OrderHandle
from app.services.access_grant_service import (
    create_grant,
    find_active_grant,
    grant_expiry_months,
)
from app.services.errors import (
    AlreadyOwned,
    InvalidRequest,
    NotAuthenticated,
    NotFound,
)
from app.services.order_ledger import create_order_record
from app.utils.dates import utcnow
from app.utils.money import to_minor_units

logger = logging.getLogger(__name__)


def initiate_checkout(
    session: Session,
    user: Optional[User],
    batch_id: Optional[int],
    gateway,
    now: Optional[datetime] = None,
) -> CheckoutResult:
    if user is None:
        raise NotAuthenticated()

    if batch_id is None:
        raise InvalidRequest()

    now = now or utcnow()

    # price and expiry come from the catalog row only
    batch = session.get(Batch, batch_id)
    if batch is None:
        raise NotFound()

    if find_active_grant(session, user.id, batch.id, now) is not None:
        raise AlreadyOwned()

    if to_minor_units(batch.price) == 0:
        return _grant_free_batch(session, user, batch, now)

    return _create_payment_order(session, user, batch, gateway, now)


def _grant_free_batch(
    session: Session, user: User, batch: Batch, now: datetime
) -> CheckoutResult:
    try:
        grant = create_grant(
            session,
            user_id=user.id,
            batch_id=batch.id,
            order_id=None,
            expiry_months=grant_expiry_months(batch),
            now=now,
        )
        session.commit()
    except IntegrityError:
        # a concurrent request won the one-active-grant index
        session.rollback()
        raise AlreadyOwned()

    logger.info(
        f"Free access granted: user {user.id}, batch {batch.id}, "
        f"valid till {grant.valid_till.isoformat()}"
    )
    return CheckoutResult(kind="granted")


def _create_payment_order(
    session: Session, user: User, batch: Batch, gateway, now: datetime
) -> CheckoutResult:
    amount = to_minor_units(batch.price)
    currency = settings.CURRENCY

    # ProviderError propagates; nothing has been written yet
    remote_order = gateway.create_order(
        amount=amount,
        currency=currency,
        receipt=f"batch_{batch.id}_{int(now.timestamp() * 1000)}",
        notes={
            "user_id": user.id,
            "batch_id": batch.id,
            "batch_title": batch.title,
        },
    )

    order = create_order_record(
        session,
        user_id=user.id,
        batch_id=batch.id,
        amount=amount,
        currency=currency,
        provider=gateway.name,
        provider_order_id=remote_order["id"],
    )

    logger.info(
        f"Order {order.provider_order_id} created: user {user.id}, "
        f"batch {batch.id}, amount {amount} {currency}"
    )

    return CheckoutResult(
        kind="awaiting-payment",
        order=OrderHandle(
            id=order.provider_order_id,
            amount=amount,
            currency=currency,
            key_id=gateway.key_id,
            batch_title=batch.title,
            user_name=user.full_name,
            user_email=user.email,
        ),
    )
