"""
Access grant store. The only source of truth for "can this user use this batch".
"""
import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy import update
from sqlmodel import Session, select

from app.config import settings
from app.constants.order_status import GrantStatus
from app.models.access_grant import AccessGrant
from app.models.batch import Batch
from app.utils.dates import add_months, utcnow

logger = logging.getLogger(__name__)


def grant_expiry_months(batch: Optional[Batch]) -> int:
    if batch is None or batch.expiry_months is None:
        return settings.DEFAULT_EXPIRY_MONTHS
    return batch.expiry_months


def find_active_grant(
    session: Session,
    user_id: int,
    batch_id: int,
    now: Optional[datetime] = None,
) -> Optional[AccessGrant]:
    now = now or utcnow()
    return session.exec(
        select(AccessGrant)
        .where(AccessGrant.user_id == user_id)
        .where(AccessGrant.batch_id == batch_id)
        .where(AccessGrant.status == GrantStatus.active.value)
        .where(AccessGrant.valid_till > now)
    ).first()


def has_active_access(
    session: Session,
    user_id: int,
    batch_id: int,
    now: Optional[datetime] = None,
) -> bool:
    """True iff an active grant for (user, batch) has valid_till strictly after now."""
    return find_active_grant(session, user_id, batch_id, now) is not None


def create_grant(
    session: Session,
    *,
    user_id: int,
    batch_id: int,
    order_id: Optional[int],
    expiry_months: int,
    now: Optional[datetime] = None,
) -> AccessGrant:
    """
    Insert an active grant inside the caller's transaction.

    Lapsed grants still marked active for the same pair are expired first,
    otherwise they would hold the one-active-grant unique index. A live
    active grant makes the flush raise IntegrityError; callers treat that
    as "already granted".
    """
    now = now or utcnow()

    session.exec(
        update(AccessGrant)
        .where(AccessGrant.user_id == user_id)
        .where(AccessGrant.batch_id == batch_id)
        .where(AccessGrant.status == GrantStatus.active.value)
        .where(AccessGrant.valid_till <= now)
        .values(status=GrantStatus.expired.value, updated_at=now)
    )

    grant = AccessGrant(
        user_id=user_id,
        batch_id=batch_id,
        order_id=order_id,
        valid_from=now,
        valid_till=add_months(now, expiry_months),
        status=GrantStatus.active.value,
        created_at=now,
        updated_at=now,
    )
    session.add(grant)
    session.flush()
    return grant


def list_user_grants(
    session: Session,
    user_id: int,
    now: Optional[datetime] = None,
) -> List[AccessGrant]:
    now = now or utcnow()
    return session.exec(
        select(AccessGrant)
        .where(AccessGrant.user_id == user_id)
        .where(AccessGrant.status == GrantStatus.active.value)
        .where(AccessGrant.valid_till > now)
        .order_by(AccessGrant.created_at.desc())
    ).all()


def expire_old_grants(session: Session, now: Optional[datetime] = None) -> int:
    now = now or utcnow()
    result = session.exec(
        update(AccessGrant)
        .where(AccessGrant.status == GrantStatus.active.value)
        .where(AccessGrant.valid_till <= now)
        .values(status=GrantStatus.expired.value, updated_at=now)
    )
    session.commit()
    logger.info(f"Expired {result.rowcount} access grants")
    return result.rowcount


def revoke_grant(session: Session, grant_id: int) -> bool:
    """Administrative active -> revoked. False when the grant is not active."""
    result = session.exec(
        update(AccessGrant)
        .where(AccessGrant.id == grant_id)
        .where(AccessGrant.status == GrantStatus.active.value)
        .values(status=GrantStatus.revoked.value, updated_at=utcnow())
    )
    session.commit()
    revoked = result.rowcount == 1
    if revoked:
        logger.info(f"Access grant {grant_id} revoked")
    return revoked
