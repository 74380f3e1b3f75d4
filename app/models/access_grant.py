from sqlmodel import SQLModel, Field
from sqlalchemy import Index, text
from typing import Optional
from datetime import datetime

from app.constants.order_status import GrantStatus
from app.utils.dates import utcnow


class AccessGrant(SQLModel, table=True):
    """
    Confirmed, time-boxed access to a batch.

    Access is decided by this table alone: a user can use a batch while
    a row exists with status "active" and valid_till in the future.
    order_id is null only for free batches.
    """
    __tablename__ = "access_grant"
    __table_args__ = (
        Index("ix_access_grant_user_batch_status", "user_id", "batch_id", "status"),
        # at most one active grant per (user, batch)
        Index(
            "uq_access_grant_active",
            "user_id",
            "batch_id",
            unique=True,
            postgresql_where=text("status = 'active'"),
            sqlite_where=text("status = 'active'"),
        ),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id")
    batch_id: int = Field(foreign_key="batch.id")
    order_id: Optional[int] = Field(default=None, foreign_key="order.id")

    valid_from: datetime
    valid_till: datetime = Field(index=True)

    status: str = Field(default=GrantStatus.active.value)

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
