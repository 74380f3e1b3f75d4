from sqlmodel import SQLModel, Field
from sqlalchemy import Index
from typing import Optional
from datetime import datetime

from app.constants.order_status import OrderStatus
from app.utils.dates import utcnow


class Order(SQLModel, table=True):
    """Payment intent for one checkout attempt. Never deleted."""

    __table_args__ = (
        Index("ix_order_user_id_batch_id", "user_id", "batch_id"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id")
    batch_id: int = Field(foreign_key="batch.id")

    # minor units (paise for INR)
    amount: int = Field(ge=0)
    currency: str = Field(default="INR")
    provider: str = Field(default="razorpay")

    provider_order_id: str = Field(unique=True, index=True)
    provider_payment_id: Optional[str] = None

    status: str = Field(default=OrderStatus.created.value)

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
