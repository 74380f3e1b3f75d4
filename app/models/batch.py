from sqlmodel import SQLModel, Field
from typing import Optional
from datetime import datetime

from app.utils.dates import utcnow


class Batch(SQLModel, table=True):
    """
    Purchasable bundle of tests or files. Owned by the catalog;
    the purchase flow only ever reads it.
    """
    id: Optional[int] = Field(default=None, primary_key=True)
    title: str
    slug: str = Field(index=True)

    # major currency units, 0 means free
    price: float = Field(default=0, ge=0)
    expiry_months: Optional[int] = None

    created_at: datetime = Field(default_factory=utcnow)
