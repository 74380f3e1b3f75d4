from datetime import datetime
from typing import Optional

from app.schemas.checkout_schemas import CamelModel


class LibraryItem(CamelModel):
    grant_id: int
    batch_id: int
    batch_title: Optional[str] = None
    order_id: Optional[int] = None
    valid_from: datetime
    valid_till: datetime


class AccessCheckResponse(CamelModel):
    batch_id: int
    has_access: bool
