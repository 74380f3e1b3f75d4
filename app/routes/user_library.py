from typing import List

from fastapi import APIRouter, Depends
from sqlmodel import Session

from app.database import get_session
from app.models.batch import Batch
from app.models.user import User
from app.schemas.library_schemas import AccessCheckResponse, LibraryItem
from app.services.access_grant_service import has_active_access, list_user_grants
from app.utils.token import get_current_user

router = APIRouter()


@router.get("", response_model=List[LibraryItem])
def my_library(
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user)
):
    result = []
    for grant in list_user_grants(session, current_user.id):
        batch = session.get(Batch, grant.batch_id)
        result.append(LibraryItem(
            grant_id=grant.id,
            batch_id=grant.batch_id,
            batch_title=batch.title if batch else None,
            order_id=grant.order_id,
            valid_from=grant.valid_from,
            valid_till=grant.valid_till,
        ))
    return result


@router.get("/batches/{batch_id}/access", response_model=AccessCheckResponse)
def check_batch_access(
    batch_id: int,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user)
):
    return AccessCheckResponse(
        batch_id=batch_id,
        has_access=has_active_access(session, current_user.id, batch_id),
    )
