from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlmodel import Session, select

from app.constants.order_status import GrantStatus, OrderStatus
from app.database import get_session
from app.models.access_grant import AccessGrant
from app.models.order import Order
from app.models.user import User
from app.services.access_grant_service import revoke_grant
from app.services.order_event_service import list_order_events
from app.utils.pagination import paginate
from app.utils.token import get_current_admin

router = APIRouter()


# -------------------------------
# Orders
# -------------------------------

@router.get("/orders")
def list_orders(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    status: Optional[OrderStatus] = None,
    session: Session = Depends(get_session),
    admin: User = Depends(get_current_admin),
):
    query = select(Order)

    if status:
        query = query.where(Order.status == status.value)

    query = query.order_by(Order.created_at.desc())

    data = paginate(session=session, query=query, page=page, limit=limit)

    data["results"] = [
        {
            "order_id": o.id,
            "user_id": o.user_id,
            "batch_id": o.batch_id,
            "amount": o.amount,
            "currency": o.currency,
            "provider_order_id": o.provider_order_id,
            "provider_payment_id": o.provider_payment_id,
            "status": o.status,
            "created_at": o.created_at,
            "updated_at": o.updated_at,
        }
        for o in data["results"]
    ]

    return data


@router.get("/orders/{order_id}/timeline")
def order_timeline(
    order_id: int,
    session: Session = Depends(get_session),
    admin: User = Depends(get_current_admin),
):
    order = session.get(Order, order_id)
    if not order:
        raise HTTPException(404, "Order not found")

    return {
        "order_id": order.id,
        "status": order.status,
        "events": [
            {
                "event_type": e.event_type,
                "label": e.label,
                "meta": e.meta,
                "created_by": e.created_by,
                "created_at": e.created_at,
            }
            for e in list_order_events(session, order.id)
        ],
    }


# -------------------------------
# Access grants
# -------------------------------

@router.get("/access-grants")
def list_access_grants(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    status: Optional[GrantStatus] = None,
    user_id: Optional[int] = None,
    batch_id: Optional[int] = None,
    session: Session = Depends(get_session),
    admin: User = Depends(get_current_admin),
):
    query = select(AccessGrant)

    if status:
        query = query.where(AccessGrant.status == status.value)
    if user_id is not None:
        query = query.where(AccessGrant.user_id == user_id)
    if batch_id is not None:
        query = query.where(AccessGrant.batch_id == batch_id)

    query = query.order_by(AccessGrant.created_at.desc())

    data = paginate(session=session, query=query, page=page, limit=limit)

    data["results"] = [
        {
            "grant_id": g.id,
            "user_id": g.user_id,
            "batch_id": g.batch_id,
            "order_id": g.order_id,
            "status": g.status,
            "valid_from": g.valid_from,
            "valid_till": g.valid_till,
        }
        for g in data["results"]
    ]

    return data


@router.post("/access-grants/{grant_id}/revoke")
def revoke_access_grant(
    grant_id: int,
    session: Session = Depends(get_session),
    admin: User = Depends(get_current_admin),
):
    grant = session.get(AccessGrant, grant_id)
    if not grant:
        raise HTTPException(404, "Access grant not found")

    if not revoke_grant(session, grant_id):
        raise HTTPException(400, f"Access grant is {grant.status}, not active")

    return {"message": "Access revoked", "grant_id": grant_id}
