from sqlalchemy import func
from sqlmodel import Session, select

MAX_PAGE_SIZE = 100


def paginate(
    *,
    session: Session,
    query,
    page: int = 1,
    limit: int = 10,
) -> dict:
    page = max(page, 1)
    limit = min(limit, MAX_PAGE_SIZE) if limit >= 1 else 10

    total = session.exec(
        select(func.count()).select_from(query.subquery())
    ).one()

    results = session.exec(
        query.offset((page - 1) * limit).limit(limit)
    ).all()

    return {
        "total_items": total,
        "total_pages": (total + limit - 1) // limit,
        "current_page": page,
        "limit": limit,
        "results": results,
    }
