from sqlalchemy import func
from sqlmodel import select

from buytown.models.order import Order
from buytown.schemas.order_schemas import order_summary

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100


def paginate_orders(
    *,
    session,
    query,
    page: int = 1,
    limit: int = DEFAULT_PAGE_SIZE,
):
    """Newest-first page of ``query`` with each order already summarised.

    ``query`` carries only the filters (owner, status, assignee); ordering
    is applied here so every listing pages the same way.
    """
    page = max(page, 1)
    if limit < 1:
        limit = DEFAULT_PAGE_SIZE
    limit = min(limit, MAX_PAGE_SIZE)

    total = session.exec(
        select(func.count()).select_from(query.subquery())
    ).one()

    orders = session.exec(
        query.order_by(Order.created_at.desc(), Order.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    ).all()

    return {
        "total_items": total,
        "total_pages": (total + limit - 1) // limit,
        "current_page": page,
        "limit": limit,
        "results": [order_summary(o) for o in orders],
    }
