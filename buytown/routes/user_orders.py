from typing import Optional

from fastapi import APIRouter, Depends
from sqlmodel import Session, select

from buytown.database import get_session
from buytown.dependencies.services import get_order_service
from buytown.exceptions import OrderNotFound
from buytown.models.order import Order
from buytown.models.user import User
from buytown.schemas.order_schemas import CancelOrderIn, order_detail, order_summary
from buytown.services.order_event_service import get_order_timeline, timeline_entry
from buytown.services.order_service import OrderService
from buytown.utils.pagination import paginate_orders
from buytown.utils.token import get_current_user

router = APIRouter()


@router.get("")
def my_orders(
    page: int = 1,
    limit: int = 10,
    status: Optional[str] = None,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    query = select(Order).where(Order.user_id == current_user.id)
    if status:
        query = query.where(Order.status == status)
    data = paginate_orders(session=session, query=query, page=page, limit=limit)
    return {"statusCode": 200, **data}


@router.get("/{order_id}")
def my_order_detail(
    order_id: int,
    orders: OrderService = Depends(get_order_service),
    current_user: User = Depends(get_current_user),
):
    order = orders.get_order(order_id)
    if order.user_id != current_user.id:
        raise OrderNotFound(order_id)
    return {"statusCode": 200, "order": order_detail(order, orders.get_items(order.id))}


@router.get("/{order_id}/timeline")
def my_order_timeline(
    order_id: int,
    orders: OrderService = Depends(get_order_service),
    current_user: User = Depends(get_current_user),
):
    order = orders.get_order(order_id)
    if order.user_id != current_user.id:
        raise OrderNotFound(order_id)
    events = get_order_timeline(orders.session, order.id)
    return {
        "statusCode": 200,
        "order_number": order.order_number,
        "events": [timeline_entry(e) for e in events],
    }


@router.post("/{order_id}/cancel")
def cancel_order(
    order_id: int,
    data: CancelOrderIn,
    orders: OrderService = Depends(get_order_service),
    current_user: User = Depends(get_current_user),
):
    order = orders.cancel_by_customer(order_id, current_user.id, data.reason)
    return {"statusCode": 200, "message": "Order cancelled", "order": order_summary(order)}


@router.post("/{order_id}/received")
def mark_received(
    order_id: int,
    orders: OrderService = Depends(get_order_service),
    current_user: User = Depends(get_current_user),
):
    order = orders.mark_received_by_customer(order_id, current_user.id)
    return {"statusCode": 200, "message": "Order marked as received", "order": order_summary(order)}
