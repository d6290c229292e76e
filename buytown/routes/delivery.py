from fastapi import APIRouter, Depends
from sqlmodel import Session, select

from buytown.database import get_session
from buytown.dependencies.services import get_order_service
from buytown.models.order import Order
from buytown.models.user import User
from buytown.schemas.order_schemas import RejectOrderIn, order_summary
from buytown.services.order_service import OrderService
from buytown.utils.pagination import paginate_orders
from buytown.utils.token import get_current_delivery_person

router = APIRouter()


@router.get("/orders")
def assigned_orders(
    page: int = 1,
    limit: int = 10,
    session: Session = Depends(get_session),
    person: User = Depends(get_current_delivery_person),
):
    query = select(Order).where(Order.delivery_person_id == person.id)
    data = paginate_orders(session=session, query=query, page=page, limit=limit)
    return {"statusCode": 200, **data}


@router.post("/orders/{order_id}/complete")
def complete_delivery(
    order_id: int,
    orders: OrderService = Depends(get_order_service),
    person: User = Depends(get_current_delivery_person),
):
    order = orders.complete_by_delivery_person(order_id, person.id)
    return {"statusCode": 200, "message": "Order completed", "order": order_summary(order)}


@router.post("/orders/{order_id}/reject")
def reject_delivery(
    order_id: int,
    data: RejectOrderIn,
    orders: OrderService = Depends(get_order_service),
    person: User = Depends(get_current_delivery_person),
):
    order = orders.reject_by_delivery_person(order_id, person.id, data.reason)
    return {"statusCode": 200, "message": "Order rejected", "order": order_summary(order)}
