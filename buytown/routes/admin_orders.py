# -------- ADMIN ORDERS --------
from typing import Optional

from fastapi import APIRouter, Depends
from sqlmodel import Session, select

from buytown.constants.order_status import OrderStatus
from buytown.database import get_session
from buytown.dependencies.services import get_order_service
from buytown.models.order import Order
from buytown.models.user import User
from buytown.schemas.order_schemas import (
    ApproveOrderIn,
    AssignDeliveryPersonIn,
    RejectOrderIn,
    order_detail,
    order_summary,
)
from buytown.services.order_event_service import get_order_timeline, timeline_entry
from buytown.services.order_service import OrderService
from buytown.utils.pagination import paginate_orders
from buytown.utils.token import get_current_admin

router = APIRouter()


@router.get("")
def list_orders(
    page: int = 1,
    limit: int = 10,
    status: Optional[OrderStatus] = None,
    session: Session = Depends(get_session),
    _: User = Depends(get_current_admin),
):
    query = select(Order)
    if status:
        query = query.where(Order.status == status.value)
    data = paginate_orders(session=session, query=query, page=page, limit=limit)
    return {"statusCode": 200, **data}


@router.get("/{order_id}")
def order_details(
    order_id: int,
    orders: OrderService = Depends(get_order_service),
    _: User = Depends(get_current_admin),
):
    order = orders.get_order(order_id)
    events = get_order_timeline(orders.session, order.id)
    return {
        "statusCode": 200,
        "order": order_detail(order, orders.get_items(order.id)),
        "timeline": [timeline_entry(e) for e in events],
    }


@router.post("/{order_id}/approve")
def approve_order(
    order_id: int,
    data: ApproveOrderIn,
    orders: OrderService = Depends(get_order_service),
    admin: User = Depends(get_current_admin),
):
    order = orders.approve(
        order_id,
        vehicle_id=data.vehicle_id,
        distance_km=data.distance_km,
        delivery_person_id=data.delivery_person_id,
        approved_by=admin.id,
    )
    return {"statusCode": 200, "message": "Order approved", "order": order_summary(order)}


@router.post("/{order_id}/reject")
def reject_order(
    order_id: int,
    data: RejectOrderIn,
    orders: OrderService = Depends(get_order_service),
    admin: User = Depends(get_current_admin),
):
    order = orders.reject(order_id, data.reason, rejected_by=admin.id)
    return {"statusCode": 200, "message": "Order rejected", "order": order_summary(order)}


@router.post("/{order_id}/assign-delivery-person")
def assign_delivery_person(
    order_id: int,
    data: AssignDeliveryPersonIn,
    orders: OrderService = Depends(get_order_service),
    admin: User = Depends(get_current_admin),
):
    order = orders.assign_delivery_person(
        order_id, data.delivery_person_id, data.distance_km, assigned_by=admin.id
    )
    return {"statusCode": 200, "message": "Delivery person assigned", "order": order_summary(order)}


@router.post("/{order_id}/complete")
def complete_order(
    order_id: int,
    orders: OrderService = Depends(get_order_service),
    admin: User = Depends(get_current_admin),
):
    order = orders.mark_completed(order_id, completed_by=admin.id)
    return {"statusCode": 200, "message": "Order completed", "order": order_summary(order)}
