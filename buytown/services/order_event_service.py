# buytown/services/order_event_service.py

from datetime import datetime
from typing import Optional
from uuid import uuid4
from sqlmodel import Session, select
from buytown.models.order import Order
from buytown.models.order_event import OrderEvent


def log_order_event(
    session: Session,
    order: Order,
    event_type: str,
    label: str,
    created_by: str = "system",
    actor_id: Optional[int] = None,
    meta: Optional[dict] = None,
):
    """
    Append-only event log for order timeline.
    Call after the order's statuses have been updated; they are snapshotted.
    """

    event = OrderEvent(
        id=str(uuid4()),
        order_id=order.id,
        event_type=event_type,
        label=label,
        order_status=order.status,
        payment_status=order.payment_status,
        actor_id=actor_id,
        meta=meta,
        created_by=created_by,
        created_at=datetime.utcnow(),
    )

    session.add(event)
    return event


def get_order_timeline(session: Session, order_id: int):
    return session.exec(
        select(OrderEvent)
        .where(OrderEvent.order_id == order_id)
        .order_by(OrderEvent.created_at)
    ).all()


def timeline_entry(event: OrderEvent) -> dict:
    return {
        "type": event.event_type,
        "label": event.label,
        "status": event.order_status,
        "payment_status": event.payment_status,
        "by": event.created_by,
        "at": event.created_at,
    }
