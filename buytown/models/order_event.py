from datetime import datetime
from typing import Optional
from uuid import uuid4

from sqlmodel import SQLModel, Field
from sqlalchemy import Column, Index, JSON


class OrderEvent(SQLModel, table=True):
    """One timeline entry per order transition or payment outcome.

    ``order_status``/``payment_status`` snapshot the order right after the
    event, so a timeline can be read without replaying it.
    """

    __tablename__ = "order_event"
    __table_args__ = (
        Index("ix_order_event_order_created", "order_id", "created_at"),
    )

    id: str = Field(default_factory=lambda: str(uuid4()), primary_key=True)
    order_id: int = Field(foreign_key="order.id")
    event_type: str = Field(index=True)
    label: str

    order_status: Optional[str] = None
    payment_status: Optional[str] = None
    actor_id: Optional[int] = Field(default=None, foreign_key="user.id")
    meta: Optional[dict] = Field(default=None, sa_column=Column(JSON))

    created_at: datetime = Field(default_factory=datetime.utcnow)
    created_by: str = Field(default="system")  # customer, admin, delivery_person, gateway, system
