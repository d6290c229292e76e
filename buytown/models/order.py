from sqlmodel import SQLModel, Field, Relationship
from sqlalchemy import Column, JSON
from typing import List, Optional
from datetime import datetime
from decimal import Decimal

from buytown.constants.order_status import OrderStatus, PaymentStatus
from buytown.models.order_item import OrderItem


class Order(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    order_number: str = Field(unique=True, index=True)
    user_id: int = Field(foreign_key="user.id", index=True)

    subtotal: Decimal = Field(default=Decimal("0"), max_digits=10, decimal_places=2)
    tax_amount: Decimal = Field(default=Decimal("0"), max_digits=10, decimal_places=2)
    discount_amount: Decimal = Field(default=Decimal("0"), max_digits=10, decimal_places=2)
    shipping_amount: Decimal = Field(default=Decimal("0"), max_digits=10, decimal_places=2)
    delivery_charges: Optional[Decimal] = Field(default=None, max_digits=10, decimal_places=2)
    total_amount: Decimal = Field(default=Decimal("0"), max_digits=10, decimal_places=2)

    status: str = Field(default=OrderStatus.awaiting_confirmation.value, index=True)
    payment_status: str = Field(default=PaymentStatus.pending.value)
    payment_method: Optional[str] = None

    shipping_address: Optional[dict] = Field(default=None, sa_column=Column(JSON))
    billing_address: Optional[dict] = Field(default=None, sa_column=Column(JSON))
    notes: Optional[str] = None

    # delivery
    delivery_distance: Optional[float] = None
    delivery_person_id: Optional[int] = Field(default=None, foreign_key="user.id")
    delivery_driver: Optional[str] = None
    vehicle_id: Optional[int] = Field(default=None, foreign_key="vehicle.id")
    delivery_vehicle: Optional[str] = None

    rejection_reason: Optional[str] = None
    cancellation_reason: Optional[str] = None
    status_updated_by: Optional[int] = Field(default=None, foreign_key="user.id")

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    items: List["OrderItem"] = Relationship(back_populates="order")
