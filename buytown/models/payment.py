from sqlmodel import SQLModel, Field
from sqlalchemy import Column, JSON
from typing import Optional
from datetime import datetime
from decimal import Decimal

from buytown.constants.order_status import GatewayPaymentStatus


class Payment(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)

    order_id: int = Field(foreign_key="order.id", index=True)
    payment_gateway: str = Field(index=True)  # phonepe | cashfree
    gateway_order_id: str = Field(unique=True, index=True)
    txn_id: Optional[str] = Field(default=None, index=True)

    amount: Decimal = Field(max_digits=10, decimal_places=2)
    currency: str = Field(default="INR")
    status: str = Field(default=GatewayPaymentStatus.created.value)
    payment_url: Optional[str] = None
    error_message: Optional[str] = None

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)


class PaymentLog(SQLModel, table=True):
    """Append-only record of every gateway response."""
    __tablename__ = "payment_log"
    id: Optional[int] = Field(default=None, primary_key=True)
    payment_id: int = Field(foreign_key="payment.id", index=True)
    source: str  # create | verify | webhook | refund
    status: str
    response: Optional[dict] = Field(default=None, sa_column=Column(JSON))
    created_at: datetime = Field(default_factory=datetime.utcnow)


class PaymentRefund(SQLModel, table=True):
    __tablename__ = "payment_refund"
    id: Optional[int] = Field(default=None, primary_key=True)
    payment_id: int = Field(foreign_key="payment.id", index=True)
    refund_id: str = Field(index=True)
    amount: Decimal = Field(max_digits=10, decimal_places=2)
    reason: Optional[str] = None
    status: str = Field(default="initiated")  # initiated | processed | failed
    gateway_response: Optional[dict] = Field(default=None, sa_column=Column(JSON))
    created_at: datetime = Field(default_factory=datetime.utcnow)
