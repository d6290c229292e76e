from enum import Enum, IntEnum


class OrderStatus(str, Enum):
    awaiting_confirmation = "awaiting_confirmation"
    approved = "approved"
    completed = "completed"
    delivered = "delivered"  # legacy rows only
    received = "received"
    rejected = "rejected"
    cancelled = "cancelled"


class PaymentStatus(str, Enum):
    pending = "pending"
    paid = "paid"
    failed = "failed"
    cancelled = "cancelled"
    refunded = "refunded"


class GatewayPaymentStatus(str, Enum):
    created = "created"
    pending = "pending"
    paid = "paid"
    failed = "failed"
    cancelled = "cancelled"


class CartStatus(str, Enum):
    pending = "pending"
    processing = "processing"
    completed = "completed"
    empty = "empty"
    cancelled = "cancelled"


class ProductStatus(IntEnum):
    active = 1
    out_of_stock = 2
    discontinued = 3


class Role(str, Enum):
    admin = "admin"
    customer = "customer"
    delivery_person = "delivery_person"


ALLOWED_TRANSITIONS = {
    "awaiting_confirmation": ["approved", "completed", "rejected", "cancelled"],
    "approved": ["completed", "rejected", "cancelled"],
    "completed": ["received"],
    "delivered": ["received"],
    "received": [],
    "rejected": [],
    "cancelled": [],
}

TERMINAL_STATUSES = {
    OrderStatus.received.value,
    OrderStatus.rejected.value,
    OrderStatus.cancelled.value,
}

FINAL_GATEWAY_STATUSES = {
    GatewayPaymentStatus.paid.value,
    GatewayPaymentStatus.failed.value,
    GatewayPaymentStatus.cancelled.value,
}


def can_transition(current: str, target: str) -> bool:
    return target in ALLOWED_TRANSITIONS.get(current, [])
