from enum import Enum


class OrderEvent(str, Enum):
    ORDER_PLACED = "order_placed"
    ORDER_APPROVED = "order_approved"
    ORDER_REJECTED = "order_rejected"
    DELIVERY_ASSIGNED = "delivery_assigned"
    ORDER_COMPLETED = "order_completed"
    ORDER_CANCELLED = "order_cancelled"
    ORDER_RECEIVED = "order_received"

    PAYMENT_SUCCESS = "payment_success"
    PAYMENT_FAILED = "payment_failed"
    REFUND_PROCESSED = "refund_processed"
