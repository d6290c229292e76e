from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    VALIDATION = "validation_error"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    INSUFFICIENT_STOCK = "insufficient_stock"
    INVALID_STATE = "invalid_state"
    UNAUTHORIZED = "unauthorized"
    GATEWAY_ERROR = "gateway_error"
    INVALID_SIGNATURE = "invalid_signature"


class BuytownError(Exception):
    """Base for every error the order core raises on purpose.

    Routes never build error bodies by hand; the handler in main.py turns
    these into ``{"statusCode": ..., "error": ...}`` responses.
    """

    kind: ErrorKind = ErrorKind.VALIDATION
    status_code: int = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self):
        return {
            "statusCode": self.status_code,
            "error": self.message,
            "kind": self.kind.value,
        }


class ValidationError(BuytownError):
    kind = ErrorKind.VALIDATION
    status_code = 400


class NotFoundError(BuytownError):
    kind = ErrorKind.NOT_FOUND
    status_code = 404


class ConflictError(BuytownError):
    kind = ErrorKind.CONFLICT
    status_code = 409


class InsufficientStock(BuytownError):
    kind = ErrorKind.INSUFFICIENT_STOCK
    status_code = 409

    def __init__(self, product_id: int, requested: int, available: Optional[int] = None, name: Optional[str] = None):
        label = name or f"product {product_id}"
        if available is None:
            message = f"Insufficient stock for {label}. Requested: {requested}"
        else:
            message = f"Insufficient stock for {label}. Available: {available}, Requested: {requested}"
        super().__init__(message)
        self.product_id = product_id
        self.requested = requested
        self.available = available


class InvalidState(BuytownError):
    kind = ErrorKind.INVALID_STATE
    status_code = 400


class Unauthorized(BuytownError):
    kind = ErrorKind.UNAUTHORIZED
    status_code = 403


class GatewayError(BuytownError):
    kind = ErrorKind.GATEWAY_ERROR
    status_code = 502


class InvalidSignature(BuytownError):
    kind = ErrorKind.INVALID_SIGNATURE
    status_code = 400


# ---------- specific cases ----------

class EmptyCart(ValidationError):
    def __init__(self, message: str = "Cart is empty"):
        super().__init__(message)


class InvalidDistance(ValidationError):
    def __init__(self, distance):
        super().__init__(f"Distance must be greater than 0 km, got {distance}")


class InvalidDeliveryPerson(ValidationError):
    def __init__(self, user_id: int):
        super().__init__(f"User {user_id} is not a delivery person")


class OrderNotFound(NotFoundError):
    def __init__(self, order_id):
        super().__init__(f"Order {order_id} not found")


class ProductNotFound(NotFoundError):
    def __init__(self, product_id):
        super().__init__(f"Product {product_id} not found")


class VehicleNotFound(NotFoundError):
    def __init__(self, vehicle_id):
        super().__init__(f"Vehicle {vehicle_id} not found")


class PaymentNotFound(NotFoundError):
    def __init__(self, reference):
        super().__init__(f"Payment record not found for {reference}")
