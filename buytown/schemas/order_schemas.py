from pydantic import BaseModel, Field
from typing import Optional


class ApproveOrderIn(BaseModel):
    vehicle_id: int
    distance_km: float = Field(gt=0, allow_inf_nan=False)
    delivery_person_id: Optional[int] = None


class RejectOrderIn(BaseModel):
    reason: str = Field(min_length=1)


class AssignDeliveryPersonIn(BaseModel):
    delivery_person_id: int
    distance_km: float = Field(gt=0, allow_inf_nan=False)


class CancelOrderIn(BaseModel):
    reason: Optional[str] = None


class DeliveryChargeIn(BaseModel):
    vehicle_id: int
    distance_km: float = Field(gt=0, allow_inf_nan=False)


def order_summary(order) -> dict:
    return {
        "order_id": order.id,
        "order_number": order.order_number,
        "status": order.status,
        "payment_status": order.payment_status,
        "payment_method": order.payment_method,
        "subtotal": order.subtotal,
        "tax_amount": order.tax_amount,
        "discount_amount": order.discount_amount,
        "shipping_amount": order.shipping_amount,
        "delivery_charges": order.delivery_charges,
        "total_amount": order.total_amount,
        "delivery_distance": order.delivery_distance,
        "delivery_person_id": order.delivery_person_id,
        "delivery_driver": order.delivery_driver,
        "delivery_vehicle": order.delivery_vehicle,
        "rejection_reason": order.rejection_reason,
        "created_at": order.created_at,
    }


def order_detail(order, items) -> dict:
    return {
        **order_summary(order),
        "shipping_address": order.shipping_address,
        "billing_address": order.billing_address,
        "notes": order.notes,
        "cancellation_reason": order.cancellation_reason,
        "items": [
            {
                "product_id": i.product_id,
                "variation_id": i.variation_id,
                "product_name": i.product_name,
                "price": i.price,
                "quantity": i.quantity,
                "total_price": i.total_price,
            }
            for i in items
        ],
    }
