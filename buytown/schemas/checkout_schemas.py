# buytown/schemas/checkout_schemas.py
from pydantic import BaseModel, Field
from typing import Optional


class AddressIn(BaseModel):
    name: str
    phone: str
    address: str
    city: str
    state: str
    zip_code: str
    landmark: Optional[str] = None


class CheckoutIn(BaseModel):
    shipping_address: AddressIn
    billing_address: Optional[AddressIn] = None
    payment_method: str = Field(default="cod", pattern="^(cod|phonepe|cashfree)$")
    notes: Optional[str] = None
    delivery_distance: Optional[float] = Field(default=None, allow_inf_nan=False)
