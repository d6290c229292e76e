from sqlmodel import SQLModel, Field
from typing import Optional
from datetime import datetime
from decimal import Decimal


class Vehicle(SQLModel, table=True):
    """Vehicle class with its delivery charge tier."""
    id: Optional[int] = Field(default=None, primary_key=True)
    vehicle_type: str  # Two Wheeler, Cargo, Tata Ace, Pickup ...

    base_charge: Decimal = Field(default=Decimal("0"), max_digits=8, decimal_places=2)
    max_distance_km: int = Field(default=5)  # distance covered by base_charge
    additional_charge_per_km: Decimal = Field(default=Decimal("0"), max_digits=8, decimal_places=2)

    is_active: bool = Field(default=True)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)


class UserVehicle(SQLModel, table=True):
    __tablename__ = "user_vehicle"
    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", index=True)
    vehicle_id: int = Field(foreign_key="vehicle.id")
    vehicle_number: Optional[str] = None
