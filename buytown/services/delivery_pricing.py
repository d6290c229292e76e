from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP, InvalidOperation

from sqlmodel import Session

from buytown.exceptions import InvalidDistance, VehicleNotFound
from buytown.models.vehicle import Vehicle

TWO_PLACES = Decimal("0.01")


def to_decimal(value) -> Decimal:
    if isinstance(value, Decimal):
        return value
    try:
        # str() first so 12.1 does not turn into 12.0999999...
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise InvalidDistance(value)


@dataclass(frozen=True)
class DeliveryCharge:
    vehicle_id: int
    vehicle_type: str
    base_charge: Decimal
    max_distance_km: int
    additional_charge_per_km: Decimal
    distance_km: Decimal
    total_charge: Decimal

    def as_dict(self):
        return {
            "vehicle_id": self.vehicle_id,
            "vehicle_type": self.vehicle_type,
            "base_charge": self.base_charge,
            "max_distance_km": self.max_distance_km,
            "additional_charge_per_km": self.additional_charge_per_km,
            "distance_km": self.distance_km,
            "total_charge": self.total_charge,
        }


def compute_charge(base_charge, max_distance_km, additional_charge_per_km, distance_km) -> Decimal:
    """Tiered charge: base covers up to max_distance_km, per-km rate beyond it."""
    base = to_decimal(base_charge)
    threshold = to_decimal(max_distance_km)
    rate = to_decimal(additional_charge_per_km)
    distance = to_decimal(distance_km)

    if distance <= threshold:
        total = base
    else:
        total = base + (distance - threshold) * rate
    return total.quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


class DeliveryPricingCalculator:
    def __init__(self, session: Session):
        self.session = session

    def calculate(self, vehicle_id: int, distance_km) -> DeliveryCharge:
        distance = to_decimal(distance_km)
        if not distance.is_finite() or distance <= 0:
            raise InvalidDistance(distance_km)

        vehicle = self.session.get(Vehicle, vehicle_id)
        if not vehicle or not vehicle.is_active:
            raise VehicleNotFound(vehicle_id)

        total = compute_charge(
            vehicle.base_charge,
            vehicle.max_distance_km,
            vehicle.additional_charge_per_km,
            distance,
        )
        return DeliveryCharge(
            vehicle_id=vehicle.id,
            vehicle_type=vehicle.vehicle_type,
            base_charge=to_decimal(vehicle.base_charge),
            max_distance_km=vehicle.max_distance_km,
            additional_charge_per_km=to_decimal(vehicle.additional_charge_per_km),
            distance_km=distance,
            total_charge=total,
        )
