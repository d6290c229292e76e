from fastapi import APIRouter, Depends
from sqlmodel import Session, select

from buytown.database import get_session
from buytown.dependencies.services import get_pricing
from buytown.models.user import User
from buytown.models.vehicle import Vehicle
from buytown.schemas.order_schemas import DeliveryChargeIn
from buytown.services.delivery_pricing import DeliveryPricingCalculator
from buytown.utils.token import get_current_user

router = APIRouter()


@router.get("")
def list_vehicles(
    session: Session = Depends(get_session),
    _: User = Depends(get_current_user),
):
    vehicles = session.exec(
        select(Vehicle).where(Vehicle.is_active == True).order_by(Vehicle.vehicle_type)  # noqa: E712
    ).all()
    return {"statusCode": 200, "vehicles": vehicles}


@router.post("/delivery-charge")
def calculate_delivery_charge(
    data: DeliveryChargeIn,
    pricing: DeliveryPricingCalculator = Depends(get_pricing),
    _: User = Depends(get_current_user),
):
    charge = pricing.calculate(data.vehicle_id, data.distance_km)
    return {"statusCode": 200, **charge.as_dict()}
