from fastapi import APIRouter, Depends

from buytown.dependencies.services import get_checkout_service
from buytown.models.user import User
from buytown.schemas.checkout_schemas import CheckoutIn
from buytown.schemas.order_schemas import order_summary
from buytown.services.checkout_service import CheckoutRequest, CheckoutService
from buytown.utils.token import get_current_user

router = APIRouter()


@router.post("/place-order", status_code=201)
def place_order(
    data: CheckoutIn,
    checkout: CheckoutService = Depends(get_checkout_service),
    current_user: User = Depends(get_current_user),
):
    order = checkout.checkout(
        current_user.id,
        CheckoutRequest(
            shipping_address=data.shipping_address.model_dump(),
            billing_address=data.billing_address.model_dump() if data.billing_address else None,
            payment_method=data.payment_method,
            notes=data.notes,
            delivery_distance=data.delivery_distance,
        ),
    )

    return {
        "statusCode": 201,
        "message": "Order created successfully",
        "order": order_summary(order),
    }
