from fastapi import APIRouter, Body, Depends, Request

from buytown.dependencies.services import get_payment_service
from buytown.models.user import User
from buytown.schemas.payment_schemas import RefundIn
from buytown.services.payment_service import PaymentService
from buytown.utils.token import get_current_admin, get_current_user

router = APIRouter()


@router.post("/{gateway}/create/{order_id}", status_code=201)
def create_payment(
    gateway: str,
    order_id: int,
    payments: PaymentService = Depends(get_payment_service),
    current_user: User = Depends(get_current_user),
):
    result = payments.create_gateway_order(order_id, gateway, customer_id=current_user.id)
    return {"statusCode": 201, **result}


@router.post("/verify/{gateway_order_id}")
def verify_payment(
    gateway_order_id: str,
    payments: PaymentService = Depends(get_payment_service),
    _: User = Depends(get_current_user),
):
    result = payments.verify_payment(gateway_order_id)
    return {"statusCode": 200, **result}


@router.post("/{gateway}/webhook")
def payment_webhook(
    gateway: str,
    request: Request,
    payload: dict = Body(...),
    payments: PaymentService = Depends(get_payment_service),
):
    result = payments.handle_webhook(gateway, payload, dict(request.headers))
    return {"statusCode": 200, **result}


@router.get("/order/{order_id}")
def payment_details(
    order_id: int,
    payments: PaymentService = Depends(get_payment_service),
    _: User = Depends(get_current_admin),
):
    details = payments.payment_details(order_id)
    return {"statusCode": 200, **details}


@router.post("/order/{order_id}/refund", status_code=201)
def refund_payment(
    order_id: int,
    data: RefundIn,
    payments: PaymentService = Depends(get_payment_service),
    _: User = Depends(get_current_admin),
):
    refund = payments.refund(order_id, data.amount, data.reason)
    return {
        "statusCode": 201,
        "refund_id": refund.refund_id,
        "amount": refund.amount,
        "status": refund.status,
    }
