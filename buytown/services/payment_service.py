import logging
from datetime import datetime
from decimal import Decimal
from typing import Dict, Optional
from uuid import uuid4

from sqlmodel import Session, select

from buytown.constants.order_status import (
    FINAL_GATEWAY_STATUSES,
    GatewayPaymentStatus,
    OrderStatus,
    PaymentStatus,
    TERMINAL_STATUSES,
)
from buytown.exceptions import (
    GatewayError,
    InvalidState,
    OrderNotFound,
    PaymentNotFound,
    ValidationError,
)
from buytown.models.order import Order
from buytown.models.payment import Payment, PaymentLog, PaymentRefund
from buytown.notifications.events import OrderEvent
from buytown.services.gateways.base import GatewayStatus, GatewayTimeout, PaymentGateway
from buytown.services.order_event_service import log_order_event
from buytown.services.order_service import OrderService

logger = logging.getLogger(__name__)


class PaymentService:
    """Keeps Payment rows and Order.payment_status in line with the gateways.

    Payment success never approves an order; it only marks it paid.
    Failure or cancellation cancels a still-open order and releases its
    held stock. Final gateway states are never revisited, so replayed
    webhooks and repeated polls are no-ops.
    """

    def __init__(
        self,
        session: Session,
        gateways: Dict[str, PaymentGateway],
        *,
        orders: Optional[OrderService] = None,
        notifier=None,
        currency: str = "INR",
    ):
        self.session = session
        self.gateways = gateways
        self.orders = orders or OrderService(session)
        self.notifier = notifier
        self.currency = currency

    def gateway(self, name: str) -> PaymentGateway:
        gateway = self.gateways.get(name)
        if not gateway:
            raise ValidationError(f"Unknown payment gateway: {name}")
        return gateway

    # -------------------------
    # create
    # -------------------------

    def create_gateway_order(self, order_id: int, gateway_name: str, customer_id: Optional[int] = None) -> dict:
        gateway = self.gateway(gateway_name)
        order = self.orders.get_order(order_id)
        if customer_id is not None and order.user_id != customer_id:
            raise OrderNotFound(order_id)
        if order.payment_status == PaymentStatus.paid.value:
            raise InvalidState(f"Order {order.order_number} is already paid")
        if order.status in TERMINAL_STATUSES:
            raise InvalidState(f"Order {order.order_number} is {order.status}")

        try:
            created = gateway.create_order(order)
        except GatewayTimeout as e:
            # the gateway may have created the order; a webhook or poll settles it
            self._record_attempt(
                order,
                gateway,
                e.gateway_order_id or f"TIMEOUT_{order.id}_{uuid4().hex[:12]}",
                GatewayPaymentStatus.pending.value,
                e.message,
            )
            raise
        except GatewayError as e:
            # keep a record of the failed attempt for manual reconciliation
            self._record_attempt(
                order,
                gateway,
                f"FAILED_{order.id}_{uuid4().hex[:12]}",
                GatewayPaymentStatus.failed.value,
                e.message,
            )
            raise

        payment = Payment(
            order_id=order.id,
            payment_gateway=gateway.name,
            gateway_order_id=created.gateway_order_id,
            amount=order.total_amount,
            currency=self.currency,
            status=created.status,
            payment_url=created.payment_url,
        )
        self.session.add(payment)
        self.session.flush()
        self._log(payment, "create", created.raw)
        self.session.commit()
        logger.info(f"{gateway.name} order {created.gateway_order_id} created for {order.order_number}")

        return {
            "gatewayOrderId": created.gateway_order_id,
            "transactionId": created.gateway_order_id,
            "paymentUrl": created.payment_url,
        }

    def _record_attempt(self, order: Order, gateway: PaymentGateway, gateway_order_id: str, status: str, error: str) -> None:
        payment = Payment(
            order_id=order.id,
            payment_gateway=gateway.name,
            gateway_order_id=gateway_order_id,
            amount=order.total_amount,
            currency=self.currency,
            status=status,
            error_message=error,
        )
        self.session.add(payment)
        self.session.flush()
        self._log(payment, "create", {"error": error})
        self.session.commit()
        logger.warning(f"{gateway.name} order {gateway_order_id} for {order.order_number} recorded as {status}: {error}")

    # -------------------------
    # verify / webhook
    # -------------------------

    def verify_payment(self, gateway_order_id: str) -> dict:
        payment = self._payment_by_gateway_id(gateway_order_id)
        if payment.status in FINAL_GATEWAY_STATUSES:
            return {"success": True, "status": payment.status, "applied": False}

        gateway = self.gateway(payment.payment_gateway)
        try:
            result = gateway.fetch_status(gateway_order_id)
        except GatewayTimeout:
            # unknown outcome: stay pending until the next poll or webhook
            self._mark_pending(payment.id)
            raise
        return self._apply(result, source="verify", gateway_name=gateway.name)

    def handle_webhook(self, gateway_name: str, payload: dict, headers: Optional[dict] = None) -> dict:
        gateway = self.gateway(gateway_name)
        # raises InvalidSignature before anything is touched
        result = gateway.parse_webhook(payload, headers)
        if not result.gateway_order_id:
            raise ValidationError("Webhook does not reference a gateway order")
        return self._apply(result, source="webhook", gateway_name=gateway.name)

    def _apply(self, result: GatewayStatus, source: str, gateway_name: str) -> dict:
        event = None
        try:
            payment = self._payment_by_gateway_id(result.gateway_order_id, lock=True)
            if payment.payment_gateway != gateway_name:
                raise PaymentNotFound(result.gateway_order_id)

            if payment.status in FINAL_GATEWAY_STATUSES or payment.status == result.status:
                # replay or duplicate poll
                self.session.rollback()
                logger.info(f"Payment {payment.gateway_order_id} already {payment.status}, {source} ignored")
                return {"success": True, "status": payment.status, "applied": False}

            previous = payment.status
            payment.status = result.status
            payment.txn_id = result.txn_id or payment.txn_id
            payment.updated_at = datetime.utcnow()
            self.session.add(payment)
            self._log(payment, source, result.raw)

            order = self.orders.lock_order(payment.order_id)
            event = self._apply_to_order(order, payment, source)
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise

        logger.info(f"Payment {payment.gateway_order_id}: {previous} -> {payment.status} via {source}")
        if event and self.notifier:
            self.session.refresh(order)
            self.notifier.notify(event, order, actor="gateway")
        return {"success": True, "status": payment.status, "applied": True}

    def _apply_to_order(self, order: Order, payment: Payment, source: str):
        if payment.status == GatewayPaymentStatus.paid.value:
            order.payment_status = PaymentStatus.paid.value
            order.updated_at = datetime.utcnow()
            self.session.add(order)
            log_order_event(
                self.session,
                order,
                event_type="payment_paid",
                label=f"Payment received via {payment.payment_gateway}",
                created_by="gateway",
                meta={"gateway_order_id": payment.gateway_order_id, "source": source},
            )
            return OrderEvent.PAYMENT_SUCCESS

        if payment.status in (GatewayPaymentStatus.failed.value, GatewayPaymentStatus.cancelled.value):
            if order.payment_status == PaymentStatus.paid.value:
                # another attempt already paid this order
                return None
            order.payment_status = PaymentStatus.failed.value
            order.updated_at = datetime.utcnow()
            self.session.add(order)
            log_order_event(
                self.session,
                order,
                event_type="payment_failed",
                label=f"Payment {payment.status} via {payment.payment_gateway}",
                created_by="gateway",
                meta={"gateway_order_id": payment.gateway_order_id, "source": source},
            )
            self.orders.cancel_for_payment_failure(order)
            return OrderEvent.PAYMENT_FAILED

        return None

    def _mark_pending(self, payment_id: int) -> None:
        payment = self.session.get(Payment, payment_id)
        if payment.status == GatewayPaymentStatus.created.value:
            payment.status = GatewayPaymentStatus.pending.value
            payment.updated_at = datetime.utcnow()
            self.session.add(payment)
            self._log(payment, "verify", {"error": "timeout"})
            self.session.commit()

    # -------------------------
    # refunds / details
    # -------------------------

    def refund(self, order_id: int, amount=None, reason: str = "") -> PaymentRefund:
        payment = self.latest_payment(order_id, status=GatewayPaymentStatus.paid.value)
        if not payment:
            raise InvalidState("Payment is not in paid status")

        refunded = self._refunded_total(payment.id)
        amount = Decimal(str(amount)) if amount is not None else Decimal(payment.amount) - refunded
        if amount <= 0 or refunded + amount > Decimal(payment.amount):
            raise ValidationError(f"Refund amount must be between 0 and {Decimal(payment.amount) - refunded}")

        gateway = self.gateway(payment.payment_gateway)
        refund_id = f"REF_{order_id}_{uuid4().hex[:10]}"
        result = gateway.refund(payment.gateway_order_id, refund_id, amount, reason)

        try:
            refund = PaymentRefund(
                payment_id=payment.id,
                refund_id=result.refund_id,
                amount=amount,
                reason=reason,
                status=result.status,
                gateway_response=result.raw,
            )
            self.session.add(refund)
            self._log(payment, "refund", result.raw)

            order = self.orders.lock_order(order_id)
            if refunded + amount >= Decimal(payment.amount):
                order.payment_status = PaymentStatus.refunded.value
                order.updated_at = datetime.utcnow()
                self.session.add(order)
            log_order_event(
                self.session,
                order,
                event_type="refund_initiated",
                label=f"Refund of {amount} initiated",
                created_by="admin",
                meta={"refund_id": result.refund_id, "reason": reason},
            )
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise

        self.session.refresh(refund)
        if self.notifier:
            self.notifier.notify(OrderEvent.REFUND_PROCESSED, order, actor="admin")
        return refund

    def latest_payment(self, order_id: int, status: Optional[str] = None) -> Optional[Payment]:
        query = select(Payment).where(Payment.order_id == order_id)
        if status:
            query = query.where(Payment.status == status)
        return self.session.exec(query.order_by(Payment.id.desc())).first()

    def payment_details(self, order_id: int) -> dict:
        payment = self.latest_payment(order_id)
        if not payment:
            raise PaymentNotFound(f"order {order_id}")
        refunds = self.session.exec(
            select(PaymentRefund).where(PaymentRefund.payment_id == payment.id).order_by(PaymentRefund.id)
        ).all()
        return {"payment": payment, "refunds": refunds}

    # -------------------------
    # helpers
    # -------------------------

    def _payment_by_gateway_id(self, gateway_order_id: str, lock: bool = False) -> Payment:
        query = select(Payment).where(Payment.gateway_order_id == gateway_order_id)
        if lock:
            query = query.with_for_update().execution_options(populate_existing=True)
        payment = self.session.exec(query).first()
        if not payment:
            raise PaymentNotFound(gateway_order_id)
        return payment

    def _refunded_total(self, payment_id: int) -> Decimal:
        refunds = self.session.exec(
            select(PaymentRefund)
            .where(PaymentRefund.payment_id == payment_id)
            .where(PaymentRefund.status != "failed")
        ).all()
        return sum((Decimal(r.amount) for r in refunds), Decimal("0"))

    def _log(self, payment: Payment, source: str, response: Optional[dict]) -> None:
        self.session.add(
            PaymentLog(
                payment_id=payment.id,
                source=source,
                status=payment.status,
                response=_jsonable(response),
            )
        )


def _jsonable(value):
    if isinstance(value, dict):
        return {k: _jsonable(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_jsonable(v) for v in value]
    if isinstance(value, Decimal):
        return str(value)
    return value
