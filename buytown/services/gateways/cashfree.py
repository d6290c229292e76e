import base64
import hashlib
import hmac
import logging
import time
from decimal import Decimal
from typing import Optional

from buytown.constants.order_status import GatewayPaymentStatus
from buytown.exceptions import InvalidSignature
from buytown.services.gateways.base import (
    GatewayOrder,
    GatewayRefund,
    GatewayStatus,
    GatewayTimeout,
    PaymentGateway,
)

logger = logging.getLogger(__name__)

ORDER_STATUS_MAP = {
    "PAID": GatewayPaymentStatus.paid.value,
    "ACTIVE": GatewayPaymentStatus.pending.value,
    "PENDING": GatewayPaymentStatus.pending.value,
    "FAILED": GatewayPaymentStatus.failed.value,
    "CANCELLED": GatewayPaymentStatus.cancelled.value,
    "EXPIRED": GatewayPaymentStatus.cancelled.value,
    "TERMINATED": GatewayPaymentStatus.cancelled.value,
}


def generate_signature(data: dict, secret_key: str) -> str:
    """HMAC-SHA256 over the sorted ``key+value`` pairs, base64 encoded.

    Empty values are skipped.
    """
    message = "".join(
        f"{key}{data[key]}"
        for key in sorted(data)
        if data[key] is not None and data[key] != ""
    )
    digest = hmac.new(secret_key.encode("utf-8"), message.encode("utf-8"), hashlib.sha256).digest()
    return base64.b64encode(digest).decode("ascii")


class CashfreeGateway(PaymentGateway):
    """Hosted checkout."""

    name = "cashfree"

    def __init__(self, app_id: str, secret_key: str, base_url: str, api_version: str,
                 return_url: str = "", notify_url: str = "", currency: str = "INR", **kwargs):
        super().__init__(**kwargs)
        self.app_id = app_id
        self.secret_key = secret_key
        self.base_url = base_url.rstrip("/")
        self.api_version = api_version
        self.return_url = return_url
        self.notify_url = notify_url
        self.currency = currency

    @classmethod
    def from_settings(cls, settings, **kwargs):
        return cls(
            app_id=settings.cashfree_app_id,
            secret_key=settings.cashfree_secret_key,
            base_url=settings.cashfree_base_url,
            api_version=settings.cashfree_api_version,
            return_url=settings.cashfree_return_url,
            notify_url=settings.cashfree_notify_url,
            currency=settings.currency,
            timeout=settings.gateway_timeout_seconds,
            **kwargs,
        )

    @property
    def headers(self):
        return {
            "Content-Type": "application/json",
            "x-api-version": self.api_version,
            "x-client-id": self.app_id,
            "x-client-secret": self.secret_key,
        }

    def create_order(self, order) -> GatewayOrder:
        cf_order_id = f"CF_{order.id}_{int(time.time() * 1000)}"
        address = order.shipping_address or {}
        order_meta = {"payment_methods": "cc,dc,upi"}
        if self.return_url:
            order_meta["return_url"] = self.return_url.format(order_id=order.id)
        if self.notify_url:
            order_meta["notify_url"] = self.notify_url
        payload = {
            "order_id": cf_order_id,
            "order_amount": float(Decimal(order.total_amount).quantize(Decimal("0.01"))),
            "order_currency": self.currency,
            "customer_details": {
                "customer_id": str(order.user_id),
                "customer_phone": address.get("phone", ""),
                "customer_name": address.get("name", ""),
            },
            "order_meta": order_meta,
            "order_tags": {"order_number": order.order_number},
        }
        try:
            data = self._request("POST", f"{self.base_url}/orders", json=payload, headers=self.headers)
        except GatewayTimeout as e:
            e.gateway_order_id = cf_order_id
            raise

        payment_url = data.get("payment_link")
        if not payment_url and data.get("payment_session_id"):
            payment_url = f"{self.base_url}/checkout?session_id={data['payment_session_id']}"
        return GatewayOrder(
            gateway_order_id=cf_order_id,
            payment_url=payment_url,
            status=GatewayPaymentStatus.created.value,
            raw=data,
        )

    def fetch_status(self, gateway_order_id: str) -> GatewayStatus:
        data = self._request("GET", f"{self.base_url}/orders/{gateway_order_id}", headers=self.headers)
        return GatewayStatus(
            gateway_order_id=gateway_order_id,
            status=ORDER_STATUS_MAP.get(data.get("order_status"), GatewayPaymentStatus.pending.value),
            txn_id=data.get("cf_order_id") and str(data.get("cf_order_id")),
            amount=Decimal(str(data["order_amount"])) if data.get("order_amount") is not None else None,
            raw=data,
        )

    def parse_webhook(self, payload: dict, headers: Optional[dict] = None) -> GatewayStatus:
        received = payload.get("signature")
        if not received:
            raise InvalidSignature("Missing Cashfree webhook signature")

        unsigned = {k: v for k, v in payload.items() if k != "signature"}
        expected = generate_signature(unsigned, self.secret_key)
        if not hmac.compare_digest(expected.encode("utf-8"), str(received).encode("utf-8")):
            logger.warning(f"Cashfree webhook signature mismatch for order {payload.get('orderId')}")
            raise InvalidSignature("Invalid Cashfree webhook signature")

        order_status = payload.get("orderStatus")
        payment_status = payload.get("paymentStatus")
        status = ORDER_STATUS_MAP.get(order_status, GatewayPaymentStatus.pending.value)
        # PAID needs a successful payment to count
        if status == GatewayPaymentStatus.paid.value and payment_status != "SUCCESS":
            status = GatewayPaymentStatus.pending.value
        return GatewayStatus(
            gateway_order_id=payload.get("orderId"),
            status=status,
            txn_id=payload.get("referenceId"),
            amount=Decimal(str(payload["orderAmount"])) if payload.get("orderAmount") is not None else None,
            raw=unsigned,
        )

    def refund(self, gateway_order_id: str, refund_id: str, amount: Decimal, reason: str) -> GatewayRefund:
        payload = {
            "refund_id": refund_id,
            "refund_amount": float(Decimal(amount).quantize(Decimal("0.01"))),
            "refund_note": reason or "Customer requested refund",
        }
        data = self._request(
            "POST",
            f"{self.base_url}/orders/{gateway_order_id}/refunds",
            json=payload,
            headers=self.headers,
        )
        return GatewayRefund(
            refund_id=data.get("refund_id", refund_id),
            status="processed" if data.get("refund_status") == "SUCCESS" else "initiated",
            raw=data,
        )
