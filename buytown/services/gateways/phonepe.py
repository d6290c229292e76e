import base64
import hashlib
import hmac
import json
import logging
from decimal import Decimal
from typing import Optional
from uuid import uuid4

from buytown.constants.order_status import GatewayPaymentStatus
from buytown.exceptions import GatewayError, InvalidSignature
from buytown.services.gateways.base import GatewayOrder, GatewayStatus, GatewayTimeout, PaymentGateway

logger = logging.getLogger(__name__)

PAY_ENDPOINT = "/pg/v1/pay"
STATUS_ENDPOINT = "/pg/v1/status"

STATE_MAP = {
    "COMPLETED": GatewayPaymentStatus.paid.value,
    "PAYMENT_SUCCESS": GatewayPaymentStatus.paid.value,
    "FAILED": GatewayPaymentStatus.failed.value,
    "PAYMENT_ERROR": GatewayPaymentStatus.failed.value,
    "PAYMENT_DECLINED": GatewayPaymentStatus.failed.value,
    "CANCELLED": GatewayPaymentStatus.cancelled.value,
    "PENDING": GatewayPaymentStatus.pending.value,
    "PAYMENT_PENDING": GatewayPaymentStatus.pending.value,
}


def encode_payload(payload: dict) -> str:
    return base64.b64encode(json.dumps(payload, separators=(",", ":")).encode("utf-8")).decode("ascii")


def checksum(data: str, salt_key: str, salt_index: str) -> str:
    """X-VERIFY header: sha256(data + salt) + ### + salt index."""
    digest = hashlib.sha256(f"{data}{salt_key}".encode("utf-8")).hexdigest()
    return f"{digest}###{salt_index}"


class PhonePeGateway(PaymentGateway):
    """Redirect / QR pay page."""

    name = "phonepe"

    def __init__(self, merchant_id: str, salt_key: str, salt_index: str, base_url: str, callback_url: str, **kwargs):
        super().__init__(**kwargs)
        self.merchant_id = merchant_id
        self.salt_key = salt_key
        self.salt_index = salt_index
        self.base_url = base_url.rstrip("/")
        self.callback_url = callback_url

    @classmethod
    def from_settings(cls, settings, **kwargs):
        return cls(
            merchant_id=settings.phonepe_merchant_id,
            salt_key=settings.phonepe_salt_key,
            salt_index=settings.phonepe_salt_index,
            base_url=settings.phonepe_base_url,
            callback_url=settings.phonepe_callback_url,
            timeout=settings.gateway_timeout_seconds,
            **kwargs,
        )

    def create_order(self, order) -> GatewayOrder:
        transaction_id = f"{order.order_number}-{uuid4().hex[:8]}"
        phone = (order.shipping_address or {}).get("phone", "")
        payload = {
            "merchantId": self.merchant_id,
            "merchantTransactionId": transaction_id,
            "merchantUserId": str(order.user_id),
            "amount": int((Decimal(order.total_amount) * 100).to_integral_value()),  # paise
            "redirectUrl": self.callback_url,
            "redirectMode": "REDIRECT",
            "callbackUrl": self.callback_url,
            "mobileNumber": phone,
            "paymentInstrument": {"type": "PAY_PAGE"},
        }
        encoded = encode_payload(payload)
        try:
            data = self._request(
                "POST",
                f"{self.base_url}{PAY_ENDPOINT}",
                json={"request": encoded},
                headers={
                    "Content-Type": "application/json",
                    "X-VERIFY": checksum(encoded + PAY_ENDPOINT, self.salt_key, self.salt_index),
                },
            )
        except GatewayTimeout as e:
            e.gateway_order_id = transaction_id
            raise
        if not data.get("success"):
            raise GatewayError(f"PhonePe payment initiation failed: {data.get('message')}")

        url = (
            data.get("data", {})
            .get("instrumentResponse", {})
            .get("redirectInfo", {})
            .get("url")
        )
        return GatewayOrder(
            gateway_order_id=transaction_id,
            payment_url=url,
            status=GatewayPaymentStatus.created.value,
            raw=data,
        )

    def fetch_status(self, gateway_order_id: str) -> GatewayStatus:
        path = f"{STATUS_ENDPOINT}/{self.merchant_id}/{gateway_order_id}"
        data = self._request(
            "GET",
            f"{self.base_url}{path}",
            headers={
                "Content-Type": "application/json",
                "X-VERIFY": checksum(path, self.salt_key, self.salt_index),
                "X-MERCHANT-ID": self.merchant_id,
            },
        )
        return self._normalise(gateway_order_id, data)

    def parse_webhook(self, payload: dict, headers: Optional[dict] = None) -> GatewayStatus:
        headers = {k.lower(): v for k, v in (headers or {}).items()}
        encoded = payload.get("response")
        received = payload.get("checksum") or headers.get("x-verify")
        if not encoded or not received:
            raise InvalidSignature("Missing PhonePe callback checksum")

        expected = checksum(encoded, self.salt_key, self.salt_index)
        if not hmac.compare_digest(expected.encode("utf-8"), str(received).encode("utf-8")):
            logger.warning("PhonePe callback checksum mismatch")
            raise InvalidSignature("Invalid PhonePe callback checksum")

        try:
            decoded = json.loads(base64.b64decode(encoded))
        except ValueError:
            raise InvalidSignature("Malformed PhonePe callback payload")

        transaction_id = decoded.get("data", {}).get("merchantTransactionId")
        return self._normalise(transaction_id, decoded)

    def _normalise(self, gateway_order_id: str, data: dict) -> GatewayStatus:
        body = data.get("data") or {}
        state = body.get("state") or data.get("code") or "PENDING"
        amount = body.get("amount")
        return GatewayStatus(
            gateway_order_id=gateway_order_id,
            status=STATE_MAP.get(state, GatewayPaymentStatus.pending.value),
            txn_id=body.get("transactionId"),
            amount=(Decimal(amount) / 100) if amount is not None else None,
            raw=data,
        )
