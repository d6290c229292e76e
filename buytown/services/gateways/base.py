import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Optional

import requests

from buytown.exceptions import GatewayError

logger = logging.getLogger(__name__)


@dataclass
class GatewayOrder:
    gateway_order_id: str
    payment_url: Optional[str]
    status: str
    raw: dict = field(default_factory=dict)


@dataclass
class GatewayStatus:
    gateway_order_id: str
    status: str  # GatewayPaymentStatus value
    txn_id: Optional[str] = None
    amount: Optional[Decimal] = None
    raw: dict = field(default_factory=dict)


@dataclass
class GatewayRefund:
    refund_id: str
    status: str
    raw: dict = field(default_factory=dict)


class GatewayTimeout(GatewayError):
    """Upstream did not answer in time; payment state is unknown.

    On create, ``gateway_order_id`` carries the id that was already sent
    upstream so the attempt can still be matched by a later webhook.
    """

    def __init__(self, message: str, gateway_order_id: Optional[str] = None):
        super().__init__(message)
        self.gateway_order_id = gateway_order_id


class PaymentGateway:
    """Common HTTP plumbing for a hosted payment provider."""

    name = "base"

    def __init__(self, timeout: float = 15.0, http=None):
        self.timeout = timeout
        self.http = http or requests

    def create_order(self, order) -> GatewayOrder:
        raise NotImplementedError

    def fetch_status(self, gateway_order_id: str) -> GatewayStatus:
        raise NotImplementedError

    def parse_webhook(self, payload: dict, headers: Optional[dict] = None) -> GatewayStatus:
        """Verify the signature and normalise the callback. Raises InvalidSignature."""
        raise NotImplementedError

    def refund(self, gateway_order_id: str, refund_id: str, amount: Decimal, reason: str) -> GatewayRefund:
        raise GatewayError(f"{self.name} refunds are not supported")

    def _request(self, method: str, url: str, **kwargs) -> dict:
        try:
            response = self.http.request(method, url, timeout=self.timeout, **kwargs)
        except requests.Timeout as e:
            logger.warning(f"{self.name} timed out: {method} {url}")
            raise GatewayTimeout(f"{self.name} request timed out: {e}")
        except requests.RequestException as e:
            logger.error(f"{self.name} request failed: {e}")
            raise GatewayError(f"{self.name} request failed: {e}")

        try:
            data = response.json()
        except ValueError:
            data = {"message": response.text}

        if response.status_code >= 400:
            message = data.get("message") if isinstance(data, dict) else None
            logger.error(f"{self.name} error {response.status_code}: {data}")
            raise GatewayError(f"{self.name} error: {message or response.status_code}")
        return data
