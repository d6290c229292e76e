from buytown.exceptions import ValidationError
from buytown.services.gateways.base import PaymentGateway
from buytown.services.gateways.cashfree import CashfreeGateway
from buytown.services.gateways.phonepe import PhonePeGateway

GATEWAYS = {
    PhonePeGateway.name: PhonePeGateway,
    CashfreeGateway.name: CashfreeGateway,
}


def get_gateway(name: str, settings) -> PaymentGateway:
    gateway_cls = GATEWAYS.get(name)
    if not gateway_cls:
        raise ValidationError(f"Unknown payment gateway: {name}")
    return gateway_cls.from_settings(settings)
