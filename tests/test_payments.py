import base64
import hashlib
import hmac
import json
from decimal import Decimal

import pytest
import requests
from sqlmodel import select

from buytown.constants.order_status import GatewayPaymentStatus, OrderStatus, PaymentStatus
from buytown.exceptions import (
    GatewayError,
    InvalidSignature,
    InvalidState,
    OrderNotFound,
    PaymentNotFound,
    ValidationError,
)
from buytown.models.payment import Payment, PaymentLog, PaymentRefund
from buytown.services.gateways.base import GatewayTimeout
from buytown.services.gateways.cashfree import generate_signature
from buytown.services.gateways.phonepe import checksum, encode_payload
from buytown.services.payment_service import PaymentService


@pytest.fixture
def payments(session, gateways, order_service, notifier):
    return PaymentService(session, gateways, orders=order_service, notifier=notifier)


@pytest.fixture
def customer(make_user):
    return make_user()


@pytest.fixture
def product(make_product):
    return make_product(name="Dal 1kg", price="120.00", stock=10)


@pytest.fixture
def order(customer, product, place_order):
    return place_order(customer, (product, 2), payment_method="cashfree")


@pytest.fixture
def cashfree_payment(payments, order, http):
    http.respond({"cf_order_id": 99, "payment_session_id": "session_abc", "order_status": "ACTIVE"})
    created = payments.create_gateway_order(order.id, "cashfree", customer_id=order.user_id)
    return created["gatewayOrderId"]


def cashfree_webhook(gateway_order_id, order_status="PAID", payment_status="SUCCESS", secret="cf-secret"):
    payload = {
        "orderId": gateway_order_id,
        "orderAmount": "240.00",
        "referenceId": "ref_123",
        "orderStatus": order_status,
        "paymentStatus": payment_status,
    }
    payload["signature"] = generate_signature(payload, secret)
    return payload


def held(session, product):
    session.refresh(product)
    return product.held_quantity


# -------------------------
# signatures
# -------------------------

def test_phonepe_checksum():
    digest = hashlib.sha256(b"payload/pg/v1/paysalt").hexdigest()

    assert checksum("payload/pg/v1/pay", "salt", "1") == f"{digest}###1"


def test_cashfree_signature_skips_empty_values_and_sorts_keys():
    data = {"orderId": "CF_1", "orderAmount": "10.00", "referenceId": ""}
    expected = base64.b64encode(
        hmac.new(b"secret", b"orderAmount10.00orderIdCF_1", hashlib.sha256).digest()
    ).decode()

    assert generate_signature(data, "secret") == expected


# -------------------------
# create
# -------------------------

def test_create_cashfree_order(session, payments, order, http):
    http.respond({"cf_order_id": 99, "payment_session_id": "session_abc"})

    result = payments.create_gateway_order(order.id, "cashfree", customer_id=order.user_id)

    assert result["gatewayOrderId"].startswith(f"CF_{order.id}_")
    assert "session_abc" in result["paymentUrl"]
    payment = session.exec(select(Payment)).one()
    assert payment.status == GatewayPaymentStatus.created.value
    assert payment.amount == Decimal("240.00")
    assert session.exec(select(PaymentLog)).one().source == "create"

    call = http.calls[0]
    assert call["json"]["order_amount"] == 240.0
    assert call["json"]["order_meta"]["return_url"] == f"https://shop.test/orders/{order.id}"
    assert call["headers"]["x-client-id"] == "cf-app"
    assert call["timeout"] == 15.0


def test_create_phonepe_order_signs_the_request(session, payments, order, http):
    http.respond({"success": True, "data": {"instrumentResponse": {"redirectInfo": {"url": "https://pay.test/x"}}}})

    result = payments.create_gateway_order(order.id, "phonepe")

    assert result["paymentUrl"] == "https://pay.test/x"
    assert result["gatewayOrderId"].startswith(order.order_number)
    call = http.calls[0]
    encoded = call["json"]["request"]
    assert call["headers"]["X-VERIFY"] == checksum(encoded + "/pg/v1/pay", "phonepe-salt", "1")
    decoded = base64.b64decode(encoded).decode()
    assert '"amount":24000' in decoded


def test_create_timeout_keeps_the_gateway_order_pending(session, payments, order, http, notifier):
    http.fail(requests.Timeout("read timed out"))

    with pytest.raises(GatewayTimeout):
        payments.create_gateway_order(order.id, "cashfree")

    payment = session.exec(select(Payment)).one()
    assert payment.status == GatewayPaymentStatus.pending.value
    assert payment.gateway_order_id == http.calls[0]["json"]["order_id"]
    assert payment.gateway_order_id.startswith(f"CF_{order.id}_")

    # the customer paid on the order the gateway did create
    result = payments.handle_webhook("cashfree", cashfree_webhook(payment.gateway_order_id))

    assert result == {"success": True, "status": "paid", "applied": True}
    session.refresh(order)
    assert order.payment_status == PaymentStatus.paid.value
    assert notifier.names()[-1] == "payment_success"


def test_phonepe_create_timeout_keeps_the_transaction_id(session, payments, order, http):
    http.fail(requests.Timeout("connect timed out"))

    with pytest.raises(GatewayTimeout):
        payments.create_gateway_order(order.id, "phonepe")

    payment = session.exec(select(Payment)).one()
    sent = json.loads(base64.b64decode(http.calls[0]["json"]["request"]))
    assert payment.gateway_order_id == sent["merchantTransactionId"]
    assert payment.status == GatewayPaymentStatus.pending.value
    session.refresh(order)
    assert order.status == OrderStatus.awaiting_confirmation.value


def test_gateway_failure_is_recorded(session, payments, order, http):
    http.respond({"message": "bad request"}, status_code=400)

    with pytest.raises(GatewayError):
        payments.create_gateway_order(order.id, "cashfree")

    payment = session.exec(select(Payment)).one()
    assert payment.status == GatewayPaymentStatus.failed.value
    assert "bad request" in payment.error_message


def test_cannot_pay_someone_elses_order(payments, order, make_user):
    with pytest.raises(OrderNotFound):
        payments.create_gateway_order(order.id, "cashfree", customer_id=make_user().id)


def test_cannot_pay_a_closed_order(payments, order, order_service):
    order_service.reject(order.id, "no stock")

    with pytest.raises(InvalidState):
        payments.create_gateway_order(order.id, "cashfree")


def test_unknown_gateway(payments, order):
    with pytest.raises(ValidationError):
        payments.create_gateway_order(order.id, "paypal")


# -------------------------
# webhooks
# -------------------------

def test_paid_webhook_marks_order_paid_but_not_approved(session, payments, order, cashfree_payment, notifier):
    result = payments.handle_webhook("cashfree", cashfree_webhook(cashfree_payment))

    assert result == {"success": True, "status": "paid", "applied": True}
    session.refresh(order)
    assert order.payment_status == PaymentStatus.paid.value
    assert order.status == OrderStatus.awaiting_confirmation.value
    payment = session.exec(select(Payment)).one()
    assert payment.txn_id == "ref_123"
    assert notifier.names()[-1] == "payment_success"


def test_replayed_webhook_is_a_no_op(session, payments, order, cashfree_payment, notifier):
    payload = cashfree_webhook(cashfree_payment)
    payments.handle_webhook("cashfree", payload)
    logs_before = len(session.exec(select(PaymentLog)).all())

    result = payments.handle_webhook("cashfree", payload)

    assert result["applied"] is False
    assert len(session.exec(select(PaymentLog)).all()) == logs_before
    assert notifier.names().count("payment_success") == 1


def test_tampered_webhook_is_rejected(session, payments, order, cashfree_payment):
    payload = cashfree_webhook(cashfree_payment)
    payload["orderAmount"] = "1.00"

    with pytest.raises(InvalidSignature):
        payments.handle_webhook("cashfree", payload)

    assert session.exec(select(Payment)).one().status == GatewayPaymentStatus.created.value


def test_paid_order_without_successful_payment_stays_pending(session, payments, order, cashfree_payment):
    payload = {"orderId": cashfree_payment, "orderAmount": "240.00", "orderStatus": "PAID"}
    payload["signature"] = generate_signature(payload, "cf-secret")

    result = payments.handle_webhook("cashfree", payload)

    assert result["applied"] is True
    assert result["status"] == GatewayPaymentStatus.pending.value
    session.refresh(order)
    assert order.payment_status == PaymentStatus.pending.value


def test_webhook_signed_with_wrong_secret(payments, cashfree_payment):
    with pytest.raises(InvalidSignature):
        payments.handle_webhook("cashfree", cashfree_webhook(cashfree_payment, secret="other"))


def test_failed_payment_cancels_and_releases(session, payments, order, product, cashfree_payment, notifier):
    assert held(session, product) == 2

    payments.handle_webhook("cashfree", cashfree_webhook(cashfree_payment, "FAILED", "FAILED"))

    session.refresh(order)
    assert order.status == OrderStatus.cancelled.value
    assert order.payment_status == PaymentStatus.failed.value
    assert held(session, product) == 0
    assert notifier.names()[-1] == "payment_failed"


def test_failure_after_success_is_ignored(session, payments, order, product, cashfree_payment):
    payments.handle_webhook("cashfree", cashfree_webhook(cashfree_payment))

    result = payments.handle_webhook("cashfree", cashfree_webhook(cashfree_payment, "FAILED", "FAILED"))

    assert result["applied"] is False
    session.refresh(order)
    assert order.payment_status == PaymentStatus.paid.value
    assert held(session, product) == 2


def test_failed_payment_on_completed_order_keeps_the_order(session, payments, order, order_service, product, cashfree_payment):
    order_service.mark_completed(order.id)

    payments.handle_webhook("cashfree", cashfree_webhook(cashfree_payment, "FAILED", "FAILED"))

    session.refresh(order)
    assert order.status == OrderStatus.completed.value
    assert order.payment_status == PaymentStatus.failed.value
    session.refresh(product)
    assert (product.stock, product.held_quantity) == (8, 0)


def test_webhook_for_unknown_payment(payments):
    with pytest.raises(PaymentNotFound):
        payments.handle_webhook("cashfree", cashfree_webhook("CF_missing"))


def test_phonepe_callback(session, payments, order, http):
    http.respond({"success": True, "data": {"instrumentResponse": {"redirectInfo": {"url": "https://pay.test/x"}}}})
    transaction_id = payments.create_gateway_order(order.id, "phonepe")["gatewayOrderId"]

    encoded = encode_payload({
        "success": True,
        "code": "PAYMENT_SUCCESS",
        "data": {
            "merchantTransactionId": transaction_id,
            "transactionId": "T2501",
            "amount": 24000,
            "state": "COMPLETED",
        },
    })
    payload = {"response": encoded}
    headers = {"X-VERIFY": checksum(encoded, "phonepe-salt", "1")}

    result = payments.handle_webhook("phonepe", payload, headers)

    assert result["status"] == "paid"
    session.refresh(order)
    assert order.payment_status == PaymentStatus.paid.value


def test_phonepe_callback_with_bad_checksum(payments):
    encoded = encode_payload({"data": {"merchantTransactionId": "x", "state": "COMPLETED"}})

    with pytest.raises(InvalidSignature):
        payments.handle_webhook("phonepe", {"response": encoded, "checksum": "deadbeef###1"})
    with pytest.raises(InvalidSignature):
        payments.handle_webhook("phonepe", {"response": encoded, "checksum": "d\u00e9adbeef###1"})


# -------------------------
# verify
# -------------------------

def test_verify_polls_the_gateway(session, payments, order, cashfree_payment, http):
    http.respond({"order_status": "PAID", "cf_order_id": 99, "order_amount": 240.0})

    result = payments.verify_payment(cashfree_payment)

    assert result["status"] == "paid"
    assert http.calls[-1]["method"] == "GET"
    session.refresh(order)
    assert order.payment_status == PaymentStatus.paid.value


def test_verify_timeout_leaves_payment_pending(session, payments, order, product, cashfree_payment, http):
    http.fail(requests.Timeout("read timed out"))

    with pytest.raises(GatewayTimeout):
        payments.verify_payment(cashfree_payment)

    payment = session.exec(select(Payment)).one()
    assert payment.status == GatewayPaymentStatus.pending.value
    session.refresh(order)
    assert order.status == OrderStatus.awaiting_confirmation.value
    assert held(session, product) == 2


def test_verify_of_final_payment_does_not_call_gateway(payments, cashfree_payment, http):
    payments.handle_webhook("cashfree", cashfree_webhook(cashfree_payment))
    calls = len(http.calls)

    assert payments.verify_payment(cashfree_payment)["applied"] is False
    assert len(http.calls) == calls


# -------------------------
# refunds
# -------------------------

def test_full_refund(session, payments, order, cashfree_payment, http, notifier):
    payments.handle_webhook("cashfree", cashfree_webhook(cashfree_payment))
    http.respond({"refund_id": "REF_1", "refund_status": "SUCCESS"})

    refund = payments.refund(order.id, reason="Damaged")

    assert refund.amount == Decimal("240.00")
    assert refund.status == "processed"
    session.refresh(order)
    assert order.payment_status == PaymentStatus.refunded.value
    assert notifier.names()[-1] == "refund_processed"


def test_partial_refunds_up_to_the_paid_amount(session, payments, order, cashfree_payment, http):
    payments.handle_webhook("cashfree", cashfree_webhook(cashfree_payment))
    http.respond({"refund_id": "REF_1", "refund_status": "PENDING"})

    payments.refund(order.id, amount=Decimal("100.00"))

    session.refresh(order)
    assert order.payment_status == PaymentStatus.paid.value
    with pytest.raises(ValidationError):
        payments.refund(order.id, amount=Decimal("150.00"))
    assert len(session.exec(select(PaymentRefund)).all()) == 1


def test_refund_needs_a_paid_payment(payments, order, cashfree_payment):
    with pytest.raises(InvalidState):
        payments.refund(order.id)


def test_payment_details(session, payments, order, cashfree_payment):
    details = payments.payment_details(order.id)

    assert details["payment"].gateway_order_id == cashfree_payment
    assert details["refunds"] == []
