import os
import re

# must be set before buytown.config is imported
os.environ.setdefault("ENV", "test")
os.environ.setdefault("DATABASE_URL_OVERRIDE", "sqlite://")

from decimal import Decimal

import pytest
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

import buytown.models  # noqa: F401
from buytown.config import Settings
from buytown.models.product import Product
from buytown.models.user import User
from buytown.models.vehicle import UserVehicle, Vehicle
from buytown.services.cart_service import CartService
from buytown.services.checkout_service import CheckoutRequest, CheckoutService
from buytown.services.gateways.cashfree import CashfreeGateway
from buytown.services.gateways.phonepe import PhonePeGateway
from buytown.services.order_service import OrderService

ORDER_NUMBER = re.compile(r"^BYT-\d{2}-\d{2}-\d{9}$")

ADDRESS = {
    "name": "Asha Rao",
    "phone": "9876543210",
    "address": "12 MG Road",
    "city": "Bengaluru",
    "state": "KA",
    "zip_code": "560001",
}


class RecordingNotifier:
    def __init__(self):
        self.events = []

    def notify(self, event, order, actor="system", **extra):
        self.events.append((event, order.id, actor))

    def names(self):
        return [e[0].value for e in self.events]


class FakeResponse:
    def __init__(self, payload=None, status_code=200):
        self._payload = payload
        self.status_code = status_code

    @property
    def text(self):
        return str(self._payload)

    def json(self):
        if self._payload is None:
            raise ValueError("no json body")
        return self._payload


class FakeHttp:
    """Stands in for the ``requests`` module inside the gateways."""

    def __init__(self):
        self.queue = []
        self.calls = []

    def respond(self, payload=None, status_code=200):
        self.queue.append(FakeResponse(payload, status_code))

    def fail(self, error):
        self.queue.append(error)

    def request(self, method, url, timeout=None, **kwargs):
        self.calls.append({"method": method, "url": url, "timeout": timeout, **kwargs})
        item = self.queue.pop(0)
        if isinstance(item, Exception):
            raise item
        return item


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        env="test",
        database_url_override="sqlite://",
        default_tax_rate=Decimal("0"),
        brevo_api_key=None,
        phonepe_merchant_id="MERCHANTUAT",
        phonepe_salt_key="phonepe-salt",
        phonepe_salt_index="1",
        phonepe_base_url="https://phonepe.test/apis/hermes",
        phonepe_callback_url="https://shop.test/payments/phonepe/webhook",
        cashfree_app_id="cf-app",
        cashfree_secret_key="cf-secret",
        cashfree_return_url="https://shop.test/orders/{order_id}",
    )


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def http():
    return FakeHttp()


@pytest.fixture
def gateways(settings, http):
    return {
        "phonepe": PhonePeGateway.from_settings(settings, http=http),
        "cashfree": CashfreeGateway.from_settings(settings, http=http),
    }


# -------------------------
# factories
# -------------------------

@pytest.fixture
def make_user(session):
    counter = {"n": 0}

    def _make(role="customer", first_name=None, can_login=True):
        counter["n"] += 1
        user = User(
            first_name=first_name or f"{role.title()}{counter['n']}",
            last_name="Test",
            email=f"{role}{counter['n']}@example.com",
            role=role,
            can_login=can_login,
        )
        session.add(user)
        session.commit()
        session.refresh(user)
        return user

    return _make


@pytest.fixture
def make_product(session):
    def _make(name="Rice 5kg", price="100.00", stock=10, held=0, status=1, selling_price=None):
        product = Product(
            name=name,
            price=Decimal(price),
            selling_price=Decimal(selling_price) if selling_price else None,
            stock=stock,
            held_quantity=held,
            status=status,
        )
        session.add(product)
        session.commit()
        session.refresh(product)
        return product

    return _make


@pytest.fixture
def make_vehicle(session):
    def _make(vehicle_type="Two Wheeler", base="40.00", max_km=10, per_km="10.00", active=True):
        vehicle = Vehicle(
            vehicle_type=vehicle_type,
            base_charge=Decimal(base),
            max_distance_km=max_km,
            additional_charge_per_km=Decimal(per_km),
            is_active=active,
        )
        session.add(vehicle)
        session.commit()
        session.refresh(vehicle)
        return vehicle

    return _make


@pytest.fixture
def make_delivery_person(session, make_user):
    def _make(vehicle=None):
        person = make_user(role="delivery_person")
        if vehicle is not None:
            session.add(UserVehicle(user_id=person.id, vehicle_id=vehicle.id, vehicle_number="KA01AB1234"))
            session.commit()
        return person

    return _make


@pytest.fixture
def fill_cart(session):
    def _fill(user, *lines):
        cart = CartService(session)
        for product, qty in lines:
            cart.add_item(user.id, product.id, qty)
        return cart

    return _fill


@pytest.fixture
def checkout_service(session, settings, notifier):
    return CheckoutService(session, settings, notifier=notifier)


@pytest.fixture
def order_service(session, settings, notifier):
    return OrderService(session, settings, notifier=notifier)


@pytest.fixture
def place_order(checkout_service, fill_cart):
    def _place(user, *lines, **kwargs):
        fill_cart(user, *lines)
        request = CheckoutRequest(shipping_address=dict(ADDRESS), **kwargs)
        return checkout_service.checkout(user.id, request)

    return _place
