from decimal import Decimal

import pytest

from buytown.constants.order_status import OrderStatus, PaymentStatus
from buytown.exceptions import (
    InvalidDeliveryPerson,
    InvalidState,
    OrderNotFound,
    Unauthorized,
    ValidationError,
)
from buytown.services.checkout_service import CheckoutRequest, CheckoutService
from buytown.services.order_event_service import get_order_timeline

from tests.conftest import ADDRESS


@pytest.fixture
def customer(make_user):
    return make_user()


@pytest.fixture
def admin(make_user):
    return make_user(role="admin")


@pytest.fixture
def bike(make_vehicle):
    return make_vehicle(vehicle_type="Two Wheeler", base="40.00", max_km=10, per_km="10.00")


@pytest.fixture
def product(make_product):
    return make_product(name="Atta 10kg", price="100.00", stock=10)


@pytest.fixture
def order(customer, product, place_order):
    # subtotal 200, no tax
    return place_order(customer, (product, 2))


def stock_of(session, product):
    session.refresh(product)
    return product.stock, product.held_quantity


# -------------------------
# approve
# -------------------------

def test_approve_prices_delivery_and_assigns(session, order, order_service, bike, make_delivery_person, admin, notifier):
    person = make_delivery_person(bike)

    approved = order_service.approve(
        order.id, vehicle_id=bike.id, distance_km=12, delivery_person_id=person.id, approved_by=admin.id
    )

    assert approved.status == OrderStatus.approved.value
    assert approved.delivery_charges == Decimal("60.00")
    assert approved.total_amount == Decimal("260.00")
    assert approved.delivery_vehicle == "Two Wheeler"
    assert approved.delivery_distance == 12.0
    assert approved.delivery_person_id == person.id
    assert approved.delivery_driver == person.full_name
    assert approved.status_updated_by == admin.id
    assert notifier.names()[-1] == "order_approved"


def test_approve_includes_tax_in_total(session, settings, customer, product, fill_cart, order_service, bike):
    settings.default_tax_rate = Decimal("0.05")
    fill_cart(customer, (product, 2))
    order = CheckoutService(session, settings).checkout(customer.id, CheckoutRequest(shipping_address=ADDRESS))

    approved = order_service.approve(order.id, vehicle_id=bike.id, distance_km=5)

    # 200 + 10 tax + 40 base charge
    assert approved.total_amount == Decimal("250.00")


def test_approve_twice_is_rejected(order, order_service, bike):
    order_service.approve(order.id, vehicle_id=bike.id, distance_km=3)

    with pytest.raises(InvalidState):
        order_service.approve(order.id, vehicle_id=bike.id, distance_km=3)


def test_approve_with_non_delivery_person_changes_nothing(session, order, order_service, bike, make_user):
    stranger = make_user()

    with pytest.raises(InvalidDeliveryPerson):
        order_service.approve(order.id, vehicle_id=bike.id, distance_km=3, delivery_person_id=stranger.id)

    session.refresh(order)
    assert order.status == OrderStatus.awaiting_confirmation.value
    assert order.delivery_charges is None


def test_approve_with_bad_distance(session, order, order_service, bike):
    with pytest.raises(ValidationError):
        order_service.approve(order.id, vehicle_id=bike.id, distance_km=0)

    session.refresh(order)
    assert order.status == OrderStatus.awaiting_confirmation.value


def test_unknown_order(order_service):
    with pytest.raises(OrderNotFound):
        order_service.approve(404, vehicle_id=1, distance_km=1)


# -------------------------
# complete
# -------------------------

def test_delivery_person_completion_consumes_stock(session, order, order_service, product, bike, make_delivery_person):
    person = make_delivery_person(bike)
    order_service.approve(order.id, vehicle_id=bike.id, distance_km=3, delivery_person_id=person.id)
    assert stock_of(session, product) == (10, 2)

    completed = order_service.complete_by_delivery_person(order.id, person.id)

    assert completed.status == OrderStatus.completed.value
    assert stock_of(session, product) == (8, 0)


def test_only_the_assigned_delivery_person_can_complete(session, order, order_service, product, bike, make_delivery_person):
    person = make_delivery_person(bike)
    other = make_delivery_person(bike)
    order_service.approve(order.id, vehicle_id=bike.id, distance_km=3, delivery_person_id=person.id)

    with pytest.raises(Unauthorized):
        order_service.complete_by_delivery_person(order.id, other.id)

    assert stock_of(session, product) == (10, 2)


def test_delivery_person_cannot_complete_before_approval(order, order_service, bike, make_delivery_person):
    person = make_delivery_person(bike)
    order_service.assign_delivery_person(order.id, person.id, distance_km=4)

    with pytest.raises(InvalidState):
        order_service.complete_by_delivery_person(order.id, person.id)


def test_admin_can_complete_straight_from_awaiting(session, order, order_service, product, admin):
    completed = order_service.mark_completed(order.id, completed_by=admin.id)

    assert completed.status == OrderStatus.completed.value
    assert stock_of(session, product) == (8, 0)


def test_completion_happens_once(session, order, order_service, product):
    order_service.mark_completed(order.id)

    with pytest.raises(InvalidState):
        order_service.mark_completed(order.id)

    assert stock_of(session, product) == (8, 0)


# -------------------------
# reject
# -------------------------

def test_reject_releases_held_stock(session, order, order_service, product, admin, notifier):
    rejected = order_service.reject(order.id, "Out of delivery area", rejected_by=admin.id)

    assert rejected.status == OrderStatus.rejected.value
    assert rejected.rejection_reason == "Out of delivery area"
    assert stock_of(session, product) == (10, 0)
    assert notifier.events[-1][2] == "admin"

    with pytest.raises(InvalidState):
        order_service.reject(order.id, "again", rejected_by=admin.id)
    assert stock_of(session, product) == (10, 0)


def test_delivery_person_rejection_releases(session, order, order_service, product, bike, make_delivery_person):
    person = make_delivery_person(bike)
    order_service.approve(order.id, vehicle_id=bike.id, distance_km=3, delivery_person_id=person.id)

    rejected = order_service.reject_by_delivery_person(order.id, person.id, "Customer unreachable")

    assert rejected.status == OrderStatus.rejected.value
    assert stock_of(session, product) == (10, 0)


def test_completed_order_cannot_be_rejected(order, order_service):
    order_service.mark_completed(order.id)

    with pytest.raises(InvalidState):
        order_service.reject(order.id, "too late")


# -------------------------
# customer
# -------------------------

def test_customer_cancel_releases(session, order, order_service, product, customer):
    cancelled = order_service.cancel_by_customer(order.id, customer.id, "Ordered by mistake")

    assert cancelled.status == OrderStatus.cancelled.value
    assert cancelled.payment_status == PaymentStatus.cancelled.value
    assert cancelled.cancellation_reason == "Ordered by mistake"
    assert stock_of(session, product) == (10, 0)


def test_customer_cannot_cancel_someone_elses_order(session, order, order_service, product, make_user):
    with pytest.raises(Unauthorized):
        order_service.cancel_by_customer(order.id, make_user().id)

    assert stock_of(session, product) == (10, 2)


def test_customer_cannot_cancel_completed_order(order, order_service, customer):
    order_service.mark_completed(order.id)

    with pytest.raises(InvalidState):
        order_service.cancel_by_customer(order.id, customer.id)


def test_received_only_after_completion(order, order_service, customer, notifier):
    with pytest.raises(InvalidState):
        order_service.mark_received_by_customer(order.id, customer.id)

    order_service.mark_completed(order.id)
    received = order_service.mark_received_by_customer(order.id, customer.id)

    assert received.status == OrderStatus.received.value
    assert notifier.names()[-1] == "order_received"

    with pytest.raises(InvalidState):
        order_service.mark_received_by_customer(order.id, customer.id)


def test_legacy_delivered_orders_can_be_received(session, order, order_service, customer):
    order.status = OrderStatus.delivered.value
    session.add(order)
    session.commit()

    assert order_service.mark_received_by_customer(order.id, customer.id).status == OrderStatus.received.value


# -------------------------
# assignment
# -------------------------

def test_assign_delivery_person_reprices_with_their_vehicle(order, order_service, make_vehicle, make_delivery_person, bike):
    order_service.approve(order.id, vehicle_id=bike.id, distance_km=3)
    truck = make_vehicle(vehicle_type="Tata Ace", base="150.00", max_km=5, per_km="20.00")
    person = make_delivery_person(truck)

    updated = order_service.assign_delivery_person(order.id, person.id, distance_km=8)

    assert updated.status == OrderStatus.approved.value
    assert updated.delivery_vehicle == "Tata Ace"
    assert updated.delivery_charges == Decimal("210.00")
    assert updated.total_amount == Decimal("410.00")
    assert updated.delivery_person_id == person.id


def test_assign_requires_a_vehicle(order, order_service, make_delivery_person):
    person = make_delivery_person()

    with pytest.raises(ValidationError):
        order_service.assign_delivery_person(order.id, person.id, distance_km=3)


def test_assign_on_closed_order(order, order_service, make_delivery_person, bike):
    order_service.reject(order.id, "no")

    with pytest.raises(InvalidState):
        order_service.assign_delivery_person(order.id, make_delivery_person(bike).id, distance_km=3)


def test_timeline_records_every_transition(session, order, order_service, customer):
    order_service.mark_completed(order.id)
    order_service.mark_received_by_customer(order.id, customer.id)

    events = [e.event_type for e in get_order_timeline(session, order.id)]

    assert events == ["awaiting_confirmation", "completed", "received"]


def test_timeline_keeps_who_acted_and_the_resulting_status(session, order, order_service, admin):
    order_service.reject(order.id, "Out of delivery area", rejected_by=admin.id)

    placed, rejected = get_order_timeline(session, order.id)

    assert (placed.order_status, placed.actor_id) == (OrderStatus.awaiting_confirmation.value, order.user_id)
    assert (rejected.order_status, rejected.actor_id) == (OrderStatus.rejected.value, admin.id)
    assert rejected.created_by == "admin"
    assert rejected.meta == {"reason": "Out of delivery area"}
