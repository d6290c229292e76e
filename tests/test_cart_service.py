from decimal import Decimal

import pytest

from buytown.constants.order_status import CartStatus, ProductStatus
from buytown.exceptions import InsufficientStock, NotFoundError, ValidationError
from buytown.models.product import ProductVariation
from buytown.models.tax import TaxConfiguration
from buytown.services.cart_service import CartService
from buytown.services.role_service import RoleService
from buytown.services.tax_service import TaxService


@pytest.fixture
def cart(session):
    return CartService(session)


def test_adding_the_same_product_merges_lines(cart, make_user, make_product):
    user = make_user()
    product = make_product(price="45.50", stock=10)

    cart.add_item(user.id, product.id, 2)
    item = cart.add_item(user.id, product.id, 3)

    assert item.quantity == 5
    assert item.total_price == Decimal("227.50")
    assert len(cart.get_items(user.id)) == 1
    assert cart.get_cart(user.id).status == CartStatus.pending.value


def test_price_snapshot_prefers_variation_then_selling_price(session, cart, make_user, make_product):
    user = make_user()
    product = make_product(price="100.00", selling_price="90.00")
    variation = ProductVariation(product_id=product.id, name="Family pack", price=Decimal("250.00"))
    session.add(variation)
    session.commit()

    plain = cart.add_item(user.id, product.id, 1)
    pack = cart.add_item(user.id, product.id, 1, variation_id=variation.id)

    assert plain.price == Decimal("90.00")
    assert pack.price == Decimal("250.00")
    assert len(cart.get_items(user.id)) == 2


def test_availability_counts_held_units(cart, make_user, make_product):
    user = make_user()
    product = make_product(stock=5, held=4)

    with pytest.raises(InsufficientStock):
        cart.add_item(user.id, product.id, 2)


def test_update_rechecks_availability(cart, make_user, make_product):
    user = make_user()
    product = make_product(stock=3)
    item = cart.add_item(user.id, product.id, 1)

    with pytest.raises(InsufficientStock):
        cart.update_item(user.id, item.id, 4)
    with pytest.raises(ValidationError):
        cart.update_item(user.id, item.id, 0)

    assert cart.update_item(user.id, item.id, 3).quantity == 3


def test_discontinued_products_cannot_be_added(cart, make_user, make_product):
    product = make_product(status=ProductStatus.discontinued.value)

    with pytest.raises(ValidationError):
        cart.add_item(make_user().id, product.id, 1)


def test_items_belong_to_their_owner(cart, make_user, make_product):
    owner, other = make_user(), make_user()
    item = cart.add_item(owner.id, make_product().id, 1)

    with pytest.raises(NotFoundError):
        cart.remove_item(other.id, item.id)


def test_remove_last_item_empties_cart(cart, make_user, make_product):
    user = make_user()
    item = cart.add_item(user.id, make_product().id, 1)

    cart.remove_item(user.id, item.id)

    assert cart.get_items(user.id) == []
    assert cart.get_cart(user.id).status == CartStatus.empty.value


def test_summary(cart, make_user, make_product):
    user = make_user()
    cart.add_item(user.id, make_product(price="100.00").id, 2)
    cart.add_item(user.id, make_product(price="33.33").id, 1)

    summary = cart.get_summary(user.id, Decimal("0.18"))

    assert summary["item_count"] == 3
    assert summary["subtotal"] == Decimal("233.33")
    assert summary["tax_amount"] == Decimal("42.00")
    assert summary["total_amount"] == Decimal("275.33")


def test_clear(cart, make_user, make_product):
    user = make_user()
    cart.add_item(user.id, make_product().id, 1)

    cart.clear(user.id)

    assert cart.get_items(user.id) == []
    assert cart.get_cart(user.id).status == CartStatus.empty.value


def test_tax_rate_is_a_fraction_of_the_latest_active_config(session):
    tax = TaxService(session, default_rate=Decimal("0.05"))
    assert tax.active_rate() == Decimal("0.05")

    session.add(TaxConfiguration(tax_name="GST", tax_rate=Decimal("12.00")))
    session.add(TaxConfiguration(tax_name="Old GST", tax_rate=Decimal("28.00"), is_active=False))
    session.commit()

    assert tax.active_rate() == Decimal("0.12")


def test_roles(session, make_user):
    roles = RoleService(session)
    person = make_user(role="delivery_person")
    blocked = make_user(role="delivery_person", can_login=False)

    assert roles.has_role(person.id, "delivery_person")
    assert not roles.has_role(blocked.id, "delivery_person")
    assert not roles.has_role(9999, "admin")
    assert roles.role_of(None) == "system"
    assert roles.role_of(person.id) == "delivery_person"
