import pytest

from buytown.constants.order_status import ProductStatus
from buytown.exceptions import InsufficientStock, ProductNotFound, ValidationError
from buytown.services.inventory_service import InventoryLedger


@pytest.fixture
def ledger(session):
    return InventoryLedger(session)


def test_reserve_holds_without_touching_stock(session, ledger, make_product):
    product = make_product(stock=10)

    ledger.reserve(product.id, 3)
    session.commit()

    session.refresh(product)
    assert product.stock == 10
    assert product.held_quantity == 3
    assert ledger.availability(product.id) == 7


def test_reserve_beyond_availability_is_rejected(session, ledger, make_product):
    product = make_product(stock=5, held=4)

    with pytest.raises(InsufficientStock) as exc:
        ledger.reserve(product.id, 2)

    assert exc.value.available == 1
    assert exc.value.requested == 2
    assert "Rice 5kg" in exc.value.message
    session.refresh(product)
    assert product.held_quantity == 4


def test_reserve_exactly_the_remaining_units(session, ledger, make_product):
    product = make_product(stock=5, held=2)

    ledger.reserve(product.id, 3)

    assert ledger.availability(product.id) == 0


def test_release_returns_units_and_clamps_at_zero(session, ledger, make_product):
    product = make_product(stock=10, held=2)

    ledger.release(product.id, 1)
    session.refresh(product)
    assert product.held_quantity == 1

    ledger.release(product.id, 5)
    session.refresh(product)
    assert product.held_quantity == 0
    assert product.stock == 10


def test_commit_consumes_the_reservation(session, ledger, make_product):
    product = make_product(stock=10, held=4)

    ledger.commit(product.id, 4)
    session.commit()

    session.refresh(product)
    assert product.stock == 6
    assert product.held_quantity == 0
    assert product.status == ProductStatus.active.value


def test_commit_of_last_units_marks_out_of_stock(session, ledger, make_product):
    product = make_product(stock=2, held=2)

    ledger.commit(product.id, 2)

    session.refresh(product)
    assert product.stock == 0
    assert product.status == ProductStatus.out_of_stock.value


def test_commit_more_than_stock_fails(session, ledger, make_product):
    product = make_product(stock=1, held=1)

    with pytest.raises(InsufficientStock):
        ledger.commit(product.id, 2)


def test_discontinued_status_survives_mutations(session, ledger, make_product):
    product = make_product(stock=3, status=ProductStatus.discontinued.value)

    ledger.reserve(product.id, 3)
    ledger.commit(product.id, 3)

    session.refresh(product)
    assert product.stock == 0
    assert product.status == ProductStatus.discontinued.value


def test_out_of_stock_product_becomes_active_again(session, ledger, make_product):
    product = make_product(stock=0, status=ProductStatus.out_of_stock.value)
    product.stock = 5
    session.add(product)
    session.commit()

    ledger.reserve(product.id, 1)

    session.refresh(product)
    assert product.status == ProductStatus.active.value


@pytest.mark.parametrize("qty", [0, -1])
def test_non_positive_quantities_are_invalid(ledger, make_product, qty):
    product = make_product()

    with pytest.raises(ValidationError):
        ledger.reserve(product.id, qty)
    with pytest.raises(ValidationError):
        ledger.release(product.id, qty)
    with pytest.raises(ValidationError):
        ledger.commit(product.id, qty)


def test_unknown_product(ledger):
    with pytest.raises(ProductNotFound):
        ledger.reserve(999, 1)
    with pytest.raises(ProductNotFound):
        ledger.release(999, 1)


def test_lock_returns_rows_in_id_order(ledger, make_product):
    first = make_product(name="A")
    second = make_product(name="B")

    rows = ledger.lock([second.id, first.id, second.id])

    assert [p.id for p in rows] == [first.id, second.id]
    assert ledger.lock([]) == []
