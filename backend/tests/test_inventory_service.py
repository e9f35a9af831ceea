import pytest

from fieldledger.errors import InsufficientStock, NotFound
from fieldledger.models import CustodyEvent
from fieldledger.services import inventory_service
from fieldledger.services.concurrency import run_atomic


def test_deduct_reduces_stock_and_logs_event(db_session, product):
    updated = run_atomic(lambda: inventory_service.deduct(product.id, 3, employee_id=None))

    assert updated.stock_quantity == 2
    assert inventory_service.get_stock(product.id) == 2

    event = db_session.query(CustodyEvent).filter_by(event_type="stock.deducted").one()
    assert event.product_id == product.id
    assert event.quantity_delta == -3


def test_deduct_more_than_available_leaves_stock_untouched(db_session, product):
    with pytest.raises(InsufficientStock) as exc_info:
        run_atomic(lambda: inventory_service.deduct(product.id, 6))

    assert exc_info.value.details["available_quantity"] == 5
    assert exc_info.value.details["requested_quantity"] == 6
    assert inventory_service.get_stock(product.id) == 5
    assert db_session.query(CustodyEvent).filter_by(event_type="stock.deducted").count() == 0


def test_deduct_exactly_all_units_reaches_zero(db_session, product):
    run_atomic(lambda: inventory_service.deduct(product.id, 5))
    assert inventory_service.get_stock(product.id) == 0

    with pytest.raises(InsufficientStock):
        run_atomic(lambda: inventory_service.deduct(product.id, 1))


def test_deduct_unknown_product(db_session):
    with pytest.raises(NotFound):
        run_atomic(lambda: inventory_service.deduct(999, 1))


def test_restock_increments_and_bumps_version(db_session, product):
    before = product.version_id
    updated = run_atomic(lambda: inventory_service.restock(product.id, 4, note="Returned"))

    assert updated.stock_quantity == 9
    assert updated.version_id > before


def test_restock_unknown_product(db_session):
    with pytest.raises(NotFound):
        run_atomic(lambda: inventory_service.restock(999, 1))


def test_non_positive_quantity_is_rejected(db_session, product):
    with pytest.raises(ValueError):
        inventory_service.deduct(product.id, 0)
    with pytest.raises(ValueError):
        inventory_service.restock(product.id, -1)
