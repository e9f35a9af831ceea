import pytest

from fieldledger.errors import ConcurrencyConflict, ConflictError, ValidationError
from fieldledger.models import CustodyEvent, Employee, Product
from fieldledger.services import employees_service, products_service
from fieldledger.validation import validate_payload


def test_create_product_records_opening_stock(db_session, make_product):
    product = make_product(title="Filter Cartridge", stock=12)

    assert product.stock_quantity == 12
    received = db_session.query(CustodyEvent).filter_by(
        event_type="stock.received", product_id=product.id
    ).one()
    assert received.quantity_delta == 12


def test_create_policy_requires_prices(db_session):
    with pytest.raises(ValidationError) as exc_info:
        validate_payload(
            model=Product,
            payload={"title": "No price"},
            policy=products_service.PRODUCT_CREATE_POLICY,
            partial=False,
        )
    assert "base_price_cents" in exc_info.value.message


def test_patch_policy_cannot_touch_stock(db_session, product):
    with pytest.raises(ValidationError) as exc_info:
        validate_payload(
            model=Product,
            payload={"stock_quantity": 100},
            policy=products_service.PRODUCT_PATCH_POLICY,
            partial=True,
        )
    assert "not allowed" in exc_info.value.message


def test_negative_price_rejected(db_session):
    with pytest.raises(ValidationError):
        products_service.create_product({
            "title": "Bad",
            "base_price_cents": -1,
            "lowest_selling_price_cents": 0,
        })


def test_update_with_stale_version_conflicts(db_session, product):
    stale_version = product.version_id
    products_service.receive_stock(product.id, 2)

    with pytest.raises(ConcurrencyConflict):
        products_service.update_product(product.id, {"title": "Renamed"}, expected_version=stale_version)

    db_session.expire_all()
    assert db_session.get(Product, product.id).title == "Product P"


def test_update_with_current_version(db_session, product):
    updated = products_service.update_product(
        product.id, {"title": "Renamed"}, expected_version=product.version_id
    )
    assert updated.title == "Renamed"
    assert updated.stock_quantity == 5


def test_receive_stock(db_session, product):
    updated = products_service.receive_stock(product.id, 10, note="Truck 4")
    assert updated.stock_quantity == 15


def test_stock_quantities_are_capped(db_session, make_product, product):
    with pytest.raises(ValidationError):
        make_product(title="Too Much", stock=10**20)
    with pytest.raises(ValidationError):
        products_service.receive_stock(product.id, 10**20)

    db_session.expire_all()
    assert db_session.get(Product, product.id).stock_quantity == 5
    assert db_session.query(Product).count() == 1


def test_list_products_paginates(db_session, make_product):
    for i in range(3):
        make_product(title=f"Item {i}")

    rows, meta = products_service.list_products(page=1, limit=2)
    assert [p.title for p in rows] == ["Item 0", "Item 1"]
    assert meta == {"page": 1, "limit": 2, "total_count": 3, "total_pages": 2, "has_more": True}


def test_employee_phone_must_be_valid_and_unique(db_session, make_employee):
    with pytest.raises(ValidationError):
        employees_service.create_employee({"full_name": "X", "phone_number": "12345"})

    employees_service.create_employee({"full_name": "A", "phone_number": "+91 98765 43210"})
    with pytest.raises(ConflictError):
        employees_service.create_employee({"full_name": "B", "phone_number": "+91 98765 43210"})
    assert db_session.query(Employee).count() == 1


def test_new_employee_has_zero_holdings(db_session, employee):
    assert employee.holdings_dict() == {"cash_cents": 0, "online_cents": 0, "total_cents": 0}
    assert employee.status == "Active"
