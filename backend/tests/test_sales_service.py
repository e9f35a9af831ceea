import pytest

from conftest import customer, give_custody, holdings_of

from sqlalchemy import BigInteger

from fieldledger.errors import (
    ConcurrencyConflict,
    InsufficientAssignedStock,
    NotFound,
    ProductNotAssigned,
    ValidationError,
)
from fieldledger.extensions import db
from fieldledger.models import CustodyEvent, Employee, Sale, SaleItem
from fieldledger.services import custody_service, sales_service


def _item(product, quantity, price=100):
    return {
        "product_id": product.id,
        "product_title": product.title,
        "quantity": quantity,
        "price_per_unit_cents": price,
    }


def test_sale_consumes_custody_and_credits_cash(db_session, employee, product):
    give_custody(employee.id, product.id, 3)

    sale, holdings = sales_service.create_sale(employee.id, [_item(product, 3)], customer(), "Cash")

    assert sale.total_amount_cents == 300
    assert holdings == {"cash_cents": 300, "online_cents": 0, "total_cents": 300}
    assert custody_service.assignments_map(employee.id) == {}
    assert holdings_of(employee.id)["total_cents"] == 300


def test_sale_online_credits_online_bucket(db_session, employee, product):
    give_custody(employee.id, product.id, 4)

    _, holdings = sales_service.create_sale(employee.id, [_item(product, 1, price=250)], customer(), "Online")

    assert holdings == {"cash_cents": 0, "online_cents": 250, "total_cents": 250}
    assert custody_service.get_assigned_quantity(employee.id, product.id) == 3


def test_oversell_is_rejected_and_changes_nothing(db_session, employee, product):
    give_custody(employee.id, product.id, 3)

    with pytest.raises(InsufficientAssignedStock) as exc_info:
        sales_service.create_sale(employee.id, [_item(product, 5)], customer(), "Cash")

    items = exc_info.value.details["items"]
    assert [i["product_id"] for i in items] == [product.id]
    assert items[0]["product_title"] == "Product P"
    assert custody_service.get_assigned_quantity(employee.id, product.id) == 3
    assert holdings_of(employee.id)["total_cents"] == 0
    assert db_session.query(Sale).count() == 0


def test_every_violation_is_listed(db_session, employee, make_product):
    held = make_product(title="Held", stock=5)
    missing = make_product(title="Missing", stock=5)
    give_custody(employee.id, held.id, 1)

    with pytest.raises(InsufficientAssignedStock) as exc_info:
        sales_service.create_sale(
            employee.id,
            [_item(held, 2), _item(missing, 1)],
            customer(),
            "Cash",
        )

    reasons = {i["product_id"]: i["reason"] for i in exc_info.value.details["items"]}
    assert reasons == {held.id: "insufficient", missing.id: "not_assigned"}
    assert custody_service.get_assigned_quantity(employee.id, held.id) == 1


def test_only_unassigned_products_raise_product_not_assigned(db_session, employee, product):
    with pytest.raises(ProductNotAssigned):
        sales_service.create_sale(employee.id, [_item(product, 1)], customer(), "Cash")


def test_repeated_lines_are_summed_against_custody(db_session, employee, product):
    give_custody(employee.id, product.id, 3)

    with pytest.raises(InsufficientAssignedStock):
        sales_service.create_sale(
            employee.id,
            [_item(product, 2), _item(product, 2)],
            customer(),
            "Cash",
        )
    assert custody_service.get_assigned_quantity(employee.id, product.id) == 3


@pytest.mark.parametrize("phone", ["12345", "", "abc"])
def test_invalid_customer_phone(db_session, employee, product, phone):
    give_custody(employee.id, product.id, 1)
    with pytest.raises(ValidationError):
        sales_service.create_sale(employee.id, [_item(product, 1)], customer(phone=phone), "Cash")


def test_validation_collects_all_problems(db_session, employee):
    with pytest.raises(ValidationError) as exc_info:
        sales_service.create_sale(
            employee.id,
            [{"product_id": 1, "quantity": 0, "price_per_unit_cents": 100}],
            {"name": "", "phone": "9876543210"},
            "Card",
        )

    errors = exc_info.value.details["errors"]
    assert len(errors) == 3
    assert any("quantity" in e for e in errors)
    assert any("Customer name" in e for e in errors)
    assert any("Payment method" in e for e in errors)


def test_empty_items_rejected(db_session, employee):
    with pytest.raises(ValidationError):
        sales_service.create_sale(employee.id, [], customer(), "Cash")


def test_unknown_employee(db_session, product):
    with pytest.raises(NotFound):
        sales_service.create_sale(999, [_item(product, 1)], customer(), "Cash")


def test_price_floor_is_opt_in(db_session, employee, product):
    give_custody(employee.id, product.id, 2)

    with pytest.raises(ValidationError) as exc_info:
        sales_service.create_sale(
            employee.id, [_item(product, 1, price=10)], customer(), "Cash", enforce_price_floor=True
        )
    assert exc_info.value.details["items"][0]["lowest_selling_price_cents"] == 1000

    sale, _ = sales_service.create_sale(employee.id, [_item(product, 1, price=10)], customer(), "Cash")
    assert sale.total_amount_cents == 10


def test_sale_snapshots_title(db_session, employee, product):
    give_custody(employee.id, product.id, 1)
    item = _item(product, 1)
    del item["product_title"]

    sale, _ = sales_service.create_sale(employee.id, [item], customer(), "Cash")

    assert sale.items[0].product_title == "Product P"
    assert sale.to_dict()["customer"] == {"name": "Ravi Kumar", "phone": "9876543210"}


def test_sales_are_immutable(db_session, employee, product):
    give_custody(employee.id, product.id, 1)
    sale, _ = sales_service.create_sale(employee.id, [_item(product, 1)], customer(), "Cash")

    sale.customer_name = "Someone Else"
    with pytest.raises(ValueError):
        db.session.flush()
    db.session.rollback()

    item = db_session.query(SaleItem).first()
    db.session.delete(item)
    with pytest.raises(ValueError):
        db.session.flush()
    db.session.rollback()


def test_list_sales_filters(db_session, make_employee, product):
    first = make_employee("First")
    second = make_employee("Second")
    give_custody(first.id, product.id, 2)
    give_custody(second.id, product.id, 2)
    sales_service.create_sale(first.id, [_item(product, 1)], customer(), "Cash")
    sales_service.create_sale(second.id, [_item(product, 1)], customer(), "Online")

    rows, meta = sales_service.list_sales(employee_id=first.id)
    assert [s.employee_id for s in rows] == [first.id]
    assert meta["total_count"] == 1

    rows, _ = sales_service.list_sales(payment_method="Online")
    assert [s.employee_id for s in rows] == [second.id]

    rows, _ = sales_service.list_sales(product_id=product.id)
    assert len(rows) == 2


def test_failure_mid_sale_rolls_back_everything(db_session, employee, make_product, monkeypatch):
    first = make_product(title="First", stock=5)
    second = make_product(title="Second", stock=5)
    give_custody(employee.id, first.id, 2)
    give_custody(employee.id, second.id, 2)
    events_before = db_session.query(CustodyEvent).count()

    real_consume = custody_service.consume
    calls = []

    def consume_then_fail(employee, product_id, quantity, **kwargs):
        calls.append(product_id)
        if len(calls) == 2:
            raise ConcurrencyConflict("simulated lost race")
        return real_consume(employee, product_id, quantity, **kwargs)

    monkeypatch.setattr(custody_service, "consume", consume_then_fail)

    with pytest.raises(ConcurrencyConflict):
        sales_service.create_sale(
            employee.id,
            [_item(first, 1), _item(second, 1)],
            customer(),
            "Cash",
        )

    assert calls == [first.id, second.id]
    assert db_session.query(Sale).count() == 0
    assert db_session.query(SaleItem).count() == 0
    assert custody_service.assignments_map(employee.id) == {first.id: 2, second.id: 2}
    assert holdings_of(employee.id) == {"cash_cents": 0, "online_cents": 0, "total_cents": 0}
    assert db_session.query(CustodyEvent).count() == events_before


def test_oversized_line_quantity_is_a_validation_error(db_session, employee, product):
    give_custody(employee.id, product.id, 1)

    with pytest.raises(ValidationError) as exc_info:
        sales_service.create_sale(employee.id, [_item(product, 10**20)], customer(), "Cash")

    assert any("quantity" in e for e in exc_info.value.details["errors"])
    assert custody_service.get_assigned_quantity(employee.id, product.id) == 1


def test_large_totals_fit_money_columns(db_session, employee, make_product):
    product = make_product(title="Generator", stock=3, base_price_cents=999_999_999, lowest_selling_price_cents=0)
    give_custody(employee.id, product.id, 3)

    sale, holdings = sales_service.create_sale(
        employee.id, [_item(product, 3, price=999_999_999)], customer(), "Cash"
    )

    assert sale.total_amount_cents == 2_999_999_997
    assert holdings["total_cents"] == 2_999_999_997
    for column in (Sale.__table__.c.total_amount_cents, SaleItem.__table__.c.total_price_cents,
                   Employee.__table__.c.total_cents, CustodyEvent.__table__.c.amount_cents):
        assert isinstance(column.type, BigInteger)
