import pytest

from conftest import customer

from fieldledger.errors import ValidationError
from fieldledger.models import Employee, Product
from fieldledger.services import (
    assignment_service,
    reconciliation_service,
    reporting_service,
    request_service,
    sales_service,
)


def _run_full_cycle(employee, product):
    req = request_service.create_stock_request(employee.id, product.id, 3, "Weekend fair stall")
    request_service.approve_request(req.id, "stock")
    sales_service.create_sale(
        employee.id,
        [{"product_id": product.id, "quantity": 2, "price_per_unit_cents": 150}],
        customer(),
        "Cash",
    )
    money = request_service.create_money_request(employee.id, 100, "Cash")
    request_service.approve_request(money.id, "money")
    assignment_service.unassign_product(employee.id, product.id, return_to_stock=True)


def test_full_cycle_reconciles(db_session, employee, product):
    _run_full_cycle(employee, product)

    report = reconciliation_service.check_invariants()

    assert report["ok"], report["violations"]
    assert report["checked"] == {"products": 1, "employees": 1, "assignments": 0}


def test_out_of_band_stock_change_is_reported(db_session, employee, product):
    _run_full_cycle(employee, product)
    db_session.query(Product).filter_by(id=product.id).update({"stock_quantity": 40})
    db_session.commit()

    report = reconciliation_service.check_invariants()

    assert not report["ok"]
    drift = [v for v in report["violations"] if v["check"] == "stock_drift"]
    assert drift == [{"check": "stock_drift", "product_id": product.id, "stock_quantity": 40, "event_total": 3}]


def test_out_of_band_holdings_change_is_reported(db_session, employee, product):
    _run_full_cycle(employee, product)
    db_session.query(Employee).filter_by(id=employee.id).update({"cash_cents": 999, "total_cents": 999})
    db_session.commit()

    state_only = reconciliation_service.check_invariants(include_events=False)
    assert state_only["ok"]

    report = reconciliation_service.check_invariants()
    checks = {v["check"] for v in report["violations"]}
    assert checks == {"holdings_drift"}


def test_product_custody_summary(db_session, employee, product):
    assignment_service.assign_product(employee.id, product.id, 2)

    summary = reconciliation_service.product_custody_summary(product.id)

    assert summary == {
        "product_id": product.id,
        "stock_quantity": 3,
        "assigned_quantity": 2,
        "units_in_circulation": 5,
    }


def test_dashboard_totals(db_session, employee, product):
    _run_full_cycle(employee, product)

    report = reporting_service.dashboard()

    assert report["sales"]["Cash"] == {"count": 1, "amount_cents": 300}
    assert report["sales"]["Online"] == {"count": 0, "amount_cents": 0}
    assert report["requests"]["stock"]["Approved"] == 1
    assert report["requests"]["money"]["Approved"] == 1
    assert report["holdings"] == {"cash_cents": 200, "online_cents": 0, "total_cents": 200}
    assert report["stock"] == {"products": 1, "warehouse_units": 3, "assigned_units": 0}
    assert report["top_products"][0]["units_sold"] == 2
    assert report["top_employees"][0]["employee_id"] == employee.id


def test_dashboard_rejects_bad_range(db_session):
    with pytest.raises(ValidationError) as exc_info:
        reporting_service.dashboard(start="2026-02-01", end="2026-01-01")
    assert exc_info.value.message == "start must be before end"

    with pytest.raises(ValidationError) as exc_info:
        reporting_service.dashboard(start="yesterday")
    assert exc_info.value.details == {"field": "start", "value": "yesterday"}
