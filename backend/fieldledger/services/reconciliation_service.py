# Overview: Read-only reconciliation of custody state against its invariants and the event log.

from __future__ import annotations

from sqlalchemy import func

from ..extensions import db
from ..models import CustodyEvent, Employee, EmployeeAssignment, Product
from . import inventory_service
from .custody_service import METHOD_CASH, METHOD_ONLINE
"""
Checks (none of them mutate anything):

State invariants
- holdings_total_mismatch: total_cents != cash_cents + online_cents
- negative_holdings: cash_cents < 0 or online_cents < 0
- negative_stock: stock_quantity < 0
- non_positive_assignment: an assignment row with quantity <= 0

Event-log reconciliation (every mutation writes an event in its own
transaction, so the sums must match the current state)
- stock_drift: sum of stock.* quantity deltas != stock_quantity
- assignment_drift: sum of assignment.* deltas != assigned quantity
- holdings_drift: sum of holdings.* amounts per method != bucket
"""


def _state_violations() -> list[dict]:
    violations: list[dict] = []

    for e in db.session.query(Employee).filter(
        Employee.total_cents != Employee.cash_cents + Employee.online_cents
    ):
        violations.append({
            "check": "holdings_total_mismatch",
            "employee_id": e.id,
            "holdings": e.holdings_dict(),
        })

    for e in db.session.query(Employee).filter((Employee.cash_cents < 0) | (Employee.online_cents < 0)):
        violations.append({"check": "negative_holdings", "employee_id": e.id, "holdings": e.holdings_dict()})

    for p in db.session.query(Product).filter(Product.stock_quantity < 0):
        violations.append({"check": "negative_stock", "product_id": p.id, "stock_quantity": p.stock_quantity})

    for a in db.session.query(EmployeeAssignment).filter(EmployeeAssignment.quantity <= 0):
        violations.append({
            "check": "non_positive_assignment",
            "employee_id": a.employee_id,
            "product_id": a.product_id,
            "quantity": a.quantity,
        })

    return violations


def _event_violations() -> list[dict]:
    violations: list[dict] = []

    stock_sums = dict(
        db.session.query(CustodyEvent.product_id, func.coalesce(func.sum(CustodyEvent.quantity_delta), 0))
        .filter(CustodyEvent.event_type.like("stock.%"))
        .group_by(CustodyEvent.product_id)
        .all()
    )
    for product_id, stock in db.session.query(Product.id, Product.stock_quantity):
        expected = int(stock_sums.get(product_id, 0))
        if expected != stock:
            violations.append({
                "check": "stock_drift",
                "product_id": product_id,
                "stock_quantity": stock,
                "event_total": expected,
            })

    assignment_sums = {
        (employee_id, product_id): int(total)
        for employee_id, product_id, total in (
            db.session.query(
                CustodyEvent.employee_id,
                CustodyEvent.product_id,
                func.coalesce(func.sum(CustodyEvent.quantity_delta), 0),
            )
            .filter(CustodyEvent.event_type.like("assignment.%"))
            .group_by(CustodyEvent.employee_id, CustodyEvent.product_id)
            .all()
        )
    }
    current = {
        (a.employee_id, a.product_id): a.quantity
        for a in db.session.query(EmployeeAssignment)
    }
    for key in sorted(set(assignment_sums) | set(current)):
        expected = assignment_sums.get(key, 0)
        actual = current.get(key, 0)
        if expected != actual:
            violations.append({
                "check": "assignment_drift",
                "employee_id": key[0],
                "product_id": key[1],
                "assigned_quantity": actual,
                "event_total": expected,
            })

    holdings_sums = {
        (employee_id, method): int(total)
        for employee_id, method, total in (
            db.session.query(
                CustodyEvent.employee_id,
                CustodyEvent.payment_method,
                func.coalesce(func.sum(CustodyEvent.amount_cents), 0),
            )
            .filter(CustodyEvent.event_type.like("holdings.%"))
            .group_by(CustodyEvent.employee_id, CustodyEvent.payment_method)
            .all()
        )
    }
    for e in db.session.query(Employee):
        for method, actual in ((METHOD_CASH, e.cash_cents), (METHOD_ONLINE, e.online_cents)):
            expected = holdings_sums.get((e.id, method), 0)
            if expected != actual:
                violations.append({
                    "check": "holdings_drift",
                    "employee_id": e.id,
                    "method": method,
                    "holdings_cents": actual,
                    "event_total": expected,
                })

    return violations


def check_invariants(*, include_events: bool = True) -> dict:
    violations = _state_violations()
    if include_events:
        violations.extend(_event_violations())
    return {
        "ok": not violations,
        "violations": violations,
        "checked": {
            "products": db.session.query(Product).count(),
            "employees": db.session.query(Employee).count(),
            "assignments": db.session.query(EmployeeAssignment).count(),
        },
    }


def product_custody_summary(product_id: int) -> dict:
    """Central stock plus everything held in custody for one product."""
    product = inventory_service.get_product(product_id)
    assigned = db.session.query(func.coalesce(func.sum(EmployeeAssignment.quantity), 0)).filter(
        EmployeeAssignment.product_id == product_id
    ).scalar()
    assigned = int(assigned or 0)
    return {
        "product_id": product.id,
        "stock_quantity": product.stock_quantity,
        "assigned_quantity": assigned,
        "units_in_circulation": product.stock_quantity + assigned,
    }
