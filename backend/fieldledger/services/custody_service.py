# Overview: Employee custody record; assigned-stock map and cash/online holdings of one employee.

"""
Employee custody invariants (authoritative)

Assignments:
- One EmployeeAssignment row per (employee, product); quantity is always > 0.
- assign increments (creating the row if absent) and never checks central
  stock; callers must have obtained a successful inventory deduct first.
- consume/release decrement and delete the row when it reaches zero; they
  fail with InsufficientAssignedStock when asked for more than is held.

Holdings:
- total_cents == cash_cents + online_cents after every operation.
- credit increments the method's bucket and the total.
- settle decrements them and fails with InsufficientHoldings when the
  bucket cannot cover the amount.

Serialization:
- Every operation takes an Employee loaded through load_employee(lock=True)
  in the current transaction and bumps custody_revision, which increments
  the employee's version_id. A second writer holding the same version fails
  at flush with StaleDataError, mapped to ConcurrencyConflict by
  concurrency.run_atomic.
- Functions here flush but never commit.
"""

from __future__ import annotations

from ..errors import InsufficientAssignedStock, InsufficientHoldings, NotFound, ValidationError
from ..extensions import db
from ..models import Employee, EmployeeAssignment
from ..time_utils import utcnow
from .concurrency import lock_for_update
from .ledger_service import append_custody_event


METHOD_CASH = "Cash"
METHOD_ONLINE = "Online"
PAYMENT_METHODS = (METHOD_CASH, METHOD_ONLINE)

_BUCKETS = {
    METHOD_CASH: "cash_cents",
    METHOD_ONLINE: "online_cents",
}


def load_employee(employee_id: int, *, lock: bool = False) -> Employee:
    query = db.session.query(Employee).filter_by(id=employee_id)
    if lock:
        query = lock_for_update(query)
    employee = query.first()
    if employee is None:
        raise NotFound(f"Employee {employee_id} not found", details={"employee_id": employee_id})
    return employee


def _touch(employee: Employee) -> None:
    employee.custody_revision = (employee.custody_revision or 0) + 1
    employee.last_custody_change_at = utcnow()


def _bucket(method: str) -> str:
    try:
        return _BUCKETS[method]
    except KeyError:
        raise ValidationError('method must be "Cash" or "Online"', details={"method": method})


def _get_assignment(employee_id: int, product_id: int) -> EmployeeAssignment | None:
    return db.session.query(EmployeeAssignment).filter_by(
        employee_id=employee_id,
        product_id=product_id,
    ).first()


def get_assigned_quantity(employee_id: int, product_id: int) -> int:
    assignment = _get_assignment(employee_id, product_id)
    return assignment.quantity if assignment else 0


def assignments_map(employee_id: int) -> dict[int, int]:
    rows = db.session.query(EmployeeAssignment.product_id, EmployeeAssignment.quantity).filter_by(
        employee_id=employee_id
    ).all()
    return {product_id: quantity for product_id, quantity in rows}


def assign(
    employee: Employee,
    product_id: int,
    quantity: int,
    *,
    stock_request_id: int | None = None,
    actor: str | None = None,
    note: str | None = None,
) -> EmployeeAssignment:
    """Add quantity units of product_id to the employee's custody."""
    if quantity <= 0:
        raise ValidationError("Quantity must be at least 1")

    assignment = _get_assignment(employee.id, product_id)
    if assignment is None:
        assignment = EmployeeAssignment(
            employee_id=employee.id,
            product_id=product_id,
            quantity=quantity,
            assigned_at=utcnow(),
        )
        db.session.add(assignment)
    else:
        assignment.quantity += quantity

    _touch(employee)
    append_custody_event(
        event_type="assignment.added",
        employee_id=employee.id,
        product_id=product_id,
        stock_request_id=stock_request_id,
        quantity_delta=quantity,
        actor=actor,
        note=note,
    )
    return assignment


def _decrement(employee: Employee, product_id: int, quantity: int) -> int:
    if quantity <= 0:
        raise ValidationError("Quantity must be at least 1")

    assignment = _get_assignment(employee.id, product_id)
    held = assignment.quantity if assignment else 0
    if assignment is None or held < quantity:
        raise InsufficientAssignedStock(
            f"Insufficient assigned stock for product {product_id}: need {quantity}, have {held}",
            details={
                "items": [{
                    "product_id": product_id,
                    "requested_quantity": quantity,
                    "assigned_quantity": held,
                    "reason": "not_assigned" if assignment is None else "insufficient",
                }],
            },
        )

    remaining = held - quantity
    if remaining == 0:
        db.session.delete(assignment)
    else:
        assignment.quantity = remaining

    _touch(employee)
    return remaining


def consume(employee: Employee, product_id: int, quantity: int, *, sale_id: int | None = None) -> int:
    """Remove sold units from custody. Returns the quantity still held."""
    remaining = _decrement(employee, product_id, quantity)
    append_custody_event(
        event_type="assignment.consumed",
        employee_id=employee.id,
        product_id=product_id,
        sale_id=sale_id,
        quantity_delta=-quantity,
    )
    return remaining


def release(
    employee: Employee,
    product_id: int,
    quantity: int,
    *,
    write_off: bool = False,
    actor: str | None = None,
    note: str | None = None,
) -> int:
    """
    Take units out of custody without a sale.

    write_off=False is the custody half of a return (the caller restocks);
    write_off=True records the units as lost.
    """
    remaining = _decrement(employee, product_id, quantity)
    append_custody_event(
        event_type="assignment.written_off" if write_off else "assignment.returned",
        employee_id=employee.id,
        product_id=product_id,
        quantity_delta=-quantity,
        actor=actor,
        note=note,
    )
    return remaining


def credit(employee: Employee, amount_cents: int, method: str, *, sale_id: int | None = None) -> dict:
    """Add collected money to the method's bucket and the total."""
    bucket = _bucket(method)
    if amount_cents < 0:
        raise ValidationError("Amount cannot be negative")

    setattr(employee, bucket, getattr(employee, bucket) + amount_cents)
    employee.total_cents = employee.cash_cents + employee.online_cents
    _touch(employee)

    append_custody_event(
        event_type="holdings.credited",
        employee_id=employee.id,
        sale_id=sale_id,
        amount_cents=amount_cents,
        payment_method=method,
    )
    return employee.holdings_dict()


def settle(
    employee: Employee,
    amount_cents: int,
    method: str,
    *,
    money_request_id: int | None = None,
    actor: str | None = None,
) -> dict:
    """Clear handed-over money from the method's bucket and the total."""
    bucket = _bucket(method)
    if amount_cents <= 0:
        raise ValidationError("Amount must be positive")

    available = getattr(employee, bucket)
    if amount_cents > available:
        raise InsufficientHoldings(
            f"Insufficient {method.lower()} holdings",
            details={
                "employee_id": employee.id,
                "method": method,
                "available_cents": available,
                "requested_cents": amount_cents,
            },
        )

    setattr(employee, bucket, available - amount_cents)
    employee.total_cents = employee.cash_cents + employee.online_cents
    _touch(employee)

    append_custody_event(
        event_type="holdings.settled",
        employee_id=employee.id,
        money_request_id=money_request_id,
        amount_cents=-amount_cents,
        payment_method=method,
        actor=actor,
    )
    return employee.holdings_dict()


def get_custody(employee_id: int) -> dict:
    """Read-only snapshot of an employee's assignments and holdings."""
    employee = load_employee(employee_id)
    assignments = db.session.query(EmployeeAssignment).filter_by(
        employee_id=employee_id
    ).order_by(EmployeeAssignment.product_id).all()
    return {
        "employee_id": employee.id,
        "assignments": [a.to_dict() for a in assignments],
        "holdings": employee.holdings_dict(),
        "version_id": employee.version_id,
    }
