# Overview: Two-aggregate custody moves (warehouse <-> employee) implemented as compensating sagas.

"""
Assignment sagas

Central stock (Product) and custody (Employee) are separate aggregates and
each step below commits on its own, so a failure between steps is handled
with an explicit compensating action instead of a cross-aggregate
transaction.

ASSIGN (direct admin assignment and approved stock requests):
1. deduct central stock              -> commit
2. assign to employee (+ finalize)   -> commit
   on failure: restock the same quantity, then surface the error

RETURN (unassign with return_to_stock=True):
1. release from employee             -> commit
2. restock central stock             -> commit
   on failure: re-assign the same quantity, then surface the error

WRITE-OFF (unassign with return_to_stock=False):
1. release from employee as lost     -> commit
"""

from __future__ import annotations

from typing import Callable

from flask import current_app

from ..models import Employee, EmployeeAssignment
from ..validation import MAX_QUANTITY, coerce_int
from . import custody_service, inventory_service
from .concurrency import run_atomic


def _compensate_restock(product_id: int, quantity: int, *, employee_id: int, stock_request_id: int | None,
                        actor: str | None, cause: Exception) -> None:
    current_app.logger.warning(
        "Assign step failed for employee %s product %s qty %s (%s); restocking",
        employee_id, product_id, quantity, type(cause).__name__,
    )
    try:
        run_atomic(lambda: inventory_service.restock(
            product_id,
            quantity,
            event_type="stock.compensated",
            employee_id=employee_id,
            stock_request_id=stock_request_id,
            actor=actor,
            note=f"Compensation: {type(cause).__name__}",
        ))
    except Exception:
        current_app.logger.exception(
            "Compensating restock failed for product %s qty %s; manual reconciliation required",
            product_id, quantity,
        )
        raise


def deduct_then_assign(
    employee_id: int,
    product_id: int,
    quantity: int,
    *,
    stock_request_id: int | None = None,
    actor: str | None = None,
    finalize: Callable[[Employee, EmployeeAssignment], None] | None = None,
) -> EmployeeAssignment:
    """
    Move quantity units from the warehouse into an employee's custody.

    finalize runs inside the assign transaction (after assign) so the caller
    can commit its own state change atomically with the assignment, e.g.
    marking a stock request Approved.

    Raises:
        NotFound / InsufficientStock: from the deduct step, nothing changed
        anything from the assign step: after central stock was restored
    """
    run_atomic(lambda: inventory_service.deduct(
        product_id,
        quantity,
        employee_id=employee_id,
        stock_request_id=stock_request_id,
        actor=actor,
    ))

    def _assign():
        employee = custody_service.load_employee(employee_id, lock=True)
        assignment = custody_service.assign(
            employee,
            product_id,
            quantity,
            stock_request_id=stock_request_id,
            actor=actor,
        )
        if finalize is not None:
            finalize(employee, assignment)
        return assignment

    try:
        return run_atomic(_assign)
    except Exception as exc:
        _compensate_restock(
            product_id,
            quantity,
            employee_id=employee_id,
            stock_request_id=stock_request_id,
            actor=actor,
            cause=exc,
        )
        raise


def assign_product(employee_id: int, product_id: int, quantity, *, actor: str | None = None) -> EmployeeAssignment:
    """Direct admin assignment of warehouse stock to an employee."""
    quantity = coerce_int(quantity, "quantity", minimum=1, maximum=MAX_QUANTITY)

    # Fail fast on unknown ids before touching stock
    custody_service.load_employee(employee_id)
    inventory_service.get_product(product_id)

    assignment = deduct_then_assign(employee_id, product_id, quantity, actor=actor)
    current_app.logger.info(
        "Assigned %s x product %s to employee %s", quantity, product_id, employee_id
    )
    return assignment


def unassign_product(
    employee_id: int,
    product_id: int,
    quantity=None,
    *,
    return_to_stock: bool = True,
    actor: str | None = None,
) -> None:
    """
    Take units out of an employee's custody.

    quantity=None removes the whole assignment. return_to_stock=False writes
    the units off (custody decreases, central stock does not change).
    """
    custody_service.load_employee(employee_id)
    if quantity is None:
        quantity = custody_service.get_assigned_quantity(employee_id, product_id)
        if quantity == 0:
            # Let release report the missing assignment uniformly
            quantity = 1
    else:
        quantity = coerce_int(quantity, "quantity", minimum=1, maximum=MAX_QUANTITY)

    if return_to_stock:
        inventory_service.get_product(product_id)

    def _release():
        employee = custody_service.load_employee(employee_id, lock=True)
        custody_service.release(
            employee,
            product_id,
            quantity,
            write_off=not return_to_stock,
            actor=actor,
        )

    run_atomic(_release)

    if not return_to_stock:
        current_app.logger.info(
            "Wrote off %s x product %s from employee %s", quantity, product_id, employee_id
        )
        return

    try:
        run_atomic(lambda: inventory_service.restock(
            product_id,
            quantity,
            employee_id=employee_id,
            actor=actor,
            note="Returned from custody",
        ))
    except Exception as exc:
        current_app.logger.warning(
            "Restock of returned product %s qty %s failed (%s); re-assigning to employee %s",
            product_id, quantity, type(exc).__name__, employee_id,
        )

        def _reassign():
            employee = custody_service.load_employee(employee_id, lock=True)
            custody_service.assign(employee, product_id, quantity, actor=actor, note="Compensation: restock failed")

        run_atomic(_reassign)
        raise
