import pytest

from fieldledger.errors import (
    ConcurrencyConflict,
    InsufficientAssignedStock,
    InsufficientStock,
    NotFound,
    ValidationError,
)
from fieldledger.models import CustodyEvent
from fieldledger.services import assignment_service, custody_service, inventory_service, request_service


def test_assign_product_moves_units_from_warehouse(db_session, employee, product):
    assignment = assignment_service.assign_product(employee.id, product.id, 4, actor="admin")

    assert assignment.quantity == 4
    assert inventory_service.get_stock(product.id) == 1
    assert custody_service.get_assigned_quantity(employee.id, product.id) == 4


def test_assign_product_without_stock(db_session, employee, product):
    with pytest.raises(InsufficientStock):
        assignment_service.assign_product(employee.id, product.id, 6)

    assert inventory_service.get_stock(product.id) == 5
    assert custody_service.assignments_map(employee.id) == {}


def test_assign_to_unknown_employee_touches_no_stock(db_session, product):
    with pytest.raises(NotFound):
        assignment_service.assign_product(999, product.id, 1)
    assert inventory_service.get_stock(product.id) == 5


def test_oversized_quantities_are_rejected_before_any_write(db_session, employee, product):
    with pytest.raises(ValidationError):
        assignment_service.assign_product(employee.id, product.id, 10**20)
    assert inventory_service.get_stock(product.id) == 5

    assignment_service.assign_product(employee.id, product.id, 2)
    with pytest.raises(ValidationError):
        assignment_service.unassign_product(employee.id, product.id, 10**20)
    assert custody_service.get_assigned_quantity(employee.id, product.id) == 2
    assert inventory_service.get_stock(product.id) == 3


def test_failed_assign_step_restores_central_stock(db_session, employee, product, monkeypatch):
    def failing_assign(*args, **kwargs):
        raise ConcurrencyConflict("simulated lost race")

    monkeypatch.setattr(custody_service, "assign", failing_assign)

    with pytest.raises(ConcurrencyConflict):
        assignment_service.assign_product(employee.id, product.id, 3)

    assert inventory_service.get_stock(product.id) == 5
    assert custody_service.assignments_map(employee.id) == {}
    compensation = db_session.query(CustodyEvent).filter_by(event_type="stock.compensated").one()
    assert compensation.quantity_delta == 3


def test_failed_stock_approval_restocks_and_stays_pending(db_session, employee, product, monkeypatch):
    req = request_service.create_stock_request(employee.id, product.id, 3, "Weekend fair stall")

    def failing_assign(*args, **kwargs):
        raise ConcurrencyConflict("simulated lost race")

    monkeypatch.setattr(custody_service, "assign", failing_assign)

    with pytest.raises(ConcurrencyConflict):
        request_service.approve_request(req.id, "stock")

    assert request_service.get_request("stock", req.id).status == "Pending"
    assert inventory_service.get_stock(product.id) == 5


def test_unassign_returns_units_to_stock(db_session, employee, product):
    assignment_service.assign_product(employee.id, product.id, 4)

    assignment_service.unassign_product(employee.id, product.id, 1)
    assert custody_service.get_assigned_quantity(employee.id, product.id) == 3
    assert inventory_service.get_stock(product.id) == 2

    assignment_service.unassign_product(employee.id, product.id)
    assert custody_service.assignments_map(employee.id) == {}
    assert inventory_service.get_stock(product.id) == 5


def test_write_off_does_not_restock(db_session, employee, product):
    assignment_service.assign_product(employee.id, product.id, 2)

    assignment_service.unassign_product(employee.id, product.id, 2, return_to_stock=False, actor="admin")

    assert custody_service.assignments_map(employee.id) == {}
    assert inventory_service.get_stock(product.id) == 3
    assert db_session.query(CustodyEvent).filter_by(event_type="assignment.written_off").count() == 1


def test_unassign_more_than_held(db_session, employee, product):
    assignment_service.assign_product(employee.id, product.id, 2)

    with pytest.raises(InsufficientAssignedStock):
        assignment_service.unassign_product(employee.id, product.id, 3)

    assert custody_service.get_assigned_quantity(employee.id, product.id) == 2
    assert inventory_service.get_stock(product.id) == 3


def test_unassign_product_not_held(db_session, employee, product):
    with pytest.raises(InsufficientAssignedStock):
        assignment_service.unassign_product(employee.id, product.id)


def test_failed_restock_reassigns_units(db_session, employee, product, monkeypatch):
    assignment_service.assign_product(employee.id, product.id, 2)

    def failing_restock(*args, **kwargs):
        raise ConcurrencyConflict("simulated")

    monkeypatch.setattr(inventory_service, "restock", failing_restock)

    with pytest.raises(ConcurrencyConflict):
        assignment_service.unassign_product(employee.id, product.id, 2)

    assert custody_service.get_assigned_quantity(employee.id, product.id) == 2
    assert inventory_service.get_stock(product.id) == 3
