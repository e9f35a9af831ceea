# Overview: Flask API routes for employees and their custody; parses input and returns JSON responses.

# backend/fieldledger/routes/employees.py
"""
Employee directory and custody routes.

Direct assignment moves warehouse stock into an employee's custody without
a request (admin action). Unassignment either returns the units to the
warehouse (return_to_stock=true, the default) or writes them off.
"""
from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import with_actor
from ..errors import CustodyError, ValidationError
from ..models import Employee
from ..services import custody_service, employees_service
from ..services.assignment_service import assign_product, unassign_product
from ..services.employees_service import EMPLOYEE_POLICY
from ..services.ledger_service import list_custody_events
from ..validation import coerce_int, parse_pagination, require_choice, validate_payload

employees_bp = Blueprint("employees", __name__, url_prefix="/api/employees")


def _parse_bool(raw, field: str, default: bool) -> bool:
    if raw is None or raw == "":
        return default
    value = raw.strip().lower()
    if value in {"1", "true", "yes"}:
        return True
    if value in {"0", "false", "no"}:
        return False
    raise ValidationError(f"{field} must be true or false")


@employees_bp.get("")
def list_employees():
    try:
        page, limit = parse_pagination(
            request.args,
            default_limit=current_app.config["DEFAULT_PAGE_SIZE"],
            max_limit=current_app.config["MAX_PAGE_SIZE"],
        )
        status = request.args.get("status")
        if status:
            require_choice(status, "status", employees_service.EMPLOYEE_STATUSES)
        employees, meta = employees_service.list_employees(status=status, page=page, limit=limit)
        return jsonify({"employees": [e.to_dict() for e in employees], "pagination": meta}), 200
    except CustodyError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to list employees")
        return jsonify({"error": "Internal server error"}), 500


@employees_bp.post("")
def create_employee_route():
    """Create an employee with empty custody and zero holdings."""
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Employee, payload=payload, policy=EMPLOYEE_POLICY, partial=False)
        employee = employees_service.create_employee(patch)
        return jsonify({"employee": employee.to_dict()}), 201
    except CustodyError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create employee")
        return jsonify({"error": "Internal server error"}), 500


@employees_bp.get("/<int:employee_id>")
def get_employee_route(employee_id: int):
    try:
        employee = custody_service.load_employee(employee_id)
        return jsonify({"employee": employee.to_dict(include_assignments=True)}), 200
    except CustodyError as e:
        return jsonify(e.to_dict()), e.status_code


@employees_bp.get("/<int:employee_id>/products")
def get_custody_route(employee_id: int):
    """Assigned products and holdings of one employee."""
    try:
        return jsonify(custody_service.get_custody(employee_id)), 200
    except CustodyError as e:
        return jsonify(e.to_dict()), e.status_code


@employees_bp.post("/<int:employee_id>/products")
@with_actor
def assign_product_route(employee_id: int):
    """
    Assign warehouse stock directly to an employee.

    Body: {"product_id": int, "quantity": int >= 1}

    Returns 409 InsufficientStock when the warehouse cannot cover it.
    """
    data = request.get_json(silent=True) or {}

    try:
        product_id = coerce_int(data.get("product_id"), "product_id", minimum=1)
        assignment = assign_product(employee_id, product_id, data.get("quantity"), actor=g.actor_id)
        return jsonify({
            "assignment": assignment.to_dict(),
            "custody": custody_service.get_custody(employee_id),
        }), 201
    except CustodyError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to assign product")
        return jsonify({"error": "Internal server error"}), 500


@employees_bp.delete("/<int:employee_id>/products/<int:product_id>")
@with_actor
def unassign_product_route(employee_id: int, product_id: int):
    """
    Remove units from an employee's custody.

    Query params:
    - quantity: int (optional) - defaults to the whole assignment
    - return_to_stock: bool (optional, default true) - false writes the units off
    """
    try:
        quantity = request.args.get("quantity")
        return_to_stock = _parse_bool(request.args.get("return_to_stock"), "return_to_stock", True)
        unassign_product(
            employee_id,
            product_id,
            quantity if quantity not in (None, "") else None,
            return_to_stock=return_to_stock,
            actor=g.actor_id,
        )
        return jsonify({"custody": custody_service.get_custody(employee_id)}), 200
    except CustodyError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to unassign product")
        return jsonify({"error": "Internal server error"}), 500


@employees_bp.get("/<int:employee_id>/events")
def list_employee_events_route(employee_id: int):
    """Most recent custody events for one employee (audit trail)."""
    try:
        custody_service.load_employee(employee_id)
        limit = coerce_int(request.args.get("limit", 100), "limit", minimum=1, maximum=500)
        events = list_custody_events(
            employee_id=employee_id,
            product_id=request.args.get("product_id", type=int),
            event_type=request.args.get("event_type"),
            limit=limit,
        )
        return jsonify({"events": [ev.to_dict() for ev in events]}), 200
    except CustodyError as e:
        return jsonify(e.to_dict()), e.status_code
