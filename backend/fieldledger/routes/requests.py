# Overview: Flask API routes for the stock/money request workflow; parses input and returns JSON responses.

# backend/fieldledger/routes/requests.py
"""
Request workflow routes.

<kind> is "stock" or "money". Creation validates input only; feasibility is
checked when the request is approved. A failed approval leaves the request
Pending.
"""
from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import with_actor
from ..errors import CustodyError
from ..services import request_service
from ..services.request_service import KIND_STOCK
from ..validation import coerce_int, parse_pagination

requests_bp = Blueprint("requests", __name__, url_prefix="/api/requests")


@requests_bp.post("/<kind>")
def create_request_route(kind: str):
    """
    File a request.

    stock: {"employee_id", "product_id", "quantity", "reason"}
    money: {"employee_id", "amount_cents", "method", "reference_number"?}
    """
    data = request.get_json(silent=True) or {}

    try:
        request_service.validate_kind(kind)
        employee_id = coerce_int(data.get("employee_id"), "employee_id", minimum=1)
        if kind == KIND_STOCK:
            req = request_service.create_stock_request(
                employee_id,
                data.get("product_id"),
                data.get("quantity"),
                data.get("reason"),
            )
        else:
            req = request_service.create_money_request(
                employee_id,
                data.get("amount_cents"),
                data.get("method"),
                data.get("reference_number"),
            )
        return jsonify({"request": req.to_dict()}), 201
    except CustodyError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create %s request", kind)
        return jsonify({"error": "Internal server error"}), 500


@requests_bp.get("/<kind>")
def list_requests_route(kind: str):
    """
    List requests, newest first.

    Query params: employee_id, status ("Pending" | "Approved" | "Rejected" |
    "all"), page, limit.
    """
    try:
        page, limit = parse_pagination(
            request.args,
            default_limit=current_app.config["DEFAULT_PAGE_SIZE"],
            max_limit=current_app.config["MAX_PAGE_SIZE"],
        )
        rows, meta = request_service.list_requests(
            kind,
            employee_id=request.args.get("employee_id", type=int),
            status=request.args.get("status"),
            page=page,
            limit=limit,
        )
        return jsonify({"requests": [r.to_dict() for r in rows], "pagination": meta}), 200
    except CustodyError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to list %s requests", kind)
        return jsonify({"error": "Internal server error"}), 500


@requests_bp.get("/<kind>/<int:request_id>")
def get_request_route(kind: str, request_id: int):
    try:
        req = request_service.get_request(kind, request_id)
        return jsonify({"request": req.to_dict()}), 200
    except CustodyError as e:
        return jsonify(e.to_dict()), e.status_code


@requests_bp.post("/<kind>/<int:request_id>/approve")
@with_actor
def approve_request_route(kind: str, request_id: int):
    """Approve a Pending request and apply its effect."""
    try:
        req = request_service.approve_request(request_id, kind, actor=g.actor_id)
        return jsonify({"request": req.to_dict()}), 200
    except CustodyError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to approve %s request %s", kind, request_id)
        return jsonify({"error": "Internal server error"}), 500


@requests_bp.post("/<kind>/<int:request_id>/reject")
@with_actor
def reject_request_route(kind: str, request_id: int):
    """Reject a Pending request. Body: {"reason": str}"""
    data = request.get_json(silent=True) or {}

    try:
        req = request_service.reject_request(request_id, kind, data.get("reason"), actor=g.actor_id)
        return jsonify({"request": req.to_dict()}), 200
    except CustodyError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to reject %s request %s", kind, request_id)
        return jsonify({"error": "Internal server error"}), 500
