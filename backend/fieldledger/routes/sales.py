# Overview: Flask API routes for sales operations; parses input and returns JSON responses.

# backend/fieldledger/routes/sales.py
"""Field sale routes. Sales are insert-only; there is no update or void."""

from flask import Blueprint, current_app, jsonify, request

from ..errors import CustodyError
from ..services import sales_service
from ..time_utils import parse_time_range
from ..validation import coerce_int, parse_pagination


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


@sales_bp.post("")
def create_sale_route():
    """
    Record a sale from an employee's custody.

    Body:
    {
      "employee_id": int,
      "items": [{"product_id", "product_title", "quantity", "price_per_unit_cents"}],
      "customer": {"name", "phone", "email"?, "address"?},
      "payment_method": "Cash" | "Online"
    }

    Returns 201 with the sale and the employee's resulting holdings, or 409
    listing every item the custody cannot cover.
    """
    data = request.get_json(silent=True) or {}

    try:
        employee_id = coerce_int(data.get("employee_id"), "employee_id", minimum=1)
        sale, holdings = sales_service.create_sale(
            employee_id,
            data.get("items"),
            data.get("customer"),
            data.get("payment_method"),
            enforce_price_floor=current_app.config["ENFORCE_PRICE_FLOOR"],
        )
        return jsonify({"sale": sale.to_dict(), "holdings": holdings}), 201
    except CustodyError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create sale")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.get("")
def list_sales_route():
    """
    List sales, newest first.

    Query params: employee_id, payment_method, product_id, start, end
    (ISO-8601), page, limit.
    """
    try:
        page, limit = parse_pagination(
            request.args,
            default_limit=current_app.config["DEFAULT_PAGE_SIZE"],
            max_limit=current_app.config["MAX_PAGE_SIZE"],
        )
        start, end = parse_time_range(request.args.get("start"), request.args.get("end"))

        sales, meta = sales_service.list_sales(
            employee_id=request.args.get("employee_id", type=int),
            payment_method=request.args.get("payment_method"),
            product_id=request.args.get("product_id", type=int),
            start=start,
            end=end,
            page=page,
            limit=limit,
        )
        return jsonify({"sales": [s.to_dict() for s in sales], "pagination": meta}), 200
    except CustodyError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to list sales")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.get("/<int:sale_id>")
def get_sale_route(sale_id: int):
    try:
        sale = sales_service.get_sale(sale_id)
        return jsonify({"sale": sale.to_dict()}), 200
    except CustodyError as e:
        return jsonify(e.to_dict()), e.status_code
