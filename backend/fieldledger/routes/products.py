# Overview: Flask API routes for products operations; parses input and returns JSON responses.

# backend/fieldledger/routes/products.py
"""
Product catalog routes.

Admin CRUD for the catalog plus warehouse receipts. stock_quantity can be
set on create (opening stock) but never patched: after creation it only
moves through restock, assignment, and returns.
"""
from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import with_actor
from ..errors import CustodyError
from ..models import Product
from ..services import inventory_service, products_service, reconciliation_service
from ..services.products_service import PRODUCT_CREATE_POLICY, PRODUCT_PATCH_POLICY
from ..validation import coerce_int, optional_text, parse_pagination, require_choice, validate_payload

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("")
def list_products():
    """
    List products.

    Query params:
    - status: "Active" | "Inactive" (optional)
    - page, limit: pagination (limit capped by MAX_PAGE_SIZE)
    """
    try:
        page, limit = parse_pagination(
            request.args,
            default_limit=current_app.config["DEFAULT_PAGE_SIZE"],
            max_limit=current_app.config["MAX_PAGE_SIZE"],
        )
        status = request.args.get("status")
        if status:
            require_choice(status, "status", products_service.PRODUCT_STATUSES)
        products, meta = products_service.list_products(status=status, page=page, limit=limit)
        return jsonify({"products": [p.to_dict() for p in products], "pagination": meta}), 200
    except CustodyError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to list products")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.post("")
@with_actor
def create_product_route():
    """Create a product; stock_quantity (optional) is the opening stock."""
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_CREATE_POLICY, partial=False)
        product = products_service.create_product(patch, actor=g.actor_id)
        return jsonify({"product": product.to_dict()}), 201
    except CustodyError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create product")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.get("/<int:product_id>")
def get_product_route(product_id: int):
    """Product with its central stock and the units held in custody."""
    try:
        product = inventory_service.get_product(product_id)
        return jsonify({
            "product": product.to_dict(),
            "custody": reconciliation_service.product_custody_summary(product_id),
        }), 200
    except CustodyError as e:
        return jsonify(e.to_dict()), e.status_code


@products_bp.patch("/<int:product_id>")
def update_product_route(product_id: int):
    """
    Update catalog fields.

    An optional "version_id" in the payload makes the edit conditional on
    the product not having changed since it was read.
    """
    payload = dict(request.get_json(silent=True) or {})
    expected_version = payload.pop("version_id", None)

    try:
        if expected_version is not None:
            expected_version = coerce_int(expected_version, "version_id", minimum=1)
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_PATCH_POLICY, partial=True)
        product = products_service.update_product(product_id, patch, expected_version=expected_version)
        return jsonify({"product": product.to_dict()}), 200
    except CustodyError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update product")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.post("/<int:product_id>/restock")
@with_actor
def restock_product_route(product_id: int):
    """
    Receive new units into central stock.

    Body: {"quantity": int >= 1, "note": str (optional)}
    """
    data = request.get_json(silent=True) or {}

    try:
        quantity = coerce_int(data.get("quantity"), "quantity", minimum=1)
        note = optional_text(data.get("note"), max_length=255, field="note")
        product = products_service.receive_stock(product_id, quantity, actor=g.actor_id, note=note)
        return jsonify({"product": product.to_dict()}), 200
    except CustodyError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to restock product")
        return jsonify({"error": "Internal server error"}), 500
