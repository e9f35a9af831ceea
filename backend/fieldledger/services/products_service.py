# backend/fieldledger/services/products_service.py
"""
Product catalog maintenance (out-of-band admin CRUD).

Central stock is owned by inventory_service: a product is created with an
opening stock count (recorded as a stock.received event) and afterwards
stock_quantity only changes through deduct/restock. Patches cannot touch it.
"""
from __future__ import annotations

from ..errors import ConcurrencyConflict, ValidationError
from ..extensions import db
from ..models import Product
from ..validation import MAX_AMOUNT_CENTS, MAX_QUANTITY, ModelValidationPolicy, pagination_meta
from . import inventory_service
from .concurrency import run_atomic
from .ledger_service import append_custody_event

PRODUCT_STATUSES = ("Active", "Inactive")

PRODUCT_CREATE_POLICY = ModelValidationPolicy(
    writable_fields={
        "title", "description", "base_price_cents", "lowest_selling_price_cents", "status", "stock_quantity",
    },
    required_on_create={"title", "base_price_cents", "lowest_selling_price_cents"},
)

PRODUCT_PATCH_POLICY = ModelValidationPolicy(
    writable_fields={"title", "description", "base_price_cents", "lowest_selling_price_cents", "status"},
)


def enforce_rules_product(patch: dict) -> None:
    """Business rules that are not captured by SQLAlchemy metadata alone."""
    for field in ("base_price_cents", "lowest_selling_price_cents"):
        if field in patch:
            price = patch[field]
            if price < 0:
                raise ValidationError(f"{field} must be >= 0")
            if price > MAX_AMOUNT_CENTS:
                raise ValidationError(f"{field} cannot exceed {MAX_AMOUNT_CENTS}")
    if "stock_quantity" in patch:
        if patch["stock_quantity"] < 0:
            raise ValidationError("stock_quantity must be >= 0")
        if patch["stock_quantity"] > MAX_QUANTITY:
            raise ValidationError(f"stock_quantity cannot exceed {MAX_QUANTITY}")
    if "status" in patch and patch["status"] not in PRODUCT_STATUSES:
        raise ValidationError('status must be "Active" or "Inactive"')


def create_product(patch: dict, *, actor: str | None = None) -> Product:
    """Create a product from a validated patch; opening stock is logged as received."""
    enforce_rules_product(patch)

    def _op():
        opening_stock = patch.get("stock_quantity") or 0
        product = Product(**{k: v for k, v in patch.items() if k != "stock_quantity"})
        product.stock_quantity = 0
        db.session.add(product)
        db.session.flush()

        append_custody_event(
            event_type="product.created",
            product_id=product.id,
            actor=actor,
            note=f"Created product title={product.title}"[:255],
        )
        if opening_stock:
            inventory_service.restock(
                product.id,
                opening_stock,
                event_type="stock.received",
                actor=actor,
                note="Opening stock",
            )
        return product

    return run_atomic(_op)


def update_product(product_id: int, patch: dict, *, expected_version: int | None = None) -> Product:
    """
    Apply an admin patch. expected_version (optional) turns a stale edit into
    a ConcurrencyConflict instead of a silent overwrite.
    """
    enforce_rules_product(patch)

    def _op():
        product = inventory_service.get_product(product_id)
        if expected_version is not None and product.version_id != expected_version:
            raise ConcurrencyConflict(
                "Product was modified concurrently; reload and retry",
                details={"expected_version": expected_version, "current_version": product.version_id},
            )
        for k, v in patch.items():
            setattr(product, k, v)
        db.session.flush()
        return product

    return run_atomic(_op)


def receive_stock(product_id: int, quantity: int, *, actor: str | None = None, note: str | None = None) -> Product:
    """Warehouse receipt: add new units to central stock."""
    if quantity <= 0:
        raise ValidationError("Quantity must be at least 1")
    if quantity > MAX_QUANTITY:
        raise ValidationError(f"Quantity cannot exceed {MAX_QUANTITY}")
    return run_atomic(lambda: inventory_service.restock(
        product_id,
        quantity,
        event_type="stock.received",
        actor=actor,
        note=note,
    ))


def list_products(*, status: str | None = None, page: int = 1, limit: int = 20) -> tuple[list[Product], dict]:
    q = db.session.query(Product)
    if status:
        q = q.filter(Product.status == status)
    total_count = q.count()
    rows = q.order_by(Product.title.asc(), Product.id.asc()).offset((page - 1) * limit).limit(limit).all()
    return rows, pagination_meta(page, limit, total_count, len(rows))
