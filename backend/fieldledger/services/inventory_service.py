# Overview: Inventory ledger; central warehouse stock per product with conditional deduct/restock.

from __future__ import annotations

from sqlalchemy import update

from ..errors import InsufficientStock, NotFound
from ..extensions import db
from ..models import Product
from .ledger_service import append_custody_event
"""
Inventory ledger invariants (authoritative)

- Product.stock_quantity is the central warehouse count and is never negative.
- deduct is a single conditional UPDATE ... WHERE stock_quantity >= qty.
  Concurrent callers cannot over-allocate the same units: at most one of two
  racing deducts for the last units matches the WHERE clause.
- restock is a single unconditional UPDATE (increment).
- Both bump version_id so an admin edit holding an older version fails.
- Functions here join the caller's transaction; they flush but never commit.
  Wrap them in concurrency.run_atomic (or a larger unit of work).
"""


def get_product(product_id: int) -> Product:
    product = db.session.get(Product, product_id)
    if product is None:
        raise NotFound(f"Product {product_id} not found", details={"product_id": product_id})
    return product


def get_stock(product_id: int) -> int:
    return get_product(product_id).stock_quantity


def _reload(product_id: int) -> Product:
    return db.session.get(Product, product_id, populate_existing=True)


def deduct(
    product_id: int,
    quantity: int,
    *,
    employee_id: int | None = None,
    stock_request_id: int | None = None,
    actor: str | None = None,
    note: str | None = None,
) -> Product:
    """
    Atomically remove quantity units from central stock.

    Raises:
        NotFound: product does not exist
        InsufficientStock: stock_quantity < quantity at the moment of write
    """
    if quantity <= 0:
        raise ValueError("quantity must be positive")

    stmt = (
        update(Product)
        .where(Product.id == product_id, Product.stock_quantity >= quantity)
        .values(
            stock_quantity=Product.stock_quantity - quantity,
            version_id=Product.version_id + 1,
        )
        .execution_options(synchronize_session=False)
    )
    result = db.session.execute(stmt)

    if result.rowcount != 1:
        product = _reload(product_id)
        if product is None:
            raise NotFound(f"Product {product_id} not found", details={"product_id": product_id})
        raise InsufficientStock(
            f"Insufficient stock. Only {product.stock_quantity} available.",
            details={
                "product_id": product_id,
                "requested_quantity": quantity,
                "available_quantity": product.stock_quantity,
            },
        )

    append_custody_event(
        event_type="stock.deducted",
        product_id=product_id,
        employee_id=employee_id,
        stock_request_id=stock_request_id,
        quantity_delta=-quantity,
        actor=actor,
        note=note,
    )
    return _reload(product_id)


def restock(
    product_id: int,
    quantity: int,
    *,
    event_type: str = "stock.restocked",
    employee_id: int | None = None,
    stock_request_id: int | None = None,
    actor: str | None = None,
    note: str | None = None,
) -> Product:
    """
    Unconditionally return quantity units to central stock.

    Used for returned assignments, saga compensation and warehouse receipts
    (event_type="stock.received").
    """
    if quantity <= 0:
        raise ValueError("quantity must be positive")

    stmt = (
        update(Product)
        .where(Product.id == product_id)
        .values(
            stock_quantity=Product.stock_quantity + quantity,
            version_id=Product.version_id + 1,
        )
        .execution_options(synchronize_session=False)
    )
    result = db.session.execute(stmt)
    if result.rowcount != 1:
        raise NotFound(f"Product {product_id} not found", details={"product_id": product_id})

    append_custody_event(
        event_type=event_type,
        product_id=product_id,
        employee_id=employee_id,
        stock_request_id=stock_request_id,
        quantity_delta=quantity,
        actor=actor,
        note=note,
    )
    return _reload(product_id)
