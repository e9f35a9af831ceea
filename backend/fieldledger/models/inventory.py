from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class Product(db.Model):
    """
    Product master data plus the central warehouse count.

    STOCK OWNERSHIP:
    stock_quantity is mutated only by the inventory ledger
    (services/inventory_service.py) through conditional UPDATE statements.
    Admin edits go through the ORM and are protected by version_id, so an
    edit racing a stock change fails instead of writing back a stale count.

    PRICING:
    base_price_cents is the list price; lowest_selling_price_cents is the
    floor a field employee may sell at. Sales snapshot their own unit price.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.CheckConstraint("stock_quantity >= 0", name="ck_products_stock_nonnegative"),
        db.CheckConstraint("base_price_cents >= 0", name="ck_products_base_price_nonnegative"),
        db.CheckConstraint("lowest_selling_price_cents >= 0", name="ck_products_floor_nonnegative"),
        db.Index("ix_products_status_title", "status", "title"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)

    # Authoritative storage in minor units
    base_price_cents = db.Column(db.Integer, nullable=False, default=0)
    lowest_selling_price_cents = db.Column(db.Integer, nullable=False, default=0)

    status = db.Column(db.String(16), nullable=False, default="Active", index=True)  # Active, Inactive

    # Central warehouse count
    stock_quantity = db.Column(db.Integer, nullable=False, default=0)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Product id={self.id} title={self.title!r} stock={self.stock_quantity}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "price": {
                "base_cents": self.base_price_cents,
                "lowest_selling_price_cents": self.lowest_selling_price_cents,
            },
            "status": self.status,
            "stock_quantity": self.stock_quantity,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
