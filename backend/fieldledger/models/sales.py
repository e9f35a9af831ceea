from __future__ import annotations

from sqlalchemy import event
from sqlalchemy.orm import object_session

from ..extensions import db
from ..time_utils import to_utc_z


class Sale(db.Model):
    """
    A completed field sale.

    WHY IMMUTABLE: The sale converts assigned stock into holdings at the
    moment it is recorded. Product titles and unit prices are snapshotted on
    the items so later product edits never rewrite history. Rows are
    insert-only; updates and deletes through the ORM raise.
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.CheckConstraint("total_amount_cents >= 0", name="ck_sales_total_nonnegative"),
        db.Index("ix_sales_employee_created", "employee_id", "created_at"),
        db.Index("ix_sales_method_created", "payment_method", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    employee_id = db.Column(db.Integer, db.ForeignKey("employees.id"), nullable=False, index=True)

    # Customer snapshot
    customer_name = db.Column(db.String(255), nullable=False)
    customer_phone = db.Column(db.String(32), nullable=False)
    customer_email = db.Column(db.String(255), nullable=True)
    customer_address = db.Column(db.Text, nullable=True)

    payment_method = db.Column(db.String(16), nullable=False)  # Cash, Online
    total_amount_cents = db.Column(db.BigInteger, nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)

    employee = db.relationship("Employee", backref=db.backref("sales", lazy="dynamic"))

    def to_dict(self) -> dict:
        customer = {"name": self.customer_name, "phone": self.customer_phone}
        if self.customer_email:
            customer["email"] = self.customer_email
        if self.customer_address:
            customer["address"] = self.customer_address
        return {
            "id": self.id,
            "employee_id": self.employee_id,
            "items": [item.to_dict() for item in self.items],
            "customer": customer,
            "payment_method": self.payment_method,
            "total_amount_cents": self.total_amount_cents,
            "created_at": to_utc_z(self.created_at),
        }


class SaleItem(db.Model):
    """Line item on a sale with title and price snapshots."""
    __tablename__ = "sale_items"
    __table_args__ = (
        db.CheckConstraint("quantity >= 1", name="ck_sale_items_quantity_positive"),
        db.CheckConstraint("price_per_unit_cents >= 0", name="ck_sale_items_price_nonnegative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    product_title = db.Column(db.String(255), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    price_per_unit_cents = db.Column(db.Integer, nullable=False)
    total_price_cents = db.Column(db.BigInteger, nullable=False)

    sale = db.relationship("Sale", backref=db.backref("items", lazy=True, order_by="SaleItem.id"))

    def to_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "product_title": self.product_title,
            "quantity": self.quantity,
            "price_per_unit_cents": self.price_per_unit_cents,
            "total_price_cents": self.total_price_cents,
        }


@event.listens_for(Sale, "before_update")
@event.listens_for(SaleItem, "before_update")
def _reject_sale_update(mapper, connection, target):
    # Collection appends (items backref) mark the sale dirty without changing it
    if not object_session(target).is_modified(target, include_collections=False):
        return
    raise ValueError(f"{type(target).__name__} {target.id} is immutable")


@event.listens_for(Sale, "before_delete")
@event.listens_for(SaleItem, "before_delete")
def _reject_sale_delete(mapper, connection, target):
    raise ValueError(f"{type(target).__name__} {target.id} is immutable")
