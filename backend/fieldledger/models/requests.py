from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class StockRequest(db.Model):
    """
    Employee request for stock from the central warehouse.

    LIFECYCLE:
    1. Pending: created; central stock is NOT checked yet
    2. Approved: stock deducted centrally and assigned to the employee
    3. Rejected: rejection_reason recorded, nothing else changes

    Approved and Rejected are terminal. version_id makes two concurrent
    approvals of the same request collide instead of both succeeding.
    """
    __tablename__ = "stock_requests"
    __table_args__ = (
        db.CheckConstraint("quantity >= 1", name="ck_stock_requests_quantity_positive"),
        db.Index("ix_stock_requests_employee_status", "employee_id", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    employee_id = db.Column(db.Integer, db.ForeignKey("employees.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    quantity = db.Column(db.Integer, nullable=False)
    reason = db.Column(db.Text, nullable=False)

    status = db.Column(db.String(16), nullable=False, default="Pending", index=True)  # Pending, Approved, Rejected
    rejection_reason = db.Column(db.Text, nullable=True)
    processed_by = db.Column(db.String(64), nullable=True)
    processed_at = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)
    version_id = db.Column(db.Integer, nullable=False, default=1)

    employee = db.relationship("Employee")
    product = db.relationship("Product")
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "kind": "stock",
            "employee_id": self.employee_id,
            "product_id": self.product_id,
            "product_title": self.product.title if self.product else None,
            "quantity": self.quantity,
            "reason": self.reason,
            "status": self.status,
            "rejection_reason": self.rejection_reason,
            "processed_by": self.processed_by,
            "processed_at": to_utc_z(self.processed_at),
            "created_at": to_utc_z(self.created_at),
            "version_id": self.version_id,
        }


class MoneyRequest(db.Model):
    """
    Employee settlement of collected money.

    Approval decrements the matching holdings bucket (cash or online) by
    amount_cents. reference_number is required for Online settlements.
    """
    __tablename__ = "money_requests"
    __table_args__ = (
        db.CheckConstraint("amount_cents > 0", name="ck_money_requests_amount_positive"),
        db.Index("ix_money_requests_employee_status", "employee_id", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    employee_id = db.Column(db.Integer, db.ForeignKey("employees.id"), nullable=False, index=True)
    amount_cents = db.Column(db.BigInteger, nullable=False)
    method = db.Column(db.String(16), nullable=False)  # Cash, Online
    reference_number = db.Column(db.String(128), nullable=True)

    status = db.Column(db.String(16), nullable=False, default="Pending", index=True)
    rejection_reason = db.Column(db.Text, nullable=True)
    processed_by = db.Column(db.String(64), nullable=True)
    processed_at = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)
    version_id = db.Column(db.Integer, nullable=False, default=1)

    employee = db.relationship("Employee")
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "kind": "money",
            "employee_id": self.employee_id,
            "amount_cents": self.amount_cents,
            "method": self.method,
            "reference_number": self.reference_number,
            "status": self.status,
            "rejection_reason": self.rejection_reason,
            "processed_by": self.processed_by,
            "processed_at": to_utc_z(self.processed_at),
            "created_at": to_utc_z(self.created_at),
            "version_id": self.version_id,
        }
