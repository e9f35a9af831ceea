from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class CustodyEvent(db.Model):
    """
    Append-only audit trail of custody mutations.

    Written in the same DB transaction as the change it records, so an event
    exists if and only if its mutation committed. Never updated or deleted.
    """
    __tablename__ = "custody_events"
    __table_args__ = (
        db.Index("ix_custody_events_employee_occurred", "employee_id", "occurred_at"),
        db.Index("ix_custody_events_product_occurred", "product_id", "occurred_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    event_type = db.Column(db.String(64), nullable=False, index=True)

    employee_id = db.Column(db.Integer, db.ForeignKey("employees.id"), nullable=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=True, index=True)
    stock_request_id = db.Column(db.Integer, db.ForeignKey("stock_requests.id"), nullable=True, index=True)
    money_request_id = db.Column(db.Integer, db.ForeignKey("money_requests.id"), nullable=True, index=True)

    quantity_delta = db.Column(db.Integer, nullable=True)
    amount_cents = db.Column(db.BigInteger, nullable=True)
    payment_method = db.Column(db.String(16), nullable=True)

    actor = db.Column(db.String(64), nullable=True)
    note = db.Column(db.String(255), nullable=True)

    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "event_type": self.event_type,
            "employee_id": self.employee_id,
            "product_id": self.product_id,
            "sale_id": self.sale_id,
            "stock_request_id": self.stock_request_id,
            "money_request_id": self.money_request_id,
            "quantity_delta": self.quantity_delta,
            "amount_cents": self.amount_cents,
            "payment_method": self.payment_method,
            "actor": self.actor,
            "note": self.note,
            "occurred_at": to_utc_z(self.occurred_at),
        }
