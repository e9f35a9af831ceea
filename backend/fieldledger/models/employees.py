from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class Employee(db.Model):
    """
    Field employee: the custody aggregate root.

    HOLDINGS:
    cash_cents and online_cents are money collected from sales and not yet
    settled. total_cents == cash_cents + online_cents is enforced by a check
    constraint and maintained by services/custody_service.py.

    AGGREGATE VERSION:
    Assignments live in their own table, but every custody operation bumps
    custody_revision on this row, so version_id increments on every change
    to the aggregate. Two writers that loaded the same version cannot both
    commit.
    """
    __tablename__ = "employees"
    __table_args__ = (
        db.CheckConstraint("cash_cents >= 0", name="ck_employees_cash_nonnegative"),
        db.CheckConstraint("online_cents >= 0", name="ck_employees_online_nonnegative"),
        db.CheckConstraint("total_cents = cash_cents + online_cents", name="ck_employees_total_matches"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    full_name = db.Column(db.String(255), nullable=False)
    phone_number = db.Column(db.String(32), nullable=False, unique=True)
    email = db.Column(db.String(255), nullable=True)
    status = db.Column(db.String(16), nullable=False, default="Active", index=True)

    cash_cents = db.Column(db.BigInteger, nullable=False, default=0)
    online_cents = db.Column(db.BigInteger, nullable=False, default=0)
    total_cents = db.Column(db.BigInteger, nullable=False, default=0)

    custody_revision = db.Column(db.Integer, nullable=False, default=0)
    last_custody_change_at = db.Column(db.DateTime(timezone=True), nullable=True)
    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Employee id={self.id} name={self.full_name!r}>"

    def holdings_dict(self) -> dict:
        return {
            "cash_cents": self.cash_cents,
            "online_cents": self.online_cents,
            "total_cents": self.total_cents,
        }

    def to_dict(self, *, include_assignments: bool = False) -> dict:
        data = {
            "id": self.id,
            "full_name": self.full_name,
            "phone_number": self.phone_number,
            "email": self.email,
            "status": self.status,
            "holdings": self.holdings_dict(),
            "last_custody_change_at": to_utc_z(self.last_custody_change_at),
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
        }
        if include_assignments:
            data["assignments"] = [a.to_dict() for a in self.assignments]
        return data


class EmployeeAssignment(db.Model):
    """
    One entry of an employee's custody map: product_id -> quantity.

    Keyed by (employee_id, product_id). Rows never hold zero; the entry is
    deleted when its quantity reaches zero.
    """
    __tablename__ = "employee_assignments"
    __table_args__ = (
        db.UniqueConstraint("employee_id", "product_id", name="uq_assignments_employee_product"),
        db.CheckConstraint("quantity > 0", name="ck_assignments_quantity_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    employee_id = db.Column(db.Integer, db.ForeignKey("employees.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    quantity = db.Column(db.Integer, nullable=False)
    assigned_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    employee = db.relationship(
        "Employee",
        backref=db.backref("assignments", lazy=True, order_by="EmployeeAssignment.product_id"),
    )
    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "employee_id": self.employee_id,
            "product_id": self.product_id,
            "product_title": self.product.title if self.product else None,
            "quantity": self.quantity,
            "assigned_at": to_utc_z(self.assigned_at),
        }
