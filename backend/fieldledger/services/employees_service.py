# backend/fieldledger/services/employees_service.py
"""
Employee directory maintenance (out-of-band admin CRUD).

Holdings and assignments are not writable here; they change only through
custody operations (sales, assignment sagas, approved requests).
"""
from __future__ import annotations

from ..errors import ConflictError, ValidationError
from ..extensions import db
from ..models import Employee
from ..validation import ModelValidationPolicy, is_valid_phone, pagination_meta
from .concurrency import run_atomic

EMPLOYEE_STATUSES = ("Active", "Inactive")

EMPLOYEE_POLICY = ModelValidationPolicy(
    writable_fields={"full_name", "phone_number", "email", "status"},
    required_on_create={"full_name", "phone_number"},
)


def enforce_rules_employee(patch: dict) -> None:
    if "phone_number" in patch and not is_valid_phone(patch["phone_number"]):
        raise ValidationError("Please enter a valid 10-digit phone number")
    if patch.get("email"):
        email = patch["email"].lower()
        if "@" not in email or email.startswith("@") or email.endswith("@"):
            raise ValidationError("Please enter a valid email address")
        patch["email"] = email
    if "status" in patch and patch["status"] not in EMPLOYEE_STATUSES:
        raise ValidationError('status must be "Active" or "Inactive"')


def create_employee(patch: dict) -> Employee:
    enforce_rules_employee(patch)

    def _op():
        existing = db.session.query(Employee).filter_by(phone_number=patch["phone_number"]).first()
        if existing:
            raise ConflictError("An employee with this phone number already exists")
        employee = Employee(**patch)
        db.session.add(employee)
        db.session.flush()
        return employee

    return run_atomic(_op)


def list_employees(*, status: str | None = None, page: int = 1, limit: int = 20) -> tuple[list[Employee], dict]:
    q = db.session.query(Employee)
    if status:
        q = q.filter(Employee.status == status)
    total_count = q.count()
    rows = q.order_by(Employee.full_name.asc(), Employee.id.asc()).offset((page - 1) * limit).limit(limit).all()
    return rows, pagination_meta(page, limit, total_count, len(rows))
