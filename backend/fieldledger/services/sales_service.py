"""
Sale recorder - converts an employee's assigned stock into holdings

WHY: A field sale is the only path by which custody turns into money. It
must consume every line from the employee's custody and credit the payment
bucket in one unit of work, so a partial sale is never observable.

FLOW:
1. validate shape (no DB access)
2. check every line against custody, collecting ALL violations
3. consume + insert Sale with snapshots + credit holdings, one commit
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from ..errors import InsufficientAssignedStock, ProductNotAssigned, NotFound, ValidationError
from ..extensions import db
from ..models import Product, Sale, SaleItem
from ..validation import (
    MAX_AMOUNT_CENTS,
    MAX_QUANTITY,
    coerce_int,
    is_valid_phone,
    optional_text,
    pagination_meta,
)
from . import custody_service
from .concurrency import run_atomic
from .custody_service import PAYMENT_METHODS


@dataclass(frozen=True)
class SaleLineInput:
    product_id: int
    product_title: str | None
    quantity: int
    price_per_unit_cents: int

    @property
    def total_price_cents(self) -> int:
        return self.quantity * self.price_per_unit_cents


@dataclass(frozen=True)
class CustomerInput:
    name: str
    phone: str
    email: str | None = None
    address: str | None = None


def _validate_items(raw_items) -> tuple[list[SaleLineInput], list[str]]:
    problems: list[str] = []
    lines: list[SaleLineInput] = []

    if not raw_items or not isinstance(raw_items, list):
        return lines, ["At least one item is required"]

    for i, raw in enumerate(raw_items, start=1):
        if not isinstance(raw, dict):
            problems.append(f"Item {i}: must be an object")
            continue
        try:
            product_id = coerce_int(raw.get("product_id"), "product_id", minimum=1)
            quantity = coerce_int(raw.get("quantity"), "quantity", minimum=1, maximum=MAX_QUANTITY)
            price = coerce_int(
                raw.get("price_per_unit_cents"),
                "price_per_unit_cents",
                minimum=0,
                maximum=MAX_AMOUNT_CENTS,
            )
            title = optional_text(raw.get("product_title"), max_length=255, field="product_title")
        except ValidationError as exc:
            problems.append(f"Item {i}: {exc.message}")
            continue
        lines.append(SaleLineInput(product_id, title, quantity, price))

    return lines, problems


def _validate_customer(raw) -> tuple[CustomerInput | None, list[str]]:
    if not isinstance(raw, dict):
        return None, ["Customer information is required"]

    problems: list[str] = []
    name = raw.get("name")
    phone = raw.get("phone")

    if not isinstance(name, str) or not name.strip():
        problems.append("Customer name is required")
    if not isinstance(phone, str) or not phone.strip():
        problems.append("Customer phone is required")
    elif not is_valid_phone(phone):
        problems.append("Please enter a valid 10-digit phone number")

    try:
        email = optional_text(raw.get("email"), max_length=255, field="customer email")
        address = optional_text(raw.get("address"), field="customer address")
    except ValidationError as exc:
        problems.append(exc.message)
        email = address = None

    if problems:
        return None, problems
    return CustomerInput(
        name=name.strip(),
        phone=phone.strip(),
        email=email.lower() if email else None,
        address=address,
    ), []


def validate_sale_input(items, customer, payment_method) -> tuple[list[SaleLineInput], CustomerInput]:
    """Step 1: shape validation. Raises ValidationError listing every problem."""
    lines, problems = _validate_items(items)
    customer_input, customer_problems = _validate_customer(customer)
    problems.extend(customer_problems)

    if payment_method not in PAYMENT_METHODS:
        problems.append('Payment method must be "Cash" or "Online"')

    if problems:
        raise ValidationError(problems[0], details={"errors": problems})
    return lines, customer_input


def check_custody(employee_id: int, lines: list[SaleLineInput]) -> None:
    """
    Step 2/3: every line must be covered by the employee's assignments.

    Repeated product lines are summed. All violations are reported together.
    """
    held = custody_service.assignments_map(employee_id)

    requested: dict[int, int] = {}
    titles: dict[int, str | None] = {}
    for line in lines:
        requested[line.product_id] = requested.get(line.product_id, 0) + line.quantity
        titles.setdefault(line.product_id, line.product_title)

    violations = []
    for product_id, qty in requested.items():
        available = held.get(product_id)
        if available is None:
            violations.append({
                "product_id": product_id,
                "product_title": titles[product_id],
                "requested_quantity": qty,
                "assigned_quantity": 0,
                "reason": "not_assigned",
            })
        elif available < qty:
            violations.append({
                "product_id": product_id,
                "product_title": titles[product_id],
                "requested_quantity": qty,
                "assigned_quantity": available,
                "reason": "insufficient",
            })

    if not violations:
        return

    missing = [v for v in violations if v["reason"] == "not_assigned"]
    short = [v for v in violations if v["reason"] == "insufficient"]
    parts = []
    if missing:
        parts.append("Not assigned: " + ", ".join(str(v["product_title"] or v["product_id"]) for v in missing))
    if short:
        parts.append("Insufficient stock for: " + "; ".join(
            f"{v['product_title'] or v['product_id']}: need {v['requested_quantity']}, have {v['assigned_quantity']}"
            for v in short
        ))
    error_cls = ProductNotAssigned if not short else InsufficientAssignedStock
    raise error_cls(". ".join(parts), details={"items": violations})


def _check_price_floor(lines: list[SaleLineInput]) -> None:
    below = []
    for line in lines:
        product = db.session.get(Product, line.product_id)
        if product is not None and line.price_per_unit_cents < product.lowest_selling_price_cents:
            below.append({
                "product_id": line.product_id,
                "price_per_unit_cents": line.price_per_unit_cents,
                "lowest_selling_price_cents": product.lowest_selling_price_cents,
            })
    if below:
        raise ValidationError("Price below lowest selling price", details={"items": below})


def create_sale(
    employee_id: int,
    items,
    customer,
    payment_method,
    *,
    enforce_price_floor: bool = False,
) -> tuple[Sale, dict]:
    """
    Record a sale against one employee's custody.

    Returns:
        (sale, holdings) where holdings is the employee's resulting
        {cash_cents, online_cents, total_cents}

    Raises:
        ValidationError: malformed input (nothing touched)
        NotFound: unknown employee
        ProductNotAssigned / InsufficientAssignedStock: custody does not
            cover the sale; details["items"] lists every offending product
        ConcurrencyConflict: the employee changed concurrently
    """
    lines, customer_input = validate_sale_input(items, customer, payment_method)

    def _op():
        employee = custody_service.load_employee(employee_id, lock=True)
        check_custody(employee.id, lines)
        if enforce_price_floor:
            _check_price_floor(lines)

        total_amount = sum(line.total_price_cents for line in lines)

        sale = Sale(
            employee_id=employee.id,
            customer_name=customer_input.name,
            customer_phone=customer_input.phone,
            customer_email=customer_input.email,
            customer_address=customer_input.address,
            payment_method=payment_method,
            total_amount_cents=total_amount,
        )
        db.session.add(sale)
        db.session.flush()

        for line in lines:
            title = line.product_title
            if title is None:
                product = db.session.get(Product, line.product_id)
                title = product.title if product else f"Product {line.product_id}"
            db.session.add(SaleItem(
                sale_id=sale.id,
                product_id=line.product_id,
                product_title=title,
                quantity=line.quantity,
                price_per_unit_cents=line.price_per_unit_cents,
                total_price_cents=line.total_price_cents,
            ))
            custody_service.consume(employee, line.product_id, line.quantity, sale_id=sale.id)

        holdings = custody_service.credit(employee, total_amount, payment_method, sale_id=sale.id)
        return sale, holdings

    return run_atomic(_op)


def get_sale(sale_id: int) -> Sale:
    sale = db.session.get(Sale, sale_id)
    if sale is None:
        raise NotFound(f"Sale {sale_id} not found", details={"sale_id": sale_id})
    return sale


def list_sales(
    *,
    employee_id: int | None = None,
    payment_method: str | None = None,
    product_id: int | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
    page: int = 1,
    limit: int = 20,
) -> tuple[list[Sale], dict]:
    """Newest first. product_id matches sales containing that product."""
    q = db.session.query(Sale)
    if employee_id is not None:
        q = q.filter(Sale.employee_id == employee_id)
    if payment_method in PAYMENT_METHODS:
        q = q.filter(Sale.payment_method == payment_method)
    if product_id is not None:
        q = q.filter(Sale.items.any(SaleItem.product_id == product_id))
    if start is not None:
        q = q.filter(Sale.created_at >= start)
    if end is not None:
        q = q.filter(Sale.created_at <= end)

    total_count = q.count()
    sales = q.order_by(Sale.created_at.desc(), Sale.id.desc()).offset((page - 1) * limit).limit(limit).all()
    return sales, pagination_meta(page, limit, total_count, len(sales))
