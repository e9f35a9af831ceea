# backend/fieldledger/services/request_service.py
"""
Request workflow engine: stock requests and money requests.

WHY: Moving warehouse stock into custody and clearing collected money both
need a second person's sign-off. Employees file requests; an approver
approves or rejects them.

LIFECYCLE (both kinds):
1. Pending: created after input validation only
2. Approved: effect applied (terminal)
3. Rejected: reason recorded, no effect (terminal)

A failed approval (InsufficientStock, InsufficientHoldings, conflict) leaves
the request Pending; the approver retries later or rejects explicitly.

Creation never checks feasibility. Stock may arrive, and holdings may grow,
between filing and approval, so feasibility is decided only at approve time.
"""
from __future__ import annotations

from flask import current_app

from ..errors import InvalidStateTransition, NotFound, ValidationError
from ..extensions import db
from ..models import MoneyRequest, StockRequest
from ..time_utils import utcnow
from ..validation import MAX_AMOUNT_CENTS, MAX_QUANTITY, coerce_int, optional_text, pagination_meta, require_choice, require_text
from . import custody_service, inventory_service
from .assignment_service import deduct_then_assign
from .concurrency import lock_for_update, run_atomic
from .custody_service import METHOD_ONLINE, PAYMENT_METHODS
from .ledger_service import append_custody_event


# Stock request reasons shorter than this are rejected
MIN_STOCK_REASON_LENGTH = 10

# Request status constants
REQUEST_STATUS_PENDING = "Pending"
REQUEST_STATUS_APPROVED = "Approved"
REQUEST_STATUS_REJECTED = "Rejected"
REQUEST_STATUSES = (REQUEST_STATUS_PENDING, REQUEST_STATUS_APPROVED, REQUEST_STATUS_REJECTED)

KIND_STOCK = "stock"
KIND_MONEY = "money"
_MODELS = {
    KIND_STOCK: StockRequest,
    KIND_MONEY: MoneyRequest,
}


def _model_for(kind: str):
    try:
        return _MODELS[kind]
    except KeyError:
        raise ValidationError('kind must be "stock" or "money"', details={"kind": kind})


def validate_kind(kind: str) -> str:
    _model_for(kind)
    return kind


def _require_pending(req, action: str) -> None:
    if req.status != REQUEST_STATUS_PENDING:
        raise InvalidStateTransition(
            f"Cannot {action} request {req.id}: it has already been processed ({req.status})",
            details={"request_id": req.id, "status": req.status},
        )


def _load_request(kind: str, request_id: int, *, lock: bool = False):
    model = _model_for(kind)
    query = db.session.query(model).filter_by(id=request_id)
    if lock:
        query = lock_for_update(query)
    req = query.first()
    if req is None:
        raise NotFound(f"Request {request_id} not found", details={"kind": kind, "request_id": request_id})
    return req


# =============================================================================
# CREATION (validation only)
# =============================================================================

def create_stock_request(employee_id: int, product_id, quantity, reason) -> StockRequest:
    """
    File a request for warehouse stock.

    Central stock is deliberately not checked here.

    Raises:
        ValidationError: quantity out of range, short reason, missing or inactive product
        NotFound: unknown employee or product
    """
    if product_id is None:
        raise ValidationError("Product is required")
    product_id = coerce_int(product_id, "product_id", minimum=1)
    quantity = coerce_int(quantity, "quantity", minimum=1, maximum=MAX_QUANTITY)
    reason = require_text(reason, "reason")
    if len(reason) < MIN_STOCK_REASON_LENGTH:
        raise ValidationError(f"Reason must be at least {MIN_STOCK_REASON_LENGTH} characters")

    def _op():
        custody_service.load_employee(employee_id)
        product = inventory_service.get_product(product_id)
        if product.status != "Active":
            raise ValidationError(
                "This product is currently inactive",
                details={"product_id": product_id, "status": product.status},
            )

        req = StockRequest(
            employee_id=employee_id,
            product_id=product_id,
            quantity=quantity,
            reason=reason,
            status=REQUEST_STATUS_PENDING,
        )
        db.session.add(req)
        db.session.flush()

        append_custody_event(
            event_type="request.stock.created",
            employee_id=employee_id,
            product_id=product_id,
            stock_request_id=req.id,
            quantity_delta=quantity,
            note=reason[:255],
        )
        return req

    return run_atomic(_op)


def create_money_request(employee_id: int, amount_cents, method, reference_number=None) -> MoneyRequest:
    """
    File a settlement of collected money.

    Holdings are not checked here; approval settles and fails if the bucket
    cannot cover the amount.

    Raises:
        ValidationError: amount <= 0, bad method, Online without reference
        NotFound: unknown employee
    """
    amount_cents = coerce_int(amount_cents, "amount_cents", minimum=1, maximum=MAX_AMOUNT_CENTS)
    method = require_choice(method, "method", PAYMENT_METHODS)
    reference = optional_text(reference_number, max_length=128, field="reference_number")
    if method == METHOD_ONLINE and not reference:
        raise ValidationError("Reference number is required for online payments")
    if method != METHOD_ONLINE:
        reference = None

    def _op():
        custody_service.load_employee(employee_id)

        req = MoneyRequest(
            employee_id=employee_id,
            amount_cents=amount_cents,
            method=method,
            reference_number=reference,
            status=REQUEST_STATUS_PENDING,
        )
        db.session.add(req)
        db.session.flush()

        append_custody_event(
            event_type="request.money.created",
            employee_id=employee_id,
            money_request_id=req.id,
            amount_cents=amount_cents,
            payment_method=method,
        )
        return req

    return run_atomic(_op)


# =============================================================================
# TRANSITIONS
# =============================================================================

def _mark_processed(req, status: str, actor: str | None, rejection_reason: str | None = None) -> None:
    req.status = status
    req.processed_at = utcnow()
    req.processed_by = actor
    if rejection_reason is not None:
        req.rejection_reason = rejection_reason


def _approve_stock(request_id: int, actor: str | None) -> StockRequest:
    req = _load_request(KIND_STOCK, request_id)
    _require_pending(req, "approve")
    employee_id, product_id, quantity = req.employee_id, req.product_id, req.quantity
    custody_service.load_employee(employee_id)
    # Read-only checks; release the snapshot before the saga starts
    db.session.rollback()

    def _finalize(employee, assignment):
        # The request row is re-read in the assign transaction. A concurrent
        # approval that committed first fails the status check or the
        # version check here, and the saga restocks the deducted units.
        locked = _load_request(KIND_STOCK, request_id, lock=True)
        _require_pending(locked, "approve")
        _mark_processed(locked, REQUEST_STATUS_APPROVED, actor)
        append_custody_event(
            event_type="request.stock.approved",
            employee_id=employee.id,
            product_id=product_id,
            stock_request_id=request_id,
            quantity_delta=quantity,
            actor=actor,
        )

    deduct_then_assign(
        employee_id,
        product_id,
        quantity,
        stock_request_id=request_id,
        actor=actor,
        finalize=_finalize,
    )
    current_app.logger.info("Approved stock request %s (%s x product %s)", request_id, quantity, product_id)
    return _load_request(KIND_STOCK, request_id)


def _approve_money(request_id: int, actor: str | None) -> MoneyRequest:
    def _op():
        req = _load_request(KIND_MONEY, request_id, lock=True)
        _require_pending(req, "approve")
        employee = custody_service.load_employee(req.employee_id, lock=True)
        custody_service.settle(
            employee,
            req.amount_cents,
            req.method,
            money_request_id=req.id,
            actor=actor,
        )
        _mark_processed(req, REQUEST_STATUS_APPROVED, actor)
        append_custody_event(
            event_type="request.money.approved",
            employee_id=employee.id,
            money_request_id=req.id,
            amount_cents=req.amount_cents,
            payment_method=req.method,
            actor=actor,
        )
        return req

    req = run_atomic(_op)
    current_app.logger.info("Approved money request %s", request_id)
    return req


def approve_request(request_id: int, kind: str, actor: str | None = None):
    """
    Approve a Pending request and apply its effect.

    Stock: deduct central stock, then assign to the employee (saga with a
    compensating restock). Money: settle the employee's holdings bucket.

    Raises:
        NotFound: unknown request (or its employee/product)
        InvalidStateTransition: request is Approved or Rejected already
        InsufficientStock / InsufficientHoldings: request stays Pending
        ConcurrencyConflict: lost a race; request stays Pending
    """
    _model_for(kind)
    if kind == KIND_STOCK:
        return _approve_stock(request_id, actor)
    return _approve_money(request_id, actor)


def reject_request(request_id: int, kind: str, reason, actor: str | None = None):
    """
    Reject a Pending request. Only the request row changes.

    Raises:
        ValidationError: empty reason
        NotFound: unknown request
        InvalidStateTransition: request is Approved or Rejected already
    """
    _model_for(kind)
    if not isinstance(reason, str) or not reason.strip():
        raise ValidationError("Rejection reason is required")
    reason = reason.strip()

    def _op():
        req = _load_request(kind, request_id, lock=True)
        _require_pending(req, "reject")
        _mark_processed(req, REQUEST_STATUS_REJECTED, actor, rejection_reason=reason)
        append_custody_event(
            event_type=f"request.{kind}.rejected",
            employee_id=req.employee_id,
            stock_request_id=req.id if kind == KIND_STOCK else None,
            money_request_id=req.id if kind == KIND_MONEY else None,
            actor=actor,
            note=reason[:255],
        )
        return req

    return run_atomic(_op)


# =============================================================================
# QUERIES
# =============================================================================

def get_request(kind: str, request_id: int):
    return _load_request(kind, request_id)


def list_requests(
    kind: str,
    *,
    employee_id: int | None = None,
    status: str | None = None,
    page: int = 1,
    limit: int = 20,
) -> tuple[list, dict]:
    """Newest first; status=None or "all" returns every status."""
    model = _model_for(kind)
    q = db.session.query(model)
    if employee_id is not None:
        q = q.filter(model.employee_id == employee_id)
    if status and status != "all":
        require_choice(status, "status", REQUEST_STATUSES)
        q = q.filter(model.status == status)

    total_count = q.count()
    rows = q.order_by(model.created_at.desc(), model.id.desc()).offset((page - 1) * limit).limit(limit).all()
    return rows, pagination_meta(page, limit, total_count, len(rows))
