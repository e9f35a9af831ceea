# Overview: Read-only dashboard aggregates over sales, requests, holdings and stock.

from __future__ import annotations

from sqlalchemy import func

from ..extensions import db
from ..models import Employee, EmployeeAssignment, MoneyRequest, Product, Sale, SaleItem, StockRequest
from ..time_utils import parse_time_range, to_utc_z, utcnow
from .custody_service import PAYMENT_METHODS
from .request_service import REQUEST_STATUSES


def _sales_by_method(start_dt, end_dt) -> dict:
    query = db.session.query(
        Sale.payment_method,
        func.count(Sale.id),
        func.coalesce(func.sum(Sale.total_amount_cents), 0),
    )
    if start_dt:
        query = query.filter(Sale.created_at >= start_dt)
    if end_dt:
        query = query.filter(Sale.created_at <= end_dt)

    totals = {m: {"count": 0, "amount_cents": 0} for m in PAYMENT_METHODS}
    for method, count, amount in query.group_by(Sale.payment_method).all():
        totals[method] = {"count": int(count or 0), "amount_cents": int(amount or 0)}
    return totals


def _request_counts(model) -> dict:
    counts = {s: 0 for s in REQUEST_STATUSES}
    for status, count in db.session.query(model.status, func.count(model.id)).group_by(model.status).all():
        counts[status] = int(count or 0)
    return counts


def _top_products(start_dt, end_dt, limit: int) -> list[dict]:
    query = db.session.query(
        SaleItem.product_id,
        func.max(SaleItem.product_title).label("product_title"),
        func.coalesce(func.sum(SaleItem.quantity), 0).label("units_sold"),
        func.coalesce(func.sum(SaleItem.total_price_cents), 0).label("revenue_cents"),
    ).join(Sale, Sale.id == SaleItem.sale_id)
    if start_dt:
        query = query.filter(Sale.created_at >= start_dt)
    if end_dt:
        query = query.filter(Sale.created_at <= end_dt)

    rows = query.group_by(SaleItem.product_id).order_by(
        func.sum(SaleItem.total_price_cents).desc(), SaleItem.product_id.asc()
    ).limit(limit).all()
    return [
        {
            "product_id": row.product_id,
            "product_title": row.product_title,
            "units_sold": int(row.units_sold or 0),
            "revenue_cents": int(row.revenue_cents or 0),
        }
        for row in rows
    ]


def _top_employees(start_dt, end_dt, limit: int) -> list[dict]:
    query = db.session.query(
        Sale.employee_id,
        func.count(Sale.id).label("sales_count"),
        func.coalesce(func.sum(Sale.total_amount_cents), 0).label("revenue_cents"),
    )
    if start_dt:
        query = query.filter(Sale.created_at >= start_dt)
    if end_dt:
        query = query.filter(Sale.created_at <= end_dt)

    rows = query.group_by(Sale.employee_id).order_by(
        func.sum(Sale.total_amount_cents).desc(), Sale.employee_id.asc()
    ).limit(limit).all()
    names = dict(
        db.session.query(Employee.id, Employee.full_name).filter(
            Employee.id.in_([r.employee_id for r in rows])
        ).all()
    ) if rows else {}
    return [
        {
            "employee_id": row.employee_id,
            "full_name": names.get(row.employee_id),
            "sales_count": int(row.sales_count or 0),
            "revenue_cents": int(row.revenue_cents or 0),
        }
        for row in rows
    ]


def dashboard(*, start: str | None = None, end: str | None = None, top: int = 5) -> dict:
    """
    Summary counts for the admin dashboard. Never writes.

    Raises:
        ValidationError: unparseable start/end, or start after end
    """
    start_dt, end_dt = parse_time_range(start, end)
    top = max(1, min(top, 50))

    cash, online, total = db.session.query(
        func.coalesce(func.sum(Employee.cash_cents), 0),
        func.coalesce(func.sum(Employee.online_cents), 0),
        func.coalesce(func.sum(Employee.total_cents), 0),
    ).one()
    warehouse_units = db.session.query(func.coalesce(func.sum(Product.stock_quantity), 0)).scalar()
    assigned_units = db.session.query(func.coalesce(func.sum(EmployeeAssignment.quantity), 0)).scalar()

    return {
        "generated_at": to_utc_z(utcnow()),
        "start": to_utc_z(start_dt) if start_dt else None,
        "end": to_utc_z(end_dt) if end_dt else None,
        "sales": _sales_by_method(start_dt, end_dt),
        "requests": {
            "stock": _request_counts(StockRequest),
            "money": _request_counts(MoneyRequest),
        },
        "holdings": {
            "cash_cents": int(cash or 0),
            "online_cents": int(online or 0),
            "total_cents": int(total or 0),
        },
        "stock": {
            "products": db.session.query(Product).count(),
            "warehouse_units": int(warehouse_units or 0),
            "assigned_units": int(assigned_units or 0),
        },
        "employees": db.session.query(Employee).count(),
        "top_products": _top_products(start_dt, end_dt, top),
        "top_employees": _top_employees(start_dt, end_dt, top),
    }
