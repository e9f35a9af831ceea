# Overview: Append-only custody event log; written inside the caller's transaction.

from __future__ import annotations

from typing import Optional
from datetime import datetime

from ..extensions import db
from ..models import CustodyEvent
from ..time_utils import utcnow
"""
Custody event log invariants (authoritative)

- Append-only audit log of custody mutations.
- No domain/business logic in the log itself.
- Events are added to the session of the mutation they record and commit
  (or roll back) with it.
- occurred_at is business time; defaults to now (UTC).
"""


def append_custody_event(
    *,
    event_type: str,
    employee_id: int | None = None,
    product_id: int | None = None,
    sale_id: int | None = None,
    stock_request_id: int | None = None,
    money_request_id: int | None = None,
    quantity_delta: int | None = None,
    amount_cents: int | None = None,
    payment_method: str | None = None,
    actor: str | None = None,
    occurred_at: Optional[datetime] = None,
    note: Optional[str] = None,
) -> CustodyEvent:
    ev = CustodyEvent(
        event_type=event_type,
        employee_id=employee_id,
        product_id=product_id,
        sale_id=sale_id,
        stock_request_id=stock_request_id,
        money_request_id=money_request_id,
        quantity_delta=quantity_delta,
        amount_cents=amount_cents,
        payment_method=payment_method,
        actor=actor,
        occurred_at=occurred_at or utcnow(),
        note=note,
    )
    db.session.add(ev)
    db.session.flush()
    return ev


def list_custody_events(
    *,
    employee_id: int | None = None,
    product_id: int | None = None,
    event_type: str | None = None,
    limit: int = 100,
) -> list[CustodyEvent]:
    q = db.session.query(CustodyEvent)
    if employee_id is not None:
        q = q.filter(CustodyEvent.employee_id == employee_id)
    if product_id is not None:
        q = q.filter(CustodyEvent.product_id == product_id)
    if event_type:
        q = q.filter(CustodyEvent.event_type == event_type)
    return q.order_by(CustodyEvent.id.desc()).limit(limit).all()
