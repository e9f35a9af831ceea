# Overview: Transaction boundary for custody mutations; row locks, commit, rollback and conflict mapping.

from __future__ import annotations

import time

from flask import current_app
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..errors import ConcurrencyConflict
from ..extensions import db


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    The version_id check still catches the race on SQLite.
    """
    return query.with_for_update()


def run_atomic(func, *, attempts: int | None = None, backoff_base: float | None = None):
    """
    Execute func as one all-or-nothing DB transaction and commit it.

    - Any exception rolls the session back before propagating.
    - StaleDataError (optimistic version mismatch) is a lost race and
      surfaces immediately as ConcurrencyConflict; the caller decides
      whether to retry.
    - OperationalError (lock busy, deadlock victim) is retried with
      exponential backoff, then surfaces as ConcurrencyConflict.
    """
    if attempts is None:
        attempts = current_app.config.get("LOCK_RETRY_ATTEMPTS", 3)
    if backoff_base is None:
        backoff_base = current_app.config.get("LOCK_RETRY_BACKOFF", 0.1)
    attempts = max(1, attempts)

    for attempt in range(attempts):
        try:
            result = func()
            db.session.commit()
            return result
        except StaleDataError as exc:
            db.session.rollback()
            raise ConcurrencyConflict(
                "Record was modified concurrently; reload and retry",
                details={"reason": str(exc)},
            ) from exc
        except OperationalError as exc:
            db.session.rollback()
            if attempt >= attempts - 1:
                raise ConcurrencyConflict(
                    "Database is busy; retry the operation",
                    details={"reason": str(exc.orig) if exc.orig else str(exc)},
                ) from exc
            time.sleep(backoff_base * (2 ** attempt))
        except Exception:
            db.session.rollback()
            raise
