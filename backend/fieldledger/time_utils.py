# Overview: UTC timestamps for stored rows and ISO-8601 handling at the API boundary.

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from .errors import ValidationError


def utcnow() -> datetime:
    """Timestamp for created_at / processed_at / occurred_at columns (UTC, naive)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def parse_iso_datetime(value: Optional[str], field: str = "datetime") -> Optional[datetime]:
    """
    Parse a query-string timestamp into the UTC-naive form stored in the DB.

    Blank means "no bound". Dates without a time and naive values are taken
    as UTC; "Z" and "+HH:MM" offsets are converted.

    Raises:
        ValidationError: value is not ISO-8601
    """
    if value is None:
        return None
    text = value.strip()
    if not text:
        return None

    if text.endswith("Z"):
        text = text[:-1] + "+00:00"

    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        raise ValidationError(
            f"{field} must be an ISO-8601 date or datetime",
            details={"field": field, "value": value},
        )
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def parse_time_range(start: Optional[str], end: Optional[str]) -> tuple[Optional[datetime], Optional[datetime]]:
    """Parse an optional start/end pair used to filter sales and reports."""
    start_dt = parse_iso_datetime(start, "start")
    end_dt = parse_iso_datetime(end, "end")
    if start_dt and end_dt and start_dt > end_dt:
        raise ValidationError("start must be before end", details={"start": start, "end": end})
    return start_dt, end_dt


def to_utc_z(dt: Optional[datetime]) -> Optional[str]:
    # Stored values are naive UTC
    if dt is None:
        return None
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt.replace(microsecond=0).isoformat() + "Z"
