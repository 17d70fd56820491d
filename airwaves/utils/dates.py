"""Helpers for working with timezone-aware datetimes."""

from __future__ import annotations

from datetime import datetime, timezone


def utcnow() -> datetime:
    """Return the current UTC time as an aware datetime."""

    return datetime.now(timezone.utc)


def ensure_aware(value: datetime) -> datetime:
    """Attach UTC to naive values (SQLite drops ``tzinfo`` on the way out)."""

    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def format_time_ago(value: datetime, now: datetime | None = None) -> str:
    """Render ``value`` as a compact relative time: ``3d ago``, ``2h ago``, ``5m ago``."""

    current = ensure_aware(now or utcnow())
    diff_secs = round((current - ensure_aware(value)).total_seconds())
    diff_mins = round(diff_secs / 60)
    diff_hours = round(diff_mins / 60)
    diff_days = round(diff_hours / 24)

    if diff_days > 0:
        return f"{diff_days}d ago"
    if diff_hours > 0:
        return f"{diff_hours}h ago"
    if diff_mins > 0:
        return f"{diff_mins}m ago"
    return "Just now"
