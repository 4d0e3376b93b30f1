from __future__ import annotations

from datetime import date, datetime, timezone


def utc_now() -> datetime:
    """Timezone-aware current UTC time (default clock for the cache)."""
    return datetime.now(timezone.utc)


def iso_now_ms() -> str:
    """UTC ISO-8601 timestamp with millisecond precision."""
    return utc_now().isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_iso8601(ts: str) -> datetime:
    """Parse an ISO-8601 timestamp with optional 'Z'; naive values are taken as UTC."""
    if ts.endswith("Z"):
        ts = ts[:-1] + "+00:00"
    dt = datetime.fromisoformat(ts)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def parse_capture_date(value: str) -> date:
    """
    Calendar date of a provider timestamp such as "2025-07-02 00:13:03".
    Raises ValueError if the value is not ISO-like.
    """
    return datetime.fromisoformat(str(value).strip()).date()
