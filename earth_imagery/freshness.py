from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta


DEFAULT_WINDOW = timedelta(hours=12)


def is_stale(now: datetime, captured_at: datetime, window: timedelta = DEFAULT_WINDOW) -> bool:
    """True once the record is at least `window` old (the boundary itself is stale)."""
    return (now - captured_at) >= window


@dataclass(frozen=True)
class FreshnessPolicy:
    window: timedelta = DEFAULT_WINDOW

    @classmethod
    def from_hours(cls, hours: float) -> "FreshnessPolicy":
        if hours <= 0:
            raise ValueError("freshness window must be positive")
        return cls(window=timedelta(hours=float(hours)))

    @property
    def max_age_seconds(self) -> int:
        return int(self.window.total_seconds())

    def is_stale(self, now: datetime, captured_at: datetime) -> bool:
        return is_stale(now, captured_at, self.window)
