"""Deal lifecycle: derived "active" state and remaining-time display.

Nothing here is stored; every value is recomputed from ``is_active`` and
``end_time`` against the caller's clock.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Protocol

from localdeals.errors import ValidationFailed

MIN_DURATION_HOURS = 1
MAX_DURATION_HOURS = 168

EXPIRED_LABEL = "Expired"


class _TimedDeal(Protocol):
    is_active: bool
    end_time: datetime


@dataclass(frozen=True, slots=True)
class RemainingTime:
    hours: int
    minutes: int

    def __str__(self) -> str:
        if self.hours:
            return f"{self.hours}h {self.minutes}m"
        return f"{self.minutes}m"

    @classmethod
    def from_timedelta(cls, delta: timedelta) -> "RemainingTime":
        total_minutes = int(delta.total_seconds()) // 60
        hours, minutes = divmod(total_minutes, 60)
        return cls(hours=hours, minutes=minutes)


def _utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def is_currently_active(deal: _TimedDeal, now: datetime | None = None) -> bool:
    now = _utc(now or datetime.now(timezone.utc))
    return bool(deal.is_active) and now < _utc(deal.end_time)


def remaining_time(deal: _TimedDeal, now: datetime | None = None) -> RemainingTime | None:
    """Time left before *deal* ends, or ``None`` once it has expired."""
    now = _utc(now or datetime.now(timezone.utc))
    end_time = _utc(deal.end_time)
    if now >= end_time:
        return None
    return RemainingTime.from_timedelta(end_time - now)


def format_remaining_time(deal: _TimedDeal, now: datetime | None = None) -> str:
    remaining = remaining_time(deal, now)
    return EXPIRED_LABEL if remaining is None else str(remaining)


def compute_end_time(start: datetime, duration_hours: int) -> datetime:
    if not MIN_DURATION_HOURS <= duration_hours <= MAX_DURATION_HOURS:
        raise ValidationFailed(
            "Deal duration must be between 1 and 168 hours",
            details={"duration": duration_hours},
        )
    return _utc(start) + timedelta(hours=duration_hours)
