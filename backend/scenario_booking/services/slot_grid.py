"""Candidate hour slots a sub-scenario offers on a calendar day.

The grid ignores bookings entirely; occupancy is layered on top by
``availability_service``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from functools import lru_cache

SLOT_MINUTES = 60


def source_weekday(on_date: date) -> int:
    """Weekday number as used by callers: 0 = Sunday ... 6 = Saturday."""
    return on_date.isoweekday() % 7


@dataclass(slots=True, frozen=True)
class OperatingHours:
    """Opening window of a sub-scenario, ``close_hour`` exclusive."""

    open_hour: int
    close_hour: int
    slot_minutes: int = SLOT_MINUTES
    closed_weekdays: frozenset[int] = field(default_factory=frozenset)

    def __post_init__(self) -> None:
        if self.slot_minutes != SLOT_MINUTES:
            raise ValueError(f"slot_minutes must be {SLOT_MINUTES}, got {self.slot_minutes}")
        if not 0 <= self.open_hour < self.close_hour <= 24:
            raise ValueError(
                f"Invalid operating window {self.open_hour}-{self.close_hour}"
            )
        if any(not 0 <= day <= 6 for day in self.closed_weekdays):
            raise ValueError("closed_weekdays must be within 0-6")

    @property
    def slots_per_day(self) -> int:
        return self.close_hour - self.open_hour


@lru_cache(maxsize=256)
def _hours(open_hour: int, close_hour: int) -> tuple[int, ...]:
    return tuple(range(open_hour, close_hour))


def enumerate_slots(hours: OperatingHours, on_date: date) -> list[int]:
    """Return the ordered hour slots offered on ``on_date``."""
    if source_weekday(on_date) in hours.closed_weekdays:
        return []
    return list(_hours(hours.open_hour, hours.close_hour))


def slot_bounds(hour: int) -> tuple[str, str]:
    """Start and end clock times of the slot beginning at ``hour``."""
    end = hour * 60 + SLOT_MINUTES
    return f"{hour:02d}:00", f"{end // 60:02d}:{end % 60:02d}"


def slot_label(hour: int) -> str:
    """Format an hour slot as ``"HH:00 - HH:00"``."""
    return " - ".join(slot_bounds(hour))


__all__ = [
    "OperatingHours",
    "SLOT_MINUTES",
    "enumerate_slots",
    "slot_bounds",
    "slot_label",
    "source_weekday",
]
