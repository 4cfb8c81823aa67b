"""Availability computation for a sub-scenario over a date window."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import UTC, date, datetime, timedelta
from decimal import ROUND_FLOOR, ROUND_HALF_EVEN, ROUND_HALF_UP, Decimal
from typing import Literal

from sqlalchemy.ext.asyncio import AsyncSession

from scenario_booking.core.config import get_settings
from scenario_booking.core.errors import NotFoundError, ValidationError
from scenario_booking.models.reservation import Reservation
from scenario_booking.models.sub_scenario import SubScenario
from scenario_booking.services import reservation_repository
from scenario_booking.services.reservation_state_service import BLOCKING_STATES
from scenario_booking.services.slot_grid import (
    OperatingHours,
    enumerate_slots,
    source_weekday,
)

logger = logging.getLogger(__name__)

RoundingMode = Literal["half_up", "half_even", "floor"]

_ROUNDING: dict[str, str] = {
    "half_up": ROUND_HALF_UP,
    "half_even": ROUND_HALF_EVEN,
    "floor": ROUND_FLOOR,
}


@dataclass(slots=True, frozen=True)
class AvailabilityConfiguration:
    """Query window for one sub-scenario."""

    resource_id: int
    initial_date: date
    final_date: date | None = None
    weekdays: frozenset[int] | None = None

    @property
    def effective_final_date(self) -> date:
        return self.final_date or self.initial_date

    def cache_key(self) -> str:
        weekdays = ",".join(str(day) for day in sorted(self.weekdays)) if self.weekdays is not None else "*"
        return (
            f"availability:{self.resource_id}:{self.initial_date.isoformat()}:"
            f"{self.effective_final_date.isoformat()}:{weekdays}"
        )


@dataclass(slots=True, frozen=True)
class TimeSlot:
    """One bookable hour on one date."""

    hour: int
    date_key: str
    is_available: bool
    is_available_in_all_dates: bool | None = None


@dataclass(slots=True, frozen=True)
class AvailabilityStats:
    total_dates: int
    total_timeslots: int
    total_slots: int
    available_slots: int
    occupied_slots: int
    global_availability_percentage: int
    dates_with_full_availability: int
    dates_with_no_availability: int


@dataclass(slots=True, frozen=True)
class AvailabilityResult:
    resource_id: int
    requested_configuration: AvailabilityConfiguration
    calculated_dates: list[str]
    time_slots: list[TimeSlot]
    stats: AvailabilityStats
    queried_at: datetime = field(default_factory=lambda: datetime.now(UTC))


def _parse_date(value: str | date | None, field_name: str) -> date | None:
    if value is None or value == "":
        return None
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(value.strip())
    except ValueError as exc:
        raise ValidationError(
            f"{field_name} must be a calendar date formatted YYYY-MM-DD",
            field=field_name,
        ) from exc


def _parse_weekdays(value: str | Iterable[int] | None) -> frozenset[int] | None:
    if value is None:
        return None
    if isinstance(value, str):
        parts = [part.strip() for part in value.split(",") if part.strip()]
        if not parts:
            return None
        try:
            days = [int(part) for part in parts]
        except ValueError as exc:
            raise ValidationError(
                "weekdays must be comma separated integers", field="weekdays"
            ) from exc
    else:
        days = list(value)
    if any(not 0 <= day <= 6 for day in days):
        raise ValidationError("weekdays must be within 0-6", field="weekdays")
    return frozenset(days)


def parse_configuration(
    resource_id: int | str | None,
    initial_date: str | date | None,
    final_date: str | date | None = None,
    weekdays: str | Iterable[int] | None = None,
) -> AvailabilityConfiguration:
    """Build a configuration from raw boundary values, validating each field."""
    try:
        resource = int(resource_id) if resource_id is not None else 0
    except (TypeError, ValueError) as exc:
        raise ValidationError("resourceId must be an integer", field="resourceId") from exc
    initial = _parse_date(initial_date, "initialDate")
    if initial is None:
        raise ValidationError("initialDate is required", field="initialDate")
    configuration = AvailabilityConfiguration(
        resource_id=resource,
        initial_date=initial,
        final_date=_parse_date(final_date, "finalDate"),
        weekdays=_parse_weekdays(weekdays),
    )
    validate_configuration(configuration)
    return configuration


def validate_configuration(
    configuration: AvailabilityConfiguration,
    *,
    max_range_days: int | None = None,
) -> None:
    if configuration.resource_id <= 0:
        raise ValidationError("resourceId must be a positive integer", field="resourceId")
    if (
        configuration.final_date is not None
        and configuration.final_date < configuration.initial_date
    ):
        raise ValidationError(
            "finalDate must be on or after initialDate", field="finalDate"
        )
    if configuration.weekdays is not None and any(
        not 0 <= day <= 6 for day in configuration.weekdays
    ):
        raise ValidationError("weekdays must be within 0-6", field="weekdays")
    if max_range_days is not None:
        span = (configuration.effective_final_date - configuration.initial_date).days + 1
        if span > max_range_days:
            raise ValidationError(
                f"Date range cannot exceed {max_range_days} days", field="finalDate"
            )


def calculate_dates(configuration: AvailabilityConfiguration) -> list[date]:
    dates: list[date] = []
    current = configuration.initial_date
    while current <= configuration.effective_final_date:
        if configuration.weekdays is None or source_weekday(current) in configuration.weekdays:
            dates.append(current)
        current += timedelta(days=1)
    return dates


def availability_percentage(
    available: int, total: int, rounding: RoundingMode = "half_up"
) -> int:
    if total <= 0:
        return 0
    ratio = Decimal(100) * Decimal(available) / Decimal(total)
    return int(ratio.quantize(Decimal(1), rounding=_ROUNDING[rounding]))


def compute_availability(
    configuration: AvailabilityConfiguration,
    reservations: Sequence[Reservation],
    *,
    operating_hours: OperatingHours,
    max_range_days: int | None = None,
    rounding: RoundingMode = "half_up",
) -> AvailabilityResult:
    """Mark every candidate slot in the window as free or occupied."""
    validate_configuration(configuration, max_range_days=max_range_days)

    blocking = [
        reservation
        for reservation in reservations
        if reservation.sub_scenario_id == configuration.resource_id
        and reservation.state in BLOCKING_STATES
    ]
    dates = calculate_dates(configuration)
    multi_date = len(dates) > 1

    per_date: list[tuple[str, list[tuple[int, bool]]]] = []
    for current in dates:
        marks = [
            (hour, not any(booking.covers(current, hour) for booking in blocking))
            for hour in enumerate_slots(operating_hours, current)
        ]
        per_date.append((current.isoformat(), marks))

    all_hours = sorted({hour for _, marks in per_date for hour, _ in marks})
    free_everywhere: dict[int, bool] = {}
    if multi_date:
        lookup = [dict(marks) for _, marks in per_date]
        for hour in all_hours:
            free_everywhere[hour] = all(
                marks.get(hour, False) for marks in lookup
            )

    time_slots: list[TimeSlot] = []
    full_dates = 0
    empty_dates = 0
    for date_key, marks in per_date:
        free_count = sum(1 for _, free in marks if free)
        if marks and free_count == len(marks):
            full_dates += 1
        if free_count == 0:
            empty_dates += 1
        time_slots.extend(
            TimeSlot(
                hour=hour,
                date_key=date_key,
                is_available=free,
                is_available_in_all_dates=free_everywhere[hour] if multi_date else None,
            )
            for hour, free in marks
        )

    total_slots = len(time_slots)
    available_slots = sum(1 for slot in time_slots if slot.is_available)
    stats = AvailabilityStats(
        total_dates=len(dates),
        total_timeslots=len(all_hours),
        total_slots=total_slots,
        available_slots=available_slots,
        occupied_slots=total_slots - available_slots,
        global_availability_percentage=availability_percentage(
            available_slots, total_slots, rounding
        ),
        dates_with_full_availability=full_dates,
        dates_with_no_availability=empty_dates,
    )
    return AvailabilityResult(
        resource_id=configuration.resource_id,
        requested_configuration=configuration,
        calculated_dates=[date_key for date_key, _ in per_date],
        time_slots=time_slots,
        stats=stats,
    )


def operating_hours_for(sub_scenario: SubScenario) -> OperatingHours:
    return OperatingHours(
        open_hour=sub_scenario.open_hour,
        close_hour=sub_scenario.close_hour,
        closed_weekdays=sub_scenario.closed_weekday_set,
    )


async def get_availability(
    session: AsyncSession,
    configuration: AvailabilityConfiguration,
) -> AvailabilityResult:
    """Load the sub-scenario and its bookings, then compute availability."""
    settings = get_settings()
    validate_configuration(
        configuration, max_range_days=settings.availability_max_range_days
    )
    sub_scenario = await reservation_repository.get_sub_scenario(
        session, configuration.resource_id
    )
    if sub_scenario is None:
        raise NotFoundError("Sub-scenario", configuration.resource_id)

    reservations = await reservation_repository.get_reservations_for_resource(
        session,
        configuration.resource_id,
        date_from=configuration.initial_date,
        date_to=configuration.effective_final_date,
        states=BLOCKING_STATES,
    )
    result = compute_availability(
        configuration,
        reservations,
        operating_hours=operating_hours_for(sub_scenario),
        max_range_days=settings.availability_max_range_days,
        rounding=settings.availability_rounding,
    )
    logger.debug(
        "Availability for sub-scenario %s: %s/%s slots free over %s dates",
        configuration.resource_id,
        result.stats.available_slots,
        result.stats.total_slots,
        result.stats.total_dates,
    )
    return result


def cache_tags_for(result: AvailabilityResult) -> list[str]:
    """Tags under which a cached availability result is stored."""
    resource_id = result.resource_id
    tags = ["timeslots", f"timeslots-{resource_id}"]
    tags.extend(f"timeslots-{resource_id}-{date_key}" for date_key in result.calculated_dates)
    return tags


__all__ = [
    "AvailabilityConfiguration",
    "AvailabilityResult",
    "AvailabilityStats",
    "TimeSlot",
    "availability_percentage",
    "cache_tags_for",
    "calculate_dates",
    "compute_availability",
    "get_availability",
    "operating_hours_for",
    "parse_configuration",
    "validate_configuration",
]
