"""Availability response schemas."""

from __future__ import annotations

from datetime import date, datetime

from pydantic import Field, computed_field, field_validator

from scenario_booking.schemas.common import CamelModel
from scenario_booking.services.slot_grid import slot_bounds, slot_label


class AvailabilityConfigurationRead(CamelModel):
    resource_id: int
    initial_date: date
    final_date: date | None = None
    weekdays: list[int] | None = None

    @field_validator("weekdays", mode="before")
    @classmethod
    def _sorted_weekdays(cls, value: object) -> object:
        if isinstance(value, (set, frozenset)):
            return sorted(value)
        return value


class TimeSlotRead(CamelModel):
    """One hour on one date; ``isAvailableInAllDates`` is set for multi-date queries."""

    hour: int
    date_key: str
    is_available: bool
    is_available_in_all_dates: bool | None = None

    @computed_field  # type: ignore[prop-decorator]
    @property
    def start_time(self) -> str:
        return slot_bounds(self.hour)[0]

    @computed_field  # type: ignore[prop-decorator]
    @property
    def end_time(self) -> str:
        return slot_bounds(self.hour)[1]

    @computed_field  # type: ignore[prop-decorator]
    @property
    def label(self) -> str:
        return slot_label(self.hour)


class AvailabilityStatsRead(CamelModel):
    total_dates: int
    total_timeslots: int
    total_slots: int
    available_slots: int
    occupied_slots: int
    global_availability_percentage: int = Field(ge=0, le=100)
    dates_with_full_availability: int
    dates_with_no_availability: int


class AvailabilityResponse(CamelModel):
    """Availability of a sub-scenario across the calculated dates."""

    resource_id: int
    requested_configuration: AvailabilityConfigurationRead
    calculated_dates: list[str]
    time_slots: list[TimeSlotRead]
    stats: AvailabilityStatsRead
    queried_at: datetime
