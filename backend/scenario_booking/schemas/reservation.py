"""Pydantic schemas for reservations."""
from __future__ import annotations

from datetime import date, datetime

from pydantic import AliasChoices, Field, computed_field, model_validator

from scenario_booking.models.reservation import ReservationState
from scenario_booking.schemas.common import CamelModel


class ReservationCreate(CamelModel):
    """Payload for booking a sub-scenario.

    Either a single ``initialDate`` (optionally spanning to ``finalDate``) or a
    ``dates`` list, which books the same hours on every listed date as one group.
    """

    sub_scenario_id: int = Field(gt=0)
    user_id: int = Field(gt=0)
    start_hour: int = Field(ge=0, le=23)
    end_hour: int | None = Field(default=None, ge=1, le=24)
    initial_date: date | None = None
    final_date: date | None = None
    dates: list[date] | None = None
    comments: str | None = Field(default=None, max_length=1024)

    @model_validator(mode="after")
    def _check_dates(self) -> ReservationCreate:
        if self.dates:
            if self.initial_date is not None or self.final_date is not None:
                raise ValueError("Use either dates or initialDate/finalDate, not both")
        elif self.initial_date is None:
            raise ValueError("initialDate or dates is required")
        return self


class ReservationRead(CamelModel):
    """Serialized reservation representation."""

    id: int
    sub_scenario_id: int
    user_id: int
    initial_date: date
    final_date: date
    start_hour: int
    end_hour: int
    reservation_state_id: int = Field(
        validation_alias=AliasChoices(
            "state_id", "reservationStateId", "reservation_state_id"
        ),
        serialization_alias="reservationStateId",
    )
    group_id: str | None = None
    comments: str | None = None
    created_at: datetime
    updated_at: datetime

    @computed_field  # type: ignore[prop-decorator]
    @property
    def reservation_state(self) -> str:
        return ReservationState(self.reservation_state_id).label


class ReservationStateUpdate(CamelModel):
    """Target state for one reservation and, optionally, its linked reservations."""

    reservation_state_id: ReservationState
    additional_reservation_ids: list[int] = Field(default_factory=list)


class ReservationStateRead(CamelModel):
    id: int
    name: str
    blocking: bool
    terminal: bool
    allowed_targets: list[int]


class BulkItemErrorRead(CamelModel):
    reservation_id: int
    error: str
    message: str


class BulkUpdateResultRead(CamelModel):
    """Per-item outcome of a bulk state change."""

    success: bool
    updated_count: int
    data: list[ReservationRead]
    errors: list[BulkItemErrorRead]
    invalidated_tags: list[str]
    invalidation_error: str | None = None
