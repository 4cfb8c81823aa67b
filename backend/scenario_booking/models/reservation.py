"""Reservation models."""
from __future__ import annotations

import enum
from datetime import date, timedelta

from sqlalchemy import CheckConstraint, Date, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from scenario_booking.db.base import Base
from scenario_booking.models.mixins import TimestampMixin


class ReservationState(enum.IntEnum):
    """Lifecycle states for reservations, keyed by their public state id."""

    PENDING = 1
    CONFIRMED = 2
    REJECTED = 3
    CANCELLED = 4
    COMPLETED = 5

    @property
    def label(self) -> str:
        return self.name.lower()


class Reservation(TimestampMixin, Base):
    """Booking of a sub-scenario for an hour window over a date range."""

    __tablename__ = "reservations"
    __table_args__ = (
        CheckConstraint("initial_date <= final_date", name="date_range"),
        CheckConstraint("start_hour < end_hour", name="hour_range"),
        Index("ix_reservations_window", "sub_scenario_id", "initial_date", "final_date"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    sub_scenario_id: Mapped[int] = mapped_column(
        ForeignKey("sub_scenarios.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    initial_date: Mapped[date] = mapped_column(Date, nullable=False)
    final_date: Mapped[date] = mapped_column(Date, nullable=False)
    start_hour: Mapped[int] = mapped_column(Integer, nullable=False)
    end_hour: Mapped[int] = mapped_column(Integer, nullable=False)
    state_id: Mapped[int] = mapped_column(
        Integer, nullable=False, default=int(ReservationState.PENDING)
    )
    group_id: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    comments: Mapped[str | None] = mapped_column(String(1024))

    sub_scenario: Mapped["SubScenario"] = relationship(
        "SubScenario", back_populates="reservations"
    )

    @property
    def state(self) -> ReservationState:
        return ReservationState(self.state_id)

    def covers(self, on_date: date, hour: int) -> bool:
        """Whether this booking spans ``hour`` on ``on_date``."""
        return (
            self.initial_date <= on_date <= self.final_date
            and self.start_hour <= hour < self.end_hour
        )

    def date_keys(self) -> list[str]:
        keys: list[str] = []
        current = self.initial_date
        while current <= self.final_date:
            keys.append(current.isoformat())
            current += timedelta(days=1)
        return keys
