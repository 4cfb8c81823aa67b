"""Bookable sub-scenario model."""
from __future__ import annotations

from sqlalchemy import Boolean, CheckConstraint, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from scenario_booking.db.base import Base
from scenario_booking.models.mixins import TimestampMixin


class SubScenario(TimestampMixin, Base):
    """A single bookable unit of a sports scenario (court, pool lane, field)."""

    __tablename__ = "sub_scenarios"
    __table_args__ = (
        CheckConstraint("open_hour >= 0 AND open_hour < close_hour", name="open_hour"),
        CheckConstraint("close_hour <= 24", name="close_hour"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    scenario_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    open_hour: Mapped[int] = mapped_column(Integer, nullable=False, default=6)
    close_hour: Mapped[int] = mapped_column(Integer, nullable=False, default=22)
    # Comma separated weekday numbers (0 = Sunday) on which the unit is closed.
    closed_weekdays: Mapped[str | None] = mapped_column(String(32), nullable=True)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    reservations: Mapped[list["Reservation"]] = relationship(
        "Reservation", back_populates="sub_scenario"
    )

    @property
    def closed_weekday_set(self) -> frozenset[int]:
        if not self.closed_weekdays:
            return frozenset()
        return frozenset(
            int(part) for part in self.closed_weekdays.split(",") if part.strip()
        )
