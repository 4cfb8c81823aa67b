"""Reservation creation and lookup helpers."""
from __future__ import annotations

import uuid
from collections.abc import Sequence
from datetime import date, timedelta

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from scenario_booking.core.errors import (
    CollaboratorError,
    NotFoundError,
    SlotUnavailableError,
    ValidationError,
)
from scenario_booking.models.reservation import Reservation, ReservationState
from scenario_booking.models.sub_scenario import SubScenario
from scenario_booking.services import reservation_repository
from scenario_booking.services.cache_invalidation_service import CacheMutation
from scenario_booking.services.reservation_state_service import (
    BLOCKING_STATES,
    mutation_for,
)
from scenario_booking.services.slot_grid import source_weekday

ALL_USERS = 0


def _validate_window(
    *,
    initial_date: date,
    final_date: date,
    start_hour: int,
    end_hour: int,
    open_hour: int,
    close_hour: int,
) -> None:
    if final_date < initial_date:
        raise ValidationError("finalDate must be on or after initialDate", field="finalDate")
    if start_hour >= end_hour:
        raise ValidationError("endHour must be after startHour", field="endHour")
    if start_hour < open_hour or end_hour > close_hour:
        raise ValidationError(
            f"Reservation hours must fall within {open_hour:02d}:00-{close_hour:02d}:00",
            field="startHour",
        )


def _closed_throughout(
    sub_scenario: SubScenario, initial_date: date, final_date: date
) -> bool:
    closed = sub_scenario.closed_weekday_set
    span = min((final_date - initial_date).days + 1, 7)
    return all(
        source_weekday(initial_date + timedelta(days=offset)) in closed
        for offset in range(span)
    )


async def _prepare_reservation(
    session: AsyncSession,
    sub_scenario: SubScenario,
    *,
    user_id: int,
    initial_date: date,
    final_date: date,
    start_hour: int,
    end_hour: int,
    group_id: str | None,
    comments: str | None,
    state: ReservationState,
) -> Reservation:
    _validate_window(
        initial_date=initial_date,
        final_date=final_date,
        start_hour=start_hour,
        end_hour=end_hour,
        open_hour=sub_scenario.open_hour,
        close_hour=sub_scenario.close_hour,
    )
    # closed days inside a longer range are simply not occupied
    if _closed_throughout(sub_scenario, initial_date, final_date):
        raise ValidationError("Sub-scenario is closed on the requested dates", field="initialDate")

    if state in BLOCKING_STATES:
        existing = await reservation_repository.get_reservations_for_resource(
            session,
            sub_scenario.id,
            date_from=initial_date,
            date_to=final_date,
            states=BLOCKING_STATES,
        )
        for booking in existing:
            if booking.start_hour < end_hour and start_hour < booking.end_hour:
                raise SlotUnavailableError(
                    f"Slot {start_hour:02d}:00-{end_hour:02d}:00 is already taken "
                    f"by reservation {booking.id}"
                )

    return Reservation(
        sub_scenario_id=sub_scenario.id,
        user_id=user_id,
        initial_date=initial_date,
        final_date=final_date,
        start_hour=start_hour,
        end_hour=end_hour,
        state_id=int(state),
        group_id=group_id,
        comments=comments,
    )


async def _load_sub_scenario(
    session: AsyncSession, sub_scenario_id: int, user_id: int
) -> SubScenario:
    if user_id <= 0:
        raise ValidationError("userId must be a positive integer", field="userId")
    sub_scenario = await reservation_repository.get_sub_scenario(session, sub_scenario_id)
    if sub_scenario is None:
        raise NotFoundError("Sub-scenario", sub_scenario_id)
    return sub_scenario


async def create_reservation(
    session: AsyncSession,
    *,
    sub_scenario_id: int,
    user_id: int,
    initial_date: date,
    start_hour: int,
    end_hour: int | None = None,
    final_date: date | None = None,
    group_id: str | None = None,
    comments: str | None = None,
    state: ReservationState = ReservationState.PENDING,
) -> tuple[Reservation, CacheMutation]:
    """Book a sub-scenario, rejecting overlaps with blocking reservations."""
    sub_scenario = await _load_sub_scenario(session, sub_scenario_id, user_id)
    reservation = await _prepare_reservation(
        session,
        sub_scenario,
        user_id=user_id,
        initial_date=initial_date,
        final_date=final_date or initial_date,
        start_hour=start_hour,
        end_hour=end_hour if end_hour is not None else start_hour + 1,
        group_id=group_id,
        comments=comments,
        state=state,
    )
    created = await reservation_repository.add_reservation(session, reservation)
    return created, mutation_for(created)


async def create_reservation_group(
    session: AsyncSession,
    *,
    sub_scenario_id: int,
    user_id: int,
    dates: Sequence[date],
    start_hour: int,
    end_hour: int | None = None,
    comments: str | None = None,
) -> tuple[list[Reservation], list[CacheMutation]]:
    """Book the same hours on several dates as one group.

    Every date is checked before anything is written; a single taken slot
    rejects the whole group.
    """
    if not dates:
        raise ValidationError("At least one date is required", field="dates")
    sub_scenario = await _load_sub_scenario(session, sub_scenario_id, user_id)
    group_id = new_group_id()
    end = end_hour if end_hour is not None else start_hour + 1
    prepared = [
        await _prepare_reservation(
            session,
            sub_scenario,
            user_id=user_id,
            initial_date=on_date,
            final_date=on_date,
            start_hour=start_hour,
            end_hour=end,
            group_id=group_id,
            comments=comments,
            state=ReservationState.PENDING,
        )
        for on_date in sorted(set(dates))
    ]
    created = await reservation_repository.add_reservations(session, prepared)
    return created, [mutation_for(reservation) for reservation in created]


def new_group_id() -> str:
    return uuid.uuid4().hex


async def get_reservation(session: AsyncSession, reservation_id: int) -> Reservation:
    reservation = await reservation_repository.get_reservation_by_id(session, reservation_id)
    if reservation is None:
        raise NotFoundError("Reservation", reservation_id)
    return reservation


async def list_reservations(
    session: AsyncSession,
    *,
    user_id: int = ALL_USERS,
    sub_scenario_id: int | None = None,
    group_id: str | None = None,
    skip: int = 0,
    limit: int = 50,
) -> Sequence[Reservation]:
    """List reservations; ``user_id=0`` means every user (dashboard view)."""
    stmt = select(Reservation).order_by(
        Reservation.initial_date.desc(), Reservation.start_hour.asc()
    )
    if user_id != ALL_USERS:
        stmt = stmt.where(Reservation.user_id == user_id)
    if sub_scenario_id is not None:
        stmt = stmt.where(Reservation.sub_scenario_id == sub_scenario_id)
    if group_id is not None:
        stmt = stmt.where(Reservation.group_id == group_id)
    try:
        result = await session.execute(stmt.offset(skip).limit(limit))
    except SQLAlchemyError as exc:
        raise CollaboratorError("list_reservations", exc) from exc
    return result.scalars().all()
