"""Async SQLAlchemy access to sub-scenarios and reservations."""
from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import date

from sqlalchemy import Select, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from scenario_booking.core.errors import CollaboratorError
from scenario_booking.models.reservation import Reservation, ReservationState
from scenario_booking.models.sub_scenario import SubScenario


async def get_sub_scenario(
    session: AsyncSession, sub_scenario_id: int
) -> SubScenario | None:
    try:
        sub_scenario = await session.get(SubScenario, sub_scenario_id)
    except SQLAlchemyError as exc:
        raise CollaboratorError("get_sub_scenario", exc) from exc
    if sub_scenario is None or not sub_scenario.active:
        return None
    return sub_scenario


async def get_reservations_for_resource(
    session: AsyncSession,
    resource_id: int,
    *,
    date_from: date,
    date_to: date,
    states: Iterable[ReservationState] | None = None,
) -> Sequence[Reservation]:
    """Reservations of ``resource_id`` overlapping ``[date_from, date_to]``."""
    stmt: Select[tuple[Reservation]] = (
        select(Reservation)
        .where(
            Reservation.sub_scenario_id == resource_id,
            Reservation.initial_date <= date_to,
            Reservation.final_date >= date_from,
        )
        .order_by(Reservation.initial_date.asc(), Reservation.start_hour.asc())
    )
    if states is not None:
        stmt = stmt.where(Reservation.state_id.in_([int(state) for state in states]))
    try:
        result = await session.execute(stmt)
    except SQLAlchemyError as exc:
        raise CollaboratorError("get_reservations_for_resource", exc) from exc
    return result.scalars().all()


async def get_reservation_by_id(
    session: AsyncSession, reservation_id: int
) -> Reservation | None:
    try:
        return await session.get(Reservation, reservation_id, populate_existing=True)
    except SQLAlchemyError as exc:
        raise CollaboratorError("get_reservation_by_id", exc) from exc


async def persist_reservation_state(
    session: AsyncSession,
    reservation: Reservation,
    state: ReservationState,
) -> Reservation:
    """Write the new state and commit it as its own unit of work."""
    reservation.state_id = int(state)
    session.add(reservation)
    try:
        await session.commit()
        await session.refresh(reservation)
    except SQLAlchemyError as exc:
        await session.rollback()
        raise CollaboratorError("persist_reservation_state", exc) from exc
    return reservation


async def add_reservation(session: AsyncSession, reservation: Reservation) -> Reservation:
    session.add(reservation)
    try:
        await session.commit()
        await session.refresh(reservation)
    except SQLAlchemyError as exc:
        await session.rollback()
        raise CollaboratorError("add_reservation", exc) from exc
    return reservation


async def add_reservations(
    session: AsyncSession, reservations: Sequence[Reservation]
) -> list[Reservation]:
    """Insert several reservations in a single commit."""
    session.add_all(reservations)
    try:
        await session.commit()
        for reservation in reservations:
            await session.refresh(reservation)
    except SQLAlchemyError as exc:
        await session.rollback()
        raise CollaboratorError("add_reservations", exc) from exc
    return list(reservations)
