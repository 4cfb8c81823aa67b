"""Tests for bulk state changes."""

from __future__ import annotations

from datetime import date

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from scenario_booking.core.errors import CollaboratorError
from scenario_booking.models import Reservation, ReservationState
from scenario_booking.services import reservation_repository
from scenario_booking.services.bulk_reservation_service import apply_bulk
from scenario_booking.services.cache_invalidation_service import (
    CacheInvalidationCoordinator,
)

pytestmark = pytest.mark.asyncio


class RecordingInvalidator:
    def __init__(self) -> None:
        self.calls: list[str] = []

    async def invalidate(self, tag: str) -> None:
        self.calls.append(tag)


class FlakyInvalidator(RecordingInvalidator):
    """Fails for every tag in ``broken`` and records the rest."""

    def __init__(self, *broken: str) -> None:
        super().__init__()
        self.broken = set(broken)

    async def invalidate(self, tag: str) -> None:
        if tag in self.broken:
            raise CollaboratorError(f"invalidate {tag}", ConnectionError("redis down"))
        await super().invalidate(tag)


async def _three_bookings(make_reservation, court: int) -> list[int]:
    ids = []
    for hour, on_date in ((9, date(2024, 6, 3)), (10, date(2024, 6, 4)), (11, date(2024, 6, 5))):
        booking = await make_reservation(court, on_date=on_date, start_hour=hour)
        ids.append(booking.id)
    return ids


async def test_missing_id_does_not_stop_the_rest(
    session: AsyncSession, sub_scenarios: dict[str, int], make_reservation
) -> None:
    first, second, third = await _three_bookings(make_reservation, sub_scenarios["court"])
    await session.delete(await session.get(Reservation, second))
    await session.commit()

    result = await apply_bulk(session, first, [second, third], ReservationState.CANCELLED)

    assert result.success is False
    assert result.updated_count == 2
    assert [reservation.id for reservation in result.data] == [first, third]
    assert all(r.state is ReservationState.CANCELLED for r in result.data)
    assert len(result.errors) == 1
    assert result.errors[0].reservation_id == second
    assert result.errors[0].error == "NotFoundError"


async def test_invalid_edges_are_reported_per_item(
    session: AsyncSession, sub_scenarios: dict[str, int], make_reservation
) -> None:
    court = sub_scenarios["court"]
    pending = await make_reservation(court, on_date=date(2024, 6, 3), start_hour=9)
    done = await make_reservation(
        court, on_date=date(2024, 6, 3), start_hour=10, state=ReservationState.COMPLETED
    )

    result = await apply_bulk(session, pending.id, [done.id], ReservationState.CONFIRMED)

    assert result.updated_count == 1
    assert [item.error for item in result.errors] == ["InvalidTransitionError"]
    await session.refresh(done)
    assert done.state is ReservationState.COMPLETED


async def test_duplicates_are_processed_once(
    session: AsyncSession, sub_scenarios: dict[str, int], make_reservation
) -> None:
    first, second, _ = await _three_bookings(make_reservation, sub_scenarios["court"])

    result = await apply_bulk(
        session, first, [second, first, second], ReservationState.CONFIRMED
    )

    assert result.success
    assert result.updated_count == 2
    assert result.errors == []


async def test_only_successful_items_reach_the_cache(
    session: AsyncSession, sub_scenarios: dict[str, int], make_reservation
) -> None:
    court = sub_scenarios["court"]
    ok = await make_reservation(court, on_date=date(2024, 6, 3), start_hour=9, user_id=11)
    blocked = await make_reservation(
        court,
        on_date=date(2024, 6, 4),
        start_hour=9,
        user_id=12,
        state=ReservationState.REJECTED,
    )
    invalidator = RecordingInvalidator()

    result = await apply_bulk(
        session,
        ok.id,
        [blocked.id],
        ReservationState.CANCELLED,
        coordinator=CacheInvalidationCoordinator(invalidator),
    )

    assert f"timeslots-{court}-2024-06-03" in result.invalidated_tags
    assert f"timeslots-{court}-2024-06-04" not in result.invalidated_tags
    assert "user-11-reservations" in result.invalidated_tags
    assert "user-12-reservations" not in result.invalidated_tags
    assert f"reservation-{blocked.id}" not in result.invalidated_tags
    assert invalidator.calls == sorted(result.invalidated_tags)


async def test_failed_state_write_is_captured_per_item(
    session: AsyncSession,
    sub_scenarios: dict[str, int],
    make_reservation,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    first, second, third = await _three_bookings(make_reservation, sub_scenarios["court"])
    persist = reservation_repository.persist_reservation_state

    async def persist_or_fail(db, reservation, state):
        if reservation.id == second:
            raise CollaboratorError(
                "persist_reservation_state", OperationalError("UPDATE", {}, Exception("gone"))
            )
        return await persist(db, reservation, state)

    monkeypatch.setattr(
        reservation_repository, "persist_reservation_state", persist_or_fail
    )

    result = await apply_bulk(session, first, [second, third], ReservationState.CONFIRMED)

    assert [reservation.id for reservation in result.data] == [first, third]
    assert [(item.reservation_id, item.error) for item in result.errors] == [
        (second, "CollaboratorError")
    ]
    assert "persist_reservation_state failed" in result.errors[0].message


async def test_refresh_failure_after_commit_is_wrapped(
    session: AsyncSession,
    sub_scenarios: dict[str, int],
    make_reservation,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    first, second, third = await _three_bookings(make_reservation, sub_scenarios["court"])
    refresh = session.refresh

    async def refresh_or_fail(instance, *args, **kwargs):
        if isinstance(instance, Reservation) and instance.id == first:
            raise OperationalError("SELECT", {}, Exception("connection reset"))
        return await refresh(instance, *args, **kwargs)

    monkeypatch.setattr(session, "refresh", refresh_or_fail)

    result = await apply_bulk(session, first, [second, third], ReservationState.CANCELLED)

    assert [item.error for item in result.errors] == ["CollaboratorError"]
    assert result.errors[0].reservation_id == first
    assert [reservation.id for reservation in result.data] == [second, third]


async def test_cache_failure_keeps_the_committed_result(
    session: AsyncSession, sub_scenarios: dict[str, int], make_reservation
) -> None:
    first, second, _ = await _three_bookings(make_reservation, sub_scenarios["court"])
    invalidator = FlakyInvalidator(f"reservation-{first}")

    result = await apply_bulk(
        session,
        first,
        [second],
        ReservationState.CANCELLED,
        coordinator=CacheInvalidationCoordinator(invalidator),
    )

    assert result.success is True
    assert [reservation.id for reservation in result.data] == [first, second]
    assert result.invalidation_error is not None
    assert f"reservation-{first}" in result.invalidation_error
    assert f"reservation-{first}" not in result.invalidated_tags
    assert f"reservation-{second}" in result.invalidated_tags
    assert invalidator.calls == sorted(result.invalidated_tags)
    for reservation_id in (first, second):
        stored = await session.get(Reservation, reservation_id)
        assert stored.state is ReservationState.CANCELLED
