"""Reservation lifecycle API."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Annotated

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from scenario_booking.api import deps
from scenario_booking.core.config import get_settings
from scenario_booking.core.errors import BookingError, CacheInvalidationError
from scenario_booking.models.reservation import ReservationState
from scenario_booking.schemas.reservation import (
    BulkItemErrorRead,
    BulkUpdateResultRead,
    ReservationCreate,
    ReservationRead,
    ReservationStateRead,
    ReservationStateUpdate,
)
from scenario_booking.services import (
    bulk_reservation_service,
    reservation_service,
    reservation_state_service,
)
from scenario_booking.services.cache_invalidation_service import (
    CacheInvalidationCoordinator,
    CacheMutation,
)

logger = logging.getLogger(__name__)

_DEFAULT_RATE_DEP = deps.rate_dependency(
    deps.parse_rate(get_settings().rate_limit_default, fallback=(100, 60))
)

router = APIRouter(dependencies=[_DEFAULT_RATE_DEP])


async def _invalidate_after_commit(
    coordinator: CacheInvalidationCoordinator, mutations: Iterable[CacheMutation]
) -> None:
    """The write already succeeded, so a cache failure is logged, not returned."""
    try:
        await coordinator.invalidate_many(mutations)
    except CacheInvalidationError as exc:
        logger.error("Reservation change left stale cache tags: %s", exc.message)


@router.get(
    "/states",
    response_model=list[ReservationStateRead],
    summary="Reservation states and their allowed targets",
)
async def list_reservation_states() -> list[ReservationStateRead]:
    return [
        ReservationStateRead(
            id=int(state),
            name=state.label,
            blocking=reservation_state_service.is_blocking(state),
            terminal=reservation_state_service.is_terminal(state),
            allowed_targets=sorted(
                int(target)
                for target in reservation_state_service.allowed_transitions(state)
            ),
        )
        for state in ReservationState
    ]


@router.get("", response_model=list[ReservationRead], summary="List reservations")
async def list_reservations(
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    user_id: Annotated[int, Query(alias="userId", ge=0)] = reservation_service.ALL_USERS,
    sub_scenario_id: Annotated[int | None, Query(alias="subScenarioId")] = None,
    group_id: Annotated[str | None, Query(alias="groupId")] = None,
    skip: int = 0,
    limit: int = 50,
) -> list[ReservationRead]:
    try:
        reservations = await reservation_service.list_reservations(
            session,
            user_id=user_id,
            sub_scenario_id=sub_scenario_id,
            group_id=group_id,
            skip=skip,
            limit=min(limit, 100),
        )
    except BookingError as exc:
        raise deps.http_error(exc) from exc
    return [ReservationRead.model_validate(obj) for obj in reservations]


@router.post(
    "",
    response_model=list[ReservationRead],
    status_code=status.HTTP_201_CREATED,
    summary="Create reservation",
)
async def create_reservation(
    payload: ReservationCreate,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    coordinator: Annotated[
        CacheInvalidationCoordinator, Depends(deps.get_cache_coordinator)
    ],
) -> list[ReservationRead]:
    """Book one date range, or the same hours on each of ``dates`` as a group."""
    try:
        if payload.dates:
            created, mutations = await reservation_service.create_reservation_group(
                session,
                sub_scenario_id=payload.sub_scenario_id,
                user_id=payload.user_id,
                dates=payload.dates,
                start_hour=payload.start_hour,
                end_hour=payload.end_hour,
                comments=payload.comments,
            )
        else:
            assert payload.initial_date is not None
            reservation, mutation = await reservation_service.create_reservation(
                session,
                sub_scenario_id=payload.sub_scenario_id,
                user_id=payload.user_id,
                initial_date=payload.initial_date,
                final_date=payload.final_date,
                start_hour=payload.start_hour,
                end_hour=payload.end_hour,
                comments=payload.comments,
            )
            created, mutations = [reservation], [mutation]
    except BookingError as exc:
        raise deps.http_error(exc) from exc
    await _invalidate_after_commit(coordinator, mutations)
    return [ReservationRead.model_validate(obj) for obj in created]


@router.get(
    "/{reservation_id}", response_model=ReservationRead, summary="Get reservation"
)
async def get_reservation(
    reservation_id: int,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
) -> ReservationRead:
    try:
        reservation = await reservation_service.get_reservation(session, reservation_id)
    except BookingError as exc:
        raise deps.http_error(exc) from exc
    return ReservationRead.model_validate(reservation)


@router.patch(
    "/{reservation_id}/state",
    response_model=ReservationRead | BulkUpdateResultRead,
    summary="Change the state of a reservation and optionally of linked ones",
)
async def update_reservation_state(
    reservation_id: int,
    payload: ReservationStateUpdate,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    coordinator: Annotated[
        CacheInvalidationCoordinator, Depends(deps.get_cache_coordinator)
    ],
) -> ReservationRead | BulkUpdateResultRead:
    """Without ``additionalReservationIds`` a failed transition is an HTTP error;
    with them every id is attempted and failures are reported per item."""
    target = payload.reservation_state_id
    if not payload.additional_reservation_ids:
        try:
            outcome = await reservation_state_service.transition(
                session, reservation_id, target
            )
        except BookingError as exc:
            raise deps.http_error(exc) from exc
        await _invalidate_after_commit(coordinator, [outcome.mutation])
        return ReservationRead.model_validate(outcome.reservation)

    try:
        result = await bulk_reservation_service.apply_bulk(
            session,
            reservation_id,
            payload.additional_reservation_ids,
            target,
            coordinator=coordinator,
        )
    except BookingError as exc:
        raise deps.http_error(exc) from exc
    return BulkUpdateResultRead(
        success=result.success,
        updated_count=result.updated_count,
        data=[ReservationRead.model_validate(obj) for obj in result.data],
        errors=[
            BulkItemErrorRead(
                reservation_id=item.reservation_id,
                error=item.error,
                message=item.message,
            )
            for item in result.errors
        ],
        invalidated_tags=sorted(result.invalidated_tags),
        invalidation_error=result.invalidation_error,
    )
