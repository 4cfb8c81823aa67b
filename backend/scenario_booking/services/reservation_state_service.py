"""Reservation lifecycle: legal state edges and single-reservation transitions."""
from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from scenario_booking.core.errors import InvalidTransitionError, NotFoundError
from scenario_booking.models.reservation import Reservation, ReservationState
from scenario_booking.services import reservation_repository
from scenario_booking.services.cache_invalidation_service import CacheMutation

logger = logging.getLogger(__name__)

_ALLOWED_STATE_TRANSITIONS: dict[ReservationState, frozenset[ReservationState]] = {
    ReservationState.PENDING: frozenset(
        {
            ReservationState.CONFIRMED,
            ReservationState.REJECTED,
            ReservationState.CANCELLED,
        }
    ),
    ReservationState.CONFIRMED: frozenset(
        {ReservationState.CANCELLED, ReservationState.COMPLETED}
    ),
    ReservationState.COMPLETED: frozenset(),
    ReservationState.REJECTED: frozenset(),
    ReservationState.CANCELLED: frozenset(),
}

BLOCKING_STATES: frozenset[ReservationState] = frozenset(
    {ReservationState.PENDING, ReservationState.CONFIRMED}
)


def allowed_transitions(state: ReservationState) -> frozenset[ReservationState]:
    return _ALLOWED_STATE_TRANSITIONS[state]


def is_terminal(state: ReservationState) -> bool:
    return not _ALLOWED_STATE_TRANSITIONS[state]


def is_blocking(state: ReservationState) -> bool:
    return state in BLOCKING_STATES


def validate_transition(
    reservation_id: int, current: ReservationState, target: ReservationState
) -> None:
    if target not in _ALLOWED_STATE_TRANSITIONS[current]:
        raise InvalidTransitionError(reservation_id, current, target)


def mutation_for(reservation: Reservation) -> CacheMutation:
    """Cache dimensions made stale by a change to ``reservation``."""
    return CacheMutation(
        resource_id=reservation.sub_scenario_id,
        user_id=reservation.user_id,
        date_keys=tuple(reservation.date_keys()),
        reservation_ids=(reservation.id,),
    )


@dataclass(slots=True, frozen=True)
class TransitionOutcome:
    reservation: Reservation
    previous_state: ReservationState
    mutation: CacheMutation

    @property
    def frees_slots(self) -> bool:
        return is_blocking(self.previous_state) and not is_blocking(
            self.reservation.state
        )


async def transition(
    session: AsyncSession,
    reservation_id: int,
    target: ReservationState,
) -> TransitionOutcome:
    """Move one reservation to ``target`` if the lifecycle allows it.

    Availability is not recomputed here; callers invalidate the returned
    ``mutation`` and refetch.
    """
    reservation = await reservation_repository.get_reservation_by_id(
        session, reservation_id
    )
    if reservation is None:
        raise NotFoundError("Reservation", reservation_id)

    previous = reservation.state
    validate_transition(reservation_id, previous, target)
    updated = await reservation_repository.persist_reservation_state(
        session, reservation, target
    )
    logger.info(
        "Reservation %s moved from %s to %s", reservation_id, previous.label, target.label
    )
    return TransitionOutcome(
        reservation=updated,
        previous_state=previous,
        mutation=mutation_for(updated),
    )


__all__ = [
    "BLOCKING_STATES",
    "TransitionOutcome",
    "allowed_transitions",
    "is_blocking",
    "is_terminal",
    "mutation_for",
    "transition",
    "validate_transition",
]
