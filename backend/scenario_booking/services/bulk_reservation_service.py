"""Apply one target state to a primary reservation and its linked reservations."""
from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field

from sqlalchemy.ext.asyncio import AsyncSession

from scenario_booking.core.errors import (
    CacheInvalidationError,
    CollaboratorError,
    InvalidTransitionError,
    NotFoundError,
)
from scenario_booking.models.reservation import Reservation, ReservationState
from scenario_booking.services import reservation_state_service
from scenario_booking.services.cache_invalidation_service import (
    CacheInvalidationCoordinator,
    CacheMutation,
)

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class BulkItemError:
    reservation_id: int
    error: str
    message: str


@dataclass(slots=True)
class BulkUpdateResult:
    """Outcome of a bulk transition; ``updated_count`` always equals ``len(data)``."""

    success: bool
    updated_count: int
    data: list[Reservation] = field(default_factory=list)
    errors: list[BulkItemError] = field(default_factory=list)
    mutations: list[CacheMutation] = field(default_factory=list)
    invalidated_tags: frozenset[str] = frozenset()
    invalidation_error: str | None = None


def _ordered_ids(primary_id: int, additional_ids: Sequence[int]) -> list[int]:
    ordered: list[int] = []
    seen: set[int] = set()
    for reservation_id in (primary_id, *additional_ids):
        if reservation_id in seen:
            continue
        seen.add(reservation_id)
        ordered.append(reservation_id)
    return ordered


async def apply_bulk(
    session: AsyncSession,
    primary_id: int,
    additional_ids: Sequence[int],
    target: ReservationState,
    *,
    coordinator: CacheInvalidationCoordinator | None = None,
) -> BulkUpdateResult:
    """Transition every id independently; one failure does not stop the rest.

    Ids are processed sequentially, primary first. Only reservations that
    actually changed contribute cache dimensions.
    """
    data: list[Reservation] = []
    errors: list[BulkItemError] = []
    mutations: list[CacheMutation] = []

    for reservation_id in _ordered_ids(primary_id, additional_ids):
        try:
            outcome = await reservation_state_service.transition(
                session, reservation_id, target
            )
        except (InvalidTransitionError, NotFoundError, CollaboratorError) as exc:
            logger.warning(
                "Bulk transition of reservation %s to %s failed: %s",
                reservation_id,
                target.label,
                exc.message,
            )
            errors.append(
                BulkItemError(
                    reservation_id=reservation_id, error=exc.kind, message=exc.message
                )
            )
            continue
        data.append(outcome.reservation)
        mutations.append(outcome.mutation)

    result = BulkUpdateResult(
        success=not errors,
        updated_count=len(data),
        data=data,
        errors=errors,
        mutations=mutations,
    )
    if coordinator is not None and mutations:
        try:
            result.invalidated_tags = await coordinator.invalidate_many(mutations)
        except CacheInvalidationError as exc:
            # transitions are already committed
            logger.error("Bulk transition left stale cache tags: %s", exc.message)
            result.invalidated_tags = exc.issued
            result.invalidation_error = exc.message

    logger.info(
        "Bulk transition to %s: %d updated, %d failed",
        target.label,
        result.updated_count,
        len(errors),
    )
    return result


__all__ = ["BulkItemError", "BulkUpdateResult", "apply_bulk"]
