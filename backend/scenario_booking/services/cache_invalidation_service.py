"""Single place where reservation mutations are turned into cache tags."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Protocol

from scenario_booking.core.errors import CacheInvalidationError, CollaboratorError

logger = logging.getLogger(__name__)

GLOBAL_TAGS: frozenset[str] = frozenset({"reservations", "timeslots"})
DASHBOARD_USER_ID = 0


class TagInvalidator(Protocol):
    """Boundary to whatever cache stores tagged entries."""

    async def invalidate(self, tag: str) -> None: ...


@dataclass(slots=True, frozen=True)
class CacheMutation:
    """Dimensions touched by a create/update/bulk-update."""

    resource_id: int | None = None
    user_id: int | None = None
    date_keys: tuple[str, ...] = ()
    reservation_ids: tuple[int, ...] = ()


def tags_for(mutation: CacheMutation) -> frozenset[str]:
    """Deterministic tag set for ``mutation``; always includes the global tags."""
    tags: set[str] = set(GLOBAL_TAGS)
    if mutation.resource_id is not None:
        resource_id = mutation.resource_id
        tags.add(f"scenario-{resource_id}-reservations")
        tags.add(f"timeslots-{resource_id}")
        tags.update(f"timeslots-{resource_id}-{key}" for key in mutation.date_keys)
    if mutation.user_id is not None:
        tags.add(f"user-{mutation.user_id}-reservations")
        # the dashboard lists every user under the sentinel id
        tags.add(f"user-{DASHBOARD_USER_ID}-reservations")
    tags.update(f"reservation-{reservation_id}" for reservation_id in mutation.reservation_ids)
    return frozenset(tags)


def merge(mutations: Iterable[CacheMutation]) -> frozenset[str]:
    """Union of the tags of several mutations."""
    tags: set[str] = set(GLOBAL_TAGS)
    for mutation in mutations:
        tags.update(tags_for(mutation))
    return frozenset(tags)


class CacheInvalidationCoordinator:
    """Issue one ``invalidate`` call per tag derived from a mutation."""

    def __init__(self, invalidator: TagInvalidator) -> None:
        self._invalidator = invalidator

    async def invalidate_tags(self, tags: Iterable[str]) -> frozenset[str]:
        """Invalidate every tag even when some fail.

        Raises :class:`CacheInvalidationError` after the last tag when any
        call failed.
        """
        issued: set[str] = set()
        failed: list[str] = []
        first_error: CollaboratorError | None = None
        for tag in sorted(frozenset(tags)):
            try:
                await self._invalidator.invalidate(tag)
            except CollaboratorError as exc:
                logger.warning("Cache tag %s was not invalidated: %s", tag, exc.message)
                failed.append(tag)
                first_error = first_error or exc
                continue
            issued.add(tag)
        if first_error is not None:
            raise CacheInvalidationError(
                failed, first_error.cause, issued=frozenset(issued)
            ) from first_error
        logger.debug("Invalidated %d cache tags", len(issued))
        return frozenset(issued)

    async def invalidate(self, mutation: CacheMutation) -> frozenset[str]:
        return await self.invalidate_tags(tags_for(mutation))

    async def invalidate_many(self, mutations: Iterable[CacheMutation]) -> frozenset[str]:
        return await self.invalidate_tags(merge(mutations))


__all__ = [
    "CacheInvalidationCoordinator",
    "CacheMutation",
    "DASHBOARD_USER_ID",
    "GLOBAL_TAGS",
    "TagInvalidator",
    "merge",
    "tags_for",
]
