"""Common API dependencies."""

from __future__ import annotations

from collections.abc import AsyncGenerator
from typing import Annotated, Any

from fastapi import Depends, HTTPException, Request, Response, status
from fastapi_limiter import FastAPILimiter
from fastapi_limiter.depends import RateLimiter
from sqlalchemy.ext.asyncio import AsyncSession

from scenario_booking.core.config import get_settings
from scenario_booking.core.errors import (
    BookingError,
    CollaboratorError,
    InvalidTransitionError,
    NotFoundError,
    SlotUnavailableError,
    ValidationError,
)
from scenario_booking.db.session import get_session
from scenario_booking.services.cache_invalidation_service import (
    CacheInvalidationCoordinator,
    TagInvalidator,
)
from scenario_booking.services.tag_cache import LoggingTagInvalidator, RedisTagCache

_SECONDS_PER_WINDOW = {
    "second": 1,
    "seconds": 1,
    "minute": 60,
    "minutes": 60,
    "hour": 3600,
    "hours": 3600,
    "day": 86400,
    "days": 86400,
}


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Provide an async database session."""
    async for session in get_session():
        yield session


def get_tag_cache(request: Request) -> RedisTagCache | None:
    """Tag cache backed by the Redis pool opened in the lifespan, if any."""
    redis = getattr(request.app.state, "redis", None)
    if redis is None:
        return None
    return RedisTagCache(redis, ttl_seconds=get_settings().availability_cache_seconds)


def get_invalidator(
    cache: Annotated[RedisTagCache | None, Depends(get_tag_cache)],
) -> TagInvalidator:
    if cache is None:
        return LoggingTagInvalidator()
    return cache


def get_cache_coordinator(
    invalidator: Annotated[TagInvalidator, Depends(get_invalidator)],
) -> CacheInvalidationCoordinator:
    return CacheInvalidationCoordinator(invalidator)


def parse_rate(value: str, *, fallback: tuple[int, int]) -> tuple[int, int]:
    """``"60/minute"`` -> ``(60, 60)``."""
    try:
        count_str, window_str = value.split("/", 1)
        count = int(count_str.strip())
    except ValueError:
        return fallback
    seconds = _SECONDS_PER_WINDOW.get(window_str.strip().lower(), fallback[1])
    return count, seconds


def rate_dependency(limit: tuple[int, int]) -> Any:
    """Rate limit a route once the limiter is initialised; a no-op otherwise."""

    async def _dependency(request: Request, response: Response) -> None:
        if FastAPILimiter.redis is None:
            return None
        limiter = RateLimiter(times=limit[0], seconds=limit[1])
        await limiter(request, response)

    return Depends(_dependency)


_STATUS_BY_ERROR: tuple[tuple[type[BookingError], int], ...] = (
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (InvalidTransitionError, status.HTTP_409_CONFLICT),
    (SlotUnavailableError, status.HTTP_409_CONFLICT),
    (CollaboratorError, status.HTTP_502_BAD_GATEWAY),
)


def http_error(exc: BookingError) -> HTTPException:
    """Translate a service error into the matching HTTP response."""
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return HTTPException(status_code=status_code, detail=exc.to_detail())
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=exc.to_detail()
    )
