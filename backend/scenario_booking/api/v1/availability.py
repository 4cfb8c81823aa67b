"""Sub-scenario availability API."""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from scenario_booking.api import deps
from scenario_booking.core.config import get_settings
from scenario_booking.core.errors import BookingError, CollaboratorError
from scenario_booking.schemas.availability import AvailabilityResponse
from scenario_booking.services import availability_service
from scenario_booking.services.tag_cache import RedisTagCache

logger = logging.getLogger(__name__)

router = APIRouter()

_settings = get_settings()
_AVAILABILITY_RATE_DEP = deps.rate_dependency(
    deps.parse_rate(_settings.rate_limit_availability, fallback=(60, 60))
)


async def _cached(cache: RedisTagCache | None, key: str) -> AvailabilityResponse | None:
    if cache is None:
        return None
    try:
        payload = await cache.get(key)
    except CollaboratorError as exc:
        logger.warning("Availability cache read failed: %s", exc.message)
        return None
    if payload is None:
        return None
    return AvailabilityResponse.model_validate_json(payload)


@router.get(
    "",
    response_model=AvailabilityResponse,
    summary="Hourly availability of a sub-scenario",
    dependencies=[_AVAILABILITY_RATE_DEP],
)
async def get_availability(
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    cache: Annotated[RedisTagCache | None, Depends(deps.get_tag_cache)],
    resource_id: Annotated[str | None, Query(alias="resourceId")] = None,
    initial_date: Annotated[str | None, Query(alias="initialDate")] = None,
    final_date: Annotated[str | None, Query(alias="finalDate")] = None,
    weekdays: Annotated[str | None, Query()] = None,
) -> AvailabilityResponse:
    try:
        configuration = availability_service.parse_configuration(
            resource_id, initial_date, final_date, weekdays
        )
    except BookingError as exc:
        raise deps.http_error(exc) from exc

    key = configuration.cache_key()
    hit = await _cached(cache, key)
    if hit is not None:
        return hit

    try:
        result = await availability_service.get_availability(session, configuration)
    except BookingError as exc:
        raise deps.http_error(exc) from exc

    response = AvailabilityResponse.model_validate(result)
    if cache is not None:
        try:
            await cache.set(
                key,
                response.model_dump_json(by_alias=True),
                availability_service.cache_tags_for(result),
            )
        except CollaboratorError as exc:
            logger.warning("Availability cache write failed: %s", exc.message)
    return response
