"""Health check endpoints."""

from datetime import UTC, datetime

from fastapi import APIRouter, Request
from sqlalchemy.engine import make_url

from scenario_booking.core.config import get_settings

router = APIRouter()


@router.get("", summary="Service health status")
async def healthcheck(request: Request) -> dict[str, str]:
    """Report the environment plus the storage and cache backends in use."""
    settings = get_settings()
    cache_enabled = getattr(request.app.state, "redis", None) is not None
    return {
        "status": "ok",
        "service": settings.app_name,
        "timestamp": datetime.now(UTC).isoformat(),
        "environment": settings.app_env,
        "database": make_url(settings.database_url).get_backend_name(),
        "availabilityCache": "redis" if cache_enabled else "disabled",
    }
