"""Test fixtures for the scenario booking backend."""
from __future__ import annotations

import os
from collections.abc import AsyncIterator, Awaitable, Callable
from datetime import date

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./test.db")
os.environ["REDIS_URL"] = ""

from scenario_booking.api import deps
from scenario_booking.core.config import get_settings
from scenario_booking.db.base import Base
from scenario_booking.db.session import dispose_engine, get_sessionmaker
from scenario_booking.main import app
from scenario_booking.models import Reservation, ReservationState, SubScenario


class InMemoryTagCache:
    """Stands in for ``RedisTagCache``; records every invalidated tag."""

    def __init__(self) -> None:
        self.entries: dict[str, str] = {}
        self.tags: dict[str, set[str]] = {}
        self.invalidated: list[str] = []

    async def get(self, key: str) -> str | None:
        return self.entries.get(key)

    async def set(self, key: str, value: str, tags) -> None:
        self.entries[key] = value
        for tag in tags:
            self.tags.setdefault(tag, set()).add(key)

    async def invalidate(self, tag: str) -> None:
        self.invalidated.append(tag)
        for key in self.tags.pop(tag, set()):
            self.entries.pop(key, None)


@pytest.fixture(scope="session")
def db_url(tmp_path_factory: pytest.TempPathFactory) -> str:
    """Provide a temporary SQLite database URL for the test session."""
    db_path = tmp_path_factory.mktemp("db") / "test.db"
    return f"sqlite+aiosqlite:///{db_path}"


@pytest_asyncio.fixture()
async def reset_database(db_url: str) -> AsyncIterator[None]:
    """Drop and recreate the database schema for an isolated test."""
    os.environ["DATABASE_URL"] = db_url
    get_settings.cache_clear()
    get_settings()

    await dispose_engine(db_url)
    engine = create_async_engine(db_url, future=True)
    async with engine.begin() as connection:
        await connection.run_sync(Base.metadata.drop_all)
        await connection.run_sync(Base.metadata.create_all)
    await engine.dispose()
    yield
    await dispose_engine(db_url)


@pytest_asyncio.fixture()
async def session(reset_database: None, db_url: str) -> AsyncIterator[AsyncSession]:
    sessionmaker = get_sessionmaker(db_url)
    async with sessionmaker() as db_session:
        yield db_session


@pytest_asyncio.fixture()
async def sub_scenarios(session: AsyncSession) -> dict[str, int]:
    """Three units: open 9-12 every day, inactive, and closed on Sundays."""
    court = SubScenario(scenario_id=1, name="Cancha 1", open_hour=9, close_hour=12)
    inactive = SubScenario(
        scenario_id=1, name="Cancha vieja", open_hour=9, close_hour=12, active=False
    )
    pool = SubScenario(
        scenario_id=2,
        name="Piscina",
        open_hour=6,
        close_hour=10,
        closed_weekdays="0",
    )
    session.add_all([court, inactive, pool])
    await session.commit()
    return {"court": court.id, "inactive": inactive.id, "pool": pool.id}


ReservationFactory = Callable[..., Awaitable[Reservation]]


@pytest.fixture()
def make_reservation(session: AsyncSession) -> ReservationFactory:
    async def _make(
        sub_scenario_id: int,
        *,
        on_date: date,
        start_hour: int,
        end_hour: int | None = None,
        final_date: date | None = None,
        user_id: int = 7,
        state: ReservationState = ReservationState.PENDING,
    ) -> Reservation:
        reservation = Reservation(
            sub_scenario_id=sub_scenario_id,
            user_id=user_id,
            initial_date=on_date,
            final_date=final_date or on_date,
            start_hour=start_hour,
            end_hour=end_hour if end_hour is not None else start_hour + 1,
            state_id=int(state),
        )
        session.add(reservation)
        await session.commit()
        await session.refresh(reservation)
        return reservation

    return _make


@pytest.fixture()
def tag_cache() -> InMemoryTagCache:
    return InMemoryTagCache()


@pytest_asyncio.fixture()
async def app_context(
    sub_scenarios: dict[str, int], tag_cache: InMemoryTagCache
) -> AsyncIterator[dict[str, object]]:
    """Yield an async client wired to the in-memory tag cache."""
    app.dependency_overrides[deps.get_tag_cache] = lambda: tag_cache
    app.dependency_overrides[deps.get_invalidator] = lambda: tag_cache
    transport = ASGITransport(app=app)
    try:
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            yield {"client": client, "cache": tag_cache, **sub_scenarios}
    finally:
        app.dependency_overrides.clear()
