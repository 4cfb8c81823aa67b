"""Seed demo sub-scenarios for local development."""
from __future__ import annotations

import asyncio

from sqlalchemy import select

from scenario_booking.core.config import get_settings
from scenario_booking.db.session import session_scope
from scenario_booking.models.sub_scenario import SubScenario

DEMO_SUB_SCENARIOS: tuple[tuple[int, str, str | None], ...] = (
    (1, "Cancha de fútbol 1", None),
    (1, "Cancha de fútbol 2", None),
    (2, "Piscina carril 1", "0"),
    (3, "Cancha de tenis", "0,6"),
)


async def seed_sub_scenarios() -> int:
    settings = get_settings()
    created = 0
    async with session_scope() as session:
        existing = set(
            (await session.execute(select(SubScenario.name))).scalars().all()
        )
        for scenario_id, name, closed_weekdays in DEMO_SUB_SCENARIOS:
            if name in existing:
                continue
            session.add(
                SubScenario(
                    scenario_id=scenario_id,
                    name=name,
                    open_hour=settings.default_open_hour,
                    close_hour=settings.default_close_hour,
                    closed_weekdays=closed_weekdays,
                )
            )
            created += 1
        if created:
            await session.commit()
    print(f"Seeded {created} sub-scenario(s).")
    return created


def main() -> None:
    asyncio.run(seed_sub_scenarios())


if __name__ == "__main__":
    main()
