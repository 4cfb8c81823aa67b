"""Availability API tests."""

from __future__ import annotations

import pytest

pytestmark = pytest.mark.asyncio


async def test_availability_response_shape(app_context: dict[str, object]) -> None:
    client = app_context["client"]
    court = app_context["court"]

    response = await client.get(
        "/api/v1/availability",
        params={"resourceId": court, "initialDate": "2024-06-03", "finalDate": "2024-06-04"},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["resourceId"] == court
    assert body["calculatedDates"] == ["2024-06-03", "2024-06-04"]
    assert body["stats"]["totalSlots"] == 6
    assert body["stats"]["globalAvailabilityPercentage"] == 100
    first = body["timeSlots"][0]
    assert first == {
        "hour": 9,
        "dateKey": "2024-06-03",
        "isAvailable": True,
        "isAvailableInAllDates": True,
        "startTime": "09:00",
        "endTime": "10:00",
        "label": "09:00 - 10:00",
    }
    assert body["requestedConfiguration"]["weekdays"] is None


async def test_validation_errors_name_the_field(app_context: dict[str, object]) -> None:
    client = app_context["client"]

    response = await client.get(
        "/api/v1/availability",
        params={"resourceId": app_context["court"], "initialDate": "03/06/2024"},
    )

    assert response.status_code == 400
    detail = response.json()["detail"]
    assert detail["error"] == "ValidationError"
    assert detail["field"] == "initialDate"


async def test_unknown_sub_scenario_is_404(app_context: dict[str, object]) -> None:
    response = await app_context["client"].get(
        "/api/v1/availability", params={"resourceId": 999, "initialDate": "2024-06-03"}
    )
    assert response.status_code == 404


async def test_results_are_cached_and_invalidated_by_bookings(
    app_context: dict[str, object],
) -> None:
    client = app_context["client"]
    cache = app_context["cache"]
    court = app_context["court"]
    params = {"resourceId": court, "initialDate": "2024-06-03", "weekdays": "1"}

    first = await client.get("/api/v1/availability", params=params)
    assert first.status_code == 200
    assert len(cache.entries) == 1
    assert f"timeslots-{court}-2024-06-03" in cache.tags

    created = await client.post(
        "/api/v1/reservations",
        json={
            "subScenarioId": court,
            "userId": 5,
            "initialDate": "2024-06-03",
            "startHour": 10,
        },
    )
    assert created.status_code == 201
    assert cache.entries == {}

    second = await client.get("/api/v1/availability", params=params)
    occupied = [slot["hour"] for slot in second.json()["timeSlots"] if not slot["isAvailable"]]
    assert occupied == [10]
