"""Reservation API tests."""

from __future__ import annotations

import pytest

from scenario_booking.api import deps
from scenario_booking.core.errors import CollaboratorError
from scenario_booking.main import app

pytestmark = pytest.mark.asyncio


async def _create(client, court: int, *, hour: int, user_id: int = 5, **extra) -> list[dict]:
    payload = {"subScenarioId": court, "userId": user_id, "startHour": hour, **extra}
    if "dates" not in payload:
        payload.setdefault("initialDate", "2024-06-03")
    response = await client.post("/api/v1/reservations", json=payload)
    assert response.status_code == 201, response.text
    return response.json()


async def test_create_and_fetch(app_context: dict[str, object]) -> None:
    client = app_context["client"]
    cache = app_context["cache"]
    court = app_context["court"]

    [created] = await _create(client, court, hour=9, comments="Entrenamiento")

    assert created["reservationStateId"] == 1
    assert created["reservationState"] == "pending"
    assert created["endHour"] == 10
    for tag in (
        "reservations",
        "timeslots",
        f"timeslots-{court}",
        f"timeslots-{court}-2024-06-03",
        f"scenario-{court}-reservations",
        "user-5-reservations",
        "user-0-reservations",
        f"reservation-{created['id']}",
    ):
        assert tag in cache.invalidated

    fetched = await client.get(f"/api/v1/reservations/{created['id']}")
    assert fetched.status_code == 200
    assert fetched.json()["comments"] == "Entrenamiento"

    missing = await client.get("/api/v1/reservations/999")
    assert missing.status_code == 404
    assert missing.json()["detail"]["error"] == "NotFoundError"


async def test_double_booking_is_a_conflict(app_context: dict[str, object]) -> None:
    client = app_context["client"]
    court = app_context["court"]
    await _create(client, court, hour=10)

    response = await client.post(
        "/api/v1/reservations",
        json={"subScenarioId": court, "userId": 6, "initialDate": "2024-06-03", "startHour": 10},
    )
    assert response.status_code == 409
    assert response.json()["detail"]["error"] == "SlotUnavailableError"


async def test_grouped_booking(app_context: dict[str, object]) -> None:
    client = app_context["client"]
    court = app_context["court"]

    created = await _create(client, court, hour=11, dates=["2024-06-03", "2024-06-05"])

    assert len(created) == 2
    assert created[0]["groupId"] == created[1]["groupId"]
    listed = await client.get(
        "/api/v1/reservations", params={"groupId": created[0]["groupId"]}
    )
    assert len(listed.json()) == 2


async def test_states_listing(app_context: dict[str, object]) -> None:
    response = await app_context["client"].get("/api/v1/reservations/states")
    states = {state["id"]: state for state in response.json()}
    assert states[1]["allowedTargets"] == [2, 3, 4]
    assert states[2]["allowedTargets"] == [4, 5]
    assert states[4]["terminal"] is True
    assert states[1]["blocking"] is True


async def test_single_transition(app_context: dict[str, object]) -> None:
    client = app_context["client"]
    [created] = await _create(client, app_context["court"], hour=9)

    confirmed = await client.patch(
        f"/api/v1/reservations/{created['id']}/state", json={"reservationStateId": 2}
    )
    assert confirmed.status_code == 200
    assert confirmed.json()["reservationStateId"] == 2

    back = await client.patch(
        f"/api/v1/reservations/{created['id']}/state", json={"reservationStateId": 1}
    )
    assert back.status_code == 409
    detail = back.json()["detail"]
    assert detail["error"] == "InvalidTransitionError"
    assert detail["currentStateId"] == 2
    assert detail["attemptedStateId"] == 1


async def test_unknown_state_id_is_rejected(app_context: dict[str, object]) -> None:
    client = app_context["client"]
    [created] = await _create(client, app_context["court"], hour=9)
    response = await client.patch(
        f"/api/v1/reservations/{created['id']}/state", json={"reservationStateId": 9}
    )
    assert response.status_code == 422


async def test_bulk_transition_reports_partial_failure(
    app_context: dict[str, object],
) -> None:
    client = app_context["client"]
    court = app_context["court"]
    [first] = await _create(client, court, hour=9)
    [third] = await _create(client, court, hour=11)

    response = await client.patch(
        f"/api/v1/reservations/{first['id']}/state",
        json={"reservationStateId": 4, "additionalReservationIds": [999, third["id"]]},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is False
    assert body["updatedCount"] == 2
    assert [item["id"] for item in body["data"]] == [first["id"], third["id"]]
    assert body["errors"] == [
        {"reservationId": 999, "error": "NotFoundError", "message": "Reservation 999 not found"}
    ]
    assert "reservation-999" not in body["invalidatedTags"]

    availability = await client.get(
        "/api/v1/availability", params={"resourceId": court, "initialDate": "2024-06-03"}
    )
    assert availability.json()["stats"]["availableSlots"] == 3


class UnreachableCache:
    async def invalidate(self, tag: str) -> None:
        raise CollaboratorError(f"invalidate {tag}", ConnectionError("redis down"))


async def test_cache_outage_does_not_hide_committed_changes(
    app_context: dict[str, object],
) -> None:
    client = app_context["client"]
    court = app_context["court"]
    [first] = await _create(client, court, hour=9)
    [second] = await _create(client, court, hour=10)
    app.dependency_overrides[deps.get_invalidator] = UnreachableCache

    single = await client.patch(
        f"/api/v1/reservations/{first['id']}/state", json={"reservationStateId": 2}
    )
    assert single.status_code == 200
    assert single.json()["reservationStateId"] == 2

    bulk = await client.patch(
        f"/api/v1/reservations/{first['id']}/state",
        json={"reservationStateId": 4, "additionalReservationIds": [second["id"]]},
    )
    assert bulk.status_code == 200
    body = bulk.json()
    assert body["success"] is True
    assert body["updatedCount"] == 2
    assert body["invalidatedTags"] == []
    assert "redis down" in body["invalidationError"]
    assert body["invalidationError"].startswith("invalidate ")

    created = await client.post(
        "/api/v1/reservations",
        json={"subScenarioId": court, "userId": 5, "initialDate": "2024-06-03", "startHour": 11},
    )
    assert created.status_code == 201
