"""Tests for the export service client."""

from __future__ import annotations

import json

import httpx
import pytest

from scenario_booking.integrations import ExportClient, ExportClientError
from scenario_booking.schemas.export import ExportJobStatus, ExportRequest
from scenario_booking.services.job_poller import AsyncJobPoller

pytestmark = pytest.mark.asyncio

BASE_URL = "https://exports.example"


def _client(handler) -> ExportClient:
    return ExportClient(
        BASE_URL,
        "sub-scenarios",
        token="secret-token",
        transport=httpx.MockTransport(handler),
    )


async def test_start_export_posts_payload_and_unwraps_job_id() -> None:
    seen: dict[str, object] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["auth"] = request.headers.get("Authorization")
        seen["body"] = json.loads(request.content)
        return httpx.Response(
            202, json={"statusCode": 202, "data": {"jobId": "abc", "status": "pending"}}
        )

    async with _client(handler) as client:
        job_id = await client.start_export(
            ExportRequest(format="csv", filters={"active": True})
        )

    assert job_id == "abc"
    assert seen["path"] == "/sub-scenarios/export"
    assert seen["auth"] == "Bearer secret-token"
    assert seen["body"] == {"format": "csv", "filters": {"active": True}}


async def test_status_accepts_flat_and_wrapped_payloads() -> None:
    payloads = iter(
        [
            {"status": "processing", "progress": 40},
            {"data": {"status": "completed", "fileName": "sub.xlsx"}},
        ]
    )

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/sub-scenarios/export/abc/status"
        return httpx.Response(200, json=next(payloads))

    async with _client(handler) as client:
        running = await client.get_status("abc")
        done = await client.get_status("abc")

    assert running.status is ExportJobStatus.PROCESSING
    assert running.progress == 40
    assert running.download_url is None
    assert done.status is ExportJobStatus.COMPLETED
    assert done.download_url == "/sub-scenarios/export/abc/file"
    assert done.file_name == "sub.xlsx"


async def test_download_location() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/sub-scenarios/export/abc/download"
        return httpx.Response(
            200, json={"downloadUrl": "https://files.example/a.xlsx", "fileName": "a.xlsx"}
        )

    async with _client(handler) as client:
        download = await client.get_download("abc")
    assert download.url == "https://files.example/a.xlsx"


async def test_http_errors_become_client_errors() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503, json={"message": "busy"})

    async with _client(handler) as client:
        with pytest.raises(ExportClientError, match="503"):
            await client.start_export()


async def test_missing_job_id_is_an_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"data": {}})

    async with _client(handler) as client:
        with pytest.raises(ExportClientError):
            await client.start_export()


async def test_poller_drives_the_client_end_to_end() -> None:
    polls = 0

    def handler(request: httpx.Request) -> httpx.Response:
        nonlocal polls
        path = request.url.path
        if request.method == "POST":
            return httpx.Response(202, json={"data": {"jobId": "j9"}})
        if path.endswith("/status"):
            polls += 1
            status = "completed" if polls == 3 else "processing"
            return httpx.Response(200, json={"data": {"status": status}})
        return httpx.Response(404)

    async with _client(handler) as client:
        poller = AsyncJobPoller(
            client.start_export, client.get_status, client.get_download, interval=0
        )
        job = await poller.run()
        download = await poller.download()

    assert job is not None and job.id == "j9"
    assert polls == 3
    assert download.url == "/sub-scenarios/export/j9/file"
    assert download.file_name == "sub-scenarios_export.xlsx"
