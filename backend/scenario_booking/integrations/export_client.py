"""HTTP client for the external export service."""

from __future__ import annotations

import logging
from typing import Any

import httpx
from pydantic import ValidationError as PydanticValidationError

from scenario_booking.schemas.export import (
    ExportDownload,
    ExportJob,
    ExportJobStatus,
    ExportRequest,
)

logger = logging.getLogger(__name__)


class ExportClientError(RuntimeError):
    """Raised when the export service cannot be reached or answers badly."""


def _unwrap(body: Any) -> dict[str, Any]:
    """Responses come either flat or wrapped in ``{"data": {...}}``."""
    if not isinstance(body, dict):
        raise ExportClientError("Export service returned a non-object payload")
    data = body.get("data")
    if isinstance(data, dict):
        return data
    return body


class ExportClient:
    """Start, poll and locate exports for one resource path.

    ``resource`` is the collection being exported, e.g. ``"sub-scenarios"``
    or ``"reservations"``.
    """

    def __init__(
        self,
        base_url: str,
        resource: str,
        *,
        token: str | None = None,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not base_url:
            raise ExportClientError("Export service URL is not configured")
        self.resource = resource.strip("/")
        headers = {"Accept": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            headers=headers,
            timeout=httpx.Timeout(timeout),
            transport=transport,
        )

    async def __aenter__(self) -> ExportClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    def _path(self, suffix: str = "") -> str:
        return f"/{self.resource}/export{suffix}"

    async def _request(self, method: str, path: str, **kwargs: Any) -> dict[str, Any]:
        try:
            response = await self._client.request(method, path, **kwargs)
            response.raise_for_status()
            body = response.json()
        except httpx.HTTPStatusError as exc:
            raise ExportClientError(
                f"{method} {path} returned {exc.response.status_code}"
            ) from exc
        except httpx.HTTPError as exc:
            raise ExportClientError(f"{method} {path} failed: {exc}") from exc
        except ValueError as exc:
            raise ExportClientError(f"{method} {path} returned invalid JSON") from exc
        return _unwrap(body)

    async def start_export(self, request: ExportRequest | None = None) -> str:
        payload = (request or ExportRequest()).model_dump(by_alias=True)
        data = await self._request("POST", self._path(), json=payload)
        job_id = data.get("jobId")
        if not job_id:
            raise ExportClientError("Export service did not return a jobId")
        logger.debug("Started %s export job %s", self.resource, job_id)
        return str(job_id)

    async def get_status(self, job_id: str) -> ExportJob:
        data = await self._request("GET", self._path(f"/{job_id}/status"))
        status = data.get("status") or ExportJobStatus.PENDING.value
        payload: dict[str, Any] = {
            "id": job_id,
            "status": status,
            "progress": data.get("progress"),
            "fileName": data.get("fileName") or f"{self.resource}_export.xlsx",
            "error": data.get("error"),
            "estimatedTime": data.get("estimatedTime"),
        }
        if data.get("createdAt"):
            payload["createdAt"] = data["createdAt"]
        if status == ExportJobStatus.COMPLETED.value:
            payload["downloadUrl"] = data.get("downloadUrl") or self._path(
                f"/{job_id}/file"
            )
        try:
            return ExportJob.model_validate(payload)
        except PydanticValidationError as exc:
            raise ExportClientError(f"Unexpected status payload for job {job_id}") from exc

    async def get_download(self, job_id: str) -> ExportDownload:
        data = await self._request("GET", self._path(f"/{job_id}/download"))
        if not data.get("downloadUrl") or not data.get("fileName"):
            raise ExportClientError(f"No download location for job {job_id}")
        return ExportDownload(url=data["downloadUrl"], file_name=data["fileName"])


__all__ = ["ExportClient", "ExportClientError"]
