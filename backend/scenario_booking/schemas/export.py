"""Schemas for asynchronous export jobs."""

from __future__ import annotations

import enum
from datetime import UTC, datetime
from typing import Any, Literal

from pydantic import Field

from scenario_booking.schemas.common import CamelModel


class ExportJobStatus(str, enum.Enum):
    """Statuses reported by the export service."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class ExportJob(CamelModel):
    """Export job as observed through polling."""

    id: str
    status: ExportJobStatus
    progress: float | None = Field(default=None, ge=0, le=100)
    download_url: str | None = None
    file_name: str | None = None
    error: str | None = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    estimated_time: int | None = Field(default=None, ge=0)


class ExportDownload(CamelModel):
    """Where to fetch a finished export."""

    url: str
    file_name: str


class ExportRequest(CamelModel):
    """Payload sent when starting an export."""

    format: Literal["xlsx", "csv"] = "xlsx"
    filters: dict[str, Any] = Field(default_factory=dict)
