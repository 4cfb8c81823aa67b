"""Drive an asynchronous export job from start to a terminal status.

The poller checks the job immediately after it starts and then every
``interval`` seconds. Each status check counts as one attempt, including
checks that raised; after ``max_attempts`` without a terminal status the
poll ends with :class:`JobTimedOutError`. Cancelling stops further checks
and leaves the remote job untouched.
"""

from __future__ import annotations

import asyncio
import enum
import logging
from collections.abc import Awaitable, Callable

from scenario_booking.core.errors import (
    JobError,
    JobFailedError,
    JobStartError,
    JobTimedOutError,
)
from scenario_booking.schemas.export import ExportDownload, ExportJob, ExportJobStatus

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 3.0
DEFAULT_MAX_ATTEMPTS = 20

StartFn = Callable[[], Awaitable[str | None]]
StatusFn = Callable[[str], Awaitable[ExportJob]]
DownloadFn = Callable[[str], Awaitable[ExportDownload]]
UpdateFn = Callable[[ExportJob], None]


class JobPollerState(str, enum.Enum):
    NOT_STARTED = "not_started"
    STARTING = "starting"
    POLLING = "polling"
    COMPLETED = "completed"
    FAILED = "failed"
    TIMED_OUT = "timed_out"
    CANCELLED = "cancelled"


class AsyncJobPoller:
    """Start a job and poll it until completion, failure, timeout or cancel."""

    def __init__(
        self,
        start_fn: StartFn,
        status_fn: StatusFn,
        download_fn: DownloadFn | None = None,
        *,
        interval: float = DEFAULT_POLL_INTERVAL,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        on_update: UpdateFn | None = None,
    ) -> None:
        if interval < 0:
            raise ValueError("interval must not be negative")
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self._start_fn = start_fn
        self._status_fn = status_fn
        self._download_fn = download_fn
        self._on_update = on_update
        self.interval = interval
        self.max_attempts = max_attempts
        self.state = JobPollerState.NOT_STARTED
        self.job_id: str | None = None
        self.attempts = 0
        self.last_job: ExportJob | None = None
        self.last_error: Exception | None = None
        self._cancelled = asyncio.Event()

    async def start(self) -> str:
        if self.state is not JobPollerState.NOT_STARTED:
            raise RuntimeError(f"Poller already {self.state.value}")
        self.state = JobPollerState.STARTING
        try:
            job_id = await self._start_fn()
        except Exception as exc:
            self.state = JobPollerState.FAILED
            raise JobStartError(f"Could not start export: {exc}") from exc
        if not job_id:
            self.state = JobPollerState.FAILED
            raise JobStartError("Export service did not return a job id")
        self.job_id = job_id
        self.state = JobPollerState.POLLING
        logger.info("Export job %s started", job_id)
        return job_id

    async def wait(self) -> ExportJob | None:
        """Poll until a terminal status; ``None`` means the poll was cancelled."""
        if self.state is JobPollerState.NOT_STARTED:
            await self.start()
        if self.state is not JobPollerState.POLLING:
            raise RuntimeError(f"Cannot poll a job that is {self.state.value}")
        assert self.job_id is not None

        while self.attempts < self.max_attempts:
            if self._cancelled.is_set():
                return self._mark_cancelled()
            self.attempts += 1
            try:
                job = await self._status_fn(self.job_id)
            except Exception as exc:
                self.last_error = exc
                logger.warning(
                    "Status check %d/%d for export job %s failed: %s",
                    self.attempts,
                    self.max_attempts,
                    self.job_id,
                    exc,
                )
            else:
                if self._cancelled.is_set():
                    return self._mark_cancelled()
                self.last_job = job
                if self._on_update is not None:
                    self._on_update(job)
                if job.status is ExportJobStatus.COMPLETED:
                    self.state = JobPollerState.COMPLETED
                    logger.info("Export job %s completed", self.job_id)
                    return job
                if job.status is ExportJobStatus.FAILED:
                    self.state = JobPollerState.FAILED
                    raise JobFailedError(job.error or "Export job failed", job=job)

            if self.attempts >= self.max_attempts:
                break
            if await self._sleep_or_cancel():
                return self._mark_cancelled()

        self.state = JobPollerState.TIMED_OUT
        logger.warning(
            "Export job %s gave no terminal status after %d attempts",
            self.job_id,
            self.attempts,
        )
        raise JobTimedOutError(
            f"Export job {self.job_id} timed out after {self.attempts} attempts",
            job=self.last_job,
        ) from self.last_error

    async def run(self) -> ExportJob | None:
        await self.start()
        return await self.wait()

    def cancel(self) -> None:
        """Stop polling; terminal states are left as they are."""
        self._cancelled.set()
        if self.state is JobPollerState.NOT_STARTED:
            self.state = JobPollerState.CANCELLED

    async def download(self) -> ExportDownload:
        if self.state is not JobPollerState.COMPLETED or self.job_id is None:
            raise JobError("Export is not ready for download", job=self.last_job)
        job = self.last_job
        if job is not None and job.download_url and job.file_name:
            return ExportDownload(url=job.download_url, file_name=job.file_name)
        if self._download_fn is None:
            raise JobError("Export job has no download location", job=job)
        return await self._download_fn(self.job_id)

    async def _sleep_or_cancel(self) -> bool:
        try:
            await asyncio.wait_for(self._cancelled.wait(), timeout=self.interval)
        except TimeoutError:
            return False
        return True

    def _mark_cancelled(self) -> None:
        self.state = JobPollerState.CANCELLED
        logger.info("Polling of export job %s cancelled", self.job_id)
        return None


__all__ = [
    "AsyncJobPoller",
    "DEFAULT_MAX_ATTEMPTS",
    "DEFAULT_POLL_INTERVAL",
    "JobPollerState",
]
