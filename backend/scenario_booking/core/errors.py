"""Error taxonomy shared by the availability and reservation services."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from scenario_booking.models.reservation import ReservationState
    from scenario_booking.schemas.export import ExportJob


class BookingError(Exception):
    """Base class for expected, caller-visible failures."""

    kind = "BookingError"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_detail(self) -> dict[str, Any]:
        return {"error": self.kind, "message": self.message}


class ValidationError(BookingError, ValueError):
    """Malformed or out-of-range input. Never retried."""

    kind = "ValidationError"

    def __init__(self, message: str, *, field: str | None = None) -> None:
        super().__init__(message)
        self.field = field

    def to_detail(self) -> dict[str, Any]:
        detail = super().to_detail()
        if self.field is not None:
            detail["field"] = self.field
        return detail


class NotFoundError(BookingError):
    """A referenced reservation or sub-scenario does not exist."""

    kind = "NotFoundError"

    def __init__(self, entity: str, identifier: object) -> None:
        super().__init__(f"{entity} {identifier} not found")
        self.entity = entity
        self.identifier = identifier


class InvalidTransitionError(BookingError):
    """The requested state edge is not part of the reservation lifecycle."""

    kind = "InvalidTransitionError"

    def __init__(
        self,
        reservation_id: int,
        current: ReservationState,
        attempted: ReservationState,
    ) -> None:
        super().__init__(
            f"Reservation {reservation_id} cannot move from "
            f"{current.label} to {attempted.label}"
        )
        self.reservation_id = reservation_id
        self.current = current
        self.attempted = attempted

    def to_detail(self) -> dict[str, Any]:
        detail = super().to_detail()
        detail["currentStateId"] = int(self.current)
        detail["attemptedStateId"] = int(self.attempted)
        return detail


class SlotUnavailableError(BookingError):
    """A new reservation would overlap a blocking one."""

    kind = "SlotUnavailableError"


class CollaboratorError(BookingError):
    """A repository, cache or HTTP collaborator failed."""

    kind = "CollaboratorError"

    def __init__(self, operation: str, cause: BaseException) -> None:
        super().__init__(f"{operation} failed: {cause}")
        self.operation = operation
        self.cause = cause


class CacheInvalidationError(CollaboratorError):
    """One or more cache tags could not be invalidated.

    Every tag is still attempted; ``issued`` holds the ones that succeeded.
    """

    def __init__(
        self,
        failed_tags: list[str],
        cause: BaseException,
        *,
        issued: frozenset[str] = frozenset(),
    ) -> None:
        super().__init__(f"invalidate {', '.join(failed_tags)}", cause)
        self.failed_tags = failed_tags
        self.issued = issued


class JobError(BookingError):
    """Base class for export job outcomes that are not a success."""

    kind = "JobError"

    def __init__(self, message: str, *, job: ExportJob | None = None) -> None:
        super().__init__(message)
        self.job = job

    def to_detail(self) -> dict[str, Any]:
        detail = super().to_detail()
        if self.job is not None:
            detail["job"] = self.job.model_dump(mode="json", by_alias=True)
        return detail


class JobStartError(JobError):
    """The export job could not be started."""

    kind = "JobStartError"


class JobFailedError(JobError):
    """The export job reached the ``failed`` terminal status."""

    kind = "JobFailedError"


class JobTimedOutError(JobError):
    """Polling exhausted its attempts before a terminal status was observed."""

    kind = "TimedOut"


__all__ = [
    "BookingError",
    "CacheInvalidationError",
    "CollaboratorError",
    "InvalidTransitionError",
    "JobError",
    "JobFailedError",
    "JobStartError",
    "JobTimedOutError",
    "NotFoundError",
    "SlotUnavailableError",
    "ValidationError",
]
