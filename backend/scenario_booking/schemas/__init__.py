"""Schema exports."""

from scenario_booking.schemas.availability import (
    AvailabilityConfigurationRead,
    AvailabilityResponse,
    AvailabilityStatsRead,
    TimeSlotRead,
)
from scenario_booking.schemas.export import (
    ExportDownload,
    ExportJob,
    ExportJobStatus,
    ExportRequest,
)
from scenario_booking.schemas.reservation import (
    BulkItemErrorRead,
    BulkUpdateResultRead,
    ReservationCreate,
    ReservationRead,
    ReservationStateRead,
    ReservationStateUpdate,
)

__all__ = [
    "AvailabilityConfigurationRead",
    "AvailabilityResponse",
    "AvailabilityStatsRead",
    "BulkItemErrorRead",
    "BulkUpdateResultRead",
    "ExportDownload",
    "ExportJob",
    "ExportJobStatus",
    "ExportRequest",
    "ReservationCreate",
    "ReservationRead",
    "ReservationStateRead",
    "ReservationStateUpdate",
    "TimeSlotRead",
]
