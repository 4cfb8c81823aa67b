"""ORM model exports."""

from scenario_booking.models.reservation import Reservation, ReservationState
from scenario_booking.models.sub_scenario import SubScenario

__all__ = [
    "Reservation",
    "ReservationState",
    "SubScenario",
]
