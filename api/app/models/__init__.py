"""All models imported here so Base.metadata sees every table."""

from app.models.availability import AvailabilityRule, BlockedTimeRange, BlockType, BookingPolicy
from app.models.base import Base
from app.models.facility import Court, Facility
from app.models.reservation import Reservation, ReservationStatus

__all__ = [
    "Base",
    "Facility",
    "Court",
    "AvailabilityRule",
    "BlockedTimeRange",
    "BlockType",
    "BookingPolicy",
    "Reservation",
    "ReservationStatus",
]
