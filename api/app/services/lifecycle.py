"""Reservation state machine and the lazy-expiry predicates.

Stored status is only half the story: a pending row past its expires_at is
expired, and a confirmed row whose end has passed is completed, whether or
not anything has rewritten the row yet. Every reader goes through
effective_status / is_active so that an unswept row behaves exactly like a
swept one.
"""

from datetime import date, datetime, time
from zoneinfo import ZoneInfo

from app.core.config import settings
from app.models import Reservation, ReservationStatus
from app.services.errors import InvalidTransition

TRANSITIONS: dict[ReservationStatus, frozenset[ReservationStatus]] = {
    ReservationStatus.PENDING: frozenset(
        {
            ReservationStatus.CONFIRMED,
            ReservationStatus.REJECTED,
            ReservationStatus.CANCELLED,
            ReservationStatus.EXPIRED,
        }
    ),
    ReservationStatus.CONFIRMED: frozenset({ReservationStatus.CANCELLED, ReservationStatus.COMPLETED}),
}

TERMINAL = frozenset(
    {
        ReservationStatus.REJECTED,
        ReservationStatus.CANCELLED,
        ReservationStatus.COMPLETED,
        ReservationStatus.EXPIRED,
    }
)


def facility_tz() -> ZoneInfo:
    return ZoneInfo(settings.timezone)


def local_datetime(booking_date: date, minutes: int) -> datetime:
    """Aware datetime for a time of day on a date, in the facility timezone."""
    return datetime.combine(booking_date, time(minutes // 60, minutes % 60), tzinfo=facility_tz())


def local_today(now: datetime) -> date:
    return now.astimezone(facility_tz()).date()


def is_pending_expired(res: Reservation, now: datetime) -> bool:
    return res.status == ReservationStatus.PENDING and res.expires_at is not None and res.expires_at <= now


def effective_status(res: Reservation, now: datetime) -> ReservationStatus:
    if is_pending_expired(res, now):
        return ReservationStatus.EXPIRED
    if res.status == ReservationStatus.CONFIRMED and local_datetime(res.booking_date, res.end_time) <= now:
        return ReservationStatus.COMPLETED
    return res.status


def is_active(res: Reservation, now: datetime) -> bool:
    """Whether the reservation still holds its interval against others."""
    if res.status in (ReservationStatus.CONFIRMED, ReservationStatus.COMPLETED):
        return True
    return res.status == ReservationStatus.PENDING and not is_pending_expired(res, now)


def can_transition(current: ReservationStatus, target: ReservationStatus) -> bool:
    return target in TRANSITIONS.get(current, frozenset())


def assert_transition(current: ReservationStatus, target: ReservationStatus) -> None:
    if not can_transition(current, target):
        raise InvalidTransition(
            "invalid_transition",
            f"Cannot move a {current.value} reservation to {target.value}",
        )
