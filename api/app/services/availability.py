"""Base and free availability for a court on a date.

Base availability comes straight from the weekly rules. Free availability is
base minus blocks and active reservations, computed on every request; nothing
derived here is ever stored.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.models import BlockedTimeRange, Reservation, ReservationStatus
from app.models.base import utcnow
from app.services import stores
from app.services.lifecycle import facility_tz, local_today
from app.services.policy import ResolvedPolicy, get_court, resolve_policy
from app.services.timeofday import DAY_END, Interval, subtract_intervals, widen

logger = logging.getLogger(__name__)


@dataclass
class FilterOptions:
    include_reservations: bool = True
    include_blocks: bool = True
    filter_past_slots: bool = True
    past_slot_buffer_minutes: int = field(default_factory=lambda: settings.past_slot_buffer_minutes)


@dataclass
class FilteredAvailability:
    free: list[Interval]
    reservations: list[Reservation]
    blocks: list[BlockedTimeRange]


async def generate_base_availability(db: AsyncSession, court_id: int, booking_date: date) -> list[Interval]:
    """One interval per active rule for the date's weekday, sorted by start.

    A rule running past midnight is returned as a wrap interval and counts
    for this date only; the spill into the next morning is not carried over.
    """
    await get_court(db, court_id)
    rules = await stores.active_rules(db, court_id, booking_date.weekday())
    return sorted(Interval(rule.start_time, rule.end_time) for rule in rules)


def reservation_obstruction(res: Reservation, buffer_minutes: int) -> Interval:
    interval = Interval(res.start_time, res.end_time)
    if res.status == ReservationStatus.CONFIRMED:
        return widen(interval, buffer_minutes)
    return interval


def past_cutoff(booking_date: date, now: datetime, buffer_minutes: int) -> int | None:
    """Minute before which today's free time is trimmed, or None for other dates."""
    if booking_date != local_today(now):
        return None
    local = now.astimezone(facility_tz())
    return local.hour * 60 + local.minute + buffer_minutes


async def filter_availability(
    db: AsyncSession,
    base: list[Interval],
    court_id: int,
    booking_date: date,
    options: FilterOptions | None = None,
    now: datetime | None = None,
    policy: ResolvedPolicy | None = None,
) -> FilteredAvailability:
    options = options or FilterOptions()
    now = now or utcnow()
    court = await get_court(db, court_id)
    if policy is None:
        policy = await resolve_policy(db, court_id)

    reservations: list[Reservation] = []
    blocks: list[BlockedTimeRange] = []
    obstructions: list[Interval] = []

    if options.include_blocks:
        blocks = await stores.blocks_for_date(db, court, booking_date)
        obstructions.extend(stores.block_interval(b) for b in blocks)

    if options.include_reservations:
        reservations = await stores.active_reservations(db, court_id, booking_date, now)
        obstructions.extend(reservation_obstruction(r, policy.buffer_minutes) for r in reservations)

    free = subtract_intervals(base, obstructions)

    if options.filter_past_slots:
        cutoff = past_cutoff(booking_date, now, options.past_slot_buffer_minutes)
        if cutoff is not None:
            free = [] if cutoff >= DAY_END else subtract_intervals(free, [Interval(0, cutoff)])

    logger.debug(
        "Court %s on %s: %d base, %d obstructions, %d free",
        court_id,
        booking_date,
        len(base),
        len(obstructions),
        len(free),
    )
    return FilteredAvailability(free=free, reservations=reservations, blocks=blocks)


async def free_availability(
    db: AsyncSession,
    court_id: int,
    booking_date: date,
    options: FilterOptions | None = None,
    now: datetime | None = None,
) -> tuple[list[Interval], FilteredAvailability]:
    """Base intervals and the filtered result for one court-day."""
    base = await generate_base_availability(db, court_id, booking_date)
    filtered = await filter_availability(db, base, court_id, booking_date, options, now)
    return base, filtered
