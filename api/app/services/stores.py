"""Read access to rules, blocks and reservations for one court-day."""

from datetime import date, datetime

from sqlalchemy import and_, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models import AvailabilityRule, BlockedTimeRange, BlockType, Court, Reservation, ReservationStatus
from app.services.lifecycle import is_active
from app.services.timeofday import DAY_END, Interval

# Statuses that can still hold an interval; the rest are terminal
_HOLDING = (ReservationStatus.PENDING, ReservationStatus.CONFIRMED, ReservationStatus.COMPLETED)


async def active_rules(db: AsyncSession, court_id: int, day_of_week: int) -> list[AvailabilityRule]:
    result = await db.execute(
        select(AvailabilityRule)
        .where(
            AvailabilityRule.court_id == court_id,
            AvailabilityRule.day_of_week == day_of_week,
            AvailabilityRule.is_active.is_(True),
        )
        .order_by(AvailabilityRule.start_time)
    )
    return list(result.scalars().all())


async def blocks_for_date(db: AsyncSession, court: Court, booking_date: date) -> list[BlockedTimeRange]:
    """Active blocks touching the date, scoped to the court or to its whole facility."""
    result = await db.execute(
        select(BlockedTimeRange)
        .where(
            BlockedTimeRange.facility_id == court.facility_id,
            BlockedTimeRange.is_active.is_(True),
            or_(BlockedTimeRange.court_id == court.id, BlockedTimeRange.court_id.is_(None)),
            or_(
                and_(
                    BlockedTimeRange.block_type == BlockType.ONE_TIME,
                    BlockedTimeRange.start_date == booking_date,
                ),
                and_(
                    BlockedTimeRange.block_type == BlockType.RECURRING,
                    BlockedTimeRange.day_of_week == booking_date.weekday(),
                ),
                and_(
                    BlockedTimeRange.block_type == BlockType.DATE_RANGE,
                    BlockedTimeRange.start_date <= booking_date,
                    BlockedTimeRange.end_date >= booking_date,
                ),
            ),
        )
        .order_by(BlockedTimeRange.start_time, BlockedTimeRange.id)
    )
    return list(result.scalars().all())


def block_interval(block: BlockedTimeRange) -> Interval:
    if block.block_type == BlockType.DATE_RANGE:
        return Interval(0, DAY_END)
    return Interval(block.start_time, block.end_time)


async def active_reservations(
    db: AsyncSession, court_id: int, booking_date: date, now: datetime
) -> list[Reservation]:
    """Reservations on the court-day that still obstruct, expired pendings excluded."""
    result = await db.execute(
        select(Reservation)
        .where(
            Reservation.court_id == court_id,
            Reservation.booking_date == booking_date,
            Reservation.status.in_(_HOLDING),
        )
        .order_by(Reservation.start_time)
    )
    return [res for res in result.scalars().all() if is_active(res, now)]
