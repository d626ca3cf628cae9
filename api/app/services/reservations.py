"""Reservation service: create, accept, reject, cancel, listings, and the expiry sweep.

Input and policy checks run before the slot lock is taken. Everything that
depends on other reservations runs after it, inside the same transaction as
the write, so two overlapping requests for one court-day cannot both commit.
Every write commits here; a BookingError raised under the lock rolls back.
"""

import logging
from datetime import date, datetime, timedelta

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.database import slot_lock
from app.models import Court, Facility, Reservation, ReservationStatus
from app.models.base import utcnow
from app.services import stores
from app.services.availability import generate_base_availability, reservation_obstruction
from app.services.errors import BookingError, Forbidden, NotFound, PolicyViolation, SlotConflict, ValidationError
from app.services.lifecycle import assert_transition, effective_status, local_datetime, local_today
from app.services.policy import ResolvedPolicy, get_court, resolve_policy
from app.services.timeofday import (
    Interval,
    format_time,
    is_aligned,
    is_valid_minutes,
    merge_intervals,
    overlaps,
    split_wrap,
    widen,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Checks
# ---------------------------------------------------------------------------


def validate_times(start_time: int, end_time: int, granularity: int | None = None) -> None:
    granularity = granularity or settings.slot_granularity_minutes
    if not is_valid_minutes(start_time) or not is_valid_minutes(end_time):
        raise ValidationError("invalid_time", "Times must be whole minutes between 00:00 and 23:59")
    if start_time >= end_time:
        raise ValidationError("invalid_range", "Start time must be before end time")
    if not is_aligned(start_time, granularity) or not is_aligned(end_time, granularity):
        raise ValidationError(
            "misaligned_time",
            f"Start and end must fall on {granularity}-minute boundaries",
        )


def check_policy(
    policy: ResolvedPolicy, booking_date: date, start_time: int, end_time: int, now: datetime
) -> None:
    length = end_time - start_time
    if length < policy.min_duration_minutes:
        raise PolicyViolation(
            "min_duration",
            f"Reservations must be at least {policy.min_duration_minutes} minutes",
        )
    if length > policy.max_duration_minutes:
        raise PolicyViolation(
            "max_duration",
            f"Reservations can be at most {policy.max_duration_minutes} minutes",
        )

    today = local_today(now)
    if booking_date < today:
        raise ValidationError("date_in_past", "Cannot reserve a date in the past")
    if (booking_date - today).days > policy.max_advance_days:
        raise PolicyViolation(
            "advance_window",
            f"Reservations can be made up to {policy.max_advance_days} days ahead",
        )

    starts_at = local_datetime(booking_date, start_time)
    if starts_at <= now:
        raise ValidationError("start_in_past", "Cannot reserve a time that has already started")
    if starts_at < now + timedelta(minutes=policy.min_advance_notice_minutes):
        raise PolicyViolation(
            "min_advance_notice",
            f"Reservations need at least {policy.min_advance_notice_minutes} minutes notice",
        )


async def check_conflicts(
    db: AsyncSession,
    court: Court,
    booking_date: date,
    requested: Interval,
    policy: ResolvedPolicy,
    now: datetime,
    confirming: Reservation | None = None,
) -> None:
    """Raise SlotConflict if the interval hits a block or an active reservation.

    When `confirming` is given, the interval belongs to that reservation and is
    about to become confirmed: the row itself is skipped and its buffer is
    checked against the other confirmed reservations.
    """
    for block in await stores.blocks_for_date(db, court, booking_date):
        for piece in split_wrap(stores.block_interval(block)):
            if overlaps(requested, piece):
                raise SlotConflict(
                    "slot_blocked",
                    f"Court is blocked from {format_time(piece.start)} to {format_time(piece.end)}"
                    + (f": {block.reason}" if block.reason else ""),
                )

    for res in await stores.active_reservations(db, court.id, booking_date, now):
        if confirming is not None:
            if res.id == confirming.id or res.status == ReservationStatus.PENDING:
                continue
            hit = overlaps(widen(requested, policy.buffer_minutes), Interval(res.start_time, res.end_time))
        else:
            hit = overlaps(requested, reservation_obstruction(res, policy.buffer_minutes))
        if hit:
            raise SlotConflict(
                "slot_taken",
                f"Slot overlaps an existing reservation "
                f"({format_time(res.start_time)}-{format_time(res.end_time)})",
            )


async def check_within_hours(db: AsyncSession, court_id: int, booking_date: date, requested: Interval) -> None:
    base = await generate_base_availability(db, court_id, booking_date)
    for piece in merge_intervals(base):
        if piece.start <= requested.start and requested.end <= piece.end:
            return
    raise ValidationError("outside_availability", "Requested time is outside the court's availability hours")


def _is_owner(res: Reservation, actor_id: int) -> bool:
    return res.court.facility.owner_id == actor_id


def _assert_owner(res: Reservation, actor_id: int) -> None:
    if not _is_owner(res, actor_id):
        raise Forbidden("not_owner", "Only the facility owner can do this")


def can_view(res: Reservation, actor_id: int) -> bool:
    return res.requester_id == actor_id or _is_owner(res, actor_id)


# ---------------------------------------------------------------------------
# Operations
# ---------------------------------------------------------------------------


def reservation_select(reservation_id: int, for_update: bool = False):
    stmt = select(Reservation).where(Reservation.id == reservation_id)
    if for_update:
        # Court and facility come in through an outer join; lock only the reservation row
        stmt = stmt.with_for_update(of=Reservation).execution_options(populate_existing=True)
    return stmt


async def get_reservation(db: AsyncSession, reservation_id: int, for_update: bool = False) -> Reservation:
    result = await db.execute(reservation_select(reservation_id, for_update))
    res = result.scalar_one_or_none()
    if res is None:
        raise NotFound("reservation_not_found", f"Reservation {reservation_id} not found")
    return res


async def create_reservation(
    db: AsyncSession,
    requester_id: int,
    court_id: int,
    booking_date: date,
    start_time: int,
    end_time: int,
    now: datetime | None = None,
) -> Reservation:
    now = now or utcnow()
    validate_times(start_time, end_time)

    court = await get_court(db, court_id)
    if not court.is_active:
        raise ValidationError("court_inactive", "Court is not accepting reservations")
    policy = await resolve_policy(db, court_id)
    check_policy(policy, booking_date, start_time, end_time, now)

    requested = Interval(start_time, end_time)
    try:
        await slot_lock(db, court_id, booking_date)
        await check_conflicts(db, court, booking_date, requested, policy, now)
        await check_within_hours(db, court_id, booking_date, requested)

        res = Reservation(
            court_id=court_id,
            requester_id=requester_id,
            booking_date=booking_date,
            start_time=start_time,
            end_time=end_time,
            status=ReservationStatus.PENDING,
            expires_at=now + timedelta(hours=policy.pending_expiration_hours),
        )
        db.add(res)
        await db.commit()
    except BookingError as exc:
        await db.rollback()
        logger.info(
            "Reservation refused on court %s %s %s-%s: %s",
            court_id,
            booking_date,
            format_time(start_time),
            format_time(end_time),
            exc.rule,
        )
        raise

    logger.info(
        "Reservation %s created: court %s %s %s-%s by user %s",
        res.id,
        court_id,
        booking_date,
        format_time(start_time),
        format_time(end_time),
        requester_id,
    )
    return res


async def accept_reservation(
    db: AsyncSession, reservation_id: int, actor_id: int, now: datetime | None = None
) -> Reservation:
    now = now or utcnow()
    res = await get_reservation(db, reservation_id)
    _assert_owner(res, actor_id)

    # Same lock as create: an expired pending row must not be confirmed
    # while a new request is claiming its interval.
    await slot_lock(db, res.court_id, res.booking_date)
    res = await get_reservation(db, reservation_id, for_update=True)
    assert_transition(effective_status(res, now), ReservationStatus.CONFIRMED)

    # The buffer only widens confirmed rows, so a neighbour confirmed since
    # this hold was placed can still be too close.
    policy = await resolve_policy(db, res.court_id)
    try:
        await check_conflicts(
            db, res.court, res.booking_date, Interval(res.start_time, res.end_time), policy, now, confirming=res
        )
    except SlotConflict as exc:
        await db.rollback()
        logger.info("Reservation %s cannot be confirmed: %s", reservation_id, exc.rule)
        raise

    res.status = ReservationStatus.CONFIRMED
    res.expires_at = None
    await db.commit()
    logger.info("Reservation %s confirmed by user %s", res.id, actor_id)
    return res


async def reject_reservation(
    db: AsyncSession,
    reservation_id: int,
    actor_id: int,
    reason: str | None = None,
    now: datetime | None = None,
) -> Reservation:
    now = now or utcnow()
    res = await get_reservation(db, reservation_id, for_update=True)
    _assert_owner(res, actor_id)
    assert_transition(effective_status(res, now), ReservationStatus.REJECTED)

    res.status = ReservationStatus.REJECTED
    res.status_reason = reason
    res.expires_at = None
    await db.commit()
    logger.info("Reservation %s rejected by user %s", res.id, actor_id)
    return res


async def cancel_reservation(
    db: AsyncSession,
    reservation_id: int,
    actor_id: int,
    reason: str | None = None,
    now: datetime | None = None,
) -> Reservation:
    now = now or utcnow()
    res = await get_reservation(db, reservation_id, for_update=True)
    if not can_view(res, actor_id):
        raise Forbidden("not_participant", "Only the requester or the facility owner can cancel")
    assert_transition(effective_status(res, now), ReservationStatus.CANCELLED)

    policy = await resolve_policy(db, res.court_id)
    deadline = local_datetime(res.booking_date, res.start_time) - timedelta(hours=policy.cancellation_cutoff_hours)
    if now > deadline:
        raise PolicyViolation(
            "cancellation_cutoff",
            f"Reservations must be cancelled at least {policy.cancellation_cutoff_hours} hours before the start",
        )

    res.status = ReservationStatus.CANCELLED
    res.status_reason = reason
    res.expires_at = None
    await db.commit()
    logger.info("Reservation %s cancelled by user %s", res.id, actor_id)
    return res


# Stored statuses that can read as the requested effective status
_STORED_AS = {
    ReservationStatus.EXPIRED: [ReservationStatus.EXPIRED, ReservationStatus.PENDING],
    ReservationStatus.COMPLETED: [ReservationStatus.COMPLETED, ReservationStatus.CONFIRMED],
}


async def list_for_requester(
    db: AsyncSession,
    requester_id: int,
    status: ReservationStatus | None = None,
    limit: int = 50,
    offset: int = 0,
    now: datetime | None = None,
) -> tuple[list[Reservation], int]:
    """A requester's reservations, newest first, with the total before paging.

    The status filter matches the effective status, so it is applied after
    loading; the query only narrows to stored statuses that could match.
    """
    now = now or utcnow()
    stmt = (
        select(Reservation)
        .where(Reservation.requester_id == requester_id)
        .order_by(Reservation.created_at.desc(), Reservation.id.desc())
    )
    if status is not None:
        stmt = stmt.where(Reservation.status.in_(_STORED_AS.get(status, [status])))

    result = await db.execute(stmt)
    rows = list(result.scalars().all())
    if status is not None:
        rows = [res for res in rows if effective_status(res, now) == status]
    return rows[offset : offset + limit], len(rows)


async def list_pending_for_facility(
    db: AsyncSession,
    facility_id: int,
    actor_id: int,
    limit: int = 50,
    offset: int = 0,
    now: datetime | None = None,
) -> tuple[list[Reservation], int]:
    """Pending holds across a facility's courts awaiting the owner, newest first.

    Holds that have already lapsed are left out even if the sweep has not
    rewritten them yet.
    """
    now = now or utcnow()
    facility = await db.get(Facility, facility_id)
    if facility is None:
        raise NotFound("facility_not_found", f"Facility {facility_id} not found")
    if facility.owner_id != actor_id:
        raise Forbidden("not_owner", "Only the facility owner can do this")

    conditions = (
        Court.facility_id == facility_id,
        Reservation.status == ReservationStatus.PENDING,
        Reservation.expires_at > now,
    )
    total = await db.scalar(
        select(func.count()).select_from(Reservation).join(Court, Reservation.court_id == Court.id).where(*conditions)
    )
    result = await db.execute(
        select(Reservation)
        .join(Court, Reservation.court_id == Court.id)
        .where(*conditions)
        .order_by(Reservation.created_at.desc(), Reservation.id.desc())
        .limit(limit)
        .offset(offset)
    )
    return list(result.scalars().all()), total or 0


async def expire_stale_reservations(
    db: AsyncSession, now: datetime | None = None, batch_size: int = 100
) -> list[int]:
    """Rewrite pending rows past expires_at to expired. Safe to run any number of times.

    Readers already treat such rows as expired, so this only tidies storage.
    """
    now = now or utcnow()
    result = await db.execute(
        select(Reservation)
        .where(
            Reservation.status == ReservationStatus.PENDING,
            Reservation.expires_at.is_not(None),
            Reservation.expires_at <= now,
        )
        .order_by(Reservation.expires_at)
        .limit(batch_size)
        .with_for_update(skip_locked=True, of=Reservation)
    )
    expired = list(result.scalars().all())
    for res in expired:
        res.status = ReservationStatus.EXPIRED
        res.status_reason = "Not accepted before the pending hold ran out"
        res.expires_at = None
    await db.commit()

    ids = [res.id for res in expired]
    if ids:
        logger.info("Expired %d stale pending reservations: %s", len(ids), ids)
    return ids
