"""Booking policy resolution.

A court inherits its facility's policy field by field and may override any
of it. Fields neither scope sets fall back to the system defaults in
Settings.
"""

from dataclasses import dataclass, fields

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.models import BookingPolicy, Court
from app.services.errors import NotFound


@dataclass
class PolicyOverrides:
    max_advance_days: int | None = None
    min_duration_minutes: int | None = None
    max_duration_minutes: int | None = None
    buffer_minutes: int | None = None
    min_advance_notice_minutes: int | None = None
    pending_expiration_hours: int | None = None
    cancellation_cutoff_hours: int | None = None

    @classmethod
    def from_row(cls, row: BookingPolicy | None) -> "PolicyOverrides":
        if row is None:
            return cls()
        return cls(**{f.name: getattr(row, f.name) for f in fields(cls)})


@dataclass(frozen=True)
class ResolvedPolicy:
    max_advance_days: int
    min_duration_minutes: int
    max_duration_minutes: int
    buffer_minutes: int
    min_advance_notice_minutes: int
    pending_expiration_hours: int
    cancellation_cutoff_hours: int


def system_defaults() -> ResolvedPolicy:
    return ResolvedPolicy(
        max_advance_days=settings.default_max_advance_days,
        min_duration_minutes=settings.default_min_duration_minutes,
        max_duration_minutes=settings.default_max_duration_minutes,
        buffer_minutes=settings.default_buffer_minutes,
        min_advance_notice_minutes=settings.default_min_advance_notice_minutes,
        pending_expiration_hours=settings.default_pending_expiration_hours,
        cancellation_cutoff_hours=settings.default_cancellation_cutoff_hours,
    )


def merge_policy(
    court: PolicyOverrides | None,
    facility: PolicyOverrides | None,
    defaults: ResolvedPolicy | None = None,
) -> ResolvedPolicy:
    """Court value, else facility value, else default, for every field independently."""
    court = court or PolicyOverrides()
    facility = facility or PolicyOverrides()
    defaults = defaults or system_defaults()

    merged = {}
    for f in fields(ResolvedPolicy):
        value = getattr(court, f.name)
        if value is None:
            value = getattr(facility, f.name)
        if value is None:
            value = getattr(defaults, f.name)
        merged[f.name] = value
    return ResolvedPolicy(**merged)


async def get_court(db: AsyncSession, court_id: int) -> Court:
    result = await db.execute(select(Court).where(Court.id == court_id))
    court = result.scalar_one_or_none()
    if court is None:
        raise NotFound("court_not_found", f"Court {court_id} not found")
    return court


async def resolve_policy(db: AsyncSession, court_id: int) -> ResolvedPolicy:
    court = await get_court(db, court_id)

    result = await db.execute(
        select(BookingPolicy).where(
            BookingPolicy.facility_id == court.facility_id,
            BookingPolicy.is_active.is_(True),
            (BookingPolicy.court_id == court.id) | BookingPolicy.court_id.is_(None),
        )
        .order_by(BookingPolicy.id)
    )
    court_row = None
    facility_row = None
    for row in result.scalars().all():
        if row.court_id is None:
            facility_row = facility_row or row
        else:
            court_row = court_row or row

    return merge_policy(PolicyOverrides.from_row(court_row), PolicyOverrides.from_row(facility_row))
