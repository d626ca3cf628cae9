"""Court availability routes.

Public read endpoints: no auth, no locks. Everything is derived from the
rules, blocks and reservations on each request.
"""

from datetime import date, timedelta

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.database import get_db
from app.models.base import utcnow
from app.schemas import (
    BaseAvailabilityOut,
    BlockOut,
    DaySlotsOut,
    FreeAvailabilityOut,
    IntervalOut,
    ObstructionOut,
    RangeAvailabilityOut,
    SlotsOut,
)
from app.services.availability import FilterOptions, free_availability, generate_base_availability
from app.services.errors import ValidationError
from app.services.lifecycle import effective_status
from app.services.slots import compose, compose_multiple, validate_duration
from app.services.timeofday import format_time

router = APIRouter(prefix="/courts", tags=["availability"])


def _intervals(intervals) -> list[IntervalOut]:
    return [IntervalOut.from_interval(iv) for iv in intervals]


@router.get("/{court_id}/availability/base", response_model=BaseAvailabilityOut)
async def get_base_availability(
    court_id: int,
    query_date: date = Query(..., alias="date", description="Date in YYYY-MM-DD format"),
    db: AsyncSession = Depends(get_db),
):
    """Opening windows from the weekly rules, before blocks and reservations."""
    base = await generate_base_availability(db, court_id, query_date)
    return BaseAvailabilityOut(
        court_id=court_id,
        date=query_date,
        day_of_week=query_date.weekday(),
        intervals=_intervals(base),
    )


@router.get("/{court_id}/availability", response_model=FreeAvailabilityOut)
async def get_free_availability(
    court_id: int,
    query_date: date = Query(..., alias="date", description="Date in YYYY-MM-DD format"),
    include_reservations: bool = True,
    include_blocks: bool = True,
    filter_past_slots: bool = True,
    db: AsyncSession = Depends(get_db),
):
    now = utcnow()
    options = FilterOptions(
        include_reservations=include_reservations,
        include_blocks=include_blocks,
        filter_past_slots=filter_past_slots,
    )
    base, filtered = await free_availability(db, court_id, query_date, options, now)

    return FreeAvailabilityOut(
        court_id=court_id,
        date=query_date,
        base=_intervals(base),
        free=_intervals(filtered.free),
        reservations=[
            ObstructionOut(
                id=r.id,
                start=r.start_time,
                end=r.end_time,
                start_formatted=format_time(r.start_time),
                end_formatted=format_time(r.end_time),
                status=effective_status(r, now).value,
            )
            for r in filtered.reservations
        ],
        blocks=[BlockOut.model_validate(b) for b in filtered.blocks],
    )


@router.get("/{court_id}/availability/slots", response_model=SlotsOut)
async def get_slots(
    court_id: int,
    query_date: date = Query(..., alias="date", description="Date in YYYY-MM-DD format"),
    duration: list[int] = Query(default=[60], description="Slot length in minutes; repeat for several"),
    db: AsyncSession = Depends(get_db),
):
    """Bookable slots for one or more durations, starting on the slot grid."""
    granularity = settings.slot_granularity_minutes
    for d in duration:
        validate_duration(d, granularity)

    _, filtered = await free_availability(db, court_id, query_date, FilterOptions(), utcnow())
    by_duration = compose_multiple(filtered.free, duration, granularity)

    return SlotsOut(
        court_id=court_id,
        date=query_date,
        granularity=granularity,
        slots={d: _intervals(slots) for d, slots in by_duration.items()},
    )


@router.get("/{court_id}/availability/range", response_model=RangeAvailabilityOut)
async def get_range_availability(
    court_id: int,
    start_date: date = Query(...),
    end_date: date = Query(...),
    duration: int = 60,
    db: AsyncSession = Depends(get_db),
):
    """Free time and slots for each day in [start_date, end_date]."""
    if end_date < start_date:
        raise ValidationError("invalid_date_range", "end_date must not be before start_date")
    span = (end_date - start_date).days + 1
    if span > settings.max_range_days:
        raise ValidationError("date_range_too_long", f"Date range cannot exceed {settings.max_range_days} days")
    validate_duration(duration, settings.slot_granularity_minutes)

    now = utcnow()
    days = []
    for offset in range(span):
        day = start_date + timedelta(days=offset)
        _, filtered = await free_availability(db, court_id, day, FilterOptions(), now)
        days.append(
            DaySlotsOut(
                date=day,
                free=_intervals(filtered.free),
                slots=_intervals(compose(filtered.free, duration)),
            )
        )

    return RangeAvailabilityOut(
        court_id=court_id,
        start_date=start_date,
        end_date=end_date,
        duration=duration,
        days=days,
    )
