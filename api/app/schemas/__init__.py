"""Pydantic schemas for API serialisation."""

from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field

from app.models import BlockType
from app.services.timeofday import DAY_END, Interval, format_time

# --- Availability ---


class IntervalOut(BaseModel):
    start: int  # minutes since midnight
    end: int
    start_formatted: str  # "HH:MM"
    end_formatted: str

    @classmethod
    def from_interval(cls, interval: Interval) -> "IntervalOut":
        return cls(**interval.as_dict())


class BlockOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    block_type: BlockType
    court_id: int | None
    start_time: int | None
    end_time: int | None
    reason: str | None


class BaseAvailabilityOut(BaseModel):
    court_id: int
    date: date
    day_of_week: int  # 0=Mon..6=Sun
    intervals: list[IntervalOut]


class ObstructionOut(BaseModel):
    id: int
    start: int
    end: int
    start_formatted: str
    end_formatted: str
    status: str


class FreeAvailabilityOut(BaseModel):
    court_id: int
    date: date
    base: list[IntervalOut]
    free: list[IntervalOut]
    reservations: list[ObstructionOut]
    blocks: list[BlockOut]


class SlotsOut(BaseModel):
    court_id: int
    date: date
    granularity: int
    slots: dict[int, list[IntervalOut]]  # duration -> slots


class DaySlotsOut(BaseModel):
    date: date
    free: list[IntervalOut]
    slots: list[IntervalOut]


class RangeAvailabilityOut(BaseModel):
    court_id: int
    start_date: date
    end_date: date
    duration: int
    days: list[DaySlotsOut]


# --- Reservation ---


class ReservationCreate(BaseModel):
    court_id: int
    booking_date: date
    start_time: int = Field(ge=0, le=DAY_END)
    end_time: int = Field(ge=0, le=DAY_END)


class StatusChange(BaseModel):
    reason: str | None = Field(default=None, max_length=2000)


class ReservationOut(BaseModel):
    id: int
    court_id: int
    requester_id: int
    booking_date: date
    start_time: int
    end_time: int
    start_formatted: str
    end_formatted: str
    duration_minutes: int
    status: str  # effective status: a lapsed pending hold reads as expired
    status_reason: str | None
    expires_at: datetime | None
    created_at: datetime

    @classmethod
    def build(cls, res, status: str) -> "ReservationOut":
        return cls(
            id=res.id,
            court_id=res.court_id,
            requester_id=res.requester_id,
            booking_date=res.booking_date,
            start_time=res.start_time,
            end_time=res.end_time,
            start_formatted=format_time(res.start_time),
            end_formatted=format_time(res.end_time),
            duration_minutes=res.duration_minutes,
            status=status,
            status_reason=res.status_reason,
            expires_at=res.expires_at,
            created_at=res.created_at,
        )


class ReservationPage(BaseModel):
    items: list[ReservationOut]
    total: int
    limit: int
    offset: int
