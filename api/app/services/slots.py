"""Slot composition: cut free intervals into bookable, grid-aligned slots."""

from app.core.config import settings
from app.services.errors import ValidationError
from app.services.timeofday import Interval, align_up


def validate_duration(duration: int, granularity: int) -> None:
    if duration <= 0 or duration % granularity != 0:
        raise ValidationError(
            "invalid_duration",
            f"Duration must be a positive multiple of {granularity} minutes, got {duration}",
        )


def compose(free: list[Interval], duration: int, granularity: int | None = None) -> list[Interval]:
    """Every slot of `duration` minutes that fits inside a free interval.

    Starts sit on the granularity grid and step by it, so consecutive slots
    overlap when duration > granularity. An empty list is a valid answer.
    """
    granularity = granularity or settings.slot_granularity_minutes
    validate_duration(duration, granularity)

    slots = []
    for interval in free:
        current = align_up(interval.start, granularity)
        while current + duration <= interval.end:
            slots.append(Interval(current, current + duration))
            current += granularity
    return slots


def compose_multiple(
    free: list[Interval], durations: list[int], granularity: int | None = None
) -> dict[int, list[Interval]]:
    return {duration: compose(free, duration, granularity) for duration in durations}
