"""Time-of-day arithmetic over minutes since midnight.

Pure calculation module: no database, no async, no FastAPI dependencies.
A time of day is an int in [0, 1439]. An Interval whose end is earlier than
its start wraps past midnight. Half-open [start, end) semantics throughout,
except in_range which is inclusive at both ends.

Within a single date, 1439 doubles as the "end of day" bound: a wrap window
such as 18:00 -> 02:00 splits into [0, 120) and [1080, 1439) on that date.
"""

import re
from dataclasses import dataclass

MINUTES_PER_DAY = 1440
DAY_END = MINUTES_PER_DAY - 1

_HHMM = re.compile(r"(\d{2}):(\d{2})")


class FormatError(ValueError):
    """A time string or minute value outside the HH:MM / 0-1439 domain."""


def is_valid_minutes(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and 0 <= value < MINUTES_PER_DAY


def parse(value: str) -> int:
    """"HH:MM" -> minutes since midnight. "10:30" -> 630."""
    if not isinstance(value, str):
        raise FormatError(f"Time must be a string, got {type(value).__name__}")
    match = _HHMM.fullmatch(value)
    if match is None:
        raise FormatError(f"Invalid time format: {value!r}. Expected HH:MM")
    hours, minutes = int(match.group(1)), int(match.group(2))
    if hours > 23 or minutes > 59:
        raise FormatError(f"Time out of range: {value!r}")
    return hours * 60 + minutes


def format_time(minutes: int) -> str:
    """Minutes since midnight -> "HH:MM". 630 -> "10:30"."""
    if not is_valid_minutes(minutes):
        raise FormatError(f"Minutes must be an integer between 0 and {DAY_END}, got {minutes!r}")
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


@dataclass(frozen=True, order=True)
class Interval:
    start: int
    end: int

    def __post_init__(self):
        if not is_valid_minutes(self.start) or not is_valid_minutes(self.end):
            raise FormatError(f"Interval bounds must be in [0, {DAY_END}], got ({self.start}, {self.end})")

    @property
    def wraps(self) -> bool:
        return self.end < self.start

    @property
    def duration(self) -> int:
        return duration(self.start, self.end)

    def as_dict(self) -> dict:
        return {
            "start": self.start,
            "end": self.end,
            "start_formatted": format_time(self.start),
            "end_formatted": format_time(self.end),
        }


def in_range(t: int, start: int, end: int) -> bool:
    """Whether t falls inside [start, end], honouring midnight wrap."""
    if end < start:
        return t >= start or t <= end
    return start <= t <= end


def duration(start: int, end: int) -> int:
    """Length of a window in minutes. duration(1080, 120) == 480."""
    if end < start:
        return (MINUTES_PER_DAY - start) + end
    return end - start


def overlaps(a: Interval, b: Interval) -> bool:
    """Half-open overlap test for two possibly-wrapping intervals."""
    if a.wraps and b.wraps:
        # Both contain the stretch around midnight
        return True
    if a.wraps or b.wraps:
        wrap, other = (a, b) if a.wraps else (b, a)
        return other.start < wrap.end or other.end > wrap.start
    return a.start < b.end and a.end > b.start


def split_wrap(interval: Interval) -> list[Interval]:
    """Same-date, non-wrapping pieces of an interval (empty pieces dropped)."""
    if not interval.wraps:
        return [interval] if interval.start < interval.end else []
    pieces = []
    if interval.end > 0:
        pieces.append(Interval(0, interval.end))
    if interval.start < DAY_END:
        pieces.append(Interval(interval.start, DAY_END))
    return pieces


def merge_intervals(intervals: list[Interval]) -> list[Interval]:
    """Sort and coalesce intervals that overlap or touch. Wraps are split first."""
    pieces = sorted(p for iv in intervals for p in split_wrap(iv))
    merged: list[Interval] = []
    for piece in pieces:
        if merged and piece.start <= merged[-1].end:
            last = merged[-1]
            merged[-1] = Interval(last.start, max(last.end, piece.end))
        else:
            merged.append(piece)
    return merged


def subtract(base: Interval, obstructions: list[Interval]) -> list[Interval]:
    """Remove merged, sorted, non-wrapping obstructions from a non-wrapping base.

    Each obstruction leaves 0, 1 or 2 pieces of what it touches.
    """
    remaining = [base]
    for obs in obstructions:
        next_remaining = []
        for part in remaining:
            if not (part.start < obs.end and part.end > obs.start):
                next_remaining.append(part)
                continue
            if part.start < obs.start:
                next_remaining.append(Interval(part.start, obs.start))
            if part.end > obs.end:
                next_remaining.append(Interval(obs.end, part.end))
        remaining = next_remaining
        if not remaining:
            break
    return remaining


def subtract_intervals(bases: list[Interval], obstructions: list[Interval]) -> list[Interval]:
    """Free time: bases minus obstructions, sorted, coalesced, non-overlapping."""
    blocked = merge_intervals(obstructions)
    free = [piece for base in merge_intervals(bases) for piece in subtract(base, blocked)]
    return merge_intervals(free)


def widen(interval: Interval, minutes: int) -> Interval:
    """Grow a non-wrapping interval by `minutes` on each side, clamped to the date."""
    if minutes <= 0:
        return interval
    return Interval(max(0, interval.start - minutes), min(DAY_END, interval.end + minutes))


def is_aligned(minutes: int, granularity: int) -> bool:
    return minutes % granularity == 0


def align_up(minutes: int, granularity: int) -> int:
    return -(-minutes // granularity) * granularity
