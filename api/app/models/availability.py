"""Declarative availability inputs: weekly rules, admin blocks and booking policies.

All times of day are integers: minutes since midnight (0-1439). An end
earlier than its start means the window runs past midnight.
Days of week follow date.weekday(): 0=Mon..6=Sun.
"""

import enum
from datetime import date

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base, TimestampMixin


class AvailabilityRule(TimestampMixin, Base):
    """A weekly opening window for a court. Several rules per day are unioned."""

    __tablename__ = "court_availability_rules"

    id: Mapped[int] = mapped_column(primary_key=True)
    court_id: Mapped[int] = mapped_column(ForeignKey("courts.id"), nullable=False)
    day_of_week: Mapped[int] = mapped_column(Integer, nullable=False)
    start_time: Mapped[int] = mapped_column(Integer, nullable=False)
    end_time: Mapped[int] = mapped_column(Integer, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    __table_args__ = (
        CheckConstraint("day_of_week BETWEEN 0 AND 6", name="ck_rules_day_of_week"),
        CheckConstraint("start_time BETWEEN 0 AND 1439", name="ck_rules_start_time"),
        CheckConstraint("end_time BETWEEN 0 AND 1439", name="ck_rules_end_time"),
        UniqueConstraint("court_id", "day_of_week", "start_time", "end_time", name="uq_rules_window"),
        Index("ix_rules_court_day", "court_id", "day_of_week", "is_active"),
    )

    def __repr__(self) -> str:
        return f"<AvailabilityRule court={self.court_id} day={self.day_of_week} {self.start_time}-{self.end_time}>"


class BlockType(enum.StrEnum):
    ONE_TIME = "one_time"  # a date + time window
    RECURRING = "recurring"  # a weekday + time window, every week
    DATE_RANGE = "date_range"  # whole days from start_date to end_date


class BlockedTimeRange(TimestampMixin, Base):
    """Administrative closure. Null court_id means it covers every court at the facility."""

    __tablename__ = "blocked_time_ranges"

    id: Mapped[int] = mapped_column(primary_key=True)
    facility_id: Mapped[int] = mapped_column(ForeignKey("facilities.id"), nullable=False)
    court_id: Mapped[int | None] = mapped_column(ForeignKey("courts.id"))
    block_type: Mapped[BlockType] = mapped_column(
        Enum(BlockType, name="block_type", values_callable=lambda e: [x.value for x in e]),
        nullable=False,
    )
    start_date: Mapped[date | None] = mapped_column(Date)
    end_date: Mapped[date | None] = mapped_column(Date)
    day_of_week: Mapped[int | None] = mapped_column(Integer)
    start_time: Mapped[int | None] = mapped_column(Integer)
    end_time: Mapped[int | None] = mapped_column(Integer)
    reason: Mapped[str | None] = mapped_column(String(255))
    description: Mapped[str | None] = mapped_column(Text)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    __table_args__ = (
        CheckConstraint("start_time IS NULL OR start_time BETWEEN 0 AND 1439", name="ck_blocks_start_time"),
        CheckConstraint("end_time IS NULL OR end_time BETWEEN 0 AND 1439", name="ck_blocks_end_time"),
        CheckConstraint("day_of_week IS NULL OR day_of_week BETWEEN 0 AND 6", name="ck_blocks_day_of_week"),
        Index("ix_blocks_facility_court", "facility_id", "court_id", "is_active"),
    )

    def validate_shape(self) -> None:
        """Raise ValueError unless exactly the fields for block_type are populated."""
        has_window = self.start_time is not None and self.end_time is not None
        no_window = self.start_time is None and self.end_time is None

        if self.block_type == BlockType.ONE_TIME:
            ok = self.start_date is not None and has_window and self.day_of_week is None
        elif self.block_type == BlockType.RECURRING:
            ok = self.day_of_week is not None and has_window and self.start_date is None and self.end_date is None
        else:
            ok = (
                self.start_date is not None
                and self.end_date is not None
                and self.start_date <= self.end_date
                and no_window
                and self.day_of_week is None
            )
        if not ok:
            raise ValueError(f"Fields do not match block type {self.block_type.value}")

    def __repr__(self) -> str:
        return f"<BlockedTimeRange {self.block_type.value} facility={self.facility_id} court={self.court_id}>"


class BookingPolicy(TimestampMixin, Base):
    """Booking limits for a facility, or for one court when court_id is set.

    Every limit is nullable: a court row overrides its facility row field by
    field and anything still unset falls back to the system default.
    """

    __tablename__ = "booking_policies"

    id: Mapped[int] = mapped_column(primary_key=True)
    facility_id: Mapped[int] = mapped_column(ForeignKey("facilities.id"), nullable=False)
    court_id: Mapped[int | None] = mapped_column(ForeignKey("courts.id"))

    max_advance_days: Mapped[int | None] = mapped_column(Integer)
    min_duration_minutes: Mapped[int | None] = mapped_column(Integer)
    max_duration_minutes: Mapped[int | None] = mapped_column(Integer)
    buffer_minutes: Mapped[int | None] = mapped_column(Integer)
    min_advance_notice_minutes: Mapped[int | None] = mapped_column(Integer)
    pending_expiration_hours: Mapped[int | None] = mapped_column(Integer)
    cancellation_cutoff_hours: Mapped[int | None] = mapped_column(Integer)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    __table_args__ = (Index("ix_policies_facility_court", "facility_id", "court_id", "is_active"),)

    def __repr__(self) -> str:
        scope = f"court={self.court_id}" if self.court_id else f"facility={self.facility_id}"
        return f"<BookingPolicy {scope}>"
