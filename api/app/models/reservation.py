"""Reservation model.

A reservation holds a court for a requester on one date between two times
of day. This is the core transactional entity in the system. Rows are never
deleted: after creation only the status moves (and expires_at is cleared).
"""

import enum
from datetime import date, datetime

from sqlalchemy import CheckConstraint, Date, Enum, ForeignKey, Index, Integer, Text, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base, TimestampMixin, UTCDateTime


class ReservationStatus(enum.StrEnum):
    PENDING = "pending"  # Provisional hold, awaiting the owner
    CONFIRMED = "confirmed"
    REJECTED = "rejected"
    CANCELLED = "cancelled"
    COMPLETED = "completed"
    EXPIRED = "expired"  # Written only by the optional sweep


class Reservation(TimestampMixin, Base):
    __tablename__ = "reservations"

    id: Mapped[int] = mapped_column(primary_key=True)
    court_id: Mapped[int] = mapped_column(ForeignKey("courts.id"), nullable=False)
    requester_id: Mapped[int] = mapped_column(nullable=False)

    # When
    booking_date: Mapped[date] = mapped_column(Date, nullable=False)
    start_time: Mapped[int] = mapped_column(Integer, nullable=False)
    end_time: Mapped[int] = mapped_column(Integer, nullable=False)

    # Status
    status: Mapped[ReservationStatus] = mapped_column(
        Enum(ReservationStatus, name="reservation_status", values_callable=lambda e: [x.value for x in e]),
        default=ReservationStatus.PENDING,
        nullable=False,
    )
    expires_at: Mapped[datetime | None] = mapped_column(UTCDateTime())
    status_reason: Mapped[str | None] = mapped_column(Text)

    # Relationships
    court: Mapped["Court"] = relationship(lazy="joined")

    __table_args__ = (
        CheckConstraint("start_time BETWEEN 0 AND 1439", name="ck_reservations_start_time"),
        CheckConstraint("end_time BETWEEN 0 AND 1439", name="ck_reservations_end_time"),
        CheckConstraint("start_time < end_time", name="ck_reservations_order"),
        # Last line of defence against double-booking confirmed rows; overlap
        # in general is enforced by the slot lock in the reservation service.
        Index(
            "ix_reservations_no_double",
            "court_id",
            "booking_date",
            "start_time",
            unique=True,
            postgresql_where=text("status = 'confirmed'"),
            sqlite_where=text("status = 'confirmed'"),
        ),
        # The filter and the conflict check both scan one court-day
        Index("ix_reservations_court_date", "court_id", "booking_date", "status"),
        Index("ix_reservations_pending_expiry", "status", "expires_at"),
    )

    @property
    def duration_minutes(self) -> int:
        return self.end_time - self.start_time

    def __repr__(self) -> str:
        return f"<Reservation {self.booking_date} {self.start_time}-{self.end_time} court={self.court_id}>"


# Import for type hints
from app.models.facility import Court  # noqa: E402
