"""Facility and court models.

Facility = a venue run by one owner (e.g. a padel centre).
Court = an individual bookable resource at a facility.

Both are maintained by the venue-management service; this API reads them to
check existence and ownership only.
"""

from sqlalchemy import Boolean, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base, TimestampMixin


class Facility(TimestampMixin, Base):
    __tablename__ = "facilities"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    owner_id: Mapped[int] = mapped_column(nullable=False, index=True)  # user id from the identity service
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    # Relationships
    courts: Mapped[list["Court"]] = relationship(back_populates="facility", lazy="selectin")

    def __repr__(self) -> str:
        return f"<Facility {self.name}>"


class Court(TimestampMixin, Base):
    """A bookable court. Availability is derived from its rules, never stored."""

    __tablename__ = "courts"

    id: Mapped[int] = mapped_column(primary_key=True)
    facility_id: Mapped[int] = mapped_column(ForeignKey("facilities.id"), nullable=False)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    # Relationships
    facility: Mapped["Facility"] = relationship(back_populates="courts", lazy="joined")

    __table_args__ = (Index("ix_courts_facility", "facility_id"),)

    def __repr__(self) -> str:
        return f"<Court {self.name} @ facility {self.facility_id}>"
