"""Seed the database with a demo padel centre.

Run with: python -m scripts.seed
Creates one facility with three courts, weekly opening rules, a facility
policy with a court override, a couple of blocks, and prints owner and
player tokens for trying the API.
"""

import asyncio
from datetime import timedelta

from sqlalchemy import select

from app.core.auth import create_access_token
from app.core.database import async_session_factory, engine
from app.models import AvailabilityRule, Base, BlockedTimeRange, BlockType, BookingPolicy, Court, Facility
from app.models.base import utcnow
from app.services.lifecycle import local_today
from app.services.timeofday import parse

OWNER_ID = 1
PLAYER_ID = 2

# day_of_week follows date.weekday(): 0=Mon..6=Sun
WEEKDAY_HOURS = ("07:00", "22:00")
WEEKEND_HOURS = ("08:00", "20:00")

COURTS = [
    {"name": "Court 1"},
    {"name": "Court 2"},
    # Late-night court: open 18:00 -> 02:00 on Fridays and Saturdays
    {"name": "Court 3 (Night)", "late": True},
]


def _rules_for(court: Court, late: bool) -> list[AvailabilityRule]:
    rules = []
    for day in range(7):
        start, end = WEEKEND_HOURS if day >= 5 else WEEKDAY_HOURS
        if late and day in (4, 5):
            start, end = "18:00", "02:00"
        rules.append(
            AvailabilityRule(court_id=court.id, day_of_week=day, start_time=parse(start), end_time=parse(end))
        )
    return rules


async def seed():
    # Create tables (in dev; production uses migrations)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with async_session_factory() as db:
        # Check if already seeded
        result = await db.execute(select(Facility).where(Facility.name == "Demo Padel Centre"))
        if result.scalar_one_or_none():
            print("Database already seeded - skipping.")
            return

        facility = Facility(name="Demo Padel Centre", owner_id=OWNER_ID)
        db.add(facility)
        await db.flush()

        courts = []
        for court_data in COURTS:
            court = Court(facility_id=facility.id, name=court_data["name"])
            db.add(court)
            await db.flush()
            db.add_all(_rules_for(court, court_data.get("late", False)))
            courts.append(court)

        # Facility-wide policy, with a longer maximum on the night court
        db.add(
            BookingPolicy(
                facility_id=facility.id,
                max_advance_days=14,
                min_duration_minutes=60,
                max_duration_minutes=120,
                buffer_minutes=0,
                pending_expiration_hours=12,
                cancellation_cutoff_hours=24,
            )
        )
        db.add(BookingPolicy(facility_id=facility.id, court_id=courts[2].id, max_duration_minutes=180))

        # Weekly coaching session on Court 1, and a maintenance day for the whole site
        db.add(
            BlockedTimeRange(
                facility_id=facility.id,
                court_id=courts[0].id,
                block_type=BlockType.RECURRING,
                day_of_week=2,
                start_time=parse("18:00"),
                end_time=parse("20:00"),
                reason="Coaching",
            )
        )
        maintenance = local_today(utcnow()) + timedelta(days=10)
        db.add(
            BlockedTimeRange(
                facility_id=facility.id,
                block_type=BlockType.DATE_RANGE,
                start_date=maintenance,
                end_date=maintenance,
                reason="Resurfacing",
            )
        )

        await db.commit()

        print(f"Seeded: {facility.name}")
        print(f"  {len(courts)} courts: {', '.join(c.name for c in courts)}")
        print(f"  maintenance closure on {maintenance.isoformat()}")
        print(f"  owner token (user {OWNER_ID}):  {create_access_token(str(OWNER_ID))}")
        print(f"  player token (user {PLAYER_ID}): {create_access_token(str(PLAYER_ID))}")


if __name__ == "__main__":
    asyncio.run(seed())
