"""API tests: health, availability, slots, reservations, lifecycle, listings, concurrency, expiry sweep, seed data."""

import asyncio
from datetime import timedelta

import pytest
from conftest import CLOSE, OPEN, OTHER_PLAYER_ID, OWNER_ID, PLAYER_ID, auth_headers, local_today, upcoming
from sqlalchemy import select

from app.core.config import settings
from app.core.database import async_session_factory
from app.models import AvailabilityRule, BlockedTimeRange, BlockType, BookingPolicy, Court, Reservation, ReservationStatus
from app.models.base import utcnow
from app.services.availability import FilterOptions, filter_availability, generate_base_availability
from app.services.errors import PolicyViolation
from app.services.lifecycle import local_datetime
from app.services.reservations import create_reservation, expire_stale_reservations
from app.services.timeofday import DAY_END, Interval
from app.worker import celery_app

API = settings.api_prefix


async def _add(*objs):
    async with async_session_factory() as db:
        db.add_all(objs)
        await db.commit()
        return [o.id for o in objs]


async def _reservation_row(court_id, day, start, end, status, expires_at=None, requester_id=PLAYER_ID):
    [res_id] = await _add(
        Reservation(
            court_id=court_id,
            requester_id=requester_id,
            booking_date=day,
            start_time=start,
            end_time=end,
            status=status,
            expires_at=expires_at,
        )
    )
    return res_id


async def _create(client, court_id, day, start, end, user_id=PLAYER_ID):
    return await client.post(
        f"{API}/reservations",
        json={"court_id": court_id, "booking_date": day.isoformat(), "start_time": start, "end_time": end},
        headers=auth_headers(user_id),
    )


def _spans(intervals):
    return [(iv["start"], iv["end"]) for iv in intervals]


def _rule(resp):
    return resp.json()["detail"][0]["rule"]


@pytest.mark.asyncio
async def test_health(client):
    resp = await client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


# ---------------------------------------------------------------------------
# Availability
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_base_availability(client, court_data):
    monday = upcoming(0)
    resp = await client.get(f"{API}/courts/{court_data['court_id']}/availability/base", params={"date": str(monday)})
    assert resp.status_code == 200
    data = resp.json()
    assert data["day_of_week"] == 0
    assert data["intervals"] == [{"start": 540, "end": 1080, "start_formatted": "09:00", "end_formatted": "18:00"}]


@pytest.mark.asyncio
async def test_base_availability_unknown_court(client, court_data):
    resp = await client.get(f"{API}/courts/9999/availability/base", params={"date": str(upcoming(0))})
    assert resp.status_code == 404
    assert _rule(resp) == "court_not_found"


@pytest.mark.asyncio
async def test_base_availability_no_rules_is_empty(client, court_data):
    [other] = await _add(Court(facility_id=court_data["facility_id"], name="Unscheduled"))
    resp = await client.get(f"{API}/courts/{other}/availability/base", params={"date": str(upcoming(0))})
    assert resp.status_code == 200
    assert resp.json()["intervals"] == []


@pytest.mark.asyncio
async def test_monday_scenario_free_and_slots(client, court_data):
    """Open 09:00-18:00 with 10:00-11:00 confirmed: free either side, no slot at 10:00."""
    court_id = court_data["court_id"]
    monday = upcoming(0)
    await _reservation_row(court_id, monday, 600, 660, ReservationStatus.CONFIRMED)

    resp = await client.get(f"{API}/courts/{court_id}/availability", params={"date": str(monday)})
    assert resp.status_code == 200
    data = resp.json()
    assert _spans(data["free"]) == [(540, 600), (660, 1080)]
    assert [(r["start"], r["end"], r["status"]) for r in data["reservations"]] == [(600, 660, "confirmed")]

    resp = await client.get(
        f"{API}/courts/{court_id}/availability/slots", params={"date": str(monday), "duration": 60}
    )
    assert resp.status_code == 200
    starts = [s["start"] for s in resp.json()["slots"]["60"]]
    assert starts[0] == 540
    assert 660 in starts
    assert 600 not in starts
    assert max(starts) == 1020
    assert all(s["end"] - s["start"] == 60 for s in resp.json()["slots"]["60"])


@pytest.mark.asyncio
async def test_slots_multiple_durations(client, court_data):
    resp = await client.get(
        f"{API}/courts/{court_data['court_id']}/availability/slots",
        params=[("date", str(upcoming(1))), ("duration", 60), ("duration", 120)],
    )
    assert resp.status_code == 200
    slots = resp.json()["slots"]
    assert set(slots) == {"60", "120"}
    assert slots["120"][-1]["start"] == CLOSE - 120


@pytest.mark.asyncio
async def test_slots_rejects_off_grid_duration(client, court_data):
    resp = await client.get(
        f"{API}/courts/{court_data['court_id']}/availability/slots",
        params={"date": str(upcoming(1)), "duration": 45},
    )
    assert resp.status_code == 422
    assert _rule(resp) == "invalid_duration"


@pytest.mark.asyncio
async def test_blocks_remove_free_time(client, court_data):
    court_id, facility_id = court_data["court_id"], court_data["facility_id"]
    tuesday = upcoming(1)
    await _add(
        BlockedTimeRange(
            facility_id=facility_id,
            court_id=court_id,
            block_type=BlockType.ONE_TIME,
            start_date=tuesday,
            start_time=720,
            end_time=780,
            reason="Tournament",
        ),
        BlockedTimeRange(
            facility_id=facility_id,
            block_type=BlockType.RECURRING,
            day_of_week=1,
            start_time=1020,
            end_time=1080,
            reason="Coaching",
        ),
    )

    resp = await client.get(f"{API}/courts/{court_id}/availability", params={"date": str(tuesday)})
    data = resp.json()
    assert _spans(data["free"]) == [(540, 720), (780, 1020)]
    assert {b["reason"] for b in data["blocks"]} == {"Tournament", "Coaching"}

    resp = await client.get(
        f"{API}/courts/{court_id}/availability", params={"date": str(tuesday), "include_blocks": "false"}
    )
    assert _spans(resp.json()["free"]) == [(OPEN, CLOSE)]

    resp = await _create(client, court_id, tuesday, 750, 810)
    assert resp.status_code == 409
    assert _rule(resp) == "slot_blocked"


@pytest.mark.asyncio
async def test_facility_date_range_block_closes_whole_day(client, court_data):
    day = upcoming(3)
    await _add(
        BlockedTimeRange(
            facility_id=court_data["facility_id"],
            block_type=BlockType.DATE_RANGE,
            start_date=day - timedelta(days=1),
            end_date=day,
            reason="Resurfacing",
        )
    )
    resp = await client.get(f"{API}/courts/{court_data['court_id']}/availability", params={"date": str(day)})
    assert resp.json()["free"] == []

    resp = await client.get(
        f"{API}/courts/{court_data['court_id']}/availability", params={"date": str(day + timedelta(days=1))}
    )
    assert _spans(resp.json()["free"]) == [(OPEN, CLOSE)]


@pytest.mark.asyncio
async def test_wrap_rule_is_split_within_the_day(client, court_data):
    [night] = await _add(Court(facility_id=court_data["facility_id"], name="Night Court"))
    await _add(AvailabilityRule(court_id=night, day_of_week=4, start_time=1080, end_time=120))
    friday = upcoming(4)

    resp = await client.get(f"{API}/courts/{night}/availability/base", params={"date": str(friday)})
    assert _spans(resp.json()["intervals"]) == [(1080, 120)]

    resp = await client.get(f"{API}/courts/{night}/availability", params={"date": str(friday)})
    assert _spans(resp.json()["free"]) == [(0, 120), (1080, DAY_END)]


@pytest.mark.asyncio
async def test_buffer_widens_confirmed_reservations(client, court_data):
    court_id = court_data["court_id"]
    monday = upcoming(0)
    await _add(BookingPolicy(facility_id=court_data["facility_id"], buffer_minutes=30))
    await _reservation_row(court_id, monday, 600, 660, ReservationStatus.CONFIRMED)

    resp = await client.get(f"{API}/courts/{court_id}/availability", params={"date": str(monday)})
    assert _spans(resp.json()["free"]) == [(540, 570), (690, 1080)]

    resp = await _create(client, court_id, monday, 660, 720)
    assert resp.status_code == 409
    resp = await _create(client, court_id, monday, 690, 750)
    assert resp.status_code == 201


@pytest.mark.asyncio
async def test_range_availability(client, court_data):
    start = upcoming(0)
    resp = await client.get(
        f"{API}/courts/{court_data['court_id']}/availability/range",
        params={"start_date": str(start), "end_date": str(start + timedelta(days=2)), "duration": 120},
    )
    assert resp.status_code == 200
    days = resp.json()["days"]
    assert [d["date"] for d in days] == [str(start + timedelta(days=i)) for i in range(3)]
    assert all(_spans(d["free"]) == [(OPEN, CLOSE)] for d in days)
    assert days[0]["slots"][0] == {"start": 540, "end": 660, "start_formatted": "09:00", "end_formatted": "11:00"}


@pytest.mark.asyncio
async def test_range_availability_limits(client, court_data):
    start = upcoming(0)
    url = f"{API}/courts/{court_data['court_id']}/availability/range"
    resp = await client.get(url, params={"start_date": str(start), "end_date": str(start + timedelta(days=40))})
    assert resp.status_code == 422
    assert _rule(resp) == "date_range_too_long"
    resp = await client.get(url, params={"start_date": str(start), "end_date": str(start - timedelta(days=1))})
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_past_free_time_trimmed_today(db, court_data):
    """On the current day nothing starting within the next hour is offered."""
    court_id = court_data["court_id"]
    day = upcoming(2)
    noon = local_datetime(day, 720)

    base = await generate_base_availability(db, court_id, day)
    trimmed = await filter_availability(db, base, court_id, day, now=noon)
    assert trimmed.free == [Interval(780, 1080)]

    untrimmed = await filter_availability(db, base, court_id, day, FilterOptions(filter_past_slots=False), now=noon)
    assert untrimmed.free == [Interval(540, 1080)]


# ---------------------------------------------------------------------------
# Reservations
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_create_reservation(client, court_data):
    monday = upcoming(0)
    resp = await _create(client, court_data["court_id"], monday, 600, 660)
    assert resp.status_code == 201
    data = resp.json()
    assert data["status"] == "pending"
    assert data["requester_id"] == PLAYER_ID
    assert data["start_formatted"] == "10:00"
    assert data["duration_minutes"] == 60
    assert data["expires_at"] is not None

    resp = await client.get(
        f"{API}/courts/{court_data['court_id']}/availability", params={"date": str(monday)}
    )
    assert _spans(resp.json()["free"]) == [(540, 600), (660, 1080)]


@pytest.mark.asyncio
async def test_create_requires_auth(client, court_data):
    resp = await client.post(
        f"{API}/reservations",
        json={"court_id": court_data["court_id"], "booking_date": str(upcoming(0)), "start_time": 600, "end_time": 660},
    )
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_overlapping_create_conflicts(client, court_data):
    monday = upcoming(0)
    assert (await _create(client, court_data["court_id"], monday, 600, 720)).status_code == 201

    resp = await _create(client, court_data["court_id"], monday, 660, 780, user_id=OTHER_PLAYER_ID)
    assert resp.status_code == 409
    assert _rule(resp) == "slot_taken"

    # Touching intervals do not overlap
    resp = await _create(client, court_data["court_id"], monday, 720, 780, user_id=OTHER_PLAYER_ID)
    assert resp.status_code == 201


@pytest.mark.asyncio
async def test_concurrent_overlapping_creates_one_wins(client, court_data):
    monday = upcoming(0)
    results = await asyncio.gather(
        _create(client, court_data["court_id"], monday, 600, 720, user_id=PLAYER_ID),
        _create(client, court_data["court_id"], monday, 660, 780, user_id=OTHER_PLAYER_ID),
    )
    assert sorted(r.status_code for r in results) == [201, 409]

    async with async_session_factory() as db:
        rows = (await db.execute(select(Reservation).where(Reservation.booking_date == monday))).scalars().all()
    assert len(rows) == 1


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("start", "end", "rule"),
    [
        (600, 600, "invalid_range"),
        (660, 600, "invalid_range"),
        (605, 665, "misaligned_time"),
        (600, 620, "misaligned_time"),
        (600, 615, "misaligned_time"),
        (480, 540, "outside_availability"),
        (1050, 1110, "outside_availability"),
        (600, 1200, "max_duration"),
    ],
)
async def test_create_rejects_invalid_requests(client, court_data, start, end, rule):
    await _add(BookingPolicy(facility_id=court_data["facility_id"], max_duration_minutes=240))
    resp = await _create(client, court_data["court_id"], upcoming(0), start, end)
    assert resp.status_code == 422
    assert _rule(resp) == rule


@pytest.mark.asyncio
async def test_create_rejects_dates_outside_window(client, court_data):
    await _add(BookingPolicy(facility_id=court_data["facility_id"], max_advance_days=7))
    court_id = court_data["court_id"]

    resp = await _create(client, court_id, local_today() - timedelta(days=1), 600, 660)
    assert resp.status_code == 422
    assert _rule(resp) == "date_in_past"

    resp = await _create(client, court_id, local_today() + timedelta(days=20), 600, 660)
    assert resp.status_code == 422
    assert _rule(resp) == "advance_window"


@pytest.mark.asyncio
async def test_court_policy_overrides_facility(client, court_data):
    facility_id, court_id = court_data["facility_id"], court_data["court_id"]
    await _add(
        BookingPolicy(facility_id=facility_id, min_duration_minutes=60, max_duration_minutes=60),
        BookingPolicy(facility_id=facility_id, court_id=court_id, max_duration_minutes=120),
    )
    monday = upcoming(0)

    resp = await _create(client, court_id, monday, 600, 630)
    assert resp.status_code == 422
    assert _rule(resp) == "min_duration"

    resp = await _create(client, court_id, monday, 600, 720)
    assert resp.status_code == 201


@pytest.mark.asyncio
async def test_min_advance_notice(db, court_data):
    await _add(BookingPolicy(facility_id=court_data["facility_id"], min_advance_notice_minutes=120))
    day = upcoming(0)
    eight_am = local_datetime(day, 480)

    with pytest.raises(PolicyViolation) as exc:
        await create_reservation(db, PLAYER_ID, court_data["court_id"], day, 540, 600, now=eight_am)
    assert exc.value.rule == "min_advance_notice"

    res = await create_reservation(db, PLAYER_ID, court_data["court_id"], day, 600, 660, now=eight_am)
    assert res.status == ReservationStatus.PENDING


@pytest.mark.asyncio
async def test_unknown_court_is_not_found(client, court_data):
    resp = await _create(client, 9999, upcoming(0), 600, 660)
    assert resp.status_code == 404


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_owner_accepts_pending(client, court_data):
    created = (await _create(client, court_data["court_id"], upcoming(0), 600, 660)).json()

    resp = await client.put(f"{API}/reservations/{created['id']}/accept", headers=auth_headers(PLAYER_ID))
    assert resp.status_code == 403

    resp = await client.put(f"{API}/reservations/{created['id']}/accept", headers=auth_headers(OWNER_ID))
    assert resp.status_code == 200
    assert resp.json()["status"] == "confirmed"
    assert resp.json()["expires_at"] is None

    resp = await client.put(f"{API}/reservations/{created['id']}/accept", headers=auth_headers(OWNER_ID))
    assert resp.status_code == 409
    assert _rule(resp) == "invalid_transition"


@pytest.mark.asyncio
async def test_reject_frees_the_interval(client, court_data):
    monday = upcoming(0)
    created = (await _create(client, court_data["court_id"], monday, 600, 660)).json()

    resp = await client.put(
        f"{API}/reservations/{created['id']}/reject",
        json={"reason": "Court closed for cleaning"},
        headers=auth_headers(OWNER_ID),
    )
    assert resp.status_code == 200
    assert resp.json()["status"] == "rejected"
    assert resp.json()["status_reason"] == "Court closed for cleaning"

    resp = await _create(client, court_data["court_id"], monday, 600, 660, user_id=OTHER_PLAYER_ID)
    assert resp.status_code == 201


@pytest.mark.asyncio
async def test_expired_pending_does_not_obstruct(client, court_data):
    court_id = court_data["court_id"]
    monday = upcoming(0)
    stale_id = await _reservation_row(
        court_id, monday, 600, 660, ReservationStatus.PENDING, expires_at=utcnow() - timedelta(minutes=5)
    )

    resp = await client.get(f"{API}/courts/{court_id}/availability", params={"date": str(monday)})
    assert _spans(resp.json()["free"]) == [(OPEN, CLOSE)]
    assert resp.json()["reservations"] == []

    resp = await _create(client, court_id, monday, 600, 660, user_id=OTHER_PLAYER_ID)
    assert resp.status_code == 201

    # Stored status still reads pending; the API reports the effective one
    resp = await client.get(f"{API}/reservations/{stale_id}", headers=auth_headers(PLAYER_ID))
    assert resp.json()["status"] == "expired"

    resp = await client.put(f"{API}/reservations/{stale_id}/accept", headers=auth_headers(OWNER_ID))
    assert resp.status_code == 409


@pytest.mark.asyncio
async def test_cancel_by_requester(client, court_data):
    monday = upcoming(0)
    created = (await _create(client, court_data["court_id"], monday, 600, 660)).json()

    resp = await client.put(f"{API}/reservations/{created['id']}/cancel", headers=auth_headers(OTHER_PLAYER_ID))
    assert resp.status_code == 403

    resp = await client.put(f"{API}/reservations/{created['id']}/cancel", headers=auth_headers(PLAYER_ID))
    assert resp.status_code == 200
    assert resp.json()["status"] == "cancelled"

    resp = await client.put(f"{API}/reservations/{created['id']}/cancel", headers=auth_headers(PLAYER_ID))
    assert resp.status_code == 409


@pytest.mark.asyncio
async def test_cancel_after_cutoff(client, court_data):
    await _add(BookingPolicy(facility_id=court_data["facility_id"], cancellation_cutoff_hours=24 * 60))
    created = (await _create(client, court_data["court_id"], upcoming(0), 600, 660)).json()

    resp = await client.put(f"{API}/reservations/{created['id']}/cancel", headers=auth_headers(PLAYER_ID))
    assert resp.status_code == 422
    assert _rule(resp) == "cancellation_cutoff"


@pytest.mark.asyncio
async def test_get_reservation_visibility(client, court_data):
    created = (await _create(client, court_data["court_id"], upcoming(0), 600, 660)).json()
    url = f"{API}/reservations/{created['id']}"

    assert (await client.get(url, headers=auth_headers(PLAYER_ID))).status_code == 200
    assert (await client.get(url, headers=auth_headers(OWNER_ID))).status_code == 200
    assert (await client.get(url, headers=auth_headers(OTHER_PLAYER_ID))).status_code == 403
    assert (await client.get(f"{API}/reservations/9999", headers=auth_headers(PLAYER_ID))).status_code == 404


@pytest.mark.asyncio
async def test_decided_reservation_cannot_be_decided_again(client, court_data):
    monday = upcoming(0)
    accepted = (await _create(client, court_data["court_id"], monday, 600, 660)).json()
    rejected = (await _create(client, court_data["court_id"], monday, 720, 780)).json()
    owner = auth_headers(OWNER_ID)

    assert (await client.put(f"{API}/reservations/{accepted['id']}/accept", headers=owner)).status_code == 200
    resp = await client.put(f"{API}/reservations/{accepted['id']}/reject", headers=owner)
    assert resp.status_code == 409
    assert _rule(resp) == "invalid_transition"

    assert (await client.put(f"{API}/reservations/{rejected['id']}/reject", headers=owner)).status_code == 200
    resp = await client.put(f"{API}/reservations/{rejected['id']}/cancel", headers=auth_headers(PLAYER_ID))
    assert resp.status_code == 409
    assert _rule(resp) == "invalid_transition"

    resp = await client.get(f"{API}/reservations/{rejected['id']}", headers=auth_headers(PLAYER_ID))
    assert resp.json()["status"] == "rejected"


@pytest.mark.asyncio
async def test_accept_respects_buffer_against_confirmed(client, court_data):
    court_id = court_data["court_id"]
    monday = upcoming(0)
    await _add(BookingPolicy(facility_id=court_data["facility_id"], buffer_minutes=30))

    # Pending holds are not widened, so both requests go through
    first = (await _create(client, court_id, monday, 600, 660)).json()
    second = (await _create(client, court_id, monday, 660, 720, user_id=OTHER_PLAYER_ID)).json()
    assert second["status"] == "pending"

    owner = auth_headers(OWNER_ID)
    assert (await client.put(f"{API}/reservations/{first['id']}/accept", headers=owner)).status_code == 200
    resp = await client.put(f"{API}/reservations/{second['id']}/accept", headers=owner)
    assert resp.status_code == 409
    assert _rule(resp) == "slot_taken"

    resp = await client.get(f"{API}/reservations/{second['id']}", headers=owner)
    assert resp.json()["status"] == "pending"


# ---------------------------------------------------------------------------
# Listings
# ---------------------------------------------------------------------------


async def _listing_fixture(client, court_id):
    monday = upcoming(0)
    early = (await _create(client, court_id, monday, 600, 660)).json()
    late = (await _create(client, court_id, monday, 720, 780)).json()
    other = (await _create(client, court_id, monday, 840, 900, user_id=OTHER_PLAYER_ID)).json()
    stale = await _reservation_row(
        court_id, monday, 960, 1020, ReservationStatus.PENDING, expires_at=utcnow() - timedelta(minutes=5)
    )
    return early["id"], late["id"], other["id"], stale


@pytest.mark.asyncio
async def test_list_my_reservations(client, court_data):
    early, late, _other, stale = await _listing_fixture(client, court_data["court_id"])

    resp = await client.get(f"{API}/reservations", headers=auth_headers(PLAYER_ID))
    assert resp.status_code == 200
    data = resp.json()
    assert data["total"] == 3
    assert (data["limit"], data["offset"]) == (50, 0)
    assert [item["id"] for item in data["items"]] == [stale, late, early]
    assert {item["requester_id"] for item in data["items"]} == {PLAYER_ID}
    assert data["items"][0]["status"] == "expired"

    resp = await client.get(f"{API}/reservations", params={"limit": 1, "offset": 1}, headers=auth_headers(PLAYER_ID))
    data = resp.json()
    assert data["total"] == 3
    assert [item["id"] for item in data["items"]] == [late]


@pytest.mark.asyncio
async def test_list_my_reservations_by_effective_status(client, court_data):
    early, late, _other, stale = await _listing_fixture(client, court_data["court_id"])
    headers = auth_headers(PLAYER_ID)

    resp = await client.get(f"{API}/reservations", params={"status": "expired"}, headers=headers)
    assert [item["id"] for item in resp.json()["items"]] == [stale]
    assert resp.json()["total"] == 1

    resp = await client.get(f"{API}/reservations", params={"status": "pending"}, headers=headers)
    assert [item["id"] for item in resp.json()["items"]] == [late, early]

    resp = await client.get(f"{API}/reservations", params={"status": "confirmed"}, headers=headers)
    assert resp.json() == {"items": [], "total": 0, "limit": 50, "offset": 0}

    resp = await client.get(f"{API}/reservations", params={"status": "bogus"}, headers=headers)
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_list_requires_auth(client, court_data):
    assert (await client.get(f"{API}/reservations")).status_code == 401


@pytest.mark.asyncio
async def test_pending_queue_for_owner(client, court_data):
    early, late, other, _stale = await _listing_fixture(client, court_data["court_id"])
    url = f"{API}/facilities/{court_data['facility_id']}/reservations/pending"
    owner = auth_headers(OWNER_ID)

    resp = await client.get(url, headers=owner)
    assert resp.status_code == 200
    data = resp.json()
    assert data["total"] == 3
    assert [item["id"] for item in data["items"]] == [other, late, early]
    assert {item["status"] for item in data["items"]} == {"pending"}

    await client.put(f"{API}/reservations/{late}/accept", headers=owner)
    resp = await client.get(url, params={"limit": 1}, headers=owner)
    data = resp.json()
    assert data["total"] == 2
    assert [item["id"] for item in data["items"]] == [other]


@pytest.mark.asyncio
async def test_pending_queue_owner_only(client, court_data):
    url = f"{API}/facilities/{court_data['facility_id']}/reservations/pending"

    resp = await client.get(url, headers=auth_headers(PLAYER_ID))
    assert resp.status_code == 403
    assert _rule(resp) == "not_owner"

    resp = await client.get(f"{API}/facilities/9999/reservations/pending", headers=auth_headers(OWNER_ID))
    assert resp.status_code == 404
    assert _rule(resp) == "facility_not_found"


# ---------------------------------------------------------------------------
# Expiry sweep
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_expiry_sweep_is_idempotent(db, court_data):
    court_id = court_data["court_id"]
    monday = upcoming(0)
    past = utcnow() - timedelta(hours=1)
    stale = await _reservation_row(court_id, monday, 600, 660, ReservationStatus.PENDING, expires_at=past)
    live = await _reservation_row(
        court_id, monday, 720, 780, ReservationStatus.PENDING, expires_at=utcnow() + timedelta(hours=1)
    )

    assert await expire_stale_reservations(db) == [stale]
    assert await expire_stale_reservations(db) == []

    rows = {r.id: r for r in (await db.execute(select(Reservation))).scalars().all()}
    assert rows[stale].status == ReservationStatus.EXPIRED
    assert rows[stale].expires_at is None
    assert rows[live].status == ReservationStatus.PENDING
    assert rows[live].expires_at is not None


def test_sweep_is_scheduled():
    entry = celery_app.conf.beat_schedule["expire-stale-reservations"]
    assert entry["task"] == "courtslot.expire_stale_reservations"
    assert entry["schedule"] == settings.expiry_sweep_minutes * 60.0
    assert "courtslot.expire_stale_reservations" in celery_app.tasks


# ---------------------------------------------------------------------------
# Seed data
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_seed_dates_follow_facility_timezone(db):
    from scripts.seed import seed

    await seed()
    block = (
        await db.execute(select(BlockedTimeRange).where(BlockedTimeRange.block_type == BlockType.DATE_RANGE))
    ).scalar_one()
    assert block.start_date == local_today() + timedelta(days=10)
    assert block.end_date == block.start_date
