"""Reservation routes: create, list, view, accept, reject, cancel.

All rule checks live in app.services.reservations; failures surface as
BookingError and are rendered by the handler in app.main.
"""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.dependencies import get_current_user_id
from app.models import ReservationStatus
from app.models.base import utcnow
from app.schemas import ReservationCreate, ReservationOut, ReservationPage, StatusChange
from app.services import reservations as service
from app.services.errors import Forbidden
from app.services.lifecycle import effective_status

router = APIRouter(prefix="/reservations", tags=["reservations"])


def _out(res, now) -> ReservationOut:
    return ReservationOut.build(res, effective_status(res, now).value)


def page_out(rows, total: int, limit: int, offset: int, now) -> ReservationPage:
    return ReservationPage(items=[_out(res, now) for res in rows], total=total, limit=limit, offset=offset)


@router.get("", response_model=ReservationPage)
async def list_my_reservations(
    status: ReservationStatus | None = None,
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    now = utcnow()
    rows, total = await service.list_for_requester(db, user_id, status, limit, offset, now)
    return page_out(rows, total, limit, offset, now)


@router.post("", response_model=ReservationOut, status_code=status.HTTP_201_CREATED)
async def create_reservation(
    body: ReservationCreate,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    now = utcnow()
    res = await service.create_reservation(
        db,
        requester_id=user_id,
        court_id=body.court_id,
        booking_date=body.booking_date,
        start_time=body.start_time,
        end_time=body.end_time,
        now=now,
    )
    return _out(res, now)


@router.get("/{reservation_id}", response_model=ReservationOut)
async def get_reservation(
    reservation_id: int,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    res = await service.get_reservation(db, reservation_id)
    if not service.can_view(res, user_id):
        raise Forbidden("not_participant", "You cannot view this reservation")
    return _out(res, utcnow())


@router.put("/{reservation_id}/accept", response_model=ReservationOut)
async def accept_reservation(
    reservation_id: int,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    now = utcnow()
    res = await service.accept_reservation(db, reservation_id, user_id, now)
    return _out(res, now)


@router.put("/{reservation_id}/reject", response_model=ReservationOut)
async def reject_reservation(
    reservation_id: int,
    body: StatusChange | None = None,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    now = utcnow()
    reason = body.reason if body else None
    res = await service.reject_reservation(db, reservation_id, user_id, reason, now)
    return _out(res, now)


@router.put("/{reservation_id}/cancel", response_model=ReservationOut)
async def cancel_reservation(
    reservation_id: int,
    body: StatusChange | None = None,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    now = utcnow()
    reason = body.reason if body else None
    res = await service.cancel_reservation(db, reservation_id, user_id, reason, now)
    return _out(res, now)
