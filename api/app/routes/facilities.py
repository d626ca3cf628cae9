"""Facility owner routes: the queue of pending requests awaiting a decision."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.dependencies import get_current_user_id
from app.models.base import utcnow
from app.routes.reservations import page_out
from app.schemas import ReservationPage
from app.services import reservations as service

router = APIRouter(prefix="/facilities", tags=["facilities"])


@router.get("/{facility_id}/reservations/pending", response_model=ReservationPage)
async def list_pending_reservations(
    facility_id: int,
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    now = utcnow()
    rows, total = await service.list_pending_for_facility(db, facility_id, user_id, limit, offset, now)
    return page_out(rows, total, limit, offset, now)
