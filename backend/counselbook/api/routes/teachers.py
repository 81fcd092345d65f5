from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from ...api import deps
from ...core.constants import SLOT_DURATION_MIN
from ...core.errors import BookingError
from ...core.timeutils import day_of_week, from_minutes
from ...db.session import get_db
from ...db import schemas
from ...services import profile_service, slot_service

router = APIRouter(prefix="/teachers", tags=["teachers"])


@router.get("", response_model=list[schemas.Teacher])
def list_teachers(
    db: Session = Depends(get_db),
    _: deps.Actor = Depends(deps.get_current_actor),
):
    try:
        return profile_service.list_teachers(db)
    except BookingError as exc:
        raise deps.http_error(exc) from exc


@router.get("/{teacher_id}/availability", response_model=schemas.Availability)
def get_availability(
    teacher_id: str,
    booking_date: date = Query(..., description="Calendar date, YYYY-MM-DD"),
    db: Session = Depends(get_db),
    _: deps.Actor = Depends(deps.get_current_actor),
):
    try:
        slots = slot_service.get_availability(db, teacher_id, booking_date)
    except BookingError as exc:
        raise deps.http_error(exc) from exc
    return schemas.Availability(
        teacher_id=teacher_id,
        booking_date=booking_date,
        day_of_week=day_of_week(booking_date),
        slots=[
            schemas.Slot(
                start_time=from_minutes(slot.start_time),
                duration_min=SLOT_DURATION_MIN,
                available=slot.available,
            )
            for slot in slots
        ],
    )
