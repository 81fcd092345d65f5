from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from ...api import deps
from ...core.errors import BookingError
from ...db.models import BookingStatus
from ...db.session import get_db
from ...db import schemas
from ...services import booking_service

router = APIRouter(prefix="/bookings", tags=["bookings"])


@router.post("", response_model=schemas.Booking, status_code=201)
def submit_booking(
    payload: schemas.BookingCreate,
    db: Session = Depends(get_db),
    student: deps.Actor = Depends(deps.require_roles("student")),
):
    try:
        return booking_service.submit_booking(db, student_id=student.id, payload=payload)
    except BookingError as exc:
        raise deps.http_error(exc) from exc


@router.get("/mine", response_model=list[schemas.Booking])
def list_my_bookings(
    db: Session = Depends(get_db),
    student: deps.Actor = Depends(deps.require_roles("student")),
):
    try:
        return booking_service.list_student_bookings(db, student.id)
    except BookingError as exc:
        raise deps.http_error(exc) from exc


@router.get("/requests", response_model=list[schemas.Booking])
def list_booking_requests(
    db: Session = Depends(get_db),
    teacher: deps.Actor = Depends(deps.require_roles("teacher")),
):
    try:
        return booking_service.list_teacher_bookings(db, teacher.id)
    except BookingError as exc:
        raise deps.http_error(exc) from exc


@router.get("", response_model=list[schemas.Booking])
def list_bookings(
    status: BookingStatus | None = None,
    db: Session = Depends(get_db),
    _: deps.Actor = Depends(deps.require_roles("admin")),
):
    try:
        return booking_service.list_bookings(db, status)
    except BookingError as exc:
        raise deps.http_error(exc) from exc


@router.get("/stats", response_model=schemas.BookingStats)
def booking_stats(
    db: Session = Depends(get_db),
    _: deps.Actor = Depends(deps.require_roles("admin")),
):
    try:
        return booking_service.booking_stats(db)
    except BookingError as exc:
        raise deps.http_error(exc) from exc


@router.post("/{booking_id}/approve", response_model=schemas.Booking)
def approve_booking(
    booking_id: str,
    payload: schemas.BookingApprove | None = None,
    db: Session = Depends(get_db),
    teacher: deps.Actor = Depends(deps.require_roles("teacher")),
):
    try:
        return booking_service.approve_booking(
            db,
            booking_id,
            teacher_id=teacher.id,
            expected_version=payload.expected_version if payload else None,
        )
    except BookingError as exc:
        raise deps.http_error(exc) from exc


@router.post("/{booking_id}/reject", response_model=schemas.Booking)
def reject_booking(
    booking_id: str,
    payload: schemas.BookingReject | None = None,
    db: Session = Depends(get_db),
    teacher: deps.Actor = Depends(deps.require_roles("teacher")),
):
    try:
        return booking_service.reject_booking(
            db,
            booking_id,
            teacher_id=teacher.id,
            notes=payload.notes if payload else None,
            expected_version=payload.expected_version if payload else None,
        )
    except BookingError as exc:
        raise deps.http_error(exc) from exc


@router.post("/{booking_id}/complete", response_model=schemas.Booking)
def complete_booking(
    booking_id: str,
    payload: schemas.BookingComplete | None = None,
    db: Session = Depends(get_db),
    _: None = Depends(deps.verify_service_token),
):
    try:
        return booking_service.complete_booking(
            db,
            booking_id,
            expected_version=payload.expected_version if payload else None,
        )
    except BookingError as exc:
        raise deps.http_error(exc) from exc
