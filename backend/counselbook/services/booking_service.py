from __future__ import annotations

import logging
from datetime import date

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..core.constants import DEFAULT_REJECTION_NOTE
from ..core.errors import (
    AuthorizationError,
    BookingError,
    ConflictError,
    InvalidTransitionError,
    NotFoundError,
    StoreError,
    ValidationError,
    store_errors,
)
from ..core.timeutils import format_minutes, to_minutes, utcnow
from ..db import models, schemas
from ..db.models.audit_log import ActorType
from ..db.models.booking import BookingStatus
from . import notification_service, slot_service

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS: frozenset[tuple[BookingStatus, BookingStatus]] = frozenset(
    {
        (BookingStatus.pending, BookingStatus.approved),
        (BookingStatus.pending, BookingStatus.rejected),
        (BookingStatus.approved, BookingStatus.completed),
    }
)

ACTIVE_SLOT_CONSTRAINT = "uq_booking_active_slot"

_REQUIRED_TEXT_FIELDS = ("student_name", "card_number", "course", "subject", "description")


def _is_active_slot_violation(exc: IntegrityError) -> bool:
    constraint = getattr(getattr(exc.orig, "diag", None), "constraint_name", "")
    if constraint == ACTIVE_SLOT_CONSTRAINT:
        return True
    message = str(exc.orig)
    return "UNIQUE constraint failed" in message and "counselling_bookings.teacher_id" in message


def _audit(
    db: Session,
    booking: models.Booking,
    *,
    action: str,
    actor_type: ActorType,
    actor_id: str | None,
    **extra: object,
) -> None:
    db.add(
        models.AuditLog(
            actor_type=actor_type,
            actor_id=actor_id,
            action=action,
            payload={
                "booking_id": booking.id,
                "teacher_id": booking.teacher_id,
                "booking_date": booking.booking_date.isoformat(),
                "booking_time": booking.booking_time.strftime("%H:%M"),
                **extra,
            },
        )
    )


def get_booking(db: Session, booking_id: str) -> models.Booking:
    with store_errors():
        booking = db.get(models.Booking, booking_id)
    if booking is None:
        raise NotFoundError("Booking not found")
    return booking


def _requested_minutes(booking_time) -> int:
    if booking_time.second or booking_time.microsecond:
        raise ValidationError("Requested time is not one of the teacher's slots")
    return to_minutes(booking_time)


def create_booking(db: Session, *, student_id: str, payload: schemas.BookingCreate) -> models.Booking:
    """Claim a slot with a single check-and-insert.

    The pre-check rejects slots that are visibly taken; the partial unique
    index on active bookings rejects a concurrent claim that slipped past it.
    """

    requested = _requested_minutes(payload.booking_time)
    try:
        with store_errors():
            starts = slot_service.get_slot_starts(db, payload.teacher_id, payload.booking_date)
            if requested not in starts:
                raise ValidationError("Requested time is not one of the teacher's slots")
            claimed = slot_service.list_claimed_times(db, payload.teacher_id, payload.booking_date)
            if requested in claimed:
                raise ConflictError()
            booking = models.Booking(
                student_id=student_id,
                teacher_id=payload.teacher_id,
                student_name=payload.student_name.strip(),
                card_number=payload.card_number.strip(),
                course=payload.course.strip(),
                subject=payload.subject.strip(),
                description=payload.description.strip(),
                booking_date=payload.booking_date,
                booking_time=payload.booking_time.replace(second=0, microsecond=0),
                status=BookingStatus.pending,
                notification_sent=False,
                version=1,
            )
            db.add(booking)
            db.flush()
            _audit(
                db,
                booking,
                action="booking_created",
                actor_type=ActorType.student,
                actor_id=student_id,
            )
            db.commit()
    except IntegrityError as exc:
        db.rollback()
        if _is_active_slot_violation(exc):
            logger.info(
                "Lost slot race",
                extra={
                    "teacher_id": payload.teacher_id,
                    "booking_date": payload.booking_date.isoformat(),
                    "booking_time": format_minutes(requested),
                },
            )
            raise ConflictError() from exc
        logger.warning(
            "Booking rejected by a storage constraint",
            extra={"teacher_id": payload.teacher_id, "student_id": student_id},
        )
        raise ValidationError("Booking references an unknown student or teacher") from exc
    except BookingError:
        db.rollback()
        raise
    logger.info("Booking created", extra={"booking_id": booking.id, "teacher_id": booking.teacher_id})
    return booking


def submit_booking(db: Session, *, student_id: str, payload: schemas.BookingCreate) -> models.Booking:
    for field in _REQUIRED_TEXT_FIELDS:
        if not getattr(payload, field).strip():
            raise ValidationError(f"{field.replace('_', ' ').capitalize()} is required")
    if payload.booking_date < date.today():
        raise ValidationError("Booking date cannot be in the past")

    requested = _requested_minutes(payload.booking_time)

    with store_errors():
        student = db.get(models.Profile, student_id)
        teacher = db.get(models.Profile, payload.teacher_id)
    if student is None or student.role != models.ProfileRole.student:
        raise NotFoundError("Student profile not found")
    if teacher is None or teacher.role != models.ProfileRole.teacher:
        raise NotFoundError("Teacher not found")

    availability = slot_service.get_availability(db, payload.teacher_id, payload.booking_date)
    matching = [slot for slot in availability if slot.start_time == requested]
    if not matching:
        db.rollback()
        raise ValidationError("Requested time is not one of the teacher's slots")
    if not any(slot.available for slot in matching):
        db.rollback()
        raise ConflictError()
    return create_booking(db, student_id=student_id, payload=payload)


def update_booking_status(
    db: Session,
    booking_id: str,
    expected_status: BookingStatus,
    new_status: BookingStatus,
    expected_version: int,
    notes: str | None = None,
    *,
    actor_type: ActorType,
    actor_id: str | None,
) -> models.Booking:
    """Compare-and-set a status change on ``(status, version)``."""

    if (expected_status, new_status) not in ALLOWED_TRANSITIONS:
        raise InvalidTransitionError(
            f"Cannot change booking status from {expected_status.value} to {new_status.value}"
        )
    values: dict[str, object] = {
        "status": new_status,
        "version": models.Booking.version + 1,
        "updated_at": utcnow(),
    }
    if notes is not None:
        values["teacher_notes"] = notes

    with store_errors():
        result = db.execute(
            update(models.Booking)
            .where(
                models.Booking.id == booking_id,
                models.Booking.status == expected_status,
                models.Booking.version == expected_version,
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            db.rollback()
            current = db.get(models.Booking, booking_id, populate_existing=True)
            if current is None:
                raise NotFoundError("Booking not found")
            if current.status != expected_status:
                raise InvalidTransitionError(
                    f"Cannot change booking status from {current.status.value} to {new_status.value}"
                )
            raise ConflictError("Booking was modified by someone else; reload and try again")
        booking = db.get(models.Booking, booking_id, populate_existing=True)
        _audit(
            db,
            booking,
            action=f"booking_{new_status.value}",
            actor_type=actor_type,
            actor_id=actor_id,
            from_status=expected_status.value,
            version=booking.version,
        )
        db.commit()
    logger.info(
        "Booking status changed",
        extra={
            "booking_id": booking_id,
            "from_status": expected_status.value,
            "to_status": new_status.value,
        },
    )
    return booking


def _get_owned_booking(db: Session, booking_id: str, teacher_id: str) -> models.Booking:
    booking = get_booking(db, booking_id)
    if booking.teacher_id != teacher_id:
        raise AuthorizationError("Only the assigned teacher can change this booking")
    return booking


def approve_booking(
    db: Session, booking_id: str, *, teacher_id: str, expected_version: int | None = None
) -> models.Booking:
    booking = _get_owned_booking(db, booking_id, teacher_id)
    if booking.status != BookingStatus.pending:
        raise InvalidTransitionError(f"Cannot approve a {booking.status.value} booking")
    booking = update_booking_status(
        db,
        booking.id,
        BookingStatus.pending,
        BookingStatus.approved,
        booking.version if expected_version is None else expected_version,
        actor_type=ActorType.teacher,
        actor_id=teacher_id,
    )
    _send_reminder(db, booking)
    return booking


def _send_reminder(db: Session, booking: models.Booking) -> None:
    try:
        with store_errors():
            student = booking.student
            teacher = booking.teacher
        notification_service.schedule_reminder(
            db,
            booking_id=booking.id,
            student_email=student.email if student else "",
            teacher_email=teacher.email if teacher else "",
            student_name=booking.student_name,
            teacher_name=teacher.full_name if teacher else "",
            booking_date=booking.booking_date,
            booking_time=booking.booking_time,
            subject=booking.subject,
        )
        with store_errors():
            booking.notification_sent = True
            db.commit()
    except StoreError:
        db.rollback()
        logger.exception("Approved booking without a reminder", extra={"booking_id": booking.id})


def reject_booking(
    db: Session,
    booking_id: str,
    *,
    teacher_id: str,
    notes: str | None = None,
    expected_version: int | None = None,
) -> models.Booking:
    booking = _get_owned_booking(db, booking_id, teacher_id)
    if booking.status != BookingStatus.pending:
        raise InvalidTransitionError(f"Cannot reject a {booking.status.value} booking")
    return update_booking_status(
        db,
        booking.id,
        BookingStatus.pending,
        BookingStatus.rejected,
        booking.version if expected_version is None else expected_version,
        notes=(notes or "").strip() or DEFAULT_REJECTION_NOTE,
        actor_type=ActorType.teacher,
        actor_id=teacher_id,
    )


def complete_booking(
    db: Session, booking_id: str, *, expected_version: int | None = None
) -> models.Booking:
    """Move an approved booking to ``completed``. Repeating the call is a no-op."""

    booking = get_booking(db, booking_id)
    if booking.status == BookingStatus.completed:
        return booking
    if booking.status != BookingStatus.approved:
        raise InvalidTransitionError(f"Cannot complete a {booking.status.value} booking")
    return update_booking_status(
        db,
        booking.id,
        BookingStatus.approved,
        BookingStatus.completed,
        booking.version if expected_version is None else expected_version,
        actor_type=ActorType.service,
        actor_id=None,
    )


def list_student_bookings(db: Session, student_id: str) -> list[models.Booking]:
    with store_errors():
        return list(
            db.execute(
                select(models.Booking)
                .where(models.Booking.student_id == student_id)
                .order_by(models.Booking.booking_date.desc(), models.Booking.booking_time.desc())
            )
            .scalars()
            .all()
        )


def list_teacher_bookings(db: Session, teacher_id: str) -> list[models.Booking]:
    with store_errors():
        return list(
            db.execute(
                select(models.Booking)
                .where(models.Booking.teacher_id == teacher_id)
                .order_by(models.Booking.booking_date, models.Booking.booking_time)
            )
            .scalars()
            .all()
        )


def list_bookings(db: Session, status: BookingStatus | None = None) -> list[models.Booking]:
    stmt = select(models.Booking).order_by(
        models.Booking.booking_date.desc(), models.Booking.booking_time.desc()
    )
    if status is not None:
        stmt = stmt.where(models.Booking.status == status)
    with store_errors():
        return list(db.execute(stmt).scalars().all())


def booking_stats(db: Session) -> schemas.BookingStats:
    with store_errors():
        counts = dict(
            db.execute(
                select(models.Booking.status, func.count(models.Booking.id)).group_by(
                    models.Booking.status
                )
            ).all()
        )
    by_status = {status.value: int(counts.get(status, 0)) for status in BookingStatus}
    return schemas.BookingStats(total=sum(by_status.values()), **by_status)
