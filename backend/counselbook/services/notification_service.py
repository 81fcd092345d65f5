from __future__ import annotations

import logging
from datetime import date, datetime, time

import httpx
from sqlalchemy import select
from sqlalchemy.orm import Session

from ..config import get_settings
from ..core.constants import REMINDER_LEAD_TIME
from ..core.errors import store_errors
from ..core.timeutils import session_start, utcnow
from ..db import models, schemas

logger = logging.getLogger(__name__)


def reminder_time(booking_date: date, booking_time: time) -> datetime:
    return session_start(booking_date, booking_time) - REMINDER_LEAD_TIME


def schedule_reminder(
    db: Session,
    *,
    booking_id: str,
    student_email: str,
    teacher_email: str,
    student_name: str,
    teacher_name: str,
    booking_date: date,
    booking_time: time,
    subject: str,
) -> schemas.ReminderSchedule:
    """Record a reminder two hours before the session and hand it to the notifier.

    Delivery is external: a notifier failure is logged and never raised.
    """

    scheduled_at = reminder_time(booking_date, booking_time)
    reminder = models.BookingReminder(
        booking_id=booking_id,
        student_email=student_email,
        teacher_email=teacher_email,
        student_name=student_name,
        teacher_name=teacher_name,
        booking_date=booking_date,
        booking_time=booking_time,
        subject=subject,
        scheduled_at=scheduled_at,
    )
    with store_errors():
        db.add(reminder)
        db.commit()
    logger.info(
        "Reminder scheduled",
        extra={"booking_id": booking_id, "scheduled_at": scheduled_at.isoformat()},
    )
    forward_to_notifier(reminder)
    return schemas.ReminderSchedule(booking_id=booking_id, scheduled_at=scheduled_at)


def build_notifier_payload(reminder: models.BookingReminder) -> dict[str, str]:
    return {
        "bookingId": reminder.booking_id,
        "studentEmail": reminder.student_email,
        "teacherEmail": reminder.teacher_email,
        "studentName": reminder.student_name,
        "teacherName": reminder.teacher_name,
        "bookingDate": reminder.booking_date.isoformat(),
        "bookingTime": reminder.booking_time.strftime("%H:%M"),
        "subject": reminder.subject,
    }


def forward_to_notifier(reminder: models.BookingReminder) -> bool:
    settings = get_settings()
    if not settings.notifier_url:
        logger.debug("Notifier URL is not configured; reminder kept locally")
        return False

    try:
        with httpx.Client(timeout=settings.notifier_timeout) as client:
            response = client.post(settings.notifier_url, json=build_notifier_payload(reminder))
            response.raise_for_status()
    except httpx.HTTPError:
        logger.exception(
            "Failed to forward reminder to notifier",
            extra={"booking_id": reminder.booking_id},
        )
        return False
    return True


def list_due_reminders(db: Session, now: datetime | None = None) -> list[models.BookingReminder]:
    now = now or datetime.now()
    with store_errors():
        return list(
            db.execute(
                select(models.BookingReminder)
                .where(
                    models.BookingReminder.dispatched_at.is_(None),
                    models.BookingReminder.scheduled_at <= now,
                )
                .order_by(models.BookingReminder.scheduled_at)
            )
            .scalars()
            .all()
        )


def mark_dispatched(db: Session, reminders: list[models.BookingReminder]) -> int:
    if not reminders:
        return 0
    dispatched_at = utcnow()
    with store_errors():
        for reminder in reminders:
            reminder.dispatched_at = dispatched_at
        db.commit()
    return len(reminders)
