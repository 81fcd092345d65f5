from datetime import datetime
import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from ..config import get_settings
from ..core.errors import StoreError
from ..db.session import SessionLocal
from ..services import notification_service

logger = logging.getLogger(__name__)


def dispatch_due_reminders(now: datetime | None = None, session_factory=SessionLocal) -> int:
    with session_factory() as db:
        try:
            due = notification_service.list_due_reminders(db, now)
            for reminder in due:
                logger.info(
                    "Reminder due",
                    extra={
                        "booking_id": reminder.booking_id,
                        "student_email": reminder.student_email,
                        "teacher_email": reminder.teacher_email,
                    },
                )
            return notification_service.mark_dispatched(db, due)
        except StoreError:
            logger.warning("Reminder dispatch skipped; store unavailable")
            return 0


def get_scheduler() -> AsyncIOScheduler:
    settings = get_settings()
    scheduler = AsyncIOScheduler()
    scheduler.add_job(
        dispatch_due_reminders,
        "interval",
        minutes=settings.reminder_poll_minutes,
        id="dispatch_due_reminders",
    )
    return scheduler
