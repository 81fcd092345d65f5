"""Availability engine: routines -> candidate slots -> availability."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Iterable

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..core.constants import SLOT_DURATION_MIN
from ..core.errors import store_errors
from ..core.timeutils import day_of_week, to_minutes
from ..db import models


@dataclass(slots=True, frozen=True)
class Slot:
    start_time: int
    available: bool
    duration: int = SLOT_DURATION_MIN


def generate_slots(routines: Iterable[models.TeacherRoutine]) -> list[int]:
    """Return slot starts (minutes since midnight) for already-filtered routines.

    Each routine is walked independently and the results are concatenated in
    input order. Overlapping routines are not merged, so duplicate starts are
    possible.
    """

    starts: list[int] = []
    for routine in routines:
        current = to_minutes(routine.start_time)
        end = to_minutes(routine.end_time)
        while current + SLOT_DURATION_MIN <= end:
            starts.append(current)
            current += SLOT_DURATION_MIN
    return starts


def filter_conflicts(slots: Iterable[int], claimed_times: set[int] | frozenset[int]) -> list[Slot]:
    return [Slot(start_time=start, available=start not in claimed_times) for start in slots]


def list_active_routines(db: Session, teacher_id: str, weekday: int) -> list[models.TeacherRoutine]:
    with store_errors():
        return list(
            db.execute(
                select(models.TeacherRoutine)
                .where(
                    models.TeacherRoutine.teacher_id == teacher_id,
                    models.TeacherRoutine.day_of_week == weekday,
                    models.TeacherRoutine.is_active.is_(True),
                )
                .order_by(models.TeacherRoutine.start_time, models.TeacherRoutine.id)
            )
            .scalars()
            .all()
        )


def list_claimed_times(db: Session, teacher_id: str, booking_date: date) -> set[int]:
    with store_errors():
        times = db.execute(
            select(models.Booking.booking_time).where(
                models.Booking.teacher_id == teacher_id,
                models.Booking.booking_date == booking_date,
                models.Booking.status.in_(models.ACTIVE_BOOKING_STATUSES),
            )
        ).scalars()
        return {to_minutes(t) for t in times}


def get_slot_starts(db: Session, teacher_id: str, booking_date: date) -> list[int]:
    return generate_slots(list_active_routines(db, teacher_id, day_of_week(booking_date)))


def get_availability(db: Session, teacher_id: str, booking_date: date) -> list[Slot]:
    starts = get_slot_starts(db, teacher_id, booking_date)
    if not starts:
        return []
    return filter_conflicts(starts, list_claimed_times(db, teacher_id, booking_date))
