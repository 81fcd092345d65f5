from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..core.errors import AuthorizationError, NotFoundError, ValidationError, store_errors
from ..db import models, schemas

logger = logging.getLogger(__name__)


def _validate_window(start_time, end_time) -> None:
    if start_time >= end_time:
        raise ValidationError("End time must be after start time")


def list_routines(db: Session, teacher_id: str) -> list[models.TeacherRoutine]:
    with store_errors():
        return list(
            db.execute(
                select(models.TeacherRoutine)
                .where(models.TeacherRoutine.teacher_id == teacher_id)
                .order_by(models.TeacherRoutine.day_of_week, models.TeacherRoutine.start_time)
            )
            .scalars()
            .all()
        )


def get_owned_routine(db: Session, routine_id: str, teacher_id: str) -> models.TeacherRoutine:
    with store_errors():
        routine = db.get(models.TeacherRoutine, routine_id)
    if routine is None:
        raise NotFoundError("Routine not found")
    if routine.teacher_id != teacher_id:
        raise AuthorizationError("Only the owning teacher can change this routine")
    return routine


def create_routine(db: Session, *, teacher_id: str, payload: schemas.RoutineCreate) -> models.TeacherRoutine:
    _validate_window(payload.start_time, payload.end_time)
    routine = models.TeacherRoutine(
        teacher_id=teacher_id,
        day_of_week=payload.day_of_week,
        start_time=payload.start_time.replace(second=0, microsecond=0),
        end_time=payload.end_time.replace(second=0, microsecond=0),
        is_active=True,
    )
    with store_errors():
        db.add(routine)
        db.commit()
        db.refresh(routine)
    logger.info("Routine created", extra={"routine_id": routine.id, "teacher_id": teacher_id})
    return routine


def update_routine(
    db: Session, routine_id: str, *, teacher_id: str, payload: schemas.RoutineUpdate
) -> models.TeacherRoutine:
    routine = get_owned_routine(db, routine_id, teacher_id)
    changes = payload.model_dump(exclude_unset=True, exclude_none=True)
    for key in ("start_time", "end_time"):
        if key in changes:
            changes[key] = changes[key].replace(second=0, microsecond=0)
    start_time = changes.get("start_time", routine.start_time)
    end_time = changes.get("end_time", routine.end_time)
    _validate_window(start_time, end_time)
    for key, value in changes.items():
        setattr(routine, key, value)
    with store_errors():
        db.commit()
        db.refresh(routine)
    return routine


def set_routine_active(
    db: Session, routine_id: str, *, teacher_id: str, is_active: bool | None = None
) -> models.TeacherRoutine:
    """Set ``is_active``; when omitted, flip the current value."""

    routine = get_owned_routine(db, routine_id, teacher_id)
    routine.is_active = (not routine.is_active) if is_active is None else is_active
    with store_errors():
        db.commit()
        db.refresh(routine)
    logger.info(
        "Routine toggled",
        extra={"routine_id": routine.id, "is_active": routine.is_active},
    )
    return routine


def delete_routine(db: Session, routine_id: str, *, teacher_id: str) -> None:
    routine = get_owned_routine(db, routine_id, teacher_id)
    with store_errors():
        db.delete(routine)
        db.commit()
    logger.info("Routine deleted", extra={"routine_id": routine_id, "teacher_id": teacher_id})
