from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from ...api import deps
from ...core.errors import BookingError
from ...db.session import get_db
from ...db import schemas
from ...services import routine_service

router = APIRouter(prefix="/routines", tags=["routines"])

teacher_only = deps.require_roles("teacher")


@router.get("", response_model=list[schemas.Routine])
def list_routines(
    db: Session = Depends(get_db),
    teacher: deps.Actor = Depends(teacher_only),
):
    try:
        return routine_service.list_routines(db, teacher.id)
    except BookingError as exc:
        raise deps.http_error(exc) from exc


@router.post("", response_model=schemas.Routine, status_code=201)
def create_routine(
    payload: schemas.RoutineCreate,
    db: Session = Depends(get_db),
    teacher: deps.Actor = Depends(teacher_only),
):
    try:
        return routine_service.create_routine(db, teacher_id=teacher.id, payload=payload)
    except BookingError as exc:
        raise deps.http_error(exc) from exc


@router.patch("/{routine_id}", response_model=schemas.Routine)
def update_routine(
    routine_id: str,
    payload: schemas.RoutineUpdate,
    db: Session = Depends(get_db),
    teacher: deps.Actor = Depends(teacher_only),
):
    try:
        return routine_service.update_routine(db, routine_id, teacher_id=teacher.id, payload=payload)
    except BookingError as exc:
        raise deps.http_error(exc) from exc


@router.post("/{routine_id}/toggle", response_model=schemas.Routine)
def toggle_routine(
    routine_id: str,
    db: Session = Depends(get_db),
    teacher: deps.Actor = Depends(teacher_only),
):
    try:
        return routine_service.set_routine_active(db, routine_id, teacher_id=teacher.id)
    except BookingError as exc:
        raise deps.http_error(exc) from exc


@router.delete("/{routine_id}")
def delete_routine(
    routine_id: str,
    db: Session = Depends(get_db),
    teacher: deps.Actor = Depends(teacher_only),
):
    try:
        routine_service.delete_routine(db, routine_id, teacher_id=teacher.id)
    except BookingError as exc:
        raise deps.http_error(exc) from exc
    return {"status": "deleted"}
