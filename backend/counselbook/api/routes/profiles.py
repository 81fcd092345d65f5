from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from ...api import deps
from ...core.errors import BookingError
from ...db.session import get_db
from ...db import schemas
from ...services import profile_service

router = APIRouter(prefix="/profiles", tags=["profiles"])


@router.put("/me", response_model=schemas.Profile)
def sync_my_profile(
    payload: schemas.ProfileSync,
    db: Session = Depends(get_db),
    actor: deps.Actor = Depends(deps.get_current_actor),
):
    try:
        return profile_service.sync_profile(db, profile_id=actor.id, role=actor.role, payload=payload)
    except BookingError as exc:
        raise deps.http_error(exc) from exc
