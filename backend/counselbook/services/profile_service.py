from sqlalchemy import select
from sqlalchemy.orm import Session

from ..core.errors import store_errors
from ..db import models, schemas


def sync_profile(
    db: Session, *, profile_id: str, role: models.ProfileRole, payload: schemas.ProfileSync
) -> models.Profile:
    with store_errors():
        profile = db.get(models.Profile, profile_id)
        if profile is None:
            profile = models.Profile(id=profile_id, role=role)
            db.add(profile)
        profile.role = role
        profile.email = payload.email
        profile.full_name = payload.full_name
        if payload.card_number is not None:
            profile.card_number = payload.card_number
        if payload.course is not None:
            profile.course = payload.course
        db.commit()
        db.refresh(profile)
    return profile


def list_teachers(db: Session) -> list[models.Profile]:
    with store_errors():
        return list(
            db.execute(
                select(models.Profile)
                .where(models.Profile.role == models.ProfileRole.teacher)
                .order_by(models.Profile.full_name)
            )
            .scalars()
            .all()
        )
