from datetime import datetime
from pydantic import BaseModel, Field

from ..models.profile import ProfileRole


class ProfileSync(BaseModel):
    email: str = Field(min_length=3, max_length=255)
    full_name: str = Field(min_length=1, max_length=255)
    card_number: str | None = None
    course: str | None = None


class Profile(BaseModel):
    id: str
    email: str
    full_name: str
    role: ProfileRole
    card_number: str | None = None
    course: str | None = None
    created_at: datetime | None = None

    class Config:
        from_attributes = True


class Teacher(BaseModel):
    id: str
    full_name: str
    email: str

    class Config:
        from_attributes = True
