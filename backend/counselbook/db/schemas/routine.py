from datetime import datetime, time
from pydantic import BaseModel, Field


class RoutineBase(BaseModel):
    day_of_week: int = Field(ge=0, le=6, description="0=Sunday, 1=Monday, ..., 6=Saturday")
    start_time: time
    end_time: time


class RoutineCreate(RoutineBase):
    pass


class RoutineUpdate(BaseModel):
    day_of_week: int | None = Field(default=None, ge=0, le=6)
    start_time: time | None = None
    end_time: time | None = None
    is_active: bool | None = None


class Routine(RoutineBase):
    id: str
    teacher_id: str
    is_active: bool
    created_at: datetime | None = None

    class Config:
        from_attributes = True
