from datetime import date, time
from pydantic import BaseModel


class Slot(BaseModel):
    start_time: time
    duration_min: int
    available: bool


class Availability(BaseModel):
    teacher_id: str
    booking_date: date
    day_of_week: int
    slots: list[Slot]
