from datetime import date, datetime, time
from pydantic import BaseModel, Field

from ..models.booking import BookingStatus


class BookingCreate(BaseModel):
    teacher_id: str
    student_name: str = Field(min_length=1, max_length=255)
    card_number: str = Field(min_length=1, max_length=64)
    course: str = Field(min_length=1, max_length=255)
    subject: str = Field(min_length=1, max_length=255)
    description: str = Field(min_length=1)
    booking_date: date
    booking_time: time


class BookingApprove(BaseModel):
    expected_version: int | None = None


class BookingReject(BaseModel):
    notes: str | None = None
    expected_version: int | None = None


class BookingComplete(BaseModel):
    expected_version: int | None = None


class Booking(BaseModel):
    id: str
    student_id: str
    teacher_id: str
    student_name: str
    card_number: str
    course: str
    subject: str
    description: str
    booking_date: date
    booking_time: time
    status: BookingStatus
    teacher_notes: str | None = None
    notification_sent: bool
    version: int
    created_at: datetime | None = None
    updated_at: datetime | None = None

    class Config:
        from_attributes = True


class BookingStats(BaseModel):
    total: int
    pending: int
    approved: int
    rejected: int
    completed: int
