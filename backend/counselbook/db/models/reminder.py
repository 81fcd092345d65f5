from datetime import date, datetime, time
from sqlalchemy import Date, DateTime, ForeignKey, Integer, String, Time, func
from sqlalchemy.orm import Mapped, mapped_column, relationship
from ..session import Base


class BookingReminder(Base):
    __tablename__ = "booking_reminders"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    booking_id: Mapped[str] = mapped_column(
        ForeignKey("counselling_bookings.id", ondelete="CASCADE"), index=True
    )
    student_email: Mapped[str] = mapped_column(String(255))
    teacher_email: Mapped[str] = mapped_column(String(255))
    student_name: Mapped[str] = mapped_column(String(255))
    teacher_name: Mapped[str] = mapped_column(String(255))
    booking_date: Mapped[date] = mapped_column(Date)
    booking_time: Mapped[time] = mapped_column(Time)
    subject: Mapped[str] = mapped_column(String(255))
    scheduled_at: Mapped[datetime] = mapped_column(DateTime, index=True)
    dispatched_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    booking = relationship("Booking")
