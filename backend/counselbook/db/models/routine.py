from datetime import datetime, time
from uuid import uuid4
from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    SmallInteger,
    String,
    Time,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
from ..session import Base


class TeacherRoutine(Base):
    __tablename__ = "teacher_routines"
    __table_args__ = (
        CheckConstraint("start_time < end_time", name="ck_routine_time_order"),
        CheckConstraint("day_of_week BETWEEN 0 AND 6", name="ck_routine_day_of_week"),
        Index("ix_routine_teacher_day", "teacher_id", "day_of_week"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid4()))
    teacher_id: Mapped[str] = mapped_column(ForeignKey("profiles.id", ondelete="CASCADE"))
    day_of_week: Mapped[int] = mapped_column(SmallInteger, nullable=False)
    start_time: Mapped[time] = mapped_column(Time, nullable=False)
    end_time: Mapped[time] = mapped_column(Time, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    teacher = relationship("Profile")
