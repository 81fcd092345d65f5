from datetime import datetime
from enum import Enum as PyEnum
from uuid import uuid4
from sqlalchemy import DateTime, Enum, String, func
from sqlalchemy.orm import Mapped, mapped_column
from ..session import Base


class ProfileRole(str, PyEnum):
    student = "student"
    teacher = "teacher"
    admin = "admin"


class Profile(Base):
    __tablename__ = "profiles"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid4()))
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    full_name: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[ProfileRole] = mapped_column(Enum(ProfileRole), nullable=False, index=True)
    card_number: Mapped[str | None] = mapped_column(String(64))
    course: Mapped[str | None] = mapped_column(String(255))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )
