from datetime import datetime
from enum import Enum as PyEnum
from sqlalchemy import DateTime, Enum, Float, Integer, JSON, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship
from ..session import Base
from ..types import enum_values


class TutorStatus(str, PyEnum):
    active = "active"
    inactive = "inactive"
    on_leave = "on_leave"


class Tutor(Base):
    __tablename__ = "tutors"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    phone: Mapped[str] = mapped_column(String(32), nullable=False)
    specialties: Mapped[list] = mapped_column(JSON, default=list)
    experience: Mapped[int] = mapped_column(Integer, default=0)
    bio: Mapped[str | None] = mapped_column(Text)
    status: Mapped[TutorStatus] = mapped_column(
        Enum(TutorStatus, values_callable=enum_values), default=TutorStatus.active, index=True
    )
    profile_picture: Mapped[str | None] = mapped_column(String(512))
    certifications: Mapped[list] = mapped_column(JSON, default=list)
    # weekday -> [{"start": "HH:mm", "end": "HH:mm"}]
    availability: Mapped[dict] = mapped_column(JSON, default=dict)
    rating: Mapped[float] = mapped_column(Float, default=0)
    total_ratings: Mapped[int] = mapped_column(Integer, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    classes = relationship("YogaClass", back_populates="tutor")

    @property
    def average_rating(self) -> float:
        if not self.total_ratings:
            return 0.0
        return round(self.rating / self.total_ratings, 1)
