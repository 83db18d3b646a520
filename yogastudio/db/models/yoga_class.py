from datetime import datetime
from enum import Enum as PyEnum
from sqlalchemy import (
    CheckConstraint,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    JSON,
    Numeric,
    String,
    Text,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
from ..session import Base
from ..types import enum_values


class ClassStatus(str, PyEnum):
    active = "active"
    inactive = "inactive"
    cancelled = "cancelled"


class ClassCategory(str, PyEnum):
    hatha = "Hatha"
    vinyasa = "Vinyasa"
    ashtanga = "Ashtanga"
    yin = "Yin"
    restorative = "Restorative"
    power = "Power"
    prenatal = "Prenatal"
    other = "Other"


class ClassLevel(str, PyEnum):
    beginner = "Beginner"
    intermediate = "Intermediate"
    advanced = "Advanced"
    all_levels = "All Levels"


class ScheduleSlot(Base):
    __tablename__ = "class_schedule_slots"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    class_id: Mapped[int] = mapped_column(ForeignKey("classes.id", ondelete="CASCADE"), index=True)
    day_of_week: Mapped[str] = mapped_column(String(16), nullable=False)
    start_time: Mapped[str] = mapped_column(String(5), nullable=False)
    end_time: Mapped[str] = mapped_column(String(5), nullable=False)

    yoga_class = relationship("YogaClass", back_populates="schedule")


class YogaClass(Base):
    __tablename__ = "classes"
    __table_args__ = (
        CheckConstraint("capacity > 0", name="ck_class_capacity_positive"),
        CheckConstraint("price >= 0", name="ck_class_price_non_negative"),
        CheckConstraint("duration >= 15", name="ck_class_duration_min"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    tutor_id: Mapped[int | None] = mapped_column(
        ForeignKey("tutors.id", ondelete="SET NULL"), index=True
    )
    location_id: Mapped[int | None] = mapped_column(
        ForeignKey("locations.id", ondelete="SET NULL"), index=True
    )
    capacity: Mapped[int] = mapped_column(Integer, nullable=False)
    price: Mapped[float] = mapped_column(Numeric(10, 2), nullable=False)
    duration: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[ClassStatus] = mapped_column(
        Enum(ClassStatus, values_callable=enum_values), default=ClassStatus.active, index=True
    )
    category: Mapped[ClassCategory] = mapped_column(
        Enum(ClassCategory, values_callable=enum_values), nullable=False, index=True
    )
    level: Mapped[ClassLevel] = mapped_column(
        Enum(ClassLevel, values_callable=enum_values), nullable=False, index=True
    )
    requirements: Mapped[list] = mapped_column(JSON, default=list)
    equipment: Mapped[list] = mapped_column(JSON, default=list)
    min_age: Mapped[int | None] = mapped_column(Integer)
    max_age: Mapped[int | None] = mapped_column(Integer)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    tutor = relationship("Tutor", back_populates="classes")
    location = relationship("Location", back_populates="classes")
    schedule = relationship(
        "ScheduleSlot",
        back_populates="yoga_class",
        cascade="all, delete-orphan",
        order_by="ScheduleSlot.id",
    )
    bookings = relationship("Booking", back_populates="yoga_class", cascade="all, delete-orphan")
