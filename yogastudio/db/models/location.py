from datetime import datetime
from enum import Enum as PyEnum
from sqlalchemy import CheckConstraint, DateTime, Enum, Integer, JSON, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship
from ..session import Base
from ..types import enum_values


class LocationStatus(str, PyEnum):
    active = "active"
    inactive = "inactive"
    maintenance = "maintenance"


class Location(Base):
    __tablename__ = "locations"
    __table_args__ = (
        CheckConstraint("capacity > 0", name="ck_location_capacity_positive"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    address: Mapped[str] = mapped_column(String(512), nullable=False)
    city: Mapped[str | None] = mapped_column(String(128))
    capacity: Mapped[int] = mapped_column(Integer, nullable=False)
    contact_phone: Mapped[str] = mapped_column(String(32), nullable=False)
    contact_email: Mapped[str] = mapped_column(String(255), nullable=False)
    status: Mapped[LocationStatus] = mapped_column(
        Enum(LocationStatus, values_callable=enum_values), default=LocationStatus.active
    )
    # weekday -> {"open": "HH:mm", "close": "HH:mm"}
    operating_hours: Mapped[dict] = mapped_column(JSON, default=dict)
    facilities: Mapped[list] = mapped_column(JSON, default=list)
    description: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    classes = relationship("YogaClass", back_populates="location")
