from datetime import datetime
from enum import Enum as PyEnum
from sqlalchemy import DateTime, Enum, ForeignKey, Index, Integer, Numeric, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship
from ..session import Base
from ..types import enum_values


class BookingStatus(str, PyEnum):
    pending = "pending"
    confirmed = "confirmed"
    cancelled = "cancelled"
    completed = "completed"
    no_show = "no-show"


class PaymentStatus(str, PyEnum):
    pending = "pending"
    paid = "paid"
    refunded = "refunded"
    failed = "failed"


class PaymentMethod(str, PyEnum):
    cash = "cash"
    credit_card = "credit_card"
    debit_card = "debit_card"
    online_transfer = "online_transfer"


class AttendanceStatus(str, PyEnum):
    not_checked = "not_checked"
    present = "present"
    absent = "absent"


# Statuses that hold a seat in a class occurrence.
ACTIVE_BOOKING_STATUSES = (BookingStatus.pending, BookingStatus.confirmed)

# Statuses no attendance or cancellation transition may leave.
TERMINAL_BOOKING_STATUSES = (
    BookingStatus.cancelled,
    BookingStatus.completed,
    BookingStatus.no_show,
)


class Booking(Base):
    __tablename__ = "bookings"
    __table_args__ = (
        Index("ix_booking_class_date", "class_id", "booking_date"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)
    class_id: Mapped[int] = mapped_column(ForeignKey("classes.id", ondelete="CASCADE"))
    status: Mapped[BookingStatus] = mapped_column(
        Enum(BookingStatus, values_callable=enum_values), default=BookingStatus.pending, index=True
    )
    booking_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
    payment_status: Mapped[PaymentStatus] = mapped_column(
        Enum(PaymentStatus, values_callable=enum_values), default=PaymentStatus.pending, index=True
    )
    payment_amount: Mapped[float] = mapped_column(Numeric(10, 2), nullable=False)
    payment_method: Mapped[PaymentMethod] = mapped_column(
        Enum(PaymentMethod, values_callable=enum_values), nullable=False
    )
    transaction_id: Mapped[str | None] = mapped_column(String(128))
    payment_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    attendance_status: Mapped[AttendanceStatus] = mapped_column(
        Enum(AttendanceStatus, values_callable=enum_values), default=AttendanceStatus.not_checked
    )
    notes: Mapped[str | None] = mapped_column(Text)
    cancellation_reason: Mapped[str | None] = mapped_column(String(255))
    cancellation_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    refund_amount: Mapped[float | None] = mapped_column(Numeric(10, 2))
    refund_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    user = relationship("User")
    yoga_class = relationship("YogaClass", back_populates="bookings")
