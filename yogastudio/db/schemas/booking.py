from datetime import date, datetime
from pydantic import AliasChoices, BaseModel, Field, field_validator

from ..models.booking import AttendanceStatus, BookingStatus, PaymentMethod, PaymentStatus
from .common import CamelModel
from .user import UserSummary
from .yoga_class import ClassSummary

# Status values accepted by the status endpoint: booking statuses plus the
# attendance outcomes that resolve a booking.
STATUS_UPDATE_VALUES = {status.value for status in BookingStatus} | {
    AttendanceStatus.present.value,
    AttendanceStatus.absent.value,
}


class BookingCreate(CamelModel):
    class_id: int = Field(validation_alias=AliasChoices("class", "classId"))
    booking_date: datetime
    payment_method: PaymentMethod
    user_id: int | None = Field(default=None, validation_alias=AliasChoices("user", "userId"))
    notes: str | None = None


class BookingStatusUpdate(CamelModel):
    status: str
    cancellation_reason: str | None = None

    @field_validator("status")
    @classmethod
    def known_status(cls, value: str) -> str:
        value = value.strip()
        if value not in STATUS_UPDATE_VALUES:
            raise ValueError("Invalid status")
        return value


class AttendanceUpdate(CamelModel):
    attendance_status: str


class BookingUpdate(CamelModel):
    status: BookingStatus | None = None
    booking_date: datetime | None = None
    payment_status: PaymentStatus | None = None
    payment_amount: float | None = Field(default=None, ge=0)
    payment_method: PaymentMethod | None = None
    transaction_id: str | None = None
    payment_date: datetime | None = None
    attendance_status: AttendanceStatus | None = None
    notes: str | None = None


class Booking(CamelModel):
    id: int
    user_id: int
    class_id: int
    status: BookingStatus
    booking_date: datetime
    payment_status: PaymentStatus
    payment_amount: float
    payment_method: PaymentMethod
    transaction_id: str | None = None
    payment_date: datetime | None = None
    attendance_status: AttendanceStatus
    notes: str | None = None
    cancellation_reason: str | None = None
    cancellation_date: datetime | None = None
    refund_amount: float | None = None
    refund_date: datetime | None = None
    created_at: datetime | None = None
    user: UserSummary | None = None
    yoga_class: ClassSummary | None = Field(
        default=None,
        validation_alias=AliasChoices("yoga_class", "class"),
        serialization_alias="class",
    )


class BookingFilter(BaseModel):
    status: BookingStatus | None = None
    payment_status: PaymentStatus | None = None
    start_date: date | None = None
    end_date: date | None = None
    user_id: int | None = None
    class_id: int | None = None
