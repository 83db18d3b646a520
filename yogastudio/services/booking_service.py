import logging
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import date, datetime, timedelta
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.orm import Session, selectinload

from ..config import get_settings
from ..core.timeutils import as_utc, day_bounds, local_day, local_to_utc, utc_now
from ..db import models
from ..db.models.booking import (
    ACTIVE_BOOKING_STATUSES,
    TERMINAL_BOOKING_STATUSES,
    AttendanceStatus,
    BookingStatus,
    PaymentMethod,
    PaymentStatus,
)
from ..db.models.yoga_class import ClassStatus
from ..db.schemas.booking import BookingFilter
from . import notification_service

logger = logging.getLogger(__name__)


class BookingError(Exception):
    pass


class ClassUnavailable(BookingError):
    pass


class InvalidBookingDate(BookingError):
    pass


class CapacityExceeded(BookingError):
    pass


class DuplicateBooking(BookingError):
    pass


class CancellationWindowExpired(BookingError):
    pass


class InvalidAttendanceStatus(BookingError):
    pass


class BookingNotFound(BookingError):
    pass


class BookingClosed(BookingError):
    pass


# One lock per class occurrence. Row locks cover PostgreSQL; SQLite ignores
# FOR UPDATE, so concurrent requests in one process serialize here as well.
# Entries hold [lock, waiters] and are dropped once the last waiter leaves.
_occurrence_locks: dict[tuple[int, date], list] = {}
_registry_lock = threading.Lock()


@contextmanager
def _occurrence_lock(class_id: int, day: date) -> Iterator[None]:
    key = (class_id, day)
    with _registry_lock:
        entry = _occurrence_locks.setdefault(key, [threading.Lock(), 0])
        entry[1] += 1
    try:
        with entry[0]:
            yield
    finally:
        with _registry_lock:
            entry[1] -= 1
            if entry[1] == 0:
                del _occurrence_locks[key]


def count_active_bookings(db: Session, class_id: int, day: date) -> int:
    start, end = day_bounds(day)
    return (
        db.scalar(
            select(func.count(models.Booking.id)).where(
                models.Booking.class_id == class_id,
                models.Booking.status.in_(ACTIVE_BOOKING_STATUSES),
                models.Booking.booking_date >= start,
                models.Booking.booking_date < end,
            )
        )
        or 0
    )


def _has_active_booking(db: Session, user_id: int, class_id: int, day: date) -> bool:
    start, end = day_bounds(day)
    existing = db.scalar(
        select(models.Booking.id)
        .where(
            models.Booking.user_id == user_id,
            models.Booking.class_id == class_id,
            models.Booking.status.in_(ACTIVE_BOOKING_STATUSES),
            models.Booking.booking_date >= start,
            models.Booking.booking_date < end,
        )
        .limit(1)
    )
    return existing is not None


def create_booking(
    db: Session,
    user: models.User,
    class_id: int,
    booking_date: datetime,
    payment_method: PaymentMethod | str,
    *,
    notes: str | None = None,
    status: BookingStatus | str | None = None,
    now: datetime | None = None,
) -> models.Booking:
    now = now or utc_now()
    booking_date = local_to_utc(booking_date)
    initial_status = BookingStatus(status or get_settings().booking_initial_status)
    occurrence = local_day(booking_date)
    user_id = user.id

    with _occurrence_lock(class_id, occurrence):
        try:
            yoga_class = db.execute(
                select(models.YogaClass)
                .where(models.YogaClass.id == class_id)
                .with_for_update()
            ).scalar_one_or_none()
            if yoga_class is None or yoga_class.status != ClassStatus.active:
                raise ClassUnavailable("Class is not available")
            if booking_date < now:
                raise InvalidBookingDate("Booking date cannot be in the past")
            if count_active_bookings(db, class_id, occurrence) >= yoga_class.capacity:
                raise CapacityExceeded("Class is full")
            if _has_active_booking(db, user_id, class_id, occurrence):
                raise DuplicateBooking("You already have a booking for this class")
            booking = models.Booking(
                user_id=user_id,
                class_id=class_id,
                booking_date=booking_date,
                status=initial_status,
                payment_status=PaymentStatus.pending,
                payment_amount=yoga_class.price,
                payment_method=PaymentMethod(payment_method),
                attendance_status=AttendanceStatus.not_checked,
                notes=notes,
            )
            db.add(booking)
            db.commit()
        except BookingError as exc:
            db.rollback()
            logger.info(
                "Booking rejected",
                extra={"class_id": class_id, "user_id": user_id, "reason": str(exc)},
            )
            raise

    db.refresh(booking)
    logger.info(
        "Booking created",
        extra={"booking_id": booking.id, "class_id": class_id, "user_id": user_id},
    )
    notification_service.notify_booking_created(db, booking)
    return booking


def is_refundable(booking: models.Booking, *, now: datetime | None = None) -> bool:
    now = now or utc_now()
    window = timedelta(hours=get_settings().cancellation_window_hours)
    return (
        booking.status == BookingStatus.confirmed
        and as_utc(booking.booking_date) - now >= window
    )


def cancel_booking(
    db: Session,
    booking: models.Booking,
    reason: str | None = None,
    *,
    now: datetime | None = None,
) -> models.Booking:
    now = now or utc_now()
    if not is_refundable(booking, now=now):
        if booking.status != BookingStatus.confirmed:
            raise CancellationWindowExpired("Only confirmed bookings can be cancelled")
        hours = get_settings().cancellation_window_hours
        raise CancellationWindowExpired(
            f"Booking cannot be cancelled less than {hours} hours before class"
        )
    booking.status = BookingStatus.cancelled
    booking.cancellation_reason = reason
    booking.cancellation_date = now
    booking.payment_status = PaymentStatus.refunded
    booking.refund_amount = booking.payment_amount
    booking.refund_date = now
    db.commit()
    db.refresh(booking)
    logger.info(
        "Booking cancelled",
        extra={"booking_id": booking.id, "refund_amount": float(booking.refund_amount or 0)},
    )
    notification_service.notify_booking_cancelled(db, booking)
    return booking


def mark_attendance(db: Session, booking: models.Booking, attendance_status: str) -> models.Booking:
    try:
        outcome = AttendanceStatus(attendance_status)
    except ValueError:
        raise InvalidAttendanceStatus("Invalid attendance status") from None
    if outcome == AttendanceStatus.not_checked:
        raise InvalidAttendanceStatus("Invalid attendance status")
    if booking.status in TERMINAL_BOOKING_STATUSES:
        raise BookingClosed(f"Booking is already {booking.status.value}")
    booking.attendance_status = outcome
    booking.status = (
        BookingStatus.completed if outcome == AttendanceStatus.present else BookingStatus.no_show
    )
    db.commit()
    db.refresh(booking)
    logger.info(
        "Attendance marked",
        extra={"booking_id": booking.id, "attendance": outcome.value},
    )
    notification_service.notify_attendance_marked(db, booking)
    return booking


def update_booking_status(
    db: Session,
    booking: models.Booking,
    new_status: str,
    *,
    cancellation_reason: str | None = None,
    now: datetime | None = None,
) -> models.Booking:
    if new_status == BookingStatus.cancelled.value:
        return cancel_booking(db, booking, cancellation_reason, now=now)
    if new_status in (AttendanceStatus.present.value, AttendanceStatus.absent.value):
        return mark_attendance(db, booking, new_status)
    try:
        target = BookingStatus(new_status)
    except ValueError:
        raise BookingError(f"Invalid status '{new_status}'") from None
    booking.status = target
    db.commit()
    db.refresh(booking)
    return booking


_UPDATABLE_FIELDS = {
    "status",
    "booking_date",
    "payment_status",
    "payment_amount",
    "payment_method",
    "transaction_id",
    "payment_date",
    "attendance_status",
    "notes",
}

NULLABLE_FIELDS = {"transaction_id", "payment_date", "notes"}


def update_booking(db: Session, booking: models.Booking, changes: dict[str, Any]) -> models.Booking:
    for field, value in changes.items():
        if field not in _UPDATABLE_FIELDS:
            continue
        if value is None and field not in NULLABLE_FIELDS:
            continue
        if field in ("booking_date", "payment_date") and value is not None:
            value = local_to_utc(value)
        setattr(booking, field, value)
    db.commit()
    db.refresh(booking)
    return booking


def delete_booking(db: Session, booking: models.Booking) -> None:
    booking_id = booking.id
    db.delete(booking)
    db.commit()
    logger.info("Booking deleted", extra={"booking_id": booking_id})


def _with_relations(query):
    class_loader = selectinload(models.Booking.yoga_class)
    return query.options(
        selectinload(models.Booking.user),
        class_loader.selectinload(models.YogaClass.tutor),
        class_loader.selectinload(models.YogaClass.location),
    )


def get_booking(db: Session, booking_id: int) -> models.Booking:
    booking = db.scalar(
        _with_relations(select(models.Booking).where(models.Booking.id == booking_id))
    )
    if booking is None:
        raise BookingNotFound("Booking not found")
    return booking


def list_bookings(db: Session, filters: BookingFilter | None = None) -> list[models.Booking]:
    query = select(models.Booking)
    if filters is not None:
        if filters.status is not None:
            query = query.where(models.Booking.status == filters.status)
        if filters.payment_status is not None:
            query = query.where(models.Booking.payment_status == filters.payment_status)
        if filters.user_id is not None:
            query = query.where(models.Booking.user_id == filters.user_id)
        if filters.class_id is not None:
            query = query.where(models.Booking.class_id == filters.class_id)
        if filters.start_date is not None:
            start, _ = day_bounds(filters.start_date)
            query = query.where(models.Booking.booking_date >= start)
        if filters.end_date is not None:
            _, end = day_bounds(filters.end_date)
            query = query.where(models.Booking.booking_date < end)
    query = query.order_by(models.Booking.booking_date.desc(), models.Booking.id.desc())
    return list(db.scalars(_with_relations(query)))


def list_user_bookings(db: Session, user_id: int) -> list[models.Booking]:
    return list_bookings(db, BookingFilter(user_id=user_id))


def list_class_bookings(
    db: Session, class_id: int, day: date | None = None
) -> list[models.Booking]:
    query = select(models.Booking).where(models.Booking.class_id == class_id)
    if day is not None:
        start, end = day_bounds(day)
        query = query.where(
            models.Booking.booking_date >= start,
            models.Booking.booking_date < end,
        )
    query = query.order_by(models.Booking.booking_date, models.Booking.id)
    return list(db.scalars(_with_relations(query)))
