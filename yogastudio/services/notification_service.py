from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.timeutils import as_utc, studio_timezone
from ..db import models
from ..db.models.notification import NotificationType
from ..db.models.user import UserRole

logger = logging.getLogger(__name__)


class NotificationNotFound(Exception):
    pass


@dataclass(slots=True)
class PendingNotification:
    recipient_id: int
    title: str
    message: str
    type: NotificationType = NotificationType.info
    link: str | None = None


def create_notification(
    db: Session,
    *,
    recipient_id: int,
    title: str,
    message: str,
    type: NotificationType = NotificationType.info,
    link: str | None = None,
) -> models.Notification:
    notification = models.Notification(
        recipient_id=recipient_id,
        title=title,
        message=message,
        type=type,
        link=link,
        read=False,
    )
    db.add(notification)
    db.commit()
    db.refresh(notification)
    return notification


def list_notifications(
    db: Session, recipient_id: int, *, unread_only: bool = False
) -> list[models.Notification]:
    query = select(models.Notification).where(models.Notification.recipient_id == recipient_id)
    if unread_only:
        query = query.where(models.Notification.read.is_(False))
    query = query.order_by(models.Notification.created_at.desc(), models.Notification.id.desc())
    return list(db.scalars(query))


def get_notification(db: Session, recipient_id: int, notification_id: int) -> models.Notification:
    notification = db.get(models.Notification, notification_id)
    if notification is None or notification.recipient_id != recipient_id:
        raise NotificationNotFound("Notification not found")
    return notification


def mark_as_read(db: Session, recipient_id: int, notification_id: int) -> models.Notification:
    notification = get_notification(db, recipient_id, notification_id)
    notification.read = True
    db.commit()
    db.refresh(notification)
    return notification


def mark_all_as_read(db: Session, recipient_id: int) -> int:
    result = db.execute(
        update(models.Notification)
        .where(
            models.Notification.recipient_id == recipient_id,
            models.Notification.read.is_(False),
        )
        .values(read=True)
        .execution_options(synchronize_session="fetch")
    )
    db.commit()
    return result.rowcount or 0


def delete_notification(db: Session, recipient_id: int, notification_id: int) -> None:
    notification = get_notification(db, recipient_id, notification_id)
    db.delete(notification)
    db.commit()


def _first_admin_id(db: Session) -> int | None:
    return db.scalar(
        select(models.User.id)
        .where(models.User.role == UserRole.admin, models.User.is_active.is_(True))
        .order_by(models.User.id)
        .limit(1)
    )


def _format_occurrence(booking: models.Booking) -> str:
    local_dt = as_utc(booking.booking_date).astimezone(studio_timezone())
    return local_dt.strftime("%d.%m.%Y %H:%M")


def _class_label(booking: models.Booking) -> str:
    yoga_class = booking.yoga_class
    return yoga_class.name if yoga_class is not None else "class"


def deliver(db: Session, notifications: list[PendingNotification]) -> None:
    """Persist booking side-effect notifications.

    Failures are logged and rolled back; the booking change that triggered
    them has already been committed.
    """

    if not notifications:
        return
    try:
        for item in notifications:
            db.add(
                models.Notification(
                    recipient_id=item.recipient_id,
                    title=item.title,
                    message=item.message,
                    type=item.type,
                    link=item.link,
                    read=False,
                )
            )
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception(
            "Failed to store booking notifications",
            extra={"recipients": [item.recipient_id for item in notifications]},
        )


def notify_booking_created(db: Session, booking: models.Booking) -> None:
    label = _class_label(booking)
    when = _format_occurrence(booking)
    pending = [
        PendingNotification(
            recipient_id=booking.user_id,
            title="Booking Created",
            message=f"Your booking for {label} on {when} has been received.",
            link=f"/bookings/{booking.id}",
        )
    ]
    admin_id = _first_admin_id(db)
    if admin_id is not None and admin_id != booking.user_id:
        pending.append(
            PendingNotification(
                recipient_id=admin_id,
                title="New Booking Request",
                message=f"New booking #{booking.id} for {label} on {when}.",
                link=f"/bookings/{booking.id}",
            )
        )
    deliver(db, pending)


def notify_booking_cancelled(db: Session, booking: models.Booking) -> None:
    refund = booking.refund_amount or 0
    reason = f" Reason: {booking.cancellation_reason}." if booking.cancellation_reason else ""
    deliver(
        db,
        [
            PendingNotification(
                recipient_id=booking.user_id,
                title="Booking Cancelled",
                message=(
                    f"Your booking for {_class_label(booking)} on {_format_occurrence(booking)} "
                    f"was cancelled.{reason} Refund: {float(refund):.2f}."
                ),
                type=NotificationType.warning,
                link=f"/bookings/{booking.id}",
            )
        ],
    )


def notify_attendance_marked(db: Session, booking: models.Booking) -> None:
    attended = booking.attendance_status == models.AttendanceStatus.present
    outcome = "attended" if attended else "were marked absent from"
    deliver(
        db,
        [
            PendingNotification(
                recipient_id=booking.user_id,
                title="Attendance Recorded",
                message=f"You {outcome} {_class_label(booking)} on {_format_occurrence(booking)}.",
                type=NotificationType.info if attended else NotificationType.warning,
                link=f"/bookings/{booking.id}",
            )
        ],
    )
