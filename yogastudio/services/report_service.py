"""Aggregate reports over bookings, classes, tutors and locations.

Every report is recomputed from the tables on each call. Ranges are given as
studio-local calendar days and include both ends. Rows whose related class,
tutor or location is missing are counted under ``UNKNOWN_BUCKET``.
"""

import csv
import io
import logging
from collections import Counter, defaultdict
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from ..core.constants import UNKNOWN_BUCKET, UTILIZATION_STATUSES
from ..core.timeutils import as_utc, local_day, range_bounds
from ..db import models
from ..db.models.booking import AttendanceStatus, BookingStatus, PaymentStatus
from ..db.models.yoga_class import ClassStatus
from ..db.schemas.report import ExportFormat, ReportType

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")


class ReportError(Exception):
    pass


def round_half_up(value: Decimal) -> int:
    return int(value.quantize(Decimal(1), rounding=ROUND_HALF_UP))


def utilization_rate(booking_count: int, capacity: int) -> int:
    return round_half_up(Decimal(booking_count * 100) / Decimal(capacity or 1))


def _money(value: Decimal | float | int | None) -> float:
    return float(Decimal(value or 0).quantize(CENT, rounding=ROUND_HALF_UP))


def _class_name(booking: models.Booking) -> str:
    return booking.yoga_class.name if booking.yoga_class is not None else UNKNOWN_BUCKET


def _tutor_name(yoga_class: models.YogaClass | None) -> str:
    if yoga_class is None or yoga_class.tutor is None:
        return UNKNOWN_BUCKET
    return yoga_class.tutor.name


def _location_name(yoga_class: models.YogaClass | None) -> str:
    if yoga_class is None or yoga_class.location is None:
        return UNKNOWN_BUCKET
    return yoga_class.location.name


def _bookings_in_range(db: Session, start: datetime, end: datetime) -> list[models.Booking]:
    class_loader = selectinload(models.Booking.yoga_class)
    query = (
        select(models.Booking)
        .where(models.Booking.booking_date >= start, models.Booking.booking_date < end)
        .options(
            selectinload(models.Booking.user),
            class_loader.selectinload(models.YogaClass.tutor),
            class_loader.selectinload(models.YogaClass.location),
        )
        .order_by(models.Booking.booking_date, models.Booking.id)
    )
    return list(db.scalars(query))


def bookings_report(db: Session, start_day: date, end_day: date) -> dict[str, Any]:
    start, end = range_bounds(start_day, end_day)
    bookings = _bookings_in_range(db, start, end)

    by_status: Counter[str] = Counter()
    by_class: Counter[str] = Counter()
    by_location: Counter[str] = Counter()
    by_tutor: Counter[str] = Counter()
    by_payment_status: Counter[str] = Counter()
    by_payment_method: Counter[str] = Counter()
    daily: Counter[str] = Counter()
    users: set[int] = set()
    new_users: set[int] = set()

    for booking in bookings:
        by_status[booking.status.value] += 1
        by_class[_class_name(booking)] += 1
        by_location[_location_name(booking.yoga_class)] += 1
        by_tutor[_tutor_name(booking.yoga_class)] += 1
        by_payment_status[booking.payment_status.value] += 1
        if booking.payment_method is not None:
            by_payment_method[booking.payment_method.value] += 1
        daily[local_day(booking.booking_date).isoformat()] += 1
        if booking.user is not None:
            users.add(booking.user.id)
            if booking.user.created_at and as_utc(booking.user.created_at) >= start:
                new_users.add(booking.user.id)

    return {
        "totalBookings": len(bookings),
        "byStatus": dict(by_status),
        "byClass": dict(by_class),
        "byLocation": dict(by_location),
        "byTutor": dict(by_tutor),
        "byPaymentStatus": dict(by_payment_status),
        "byPaymentMethod": dict(by_payment_method),
        "dailyBookings": dict(sorted(daily.items())),
        "userStats": {
            "totalUsers": len(users),
            "newUsers": len(new_users),
            "returningUsers": len(users) - len(new_users),
        },
    }


def revenue_report(db: Session, start_day: date, end_day: date) -> dict[str, Any]:
    start, end = range_bounds(start_day, end_day)
    bookings = _bookings_in_range(db, start, end)

    total_revenue = Decimal(0)
    total_refunded = Decimal(0)
    pending_amount = Decimal(0)
    by_class: defaultdict[str, Decimal] = defaultdict(Decimal)
    by_location: defaultdict[str, Decimal] = defaultdict(Decimal)
    by_tutor: defaultdict[str, Decimal] = defaultdict(Decimal)
    by_payment_method: defaultdict[str, Decimal] = defaultdict(Decimal)
    daily: defaultdict[str, Decimal] = defaultdict(Decimal)

    for booking in bookings:
        amount = Decimal(booking.payment_amount or 0)
        if booking.payment_status == PaymentStatus.refunded:
            total_refunded += Decimal(booking.refund_amount or 0)
            continue
        if booking.payment_status == PaymentStatus.pending:
            pending_amount += amount
            continue
        if booking.payment_status != PaymentStatus.paid:
            continue
        total_revenue += amount
        by_class[_class_name(booking)] += amount
        by_location[_location_name(booking.yoga_class)] += amount
        by_tutor[_tutor_name(booking.yoga_class)] += amount
        by_payment_method[booking.payment_method.value] += amount
        daily[local_day(booking.booking_date).isoformat()] += amount

    def as_money(values: dict[str, Decimal]) -> dict[str, float]:
        return {key: _money(value) for key, value in values.items()}

    return {
        "totalBookings": len(bookings),
        "totalRevenue": _money(total_revenue),
        "totalRefunded": _money(total_refunded),
        "pendingAmount": _money(pending_amount),
        "byClass": as_money(by_class),
        "byLocation": as_money(by_location),
        "byTutor": as_money(by_tutor),
        "byPaymentMethod": as_money(by_payment_method),
        "dailyRevenue": as_money(dict(sorted(daily.items()))),
    }


def _attendance_counter() -> dict[str, int]:
    return {status.value: 0 for status in AttendanceStatus}


def attendance_report(db: Session, start_day: date, end_day: date) -> dict[str, Any]:
    start, end = range_bounds(start_day, end_day)
    bookings = _bookings_in_range(db, start, end)

    totals = _attendance_counter()
    by_class: defaultdict[str, dict[str, int]] = defaultdict(_attendance_counter)
    by_location: defaultdict[str, dict[str, int]] = defaultdict(_attendance_counter)
    by_tutor: defaultdict[str, dict[str, int]] = defaultdict(_attendance_counter)

    for booking in bookings:
        status = (booking.attendance_status or AttendanceStatus.not_checked).value
        totals[status] += 1
        by_class[_class_name(booking)][status] += 1
        by_location[_location_name(booking.yoga_class)][status] += 1
        by_tutor[_tutor_name(booking.yoga_class)][status] += 1

    return {
        "totalBookings": len(bookings),
        "attendance": totals,
        "byClass": dict(by_class),
        "byLocation": dict(by_location),
        "byTutor": dict(by_tutor),
    }


def classes_report(db: Session, start_day: date, end_day: date) -> dict[str, Any]:
    start, end = range_bounds(start_day, end_day)
    classes = list(
        db.scalars(
            select(models.YogaClass)
            .where(models.YogaClass.created_at >= start, models.YogaClass.created_at < end)
            .options(
                selectinload(models.YogaClass.tutor),
                selectinload(models.YogaClass.location),
            )
        )
    )

    by_category: Counter[str] = Counter()
    by_level: Counter[str] = Counter()
    by_tutor: Counter[str] = Counter()
    by_location: Counter[str] = Counter()
    by_status: Counter[str] = Counter()
    for yoga_class in classes:
        by_category[yoga_class.category.value] += 1
        by_level[yoga_class.level.value] += 1
        by_tutor[_tutor_name(yoga_class)] += 1
        by_location[_location_name(yoga_class)] += 1
        by_status[yoga_class.status.value] += 1

    return {
        "totalClasses": len(classes),
        "byCategory": dict(by_category),
        "byLevel": dict(by_level),
        "byTutor": dict(by_tutor),
        "byLocation": dict(by_location),
        "byStatus": dict(by_status),
    }


def _active_classes(db: Session) -> list[models.YogaClass]:
    return list(
        db.scalars(select(models.YogaClass).where(models.YogaClass.status == ClassStatus.active))
    )


def _utilized_booking_counts(
    db: Session, class_ids: list[int], start: datetime, end: datetime
) -> Counter[int]:
    if not class_ids:
        return Counter()
    rows = db.scalars(
        select(models.Booking.class_id).where(
            models.Booking.class_id.in_(class_ids),
            models.Booking.status.in_([BookingStatus(value) for value in UTILIZATION_STATUSES]),
            models.Booking.booking_date >= start,
            models.Booking.booking_date < end,
        )
    )
    return Counter(rows)


def tutors_report(db: Session, start_day: date, end_day: date) -> dict[str, Any]:
    start, end = range_bounds(start_day, end_day)
    tutors = list(db.scalars(select(models.Tutor).order_by(models.Tutor.name)))
    classes = _active_classes(db)
    booking_counts = _utilized_booking_counts(db, [c.id for c in classes], start, end)

    by_status: Counter[str] = Counter()
    by_specialty: Counter[str] = Counter()
    class_distribution: dict[str, int] = {}
    student_distribution: dict[str, int] = {}
    rating_distribution: dict[str, float] = {}
    utilization: dict[str, dict[str, int]] = {}

    for tutor in tutors:
        by_status[tutor.status.value] += 1
        for specialty in tutor.specialties or []:
            by_specialty[specialty] += 1
        tutor_classes = [c for c in classes if c.tutor_id == tutor.id]
        booking_count = sum(booking_counts[c.id] for c in tutor_classes)
        total_capacity = sum(c.capacity for c in tutor_classes)
        class_distribution[tutor.name] = len(tutor_classes)
        student_distribution[tutor.name] = booking_count
        rating_distribution[tutor.name] = tutor.average_rating
        utilization[tutor.name] = {
            "totalCapacity": total_capacity,
            "bookingCount": booking_count,
            "utilizationRate": utilization_rate(booking_count, total_capacity),
        }

    return {
        "totalTutors": len(tutors),
        "byStatus": dict(by_status),
        "bySpecialty": dict(by_specialty),
        "classDistribution": class_distribution,
        "studentDistribution": student_distribution,
        "ratingDistribution": rating_distribution,
        "utilization": utilization,
    }


def locations_report(db: Session, start_day: date, end_day: date) -> dict[str, Any]:
    start, end = range_bounds(start_day, end_day)
    locations = list(db.scalars(select(models.Location).order_by(models.Location.name)))
    classes = _active_classes(db)
    booking_counts = _utilized_booking_counts(db, [c.id for c in classes], start, end)

    by_status: Counter[str] = Counter()
    by_city: Counter[str] = Counter()
    class_distribution: dict[str, int] = {}
    booking_distribution: dict[str, int] = {}
    capacity_utilization: dict[str, dict[str, int]] = {}

    for location in locations:
        by_status[location.status.value] += 1
        by_city[location.city or UNKNOWN_BUCKET] += 1
        location_classes = [c for c in classes if c.location_id == location.id]
        booking_count = sum(booking_counts[c.id] for c in location_classes)
        class_distribution[location.name] = len(location_classes)
        booking_distribution[location.name] = booking_count
        capacity_utilization[location.name] = {
            "totalCapacity": location.capacity or 0,
            "classesCount": len(location_classes),
            "bookingCount": booking_count,
            "utilizationRate": utilization_rate(booking_count, location.capacity),
        }

    return {
        "totalLocations": len(locations),
        "byStatus": dict(by_status),
        "byCity": dict(by_city),
        "classDistribution": class_distribution,
        "bookingDistribution": booking_distribution,
        "capacityUtilization": capacity_utilization,
    }


REPORTS = {
    ReportType.bookings: bookings_report,
    ReportType.revenue: revenue_report,
    ReportType.attendance: attendance_report,
    ReportType.classes: classes_report,
    ReportType.tutors: tutors_report,
    ReportType.locations: locations_report,
}


def build_report(
    db: Session, report_type: ReportType, start_day: date, end_day: date
) -> dict[str, Any]:
    try:
        return REPORTS[report_type](db, start_day, end_day)
    except Exception:
        logger.exception(
            "Failed to generate report",
            extra={"report_type": report_type.value, "start": str(start_day), "end": str(end_day)},
        )
        raise


BOOKING_EXPORT_HEADER = [
    "Booking ID",
    "Booking Date",
    "Status",
    "User",
    "Email",
    "Class",
    "Payment Status",
    "Payment Method",
    "Amount",
    "Attendance",
]

REVENUE_EXPORT_HEADER = [
    "Booking ID",
    "Booking Date",
    "Class",
    "Location",
    "Tutor",
    "Payment Method",
    "Amount",
    "Payment Date",
]


def _booking_rows(bookings: list[models.Booking]) -> list[list[Any]]:
    rows = []
    for booking in bookings:
        user = booking.user
        rows.append(
            [
                booking.id,
                as_utc(booking.booking_date).isoformat(),
                booking.status.value,
                user.full_name if user is not None else UNKNOWN_BUCKET,
                user.email if user is not None else "",
                _class_name(booking),
                booking.payment_status.value,
                booking.payment_method.value,
                f"{_money(booking.payment_amount):.2f}",
                booking.attendance_status.value,
            ]
        )
    return rows


def _revenue_rows(bookings: list[models.Booking]) -> list[list[Any]]:
    return [
        [
            booking.id,
            as_utc(booking.booking_date).isoformat(),
            _class_name(booking),
            _location_name(booking.yoga_class),
            _tutor_name(booking.yoga_class),
            booking.payment_method.value,
            f"{_money(booking.payment_amount):.2f}",
            as_utc(booking.payment_date).isoformat() if booking.payment_date else "",
        ]
        for booking in bookings
        if booking.payment_status == PaymentStatus.paid
    ]


def export_report(
    db: Session,
    report_type: ReportType,
    export_format: ExportFormat,
    start_day: date,
    end_day: date,
) -> tuple[str, str]:
    """Render booking rows as CSV. Returns ``(filename, content)``."""

    if export_format != ExportFormat.csv:
        raise ReportError(f"Export format '{export_format.value}' is not supported")
    if report_type == ReportType.bookings:
        header, build_rows = BOOKING_EXPORT_HEADER, _booking_rows
    elif report_type == ReportType.revenue:
        header, build_rows = REVENUE_EXPORT_HEADER, _revenue_rows
    else:
        raise ReportError("Invalid report type")

    start, end = range_bounds(start_day, end_day)
    rows = build_rows(_bookings_in_range(db, start, end))

    output = io.StringIO(newline="")
    writer = csv.writer(output)
    writer.writerow(header)
    writer.writerows(rows)
    filename = f"{report_type.value}-{start_day.isoformat()}-{end_day.isoformat()}.csv"
    logger.info(
        "Report exported",
        extra={"report_type": report_type.value, "rows": len(rows)},
    )
    return filename, output.getvalue()
