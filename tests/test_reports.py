import csv
import io
from collections import Counter
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

import pytest

from yogastudio.core.constants import UNKNOWN_BUCKET
from yogastudio.db import models
from yogastudio.db.schemas.report import ExportFormat, ReportType
from yogastudio.services import report_service

JUNE_FIRST = datetime(2025, 6, 1, 9, 0, tzinfo=timezone.utc)


@pytest.fixture()
def studio(make_user, make_tutor, make_location, make_class, make_booking):
    tutor = make_tutor(name="Sarah Smith", specialties=["Hatha Yoga", "Meditation"])
    location = make_location(name="Downtown Studio", capacity=4)
    hatha = make_class(name="Morning Hatha", tutor=tutor, location=location, capacity=4, price=25)
    orphan = make_class(name="Pop-up", capacity=2, price=10)
    alice, bob = make_user(), make_user()

    make_booking(alice, hatha, JUNE_FIRST, payment_status=models.PaymentStatus.paid)
    make_booking(
        bob,
        hatha,
        JUNE_FIRST + timedelta(days=1),
        status=models.BookingStatus.completed,
        attendance_status=models.AttendanceStatus.present,
        payment_status=models.PaymentStatus.paid,
        payment_method=models.PaymentMethod.credit_card,
    )
    make_booking(
        alice,
        orphan,
        JUNE_FIRST + timedelta(days=1),
        status=models.BookingStatus.no_show,
        attendance_status=models.AttendanceStatus.absent,
    )
    make_booking(
        bob,
        hatha,
        JUNE_FIRST + timedelta(days=2),
        status=models.BookingStatus.cancelled,
        payment_status=models.PaymentStatus.refunded,
        refund_amount=25,
    )
    make_booking(alice, hatha, JUNE_FIRST + timedelta(days=20))
    return {"tutor": tutor, "location": location, "hatha": hatha, "orphan": orphan}


def test_bookings_report_counts(db_session, studio):
    report = report_service.bookings_report(db_session, date(2025, 6, 1), date(2025, 6, 3))

    assert report["totalBookings"] == 4
    assert report["byStatus"] == {"confirmed": 1, "completed": 1, "no-show": 1, "cancelled": 1}
    assert report["byClass"] == {"Morning Hatha": 3, "Pop-up": 1}
    assert report["byTutor"] == {"Sarah Smith": 3, UNKNOWN_BUCKET: 1}
    assert report["byLocation"] == {"Downtown Studio": 3, UNKNOWN_BUCKET: 1}
    assert report["dailyBookings"] == {"2025-06-01": 1, "2025-06-02": 2, "2025-06-03": 1}
    assert report["userStats"]["totalUsers"] == 2


def test_report_range_includes_whole_end_day(db_session, make_user, make_class, make_booking):
    yoga_class = make_class()
    make_booking(make_user(), yoga_class, datetime(2025, 6, 3, 23, 59, 59, tzinfo=timezone.utc))

    report = report_service.bookings_report(db_session, date(2025, 6, 1), date(2025, 6, 3))

    assert report["totalBookings"] == 1


def test_booking_counts_are_additive_over_days(db_session, studio):
    whole = report_service.bookings_report(db_session, date(2025, 6, 1), date(2025, 6, 3))
    total = 0
    by_status: Counter[str] = Counter()
    for offset in range(3):
        day = date(2025, 6, 1) + timedelta(days=offset)
        daily = report_service.bookings_report(db_session, day, day)
        total += daily["totalBookings"]
        by_status.update(daily["byStatus"])

    assert total == whole["totalBookings"]
    assert dict(by_status) == whole["byStatus"]


def test_revenue_report(db_session, studio):
    report = report_service.revenue_report(db_session, date(2025, 6, 1), date(2025, 6, 3))

    assert report["totalRevenue"] == 50.0
    assert report["totalRefunded"] == 25.0
    assert report["pendingAmount"] == 10.0
    assert report["byClass"] == {"Morning Hatha": 50.0}
    assert report["byPaymentMethod"] == {"cash": 25.0, "credit_card": 25.0}
    assert report["dailyRevenue"] == {"2025-06-01": 25.0, "2025-06-02": 25.0}


def test_attendance_report(db_session, studio):
    report = report_service.attendance_report(db_session, date(2025, 6, 1), date(2025, 6, 3))

    assert report["attendance"] == {"not_checked": 2, "present": 1, "absent": 1}
    assert report["byTutor"][UNKNOWN_BUCKET] == {"not_checked": 0, "present": 0, "absent": 1}


def test_classes_report_uses_creation_date(db_session, studio):
    today = datetime.now(timezone.utc).date()

    report = report_service.classes_report(db_session, today - timedelta(days=1), today + timedelta(days=1))

    assert report["totalClasses"] == 2
    assert report["byCategory"] == {"Hatha": 2}
    assert report["byTutor"] == {"Sarah Smith": 1, UNKNOWN_BUCKET: 1}


def test_tutors_report_utilization(db_session, studio):
    report = report_service.tutors_report(db_session, date(2025, 6, 1), date(2025, 6, 30))

    assert report["totalTutors"] == 1
    assert report["bySpecialty"] == {"Hatha Yoga": 1, "Meditation": 1}
    assert report["classDistribution"] == {"Sarah Smith": 1}
    # confirmed on 06-01, completed on 06-02, confirmed on 06-21
    assert report["studentDistribution"] == {"Sarah Smith": 3}
    assert report["utilization"]["Sarah Smith"] == {
        "totalCapacity": 4,
        "bookingCount": 3,
        "utilizationRate": 75,
    }


def test_locations_report_utilization(db_session, studio, make_location):
    make_location(name="Empty Loft", city=None, capacity=10)

    report = report_service.locations_report(db_session, date(2025, 6, 1), date(2025, 6, 3))

    assert report["totalLocations"] == 2
    assert report["byCity"] == {"New York": 1, UNKNOWN_BUCKET: 1}
    assert report["capacityUtilization"]["Downtown Studio"] == {
        "totalCapacity": 4,
        "classesCount": 1,
        "bookingCount": 2,
        "utilizationRate": 50,
    }
    assert report["capacityUtilization"]["Empty Loft"]["utilizationRate"] == 0


@pytest.mark.parametrize(
    "count, capacity, expected",
    [(1, 8, 13), (1, 3, 33), (2, 3, 67), (5, 0, 500), (0, 0, 0)],
)
def test_utilization_rate_rounds_half_up(count, capacity, expected):
    assert report_service.utilization_rate(count, capacity) == expected


def test_round_half_up():
    assert report_service.round_half_up(Decimal("12.5")) == 13
    assert report_service.round_half_up(Decimal("12.49")) == 12


def test_export_bookings_csv(db_session, studio):
    filename, content = report_service.export_report(
        db_session, ReportType.bookings, ExportFormat.csv, date(2025, 6, 1), date(2025, 6, 3)
    )

    rows = list(csv.reader(io.StringIO(content)))
    assert filename == "bookings-2025-06-01-2025-06-03.csv"
    assert rows[0] == report_service.BOOKING_EXPORT_HEADER
    assert len(rows) == 5


def test_export_revenue_only_paid_rows(db_session, studio):
    _, content = report_service.export_report(
        db_session, ReportType.revenue, ExportFormat.csv, date(2025, 6, 1), date(2025, 6, 3)
    )

    rows = list(csv.reader(io.StringIO(content)))
    assert len(rows) == 3
    assert {row[6] for row in rows[1:]} == {"25.00"}


def test_export_rejects_other_formats(db_session):
    with pytest.raises(report_service.ReportError):
        report_service.export_report(
            db_session, ReportType.bookings, ExportFormat.pdf, date(2025, 6, 1), date(2025, 6, 3)
        )
    with pytest.raises(report_service.ReportError):
        report_service.export_report(
            db_session, ReportType.tutors, ExportFormat.csv, date(2025, 6, 1), date(2025, 6, 3)
        )


def test_report_endpoint_validates_range(api_client, make_user):
    api_client.act_as(make_user(role=models.UserRole.admin))

    reversed_range = api_client.get(
        "/api/reports/bookings", params={"startDate": "2025-06-03", "endDate": "2025-06-01"}
    )
    missing = api_client.get("/api/reports/bookings")
    unknown = api_client.get(
        "/api/reports/weather", params={"startDate": "2025-06-01", "endDate": "2025-06-03"}
    )

    assert reversed_range.status_code == 400
    assert reversed_range.json()["message"] == "End date must be after start date"
    assert missing.status_code == 400
    assert unknown.status_code == 400


def test_report_endpoint_returns_envelope(api_client, studio, make_user):
    api_client.act_as(make_user(role=models.UserRole.admin))

    response = api_client.get(
        "/api/reports/attendance", params={"startDate": "2025-06-01", "endDate": "2025-06-03"}
    )

    assert response.status_code == 200
    assert response.json()["data"]["totalBookings"] == 4


def test_export_endpoint_streams_csv(api_client, studio, make_user):
    api_client.act_as(make_user(role=models.UserRole.admin))

    response = api_client.post(
        "/api/reports/export",
        json={"type": "revenue", "format": "csv", "startDate": "2025-06-01", "endDate": "2025-06-03"},
    )
    rejected = api_client.post(
        "/api/reports/export",
        json={"type": "revenue", "format": "excel", "startDate": "2025-06-01", "endDate": "2025-06-03"},
    )

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    assert "attachment" in response.headers["content-disposition"]
    assert rejected.status_code == 400


def test_detached_class_reports_unknown_buckets(
    db_session, make_user, make_tutor, make_location, make_class, make_booking
):
    tutor = make_tutor(name="Leaving Tutor")
    location = make_location(name="Closed Annex", city=None)
    yoga_class = make_class(name="Sunset Flow", tutor=tutor, location=location, price=20)
    make_booking(
        make_user(),
        yoga_class,
        JUNE_FIRST,
        status=models.BookingStatus.completed,
        attendance_status=models.AttendanceStatus.present,
        payment_status=models.PaymentStatus.paid,
    )
    yoga_class.tutor_id = None
    yoga_class.location_id = None
    db_session.commit()
    db_session.expire_all()
    day = date(2025, 6, 1)

    bookings = report_service.bookings_report(db_session, day, day)
    revenue = report_service.revenue_report(db_session, day, day)
    attendance = report_service.attendance_report(db_session, day, day)
    locations = report_service.locations_report(db_session, day, day)

    assert bookings["byTutor"] == {UNKNOWN_BUCKET: 1}
    assert bookings["byLocation"] == {UNKNOWN_BUCKET: 1}
    assert revenue["byTutor"] == {UNKNOWN_BUCKET: 20.0}
    assert revenue["byLocation"] == {UNKNOWN_BUCKET: 20.0}
    assert attendance["byTutor"][UNKNOWN_BUCKET]["present"] == 1
    assert attendance["byLocation"][UNKNOWN_BUCKET]["present"] == 1
    assert locations["byCity"] == {UNKNOWN_BUCKET: 1}
    assert locations["capacityUtilization"]["Closed Annex"]["classesCount"] == 0
