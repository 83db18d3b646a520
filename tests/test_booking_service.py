import threading
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from yogastudio.db import models
from yogastudio.db.session import Base
from yogastudio.services import booking_service

BEFORE_JUNE = datetime(2025, 5, 1, 9, 0, tzinfo=timezone.utc)
JUNE_FIRST = datetime(2025, 6, 1, 18, 0, tzinfo=timezone.utc)


def test_create_booking_snapshots_price_and_defaults(db_session, make_user, make_class, future):
    user = make_user()
    yoga_class = make_class(price=25)

    booking = booking_service.create_booking(
        db_session, user, yoga_class.id, future(days=3), models.PaymentMethod.cash
    )

    assert booking.status == models.BookingStatus.pending
    assert booking.payment_status == models.PaymentStatus.pending
    assert booking.attendance_status == models.AttendanceStatus.not_checked
    assert Decimal(booking.payment_amount) == Decimal("25")

    yoga_class.price = 40
    db_session.commit()
    db_session.refresh(booking)
    assert Decimal(booking.payment_amount) == Decimal("25")


def test_create_booking_rejects_missing_or_inactive_class(db_session, make_user, make_class, future):
    user = make_user()
    inactive = make_class(status=models.ClassStatus.inactive)

    with pytest.raises(booking_service.ClassUnavailable):
        booking_service.create_booking(db_session, user, inactive.id, future(days=1), "cash")
    with pytest.raises(booking_service.ClassUnavailable):
        booking_service.create_booking(db_session, user, 9999, future(days=1), "cash")


def test_create_booking_rejects_past_date(db_session, make_user, make_class):
    user = make_user()
    yoga_class = make_class()

    with pytest.raises(booking_service.InvalidBookingDate):
        booking_service.create_booking(
            db_session,
            user,
            yoga_class.id,
            datetime.now(timezone.utc) - timedelta(hours=1),
            "cash",
        )
    assert db_session.query(models.Booking).count() == 0


def test_second_booking_for_full_occurrence_is_rejected(db_session, make_user, make_class, make_booking):
    first, second = make_user(), make_user()
    yoga_class = make_class(capacity=1)
    make_booking(first, yoga_class, JUNE_FIRST, status=models.BookingStatus.confirmed)

    with pytest.raises(booking_service.CapacityExceeded):
        booking_service.create_booking(
            db_session, second, yoga_class.id, JUNE_FIRST, "cash", now=BEFORE_JUNE
        )


def test_capacity_is_tracked_per_occurrence_day(db_session, make_user, make_class, make_booking):
    first, second = make_user(), make_user()
    yoga_class = make_class(capacity=1)
    make_booking(first, yoga_class, JUNE_FIRST)

    booking = booking_service.create_booking(
        db_session, second, yoga_class.id, JUNE_FIRST + timedelta(days=1), "cash", now=BEFORE_JUNE
    )

    assert booking.id is not None


def test_cancelled_bookings_free_their_seat(db_session, make_user, make_class, make_booking):
    first, second = make_user(), make_user()
    yoga_class = make_class(capacity=1)
    make_booking(first, yoga_class, JUNE_FIRST, status=models.BookingStatus.cancelled)

    booking = booking_service.create_booking(
        db_session, second, yoga_class.id, JUNE_FIRST, "cash", now=BEFORE_JUNE
    )

    assert booking.status == models.BookingStatus.pending


def test_sequential_bookings_never_exceed_capacity(db_session, make_user, make_class):
    yoga_class = make_class(capacity=3)
    users = [make_user() for _ in range(6)]
    accepted = 0
    for user in users:
        try:
            booking_service.create_booking(
                db_session, user, yoga_class.id, JUNE_FIRST, "cash", now=BEFORE_JUNE
            )
            accepted += 1
        except booking_service.CapacityExceeded:
            pass

    assert accepted == 3
    assert booking_service.count_active_bookings(db_session, yoga_class.id, JUNE_FIRST.date()) == 3


def test_same_user_cannot_book_occurrence_twice(db_session, make_user, make_class):
    user = make_user()
    yoga_class = make_class(capacity=5)
    booking_service.create_booking(db_session, user, yoga_class.id, JUNE_FIRST, "cash", now=BEFORE_JUNE)

    with pytest.raises(booking_service.DuplicateBooking):
        booking_service.create_booking(
            db_session, user, yoga_class.id, JUNE_FIRST, "cash", now=BEFORE_JUNE
        )


def test_initial_status_follows_setting(db_session, make_user, make_class, future, monkeypatch):
    from yogastudio.config import get_settings

    monkeypatch.setattr(get_settings(), "booking_initial_status", "confirmed")
    booking = booking_service.create_booking(
        db_session, make_user(), make_class().id, future(days=2), "credit_card"
    )

    assert booking.status == models.BookingStatus.confirmed


def test_cancel_inside_window_fails_and_leaves_booking_unchanged(
    db_session, make_user, make_class, make_booking, future
):
    booking = make_booking(make_user(), make_class(), future(hours=10))

    with pytest.raises(booking_service.CancellationWindowExpired):
        booking_service.cancel_booking(db_session, booking, "conflict")

    db_session.refresh(booking)
    assert booking.status == models.BookingStatus.confirmed
    assert booking.payment_status == models.PaymentStatus.pending
    assert booking.cancellation_date is None
    assert booking.refund_amount is None


def test_cancel_outside_window_refunds_payment(db_session, make_user, make_class, make_booking, future):
    booking = make_booking(
        make_user(),
        make_class(price=30),
        future(hours=48),
        payment_status=models.PaymentStatus.paid,
        payment_amount=30,
    )

    result = booking_service.cancel_booking(db_session, booking, "conflict")

    assert result.status == models.BookingStatus.cancelled
    assert result.payment_status == models.PaymentStatus.refunded
    assert Decimal(result.refund_amount) == Decimal("30")
    assert result.cancellation_reason == "conflict"
    assert result.cancellation_date is not None
    assert result.refund_date is not None


def test_only_confirmed_bookings_can_be_cancelled(
    db_session, make_user, make_class, make_booking, future
):
    booking = make_booking(
        make_user(), make_class(), future(days=5), status=models.BookingStatus.pending
    )

    with pytest.raises(booking_service.CancellationWindowExpired):
        booking_service.cancel_booking(db_session, booking, None)

    db_session.refresh(booking)
    assert booking.status == models.BookingStatus.pending


def test_cancellation_window_boundary_is_inclusive(
    db_session, make_user, make_class, make_booking
):
    now = datetime(2025, 6, 1, 8, 0, tzinfo=timezone.utc)
    booking = make_booking(make_user(), make_class(), now + timedelta(hours=24))

    assert booking_service.is_refundable(booking, now=now)
    result = booking_service.cancel_booking(db_session, booking, "early", now=now)
    assert result.status == models.BookingStatus.cancelled


def test_cancellation_follows_configured_window(
    db_session, make_user, make_class, make_booking, monkeypatch
):
    from yogastudio.config import get_settings

    monkeypatch.setattr(get_settings(), "cancellation_window_hours", 48)
    now = datetime(2025, 6, 1, 8, 0, tzinfo=timezone.utc)
    booking = make_booking(make_user(), make_class(), now + timedelta(hours=30))

    assert not booking_service.is_refundable(booking, now=now)
    with pytest.raises(booking_service.CancellationWindowExpired, match="less than 48 hours"):
        booking_service.cancel_booking(db_session, booking, None, now=now)


@pytest.mark.parametrize(
    "outcome, attendance, status",
    [
        ("present", models.AttendanceStatus.present, models.BookingStatus.completed),
        ("absent", models.AttendanceStatus.absent, models.BookingStatus.no_show),
    ],
)
def test_mark_attendance_resolves_booking(
    db_session, make_user, make_class, make_booking, future, outcome, attendance, status
):
    booking = make_booking(make_user(), make_class(), future(days=1))

    result = booking_service.mark_attendance(db_session, booking, outcome)

    assert result.attendance_status == attendance
    assert result.status == status


@pytest.mark.parametrize("value", ["late", "not_checked", ""])
def test_mark_attendance_rejects_other_values(
    db_session, make_user, make_class, make_booking, future, value
):
    booking = make_booking(make_user(), make_class(), future(days=1))

    with pytest.raises(booking_service.InvalidAttendanceStatus):
        booking_service.mark_attendance(db_session, booking, value)

    db_session.refresh(booking)
    assert booking.status == models.BookingStatus.confirmed
    assert booking.attendance_status == models.AttendanceStatus.not_checked


def test_status_dispatcher_routes_cancellation(db_session, make_user, make_class, make_booking, future):
    booking = make_booking(make_user(), make_class(), future(days=3))

    result = booking_service.update_booking_status(
        db_session, booking, "cancelled", cancellation_reason="sick"
    )

    assert result.status == models.BookingStatus.cancelled
    assert result.payment_status == models.PaymentStatus.refunded
    assert result.cancellation_reason == "sick"


def test_status_dispatcher_routes_attendance(db_session, make_user, make_class, make_booking, future):
    booking = make_booking(make_user(), make_class(), future(days=3))

    result = booking_service.update_booking_status(db_session, booking, "absent")

    assert result.status == models.BookingStatus.no_show
    assert result.attendance_status == models.AttendanceStatus.absent


def test_status_dispatcher_assigns_other_statuses_directly(
    db_session, make_user, make_class, make_booking, future
):
    booking = make_booking(
        make_user(), make_class(), future(hours=2), status=models.BookingStatus.cancelled
    )

    result = booking_service.update_booking_status(db_session, booking, "confirmed")

    assert result.status == models.BookingStatus.confirmed
    assert db_session.query(models.Notification).count() == 0


def test_status_dispatcher_rejects_unknown_status(
    db_session, make_user, make_class, make_booking, future
):
    booking = make_booking(make_user(), make_class(), future(days=1))

    with pytest.raises(booking_service.BookingError):
        booking_service.update_booking_status(db_session, booking, "archived")


def test_list_bookings_filters_by_status_and_day(
    db_session, make_user, make_class, make_booking
):
    from yogastudio.db.schemas import BookingFilter

    user = make_user()
    yoga_class = make_class()
    make_booking(user, yoga_class, JUNE_FIRST)
    make_booking(user, yoga_class, JUNE_FIRST + timedelta(days=2), status=models.BookingStatus.pending)
    make_booking(user, yoga_class, JUNE_FIRST + timedelta(days=5))

    confirmed = booking_service.list_bookings(
        db_session, BookingFilter(status=models.BookingStatus.confirmed)
    )
    window = booking_service.list_bookings(
        db_session,
        BookingFilter(start_date=JUNE_FIRST.date(), end_date=(JUNE_FIRST + timedelta(days=2)).date()),
    )

    assert len(confirmed) == 2
    assert [b.booking_date.day for b in window] == [3, 1]


def test_list_class_bookings_scoped_to_day(db_session, make_user, make_class, make_booking):
    yoga_class = make_class()
    make_booking(make_user(), yoga_class, JUNE_FIRST)
    make_booking(make_user(), yoga_class, JUNE_FIRST + timedelta(days=1))

    bookings = booking_service.list_class_bookings(db_session, yoga_class.id, JUNE_FIRST.date())

    assert len(bookings) == 1
    assert bookings[0].yoga_class.name == yoga_class.name


def test_get_booking_missing_raises(db_session):
    with pytest.raises(booking_service.BookingNotFound):
        booking_service.get_booking(db_session, 42)


@pytest.mark.parametrize(
    "closed",
    [models.BookingStatus.cancelled, models.BookingStatus.completed, models.BookingStatus.no_show],
)
@pytest.mark.parametrize("outcome", ["present", "absent"])
def test_attendance_cannot_reopen_closed_booking(
    db_session, make_user, make_class, make_booking, future, closed, outcome
):
    booking = make_booking(make_user(), make_class(), future(days=1), status=closed)

    with pytest.raises(booking_service.BookingClosed):
        booking_service.mark_attendance(db_session, booking, outcome)
    with pytest.raises(booking_service.BookingClosed):
        booking_service.update_booking_status(db_session, booking, outcome)

    db_session.refresh(booking)
    assert booking.status == closed
    assert booking.attendance_status == models.AttendanceStatus.not_checked


def test_cancelled_booking_stays_refunded(db_session, make_user, make_class, make_booking, future):
    booking = make_booking(make_user(), make_class(), future(hours=48), payment_amount=25)
    booking_service.cancel_booking(db_session, booking, "moved")

    with pytest.raises(booking_service.BookingClosed):
        booking_service.mark_attendance(db_session, booking, "present")

    db_session.refresh(booking)
    assert booking.status == models.BookingStatus.cancelled
    assert booking.payment_status == models.PaymentStatus.refunded


def test_update_booking_ignores_nulls_for_required_fields(
    db_session, make_user, make_class, make_booking, future
):
    booking = make_booking(make_user(), make_class(), future(days=1), notes="window seat")

    result = booking_service.update_booking(
        db_session,
        booking,
        {
            "status": None,
            "payment_status": None,
            "payment_method": None,
            "payment_amount": None,
            "attendance_status": None,
            "booking_date": None,
            "notes": None,
        },
    )

    assert result.status == models.BookingStatus.confirmed
    assert result.payment_status == models.PaymentStatus.pending
    assert result.payment_method == models.PaymentMethod.cash
    assert result.booking_date is not None
    assert result.notes is None


def test_occurrence_locks_are_released(db_session, make_user, make_class):
    yoga_class = make_class(capacity=50)

    for offset in range(5):
        booking_service.create_booking(
            db_session,
            make_user(),
            yoga_class.id,
            JUNE_FIRST + timedelta(days=offset),
            "cash",
            now=BEFORE_JUNE,
        )
    full = make_class(capacity=1)
    first, second = make_user(), make_user()
    booking_service.create_booking(db_session, first, full.id, JUNE_FIRST, "cash", now=BEFORE_JUNE)
    with pytest.raises(booking_service.CapacityExceeded):
        booking_service.create_booking(db_session, second, full.id, JUNE_FIRST, "cash", now=BEFORE_JUNE)

    assert booking_service._occurrence_locks == {}


def test_concurrent_requests_cannot_overbook(tmp_path):
    engine = create_engine(
        f"sqlite+pysqlite:///{tmp_path / 'race.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    Base.metadata.create_all(bind=engine)
    SessionFactory = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)

    with SessionFactory() as setup:
        yoga_class = models.YogaClass(
            name="Last Seat Flow",
            description="One mat left",
            capacity=1,
            price=20,
            duration=60,
            category=models.ClassCategory.vinyasa,
            level=models.ClassLevel.beginner,
        )
        users = [
            models.User(first_name="Racer", last_name=str(i), email=f"racer{i}@example.com")
            for i in range(8)
        ]
        setup.add_all([yoga_class, *users])
        setup.commit()
        class_id = yoga_class.id
        user_ids = [user.id for user in users]

    barrier = threading.Barrier(len(user_ids))
    outcomes: list[str] = []

    def attempt(user_id: int) -> None:
        with SessionFactory() as session:
            user = session.get(models.User, user_id)
            barrier.wait()
            try:
                booking_service.create_booking(
                    session, user, class_id, JUNE_FIRST, "cash", now=BEFORE_JUNE
                )
                outcomes.append("booked")
            except booking_service.CapacityExceeded:
                outcomes.append("full")

    threads = [threading.Thread(target=attempt, args=(user_id,)) for user_id in user_ids]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    try:
        assert sorted(outcomes) == ["booked"] + ["full"] * (len(user_ids) - 1)
        with SessionFactory() as check:
            assert booking_service.count_active_bookings(check, class_id, JUNE_FIRST.date()) == 1
    finally:
        engine.dispose()
