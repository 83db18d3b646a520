import logging
from datetime import datetime, time, timedelta, timezone

from sqlalchemy.orm import Session

from ..config import get_settings
from ..core import security
from ..core.log import configure_logging
from ..db import models
from ..db.session import Base, SessionLocal, engine
from .admin import ensure_admin_exists

logger = logging.getLogger(__name__)

WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday")

SAMPLE_USERS = [
    ("John", "Doe", "john@example.com"),
    ("Jane", "Smith", "jane@example.com"),
    ("Mike", "Johnson", "mike@example.com"),
    ("Sarah", "Wilson", "sarah@example.com"),
]

SAMPLE_LOCATIONS = [
    {
        "name": "Downtown Studio",
        "address": "123 Main St, New York, NY 10001, USA",
        "city": "New York",
        "capacity": 30,
        "contact_email": "downtown@yoga.com",
        "contact_phone": "212-555-0101",
        "facilities": ["Mats", "Props", "Showers", "Lockers", "Retail Shop", "Cafe"],
        "description": "Our flagship studio in the heart of downtown",
        "hours": (("06:00", "21:00"), ("07:00", "20:00")),
    },
    {
        "name": "Uptown Studio",
        "address": "456 Park Ave, New York, NY 10022, USA",
        "city": "New York",
        "capacity": 25,
        "contact_email": "uptown@yoga.com",
        "contact_phone": "212-555-0202",
        "facilities": ["Mats", "Props", "Showers", "Lockers"],
        "description": "Peaceful studio in the uptown area",
        "hours": (("07:00", "20:00"), ("08:00", "19:00")),
    },
    {
        "name": "Brooklyn Studio",
        "address": "789 Atlantic Ave, Brooklyn, NY 11238, USA",
        "city": "Brooklyn",
        "capacity": 35,
        "contact_email": "brooklyn@yoga.com",
        "contact_phone": "718-555-0303",
        "facilities": ["Mats", "Props", "Showers", "Lockers", "Retail Shop", "Garden"],
        "description": "Spacious studio with garden access in Brooklyn",
        "hours": (("06:30", "21:30"), ("07:30", "20:30")),
    },
]

SAMPLE_TUTORS = [
    {
        "name": "Sarah Smith",
        "email": "sarah@yoga.com",
        "phone": "212-555-0102",
        "specialties": ["Hatha Yoga", "Vinyasa Flow", "Meditation"],
        "experience": 8,
        "bio": "Certified yoga instructor with 8 years of experience in various styles.",
        "certifications": [
            {"name": "RYT 500", "issuer": "Yoga Alliance", "year": 2015},
            {"name": "Meditation Teacher", "issuer": "Mindfulness Institute", "year": 2018},
        ],
        "window": ("09:00", "17:00"),
        "rating": (4.8, 156),
    },
    {
        "name": "Michael Chen",
        "email": "michael@yoga.com",
        "phone": "212-555-0103",
        "specialties": ["Ashtanga Yoga", "Power Yoga", "Yoga Therapy"],
        "experience": 10,
        "bio": "Experienced yoga therapist specializing in injury prevention and recovery.",
        "certifications": [
            {"name": "RYT 500", "issuer": "Yoga Alliance", "year": 2013},
            {
                "name": "Yoga Therapy",
                "issuer": "International Association of Yoga Therapists",
                "year": 2016,
            },
        ],
        "window": ("08:00", "16:00"),
        "rating": (4.9, 203),
    },
    {
        "name": "Emma Wilson",
        "email": "emma@yoga.com",
        "phone": "212-555-0104",
        "specialties": ["Yin Yoga", "Restorative Yoga", "Prenatal Yoga"],
        "experience": 6,
        "bio": "Specialized in gentle and therapeutic yoga styles for all levels.",
        "certifications": [
            {"name": "RYT 200", "issuer": "Yoga Alliance", "year": 2017},
            {"name": "Prenatal Yoga", "issuer": "Prenatal Yoga Center", "year": 2018},
        ],
        "window": ("10:00", "18:00"),
        "rating": (4.7, 128),
    },
]

SAMPLE_CLASSES = [
    (
        "Morning Hatha",
        "Gentle morning practice to start your day",
        20, 25, 60, "Hatha", "Beginner",
        [("Monday", "07:00", "08:00"), ("Wednesday", "07:00", "08:00"), ("Friday", "07:00", "08:00")],
    ),
    (
        "Power Vinyasa",
        "Dynamic flow for strength and flexibility",
        25, 30, 75, "Vinyasa", "Intermediate",
        [("Tuesday", "18:00", "19:15"), ("Thursday", "18:00", "19:15")],
    ),
    (
        "Yin & Restore",
        "Deep stretching and relaxation practice",
        20, 25, 90, "Yin", "All Levels",
        [("Monday", "19:00", "20:30"), ("Sunday", "17:00", "18:30")],
    ),
    (
        "Hot Power Flow",
        "Intense flow in heated room",
        30, 35, 90, "Power", "Advanced",
        [("Tuesday", "06:00", "07:30"), ("Thursday", "06:00", "07:30"), ("Saturday", "08:00", "09:30")],
    ),
    (
        "Prenatal Yoga",
        "Safe and supportive practice for expectant mothers",
        15, 30, 60, "Prenatal", "All Levels",
        [("Wednesday", "10:00", "11:00"), ("Saturday", "10:00", "11:00")],
    ),
]

PAYMENT_METHODS = list(models.PaymentMethod)
ATTENDANCE_OUTCOMES = list(models.AttendanceStatus)


def _operating_hours(weekday: tuple[str, str], weekend: tuple[str, str]) -> dict:
    hours = {day: {"open": weekday[0], "close": weekday[1]} for day in WEEKDAYS}
    for day in ("saturday", "sunday"):
        hours[day] = {"open": weekend[0], "close": weekend[1]}
    return hours


def _seed_users(session: Session) -> list[models.User]:
    password_hash = security.get_password_hash("user123")
    users = [
        models.User(
            first_name=first_name,
            last_name=last_name,
            email=email,
            password_hash=password_hash,
            role=models.UserRole.user,
            is_active=True,
        )
        for first_name, last_name, email in SAMPLE_USERS
    ]
    session.add_all(users)
    return users


def _seed_locations(session: Session) -> list[models.Location]:
    locations = []
    for data in SAMPLE_LOCATIONS:
        data = dict(data)
        weekday, weekend = data.pop("hours")
        locations.append(
            models.Location(
                **data,
                status=models.LocationStatus.active,
                operating_hours=_operating_hours(weekday, weekend),
            )
        )
    session.add_all(locations)
    return locations


def _seed_tutors(session: Session) -> list[models.Tutor]:
    tutors = []
    for data in SAMPLE_TUTORS:
        data = dict(data)
        start, end = data.pop("window")
        average, count = data.pop("rating")
        tutors.append(
            models.Tutor(
                **data,
                status=models.TutorStatus.active,
                availability={day: [{"start": start, "end": end}] for day in WEEKDAYS},
                rating=round(average * count, 1),
                total_ratings=count,
            )
        )
    session.add_all(tutors)
    return tutors


def _seed_classes(
    session: Session, tutors: list[models.Tutor], locations: list[models.Location]
) -> list[models.YogaClass]:
    classes = []
    for index, (name, description, capacity, price, duration, category, level, slots) in enumerate(
        SAMPLE_CLASSES
    ):
        yoga_class = models.YogaClass(
            name=name,
            description=description,
            tutor=tutors[index % len(tutors)],
            location=locations[index % len(locations)],
            capacity=capacity,
            price=price,
            duration=duration,
            status=models.ClassStatus.active,
            category=models.ClassCategory(category),
            level=models.ClassLevel(level),
        )
        yoga_class.schedule = [
            models.ScheduleSlot(day_of_week=day, start_time=start, end_time=end)
            for day, start, end in slots
        ]
        classes.append(yoga_class)
    session.add_all(classes)
    return classes


def _seed_history(
    session: Session, users: list[models.User], classes: list[models.YogaClass]
) -> None:
    """Past bookings spread over the last 30 days so reports have data."""

    today = datetime.now(timezone.utc).date()
    for index in range(20):
        user = users[index % len(users)]
        yoga_class = classes[(index * 3) % len(classes)]
        day = today - timedelta(days=1 + (index * 7) % 30)
        rejected = index % 4 == 3
        attendance = ATTENDANCE_OUTCOMES[index % len(ATTENDANCE_OUTCOMES)]
        if rejected:
            status = models.BookingStatus.cancelled
            attendance = models.AttendanceStatus.not_checked
        elif attendance == models.AttendanceStatus.present:
            status = models.BookingStatus.completed
        elif attendance == models.AttendanceStatus.absent:
            status = models.BookingStatus.no_show
        else:
            status = models.BookingStatus.confirmed
        booking_date = datetime.combine(day, time(hour=7 + index % 12), tzinfo=timezone.utc)
        session.add(
            models.Booking(
                user=user,
                yoga_class=yoga_class,
                booking_date=booking_date,
                status=status,
                payment_status=(
                    models.PaymentStatus.refunded if rejected else models.PaymentStatus.paid
                ),
                payment_amount=yoga_class.price,
                payment_method=PAYMENT_METHODS[index % len(PAYMENT_METHODS)],
                payment_date=booking_date - timedelta(days=1),
                attendance_status=attendance,
                refund_amount=yoga_class.price if rejected else None,
                notes="Rejected due to schedule conflict" if rejected else None,
            )
        )


def seed(session: Session) -> None:
    settings = get_settings()
    ensure_admin_exists(session, settings.default_admin_email, settings.default_admin_password)
    if session.query(models.Location).count() == 0:
        users = _seed_users(session)
        locations = _seed_locations(session)
        tutors = _seed_tutors(session)
        classes = _seed_classes(session, tutors, locations)
        session.flush()
        _seed_history(session, users, classes)
        logger.info("Inserted sample users, locations, tutors, classes and bookings")
    session.commit()


if __name__ == "__main__":
    configure_logging(get_settings().log_level)
    Base.metadata.create_all(bind=engine)
    with SessionLocal() as session:
        seed(session)
        print("Seed data created")
