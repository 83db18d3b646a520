import os

os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")

from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from yogastudio.api import deps
from yogastudio.core import security
from yogastudio.db import models
from yogastudio.db.session import Base, get_db
from yogastudio.main import app


@pytest.fixture()
def db_session():
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture()
def make_user(db_session):
    counter = {"value": 0}

    def factory(role=models.UserRole.user, password=None, **fields):
        counter["value"] += 1
        user = models.User(
            first_name=fields.pop("first_name", "Test"),
            last_name=fields.pop("last_name", f"User{counter['value']}"),
            email=fields.pop("email", f"user{counter['value']}@example.com"),
            password_hash=security.get_password_hash(password) if password else None,
            role=role,
            is_active=fields.pop("is_active", True),
            **fields,
        )
        db_session.add(user)
        db_session.commit()
        return user

    return factory


@pytest.fixture()
def make_tutor(db_session):
    counter = {"value": 0}

    def factory(**fields):
        counter["value"] += 1
        tutor = models.Tutor(
            name=fields.pop("name", f"Tutor {counter['value']}"),
            email=fields.pop("email", f"tutor{counter['value']}@yoga.com"),
            phone=fields.pop("phone", "555-0100"),
            specialties=fields.pop("specialties", ["Hatha Yoga"]),
            experience=fields.pop("experience", 5),
            status=fields.pop("status", models.TutorStatus.active),
            availability=fields.pop("availability", {}),
            rating=fields.pop("rating", 0),
            total_ratings=fields.pop("total_ratings", 0),
            **fields,
        )
        db_session.add(tutor)
        db_session.commit()
        return tutor

    return factory


@pytest.fixture()
def make_location(db_session):
    counter = {"value": 0}

    def factory(**fields):
        counter["value"] += 1
        location = models.Location(
            name=fields.pop("name", f"Studio {counter['value']}"),
            address=fields.pop("address", "1 Main St"),
            city=fields.pop("city", "New York"),
            capacity=fields.pop("capacity", 30),
            contact_phone=fields.pop("contact_phone", "555-0200"),
            contact_email=fields.pop("contact_email", "studio@yoga.com"),
            status=fields.pop("status", models.LocationStatus.active),
            **fields,
        )
        db_session.add(location)
        db_session.commit()
        return location

    return factory


@pytest.fixture()
def make_class(db_session):
    counter = {"value": 0}

    def factory(tutor=None, location=None, **fields):
        counter["value"] += 1
        yoga_class = models.YogaClass(
            name=fields.pop("name", f"Class {counter['value']}"),
            description=fields.pop("description", "Gentle practice"),
            tutor=tutor,
            location=location,
            capacity=fields.pop("capacity", 10),
            price=fields.pop("price", 25),
            duration=fields.pop("duration", 60),
            status=fields.pop("status", models.ClassStatus.active),
            category=fields.pop("category", models.ClassCategory.hatha),
            level=fields.pop("level", models.ClassLevel.beginner),
            **fields,
        )
        db_session.add(yoga_class)
        db_session.commit()
        return yoga_class

    return factory


@pytest.fixture()
def make_booking(db_session):
    """Insert a booking row directly, bypassing the booking rules."""

    def factory(user, yoga_class, booking_date, **fields):
        booking = models.Booking(
            user_id=user.id,
            class_id=yoga_class.id,
            booking_date=booking_date,
            status=fields.pop("status", models.BookingStatus.confirmed),
            payment_status=fields.pop("payment_status", models.PaymentStatus.pending),
            payment_amount=fields.pop("payment_amount", yoga_class.price),
            payment_method=fields.pop("payment_method", models.PaymentMethod.cash),
            attendance_status=fields.pop("attendance_status", models.AttendanceStatus.not_checked),
            **fields,
        )
        db_session.add(booking)
        db_session.commit()
        return booking

    return factory


@pytest.fixture()
def future():
    def at(**delta):
        return datetime.now(timezone.utc) + timedelta(**delta)

    return at


@pytest.fixture()
def api_client(db_session):
    """TestClient sharing ``db_session``; ``client.act_as(user)`` picks the caller."""

    state = {"user": None}

    def override_get_db():
        yield db_session

    def override_get_current_user():
        if state["user"] is None:
            raise AssertionError("call client.act_as(user) first")
        return state["user"]

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[deps.get_current_user] = override_get_current_user

    client = TestClient(app)
    client.act_as = lambda user: state.update(user=user)
    try:
        yield client
    finally:
        app.dependency_overrides.clear()
