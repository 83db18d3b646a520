import logging
from datetime import date
from typing import Any

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from ..db import models
from ..db.models.tutor import TutorStatus
from ..db.schemas.common import WEEKDAYS, check_time, check_weekday, time_to_minutes
from ..db.schemas.tutor import TutorCreate, TutorUpdate

logger = logging.getLogger(__name__)


class TutorError(Exception):
    pass


class TutorNotFound(TutorError):
    pass


def _email_taken(db: Session, email: str, *, exclude_id: int | None = None) -> bool:
    query = select(models.Tutor.id).where(func.lower(models.Tutor.email) == email.lower())
    if exclude_id is not None:
        query = query.where(models.Tutor.id != exclude_id)
    return db.scalar(query.limit(1)) is not None


def create_tutor(db: Session, data: TutorCreate) -> models.Tutor:
    if _email_taken(db, data.email):
        raise TutorError("Tutor with this email already exists")
    tutor = models.Tutor(**data.model_dump(), rating=0, total_ratings=0)
    db.add(tutor)
    db.commit()
    db.refresh(tutor)
    logger.info("Tutor created", extra={"tutor_id": tutor.id})
    return tutor


def get_tutor(db: Session, tutor_id: int) -> models.Tutor:
    tutor = db.get(models.Tutor, tutor_id)
    if tutor is None:
        raise TutorNotFound("Tutor not found")
    return tutor


def list_tutors(
    db: Session,
    *,
    status: TutorStatus | None = None,
    specialty: str | None = None,
    search: str | None = None,
) -> list[models.Tutor]:
    query = select(models.Tutor)
    if status is not None:
        query = query.where(models.Tutor.status == status)
    if search:
        pattern = f"%{search.strip()}%"
        query = query.where(
            or_(models.Tutor.name.ilike(pattern), models.Tutor.email.ilike(pattern))
        )
    tutors = list(db.scalars(query.order_by(models.Tutor.name)))
    if specialty:
        # specialties is a JSON list; match in Python so SQLite and PostgreSQL agree
        wanted = specialty.strip().lower()
        tutors = [
            tutor
            for tutor in tutors
            if any(item.lower() == wanted for item in tutor.specialties or [])
        ]
    return tutors


def update_tutor(db: Session, tutor: models.Tutor, data: TutorUpdate) -> models.Tutor:
    changes = {
        field: value
        for field, value in data.model_dump(exclude_unset=True).items()
        if value is not None
    }
    if "email" in changes and _email_taken(db, changes["email"], exclude_id=tutor.id):
        raise TutorError("Tutor with this email already exists")
    for field, value in changes.items():
        setattr(tutor, field, value)
    db.commit()
    db.refresh(tutor)
    return tutor


def update_status(db: Session, tutor: models.Tutor, status: TutorStatus) -> models.Tutor:
    tutor.status = status
    db.commit()
    db.refresh(tutor)
    logger.info("Tutor status changed", extra={"tutor_id": tutor.id, "status": status.value})
    return tutor


def update_availability(
    db: Session, tutor: models.Tutor, availability: dict[str, list[dict[str, str]]]
) -> models.Tutor:
    tutor.availability = availability
    db.commit()
    db.refresh(tutor)
    return tutor


def get_schedule(db: Session, tutor: models.Tutor) -> dict[str, Any]:
    classes = list(
        db.scalars(
            select(models.YogaClass)
            .where(models.YogaClass.tutor_id == tutor.id)
            .order_by(models.YogaClass.id)
        )
    )
    return {"availability": tutor.availability or {}, "classes": classes}


def available_on(db: Session, day: date) -> list[models.Tutor]:
    weekday = WEEKDAYS[day.weekday()]
    tutors = db.scalars(
        select(models.Tutor)
        .where(models.Tutor.status == TutorStatus.active)
        .order_by(models.Tutor.name)
    )
    return [tutor for tutor in tutors if (tutor.availability or {}).get(weekday)]


def add_rating(db: Session, tutor: models.Tutor, value: float) -> models.Tutor:
    if not 0 <= value <= 5:
        raise TutorError("Rating must be between 0 and 5")
    tutor.rating = (tutor.rating or 0) + value
    tutor.total_ratings = (tutor.total_ratings or 0) + 1
    db.commit()
    db.refresh(tutor)
    return tutor


def is_available(tutor: models.Tutor, day: str, at: str) -> bool:
    windows = (tutor.availability or {}).get(check_weekday(day), [])
    minute = time_to_minutes(check_time(at))
    return any(
        time_to_minutes(window["start"]) <= minute <= time_to_minutes(window["end"])
        for window in windows
    )


def delete_tutor(db: Session, tutor: models.Tutor) -> None:
    tutor_id = tutor.id
    for yoga_class in list(tutor.classes):
        db.delete(yoga_class)
    db.delete(tutor)
    db.commit()
    logger.info("Tutor deleted", extra={"tutor_id": tutor_id})
