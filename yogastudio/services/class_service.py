import logging

from sqlalchemy import or_, select
from sqlalchemy.orm import Session, selectinload

from ..db import models
from ..db.models.yoga_class import ClassCategory, ClassLevel, ClassStatus
from ..db.schemas.common import check_time, check_weekday, time_to_minutes
from ..db.schemas.yoga_class import ClassCreate, ClassUpdate

logger = logging.getLogger(__name__)

NULLABLE_FIELDS = {"min_age", "max_age"}


class CatalogError(Exception):
    pass


class ClassNotFound(CatalogError):
    pass


def _with_relations(query):
    return query.options(
        selectinload(models.YogaClass.tutor),
        selectinload(models.YogaClass.location),
        selectinload(models.YogaClass.schedule),
    )


def _check_references(db: Session, tutor_id: int | None, location_id: int | None) -> None:
    if tutor_id is not None and db.get(models.Tutor, tutor_id) is None:
        raise CatalogError("Tutor not found")
    if location_id is not None and db.get(models.Location, location_id) is None:
        raise CatalogError("Location not found")


def _build_schedule(slots: list[dict]) -> list[models.ScheduleSlot]:
    return [
        models.ScheduleSlot(
            day_of_week=slot["day_of_week"],
            start_time=slot["start_time"],
            end_time=slot["end_time"],
        )
        for slot in slots
    ]


def create_class(db: Session, data: ClassCreate) -> models.YogaClass:
    _check_references(db, data.tutor_id, data.location_id)
    payload = data.model_dump(exclude={"schedule"})
    yoga_class = models.YogaClass(**payload)
    yoga_class.schedule = _build_schedule(data.model_dump()["schedule"])
    db.add(yoga_class)
    db.commit()
    logger.info("Class created", extra={"class_id": yoga_class.id})
    return get_class(db, yoga_class.id)


def get_class(db: Session, class_id: int) -> models.YogaClass:
    yoga_class = db.scalar(
        _with_relations(select(models.YogaClass).where(models.YogaClass.id == class_id))
    )
    if yoga_class is None:
        raise ClassNotFound("Class not found")
    return yoga_class


def list_classes(
    db: Session,
    *,
    status: ClassStatus | None = None,
    category: ClassCategory | None = None,
    level: ClassLevel | None = None,
    tutor_id: int | None = None,
    location_id: int | None = None,
    search: str | None = None,
) -> list[models.YogaClass]:
    query = select(models.YogaClass)
    if status is not None:
        query = query.where(models.YogaClass.status == status)
    if category is not None:
        query = query.where(models.YogaClass.category == category)
    if level is not None:
        query = query.where(models.YogaClass.level == level)
    if tutor_id is not None:
        query = query.where(models.YogaClass.tutor_id == tutor_id)
    if location_id is not None:
        query = query.where(models.YogaClass.location_id == location_id)
    if search:
        pattern = f"%{search.strip()}%"
        query = query.where(
            or_(
                models.YogaClass.name.ilike(pattern),
                models.YogaClass.description.ilike(pattern),
            )
        )
    query = query.order_by(models.YogaClass.id)
    return list(db.scalars(_with_relations(query)))


def list_active_classes(db: Session) -> list[models.YogaClass]:
    return list_classes(db, status=ClassStatus.active)


def list_by_tutor(db: Session, tutor_id: int) -> list[models.YogaClass]:
    return list_classes(db, tutor_id=tutor_id)


def list_by_location(db: Session, location_id: int) -> list[models.YogaClass]:
    return list_classes(db, location_id=location_id)


def update_class(db: Session, yoga_class: models.YogaClass, data: ClassUpdate) -> models.YogaClass:
    changes = {
        field: value
        for field, value in data.model_dump(exclude_unset=True).items()
        if value is not None or field in NULLABLE_FIELDS
    }
    _check_references(db, changes.get("tutor_id"), changes.get("location_id"))
    min_age = changes.get("min_age", yoga_class.min_age)
    max_age = changes.get("max_age", yoga_class.max_age)
    if min_age is not None and max_age is not None and min_age > max_age:
        raise CatalogError("Minimum age cannot exceed maximum age")
    schedule = changes.pop("schedule", None)
    for field, value in changes.items():
        setattr(yoga_class, field, value)
    if schedule is not None:
        yoga_class.schedule = _build_schedule(schedule)
    db.commit()
    return get_class(db, yoga_class.id)


def delete_class(db: Session, yoga_class: models.YogaClass) -> None:
    class_id = yoga_class.id
    db.delete(yoga_class)
    db.commit()
    logger.info("Class deleted", extra={"class_id": class_id})


def is_available_at(yoga_class: models.YogaClass, day: str, at: str) -> bool:
    """Whether ``at`` (HH:mm) falls inside a schedule slot on weekday ``day``."""

    weekday = check_weekday(day)
    minute = time_to_minutes(check_time(at))
    for slot in yoga_class.schedule:
        if slot.day_of_week.lower() != weekday:
            continue
        if time_to_minutes(slot.start_time) <= minute <= time_to_minutes(slot.end_time):
            return True
    return False
