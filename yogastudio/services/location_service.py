import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..db import models
from ..db.models.location import LocationStatus
from ..db.schemas.location import LocationCreate, LocationUpdate

logger = logging.getLogger(__name__)


class LocationError(Exception):
    pass


class LocationNotFound(LocationError):
    pass


def create_location(db: Session, data: LocationCreate) -> models.Location:
    location = models.Location(**data.model_dump())
    db.add(location)
    db.commit()
    db.refresh(location)
    logger.info("Location created", extra={"location_id": location.id})
    return location


def get_location(db: Session, location_id: int) -> models.Location:
    location = db.get(models.Location, location_id)
    if location is None:
        raise LocationNotFound("Location not found")
    return location


def list_locations(db: Session, *, status: LocationStatus | None = None) -> list[models.Location]:
    query = select(models.Location)
    if status is not None:
        query = query.where(models.Location.status == status)
    return list(db.scalars(query.order_by(models.Location.name)))


def list_by_city(db: Session, city: str) -> list[models.Location]:
    return list(
        db.scalars(
            select(models.Location)
            .where(models.Location.city.ilike(f"%{city.strip()}%"))
            .order_by(models.Location.name)
        )
    )


def update_location(
    db: Session, location: models.Location, data: LocationUpdate
) -> models.Location:
    changes = data.model_dump(exclude_unset=True)
    for field, value in changes.items():
        if value is None and field not in ("city", "description"):
            continue
        setattr(location, field, value)
    db.commit()
    db.refresh(location)
    return location


def update_status(
    db: Session, location: models.Location, status: LocationStatus
) -> models.Location:
    location.status = status
    db.commit()
    db.refresh(location)
    logger.info(
        "Location status changed",
        extra={"location_id": location.id, "status": status.value},
    )
    return location


def delete_location(db: Session, location: models.Location) -> None:
    location_id = location.id
    db.delete(location)
    db.commit()
    logger.info("Location deleted", extra={"location_id": location_id})
