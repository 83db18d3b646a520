from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session
from ...api import deps
from ...db.session import get_db
from ...db import models, schemas
from ...db.models.location import LocationStatus
from ...services import location_service

router = APIRouter(prefix="/locations", tags=["locations"])


def _get_location_or_404(db: Session, location_id: int) -> models.Location:
    try:
        return location_service.get_location(db, location_id)
    except location_service.LocationNotFound as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc


@router.get("", response_model=schemas.Envelope[list[schemas.Location]])
def list_locations(
    status_filter: LocationStatus | None = Query(default=None, alias="status"),
    db: Session = Depends(get_db),
    _: models.User = Depends(deps.get_current_user),
):
    return {"success": True, "data": location_service.list_locations(db, status=status_filter)}


@router.get("/city/{city}", response_model=schemas.Envelope[list[schemas.Location]])
def list_locations_by_city(
    city: str,
    db: Session = Depends(get_db),
    _: models.User = Depends(deps.get_current_user),
):
    return {"success": True, "data": location_service.list_by_city(db, city)}


@router.post("", response_model=schemas.Envelope[schemas.Location], status_code=status.HTTP_201_CREATED)
def create_location(
    payload: schemas.LocationCreate,
    db: Session = Depends(get_db),
    _: models.User = Depends(deps.require_roles("admin")),
):
    location = location_service.create_location(db, payload)
    return {"success": True, "data": location, "message": "Location created"}


@router.get("/{location_id}", response_model=schemas.Envelope[schemas.Location])
def get_location(
    location_id: int,
    db: Session = Depends(get_db),
    _: models.User = Depends(deps.get_current_user),
):
    return {"success": True, "data": _get_location_or_404(db, location_id)}


@router.put("/{location_id}", response_model=schemas.Envelope[schemas.Location])
def update_location(
    location_id: int,
    payload: schemas.LocationUpdate,
    db: Session = Depends(get_db),
    _: models.User = Depends(deps.require_roles("admin")),
):
    location = location_service.update_location(db, _get_location_or_404(db, location_id), payload)
    return {"success": True, "data": location, "message": "Location updated"}


@router.patch("/{location_id}/status", response_model=schemas.Envelope[schemas.Location])
def update_location_status(
    location_id: int,
    payload: schemas.LocationStatusUpdate,
    db: Session = Depends(get_db),
    _: models.User = Depends(deps.require_roles("admin")),
):
    location = location_service.update_status(
        db, _get_location_or_404(db, location_id), payload.status
    )
    return {"success": True, "data": location}


@router.delete("/{location_id}", response_model=schemas.Message)
def delete_location(
    location_id: int,
    db: Session = Depends(get_db),
    _: models.User = Depends(deps.require_roles("admin")),
):
    location_service.delete_location(db, _get_location_or_404(db, location_id))
    return {"success": True, "message": "Location deleted"}
