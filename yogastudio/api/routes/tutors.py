from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel
from sqlalchemy.orm import Session
from ...api import deps
from ...db.session import get_db
from ...db import models, schemas
from ...db.models.tutor import TutorStatus
from ...db.schemas.tutor import TimeWindow
from ...services import tutor_service

router = APIRouter(prefix="/tutors", tags=["tutors"])


class TutorSchedule(BaseModel):
    availability: dict[str, list[TimeWindow]]
    classes: list[schemas.YogaClass]


def _get_tutor_or_404(db: Session, tutor_id: int) -> models.Tutor:
    try:
        return tutor_service.get_tutor(db, tutor_id)
    except tutor_service.TutorNotFound as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc


@router.get("", response_model=schemas.Envelope[list[schemas.Tutor]])
def list_tutors(
    status_filter: TutorStatus | None = Query(default=None, alias="status"),
    specialty: str | None = None,
    search: str | None = None,
    db: Session = Depends(get_db),
    _: models.User = Depends(deps.get_current_user),
):
    tutors = tutor_service.list_tutors(db, status=status_filter, specialty=specialty, search=search)
    return {"success": True, "data": tutors}


@router.get("/available/{day}", response_model=schemas.Envelope[list[schemas.Tutor]])
def list_available_tutors(
    day: date,
    db: Session = Depends(get_db),
    _: models.User = Depends(deps.get_current_user),
):
    return {"success": True, "data": tutor_service.available_on(db, day)}


@router.post("", response_model=schemas.Envelope[schemas.Tutor], status_code=status.HTTP_201_CREATED)
def create_tutor(
    payload: schemas.TutorCreate,
    db: Session = Depends(get_db),
    _: models.User = Depends(deps.require_roles("admin")),
):
    try:
        tutor = tutor_service.create_tutor(db, payload)
    except tutor_service.TutorError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return {"success": True, "data": tutor, "message": "Tutor created"}


@router.get("/{tutor_id}", response_model=schemas.Envelope[schemas.Tutor])
def get_tutor(
    tutor_id: int,
    db: Session = Depends(get_db),
    _: models.User = Depends(deps.get_current_user),
):
    return {"success": True, "data": _get_tutor_or_404(db, tutor_id)}


@router.put("/{tutor_id}", response_model=schemas.Envelope[schemas.Tutor])
def update_tutor(
    tutor_id: int,
    payload: schemas.TutorUpdate,
    db: Session = Depends(get_db),
    _: models.User = Depends(deps.require_roles("admin")),
):
    tutor = _get_tutor_or_404(db, tutor_id)
    try:
        tutor = tutor_service.update_tutor(db, tutor, payload)
    except tutor_service.TutorError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return {"success": True, "data": tutor, "message": "Tutor updated"}


@router.delete("/{tutor_id}", response_model=schemas.Message)
def delete_tutor(
    tutor_id: int,
    db: Session = Depends(get_db),
    _: models.User = Depends(deps.require_roles("admin")),
):
    tutor_service.delete_tutor(db, _get_tutor_or_404(db, tutor_id))
    return {"success": True, "message": "Tutor and associated classes deleted"}


@router.patch("/{tutor_id}/status", response_model=schemas.Envelope[schemas.Tutor])
def update_tutor_status(
    tutor_id: int,
    payload: schemas.TutorStatusUpdate,
    db: Session = Depends(get_db),
    _: models.User = Depends(deps.require_roles("admin")),
):
    tutor = tutor_service.update_status(db, _get_tutor_or_404(db, tutor_id), payload.status)
    return {"success": True, "data": tutor}


@router.get("/{tutor_id}/schedule", response_model=schemas.Envelope[TutorSchedule])
def get_tutor_schedule(
    tutor_id: int,
    db: Session = Depends(get_db),
    _: models.User = Depends(deps.get_current_user),
):
    schedule = tutor_service.get_schedule(db, _get_tutor_or_404(db, tutor_id))
    return {"success": True, "data": schedule}


@router.post("/{tutor_id}/availability", response_model=schemas.Envelope[schemas.Tutor])
def update_tutor_availability(
    tutor_id: int,
    payload: schemas.AvailabilityUpdate,
    db: Session = Depends(get_db),
    _: models.User = Depends(deps.require_roles("admin", "tutor")),
):
    tutor = _get_tutor_or_404(db, tutor_id)
    availability = payload.model_dump()["availability"]
    return {"success": True, "data": tutor_service.update_availability(db, tutor, availability)}


@router.post("/{tutor_id}/rating", response_model=schemas.Envelope[schemas.Tutor])
def rate_tutor(
    tutor_id: int,
    payload: schemas.RatingCreate,
    db: Session = Depends(get_db),
    _: models.User = Depends(deps.get_current_user),
):
    tutor = _get_tutor_or_404(db, tutor_id)
    try:
        tutor = tutor_service.add_rating(db, tutor, payload.rating)
    except tutor_service.TutorError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return {"success": True, "data": tutor}
