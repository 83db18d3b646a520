from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session
from ...api import deps
from ...db.session import get_db
from ...db import models, schemas
from ...db.models.yoga_class import ClassCategory, ClassLevel, ClassStatus
from ...services import class_service

router = APIRouter(prefix="/classes", tags=["classes"])


def _get_class_or_404(db: Session, class_id: int) -> models.YogaClass:
    try:
        return class_service.get_class(db, class_id)
    except class_service.ClassNotFound as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc


@router.get("", response_model=schemas.Envelope[list[schemas.YogaClass]])
def list_classes(
    status_filter: ClassStatus | None = Query(default=None, alias="status"),
    category: ClassCategory | None = None,
    level: ClassLevel | None = None,
    tutor: int | None = None,
    location: int | None = None,
    search: str | None = None,
    db: Session = Depends(get_db),
    _: models.User = Depends(deps.get_current_user),
):
    classes = class_service.list_classes(
        db,
        status=status_filter,
        category=category,
        level=level,
        tutor_id=tutor,
        location_id=location,
        search=search,
    )
    return {"success": True, "data": classes}


@router.get("/active", response_model=schemas.Envelope[list[schemas.YogaClass]])
def list_active_classes(db: Session = Depends(get_db)):
    return {"success": True, "data": class_service.list_active_classes(db)}


@router.get("/tutor/{tutor_id}", response_model=schemas.Envelope[list[schemas.YogaClass]])
def list_tutor_classes(
    tutor_id: int,
    db: Session = Depends(get_db),
    _: models.User = Depends(deps.get_current_user),
):
    return {"success": True, "data": class_service.list_by_tutor(db, tutor_id)}


@router.get("/location/{location_id}", response_model=schemas.Envelope[list[schemas.YogaClass]])
def list_location_classes(
    location_id: int,
    db: Session = Depends(get_db),
    _: models.User = Depends(deps.get_current_user),
):
    return {"success": True, "data": class_service.list_by_location(db, location_id)}


@router.post("", response_model=schemas.Envelope[schemas.YogaClass], status_code=status.HTTP_201_CREATED)
def create_class(
    payload: schemas.ClassCreate,
    db: Session = Depends(get_db),
    _: models.User = Depends(deps.require_roles("admin")),
):
    try:
        yoga_class = class_service.create_class(db, payload)
    except class_service.CatalogError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return {"success": True, "data": yoga_class, "message": "Class created"}


@router.get("/{class_id}", response_model=schemas.Envelope[schemas.YogaClass])
def get_class(
    class_id: int,
    db: Session = Depends(get_db),
    _: models.User = Depends(deps.get_current_user),
):
    return {"success": True, "data": _get_class_or_404(db, class_id)}


@router.put("/{class_id}", response_model=schemas.Envelope[schemas.YogaClass])
def update_class(
    class_id: int,
    payload: schemas.ClassUpdate,
    db: Session = Depends(get_db),
    _: models.User = Depends(deps.require_roles("admin")),
):
    yoga_class = _get_class_or_404(db, class_id)
    try:
        yoga_class = class_service.update_class(db, yoga_class, payload)
    except class_service.CatalogError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return {"success": True, "data": yoga_class, "message": "Class updated"}


@router.delete("/{class_id}", response_model=schemas.Message)
def delete_class(
    class_id: int,
    db: Session = Depends(get_db),
    _: models.User = Depends(deps.require_roles("admin")),
):
    class_service.delete_class(db, _get_class_or_404(db, class_id))
    return {"success": True, "message": "Class deleted"}
