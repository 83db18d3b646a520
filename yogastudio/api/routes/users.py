from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from ...api import deps
from ...db.session import get_db
from ...db import models, schemas
from ...db.models.user import UserRole
from ...services import user_service

router = APIRouter(prefix="/users", tags=["users"])


def _get_user_or_404(db: Session, user_id: int) -> models.User:
    try:
        return user_service.get_user(db, user_id)
    except user_service.UserNotFound as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc


@router.get("", response_model=schemas.Envelope[list[schemas.User]])
def list_users(
    role: UserRole | None = None,
    db: Session = Depends(get_db),
    _: models.User = Depends(deps.require_roles("admin")),
):
    return {"success": True, "data": user_service.list_users(db, role=role)}


@router.post("", response_model=schemas.Envelope[schemas.User], status_code=status.HTTP_201_CREATED)
def create_user(
    payload: schemas.UserCreate,
    db: Session = Depends(get_db),
    _: models.User = Depends(deps.require_roles("admin")),
):
    try:
        user = user_service.create_user(db, payload)
    except user_service.UserError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return {"success": True, "data": user, "message": "User created"}


@router.get("/{user_id}", response_model=schemas.Envelope[schemas.User])
def get_user(
    user_id: int,
    db: Session = Depends(get_db),
    _: models.User = Depends(deps.require_roles("admin")),
):
    return {"success": True, "data": _get_user_or_404(db, user_id)}


@router.put("/{user_id}", response_model=schemas.Envelope[schemas.User])
def update_user(
    user_id: int,
    payload: schemas.UserUpdate,
    db: Session = Depends(get_db),
    _: models.User = Depends(deps.require_roles("admin")),
):
    user = _get_user_or_404(db, user_id)
    try:
        user = user_service.update_user(db, user, payload)
    except user_service.UserError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return {"success": True, "data": user, "message": "User updated"}


@router.delete("/{user_id}", response_model=schemas.Message)
def delete_user(
    user_id: int,
    db: Session = Depends(get_db),
    current: models.User = Depends(deps.require_roles("admin")),
):
    user = _get_user_or_404(db, user_id)
    if user.id == current.id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="You cannot delete yourself")
    user_service.delete_user(db, user)
    return {"success": True, "message": "User deleted"}
