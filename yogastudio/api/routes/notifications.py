from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from ...api import deps
from ...db.session import get_db
from ...db import models, schemas
from ...services import notification_service

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("", response_model=schemas.Envelope[list[schemas.Notification]])
def list_notifications(
    unread: bool = False,
    db: Session = Depends(get_db),
    current: models.User = Depends(deps.get_current_user),
):
    notifications = notification_service.list_notifications(db, current.id, unread_only=unread)
    return {"success": True, "data": notifications}


@router.post(
    "", response_model=schemas.Envelope[schemas.Notification], status_code=status.HTTP_201_CREATED
)
def create_notification(
    payload: schemas.NotificationCreate,
    db: Session = Depends(get_db),
    current: models.User = Depends(deps.get_current_user),
):
    recipient_id = payload.recipient_id or current.id
    if recipient_id != current.id:
        if not deps.is_admin(current):
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")
        if db.get(models.User, recipient_id) is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    notification = notification_service.create_notification(
        db,
        recipient_id=recipient_id,
        title=payload.title,
        message=payload.message,
        type=payload.type,
        link=payload.link,
    )
    return {"success": True, "data": notification}


@router.patch("/read-all", response_model=schemas.Message)
def mark_all_as_read(
    db: Session = Depends(get_db),
    current: models.User = Depends(deps.get_current_user),
):
    updated = notification_service.mark_all_as_read(db, current.id)
    return {"success": True, "message": f"{updated} notifications marked as read"}


@router.patch("/{notification_id}/read", response_model=schemas.Envelope[schemas.Notification])
def mark_as_read(
    notification_id: int,
    db: Session = Depends(get_db),
    current: models.User = Depends(deps.get_current_user),
):
    try:
        notification = notification_service.mark_as_read(db, current.id, notification_id)
    except notification_service.NotificationNotFound as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return {"success": True, "data": notification}


@router.delete("/{notification_id}", response_model=schemas.Message)
def delete_notification(
    notification_id: int,
    db: Session = Depends(get_db),
    current: models.User = Depends(deps.get_current_user),
):
    try:
        notification_service.delete_notification(db, current.id, notification_id)
    except notification_service.NotificationNotFound as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return {"success": True, "message": "Notification deleted"}
