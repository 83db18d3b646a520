from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session
from ...api import deps
from ...db.session import get_db
from ...db import models, schemas
from ...db.models.booking import BookingStatus, PaymentStatus
from ...services import booking_service

router = APIRouter(prefix="/bookings", tags=["bookings"])


def _get_booking_or_404(db: Session, booking_id: int) -> models.Booking:
    try:
        return booking_service.get_booking(db, booking_id)
    except booking_service.BookingNotFound as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc


def _ensure_owner_or_admin(booking: models.Booking, user: models.User) -> None:
    if booking.user_id != user.id and not deps.is_admin(user):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")


def _reload(db: Session, booking: models.Booking) -> models.Booking:
    return booking_service.get_booking(db, booking.id)


@router.get("", response_model=schemas.Envelope[list[schemas.Booking]])
def list_bookings(
    status_filter: BookingStatus | None = Query(default=None, alias="status"),
    payment_status: PaymentStatus | None = Query(default=None, alias="paymentStatus"),
    start_date: date | None = Query(default=None, alias="startDate"),
    end_date: date | None = Query(default=None, alias="endDate"),
    user: int | None = None,
    class_id: int | None = Query(default=None, alias="class"),
    db: Session = Depends(get_db),
    _: models.User = Depends(deps.require_roles("admin")),
):
    filters = schemas.BookingFilter(
        status=status_filter,
        payment_status=payment_status,
        start_date=start_date,
        end_date=end_date,
        user_id=user,
        class_id=class_id,
    )
    return {"success": True, "data": booking_service.list_bookings(db, filters)}


@router.post("", response_model=schemas.Envelope[schemas.Booking], status_code=status.HTTP_201_CREATED)
def create_booking(
    payload: schemas.BookingCreate,
    db: Session = Depends(get_db),
    current: models.User = Depends(deps.get_current_user),
):
    user = current
    if payload.user_id is not None and payload.user_id != current.id:
        if not deps.is_admin(current):
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")
        user = db.get(models.User, payload.user_id)
        if user is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    try:
        booking = booking_service.create_booking(
            db,
            user,
            payload.class_id,
            payload.booking_date,
            payload.payment_method,
            notes=payload.notes,
        )
    except booking_service.BookingError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return {"success": True, "data": _reload(db, booking), "message": "Booking created"}


@router.get("/user/bookings", response_model=schemas.Envelope[list[schemas.Booking]])
def list_my_bookings(
    db: Session = Depends(get_db),
    current: models.User = Depends(deps.get_current_user),
):
    return {"success": True, "data": booking_service.list_user_bookings(db, current.id)}


@router.get("/class/{class_id}", response_model=schemas.Envelope[list[schemas.Booking]])
def list_class_bookings(
    class_id: int,
    day: date | None = Query(default=None, alias="date"),
    db: Session = Depends(get_db),
    _: models.User = Depends(deps.require_roles("admin", "tutor")),
):
    return {"success": True, "data": booking_service.list_class_bookings(db, class_id, day)}


@router.get("/{booking_id}", response_model=schemas.Envelope[schemas.Booking])
def get_booking(
    booking_id: int,
    db: Session = Depends(get_db),
    current: models.User = Depends(deps.get_current_user),
):
    booking = _get_booking_or_404(db, booking_id)
    _ensure_owner_or_admin(booking, current)
    return {"success": True, "data": booking}


@router.put("/{booking_id}", response_model=schemas.Envelope[schemas.Booking])
def update_booking(
    booking_id: int,
    payload: schemas.BookingUpdate,
    db: Session = Depends(get_db),
    _: models.User = Depends(deps.require_roles("admin")),
):
    booking = _get_booking_or_404(db, booking_id)
    booking = booking_service.update_booking(db, booking, payload.model_dump(exclude_unset=True))
    return {"success": True, "data": _reload(db, booking), "message": "Booking updated"}


@router.patch("/{booking_id}/status", response_model=schemas.Envelope[schemas.Booking])
def update_booking_status(
    booking_id: int,
    payload: schemas.BookingStatusUpdate,
    db: Session = Depends(get_db),
    current: models.User = Depends(deps.get_current_user),
):
    booking = _get_booking_or_404(db, booking_id)
    _ensure_owner_or_admin(booking, current)
    if payload.status != BookingStatus.cancelled.value and not deps.is_admin(current):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")
    try:
        booking = booking_service.update_booking_status(
            db, booking, payload.status, cancellation_reason=payload.cancellation_reason
        )
    except booking_service.BookingError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return {"success": True, "data": _reload(db, booking)}


@router.patch("/{booking_id}/attendance", response_model=schemas.Envelope[schemas.Booking])
def mark_attendance(
    booking_id: int,
    payload: schemas.AttendanceUpdate,
    db: Session = Depends(get_db),
    _: models.User = Depends(deps.require_roles("admin", "tutor")),
):
    booking = _get_booking_or_404(db, booking_id)
    try:
        booking = booking_service.mark_attendance(db, booking, payload.attendance_status)
    except booking_service.BookingError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return {"success": True, "data": _reload(db, booking)}


@router.delete("/{booking_id}", response_model=schemas.Message)
def delete_booking(
    booking_id: int,
    db: Session = Depends(get_db),
    _: models.User = Depends(deps.require_roles("admin")),
):
    booking_service.delete_booking(db, _get_booking_or_404(db, booking_id))
    return {"success": True, "message": "Booking deleted"}
