import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..core import security
from ..db import models
from ..db.models.user import UserRole
from ..db.schemas.user import PasswordChange, ProfileUpdate, UserCreate, UserRegister, UserUpdate

logger = logging.getLogger(__name__)


class UserError(Exception):
    pass


class UserNotFound(UserError):
    pass


def get_by_email(db: Session, email: str) -> models.User | None:
    return db.scalar(select(models.User).where(models.User.email == email.strip().lower()))


def _ensure_email_free(db: Session, email: str, *, exclude_id: int | None = None) -> None:
    existing = get_by_email(db, email)
    if existing is not None and existing.id != exclude_id:
        raise UserError("User with this email already exists")


def register_user(db: Session, data: UserRegister) -> models.User:
    _ensure_email_free(db, data.email)
    user = models.User(
        first_name=data.first_name,
        last_name=data.last_name,
        email=data.email,
        phone_number=data.phone_number,
        password_hash=security.get_password_hash(data.password),
        role=UserRole.user,
        is_active=True,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("User registered", extra={"user_id": user.id})
    return user


def create_user(db: Session, data: UserCreate) -> models.User:
    """Create a user from the admin panel; without a password the user is contact-only."""

    _ensure_email_free(db, data.email)
    user = models.User(
        first_name=data.first_name,
        last_name=data.last_name,
        email=data.email,
        phone_number=data.phone_number,
        password_hash=security.get_password_hash(data.password) if data.password else None,
        role=data.role,
        is_active=True,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("User created", extra={"user_id": user.id, "role": user.role.value})
    return user


def get_user(db: Session, user_id: int) -> models.User:
    user = db.get(models.User, user_id)
    if user is None:
        raise UserNotFound("User not found")
    return user


def list_users(db: Session, *, role: UserRole | None = None) -> list[models.User]:
    query = select(models.User)
    if role is not None:
        query = query.where(models.User.role == role)
    return list(db.scalars(query.order_by(models.User.id)))


def update_user(db: Session, user: models.User, data: UserUpdate) -> models.User:
    changes = {
        field: value
        for field, value in data.model_dump(exclude_unset=True).items()
        if value is not None or field in ("phone_number", "bio")
    }
    if "email" in changes:
        _ensure_email_free(db, changes["email"], exclude_id=user.id)
    for field, value in changes.items():
        setattr(user, field, value)
    db.commit()
    db.refresh(user)
    return user


def update_profile(db: Session, user: models.User, data: ProfileUpdate) -> models.User:
    for field, value in data.model_dump(exclude_unset=True).items():
        if value is None and field in ("first_name", "last_name"):
            continue
        setattr(user, field, value)
    db.commit()
    db.refresh(user)
    return user


def change_password(db: Session, user: models.User, data: PasswordChange) -> None:
    if not security.verify_password(data.current_password, user.password_hash):
        raise UserError("Current password is incorrect")
    user.password_hash = security.get_password_hash(data.new_password)
    db.commit()
    logger.info("Password changed", extra={"user_id": user.id})


def delete_user(db: Session, user: models.User) -> None:
    user_id = user.id
    db.delete(user)
    db.commit()
    logger.info("User deleted", extra={"user_id": user_id})
