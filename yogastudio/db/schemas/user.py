from datetime import datetime
from pydantic import Field, field_validator

from ..models.user import UserRole
from .common import CamelModel, check_email


class UserBase(CamelModel):
    first_name: str = Field(min_length=1)
    last_name: str = Field(min_length=1)
    email: str
    phone_number: str | None = None

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        return check_email(value)

    @field_validator("first_name", "last_name")
    @classmethod
    def strip_names(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Name cannot be empty")
        return value


class UserCreate(UserBase):
    role: UserRole = UserRole.user
    password: str | None = Field(default=None, min_length=6)


class UserRegister(UserBase):
    password: str = Field(min_length=6)


class UserUpdate(CamelModel):
    first_name: str | None = None
    last_name: str | None = None
    email: str | None = None
    phone_number: str | None = None
    role: UserRole | None = None
    is_active: bool | None = None
    bio: str | None = None

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: str | None) -> str | None:
        return check_email(value) if value is not None else None


class ProfileUpdate(CamelModel):
    first_name: str | None = None
    last_name: str | None = None
    phone_number: str | None = None
    bio: str | None = None


class PasswordChange(CamelModel):
    current_password: str = Field(min_length=1)
    new_password: str = Field(min_length=6)


class UserSummary(CamelModel):
    id: int
    first_name: str
    last_name: str
    email: str


class User(UserBase):
    id: int
    role: UserRole
    is_active: bool
    bio: str | None = None
    created_at: datetime | None = None
