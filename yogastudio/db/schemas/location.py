from datetime import datetime
from pydantic import BaseModel, Field, field_validator

from ..models.location import LocationStatus
from .common import CamelModel, check_email, check_time, check_weekday


class OpeningHours(BaseModel):
    open: str
    close: str

    @field_validator("open", "close")
    @classmethod
    def valid_time(cls, value: str) -> str:
        return check_time(value)


def _normalize_hours(value: dict[str, OpeningHours] | None) -> dict[str, OpeningHours] | None:
    if value is None:
        return None
    return {check_weekday(day): hours for day, hours in value.items()}


class LocationBase(CamelModel):
    name: str = Field(min_length=1)
    address: str = Field(min_length=1)
    city: str | None = None
    capacity: int = Field(ge=1)
    contact_phone: str = Field(min_length=1)
    contact_email: str
    status: LocationStatus = LocationStatus.active
    operating_hours: dict[str, OpeningHours] = Field(default_factory=dict)
    facilities: list[str] = Field(default_factory=list)
    description: str | None = None

    @field_validator("contact_email")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        return check_email(value)

    @field_validator("operating_hours")
    @classmethod
    def normalize_hours(cls, value):
        return _normalize_hours(value)


class LocationCreate(LocationBase):
    pass


class LocationUpdate(CamelModel):
    name: str | None = None
    address: str | None = None
    city: str | None = None
    capacity: int | None = Field(default=None, ge=1)
    contact_phone: str | None = None
    contact_email: str | None = None
    status: LocationStatus | None = None
    operating_hours: dict[str, OpeningHours] | None = None
    facilities: list[str] | None = None
    description: str | None = None

    @field_validator("contact_email")
    @classmethod
    def normalize_email(cls, value: str | None) -> str | None:
        return check_email(value) if value is not None else None

    @field_validator("operating_hours")
    @classmethod
    def normalize_hours(cls, value):
        return _normalize_hours(value)


class LocationStatusUpdate(BaseModel):
    status: LocationStatus


class LocationSummary(CamelModel):
    id: int
    name: str
    address: str


class Location(LocationBase):
    id: int
    created_at: datetime | None = None
