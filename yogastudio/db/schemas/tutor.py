from datetime import datetime
from pydantic import BaseModel, Field, field_validator, model_validator

from ..models.tutor import TutorStatus
from .common import CamelModel, check_email, check_time, check_weekday, time_to_minutes


class TimeWindow(BaseModel):
    start: str
    end: str

    @field_validator("start", "end")
    @classmethod
    def valid_time(cls, value: str) -> str:
        return check_time(value)

    @model_validator(mode="after")
    def end_after_start(self) -> "TimeWindow":
        if time_to_minutes(self.end) <= time_to_minutes(self.start):
            raise ValueError("End time must be after start time")
        return self


class Certification(BaseModel):
    name: str
    issuer: str | None = None
    year: int | None = None


def _normalize_availability(
    value: dict[str, list[TimeWindow]] | None,
) -> dict[str, list[TimeWindow]] | None:
    if value is None:
        return None
    return {check_weekday(day): windows for day, windows in value.items()}


class TutorBase(CamelModel):
    name: str = Field(min_length=1)
    email: str
    phone: str = Field(min_length=1)
    specialties: list[str] = Field(min_length=1)
    experience: int = Field(ge=0)
    bio: str | None = None
    status: TutorStatus = TutorStatus.active
    profile_picture: str | None = None
    certifications: list[Certification] = Field(default_factory=list)
    availability: dict[str, list[TimeWindow]] = Field(default_factory=dict)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        return check_email(value)

    @field_validator("availability")
    @classmethod
    def normalize_availability(cls, value):
        return _normalize_availability(value)


class TutorCreate(TutorBase):
    pass


class TutorUpdate(CamelModel):
    name: str | None = None
    email: str | None = None
    phone: str | None = None
    specialties: list[str] | None = Field(default=None, min_length=1)
    experience: int | None = Field(default=None, ge=0)
    bio: str | None = None
    status: TutorStatus | None = None
    profile_picture: str | None = None
    certifications: list[Certification] | None = None
    availability: dict[str, list[TimeWindow]] | None = None

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: str | None) -> str | None:
        return check_email(value) if value is not None else None

    @field_validator("availability")
    @classmethod
    def normalize_availability(cls, value):
        return _normalize_availability(value)


class TutorStatusUpdate(BaseModel):
    status: TutorStatus


class AvailabilityUpdate(BaseModel):
    availability: dict[str, list[TimeWindow]]

    @field_validator("availability")
    @classmethod
    def normalize_availability(cls, value):
        return _normalize_availability(value)


class RatingCreate(BaseModel):
    rating: float = Field(ge=0, le=5)


class TutorSummary(CamelModel):
    id: int
    name: str
    email: str


class Tutor(TutorBase):
    id: int
    rating: float
    total_ratings: int
    average_rating: float
    created_at: datetime | None = None
