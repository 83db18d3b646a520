from datetime import datetime
from pydantic import Field, field_validator, model_validator

from ..models.yoga_class import ClassCategory, ClassLevel, ClassStatus
from .common import CamelModel, check_time, check_weekday, time_to_minutes
from .location import LocationSummary
from .tutor import TutorSummary


class ScheduleSlot(CamelModel):
    day_of_week: str
    start_time: str
    end_time: str

    @field_validator("day_of_week")
    @classmethod
    def normalize_day(cls, value: str) -> str:
        return check_weekday(value).capitalize()

    @field_validator("start_time", "end_time")
    @classmethod
    def valid_time(cls, value: str) -> str:
        return check_time(value)

    @model_validator(mode="after")
    def end_after_start(self) -> "ScheduleSlot":
        if time_to_minutes(self.end_time) <= time_to_minutes(self.start_time):
            raise ValueError("End time must be after start time")
        return self


class ClassBase(CamelModel):
    name: str = Field(min_length=1)
    description: str = Field(min_length=1)
    capacity: int = Field(ge=1)
    price: float = Field(ge=0)
    duration: int = Field(ge=15)
    schedule: list[ScheduleSlot] = Field(default_factory=list)
    status: ClassStatus = ClassStatus.active
    category: ClassCategory
    level: ClassLevel
    requirements: list[str] = Field(default_factory=list)
    equipment: list[str] = Field(default_factory=list)
    min_age: int | None = Field(default=None, ge=0)
    max_age: int | None = Field(default=None, ge=0)

    @field_validator("level", mode="before")
    @classmethod
    def normalize_level(cls, value: object) -> object:
        if isinstance(value, str) and value.strip().lower() == "all":
            return ClassLevel.all_levels
        return value

    @model_validator(mode="after")
    def age_bounds(self):
        if self.min_age is not None and self.max_age is not None and self.min_age > self.max_age:
            raise ValueError("Minimum age cannot exceed maximum age")
        return self


class ClassCreate(ClassBase):
    tutor_id: int = Field(alias="tutor")
    location_id: int = Field(alias="location")


class ClassUpdate(CamelModel):
    name: str | None = None
    description: str | None = None
    tutor_id: int | None = Field(default=None, alias="tutor")
    location_id: int | None = Field(default=None, alias="location")
    capacity: int | None = Field(default=None, ge=1)
    price: float | None = Field(default=None, ge=0)
    duration: int | None = Field(default=None, ge=15)
    schedule: list[ScheduleSlot] | None = None
    status: ClassStatus | None = None
    category: ClassCategory | None = None
    level: ClassLevel | None = None
    requirements: list[str] | None = None
    equipment: list[str] | None = None
    min_age: int | None = Field(default=None, ge=0)
    max_age: int | None = Field(default=None, ge=0)

    @field_validator("level", mode="before")
    @classmethod
    def normalize_level(cls, value: object) -> object:
        if isinstance(value, str) and value.strip().lower() == "all":
            return ClassLevel.all_levels
        return value


class ClassSummary(CamelModel):
    id: int
    name: str
    description: str
    duration: int
    price: float
    capacity: int
    tutor: TutorSummary | None = None
    location: LocationSummary | None = None


class YogaClass(ClassBase):
    id: int
    tutor_id: int | None = None
    location_id: int | None = None
    tutor: TutorSummary | None = None
    location: LocationSummary | None = None
    created_at: datetime | None = None
