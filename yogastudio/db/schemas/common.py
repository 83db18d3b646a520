from __future__ import annotations

import re
from typing import Generic, TypeVar

from pydantic import BaseModel
from pydantic.alias_generators import to_camel

DataT = TypeVar("DataT")

TIME_RE = re.compile(r"^([0-1]?[0-9]|2[0-3]):[0-5][0-9]$")
EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
WEEKDAYS = (
    "monday",
    "tuesday",
    "wednesday",
    "thursday",
    "friday",
    "saturday",
    "sunday",
)


class CamelModel(BaseModel):
    """Snake_case attributes, camelCase on the wire."""

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True


class Envelope(BaseModel, Generic[DataT]):
    success: bool = True
    data: DataT | None = None
    message: str | None = None


class Message(BaseModel):
    success: bool = True
    message: str


def check_time(value: str) -> str:
    value = value.strip()
    if not TIME_RE.match(value):
        raise ValueError("Please enter a valid time (HH:mm)")
    hours, minutes = value.split(":")
    return f"{int(hours):02d}:{minutes}"


def check_email(value: str) -> str:
    value = value.strip().lower()
    if not EMAIL_RE.match(value):
        raise ValueError("Please enter a valid email")
    return value


def check_weekday(value: str) -> str:
    normalized = value.strip().lower()
    if normalized not in WEEKDAYS:
        raise ValueError("Invalid day of week")
    return normalized


def time_to_minutes(value: str) -> int:
    hours, minutes = value.split(":")
    return int(hours) * 60 + int(minutes)
