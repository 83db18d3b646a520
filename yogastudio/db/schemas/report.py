from datetime import date
from enum import Enum as PyEnum
from pydantic import BaseModel, model_validator

from .common import CamelModel


class ReportType(str, PyEnum):
    bookings = "bookings"
    revenue = "revenue"
    attendance = "attendance"
    classes = "classes"
    tutors = "tutors"
    locations = "locations"


class ExportFormat(str, PyEnum):
    csv = "csv"
    pdf = "pdf"
    excel = "excel"


class DateRange(BaseModel):
    start_date: date
    end_date: date

    @model_validator(mode="after")
    def ordered(self) -> "DateRange":
        if self.end_date < self.start_date:
            raise ValueError("End date must be after start date")
        return self


class ReportExport(CamelModel):
    type: ReportType
    format: ExportFormat
    start_date: date
    end_date: date

    @model_validator(mode="after")
    def ordered(self) -> "ReportExport":
        if self.end_date < self.start_date:
            raise ValueError("End date must be after start date")
        return self
