"""Work-calendar Pydantic v2 schemas."""

from __future__ import annotations

import datetime as dt
import uuid
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from leavedesk.common.constants import HolidayType


# ═════════════════════════════════════════════════════════════════════
# Public holidays
# ═════════════════════════════════════════════════════════════════════


class HolidayCreate(BaseModel):
    date: dt.date
    name: str = Field(..., min_length=1, max_length=200)
    holiday_type: HolidayType = HolidayType.public
    company_id: Optional[uuid.UUID] = Field(
        default=None, description="Leave empty for a holiday shared by all companies",
    )


class HolidayOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    date: dt.date
    name: str
    holiday_type: HolidayType
    company_id: Optional[uuid.UUID] = None


# ═════════════════════════════════════════════════════════════════════
# Working Saturdays
# ═════════════════════════════════════════════════════════════════════


class WorkingSaturdayCreate(BaseModel):
    """Register a Saturday as a (partial) working day."""

    date: dt.date
    start_time: dt.time = dt.time(9, 0)
    end_time: dt.time = dt.time(12, 0)
    description: Optional[str] = Field(default=None, max_length=255)
    company_id: Optional[uuid.UUID] = None

    @field_validator("date")
    @classmethod
    def must_be_saturday(cls, v: dt.date) -> dt.date:
        if v.weekday() != 5:
            raise ValueError(f"{v.isoformat()} is not a Saturday.")
        return v

    @model_validator(mode="after")
    def validate_shift(self) -> "WorkingSaturdayCreate":
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time.")
        return self


class WorkingSaturdayOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    date: dt.date
    start_time: dt.time
    end_time: dt.time
    work_hours: Decimal
    description: Optional[str] = None
    company_id: Optional[uuid.UUID] = None


# ═════════════════════════════════════════════════════════════════════
# System settings
# ═════════════════════════════════════════════════════════════════════


class CalendarSettingsOut(BaseModel):
    work_hours_per_day: Decimal
    leave_advance_days: int


class CalendarSettingsUpdate(BaseModel):
    work_hours_per_day: Optional[Decimal] = Field(default=None, gt=0, le=24)
    leave_advance_days: Optional[int] = Field(default=None, ge=0, le=365)
