"""Leave Pydantic v2 schemas — request / response validation.

Naming conventions:
  - *Create / *Request  → request bodies (write)
  - *Response / *Out    → response bodies (read)
  - *Brief              → compact embedded representations
"""

from __future__ import annotations

import uuid
from datetime import date, datetime, time
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from leavedesk.common.constants import (
    MAX_REQUEST_SPAN_DAYS,
    LeaveStatus,
    LeaveType,
    TimeSlot,
)
from leavedesk.core_hr.schemas import EmployeeBrief


# ═════════════════════════════════════════════════════════════════════
# Quota settings
# ═════════════════════════════════════════════════════════════════════


class QuotaSettingOut(BaseModel):
    """Per leave-type policy; also the immutable snapshot held by the quota cache."""

    model_config = ConfigDict(from_attributes=True, frozen=True)

    leave_type: LeaveType
    default_days: Decimal
    min_tenure_years: int = 0
    allow_carry_over: bool = False
    max_carry_over_days: Decimal = Decimal("0")
    medical_cert_threshold_days: Optional[Decimal] = None
    is_balance_tracked: bool = True


class QuotaSettingUpdate(BaseModel):
    default_days: Optional[Decimal] = Field(None, ge=0, le=366)
    min_tenure_years: Optional[int] = Field(None, ge=0, le=50)
    allow_carry_over: Optional[bool] = None
    max_carry_over_days: Optional[Decimal] = Field(None, ge=0, le=366)
    medical_cert_threshold_days: Optional[Decimal] = Field(None, gt=0, le=366)
    is_balance_tracked: Optional[bool] = None


# ═════════════════════════════════════════════════════════════════════
# Leave Balance
# ═════════════════════════════════════════════════════════════════════


class LeaveBalanceOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    employee_id: uuid.UUID
    leave_type: LeaveType
    year: int
    entitlement: Decimal
    used: Decimal
    remaining: Decimal
    carry_over: Decimal
    is_auto_created: bool

    # Filled by service
    remaining_display: Optional[str] = None


# ═════════════════════════════════════════════════════════════════════
# Leave Request — Create / Preview
# ═════════════════════════════════════════════════════════════════════


class LeaveRequestCreate(BaseModel):
    """Payload for applying a leave request."""

    leave_type: LeaveType
    start_date: date = Field(..., description="Leave start date (inclusive)")
    end_date: date = Field(..., description="Leave end date (inclusive)")
    time_slot: TimeSlot = TimeSlot.full_day
    start_time: Optional[time] = Field(None, description="Hourly leave only")
    end_time: Optional[time] = Field(None, description="Hourly leave only")
    reason: Optional[str] = Field(None, max_length=1000)
    has_medical_certificate: bool = False
    medical_certificate_file: Optional[str] = Field(None, max_length=500)

    @model_validator(mode="after")
    def validate_dates(self) -> "LeaveRequestCreate":
        if self.start_date > self.end_date:
            raise ValueError("start_date must be on or before end_date.")
        if (self.end_date - self.start_date).days > MAX_REQUEST_SPAN_DAYS:
            raise ValueError(
                f"Leave request cannot span more than {MAX_REQUEST_SPAN_DAYS} days."
            )
        if self.time_slot == TimeSlot.hourly:
            if self.start_time is None or self.end_time is None:
                raise ValueError("Hourly leave requires start_time and end_time.")
            if self.start_date != self.end_date:
                raise ValueError("Hourly leave must start and end on the same date.")
        return self


class DurationPreviewRequest(BaseModel):
    start_date: date
    end_date: date
    time_slot: TimeSlot = TimeSlot.full_day
    start_time: Optional[time] = None
    end_time: Optional[time] = None

    @model_validator(mode="after")
    def validate_dates(self) -> "DurationPreviewRequest":
        if self.start_date > self.end_date:
            raise ValueError("start_date must be on or before end_date.")
        if (self.end_date - self.start_date).days > MAX_REQUEST_SPAN_DAYS:
            raise ValueError(
                f"Range cannot span more than {MAX_REQUEST_SPAN_DAYS} days."
            )
        if self.time_slot == TimeSlot.hourly and (
            self.start_time is None or self.end_time is None
        ):
            raise ValueError("Hourly leave requires start_time and end_time.")
        return self


class DurationPreviewOut(BaseModel):
    total_days: Decimal
    year_splits: dict[int, Decimal]
    display: str
    work_hours_per_day: Decimal


# ═════════════════════════════════════════════════════════════════════
# Leave Request — Response
# ═════════════════════════════════════════════════════════════════════


class YearSplitOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    year: int
    usage_amount: Decimal


class LeaveRequestOut(BaseModel):
    """Full leave request response."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    employee_id: uuid.UUID
    leave_type: LeaveType
    start_date: date
    end_date: date
    time_slot: TimeSlot
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    usage_amount: Decimal
    reason: Optional[str] = None
    status: LeaveStatus
    has_medical_certificate: bool = False
    medical_certificate_file: Optional[str] = None
    approver_id: Optional[uuid.UUID] = None
    approved_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None
    cancelled_by: Optional[uuid.UUID] = None
    cancelled_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    year_splits: list[YearSplitOut] = []

    # Enriched by service
    employee: Optional[EmployeeBrief] = None


# ═════════════════════════════════════════════════════════════════════
# Leave Approve / Reject / Cancel
# ═════════════════════════════════════════════════════════════════════


class LeaveRejectRequest(BaseModel):
    reason: str = Field(..., max_length=500)


class LeaveCancelRequest(BaseModel):
    reason: Optional[str] = Field(None, max_length=500)


# ═════════════════════════════════════════════════════════════════════
# Year-end processing
# ═════════════════════════════════════════════════════════════════════


class YearEndRequest(BaseModel):
    from_year: int = Field(..., ge=2000, le=2100)
    to_year: int = Field(..., ge=2000, le=2100)
    force_overwrite: bool = False

    @model_validator(mode="after")
    def validate_years(self) -> "YearEndRequest":
        if self.to_year <= self.from_year:
            raise ValueError("to_year must be after from_year.")
        return self


class YearEndItem(BaseModel):
    employee_id: uuid.UUID
    employee_code: str
    leave_type: LeaveType
    previous_remaining: Decimal
    carry_over: Decimal
    entitlement: Decimal
    used: Decimal
    remaining: Decimal


class YearEndSummary(BaseModel):
    from_year: int
    to_year: int
    already_processed: bool
    employees: int
    items: list[YearEndItem]
