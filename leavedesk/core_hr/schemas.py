"""Core HR Pydantic v2 schemas — employee briefs and delegate approvers."""

from __future__ import annotations

import uuid
from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from leavedesk.common.constants import UserRole


class EmployeeBrief(BaseModel):
    """Minimal employee info embedded in other responses."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    employee_code: str
    full_name: str
    department: Optional[str] = None
    role: UserRole = UserRole.employee


class DelegateCreate(BaseModel):
    """Payload for assigning a delegate approver."""

    delegate_id: uuid.UUID
    start_date: date = Field(..., description="First day the delegate may approve")
    end_date: date = Field(..., description="Last day the delegate may approve")

    @model_validator(mode="after")
    def validate_window(self) -> "DelegateCreate":
        if self.start_date > self.end_date:
            raise ValueError("start_date must be on or before end_date.")
        return self


class DelegateOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    manager_id: uuid.UUID
    delegate_id: uuid.UUID
    start_date: date
    end_date: date
    is_active: bool
    created_at: datetime

    delegate: Optional[EmployeeBrief] = None
