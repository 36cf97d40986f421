"""Calendar router — holidays, working Saturdays, working-time settings.

Reads are open to every authenticated employee; writes are HR/Admin only.
"""


import uuid
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from leavedesk.auth.dependencies import get_current_user, require_role
from leavedesk.common.constants import UserRole
from leavedesk.core_hr.models import Employee
from leavedesk.database import get_db
from leavedesk.work_calendar.schemas import (
    CalendarSettingsOut,
    CalendarSettingsUpdate,
    HolidayCreate,
    HolidayOut,
    WorkingSaturdayCreate,
    WorkingSaturdayOut,
)
from leavedesk.work_calendar.service import CalendarService

router = APIRouter(prefix="", tags=["calendar"])


# ── Holidays ────────────────────────────────────────────────────────

@router.get("/holidays", response_model=list[HolidayOut])
async def list_holidays(
    year: Optional[int] = Query(None, description="Calendar year; defaults to current year"),
    employee: Employee = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Holidays for the caller's company (including company-wide ones)."""
    return await CalendarService.list_holidays(
        db, year or date.today().year, employee.company_id,
    )


@router.post("/holidays", response_model=HolidayOut, status_code=201)
async def create_holiday(
    body: HolidayCreate,
    employee: Employee = Depends(require_role(UserRole.hr)),
    db: AsyncSession = Depends(get_db),
):
    return await CalendarService.create_holiday(db, body, employee.id)


@router.delete("/holidays/{holiday_id}", status_code=204)
async def delete_holiday(
    holiday_id: uuid.UUID,
    employee: Employee = Depends(require_role(UserRole.hr)),
    db: AsyncSession = Depends(get_db),
):
    await CalendarService.delete_holiday(db, holiday_id, employee.id)


# ── Working Saturdays ───────────────────────────────────────────────

@router.get("/working-saturdays", response_model=list[WorkingSaturdayOut])
async def list_working_saturdays(
    year: Optional[int] = Query(None, description="Calendar year; defaults to current year"),
    employee: Employee = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await CalendarService.list_working_saturdays(
        db, year or date.today().year, employee.company_id,
    )


@router.post("/working-saturdays", response_model=WorkingSaturdayOut, status_code=201)
async def create_working_saturday(
    body: WorkingSaturdayCreate,
    employee: Employee = Depends(require_role(UserRole.hr)),
    db: AsyncSession = Depends(get_db),
):
    """Register a working Saturday; work hours are derived from the shift times."""
    return await CalendarService.create_working_saturday(db, body, employee.id)


@router.delete("/working-saturdays/{record_id}", status_code=204)
async def delete_working_saturday(
    record_id: uuid.UUID,
    employee: Employee = Depends(require_role(UserRole.hr)),
    db: AsyncSession = Depends(get_db),
):
    await CalendarService.delete_working_saturday(db, record_id, employee.id)


# ── Settings ────────────────────────────────────────────────────────

@router.get("/settings", response_model=CalendarSettingsOut)
async def get_settings(
    employee: Employee = Depends(require_role(UserRole.hr)),
    db: AsyncSession = Depends(get_db),
):
    return await CalendarService.get_settings(db)


@router.put("/settings", response_model=CalendarSettingsOut)
async def update_settings(
    body: CalendarSettingsUpdate,
    employee: Employee = Depends(require_role(UserRole.hr)),
    db: AsyncSession = Depends(get_db),
):
    return await CalendarService.update_settings(db, body, employee.id)
