"""Delegate-approver router.

Routes:
    /delegates        — List own active delegates, appoint a delegate
    /delegates/{id}   — Deactivate a delegate appointment
"""


import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from leavedesk.auth.dependencies import get_current_user, require_role
from leavedesk.common.constants import UserRole
from leavedesk.core_hr.models import Employee
from leavedesk.core_hr.schemas import DelegateCreate, DelegateOut
from leavedesk.core_hr.service import DelegateService
from leavedesk.database import get_db

router = APIRouter(prefix="", tags=["delegates"])


@router.get("", response_model=list[DelegateOut])
async def list_delegates(
    employee: Employee = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await DelegateService.list_delegates(db, employee.id)


@router.post("", response_model=DelegateOut, status_code=201)
async def create_delegate(
    body: DelegateCreate,
    employee: Employee = Depends(require_role(UserRole.manager)),
    db: AsyncSession = Depends(get_db),
):
    """Let another employee approve this manager's team for a date range."""
    return await DelegateService.create_delegate(db, employee, body)


@router.delete("/{delegate_id}", status_code=204)
async def deactivate_delegate(
    delegate_id: uuid.UUID,
    employee: Employee = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await DelegateService.deactivate_delegate(db, delegate_id, employee)
