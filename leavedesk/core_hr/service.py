"""Core HR service — employee lookups and delegate-approver management."""

from __future__ import annotations

import logging
import uuid
from datetime import date
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from leavedesk.common.audit import create_audit_entry
from leavedesk.common.exceptions import (
    ForbiddenException,
    NotFoundException,
    ValidationException,
)
from leavedesk.core_hr.models import DelegateApprover, Employee
from leavedesk.core_hr.schemas import DelegateCreate, DelegateOut, EmployeeBrief

logger = logging.getLogger(__name__)


def build_employee_brief(emp: Employee) -> EmployeeBrief:
    return EmployeeBrief(
        id=emp.id,
        employee_code=emp.employee_code,
        full_name=emp.full_name,
        department=emp.department,
        role=emp.role,
    )


class EmployeeService:
    """Employee lookups shared by the leave and calendar modules."""

    @staticmethod
    async def get_active_employee(
        db: AsyncSession,
        employee_id: uuid.UUID,
    ) -> Employee:
        result = await db.execute(
            select(Employee).where(
                Employee.id == employee_id,
                Employee.is_active.is_(True),
            )
        )
        employee = result.scalars().first()
        if employee is None:
            raise NotFoundException("Employee", str(employee_id))
        return employee

    @staticmethod
    async def get_direct_report_ids(
        db: AsyncSession,
        manager_ids: list[uuid.UUID],
    ) -> list[uuid.UUID]:
        if not manager_ids:
            return []
        result = await db.execute(
            select(Employee.id).where(
                Employee.manager_id.in_(manager_ids),
                Employee.is_active.is_(True),
            )
        )
        return [row[0] for row in result.all()]


class DelegateService:
    """Delegate approvers: a manager lends approval authority for a date window."""

    @staticmethod
    def _active_on(on_date: date):
        return (
            DelegateApprover.is_active.is_(True),
            DelegateApprover.start_date <= on_date,
            DelegateApprover.end_date >= on_date,
        )

    @staticmethod
    async def get_active_delegates(
        db: AsyncSession,
        manager_id: uuid.UUID,
        *,
        on_date: Optional[date] = None,
    ) -> list[uuid.UUID]:
        """Delegate employee ids acting for *manager_id* on *on_date* (default today)."""
        on_date = on_date or date.today()
        result = await db.execute(
            select(DelegateApprover.delegate_id).where(
                DelegateApprover.manager_id == manager_id,
                *DelegateService._active_on(on_date),
            )
        )
        return [row[0] for row in result.all()]

    @staticmethod
    async def get_delegating_managers(
        db: AsyncSession,
        delegate_id: uuid.UUID,
        *,
        on_date: Optional[date] = None,
    ) -> list[uuid.UUID]:
        """Managers for whom *delegate_id* currently approves."""
        on_date = on_date or date.today()
        result = await db.execute(
            select(DelegateApprover.manager_id).where(
                DelegateApprover.delegate_id == delegate_id,
                *DelegateService._active_on(on_date),
            )
        )
        return [row[0] for row in result.all()]

    @staticmethod
    async def is_delegate_of(
        db: AsyncSession,
        delegate_id: uuid.UUID,
        manager_id: uuid.UUID,
        *,
        on_date: Optional[date] = None,
    ) -> bool:
        on_date = on_date or date.today()
        result = await db.execute(
            select(DelegateApprover.id)
            .where(
                DelegateApprover.delegate_id == delegate_id,
                DelegateApprover.manager_id == manager_id,
                *DelegateService._active_on(on_date),
            )
            .limit(1)
        )
        return result.scalar() is not None

    @staticmethod
    async def create_delegate(
        db: AsyncSession,
        manager: Employee,
        data: DelegateCreate,
    ) -> DelegateOut:
        if data.delegate_id == manager.id:
            raise ValidationException(
                {"delegate_id": ["You cannot delegate approvals to yourself."]}
            )

        delegate = await EmployeeService.get_active_employee(db, data.delegate_id)

        record = DelegateApprover(
            manager_id=manager.id,
            delegate_id=delegate.id,
            start_date=data.start_date,
            end_date=data.end_date,
            is_active=True,
        )
        db.add(record)
        await db.flush()

        await create_audit_entry(
            db,
            action="create",
            entity_type="delegate_approver",
            entity_id=record.id,
            actor_id=manager.id,
            new_values={
                "delegate_id": str(delegate.id),
                "start_date": data.start_date.isoformat(),
                "end_date": data.end_date.isoformat(),
            },
        )
        logger.info(
            "Manager %s delegated approvals to %s (%s → %s)",
            manager.id, delegate.id, data.start_date, data.end_date,
        )

        out = DelegateOut.model_validate(record)
        out.delegate = build_employee_brief(delegate)
        return out

    @staticmethod
    async def list_delegates(
        db: AsyncSession,
        manager_id: uuid.UUID,
    ) -> list[DelegateOut]:
        result = await db.execute(
            select(DelegateApprover)
            .where(
                DelegateApprover.manager_id == manager_id,
                DelegateApprover.is_active.is_(True),
            )
            .options(selectinload(DelegateApprover.delegate))
            .order_by(DelegateApprover.start_date)
        )
        output: list[DelegateOut] = []
        for record in result.scalars().all():
            out = DelegateOut.model_validate(record)
            out.delegate = build_employee_brief(record.delegate)
            output.append(out)
        return output

    @staticmethod
    async def deactivate_delegate(
        db: AsyncSession,
        delegate_record_id: uuid.UUID,
        actor: Employee,
    ) -> None:
        result = await db.execute(
            select(DelegateApprover).where(DelegateApprover.id == delegate_record_id)
        )
        record = result.scalars().first()
        if record is None:
            raise NotFoundException("DelegateApprover", str(delegate_record_id))
        if record.manager_id != actor.id and not actor.is_hr:
            raise ForbiddenException("You can only remove your own delegates.")

        record.is_active = False
        await db.flush()

        await create_audit_entry(
            db,
            action="deactivate",
            entity_type="delegate_approver",
            entity_id=record.id,
            actor_id=actor.id,
            old_values={"is_active": True},
            new_values={"is_active": False},
        )
