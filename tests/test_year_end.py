"""Year-end processing — carry-over caps, tenure, idempotence and preview."""

from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from leavedesk.common.constants import LeaveType
from leavedesk.common.exceptions import ValidationException, YearAlreadyProcessedException
from leavedesk.leave.ledger import BalanceLedger
from leavedesk.leave.models import LeaveBalance
from tests.conftest import seed_balance, seed_employee, seed_quotas


async def _rows(db: AsyncSession, employee_id, year) -> dict[LeaveType, LeaveBalance]:
    result = await db.execute(
        select(LeaveBalance).where(
            LeaveBalance.employee_id == employee_id,
            LeaveBalance.year == year,
        )
    )
    return {b.leave_type: b for b in result.scalars().all()}


class TestRollover:

    async def test_carry_over_capped(self, db: AsyncSession, quotas):
        await seed_quotas(db)
        emp = await seed_employee(db)
        await seed_balance(
            db, emp.id, LeaveType.vacation, 2025,
            entitlement=Decimal("10"), used=Decimal("2"),
        )
        await seed_balance(
            db, emp.id, LeaveType.sick, 2025,
            entitlement=Decimal("30"), used=Decimal("5"),
        )

        summary = await BalanceLedger.rollover(db, 2025, 2026, quotas)

        rows = await _rows(db, emp.id, 2026)
        vacation = rows[LeaveType.vacation]
        assert vacation.carry_over == Decimal("5.00")
        assert vacation.entitlement == Decimal("10.00")
        assert vacation.remaining == Decimal("15.00")
        assert vacation.is_auto_created is False

        sick = rows[LeaveType.sick]
        assert sick.carry_over == Decimal("0.00")
        assert sick.remaining == Decimal("30.00")

        assert LeaveType.other not in rows
        assert summary.already_processed is True
        assert summary.employees == 1

    async def test_small_remainder_carried_in_full(self, db: AsyncSession, quotas):
        await seed_quotas(db)
        emp = await seed_employee(db)
        await seed_balance(
            db, emp.id, LeaveType.vacation, 2025,
            entitlement=Decimal("10"), used=Decimal("7.5"),
        )

        await BalanceLedger.rollover(db, 2025, 2026, quotas)

        vacation = (await _rows(db, emp.id, 2026))[LeaveType.vacation]
        assert vacation.carry_over == Decimal("2.50")
        assert vacation.remaining == Decimal("12.50")

    async def test_negative_remainder_not_carried(self, db: AsyncSession, quotas):
        await seed_quotas(db)
        emp = await seed_employee(db)
        await seed_balance(
            db, emp.id, LeaveType.vacation, 2025,
            entitlement=Decimal("10"), used=Decimal("11"),
        )

        await BalanceLedger.rollover(db, 2025, 2026, quotas)

        vacation = (await _rows(db, emp.id, 2026))[LeaveType.vacation]
        assert vacation.carry_over == Decimal("0.00")
        assert vacation.remaining == Decimal("10.00")

    async def test_tenure_filters_leave_types(self, db: AsyncSession, quotas):
        await seed_quotas(db)
        veteran = await seed_employee(db, start_date=date(2020, 1, 6))
        newcomer = await seed_employee(db, start_date=date(2025, 6, 1))

        await BalanceLedger.rollover(db, 2025, 2026, quotas)

        assert set(await _rows(db, veteran.id, 2026)) == {
            LeaveType.vacation, LeaveType.sick, LeaveType.personal, LeaveType.ordination,
        }
        assert set(await _rows(db, newcomer.id, 2026)) == {
            LeaveType.vacation, LeaveType.sick, LeaveType.personal,
        }

    async def test_inactive_employees_skipped(self, db: AsyncSession, quotas):
        await seed_quotas(db)
        leaver = await seed_employee(db, is_active=False)

        summary = await BalanceLedger.rollover(db, 2025, 2026, quotas)

        assert summary.employees == 0
        assert await _rows(db, leaver.id, 2026) == {}

    async def test_lazily_seeded_row_keeps_usage(self, db: AsyncSession, quotas):
        await seed_quotas(db)
        emp = await seed_employee(db)
        await seed_balance(
            db, emp.id, LeaveType.vacation, 2025,
            entitlement=Decimal("10"), used=Decimal("6"),
        )
        await seed_balance(
            db, emp.id, LeaveType.vacation, 2026,
            entitlement=Decimal("10"), used=Decimal("2"), is_auto_created=True,
        )

        await BalanceLedger.rollover(db, 2025, 2026, quotas)

        vacation = (await _rows(db, emp.id, 2026))[LeaveType.vacation]
        assert vacation.used == Decimal("2.00")
        assert vacation.carry_over == Decimal("4.00")
        assert vacation.remaining == Decimal("12.00")
        assert vacation.is_auto_created is False

    async def test_second_run_needs_force(self, db: AsyncSession, quotas):
        await seed_quotas(db)
        emp = await seed_employee(db)
        await BalanceLedger.rollover(db, 2025, 2026, quotas)

        with pytest.raises(YearAlreadyProcessedException):
            await BalanceLedger.rollover(db, 2025, 2026, quotas)

        summary = await BalanceLedger.rollover(db, 2025, 2026, quotas, force_overwrite=True)
        assert summary.items
        assert len(await _rows(db, emp.id, 2026)) == 4

    async def test_years_must_ascend(self, db: AsyncSession, quotas):
        await seed_quotas(db)
        with pytest.raises(ValidationException):
            await BalanceLedger.rollover(db, 2026, 2026, quotas)


class TestPreview:

    async def test_preview_writes_nothing(self, db: AsyncSession, quotas):
        await seed_quotas(db)
        emp = await seed_employee(db)
        await seed_balance(
            db, emp.id, LeaveType.vacation, 2025,
            entitlement=Decimal("10"), used=Decimal("1"),
        )

        summary = await BalanceLedger.preview_rollover(db, 2025, 2026, quotas)

        assert summary.already_processed is False
        vacation = next(i for i in summary.items if i.leave_type == LeaveType.vacation)
        assert vacation.previous_remaining == Decimal("9.00")
        assert vacation.carry_over == Decimal("5.00")
        assert vacation.remaining == Decimal("15.00")
        assert await _rows(db, emp.id, 2026) == {}

    async def test_preview_reports_processed_year(self, db: AsyncSession, quotas):
        await seed_quotas(db)
        await seed_employee(db)
        await BalanceLedger.rollover(db, 2025, 2026, quotas)

        summary = await BalanceLedger.preview_rollover(db, 2025, 2026, quotas)
        assert summary.already_processed is True
