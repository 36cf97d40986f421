"""Leave lifecycle — application, approval/rejection/cancellation, balances,
delegated approval, policy rules and pending-approval listings.

Tests run against SQLite via the shared conftest.py fixtures.
"""

from __future__ import annotations

from datetime import date, time, timedelta
from decimal import Decimal

import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from leavedesk.common.audit import AuditTrail
from leavedesk.common.constants import LeaveStatus, LeaveType, TimeSlot, UserRole
from leavedesk.common.exceptions import (
    ForbiddenException,
    InsufficientBalanceException,
    StatusConflictException,
    ValidationException,
)
from leavedesk.core_hr.models import Employee
from leavedesk.leave.models import LeaveBalance, LeaveRequest
from leavedesk.leave.schemas import LeaveRequestCreate
from leavedesk.leave.service import LeaveService, completed_years
from leavedesk.notifications.models import Notification
from tests.conftest import (
    seed_balance,
    seed_delegate,
    seed_employee,
    seed_holiday,
    seed_quotas,
    seed_working_saturday,
)

MONDAY = date(2026, 1, 5)


# ═════════════════════════════════════════════════════════════════════
# Helpers
# ═════════════════════════════════════════════════════════════════════


async def _team(db: AsyncSession) -> tuple[Employee, Employee, Employee]:
    """Quota table plus a manager, a report and an HR officer."""
    await seed_quotas(db)
    manager = await seed_employee(db, first_name="Mana", role=UserRole.manager)
    employee = await seed_employee(db, first_name="Emma", manager_id=manager.id)
    hr = await seed_employee(db, first_name="Hana", role=UserRole.hr)
    return manager, employee, hr


async def _balance(db: AsyncSession, employee_id, leave_type, year) -> LeaveBalance:
    result = await db.execute(
        select(LeaveBalance).where(
            LeaveBalance.employee_id == employee_id,
            LeaveBalance.leave_type == leave_type,
            LeaveBalance.year == year,
        )
    )
    return result.scalars().one()


async def _notifications(db: AsyncSession, recipient_id) -> list[Notification]:
    result = await db.execute(
        select(Notification).where(Notification.recipient_id == recipient_id)
    )
    return list(result.scalars().all())


def _request(
    leave_type: LeaveType = LeaveType.personal,
    start: date = MONDAY,
    end: date | None = None,
    **kwargs,
) -> LeaveRequestCreate:
    return LeaveRequestCreate(
        leave_type=leave_type, start_date=start, end_date=end or start, **kwargs,
    )


async def _apply(db, employee, data=None, **kwargs):
    return await LeaveService.apply_leave(db, employee.id, data or _request(), **kwargs)


# ═════════════════════════════════════════════════════════════════════
# 1. Apply
# ═════════════════════════════════════════════════════════════════════


class TestApplyLeave:

    async def test_apply_reserves_balance(self, db: AsyncSession):
        manager, employee, _ = await _team(db)

        result = await _apply(db, employee)

        assert result.status == LeaveStatus.pending
        assert result.usage_amount == Decimal("1.00")
        assert [(s.year, s.usage_amount) for s in result.year_splits] == [
            (2026, Decimal("1.00")),
        ]
        assert result.employee.full_name == "Emma Employee"

        bal = await _balance(db, employee.id, LeaveType.personal, 2026)
        assert (bal.used, bal.remaining) == (Decimal("1.00"), Decimal("2.00"))

        notes = await _notifications(db, manager.id)
        assert len(notes) == 1
        assert notes[0].entity_id == result.id

    async def test_cross_year_request_splits_balance(self, db: AsyncSession):
        _, employee, _ = await _team(db)
        await seed_balance(db, employee.id, LeaveType.vacation, 2025, entitlement=Decimal("10"))

        result = await _apply(
            db, employee,
            _request(LeaveType.vacation, date(2025, 12, 30), date(2026, 1, 2)),
            today=date(2025, 12, 1),
        )

        assert result.usage_amount == Decimal("4.00")
        assert {s.year: s.usage_amount for s in result.year_splits} == {
            2025: Decimal("2.00"),
            2026: Decimal("2.00"),
        }
        b2025 = await _balance(db, employee.id, LeaveType.vacation, 2025)
        b2026 = await _balance(db, employee.id, LeaveType.vacation, 2026)
        assert b2025.remaining == Decimal("8.00")
        assert b2026.remaining == Decimal("8.00")
        assert b2026.is_auto_created is True

    async def test_working_saturday_counts_fractionally(self, db: AsyncSession):
        _, employee, _ = await _team(db)
        await seed_working_saturday(db, date(2026, 1, 10))

        result = await _apply(
            db, employee, _request(LeaveType.sick, date(2026, 1, 9), date(2026, 1, 11)),
        )

        assert result.usage_amount == Decimal("1.40")

    async def test_hourly_leave(self, db: AsyncSession):
        _, employee, _ = await _team(db)

        result = await _apply(
            db, employee,
            _request(
                time_slot=TimeSlot.hourly, start_time=time(10, 0), end_time=time(14, 0),
            ),
        )

        assert result.usage_amount == Decimal("0.40")
        assert result.start_time == time(10, 0)

    async def test_untracked_type_records_splits_only(self, db: AsyncSession):
        _, employee, _ = await _team(db)

        result = await _apply(db, employee, _request(LeaveType.other))

        assert result.usage_amount == Decimal("1.00")
        rows = await db.execute(
            select(LeaveBalance).where(LeaveBalance.employee_id == employee.id)
        )
        assert rows.scalars().all() == []

    async def test_apply_writes_audit_entry(self, db: AsyncSession):
        _, employee, _ = await _team(db)

        result = await _apply(db, employee)

        actions = await db.execute(
            select(AuditTrail.action).where(AuditTrail.entity_id == result.id)
        )
        assert actions.scalars().all() == ["create"]

    async def test_delegates_are_notified(self, db: AsyncSession):
        manager, employee, _ = await _team(db)
        delegate = await seed_employee(db, first_name="Dele")
        await seed_delegate(db, manager.id, delegate.id)

        await _apply(db, employee)

        assert len(await _notifications(db, delegate.id)) == 1


class TestApplyValidation:

    async def test_insufficient_balance(self, db: AsyncSession):
        _, employee, _ = await _team(db)

        with pytest.raises(InsufficientBalanceException):
            await _apply(db, employee, _request(end=MONDAY + timedelta(days=4)))

        result = await db.execute(
            select(LeaveRequest).where(LeaveRequest.employee_id == employee.id)
        )
        assert result.scalars().all() == []

    async def test_overlap_rejected(self, db: AsyncSession):
        _, employee, _ = await _team(db)
        await _apply(db, employee, _request(LeaveType.sick, MONDAY, MONDAY + timedelta(days=1)))

        with pytest.raises(ValidationException) as exc_info:
            await _apply(db, employee, _request(start=MONDAY + timedelta(days=1)))
        assert "dates" in exc_info.value.errors

    async def test_overlap_with_cancelled_request_allowed(self, db: AsyncSession):
        _, employee, _ = await _team(db)
        first = await _apply(db, employee)
        await LeaveService.cancel_leave(db, first.id, employee)

        second = await _apply(db, employee)
        assert second.status == LeaveStatus.pending

    async def test_single_day_holiday_named(self, db: AsyncSession):
        _, employee, _ = await _team(db)
        await seed_holiday(db, MONDAY, "Founders Day")

        with pytest.raises(ValidationException) as exc_info:
            await _apply(db, employee)
        assert "Founders Day" in exc_info.value.errors["start_date"][0]

    async def test_weekend_only_range_rejected(self, db: AsyncSession):
        _, employee, _ = await _team(db)

        with pytest.raises(ValidationException) as exc_info:
            await _apply(db, employee, _request(start=date(2026, 1, 10), end=date(2026, 1, 11)))
        assert "dates" in exc_info.value.errors

    async def test_hourly_on_sunday_rejected(self, db: AsyncSession):
        _, employee, _ = await _team(db)
        data = _request(
            start=date(2026, 1, 11), time_slot=TimeSlot.hourly,
            start_time=time(9, 0), end_time=time(11, 0),
        )
        with pytest.raises(ValidationException):
            await _apply(db, employee, data)

    async def test_hourly_on_plain_saturday_rejected(self, db: AsyncSession):
        _, employee, _ = await _team(db)
        data = _request(
            start=date(2026, 1, 10), time_slot=TimeSlot.hourly,
            start_time=time(9, 0), end_time=time(11, 0),
        )
        with pytest.raises(ValidationException):
            await _apply(db, employee, data)

    async def test_hourly_too_short_rejected(self, db: AsyncSession):
        _, employee, _ = await _team(db)
        data = _request(
            time_slot=TimeSlot.hourly, start_time=time(9, 0), end_time=time(9, 15),
        )
        with pytest.raises(ValidationException) as exc_info:
            await _apply(db, employee, data)
        assert "end_time" in exc_info.value.errors

    async def test_tenure_required_for_vacation(self, db: AsyncSession):
        await seed_quotas(db)
        newcomer = await seed_employee(db, start_date=date(2025, 6, 1))

        with pytest.raises(ValidationException) as exc_info:
            await _apply(
                db, newcomer, _request(LeaveType.vacation), today=date(2025, 12, 1),
            )
        assert "leave_type" in exc_info.value.errors

    async def test_ordination_needs_two_years(self, db: AsyncSession):
        await seed_quotas(db)
        emp = await seed_employee(db, start_date=date(2024, 3, 1))

        with pytest.raises(ValidationException):
            await _apply(db, emp, _request(LeaveType.ordination), today=date(2025, 12, 1))

    async def test_tenure_counted_to_today_not_leave_date(self, db: AsyncSession):
        """Leave dated after the first anniversary is still refused before it."""
        await seed_quotas(db)
        emp = await seed_employee(db, start_date=date(2025, 1, 15))
        data = _request(LeaveType.vacation, date(2026, 1, 20))

        with pytest.raises(ValidationException) as exc_info:
            await _apply(db, emp, data, today=date(2025, 12, 1))
        assert "leave_type" in exc_info.value.errors

        result = await _apply(db, emp, data, today=date(2026, 1, 15))
        assert result.status == LeaveStatus.pending

    async def test_vacation_advance_notice(self, db: AsyncSession):
        _, employee, _ = await _team(db)

        with pytest.raises(ValidationException) as exc_info:
            await _apply(
                db, employee, _request(LeaveType.vacation), today=MONDAY - timedelta(days=1),
            )
        assert "advance notice" in exc_info.value.errors["start_date"][0]

    async def test_long_sick_leave_needs_certificate(self, db: AsyncSession):
        _, employee, _ = await _team(db)
        data = _request(LeaveType.sick, MONDAY, MONDAY + timedelta(days=2))

        with pytest.raises(ValidationException) as exc_info:
            await _apply(db, employee, data)
        assert "has_medical_certificate" in exc_info.value.errors

        data = _request(
            LeaveType.sick, MONDAY, MONDAY + timedelta(days=2), has_medical_certificate=True,
        )
        result = await _apply(db, employee, data)
        assert result.usage_amount == Decimal("3.00")


def test_completed_years():
    assert completed_years(date(2020, 6, 15), date(2021, 6, 14)) == 0
    assert completed_years(date(2020, 6, 15), date(2021, 6, 15)) == 1
    assert completed_years(date(2027, 1, 1), date(2026, 1, 1)) == 0


# ═════════════════════════════════════════════════════════════════════
# 2. Approve / Reject
# ═════════════════════════════════════════════════════════════════════


class TestReview:

    async def test_manager_approves_without_touching_balance(self, db: AsyncSession):
        manager, employee, _ = await _team(db)
        req = await _apply(db, employee)

        result = await LeaveService.approve_leave(db, req.id, manager)

        assert result.status == LeaveStatus.approved
        assert result.approver_id == manager.id
        assert result.approved_at is not None
        bal = await _balance(db, employee.id, LeaveType.personal, 2026)
        assert bal.remaining == Decimal("2.00")
        titles = [n.title for n in await _notifications(db, employee.id)]
        assert "Leave Request Approved" in titles

    async def test_reject_refunds_per_year(self, db: AsyncSession):
        manager, employee, _ = await _team(db)
        await seed_balance(db, employee.id, LeaveType.vacation, 2025, entitlement=Decimal("10"))
        req = await _apply(
            db, employee,
            _request(LeaveType.vacation, date(2025, 12, 30), date(2026, 1, 2)),
            today=date(2025, 12, 1),
        )

        result = await LeaveService.reject_leave(db, req.id, manager, "Peak season")

        assert result.status == LeaveStatus.rejected
        assert result.rejection_reason == "Peak season"
        for year in (2025, 2026):
            bal = await _balance(db, employee.id, LeaveType.vacation, year)
            assert (bal.used, bal.remaining) == (Decimal("0.00"), Decimal("10.00"))

    async def test_reject_requires_reason(self, db: AsyncSession):
        manager, employee, _ = await _team(db)
        req = await _apply(db, employee)

        with pytest.raises(ValidationException):
            await LeaveService.reject_leave(db, req.id, manager, "   ")

    async def test_self_approval_forbidden(self, db: AsyncSession):
        manager, _, _ = await _team(db)
        req = await _apply(db, manager)

        with pytest.raises(ForbiddenException):
            await LeaveService.approve_leave(db, req.id, manager)

    async def test_unrelated_manager_forbidden(self, db: AsyncSession):
        _, employee, _ = await _team(db)
        other = await seed_employee(db, first_name="Otto", role=UserRole.manager)
        req = await _apply(db, employee)

        with pytest.raises(ForbiddenException):
            await LeaveService.approve_leave(db, req.id, other)

    async def test_hr_can_approve_anyone(self, db: AsyncSession):
        _, employee, hr = await _team(db)
        req = await _apply(db, employee)

        result = await LeaveService.approve_leave(db, req.id, hr)
        assert result.status == LeaveStatus.approved

    async def test_active_delegate_can_approve(self, db: AsyncSession):
        manager, employee, _ = await _team(db)
        delegate = await seed_employee(db, first_name="Dele")
        await seed_delegate(db, manager.id, delegate.id)
        req = await _apply(db, employee)

        result = await LeaveService.approve_leave(db, req.id, delegate)
        assert result.approver_id == delegate.id

    async def test_expired_delegate_forbidden(self, db: AsyncSession):
        manager, employee, _ = await _team(db)
        delegate = await seed_employee(db, first_name="Dele")
        today = date.today()
        await seed_delegate(
            db, manager.id, delegate.id,
            start_date=today - timedelta(days=10), end_date=today - timedelta(days=1),
        )
        req = await _apply(db, employee)

        with pytest.raises(ForbiddenException):
            await LeaveService.approve_leave(db, req.id, delegate)

    async def test_approve_twice_conflicts(self, db: AsyncSession):
        manager, employee, _ = await _team(db)
        req = await _apply(db, employee)
        await LeaveService.approve_leave(db, req.id, manager)

        with pytest.raises(StatusConflictException):
            await LeaveService.approve_leave(db, req.id, manager)


# ═════════════════════════════════════════════════════════════════════
# 3. Cancel
# ═════════════════════════════════════════════════════════════════════


class TestCancel:

    async def test_owner_cancels_pending_and_refunds(self, db: AsyncSession):
        manager, employee, _ = await _team(db)
        req = await _apply(db, employee)

        result = await LeaveService.cancel_leave(db, req.id, employee, "Plans changed")

        assert result.status == LeaveStatus.cancelled
        assert result.cancelled_by == employee.id
        bal = await _balance(db, employee.id, LeaveType.personal, 2026)
        assert bal.remaining == Decimal("3.00")
        titles = [n.title for n in await _notifications(db, manager.id)]
        assert "Leave Cancelled" in titles

    async def test_second_cancel_conflicts_and_refunds_once(self, db: AsyncSession):
        _, employee, _ = await _team(db)
        req = await _apply(db, employee)
        await LeaveService.cancel_leave(db, req.id, employee)

        with pytest.raises(StatusConflictException):
            await LeaveService.cancel_leave(db, req.id, employee)

        bal = await _balance(db, employee.id, LeaveType.personal, 2026)
        assert (bal.used, bal.remaining) == (Decimal("0.00"), Decimal("3.00"))

    async def test_owner_cannot_cancel_approved(self, db: AsyncSession):
        manager, employee, _ = await _team(db)
        req = await _apply(db, employee)
        await LeaveService.approve_leave(db, req.id, manager)

        with pytest.raises(ForbiddenException):
            await LeaveService.cancel_leave(db, req.id, employee)

    async def test_hr_cancels_approved_and_refunds(self, db: AsyncSession):
        manager, employee, hr = await _team(db)
        req = await _apply(db, employee)
        await LeaveService.approve_leave(db, req.id, manager)

        result = await LeaveService.cancel_leave(db, req.id, hr, "Duplicate entry")

        assert result.status == LeaveStatus.cancelled
        bal = await _balance(db, employee.id, LeaveType.personal, 2026)
        assert bal.remaining == Decimal("3.00")
        titles = [n.title for n in await _notifications(db, employee.id)]
        assert "Leave Request Cancelled" in titles

    async def test_other_employee_cannot_cancel(self, db: AsyncSession):
        manager, employee, _ = await _team(db)
        req = await _apply(db, employee)

        with pytest.raises(ForbiddenException):
            await LeaveService.cancel_leave(db, req.id, manager)

    async def test_approve_after_cancel_conflicts(self, db: AsyncSession):
        manager, employee, _ = await _team(db)
        req = await _apply(db, employee)
        await LeaveService.cancel_leave(db, req.id, employee)

        with pytest.raises(StatusConflictException):
            await LeaveService.approve_leave(db, req.id, manager)

    async def test_cancel_without_splits_refunds_start_year(self, db: AsyncSession):
        """Requests stored before year splits existed refund their start year."""
        _, employee, _ = await _team(db)
        await seed_balance(
            db, employee.id, LeaveType.personal, 2026,
            entitlement=Decimal("3"), used=Decimal("1"),
        )
        legacy = LeaveRequest(
            employee_id=employee.id,
            leave_type=LeaveType.personal,
            start_date=MONDAY,
            end_date=MONDAY,
            usage_amount=Decimal("1"),
            status=LeaveStatus.pending,
            year_splits=[],
        )
        db.add(legacy)
        await db.flush()

        await LeaveService.cancel_leave(db, legacy.id, employee)

        bal = await _balance(db, employee.id, LeaveType.personal, 2026)
        assert (bal.used, bal.remaining) == (Decimal("0.00"), Decimal("3.00"))


# ═════════════════════════════════════════════════════════════════════
# 4. Listings and balances
# ═════════════════════════════════════════════════════════════════════


class TestListings:

    async def test_pending_approvals_for_manager_and_delegate(self, db: AsyncSession):
        manager, employee, hr = await _team(db)
        delegate = await seed_employee(db, first_name="Dele")
        outsider = await seed_employee(db, first_name="Otto", role=UserRole.manager)
        await seed_delegate(db, manager.id, delegate.id)
        req = await _apply(db, employee)

        for approver in (manager, delegate, hr):
            pending = await LeaveService.get_pending_approvals(db, approver)
            assert [p.id for p in pending] == [req.id]
        assert await LeaveService.get_pending_approvals(db, outsider) == []

    async def test_balances_seed_tracked_types(self, db: AsyncSession):
        _, employee, _ = await _team(db)

        balances = await LeaveService.get_balances(db, employee, 2026)

        types = {b.leave_type for b in balances}
        assert LeaveType.other not in types
        assert {LeaveType.vacation, LeaveType.sick, LeaveType.personal} <= types
        vacation = next(b for b in balances if b.leave_type == LeaveType.vacation)
        assert vacation.remaining == Decimal("10.00")
        assert vacation.remaining_display == "10 days"
