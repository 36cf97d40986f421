"""Leave service layer — request lifecycle, approvals, balances, quota settings.

Business logic:
  - Leave application: calendar-aware duration, per-year split, validation
    and balance reservation in one transaction
  - Approve / reject / cancel with conditional status updates; reject and
    cancel refund the reservation year by year
  - Own, team and company-wide request listings and pending approvals,
    including teams whose manager delegated approvals
  - Balances with lazy per-year seeding and quota maintenance
"""

from __future__ import annotations

import logging
import uuid
from datetime import date, datetime, timezone
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from leavedesk.common.audit import create_audit_entry
from leavedesk.common.constants import (
    ACTIVE_STATUSES,
    UNTRACKED_LEAVE_TYPES,
    LeaveStatus,
    LeaveType,
    TimeSlot,
)
from leavedesk.common.exceptions import (
    ForbiddenException,
    NotFoundException,
    StatusConflictException,
    ValidationException,
)
from leavedesk.common.pagination import PaginatedResponse, PaginationParams, paginate
from leavedesk.core_hr.models import Employee
from leavedesk.core_hr.service import (
    DelegateService,
    EmployeeService,
    build_employee_brief,
)
from leavedesk.leave.duration import (
    calculate_leave_days,
    format_leave_days,
    reconcile_year_splits,
    split_leave_by_year,
    validate_time_range,
)
from leavedesk.leave.ledger import BalanceLedger, QuotaSettingsCache, uncached_quotas
from leavedesk.leave.models import LeaveQuotaSetting, LeaveRequest, LeaveRequestYearSplit
from leavedesk.leave.schemas import (
    DurationPreviewOut,
    DurationPreviewRequest,
    LeaveBalanceOut,
    LeaveRequestCreate,
    LeaveRequestOut,
    QuotaSettingOut,
    QuotaSettingUpdate,
)
from leavedesk.notifications.service import (
    notify_leave_approved,
    notify_leave_cancelled,
    notify_manager_of_cancellation,
    notify_leave_rejected,
    notify_leave_request,
)
from leavedesk.work_calendar.provider import CalendarFactsProvider
from leavedesk.work_calendar.service import CalendarService

logger = logging.getLogger(__name__)


def completed_years(start: date, on: date) -> int:
    """Whole anniversary years between *start* and *on*."""
    years = on.year - start.year
    if (on.month, on.day) < (start.month, start.day):
        years -= 1
    return max(years, 0)


# ═════════════════════════════════════════════════════════════════════
# LeaveService
# ═════════════════════════════════════════════════════════════════════


class LeaveService:
    """Async leave operations: requests, approvals, balances, quotas."""

    # ─────────────────────────────────────────────────────────────────
    # Helpers
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    def _build_request_response(
        leave_req: LeaveRequest,
        *,
        employee: Optional[Employee] = None,
    ) -> LeaveRequestOut:
        out = LeaveRequestOut.model_validate(leave_req)
        if employee is not None:
            out.employee = build_employee_brief(employee)
        return out

    @staticmethod
    async def _load_request(db: AsyncSession, request_id: uuid.UUID) -> LeaveRequest:
        result = await db.execute(
            select(LeaveRequest)
            .where(LeaveRequest.id == request_id)
            .options(selectinload(LeaveRequest.employee))
        )
        leave_req = result.scalars().first()
        if leave_req is None:
            raise NotFoundException("LeaveRequest", str(request_id))
        return leave_req

    @staticmethod
    async def _transition(
        db: AsyncSession,
        leave_req: LeaveRequest,
        allowed: tuple[LeaveStatus, ...],
        **values,
    ) -> None:
        """Move *leave_req* out of one of the *allowed* states, or raise 409.

        The status guard is part of the UPDATE itself; a request already
        moved by a concurrent transaction matches zero rows.
        """
        result = await db.execute(
            update(LeaveRequest)
            .where(
                LeaveRequest.id == leave_req.id,
                LeaveRequest.status.in_(allowed),
            )
            .values(**values, updated_at=datetime.now(timezone.utc))
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            await db.refresh(leave_req, attribute_names=["status"])
            logger.warning(
                "Leave request %s transition to %s lost: status is %s",
                leave_req.id, values.get("status"), leave_req.status.value,
            )
            raise StatusConflictException(
                "LeaveRequest", leave_req.id, leave_req.status.value,
            )
        await db.refresh(
            leave_req, attribute_names=sorted({"status", "updated_at", *values}),
        )

    @staticmethod
    async def _assert_can_review(
        db: AsyncSession,
        reviewer: Employee,
        leave_req: LeaveRequest,
    ) -> None:
        """Reviewer must be the manager, an active delegate of the manager, or HR."""
        owner = leave_req.employee
        if reviewer.id == owner.id:
            raise ForbiddenException("You cannot review your own leave request.")
        if reviewer.is_hr or owner.manager_id == reviewer.id:
            return
        if owner.manager_id is not None and await DelegateService.is_delegate_of(
            db, reviewer.id, owner.manager_id,
        ):
            return
        raise ForbiddenException("You are not authorized to review this leave request.")

    @staticmethod
    async def _refund(
        db: AsyncSession,
        leave_req: LeaveRequest,
        quotas: QuotaSettingsCache,
    ) -> None:
        await BalanceLedger.refund(
            db,
            leave_req.employee_id,
            leave_req.leave_type,
            {s.year: s.usage_amount for s in leave_req.year_splits},
            quotas,
            fallback_year=leave_req.start_date.year,
            fallback_amount=leave_req.usage_amount,
        )

    # ─────────────────────────────────────────────────────────────────
    # Duration preview
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def preview_duration(
        db: AsyncSession,
        employee: Employee,
        data: DurationPreviewRequest,
    ) -> DurationPreviewOut:
        """Compute a range's duration without creating anything."""
        provider = CalendarFactsProvider(db, employee.company_id)
        holidays = await provider.get_holidays(data.start_date, data.end_date)
        saturdays = await provider.get_working_saturdays(data.start_date, data.end_date)
        work_hours = await provider.get_work_hours_per_day()

        if data.time_slot == TimeSlot.hourly:
            error = validate_time_range(data.start_time, data.end_time)
            if error:
                raise ValidationException({"end_time": [error]})

        kwargs = dict(start_time=data.start_time, end_time=data.end_time)
        total = calculate_leave_days(
            data.start_date, data.end_date, data.time_slot,
            holidays, saturdays, work_hours, **kwargs,
        )
        splits = reconcile_year_splits(
            total,
            split_leave_by_year(
                data.start_date, data.end_date, data.time_slot,
                holidays, saturdays, work_hours, **kwargs,
            ),
        )
        return DurationPreviewOut(
            total_days=total,
            year_splits=splits,
            display=format_leave_days(total, work_hours),
            work_hours_per_day=work_hours,
        )

    # ─────────────────────────────────────────────────────────────────
    # Apply Leave
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def apply_leave(
        db: AsyncSession,
        employee_id: uuid.UUID,
        data: LeaveRequestCreate,
        *,
        quotas: Optional[QuotaSettingsCache] = None,
        today: Optional[date] = None,
    ) -> LeaveRequestOut:
        """Apply for leave with full validation:
        - Hourly leave: valid time range on a working day
        - Single-day leave not on a holiday
        - No overlapping pending/approved leaves
        - Tenure and advance-notice rules
        - Medical certificate for long sick leave
        - Non-zero duration and sufficient balance (reserved immediately)
        """
        quotas = quotas or uncached_quotas()
        today = today or date.today()

        employee = await EmployeeService.get_active_employee(db, employee_id)

        # ── Calendar facts ──────────────────────────────────────────
        provider = CalendarFactsProvider(db, employee.company_id)
        holiday_rows = await provider.get_holiday_rows(data.start_date, data.end_date)
        holidays = {h.date for h in holiday_rows}
        saturdays = await provider.get_working_saturdays(data.start_date, data.end_date)
        work_hours = await provider.get_work_hours_per_day()

        # ── Hourly leave checks ─────────────────────────────────────
        if data.time_slot == TimeSlot.hourly:
            error = validate_time_range(data.start_time, data.end_time)
            if error:
                raise ValidationException({"end_time": [error]})

            weekday = data.start_date.weekday()
            if weekday == 6:
                raise ValidationException(
                    {"start_date": ["Hourly leave cannot be taken on a Sunday."]}
                )
            if weekday == 5 and data.start_date not in {s.date for s in saturdays}:
                raise ValidationException(
                    {"start_date": [
                        f"{data.start_date.isoformat()} is not a working Saturday."
                    ]}
                )

        # ── Single day on a holiday ─────────────────────────────────
        if data.start_date == data.end_date and holiday_rows:
            raise ValidationException(
                {"start_date": [
                    f"{data.start_date.isoformat()} is a holiday "
                    f"({holiday_rows[0].name})."
                ]}
            )

        # ── Overlapping leaves ──────────────────────────────────────
        overlap = await db.execute(
            select(LeaveRequest.id)
            .where(
                LeaveRequest.employee_id == employee_id,
                LeaveRequest.status.in_(ACTIVE_STATUSES),
                LeaveRequest.start_date <= data.end_date,
                LeaveRequest.end_date >= data.start_date,
            )
            .limit(1)
        )
        if overlap.scalar() is not None:
            raise ValidationException(
                {"dates": [
                    "You already have a pending or approved leave request "
                    "overlapping with these dates."
                ]}
            )

        # ── Policy rules ────────────────────────────────────────────
        if data.leave_type in UNTRACKED_LEAVE_TYPES:
            quota = await quotas.get(db, data.leave_type)
        else:
            quota = await quotas.require(db, data.leave_type)

        if quota is not None and quota.min_tenure_years:
            tenure = completed_years(employee.start_date, today)
            if tenure < quota.min_tenure_years:
                raise ValidationException(
                    {"leave_type": [
                        f"{data.leave_type.value} leave requires at least "
                        f"{quota.min_tenure_years} year(s) of service."
                    ]}
                )

        if data.leave_type == LeaveType.vacation:
            advance_days = await CalendarService.get_advance_notice_days(db)
            if (data.start_date - today).days < advance_days:
                raise ValidationException(
                    {"start_date": [
                        f"Vacation leave requires at least {advance_days} "
                        "day(s) advance notice."
                    ]}
                )

        # ── Duration ────────────────────────────────────────────────
        kwargs = dict(start_time=data.start_time, end_time=data.end_time)
        total = calculate_leave_days(
            data.start_date, data.end_date, data.time_slot,
            holidays, saturdays, work_hours, **kwargs,
        )
        if total <= 0:
            raise ValidationException(
                {"dates": [
                    "No working days found in the selected range "
                    "(all days may be weekends or holidays)."
                ]}
            )

        if (
            data.leave_type == LeaveType.sick
            and quota is not None
            and quota.medical_cert_threshold_days is not None
            and total >= quota.medical_cert_threshold_days
            and not data.has_medical_certificate
        ):
            raise ValidationException(
                {"has_medical_certificate": [
                    f"Sick leave of {quota.medical_cert_threshold_days} day(s) "
                    "or more requires a medical certificate."
                ]}
            )

        splits = reconcile_year_splits(
            total,
            split_leave_by_year(
                data.start_date, data.end_date, data.time_slot,
                holidays, saturdays, work_hours, **kwargs,
            ),
        )

        # ── Reserve balance ─────────────────────────────────────────
        # Whole total is checked against the start year's row only.
        await BalanceLedger.reserve(
            db,
            employee_id,
            data.leave_type,
            splits,
            total,
            data.start_date.year,
            quotas,
        )

        # ── Create leave request ────────────────────────────────────
        leave_request = LeaveRequest(
            employee_id=employee_id,
            leave_type=data.leave_type,
            start_date=data.start_date,
            end_date=data.end_date,
            time_slot=data.time_slot,
            start_time=data.start_time if data.time_slot == TimeSlot.hourly else None,
            end_time=data.end_time if data.time_slot == TimeSlot.hourly else None,
            usage_amount=total,
            reason=data.reason,
            status=LeaveStatus.pending,
            has_medical_certificate=data.has_medical_certificate,
            medical_certificate_file=data.medical_certificate_file,
            year_splits=[
                LeaveRequestYearSplit(year=year, usage_amount=amount)
                for year, amount in splits.items()
            ],
        )
        db.add(leave_request)
        await db.flush()

        # ── Audit ───────────────────────────────────────────────────
        await create_audit_entry(
            db,
            action="create",
            entity_type="leave_request",
            entity_id=leave_request.id,
            actor_id=employee_id,
            new_values={
                "leave_type": data.leave_type.value,
                "start_date": data.start_date.isoformat(),
                "end_date": data.end_date.isoformat(),
                "time_slot": data.time_slot.value,
                "usage_amount": str(total),
                "year_splits": {str(y): str(a) for y, a in splits.items()},
            },
        )
        logger.info(
            "Leave request %s created for %s: %s %s..%s (%s day(s))",
            leave_request.id, employee_id, data.leave_type.value,
            data.start_date, data.end_date, total,
        )

        # ── Notify approvers ────────────────────────────────────────
        if employee.manager_id is not None:
            delegates = await DelegateService.get_active_delegates(
                db, employee.manager_id, on_date=today,
            )
            await notify_leave_request(
                db, leave_request, employee.full_name,
                [employee.manager_id, *delegates],
            )

        return LeaveService._build_request_response(leave_request, employee=employee)

    # ─────────────────────────────────────────────────────────────────
    # Approve Leave
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def approve_leave(
        db: AsyncSession,
        request_id: uuid.UUID,
        reviewer: Employee,
    ) -> LeaveRequestOut:
        """Approve a pending request. The balance was reserved at creation."""
        leave_req = await LeaveService._load_request(db, request_id)
        await LeaveService._assert_can_review(db, reviewer, leave_req)

        if leave_req.status != LeaveStatus.pending:
            raise StatusConflictException(
                "LeaveRequest", leave_req.id, leave_req.status.value,
            )

        await LeaveService._transition(
            db,
            leave_req,
            (LeaveStatus.pending,),
            status=LeaveStatus.approved,
            approver_id=reviewer.id,
            approved_at=datetime.now(timezone.utc),
        )

        await create_audit_entry(
            db,
            action="approve",
            entity_type="leave_request",
            entity_id=leave_req.id,
            actor_id=reviewer.id,
            old_values={"status": LeaveStatus.pending.value},
            new_values={"status": LeaveStatus.approved.value},
        )
        logger.info("Leave request %s approved by %s", leave_req.id, reviewer.id)

        await notify_leave_approved(db, leave_req)

        return LeaveService._build_request_response(leave_req, employee=leave_req.employee)

    # ─────────────────────────────────────────────────────────────────
    # Reject Leave
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def reject_leave(
        db: AsyncSession,
        request_id: uuid.UUID,
        reviewer: Employee,
        reason: str,
        *,
        quotas: Optional[QuotaSettingsCache] = None,
    ) -> LeaveRequestOut:
        """Reject a pending request and refund its reservation."""
        quotas = quotas or uncached_quotas()

        reason = (reason or "").strip()
        if not reason:
            raise ValidationException({"reason": ["A rejection reason is required."]})

        leave_req = await LeaveService._load_request(db, request_id)
        await LeaveService._assert_can_review(db, reviewer, leave_req)

        if leave_req.status != LeaveStatus.pending:
            raise StatusConflictException(
                "LeaveRequest", leave_req.id, leave_req.status.value,
            )

        await LeaveService._transition(
            db,
            leave_req,
            (LeaveStatus.pending,),
            status=LeaveStatus.rejected,
            approver_id=reviewer.id,
            rejection_reason=reason,
        )
        await LeaveService._refund(db, leave_req, quotas)

        await create_audit_entry(
            db,
            action="reject",
            entity_type="leave_request",
            entity_id=leave_req.id,
            actor_id=reviewer.id,
            old_values={"status": LeaveStatus.pending.value},
            new_values={"status": LeaveStatus.rejected.value, "reason": reason},
        )
        logger.info("Leave request %s rejected by %s", leave_req.id, reviewer.id)

        await notify_leave_rejected(db, leave_req, reason)

        return LeaveService._build_request_response(leave_req, employee=leave_req.employee)

    # ─────────────────────────────────────────────────────────────────
    # Cancel Leave
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def cancel_leave(
        db: AsyncSession,
        request_id: uuid.UUID,
        actor: Employee,
        reason: Optional[str] = None,
        *,
        quotas: Optional[QuotaSettingsCache] = None,
    ) -> LeaveRequestOut:
        """Cancel a request and refund its reservation.

        The owner may cancel while pending; HR/Admin may also cancel an
        approved request.  Cancelling twice is a conflict and refunds once.
        """
        quotas = quotas or uncached_quotas()

        leave_req = await LeaveService._load_request(db, request_id)
        is_owner = leave_req.employee_id == actor.id

        if actor.is_hr:
            allowed: tuple[LeaveStatus, ...] = (LeaveStatus.pending, LeaveStatus.approved)
        elif is_owner:
            allowed = (LeaveStatus.pending,)
        else:
            raise ForbiddenException("You can only cancel your own leave requests.")

        if leave_req.status not in allowed:
            if leave_req.status == LeaveStatus.approved:
                raise ForbiddenException(
                    "Approved leave can only be cancelled by HR."
                )
            raise StatusConflictException(
                "LeaveRequest", leave_req.id, leave_req.status.value,
            )

        old_status = leave_req.status
        await LeaveService._transition(
            db,
            leave_req,
            allowed,
            status=LeaveStatus.cancelled,
            cancelled_by=actor.id,
            cancelled_at=datetime.now(timezone.utc),
        )
        await LeaveService._refund(db, leave_req, quotas)

        await create_audit_entry(
            db,
            action="cancel",
            entity_type="leave_request",
            entity_id=leave_req.id,
            actor_id=actor.id,
            old_values={"status": old_status.value},
            new_values={"status": LeaveStatus.cancelled.value, "reason": reason},
        )
        logger.info(
            "Leave request %s cancelled by %s (was %s)",
            leave_req.id, actor.id, old_status.value,
        )

        owner = leave_req.employee
        if not is_owner:
            await notify_leave_cancelled(db, leave_req)
        if owner.manager_id is not None and owner.manager_id != actor.id:
            await notify_manager_of_cancellation(db, leave_req, owner, reason)

        return LeaveService._build_request_response(leave_req, employee=owner)

    # ─────────────────────────────────────────────────────────────────
    # List Leave Requests
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def _team_member_ids(db: AsyncSession, approver: Employee) -> list[uuid.UUID]:
        """Direct reports plus reports of managers who delegated to *approver*."""
        manager_ids = [approver.id]
        manager_ids += await DelegateService.get_delegating_managers(db, approver.id)
        member_ids = await EmployeeService.get_direct_report_ids(db, manager_ids)
        return [m for m in member_ids if m != approver.id]

    @staticmethod
    async def get_leave_requests(
        db: AsyncSession,
        *,
        requestor: Employee,
        pagination: PaginationParams,
        scope: str = "my",
        employee_id: Optional[uuid.UUID] = None,
        status: Optional[LeaveStatus] = None,
        leave_type: Optional[LeaveType] = None,
        from_date: Optional[date] = None,
        to_date: Optional[date] = None,
    ) -> PaginatedResponse[LeaveRequestOut]:
        """List leave requests with pagination and filters.

        Scopes:
          - my: own requests only
          - team: direct reports (and delegated teams) of requestor
          - all: all requests (HR/Admin only)
        """
        query = (
            select(LeaveRequest)
            .options(selectinload(LeaveRequest.employee))
            .order_by(LeaveRequest.created_at.desc())
        )

        if scope == "my":
            query = query.where(LeaveRequest.employee_id == requestor.id)
        elif scope == "team":
            member_ids = await LeaveService._team_member_ids(db, requestor)
            query = query.where(LeaveRequest.employee_id.in_(member_ids))
        elif scope == "all":
            if not requestor.is_hr:
                raise ForbiddenException("Only HR can list all leave requests.")
        else:
            raise ValidationException({"scope": [f"Unknown scope '{scope}'."]})

        if employee_id:
            query = query.where(LeaveRequest.employee_id == employee_id)
        if status:
            query = query.where(LeaveRequest.status == status)
        if leave_type:
            query = query.where(LeaveRequest.leave_type == leave_type)
        if from_date:
            query = query.where(LeaveRequest.end_date >= from_date)
        if to_date:
            query = query.where(LeaveRequest.start_date <= to_date)

        rows, meta = await paginate(db, query, pagination, model=LeaveRequest)
        return PaginatedResponse[LeaveRequestOut](
            data=[
                LeaveService._build_request_response(r, employee=r.employee)
                for r in rows
            ],
            meta=meta,
        )

    # ─────────────────────────────────────────────────────────────────
    # Pending Approvals
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def get_pending_approvals(
        db: AsyncSession,
        approver: Employee,
    ) -> list[LeaveRequestOut]:
        """Pending requests *approver* may act on, oldest first."""
        query = (
            select(LeaveRequest)
            .where(
                LeaveRequest.status == LeaveStatus.pending,
                LeaveRequest.employee_id != approver.id,
            )
            .options(selectinload(LeaveRequest.employee))
            .order_by(LeaveRequest.created_at.asc())
        )
        if not approver.is_hr:
            member_ids = await LeaveService._team_member_ids(db, approver)
            if not member_ids:
                return []
            query = query.where(LeaveRequest.employee_id.in_(member_ids))

        result = await db.execute(query)
        return [
            LeaveService._build_request_response(r, employee=r.employee)
            for r in result.scalars().all()
        ]

    # ─────────────────────────────────────────────────────────────────
    # Balances
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def get_balances(
        db: AsyncSession,
        employee: Employee,
        year: int,
        *,
        quotas: Optional[QuotaSettingsCache] = None,
    ) -> list[LeaveBalanceOut]:
        """Balances for every tracked leave type, seeding missing rows."""
        quotas = quotas or uncached_quotas()
        work_hours = await CalendarFactsProvider(db, employee.company_id).get_work_hours_per_day()

        output: list[LeaveBalanceOut] = []
        all_quotas = await quotas.get_all(db)
        for leave_type in sorted(all_quotas, key=lambda lt: lt.value):
            quota = all_quotas[leave_type]
            if not quota.is_balance_tracked or leave_type in UNTRACKED_LEAVE_TYPES:
                continue
            balance = await BalanceLedger.get_or_create_balance(
                db, employee.id, leave_type, year, quotas,
            )
            out = LeaveBalanceOut.model_validate(balance)
            out.remaining_display = format_leave_days(balance.remaining, work_hours)
            output.append(out)
        return output

    # ─────────────────────────────────────────────────────────────────
    # Quota settings
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def list_quotas(
        db: AsyncSession,
        quotas: QuotaSettingsCache,
    ) -> list[QuotaSettingOut]:
        all_quotas = await quotas.get_all(db)
        return [all_quotas[lt] for lt in sorted(all_quotas, key=lambda lt: lt.value)]

    @staticmethod
    async def update_quota(
        db: AsyncSession,
        leave_type: LeaveType,
        data: QuotaSettingUpdate,
        actor_id: uuid.UUID,
        quotas: QuotaSettingsCache,
    ) -> QuotaSettingOut:
        """Create or update the quota for *leave_type* and drop cached copies."""
        setting = await db.get(LeaveQuotaSetting, leave_type)
        changes = data.model_dump(exclude_unset=True)
        old_values = (
            QuotaSettingOut.model_validate(setting).model_dump(mode="json")
            if setting is not None
            else None
        )

        if setting is None:
            if "default_days" not in changes:
                raise ValidationException(
                    {"default_days": ["Required when creating a quota setting."]}
                )
            setting = LeaveQuotaSetting(leave_type=leave_type)
            db.add(setting)
        for field, value in changes.items():
            setattr(setting, field, value)
        await db.flush()

        quotas.invalidate()

        await create_audit_entry(
            db,
            action="update",
            entity_type="leave_quota_setting",
            actor_id=actor_id,
            old_values=old_values,
            new_values={"leave_type": leave_type.value, **{
                k: str(v) if v is not None else None for k, v in changes.items()
            }},
        )
        logger.info("Quota for %s updated: %s", leave_type.value, changes)
        return QuotaSettingOut.model_validate(setting)
