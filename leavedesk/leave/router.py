"""Leave router — requests, approvals, balances, quota settings, year-end processing.

All endpoints require authentication. Manager/HR-specific endpoints enforce role checks;
delegates reach the approval endpoints through the service-level authority check.
"""


import uuid
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from leavedesk.auth.dependencies import get_current_user, require_role
from leavedesk.common.constants import LeaveStatus, LeaveType, UserRole
from leavedesk.common.pagination import PaginatedResponse, PaginationParams
from leavedesk.common.rate_limit import limiter
from leavedesk.core_hr.models import Employee
from leavedesk.database import get_db
from leavedesk.dependencies import get_quota_cache
from leavedesk.leave.ledger import BalanceLedger, QuotaSettingsCache
from leavedesk.leave.schemas import (
    DurationPreviewOut,
    DurationPreviewRequest,
    LeaveBalanceOut,
    LeaveCancelRequest,
    LeaveRejectRequest,
    LeaveRequestCreate,
    LeaveRequestOut,
    QuotaSettingOut,
    QuotaSettingUpdate,
    YearEndRequest,
    YearEndSummary,
)
from leavedesk.leave.service import LeaveService

router = APIRouter(prefix="", tags=["leave"])


# ── POST /requests ──────────────────────────────────────────────────

@router.post("/requests", response_model=LeaveRequestOut, status_code=201)
@limiter.limit("20/minute")
async def apply_leave(
    request: Request,
    body: LeaveRequestCreate,
    employee: Employee = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    quotas: QuotaSettingsCache = Depends(get_quota_cache),
):
    """Apply for leave. Validates calendar, overlap, policy and balance, then reserves."""
    return await LeaveService.apply_leave(db, employee.id, body, quotas=quotas)


# ── POST /duration/preview ──────────────────────────────────────────

@router.post("/duration/preview", response_model=DurationPreviewOut)
async def preview_duration(
    body: DurationPreviewRequest,
    employee: Employee = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Working-day count and per-year split for a prospective request."""
    return await LeaveService.preview_duration(db, employee, body)


# ── GET /requests/my ────────────────────────────────────────────────

@router.get("/requests/my", response_model=PaginatedResponse[LeaveRequestOut])
async def my_requests(
    status: Optional[LeaveStatus] = Query(None),
    leave_type: Optional[LeaveType] = Query(None),
    from_date: Optional[date] = Query(None),
    to_date: Optional[date] = Query(None),
    pagination: PaginationParams = Depends(),
    employee: Employee = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await LeaveService.get_leave_requests(
        db,
        requestor=employee,
        pagination=pagination,
        scope="my",
        status=status,
        leave_type=leave_type,
        from_date=from_date,
        to_date=to_date,
    )


# ── GET /requests/pending ───────────────────────────────────────────
# Open to every employee: a delegate may hold the employee role.

@router.get("/requests/pending", response_model=list[LeaveRequestOut])
async def pending_approvals(
    employee: Employee = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Pending requests from the caller's team, delegated teams, or everyone for HR."""
    return await LeaveService.get_pending_approvals(db, employee)


# ── GET /requests ───────────────────────────────────────────────────

@router.get("/requests", response_model=PaginatedResponse[LeaveRequestOut])
async def list_requests(
    scope: str = Query("all", pattern="^(team|all)$"),
    employee_id: Optional[uuid.UUID] = Query(None),
    status: Optional[LeaveStatus] = Query(None),
    leave_type: Optional[LeaveType] = Query(None),
    from_date: Optional[date] = Query(None),
    to_date: Optional[date] = Query(None),
    pagination: PaginationParams = Depends(),
    employee: Employee = Depends(require_role(UserRole.manager)),
    db: AsyncSession = Depends(get_db),
):
    """Team view for managers; company-wide view (scope=all) for HR/Admin."""
    return await LeaveService.get_leave_requests(
        db,
        requestor=employee,
        pagination=pagination,
        scope=scope,
        employee_id=employee_id,
        status=status,
        leave_type=leave_type,
        from_date=from_date,
        to_date=to_date,
    )


# ── PUT /requests/{id}/approve ──────────────────────────────────────

@router.put("/requests/{request_id}/approve", response_model=LeaveRequestOut)
async def approve_leave(
    request_id: uuid.UUID,
    employee: Employee = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Approve a pending leave request. The balance was reserved at creation."""
    return await LeaveService.approve_leave(db, request_id, employee)


# ── PUT /requests/{id}/reject ───────────────────────────────────────

@router.put("/requests/{request_id}/reject", response_model=LeaveRequestOut)
async def reject_leave(
    request_id: uuid.UUID,
    body: LeaveRejectRequest,
    employee: Employee = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    quotas: QuotaSettingsCache = Depends(get_quota_cache),
):
    """Reject a pending leave request and refund its days."""
    return await LeaveService.reject_leave(
        db, request_id, employee, body.reason, quotas=quotas,
    )


# ── PUT /requests/{id}/cancel ───────────────────────────────────────

@router.put("/requests/{request_id}/cancel", response_model=LeaveRequestOut)
async def cancel_leave(
    request_id: uuid.UUID,
    body: Optional[LeaveCancelRequest] = None,
    employee: Employee = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    quotas: QuotaSettingsCache = Depends(get_quota_cache),
):
    """Cancel a leave request (owner while pending, HR also once approved)."""
    return await LeaveService.cancel_leave(
        db, request_id, employee, body.reason if body else None, quotas=quotas,
    )


# ── GET /balances ───────────────────────────────────────────────────

@router.get("/balances", response_model=list[LeaveBalanceOut])
async def get_balances(
    year: Optional[int] = Query(None, description="Leave year; defaults to current year"),
    employee: Employee = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    quotas: QuotaSettingsCache = Depends(get_quota_cache),
):
    return await LeaveService.get_balances(
        db, employee, year or date.today().year, quotas=quotas,
    )


# ── Quota settings ──────────────────────────────────────────────────

@router.get("/quotas", response_model=list[QuotaSettingOut])
async def list_quotas(
    employee: Employee = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    quotas: QuotaSettingsCache = Depends(get_quota_cache),
):
    return await LeaveService.list_quotas(db, quotas)


@router.put("/quotas/{leave_type}", response_model=QuotaSettingOut)
async def update_quota(
    leave_type: LeaveType,
    body: QuotaSettingUpdate,
    employee: Employee = Depends(require_role(UserRole.hr)),
    db: AsyncSession = Depends(get_db),
    quotas: QuotaSettingsCache = Depends(get_quota_cache),
):
    return await LeaveService.update_quota(db, leave_type, body, employee.id, quotas)


# ── Year-end processing ─────────────────────────────────────────────

@router.get("/year-end/preview", response_model=YearEndSummary)
async def preview_year_end(
    from_year: int = Query(..., ge=2000, le=2100),
    to_year: int = Query(..., ge=2000, le=2100),
    employee: Employee = Depends(require_role(UserRole.hr)),
    db: AsyncSession = Depends(get_db),
    quotas: QuotaSettingsCache = Depends(get_quota_cache),
):
    """Balances year-end processing would write, without writing them."""
    return await BalanceLedger.preview_rollover(db, from_year, to_year, quotas)


@router.post("/year-end/execute", response_model=YearEndSummary)
async def execute_year_end(
    body: YearEndRequest,
    employee: Employee = Depends(require_role(UserRole.hr)),
    db: AsyncSession = Depends(get_db),
    quotas: QuotaSettingsCache = Depends(get_quota_cache),
):
    """Roll balances over into the next year, all or nothing."""
    return await BalanceLedger.rollover(
        db,
        body.from_year,
        body.to_year,
        quotas,
        force_overwrite=body.force_overwrite,
        actor_id=employee.id,
    )
