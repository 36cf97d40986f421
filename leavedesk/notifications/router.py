"""Inbox router — leave workflow notifications for the signed-in employee."""


import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from leavedesk.auth.dependencies import get_current_user
from leavedesk.common.constants import NotificationType
from leavedesk.common.pagination import PaginationParams
from leavedesk.core_hr.models import Employee
from leavedesk.database import get_db
from leavedesk.notifications.schemas import InboxCount, InboxPage, LeaveNotificationOut
from leavedesk.notifications.service import NotificationService, build_notification_out

router = APIRouter(prefix="", tags=["notifications"])


@router.get("", response_model=InboxPage)
async def inbox(
    unread_only: bool = Query(False),
    type: Optional[NotificationType] = Query(None),
    leave_request_id: Optional[uuid.UUID] = Query(None, description="Messages about one request"),
    pagination: PaginationParams = Depends(),
    employee: Employee = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await NotificationService.get_inbox(
        db,
        employee.id,
        pagination,
        unread_only=unread_only,
        notification_type=type,
        leave_request_id=leave_request_id,
    )


@router.get("/unread-count", response_model=InboxCount)
async def unread_count(
    employee: Employee = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return InboxCount(count=await NotificationService.unread_count(db, employee.id))


@router.put("/read-all", response_model=InboxCount)
async def mark_all_read(
    employee: Employee = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Returns how many messages were newly marked read."""
    return InboxCount(count=await NotificationService.mark_all_read(db, employee.id))


@router.put("/leave-requests/{leave_request_id}/read", response_model=InboxCount)
async def mark_request_read(
    leave_request_id: uuid.UUID,
    employee: Employee = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    count = await NotificationService.mark_request_read(db, employee.id, leave_request_id)
    return InboxCount(count=count)


@router.put("/{notification_id}/read", response_model=LeaveNotificationOut)
async def mark_read(
    notification_id: uuid.UUID,
    employee: Employee = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    notification = await NotificationService.mark_read(db, notification_id, employee.id)
    return build_notification_out(notification)
