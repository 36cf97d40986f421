"""Notification service — the leave inbox and the workflow messages that fill it."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Iterable, Optional

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from leavedesk.common.constants import NotificationType
from leavedesk.common.exceptions import ForbiddenException, NotFoundException
from leavedesk.common.pagination import PaginationParams, paginate
from leavedesk.notifications.models import Notification
from leavedesk.notifications.schemas import InboxMeta, InboxPage, LeaveNotificationOut

if TYPE_CHECKING:
    from leavedesk.core_hr.models import Employee
    from leavedesk.leave.models import LeaveRequest

LEAVE_REQUEST_ENTITY = "leave_request"


def leave_request_link(leave_request_id: uuid.UUID) -> str:
    return f"/leave/requests/{leave_request_id}"


def build_notification_out(notification: Notification) -> LeaveNotificationOut:
    is_leave = notification.entity_type == LEAVE_REQUEST_ENTITY
    return LeaveNotificationOut(
        id=notification.id,
        type=notification.type,
        title=notification.title,
        message=notification.message,
        leave_request_id=notification.entity_id if is_leave else None,
        link=notification.action_url,
        is_read=notification.is_read,
        read_at=notification.read_at,
        created_at=notification.created_at,
    )


class NotificationService:
    """Per-employee inbox of leave workflow messages."""

    @staticmethod
    async def send(
        db: AsyncSession,
        leave_request: LeaveRequest,
        *,
        recipient_id: uuid.UUID,
        type: NotificationType,
        title: str,
        message: str,
    ) -> Notification:
        """Queue a message about *leave_request* in the same transaction."""
        notification = Notification(
            recipient_id=recipient_id,
            type=type,
            title=title,
            message=message,
            action_url=leave_request_link(leave_request.id),
            entity_type=LEAVE_REQUEST_ENTITY,
            entity_id=leave_request.id,
        )
        db.add(notification)
        await db.flush()
        return notification

    @staticmethod
    async def get_inbox(
        db: AsyncSession,
        employee_id: uuid.UUID,
        pagination: PaginationParams,
        *,
        unread_only: bool = False,
        notification_type: Optional[NotificationType] = None,
        leave_request_id: Optional[uuid.UUID] = None,
    ) -> InboxPage:
        """Newest first, optionally narrowed to unread, one type, or one request."""
        query = (
            select(Notification)
            .where(Notification.recipient_id == employee_id)
            .order_by(Notification.created_at.desc())
        )
        if unread_only:
            query = query.where(Notification.is_read.is_(False))
        if notification_type is not None:
            query = query.where(Notification.type == notification_type)
        if leave_request_id is not None:
            query = query.where(
                Notification.entity_type == LEAVE_REQUEST_ENTITY,
                Notification.entity_id == leave_request_id,
            )

        rows, meta = await paginate(db, query, pagination, model=Notification)
        unread = await NotificationService.unread_count(db, employee_id)

        return InboxPage(
            data=[build_notification_out(n) for n in rows],
            meta=InboxMeta(**meta.model_dump(), unread=unread),
        )

    @staticmethod
    async def unread_count(db: AsyncSession, employee_id: uuid.UUID) -> int:
        result = await db.execute(
            select(func.count())
            .select_from(Notification)
            .where(
                Notification.recipient_id == employee_id,
                Notification.is_read.is_(False),
            )
        )
        return result.scalar_one()

    @staticmethod
    async def mark_read(
        db: AsyncSession,
        notification_id: uuid.UUID,
        employee_id: uuid.UUID,
    ) -> Notification:
        notification = await db.get(Notification, notification_id)
        if notification is None:
            raise NotFoundException("Notification", str(notification_id))
        if notification.recipient_id != employee_id:
            raise ForbiddenException("You can only mark your own notifications as read.")

        if not notification.is_read:
            notification.is_read = True
            notification.read_at = datetime.now(timezone.utc)
            await db.flush()
        return notification

    @staticmethod
    async def _mark_unread_as_read(db: AsyncSession, employee_id: uuid.UUID, *criteria) -> int:
        result = await db.execute(
            update(Notification)
            .where(
                Notification.recipient_id == employee_id,
                Notification.is_read.is_(False),
                *criteria,
            )
            .values(is_read=True, read_at=datetime.now(timezone.utc))
            .execution_options(synchronize_session=False)
        )
        return result.rowcount  # type: ignore[return-value]

    @staticmethod
    async def mark_all_read(db: AsyncSession, employee_id: uuid.UUID) -> int:
        return await NotificationService._mark_unread_as_read(db, employee_id)

    @staticmethod
    async def mark_request_read(
        db: AsyncSession,
        employee_id: uuid.UUID,
        leave_request_id: uuid.UUID,
    ) -> int:
        """Clear every unread message about one leave request (opening it in the UI)."""
        return await NotificationService._mark_unread_as_read(
            db,
            employee_id,
            Notification.entity_type == LEAVE_REQUEST_ENTITY,
            Notification.entity_id == leave_request_id,
        )


# ── Leave workflow dispatchers ──────────────────────────────────────
# Called by the leave service inside the same transaction as the
# status change they announce.


def _period(leave_request: LeaveRequest) -> str:
    if leave_request.start_date == leave_request.end_date:
        return f"on {leave_request.start_date}"
    return f"from {leave_request.start_date} to {leave_request.end_date}"


async def notify_leave_request(
    db: AsyncSession,
    leave_request: LeaveRequest,
    requester_name: str,
    approver_ids: Iterable[uuid.UUID],
) -> list[Notification]:
    """Tell every approver (manager and active delegates) a request awaits them."""
    sent: list[Notification] = []
    seen: set[uuid.UUID] = set()
    for approver_id in approver_ids:
        if approver_id in seen or approver_id == leave_request.employee_id:
            continue
        seen.add(approver_id)
        sent.append(
            await NotificationService.send(
                db,
                leave_request,
                recipient_id=approver_id,
                type=NotificationType.action_required,
                title="New Leave Request",
                message=(
                    f"{requester_name} requested {leave_request.leave_type.value} leave "
                    f"{_period(leave_request)} ({leave_request.usage_amount} day(s))."
                ),
            )
        )
    return sent


async def notify_leave_approved(
    db: AsyncSession,
    leave_request: LeaveRequest,
) -> Notification:
    return await NotificationService.send(
        db,
        leave_request,
        recipient_id=leave_request.employee_id,
        type=NotificationType.approval,
        title="Leave Request Approved",
        message=f"Your leave request {_period(leave_request)} has been approved.",
    )


async def notify_leave_rejected(
    db: AsyncSession,
    leave_request: LeaveRequest,
    reason: str,
) -> Notification:
    return await NotificationService.send(
        db,
        leave_request,
        recipient_id=leave_request.employee_id,
        type=NotificationType.rejection,
        title="Leave Request Rejected",
        message=(
            f"Your leave request {_period(leave_request)} was rejected. "
            f"Reason: {reason}"
        ),
    )


async def notify_leave_cancelled(
    db: AsyncSession,
    leave_request: LeaveRequest,
) -> Notification:
    """Tell the requester that someone else cancelled their leave."""
    return await NotificationService.send(
        db,
        leave_request,
        recipient_id=leave_request.employee_id,
        type=NotificationType.info,
        title="Leave Request Cancelled",
        message=(
            f"Your leave request {_period(leave_request)} was cancelled "
            "and its days returned to your balance."
        ),
    )


async def notify_manager_of_cancellation(
    db: AsyncSession,
    leave_request: LeaveRequest,
    owner: Employee,
    reason: Optional[str] = None,
) -> Notification:
    message = f"{owner.full_name}'s leave {_period(leave_request)} has been cancelled."
    if reason:
        message += f" Reason: {reason}"
    return await NotificationService.send(
        db,
        leave_request,
        recipient_id=owner.manager_id,
        type=NotificationType.info,
        title="Leave Cancelled",
        message=message,
    )
