"""Inbox schemas — leave workflow notifications as the UI renders them."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from leavedesk.common.constants import NotificationType
from leavedesk.common.pagination import PaginationMeta


class LeaveNotificationOut(BaseModel):
    id: uuid.UUID
    type: NotificationType
    title: str
    message: str
    leave_request_id: Optional[uuid.UUID] = None
    link: Optional[str] = None
    is_read: bool
    read_at: Optional[datetime] = None
    created_at: datetime


class InboxMeta(PaginationMeta):
    unread: int


class InboxPage(BaseModel):
    """One page of the caller's inbox; ``meta.unread`` ignores the filters."""

    data: list[LeaveNotificationOut]
    meta: InboxMeta


class InboxCount(BaseModel):
    count: int
