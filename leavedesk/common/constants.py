"""Enums and constants for LeaveDesk — matching PostgreSQL ENUM types."""

from __future__ import annotations

import enum


# ── Auth / Roles ────────────────────────────────────────────────────

class UserRole(str, enum.Enum):
    employee = "employee"
    manager = "manager"
    hr = "hr"
    admin = "admin"


HR_ROLES: frozenset[UserRole] = frozenset({UserRole.hr, UserRole.admin})


# ── Leave ───────────────────────────────────────────────────────────

class LeaveType(str, enum.Enum):
    vacation = "vacation"
    sick = "sick"
    personal = "personal"
    maternity = "maternity"
    military = "military"
    ordination = "ordination"
    sterilization = "sterilization"
    training = "training"
    other = "other"


# Leave types never checked against or deducted from a balance.
UNTRACKED_LEAVE_TYPES: frozenset[LeaveType] = frozenset({LeaveType.other})


class LeaveStatus(str, enum.Enum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"
    cancelled = "cancelled"


ACTIVE_STATUSES: tuple[LeaveStatus, ...] = (LeaveStatus.pending, LeaveStatus.approved)


class TimeSlot(str, enum.Enum):
    full_day = "full_day"
    half_morning = "half_morning"
    half_afternoon = "half_afternoon"
    hourly = "hourly"


HALF_DAY_SLOTS: frozenset[TimeSlot] = frozenset(
    {TimeSlot.half_morning, TimeSlot.half_afternoon}
)


# ── Calendar ────────────────────────────────────────────────────────

class HolidayType(str, enum.Enum):
    public = "public"
    special = "special"


# ── Notifications ───────────────────────────────────────────────────

class NotificationType(str, enum.Enum):
    info = "info"
    action_required = "action_required"
    approval = "approval"
    rejection = "rejection"


# ── System setting keys ─────────────────────────────────────────────

SETTING_WORK_HOURS_PER_DAY = "WORK_HOURS_PER_DAY"
SETTING_LEAVE_ADVANCE_DAYS = "LEAVE_ADVANCE_DAYS"

# ── Misc constants ──────────────────────────────────────────────────

TIME_FORMAT = "%H:%M"
MAX_PAGE_SIZE = 100
DEFAULT_PAGE_SIZE = 50
MAX_REQUEST_SPAN_DAYS = 365
