"""Common module — shared utilities for LeaveDesk."""

from leavedesk.common.audit import AuditTrail, create_audit_entry
from leavedesk.common.constants import (
    ACTIVE_STATUSES,
    DEFAULT_PAGE_SIZE,
    HALF_DAY_SLOTS,
    HR_ROLES,
    MAX_PAGE_SIZE,
    UNTRACKED_LEAVE_TYPES,
    HolidayType,
    LeaveStatus,
    LeaveType,
    NotificationType,
    TimeSlot,
    UserRole,
)
from leavedesk.common.exceptions import (
    AppException,
    CalendarUnavailableException,
    ConflictError,
    ForbiddenException,
    InsufficientBalanceException,
    NotFoundException,
    QuotaNotConfiguredException,
    ServiceUnavailableException,
    StatusConflictException,
    ValidationException,
    YearAlreadyProcessedException,
    register_exception_handlers,
)
from leavedesk.common.pagination import (
    PaginatedResponse,
    PaginationMeta,
    PaginationParams,
    paginate,
)

__all__ = [
    # Audit
    "AuditTrail",
    "create_audit_entry",
    # Constants / Enums
    "HolidayType",
    "LeaveStatus",
    "LeaveType",
    "NotificationType",
    "TimeSlot",
    "UserRole",
    "ACTIVE_STATUSES",
    "HALF_DAY_SLOTS",
    "HR_ROLES",
    "UNTRACKED_LEAVE_TYPES",
    "DEFAULT_PAGE_SIZE",
    "MAX_PAGE_SIZE",
    # Exceptions
    "AppException",
    "CalendarUnavailableException",
    "ConflictError",
    "ForbiddenException",
    "InsufficientBalanceException",
    "NotFoundException",
    "QuotaNotConfiguredException",
    "ServiceUnavailableException",
    "StatusConflictException",
    "ValidationException",
    "YearAlreadyProcessedException",
    "register_exception_handlers",
    # Pagination
    "PaginatedResponse",
    "PaginationMeta",
    "PaginationParams",
    "paginate",
]
