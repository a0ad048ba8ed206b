from __future__ import annotations

import enum


class LeaveType(enum.StrEnum):
    """Category of time off being requested."""

    VACATION = "vacation"
    SICK = "sick"
    PERSONAL = "personal"
    MATERNITY = "maternity"
    PATERNITY = "paternity"
    BEREAVEMENT = "bereavement"
    UNPAID = "unpaid"
    OTHER = "other"


class LeaveStatus(enum.StrEnum):
    """State machine for leave requests."""

    DRAFT = "draft"
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    CANCELLED = "cancelled"


# States from which approve/reject/cancel may move a request.
OPEN_STATUSES: frozenset[LeaveStatus] = frozenset({LeaveStatus.DRAFT, LeaveStatus.PENDING})


class HalfDayType(enum.StrEnum):
    """Which half of the day a half-day request covers."""

    MORNING = "morning"
    AFTERNOON = "afternoon"


class UserRole(enum.StrEnum):
    """Roles recognised by the access scope resolver."""

    EMPLOYEE = "employee"
    SUPERVISOR = "supervisor"
    ADMIN = "admin"
    HR = "hr"


class NotificationType(enum.StrEnum):
    """Severity shown alongside a notification."""

    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


class AuditAction(enum.StrEnum):
    """Action recorded in the audit log."""

    CREATE_LEAVE_REQUEST = "CREATE_LEAVE_REQUEST"
    UPDATE_LEAVE_REQUEST = "UPDATE_LEAVE_REQUEST"
    SUBMIT_LEAVE_REQUEST = "SUBMIT_LEAVE_REQUEST"
    APPROVE_LEAVE_REQUEST = "APPROVE_LEAVE_REQUEST"
    REJECT_LEAVE_REQUEST = "REJECT_LEAVE_REQUEST"
    CANCEL_LEAVE_REQUEST = "CANCEL_LEAVE_REQUEST"
    SOFT_DELETE_LEAVE_REQUEST = "SOFT_DELETE_LEAVE_REQUEST"
    RESTORE_LEAVE_REQUEST = "RESTORE_LEAVE_REQUEST"
    BULK_UPDATE_LEAVE_REQUEST = "BULK_UPDATE_LEAVE_REQUEST"


class AuditResourceType(enum.StrEnum):
    """Resource type recorded in the audit log."""

    LEAVE_REQUEST = "leave_request"
    LEAVE_BALANCE = "leave_balance"
