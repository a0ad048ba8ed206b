from sqlmodel import SQLModel

from leave_core.models.audit import AuditLog
from leave_core.models.balance import LeaveBalance
from leave_core.models.base import TimestampMixin, UpdatedAtMixin, UUIDBase
from leave_core.models.enums import (
    AuditAction,
    AuditResourceType,
    HalfDayType,
    LeaveStatus,
    LeaveType,
    NotificationType,
    UserRole,
)
from leave_core.models.notification import Notification
from leave_core.models.request import LeaveRequest
from leave_core.models.user import User

__all__ = [
    "AuditAction",
    "AuditLog",
    "AuditResourceType",
    "HalfDayType",
    "LeaveBalance",
    "LeaveRequest",
    "LeaveStatus",
    "LeaveType",
    "Notification",
    "NotificationType",
    "SQLModel",
    "TimestampMixin",
    "UUIDBase",
    "UpdatedAtMixin",
    "User",
    "UserRole",
]
