# ruff: noqa: B008, TC003
from __future__ import annotations

import uuid
from datetime import date
from typing import Annotated

from fastapi import Depends, Header, Request

from leave_core.db import SessionDep
from leave_core.exceptions import ForbiddenError, LeaveValidationError
from leave_core.models.enums import UserRole
from leave_core.schemas.auth import AuthContext
from leave_core.schemas.request import DateRange
from leave_core.services.audit import AuditRecorder
from leave_core.services.balance import LeaveBalanceLedger
from leave_core.services.notification import NotificationDispatcher
from leave_core.services.request import LeaveRequestLifecycleService, build_lifecycle_service


async def get_auth_context(
    request: Request,
    x_user_id: uuid.UUID = Header(),
    x_role: UserRole = Header(default=UserRole.EMPLOYEE),
    x_department: str | None = Header(default=None),
    x_manager_id: uuid.UUID | None = Header(default=None),
) -> AuthContext:
    """Extract dev auth context from request headers."""
    return AuthContext(
        user_id=x_user_id,
        role=x_role,
        department=x_department,
        manager_id=x_manager_id,
        ip_address=request.client.host if request.client else None,
        user_agent=request.headers.get("user-agent"),
    )


AuthDep = Annotated[AuthContext, Depends(get_auth_context)]


def parse_date_range(start: date | None, end: date | None) -> DateRange | None:
    """Build an optional date-window filter from ``start``/``end`` query parameters.

    Both bounds must be given together, in order.
    """
    if start is None and end is None:
        return None
    if start is None or end is None:
        msg = "start and end must be given together"
        raise LeaveValidationError(msg)
    if end < start:
        msg = "end must not be before start"
        raise LeaveValidationError(msg)
    return DateRange(start=start, end=end)


async def require_privileged(
    auth: AuthDep,
) -> AuthContext:
    """Require the admin or hr role for the request."""
    if not auth.is_privileged:
        raise ForbiddenError("Admin or HR access required")
    return auth


PrivilegedDep = Annotated[AuthContext, Depends(require_privileged)]


async def get_lifecycle_service(session: SessionDep) -> LeaveRequestLifecycleService:
    """Wire a lifecycle service around the request's session."""
    return build_lifecycle_service(session)


LifecycleDep = Annotated[LeaveRequestLifecycleService, Depends(get_lifecycle_service)]


async def get_ledger(session: SessionDep) -> LeaveBalanceLedger:
    return LeaveBalanceLedger(session)


LedgerDep = Annotated[LeaveBalanceLedger, Depends(get_ledger)]


async def get_notification_dispatcher(session: SessionDep) -> NotificationDispatcher:
    return NotificationDispatcher(session)


NotificationDep = Annotated[NotificationDispatcher, Depends(get_notification_dispatcher)]


async def get_audit_recorder(session: SessionDep) -> AuditRecorder:
    return AuditRecorder(session)


AuditDep = Annotated[AuditRecorder, Depends(get_audit_recorder)]
