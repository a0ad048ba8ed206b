# ruff: noqa: B008, TC001, TC003
from __future__ import annotations

import uuid
from datetime import date

from fastapi import APIRouter, Query

from leave_core.api.deps import AuditDep, PrivilegedDep, parse_date_range
from leave_core.schemas.audit import AuditLogFilters, AuditLogListResponse

audit_logs_router = APIRouter(prefix="/audit-logs", tags=["audit-logs"])


@audit_logs_router.get("", response_model=AuditLogListResponse)
async def list_audit_logs(
    audit: AuditDep,
    _auth: PrivilegedDep,
    user_id: uuid.UUID | None = Query(default=None),
    action: str | None = Query(default=None),
    resource_type: str | None = Query(default=None),
    resource_id: str | None = Query(default=None),
    start: date | None = Query(default=None),
    end: date | None = Query(default=None),
) -> AuditLogListResponse:
    """List audit entries, newest first (admin/hr only)."""
    date_range = parse_date_range(start, end)
    filters = AuditLogFilters(
        user_id=user_id,
        action=action,
        resource_type=resource_type,
        resource_id=resource_id,
        date_range=date_range,
    )
    return await audit.list_logs(filters)
