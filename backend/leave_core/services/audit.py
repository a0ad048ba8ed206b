from __future__ import annotations

import logging
import uuid
from datetime import date, datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import col

from leave_core.models.audit import AuditLog
from leave_core.models.base import now_utc
from leave_core.schemas.audit import AuditLogListResponse, AuditLogResponse
from leave_core.services.request_store import day_bounds

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from leave_core.schemas.audit import AuditEntry, AuditLogFilters

logger = logging.getLogger(__name__)


def to_audit_value(value: Any) -> Any:
    """Make a value JSON-safe for the ``details`` column."""
    if isinstance(value, uuid.UUID):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, dict):
        return {k: to_audit_value(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_audit_value(v) for v in value]
    return value


def _build_audit_response(entry: AuditLog) -> AuditLogResponse:
    return AuditLogResponse(
        id=entry.id,
        user_id=entry.user_id,
        action=entry.action,
        resource_type=entry.resource_type,
        resource_id=entry.resource_id,
        details=entry.details,
        ip_address=entry.ip_address,
        user_agent=entry.user_agent,
        created_at=entry.created_at,
    )


class AuditRecorder:
    """Append-only audit trail.

    ``record`` is used as a secondary effect and never raises for sink
    failures; the listing methods are primary operations and propagate.
    """

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def record(self, entry: AuditEntry) -> AuditLogResponse:
        """Persist one entry in its own commit.

        If the sink rejects the write, a synthetic entry with ``recorded=False``
        is returned so callers that keep or display the result never crash.
        """
        row = AuditLog(
            user_id=entry.user_id,
            action=entry.action,
            resource_type=entry.resource_type,
            resource_id=entry.resource_id,
            details=to_audit_value(entry.details),
            ip_address=entry.ip_address,
            user_agent=entry.user_agent,
        )
        try:
            self._session.add(row)
            await self._session.commit()
        except SQLAlchemyError:
            logger.exception(
                "Failed to record audit entry action=%s resource=%s/%s",
                entry.action,
                entry.resource_type,
                entry.resource_id,
            )
            await self._session.rollback()
            return AuditLogResponse(
                id=None,
                user_id=entry.user_id,
                action=entry.action,
                resource_type=entry.resource_type,
                resource_id=entry.resource_id,
                details=entry.details,
                ip_address=entry.ip_address,
                user_agent=entry.user_agent,
                created_at=now_utc(),
                recorded=False,
            )
        return _build_audit_response(row)

    async def list_logs(self, filters: AuditLogFilters | None = None) -> AuditLogListResponse:
        """Audit entries newest first, narrowed by ``filters``."""
        query = select(AuditLog)
        if filters is not None:
            if filters.user_id is not None:
                query = query.where(col(AuditLog.user_id) == filters.user_id)
            if filters.action is not None:
                query = query.where(col(AuditLog.action) == filters.action)
            if filters.resource_type is not None:
                query = query.where(col(AuditLog.resource_type) == filters.resource_type)
            if filters.resource_id is not None:
                query = query.where(col(AuditLog.resource_id) == filters.resource_id)
            if filters.date_range is not None:
                lower, upper = day_bounds(filters.date_range.start, filters.date_range.end)
                query = query.where(col(AuditLog.created_at) >= lower, col(AuditLog.created_at) < upper)

        result = await self._session.execute(query.order_by(col(AuditLog.created_at).desc()))
        items = [_build_audit_response(e) for e in result.scalars().all()]
        return AuditLogListResponse(items=items, total=len(items))

    async def list_for_resource(self, resource_type: str, resource_id: str) -> list[AuditLogResponse]:
        """Entries recorded against one resource, newest first."""
        result = await self._session.execute(
            select(AuditLog)
            .where(col(AuditLog.resource_type) == resource_type, col(AuditLog.resource_id) == resource_id)
            .order_by(col(AuditLog.created_at).desc())
        )
        return [_build_audit_response(e) for e in result.scalars().all()]
