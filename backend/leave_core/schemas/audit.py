# ruff: noqa: TC001, TC003
from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from leave_core.schemas.request import DateRange


class AuditEntry(BaseModel):
    """Data for one audit log write."""

    user_id: uuid.UUID
    action: str = Field(max_length=50)
    resource_type: str = Field(max_length=50)
    resource_id: str = Field(max_length=64)
    details: dict[str, Any] = Field(default_factory=dict)
    ip_address: str | None = None
    user_agent: str | None = None


class AuditLogResponse(BaseModel):
    """A persisted audit entry, or a synthetic one when the sink rejected the write.

    Synthetic entries have ``id=None`` and ``recorded=False``.
    """

    id: uuid.UUID | None
    user_id: uuid.UUID
    action: str
    resource_type: str
    resource_id: str
    details: dict[str, Any]
    ip_address: str | None
    user_agent: str | None
    created_at: datetime
    recorded: bool = True


class AuditLogFilters(BaseModel):
    """Optional filters for listing audit entries."""

    user_id: uuid.UUID | None = None
    action: str | None = None
    resource_type: str | None = None
    resource_id: str | None = None
    date_range: DateRange | None = None


class AuditLogListResponse(BaseModel):
    """List of audit entries."""

    items: list[AuditLogResponse]
    total: int
