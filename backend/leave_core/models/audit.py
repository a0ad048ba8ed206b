# ruff: noqa: TC003
from __future__ import annotations

import uuid
from typing import Any

import sqlalchemy as sa
from sqlmodel import Field

from leave_core.models.base import TimestampMixin, UUIDBase


class AuditLog(UUIDBase, TimestampMixin, table=True):
    """Append-only record of a state-changing action."""

    __tablename__ = "audit_logs"
    __table_args__ = (sa.Index("ix_audit_resource", "resource_type", "resource_id"),)

    user_id: uuid.UUID = Field(index=True)
    action: str = Field(max_length=50, index=True)
    resource_type: str = Field(max_length=50)
    resource_id: str = Field(max_length=64)
    details: dict[str, Any] = Field(default_factory=dict, sa_type=sa.JSON)
    ip_address: str | None = Field(default=None, max_length=64)
    user_agent: str | None = None
