# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import date, datetime

import sqlalchemy as sa
from sqlmodel import Field

from leave_core.models.base import TimestampMixin, UpdatedAtMixin, UUIDBase
from leave_core.models.enums import LeaveStatus


class LeaveRequest(UUIDBase, TimestampMixin, UpdatedAtMixin, table=True):
    """An employee's leave request with approval workflow state and a soft-delete marker."""

    __tablename__ = "leave_requests"
    __table_args__ = (
        sa.Index("ix_leave_request_user_status", "user_id", "status"),
        sa.CheckConstraint("end_date >= start_date", name="ck_leave_request_date_order"),
    )

    user_id: uuid.UUID = Field(
        sa_column=sa.Column(sa.Uuid, sa.ForeignKey("users.id"), nullable=False, index=True),
    )
    leave_type: str = Field(max_length=50)
    start_date: date
    end_date: date
    is_half_day: bool = False
    half_day_type: str | None = Field(default=None, max_length=20)
    total_days: float
    reason: str | None = None
    attachments: list[str] | None = Field(default=None, sa_type=sa.JSON)
    status: str = Field(
        default=LeaveStatus.PENDING, max_length=20, index=True, sa_column_kwargs={"server_default": "pending"}
    )
    approver_id: uuid.UUID | None = None
    approved_at: datetime | None = Field(default=None, sa_type=sa.DateTime(timezone=True))  # ty: ignore[invalid-argument-type]
    rejected_at: datetime | None = Field(default=None, sa_type=sa.DateTime(timezone=True))  # ty: ignore[invalid-argument-type]
    rejection_reason: str | None = None
    approval_comments: str | None = None
    deleted_at: datetime | None = Field(default=None, index=True, sa_type=sa.DateTime(timezone=True))  # ty: ignore[invalid-argument-type]
