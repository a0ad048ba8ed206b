# ruff: noqa: TC001, TC003
from __future__ import annotations

import uuid
from datetime import date, datetime
from typing import Self

from pydantic import BaseModel, ConfigDict, Field, model_validator

from leave_core.models.enums import HalfDayType, LeaveStatus, LeaveType, UserRole

# ---------------------------------------------------------------------------
# Request payloads
# ---------------------------------------------------------------------------


class CreateLeaveRequestPayload(BaseModel):
    """Body for creating a leave request.

    ``total_days`` is accepted for compatibility with existing clients but is
    always recomputed from the date range and half-day flag.
    """

    user_id: uuid.UUID
    leave_type: LeaveType
    start_date: date
    end_date: date
    total_days: float | None = None
    reason: str | None = Field(default=None, max_length=2000)
    is_half_day: bool = False
    half_day_type: HalfDayType | None = None
    attachments: list[str] | None = None
    status: LeaveStatus = LeaveStatus.PENDING


class LeaveRequestPatch(BaseModel):
    """Partial update applied to one request, or to each request of a bulk update.

    Setting ``status`` routes the item through the matching transition
    (pending submits a draft, approved/rejected/cancelled decide it).
    """

    model_config = ConfigDict(extra="forbid")

    leave_type: LeaveType | None = None
    start_date: date | None = None
    end_date: date | None = None
    total_days: float | None = None
    reason: str | None = Field(default=None, max_length=2000)
    is_half_day: bool | None = None
    half_day_type: HalfDayType | None = None
    attachments: list[str] | None = None
    status: LeaveStatus | None = None
    comments: str | None = Field(default=None, max_length=1000)
    rejection_reason: str | None = Field(default=None, max_length=1000)

    def field_updates(self) -> dict[str, object]:
        """Fields that edit the request itself, excluding transition and decision keys."""
        return self.model_dump(
            exclude_unset=True,
            exclude={"status", "comments", "rejection_reason", "total_days"},
        )


class ApprovalPayload(BaseModel):
    """Body for approving a request."""

    comments: str | None = Field(default=None, max_length=1000)


class RejectionPayload(BaseModel):
    """Body for rejecting a request. The reason is checked by the service."""

    reason: str | None = Field(default=None, max_length=1000)


class BulkUpdatePayload(BaseModel):
    """Apply one patch to many requests, each independently."""

    ids: list[uuid.UUID] = Field(min_length=1, max_length=500)
    patch: LeaveRequestPatch


class DateRange(BaseModel):
    """Inclusive calendar window."""

    start: date
    end: date

    @model_validator(mode="after")
    def _validate_order(self) -> Self:
        if self.end < self.start:
            msg = "date_range.end must not be before date_range.start"
            raise ValueError(msg)
        return self


class LeaveRequestFilters(BaseModel):
    """Optional filters for listing requests. Scope restrictions apply on top."""

    user_id: uuid.UUID | None = None
    leave_type: LeaveType | None = None
    status: LeaveStatus | None = None
    approver_id: uuid.UUID | None = None
    date_range: DateRange | None = None
    is_half_day: bool | None = None


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class OwnerBrief(BaseModel):
    """Owner information attached to a request."""

    id: uuid.UUID
    first_name: str
    last_name: str
    email: str
    department: str | None
    team: str | None
    role: UserRole
    manager_id: uuid.UUID | None


class LeaveRequestResponse(BaseModel):
    """Response schema for a single leave request."""

    id: uuid.UUID
    user_id: uuid.UUID
    leave_type: LeaveType
    start_date: date
    end_date: date
    is_half_day: bool
    half_day_type: HalfDayType | None
    total_days: float
    reason: str | None
    attachments: list[str] | None
    status: LeaveStatus
    approver_id: uuid.UUID | None
    approved_at: datetime | None
    rejected_at: datetime | None
    rejection_reason: str | None
    approval_comments: str | None
    deleted_at: datetime | None
    created_at: datetime
    updated_at: datetime


class LeaveRequestWithOwnerResponse(LeaveRequestResponse):
    """A leave request with its owner's directory entry."""

    owner: OwnerBrief | None = None


class LeaveRequestListResponse(BaseModel):
    """List of leave requests."""

    items: list[LeaveRequestResponse]
    total: int


class BulkItemError(BaseModel):
    """Why one id of a bulk update was not applied."""

    id: uuid.UUID
    error: str
    detail: str


class BulkUpdateResponse(BaseModel):
    """Per-item outcome of a bulk update."""

    items: list[LeaveRequestResponse]
    errors: list[BulkItemError]


class LeaveRequestStats(BaseModel):
    """Counts over the requests visible to the caller."""

    total_requests: int
    pending_requests: int
    approved_requests: int
    rejected_requests: int
    cancelled_requests: int
    requests_by_type: dict[str, int]
    requests_by_status: dict[str, int]
