# ruff: noqa: B008, TC001, TC003
from __future__ import annotations

import uuid
from datetime import date

from fastapi import APIRouter, Query, status

from leave_core.api.deps import AuthDep, LifecycleDep, parse_date_range
from leave_core.models.enums import LeaveStatus, LeaveType
from leave_core.schemas.request import (
    ApprovalPayload,
    BulkUpdatePayload,
    BulkUpdateResponse,
    CreateLeaveRequestPayload,
    LeaveRequestFilters,
    LeaveRequestListResponse,
    LeaveRequestPatch,
    LeaveRequestResponse,
    LeaveRequestStats,
    LeaveRequestWithOwnerResponse,
    RejectionPayload,
)

leave_requests_router = APIRouter(prefix="/leave-requests", tags=["leave-requests"])


@leave_requests_router.post("", response_model=LeaveRequestResponse, status_code=status.HTTP_201_CREATED)
async def create_leave_request(
    payload: CreateLeaveRequestPayload,
    service: LifecycleDep,
    auth: AuthDep,
) -> LeaveRequestResponse:
    """Create a draft or pending leave request."""
    return await service.create_request(auth, payload)


@leave_requests_router.get("", response_model=LeaveRequestListResponse)
async def list_leave_requests(
    service: LifecycleDep,
    auth: AuthDep,
    user_id: uuid.UUID | None = Query(default=None),
    leave_type: LeaveType | None = Query(default=None),
    status_filter: LeaveStatus | None = Query(default=None, alias="status"),
    approver_id: uuid.UUID | None = Query(default=None),
    start: date | None = Query(default=None),
    end: date | None = Query(default=None),
    is_half_day: bool | None = Query(default=None),
) -> LeaveRequestListResponse:
    """List leave requests visible to the caller, with optional filters."""
    date_range = parse_date_range(start, end)
    filters = LeaveRequestFilters(
        user_id=user_id,
        leave_type=leave_type,
        status=status_filter,
        approver_id=approver_id,
        date_range=date_range,
        is_half_day=is_half_day,
    )
    return await service.list_requests(auth, filters)


@leave_requests_router.get("/pending", response_model=LeaveRequestListResponse)
async def list_pending_leave_requests(
    service: LifecycleDep,
    auth: AuthDep,
    approver_id: uuid.UUID | None = Query(default=None),
) -> LeaveRequestListResponse:
    """Pending requests, optionally only those awaiting one approver."""
    return await service.list_pending_requests(auth, approver_id)


@leave_requests_router.get("/team", response_model=LeaveRequestListResponse)
async def list_team_leave_requests(
    service: LifecycleDep,
    auth: AuthDep,
    manager_id: uuid.UUID | None = Query(default=None),
) -> LeaveRequestListResponse:
    """Requests of a manager's direct reports (the caller's team by default)."""
    return await service.list_team_requests(auth, manager_id)


@leave_requests_router.get("/active", response_model=LeaveRequestListResponse)
async def list_active_leave_requests(
    service: LifecycleDep,
    auth: AuthDep,
    user_id: uuid.UUID | None = Query(default=None),
) -> LeaveRequestListResponse:
    """A user's requests that still affect the calendar (the caller's by default)."""
    return await service.list_active_requests(auth, user_id or auth.user_id)


@leave_requests_router.get("/stats", response_model=LeaveRequestStats)
async def leave_request_stats(
    service: LifecycleDep,
    auth: AuthDep,
) -> LeaveRequestStats:
    """Counts by status and type over the caller's visible requests."""
    return await service.get_stats(auth)


@leave_requests_router.get("/monthly-approved", response_model=LeaveRequestListResponse)
async def list_monthly_approved_leave_requests(
    service: LifecycleDep,
    auth: AuthDep,
    start: date = Query(),
    end: date = Query(),
    manager_id: uuid.UUID | None = Query(default=None),
) -> LeaveRequestListResponse:
    """Requests of a manager's reports approved within a date window."""
    return await service.list_monthly_approved_for_manager(auth, manager_id or auth.user_id, start, end)


@leave_requests_router.post("/bulk", response_model=BulkUpdateResponse)
async def bulk_update_leave_requests(
    payload: BulkUpdatePayload,
    service: LifecycleDep,
    auth: AuthDep,
) -> BulkUpdateResponse:
    """Apply one patch to many requests; failures are reported per id."""
    return await service.bulk_update_requests(auth, payload)


@leave_requests_router.get("/{request_id}", response_model=LeaveRequestWithOwnerResponse)
async def get_leave_request(
    request_id: uuid.UUID,
    service: LifecycleDep,
    auth: AuthDep,
    include_deleted: bool = Query(default=False),
) -> LeaveRequestWithOwnerResponse:
    """Get a single leave request with its owner."""
    return await service.get_request(auth, request_id, include_deleted=include_deleted)


@leave_requests_router.patch("/{request_id}", response_model=LeaveRequestResponse)
async def update_leave_request(
    request_id: uuid.UUID,
    patch: LeaveRequestPatch,
    service: LifecycleDep,
    auth: AuthDep,
) -> LeaveRequestResponse:
    """Edit an open request, or move it through a transition via ``status``."""
    return await service.update_request(auth, request_id, patch)


@leave_requests_router.post("/{request_id}/submit", response_model=LeaveRequestResponse)
async def submit_leave_request(
    request_id: uuid.UUID,
    service: LifecycleDep,
    auth: AuthDep,
) -> LeaveRequestResponse:
    """Submit a draft for approval."""
    return await service.submit_draft(auth, request_id)


@leave_requests_router.post("/{request_id}/approve", response_model=LeaveRequestResponse)
async def approve_leave_request(
    request_id: uuid.UUID,
    service: LifecycleDep,
    auth: AuthDep,
    payload: ApprovalPayload | None = None,
) -> LeaveRequestResponse:
    """Approve an open leave request."""
    return await service.approve_request(auth, request_id, payload.comments if payload else None)


@leave_requests_router.post("/{request_id}/reject", response_model=LeaveRequestResponse)
async def reject_leave_request(
    request_id: uuid.UUID,
    payload: RejectionPayload,
    service: LifecycleDep,
    auth: AuthDep,
) -> LeaveRequestResponse:
    """Reject an open leave request with a reason."""
    return await service.reject_request(auth, request_id, payload.reason)


@leave_requests_router.post("/{request_id}/cancel", response_model=LeaveRequestResponse)
async def cancel_leave_request(
    request_id: uuid.UUID,
    service: LifecycleDep,
    auth: AuthDep,
) -> LeaveRequestResponse:
    """Cancel one of the caller's own open requests."""
    return await service.cancel_request(auth, request_id)


@leave_requests_router.delete("/{request_id}", response_model=LeaveRequestResponse)
async def delete_leave_request(
    request_id: uuid.UUID,
    service: LifecycleDep,
    auth: AuthDep,
) -> LeaveRequestResponse:
    """Soft-delete a leave request."""
    return await service.soft_delete_request(auth, request_id)


@leave_requests_router.post("/{request_id}/restore", response_model=LeaveRequestResponse)
async def restore_leave_request(
    request_id: uuid.UUID,
    service: LifecycleDep,
    auth: AuthDep,
) -> LeaveRequestResponse:
    """Restore a soft-deleted leave request."""
    return await service.restore_request(auth, request_id)
