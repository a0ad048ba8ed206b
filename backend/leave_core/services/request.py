# ruff: noqa: TC003
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import date, datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy.exc import SQLAlchemyError

from leave_core.config import Settings, get_settings
from leave_core.exceptions import (
    AppError,
    ConflictError,
    ForbiddenError,
    LeaveValidationError,
    NotFoundError,
    ReferentialError,
)
from leave_core.models.base import now_utc
from leave_core.models.enums import (
    OPEN_STATUSES,
    AuditAction,
    AuditResourceType,
    HalfDayType,
    LeaveStatus,
    LeaveType,
)
from leave_core.models.request import LeaveRequest
from leave_core.schemas.audit import AuditEntry
from leave_core.schemas.request import (
    BulkItemError,
    BulkUpdateResponse,
    LeaveRequestListResponse,
    LeaveRequestResponse,
    LeaveRequestStats,
    LeaveRequestWithOwnerResponse,
)
from leave_core.services.access import AccessScopeResolver, ScopeView
from leave_core.services.audit import AuditRecorder
from leave_core.services.balance import LeaveBalanceLedger
from leave_core.services.days import count_leave_days, validate_leave_window
from leave_core.services.notification import NotificationDispatcher
from leave_core.services.request_store import LeaveRequestStore
from leave_core.services.side_effects import SecondaryEffectRunner, SecondaryFailure
from leave_core.services.user import UserDirectory, build_owner_brief

if TYPE_CHECKING:
    from collections.abc import Callable

    from sqlalchemy.ext.asyncio import AsyncSession

    from leave_core.models.user import User
    from leave_core.schemas.auth import AuthContext
    from leave_core.schemas.request import (
        BulkUpdatePayload,
        CreateLeaveRequestPayload,
        LeaveRequestFilters,
        LeaveRequestPatch,
    )

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _build_request_response(request: LeaveRequest) -> LeaveRequestResponse:
    """Map a request model to its response schema."""
    return LeaveRequestResponse(
        id=request.id,
        user_id=request.user_id,
        leave_type=LeaveType(request.leave_type),
        start_date=request.start_date,
        end_date=request.end_date,
        is_half_day=request.is_half_day,
        half_day_type=HalfDayType(request.half_day_type) if request.half_day_type else None,
        total_days=request.total_days,
        reason=request.reason,
        attachments=request.attachments,
        status=LeaveStatus(request.status),
        approver_id=request.approver_id,
        approved_at=request.approved_at,
        rejected_at=request.rejected_at,
        rejection_reason=request.rejection_reason,
        approval_comments=request.approval_comments,
        deleted_at=request.deleted_at,
        created_at=request.created_at,
        updated_at=request.updated_at,
    )


def _build_list_response(requests: list[LeaveRequest]) -> LeaveRequestListResponse:
    return LeaveRequestListResponse(
        items=[_build_request_response(r) for r in requests],
        total=len(requests),
    )


def _full_name(user: User) -> str:
    return f"{user.first_name} {user.last_name}".strip()


@dataclass(frozen=True)
class FieldEdit:
    """Validated column values from a patch, plus the field names the caller set."""

    values: dict[str, Any]
    fields: list[str]


def _merge_edit(edit: FieldEdit | None, transition_values: dict[str, Any]) -> dict[str, Any]:
    if edit is None:
        return transition_values
    return {**edit.values, **transition_values}


def _audit_details(edit: FieldEdit | None, details: dict[str, Any]) -> dict[str, Any]:
    if edit is None:
        return details
    return {**details, "updated_fields": edit.fields}


# ---------------------------------------------------------------------------
# Lifecycle service
# ---------------------------------------------------------------------------


class LeaveRequestLifecycleService:
    """State machine for leave requests and the effects that follow each transition.

    Every transition commits the request first. Balance, audit and
    notification writes run afterwards through the secondary effect runner,
    so their failures are logged and never undo or fail the transition.
    """

    def __init__(
        self,
        store: LeaveRequestStore,
        ledger: LeaveBalanceLedger,
        audit: AuditRecorder,
        notifications: NotificationDispatcher,
        users: UserDirectory,
        resolver: AccessScopeResolver,
        runner: SecondaryEffectRunner,
        clock: Callable[[], datetime] = now_utc,
    ) -> None:
        self._store = store
        self._ledger = ledger
        self._audit = audit
        self._notifications = notifications
        self._users = users
        self._resolver = resolver
        self._runner = runner
        self._clock = clock

    @property
    def secondary_failures(self) -> list[SecondaryFailure]:
        """Secondary effects that failed during this service's lifetime."""
        return self._runner.failures

    # -----------------------------------------------------------------------
    # Secondary effects
    # -----------------------------------------------------------------------

    async def _record_audit(
        self,
        actor: AuthContext,
        action: AuditAction,
        request_id: uuid.UUID,
        details: dict[str, Any],
    ) -> None:
        entry = AuditEntry(
            user_id=actor.user_id,
            action=action.value,
            resource_type=AuditResourceType.LEAVE_REQUEST.value,
            resource_id=str(request_id),
            details=details,
            ip_address=actor.ip_address,
            user_agent=actor.user_agent,
        )
        await self._runner.run(f"audit:{action.value}", lambda: self._audit.record(entry))

    async def _notify_approver(self, approver_id: uuid.UUID | None, requester_name: str, request_id: uuid.UUID) -> None:
        if approver_id is None:
            return
        await self._runner.run(
            "notification:pending_approval",
            lambda: self._notifications.notify_pending_approval(approver_id, requester_name, request_id),
        )

    async def _notify_decision(self, owner_id: uuid.UUID, request_id: uuid.UUID, status: LeaveStatus) -> None:
        await self._runner.run(
            f"notification:{status.value}",
            lambda: self._notifications.notify_leave_decision(owner_id, request_id, status),
        )

    # -----------------------------------------------------------------------
    # Create
    # -----------------------------------------------------------------------

    async def create_request(self, actor: AuthContext, payload: CreateLeaveRequestPayload) -> LeaveRequestResponse:
        """File a new request as draft or pending.

        ``total_days`` is always recomputed. A pending request notifies the
        owner's manager, who is its designated approver.
        """
        if payload.status not in OPEN_STATUSES:
            msg = "New leave requests must be draft or pending"
            raise LeaveValidationError(msg)
        validate_leave_window(
            payload.start_date,
            payload.end_date,
            payload.is_half_day,
            payload.half_day_type,
            today=self._clock().date(),
        )
        total_days = count_leave_days(payload.start_date, payload.end_date, payload.is_half_day)

        if not self._resolver.can_create_for(actor, payload.user_id):
            raise ForbiddenError("Not authorized to create leave requests for another user")

        owner = await self._users.get_user(payload.user_id)
        if owner is None:
            raise ReferentialError(f"User {payload.user_id} does not exist")
        approver_id = owner.manager_id
        requester_name = _full_name(owner)

        created = await self._store.create(
            LeaveRequest(
                user_id=payload.user_id,
                leave_type=payload.leave_type.value,
                start_date=payload.start_date,
                end_date=payload.end_date,
                is_half_day=payload.is_half_day,
                half_day_type=payload.half_day_type.value if payload.half_day_type else None,
                total_days=total_days,
                reason=payload.reason,
                attachments=payload.attachments,
                status=payload.status.value,
            )
        )
        response = _build_request_response(created)
        logger.info("Created leave request %s for user=%s status=%s", response.id, response.user_id, response.status)

        await self._record_audit(
            actor,
            AuditAction.CREATE_LEAVE_REQUEST,
            response.id,
            {
                "leave_type": response.leave_type.value,
                "start_date": response.start_date,
                "end_date": response.end_date,
                "total_days": response.total_days,
                "status": response.status.value,
            },
        )
        if response.status == LeaveStatus.PENDING:
            await self._notify_approver(approver_id, requester_name, response.id)
        return response

    # -----------------------------------------------------------------------
    # Read path
    # -----------------------------------------------------------------------

    async def get_request(
        self,
        actor: AuthContext,
        request_id: uuid.UUID,
        *,
        include_deleted: bool = False,
    ) -> LeaveRequestWithOwnerResponse:
        """One request with its owner's info. Out-of-scope requests look missing."""
        request, owner = await self._store.find_with_owner(request_id)
        if not self._resolver.can_view(actor, owner.id, owner.manager_id):
            raise NotFoundError("Leave request", request_id)
        if request.deleted_at is not None and not include_deleted:
            raise NotFoundError("Leave request", request_id)
        return LeaveRequestWithOwnerResponse(
            **_build_request_response(request).model_dump(),
            owner=build_owner_brief(owner),
        )

    async def list_requests_by_user(self, actor: AuthContext, user_id: uuid.UUID) -> LeaveRequestListResponse:
        scope = self._resolver.scope_for(actor)
        return _build_list_response(await self._store.find_by_user(user_id, scope))

    async def list_requests(
        self,
        actor: AuthContext,
        filters: LeaveRequestFilters | None = None,
    ) -> LeaveRequestListResponse:
        """All requests the caller may see, narrowed by ``filters``.

        The caller's scope is always applied on top of the filters, so an
        employee asking for someone else's ``user_id`` simply gets nothing.
        """
        scope = self._resolver.scope_for(actor)
        return _build_list_response(await self._store.find_all(scope, filters))

    async def list_pending_requests(
        self,
        actor: AuthContext,
        approver_id: uuid.UUID | None = None,
    ) -> LeaveRequestListResponse:
        scope = self._resolver.scope_for(actor)
        return _build_list_response(await self._store.find_pending(scope, approver_id))

    async def list_team_requests(
        self,
        actor: AuthContext,
        manager_id: uuid.UUID | None = None,
    ) -> LeaveRequestListResponse:
        """Requests of a manager's active direct reports (the caller's own team by default)."""
        scope = self._resolver.scope_for(actor, ScopeView.TEAM)
        return _build_list_response(await self._store.find_team(manager_id or actor.user_id, scope))

    async def list_active_requests(self, actor: AuthContext, user_id: uuid.UUID) -> LeaveRequestListResponse:
        """A user's requests that still occupy the calendar."""
        scope = self._resolver.scope_for(actor)
        return _build_list_response(await self._store.find_active(user_id, scope))

    async def list_monthly_approved_for_manager(
        self,
        actor: AuthContext,
        manager_id: uuid.UUID,
        start: date,
        end: date,
    ) -> LeaveRequestListResponse:
        """Requests of the manager's reports approved between ``start`` and ``end`` inclusive."""
        if end < start:
            msg = "end must not be before start"
            raise LeaveValidationError(msg)
        scope = self._resolver.scope_for(actor)
        return _build_list_response(await self._store.find_approved_for_manager(manager_id, start, end, scope))

    async def get_stats(self, actor: AuthContext) -> LeaveRequestStats:
        """Request counts by status and by type over the caller's scope."""
        by_status: dict[str, int] = {}
        by_type: dict[str, int] = {}
        for status, leave_type, count in await self._store.count_by_status_and_type(self._resolver.scope_for(actor)):
            by_status[status] = by_status.get(status, 0) + count
            by_type[leave_type] = by_type.get(leave_type, 0) + count

        return LeaveRequestStats(
            total_requests=sum(by_status.values()),
            pending_requests=by_status.get(LeaveStatus.PENDING.value, 0),
            approved_requests=by_status.get(LeaveStatus.APPROVED.value, 0),
            rejected_requests=by_status.get(LeaveStatus.REJECTED.value, 0),
            cancelled_requests=by_status.get(LeaveStatus.CANCELLED.value, 0),
            requests_by_type=by_type,
            requests_by_status=by_status,
        )

    # -----------------------------------------------------------------------
    # Transitions
    # -----------------------------------------------------------------------

    async def update_request(
        self,
        actor: AuthContext,
        request_id: uuid.UUID,
        patch: LeaveRequestPatch,
        *,
        audit_action: AuditAction = AuditAction.UPDATE_LEAVE_REQUEST,
    ) -> LeaveRequestResponse:
        """Edit an open request and/or route ``status`` in the patch through its transition.

        Field edits and the status change are written by one compare-and-set,
        so a patch whose transition is refused leaves the request untouched.
        """
        edit: FieldEdit | None = None
        if patch.field_updates():
            edit = await self._prepare_edit(actor, request_id, patch)

        transition_action = None if audit_action == AuditAction.UPDATE_LEAVE_REQUEST else audit_action
        if patch.status is None:
            if edit is None:
                msg = "Patch contains no changes"
                raise LeaveValidationError(msg)
            return await self._apply_edit(actor, request_id, edit, audit_action)
        if patch.status == LeaveStatus.PENDING:
            return await self.submit_draft(actor, request_id, audit_action=transition_action, edit=edit)
        if patch.status == LeaveStatus.APPROVED:
            return await self.approve_request(
                actor, request_id, patch.comments, audit_action=transition_action, edit=edit
            )
        if patch.status == LeaveStatus.REJECTED:
            return await self.reject_request(
                actor, request_id, patch.rejection_reason, audit_action=transition_action, edit=edit
            )
        if patch.status == LeaveStatus.CANCELLED:
            return await self.cancel_request(actor, request_id, audit_action=transition_action, edit=edit)
        msg = f"Cannot move a leave request to {patch.status.value}"
        raise LeaveValidationError(msg)

    async def _prepare_edit(
        self,
        actor: AuthContext,
        request_id: uuid.UUID,
        patch: LeaveRequestPatch,
    ) -> FieldEdit:
        """Check edit authority and validate the merged fields. Writes nothing."""
        request, owner = await self._store.find_with_owner(request_id)
        if not self._resolver.can_edit(actor, owner.id):
            raise ForbiddenError("Not authorized to edit this leave request")
        if request.status not in OPEN_STATUSES:
            raise ConflictError(f"Leave request is {request.status}")

        updates = patch.field_updates()
        start_date = updates.get("start_date", request.start_date)
        end_date = updates.get("end_date", request.end_date)
        is_half_day = updates.get("is_half_day", request.is_half_day)
        half_day_type = updates.get("half_day_type", request.half_day_type if is_half_day else None)
        validate_leave_window(start_date, end_date, is_half_day, half_day_type)

        values: dict[str, Any] = {
            key: value.value if isinstance(value, LeaveType | HalfDayType) else value
            for key, value in updates.items()
        }
        values["half_day_type"] = HalfDayType(half_day_type).value if half_day_type else None
        values["total_days"] = count_leave_days(start_date, end_date, is_half_day)
        return FieldEdit(values=values, fields=sorted(updates))

    async def _apply_edit(
        self,
        actor: AuthContext,
        request_id: uuid.UUID,
        edit: FieldEdit,
        audit_action: AuditAction,
    ) -> LeaveRequestResponse:
        updated = await self._store.compare_and_set(request_id, edit.values, expected_statuses=OPEN_STATUSES)
        response = _build_request_response(updated)

        await self._record_audit(actor, audit_action, request_id, {"updated_fields": edit.fields})
        return response

    async def submit_draft(
        self,
        actor: AuthContext,
        request_id: uuid.UUID,
        *,
        audit_action: AuditAction | None = None,
        edit: FieldEdit | None = None,
    ) -> LeaveRequestResponse:
        """Move the caller's draft into the approval queue and notify the approver."""
        request, owner = await self._store.find_with_owner(request_id)
        if not self._resolver.can_submit(actor, owner.id):
            raise ForbiddenError("Only the owner can submit this leave request")
        approver_id = owner.manager_id
        requester_name = _full_name(owner)

        updated = await self._store.compare_and_set(
            request_id,
            _merge_edit(edit, {"status": LeaveStatus.PENDING.value}),
            expected_statuses=[LeaveStatus.DRAFT],
        )
        response = _build_request_response(updated)

        await self._record_audit(
            actor,
            audit_action or AuditAction.SUBMIT_LEAVE_REQUEST,
            request_id,
            _audit_details(edit, {"status": {"from": LeaveStatus.DRAFT.value, "to": LeaveStatus.PENDING.value}}),
        )
        await self._notify_approver(approver_id, requester_name, request_id)
        return response

    async def approve_request(
        self,
        actor: AuthContext,
        request_id: uuid.UUID,
        comments: str | None = None,
        *,
        audit_action: AuditAction | None = None,
        edit: FieldEdit | None = None,
    ) -> LeaveRequestResponse:
        """Approve an open request and charge it to the owner's current-year balance.

        Only one of two concurrent approvals can win; the loser gets 409 and
        the balance is charged once.
        """
        request, owner = await self._store.find_with_owner(request_id)
        if not self._resolver.can_approve(actor, owner.manager_id):
            raise ForbiddenError("Not authorized to approve this leave request")
        previous_status = request.status

        updated = await self._store.compare_and_set(
            request_id,
            _merge_edit(
                edit,
                {
                    "status": LeaveStatus.APPROVED.value,
                    "approved_at": self._clock(),
                    "approver_id": actor.user_id,
                    "approval_comments": comments,
                    "rejected_at": None,
                    "rejection_reason": None,
                },
            ),
            expected_statuses=OPEN_STATUSES,
        )
        response = _build_request_response(updated)
        logger.info("Leave request %s approved by %s", request_id, actor.user_id)

        await self._runner.run("ledger:apply_approval", lambda: self._ledger.apply_approval(response))
        await self._record_audit(
            actor,
            audit_action or AuditAction.APPROVE_LEAVE_REQUEST,
            request_id,
            _audit_details(
                edit,
                {
                    "status": {"from": previous_status, "to": LeaveStatus.APPROVED.value},
                    "comments": comments,
                    "total_days": response.total_days,
                },
            ),
        )
        await self._notify_decision(response.user_id, request_id, LeaveStatus.APPROVED)
        return response

    async def reject_request(
        self,
        actor: AuthContext,
        request_id: uuid.UUID,
        reason: str | None,
        *,
        audit_action: AuditAction | None = None,
        edit: FieldEdit | None = None,
    ) -> LeaveRequestResponse:
        """Reject an open request. A non-empty reason is required."""
        if reason is None or not reason.strip():
            msg = "A rejection reason is required"
            raise LeaveValidationError(msg)
        reason = reason.strip()

        request, owner = await self._store.find_with_owner(request_id)
        if not self._resolver.can_approve(actor, owner.manager_id):
            raise ForbiddenError("Not authorized to reject this leave request")
        previous_status = request.status

        updated = await self._store.compare_and_set(
            request_id,
            _merge_edit(
                edit,
                {
                    "status": LeaveStatus.REJECTED.value,
                    "rejected_at": self._clock(),
                    "approver_id": actor.user_id,
                    "rejection_reason": reason,
                    "approved_at": None,
                    "approval_comments": None,
                },
            ),
            expected_statuses=OPEN_STATUSES,
        )
        response = _build_request_response(updated)
        logger.info("Leave request %s rejected by %s", request_id, actor.user_id)

        await self._record_audit(
            actor,
            audit_action or AuditAction.REJECT_LEAVE_REQUEST,
            request_id,
            _audit_details(
                edit,
                {"status": {"from": previous_status, "to": LeaveStatus.REJECTED.value}, "reason": reason},
            ),
        )
        await self._notify_decision(response.user_id, request_id, LeaveStatus.REJECTED)
        return response

    async def cancel_request(
        self,
        actor: AuthContext,
        request_id: uuid.UUID,
        *,
        audit_action: AuditAction | None = None,
        edit: FieldEdit | None = None,
    ) -> LeaveRequestResponse:
        """The owner withdraws a request that has not been decided. Balances are untouched."""
        request, owner = await self._store.find_with_owner(request_id)
        if not self._resolver.can_cancel(actor, owner.id):
            raise ForbiddenError("Only the owner can cancel this leave request")
        previous_status = request.status

        updated = await self._store.compare_and_set(
            request_id,
            _merge_edit(edit, {"status": LeaveStatus.CANCELLED.value}),
            expected_statuses=OPEN_STATUSES,
        )
        response = _build_request_response(updated)

        await self._record_audit(
            actor,
            audit_action or AuditAction.CANCEL_LEAVE_REQUEST,
            request_id,
            _audit_details(edit, {"status": {"from": previous_status, "to": LeaveStatus.CANCELLED.value}}),
        )
        return response

    async def soft_delete_request(self, actor: AuthContext, request_id: uuid.UUID) -> LeaveRequestResponse:
        """Hide a request from default reads without changing its status."""
        _, owner = await self._store.find_with_owner(request_id)
        if not self._resolver.can_delete(actor, owner.manager_id):
            raise ForbiddenError("Not authorized to delete this leave request")

        updated = await self._store.compare_and_set(request_id, {"deleted_at": self._clock()})
        response = _build_request_response(updated)

        await self._record_audit(
            actor,
            AuditAction.SOFT_DELETE_LEAVE_REQUEST,
            request_id,
            {"status": response.status.value, "deleted_at": response.deleted_at},
        )
        return response

    async def restore_request(self, actor: AuthContext, request_id: uuid.UUID) -> LeaveRequestResponse:
        """Clear the soft-delete marker; the request keeps the status it had before deletion."""
        _, owner = await self._store.find_with_owner(request_id)
        if not self._resolver.can_delete(actor, owner.manager_id):
            raise ForbiddenError("Not authorized to restore this leave request")

        updated = await self._store.compare_and_set(request_id, {"deleted_at": None}, deleted=True)
        response = _build_request_response(updated)

        await self._record_audit(
            actor,
            AuditAction.RESTORE_LEAVE_REQUEST,
            request_id,
            {"status": response.status.value},
        )
        return response

    async def bulk_update_requests(self, actor: AuthContext, payload: BulkUpdatePayload) -> BulkUpdateResponse:
        """Apply one patch to each id independently.

        A failing id is reported in ``errors`` and never rolls back the ids
        already applied.
        """
        items: list[LeaveRequestResponse] = []
        errors: list[BulkItemError] = []
        for request_id in dict.fromkeys(payload.ids):
            try:
                items.append(
                    await self.update_request(
                        actor,
                        request_id,
                        payload.patch,
                        audit_action=AuditAction.BULK_UPDATE_LEAVE_REQUEST,
                    )
                )
            except AppError as exc:
                errors.append(BulkItemError(id=request_id, error=type(exc).__name__, detail=exc.message))
            except SQLAlchemyError as exc:
                logger.exception("Bulk update of leave request %s failed", request_id)
                await self._store.rollback()
                errors.append(BulkItemError(id=request_id, error=type(exc).__name__, detail="Database error"))

        logger.info("Bulk update applied to %d request(s), %d failed", len(items), len(errors))
        return BulkUpdateResponse(items=items, errors=errors)


# ---------------------------------------------------------------------------
# Wiring
# ---------------------------------------------------------------------------


def build_lifecycle_service(
    session: AsyncSession,
    settings: Settings | None = None,
    clock: Callable[[], datetime] | None = None,
) -> LeaveRequestLifecycleService:
    """Construct the lifecycle service and its collaborators around one session."""
    settings = settings or get_settings()
    clock = clock or now_utc
    return LeaveRequestLifecycleService(
        store=LeaveRequestStore(session),
        ledger=LeaveBalanceLedger(session, today=lambda: clock().date()),
        audit=AuditRecorder(session),
        notifications=NotificationDispatcher(session),
        users=UserDirectory(session),
        resolver=AccessScopeResolver(),
        runner=SecondaryEffectRunner(session, settings.side_effect_timeout_seconds),
        clock=clock,
    )
