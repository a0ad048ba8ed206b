"""Persistence for the leave request aggregate.

Every state change goes through a conditional UPDATE that names the
statuses it expects to find, so two callers racing on the same request
cannot both win (e.g. double approval).
"""

# ruff: noqa: TC003
from __future__ import annotations

import uuid
from collections.abc import Collection
from datetime import UTC, date, datetime, time, timedelta
from typing import TYPE_CHECKING, Any

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlmodel import col

from leave_core.exceptions import ConflictError, NotFoundError, ReferentialError
from leave_core.models.base import now_utc
from leave_core.models.enums import LeaveStatus
from leave_core.models.request import LeaveRequest
from leave_core.models.user import User

if TYPE_CHECKING:
    from sqlalchemy import Select
    from sqlalchemy.ext.asyncio import AsyncSession

    from leave_core.schemas.request import LeaveRequestFilters
    from leave_core.services.access import LeaveScope

# Statuses that no longer occupy the calendar.
_INACTIVE_STATUSES = [LeaveStatus.CANCELLED.value, LeaveStatus.REJECTED.value]


def translate_integrity_error(exc: IntegrityError, operation: str) -> ConflictError | ReferentialError:
    """Map a datastore constraint violation to the application taxonomy."""
    text = str(exc.orig).lower()
    if "foreign key" in text:
        return ReferentialError(f"Referenced record not found ({operation})")
    return ConflictError(f"Duplicate record ({operation})")


def day_bounds(start: date, end: date) -> tuple[datetime, datetime]:
    """Half-open UTC datetime window covering the calendar days start..end."""
    lower = datetime.combine(start, time.min, tzinfo=UTC)
    upper = datetime.combine(end + timedelta(days=1), time.min, tzinfo=UTC)
    return lower, upper


class LeaveRequestStore:
    """Reads and conditional writes of ``leave_requests`` rows."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    # -----------------------------------------------------------------------
    # Read path
    # -----------------------------------------------------------------------

    def _scoped_query(self, scope: LeaveScope, *, include_deleted: bool = False) -> Select[tuple[LeaveRequest]]:
        query = (
            select(LeaveRequest)
            .join(User, col(User.id) == col(LeaveRequest.user_id))
            .where(*scope.clauses())
        )
        if not include_deleted:
            query = query.where(col(LeaveRequest.deleted_at).is_(None))
        return query

    async def _fetch(self, query: Select[tuple[LeaveRequest]]) -> list[LeaveRequest]:
        result = await self._session.execute(
            query.order_by(col(LeaveRequest.created_at).desc()).execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def find_by_id(self, request_id: uuid.UUID) -> LeaveRequest | None:
        """Fetch a request regardless of scope or soft-delete state."""
        result = await self._session.execute(
            select(LeaveRequest)
            .where(col(LeaveRequest.id) == request_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def find_with_owner(self, request_id: uuid.UUID) -> tuple[LeaveRequest, User]:
        """Fetch a request and its owner. Raises 404 if the request does not exist."""
        result = await self._session.execute(
            select(LeaveRequest, User)
            .join(User, col(User.id) == col(LeaveRequest.user_id))
            .where(col(LeaveRequest.id) == request_id)
            .execution_options(populate_existing=True)
        )
        row = result.one_or_none()
        if row is None:
            raise NotFoundError("Leave request", request_id)
        return row[0], row[1]

    async def find_by_user(self, user_id: uuid.UUID, scope: LeaveScope) -> list[LeaveRequest]:
        return await self._fetch(self._scoped_query(scope).where(col(LeaveRequest.user_id) == user_id))

    async def find_all(self, scope: LeaveScope, filters: LeaveRequestFilters | None = None) -> list[LeaveRequest]:
        """Non-deleted requests in scope, newest first, narrowed by ``filters``."""
        query = self._scoped_query(scope)
        if filters is not None:
            if filters.user_id is not None:
                query = query.where(col(LeaveRequest.user_id) == filters.user_id)
            if filters.leave_type is not None:
                query = query.where(col(LeaveRequest.leave_type) == filters.leave_type.value)
            if filters.status is not None:
                query = query.where(col(LeaveRequest.status) == filters.status.value)
            if filters.approver_id is not None:
                query = query.where(col(LeaveRequest.approver_id) == filters.approver_id)
            if filters.date_range is not None:
                query = query.where(
                    col(LeaveRequest.start_date) >= filters.date_range.start,
                    col(LeaveRequest.end_date) <= filters.date_range.end,
                )
            if filters.is_half_day is not None:
                query = query.where(col(LeaveRequest.is_half_day) == filters.is_half_day)
        return await self._fetch(query)

    async def find_pending(self, scope: LeaveScope, approver_id: uuid.UUID | None = None) -> list[LeaveRequest]:
        """Pending requests in scope; with ``approver_id``, only those of that manager's reports."""
        query = self._scoped_query(scope).where(col(LeaveRequest.status) == LeaveStatus.PENDING.value)
        if approver_id is not None:
            query = query.where(col(User.manager_id) == approver_id)
        return await self._fetch(query)

    async def find_team(self, manager_id: uuid.UUID, scope: LeaveScope) -> list[LeaveRequest]:
        """Requests of active direct reports of ``manager_id``, excluding the manager's own."""
        query = self._scoped_query(scope).where(
            col(User.manager_id) == manager_id,
            col(User.is_active).is_(True),
            col(LeaveRequest.user_id) != manager_id,
        )
        return await self._fetch(query)

    async def find_active(self, user_id: uuid.UUID, scope: LeaveScope) -> list[LeaveRequest]:
        """Requests still affecting the calendar: not deleted, not cancelled or rejected."""
        query = self._scoped_query(scope).where(
            col(LeaveRequest.user_id) == user_id,
            col(LeaveRequest.status).not_in(_INACTIVE_STATUSES),
        )
        return await self._fetch(query)

    async def find_approved_for_manager(
        self,
        manager_id: uuid.UUID,
        start: date,
        end: date,
        scope: LeaveScope,
    ) -> list[LeaveRequest]:
        """Approved requests of the manager's reports whose approval falls within start..end."""
        lower, upper = day_bounds(start, end)
        query = self._scoped_query(scope).where(
            col(LeaveRequest.status) == LeaveStatus.APPROVED.value,
            col(User.manager_id) == manager_id,
            col(LeaveRequest.approved_at) >= lower,
            col(LeaveRequest.approved_at) < upper,
        )
        return await self._fetch(query)

    async def count_by_status_and_type(self, scope: LeaveScope) -> list[tuple[str, str, int]]:
        """(status, leave_type, count) triples over non-deleted requests in scope."""
        query = (
            select(col(LeaveRequest.status), col(LeaveRequest.leave_type), func.count())
            .select_from(LeaveRequest)
            .join(User, col(User.id) == col(LeaveRequest.user_id))
            .where(col(LeaveRequest.deleted_at).is_(None), *scope.clauses())
            .group_by(col(LeaveRequest.status), col(LeaveRequest.leave_type))
        )
        result = await self._session.execute(query)
        return [(row[0], row[1], int(row[2])) for row in result.all()]

    # -----------------------------------------------------------------------
    # Write path
    # -----------------------------------------------------------------------

    async def create(self, request: LeaveRequest) -> LeaveRequest:
        """Insert and commit a new request."""
        self._session.add(request)
        try:
            await self._session.flush()
        except IntegrityError as exc:
            await self._session.rollback()
            raise translate_integrity_error(exc, "create_leave_request") from None
        await self._session.commit()
        return request

    async def compare_and_set(
        self,
        request_id: uuid.UUID,
        values: dict[str, Any],
        *,
        expected_statuses: Collection[LeaveStatus] | None = None,
        deleted: bool = False,
    ) -> LeaveRequest:
        """Apply ``values`` only if the row is still in an expected state, then commit.

        ``deleted`` selects whether the row must currently be soft-deleted.
        Raises 404 if the id does not exist and 409 if its state moved on.
        """
        conditions = [col(LeaveRequest.id) == request_id]
        if deleted:
            conditions.append(col(LeaveRequest.deleted_at).is_not(None))
        else:
            conditions.append(col(LeaveRequest.deleted_at).is_(None))
        if expected_statuses is not None:
            conditions.append(col(LeaveRequest.status).in_([s.value for s in expected_statuses]))

        stmt = (
            update(LeaveRequest)
            .where(*conditions)
            .values(**values, updated_at=now_utc())
            .execution_options(synchronize_session=False)
        )
        try:
            result = await self._session.execute(stmt)
        except IntegrityError as exc:
            await self._session.rollback()
            raise translate_integrity_error(exc, "update_leave_request") from None

        if result.rowcount == 0:  # type: ignore[attr-defined]
            await self._session.rollback()
            current = await self.find_by_id(request_id)
            if current is None:
                raise NotFoundError("Leave request", request_id)
            if deleted and current.deleted_at is None:
                raise ConflictError("Leave request is not deleted")
            if not deleted and current.deleted_at is not None:
                raise ConflictError("Leave request is deleted")
            raise ConflictError(f"Leave request is {current.status}")

        await self._session.commit()
        updated = await self.find_by_id(request_id)
        if updated is None:
            raise NotFoundError("Leave request", request_id)
        return updated

    async def rollback(self) -> None:
        """Discard uncommitted work after a failed write."""
        await self._session.rollback()
