"""Role-based visibility and authority over leave requests.

Every read path and every transition asks this module which requests the
caller may see or act on, so the rules live in one place:

- employee: only their own requests
- supervisor: their own requests plus those of their direct reports
- admin / hr: everything
"""

# ruff: noqa: TC003
from __future__ import annotations

import enum
import uuid
from dataclasses import dataclass
from typing import TYPE_CHECKING

import sqlalchemy as sa
from sqlmodel import col

from leave_core.models.enums import UserRole
from leave_core.models.request import LeaveRequest
from leave_core.models.user import User

if TYPE_CHECKING:
    from sqlalchemy.sql.elements import ColumnElement

    from leave_core.schemas.auth import AuthContext


class ScopeView(enum.StrEnum):
    """Which slice of a caller's visible requests is being composed."""

    ALL = "all"
    PERSONAL = "personal"
    TEAM = "team"


@dataclass(frozen=True)
class LeaveScope:
    """Predicate over leave requests, usable in SQL and in memory.

    SQL clauses reference the owner's ``User`` row, so queries applying them
    must join ``User`` on ``LeaveRequest.user_id``.
    """

    unrestricted: bool = False
    own_of: uuid.UUID | None = None
    team_of: uuid.UUID | None = None

    def clauses(self) -> list[ColumnElement[bool]]:
        """SQL restrictions for this scope; empty when unrestricted."""
        if self.unrestricted:
            return []
        parts: list[ColumnElement[bool]] = []
        if self.own_of is not None:
            parts.append(col(LeaveRequest.user_id) == self.own_of)
        if self.team_of is not None:
            parts.append(
                sa.and_(
                    col(User.manager_id) == self.team_of,
                    col(LeaveRequest.user_id) != self.team_of,
                )
            )
        if not parts:
            return [sa.false()]
        return [sa.or_(*parts)]

    def allows(self, owner_id: uuid.UUID, owner_manager_id: uuid.UUID | None) -> bool:
        """In-memory equivalent of :meth:`clauses` for a single request."""
        if self.unrestricted:
            return True
        if self.own_of is not None and owner_id == self.own_of:
            return True
        return self.team_of is not None and owner_manager_id == self.team_of and owner_id != self.team_of


class AccessScopeResolver:
    """Pure function of caller role and organisational relationship."""

    def scope_for(self, caller: AuthContext, view: ScopeView = ScopeView.ALL) -> LeaveScope:
        """Requests the caller may see in the given view."""
        if caller.role == UserRole.EMPLOYEE:
            return LeaveScope(own_of=caller.user_id)

        if caller.role == UserRole.SUPERVISOR:
            if view == ScopeView.PERSONAL:
                return LeaveScope(own_of=caller.user_id)
            if view == ScopeView.TEAM:
                return LeaveScope(team_of=caller.user_id)
            return LeaveScope(own_of=caller.user_id, team_of=caller.user_id)

        if view == ScopeView.PERSONAL:
            return LeaveScope(own_of=caller.user_id)
        return LeaveScope(unrestricted=True)

    def can_view(self, caller: AuthContext, owner_id: uuid.UUID, owner_manager_id: uuid.UUID | None) -> bool:
        return self.scope_for(caller).allows(owner_id, owner_manager_id)

    def can_approve(self, caller: AuthContext, owner_manager_id: uuid.UUID | None) -> bool:
        """Admins and HR decide any request; supervisors only their direct reports'."""
        if caller.is_privileged:
            return True
        return caller.role == UserRole.SUPERVISOR and owner_manager_id == caller.user_id

    def can_delete(self, caller: AuthContext, owner_manager_id: uuid.UUID | None) -> bool:
        """Soft-delete and restore follow the same authority as approval."""
        return self.can_approve(caller, owner_manager_id)

    def can_cancel(self, caller: AuthContext, owner_id: uuid.UUID) -> bool:
        return caller.user_id == owner_id

    def can_edit(self, caller: AuthContext, owner_id: uuid.UUID) -> bool:
        return caller.user_id == owner_id or caller.is_privileged

    def can_create_for(self, caller: AuthContext, owner_id: uuid.UUID) -> bool:
        """Owners file their own requests; admins and HR may file on someone's behalf."""
        return caller.user_id == owner_id or caller.is_privileged

    def can_submit(self, caller: AuthContext, owner_id: uuid.UUID) -> bool:
        """Only the owner moves their draft into the approval queue."""
        return caller.user_id == owner_id
