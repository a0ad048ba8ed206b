# ruff: noqa: TC003
from __future__ import annotations

import uuid

from pydantic import BaseModel

from leave_core.models.enums import UserRole


class AuthContext(BaseModel):
    """Caller identity as supplied by the identity provider.

    ``ip_address`` and ``user_agent`` describe the HTTP request and are copied
    into audit entries.
    """

    user_id: uuid.UUID
    role: UserRole = UserRole.EMPLOYEE
    department: str | None = None
    manager_id: uuid.UUID | None = None
    ip_address: str | None = None
    user_agent: str | None = None

    @property
    def is_privileged(self) -> bool:
        """Admins and HR see and act on every request."""
        return self.role in (UserRole.ADMIN, UserRole.HR)
