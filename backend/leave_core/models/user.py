# ruff: noqa: TC003
from __future__ import annotations

import uuid

from sqlmodel import Field

from leave_core.models.base import TimestampMixin, UUIDBase
from leave_core.models.enums import UserRole


class User(UUIDBase, TimestampMixin, table=True):
    """Directory entry for an employee. Owned by the identity side of the app; read-only here."""

    __tablename__ = "users"

    email: str = Field(max_length=255, unique=True)
    first_name: str = Field(max_length=100)
    last_name: str = Field(max_length=100)
    department: str | None = Field(default=None, max_length=100)
    team: str | None = Field(default=None, max_length=100)
    role: str = Field(default=UserRole.EMPLOYEE, max_length=20)
    manager_id: uuid.UUID | None = Field(default=None, index=True)
    is_active: bool = True
