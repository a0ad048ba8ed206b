# ruff: noqa: TC003
from __future__ import annotations

import uuid
from typing import TYPE_CHECKING

from sqlalchemy import select
from sqlmodel import col

from leave_core.models.enums import UserRole
from leave_core.models.user import User
from leave_core.schemas.request import OwnerBrief

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession


def build_owner_brief(user: User) -> OwnerBrief:
    """Map a user row to the owner info attached to requests."""
    return OwnerBrief(
        id=user.id,
        first_name=user.first_name,
        last_name=user.last_name,
        email=user.email,
        department=user.department,
        team=user.team,
        role=UserRole(user.role),
        manager_id=user.manager_id,
    )


class UserDirectory:
    """Read-only access to the users table."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_user(self, user_id: uuid.UUID) -> User | None:
        """Fetch a user. Returns None if not found."""
        result = await self._session.execute(select(User).where(col(User.id) == user_id))
        return result.scalar_one_or_none()
