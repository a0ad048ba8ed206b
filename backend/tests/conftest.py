"""Shared fixtures: an in-memory SQLite database per test, a seeded org chart,
a lifecycle service on a fixed clock, and an HTTP client bound to the test
database.
"""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from leave_core.api.deps import get_lifecycle_service
from leave_core.db import build_engine, create_db_and_tables, get_session
from leave_core.main import app
from leave_core.models import User
from leave_core.models.enums import UserRole
from leave_core.schemas.auth import AuthContext
from leave_core.services.request import build_lifecycle_service
from support import Org, fixed_clock

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from sqlalchemy.ext.asyncio import AsyncEngine

    from leave_core.services.request import LeaveRequestLifecycleService

TEST_DATABASE_URL = "sqlite+aiosqlite://"


@pytest.fixture
async def engine() -> AsyncIterator[AsyncEngine]:
    """Fresh in-memory database with all tables."""
    _engine = build_engine(TEST_DATABASE_URL)
    await create_db_and_tables(_engine)
    yield _engine
    await _engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest.fixture
async def db_session(session_factory: async_sessionmaker[AsyncSession]) -> AsyncIterator[AsyncSession]:
    async with session_factory() as session:
        yield session


@pytest.fixture
async def org(db_session: AsyncSession) -> Org:
    """Seed a small org chart and return its members."""
    supervisor_id = uuid.uuid4()
    other_supervisor_id = uuid.uuid4()

    def _user(first_name: str, role: UserRole, manager_id: uuid.UUID | None = None, **kwargs: object) -> User:
        return User(
            email=f"{first_name.lower()}@example.com",
            first_name=first_name,
            last_name="Tester",
            department="Engineering",
            role=role.value,
            manager_id=manager_id,
            **kwargs,
        )

    users = {
        "admin": _user("Ada", UserRole.ADMIN),
        "hr": _user("Hana", UserRole.HR),
        "supervisor": _user("Boris", UserRole.SUPERVISOR, id=supervisor_id),
        "employee_a": _user("Alice", UserRole.EMPLOYEE, supervisor_id),
        "employee_c": _user("Carl", UserRole.EMPLOYEE, supervisor_id),
        "other_supervisor": _user("Dora", UserRole.SUPERVISOR, id=other_supervisor_id),
        "outsider": _user("Erin", UserRole.EMPLOYEE, other_supervisor_id),
    }
    db_session.add_all(users.values())
    await db_session.commit()

    return Org(
        **{
            key: AuthContext(user_id=user.id, role=UserRole(user.role), manager_id=user.manager_id)
            for key, user in users.items()
        }
    )


@pytest.fixture
def service(db_session: AsyncSession) -> LeaveRequestLifecycleService:
    """Lifecycle service on the fixed clock."""
    return build_lifecycle_service(db_session, clock=fixed_clock)


@pytest.fixture
async def async_client(session_factory: async_sessionmaker[AsyncSession]) -> AsyncIterator[AsyncClient]:
    """Async HTTP client with the session and lifecycle dependencies overridden."""

    async def _override_get_session() -> AsyncIterator[AsyncSession]:
        async with session_factory() as session:
            yield session

    async def _override_get_lifecycle_service() -> AsyncIterator[LeaveRequestLifecycleService]:
        async with session_factory() as session:
            yield build_lifecycle_service(session, clock=fixed_clock)

    app.dependency_overrides[get_session] = _override_get_session
    app.dependency_overrides[get_lifecycle_service] = _override_get_lifecycle_service
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()
