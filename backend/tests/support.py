"""Constants and helpers shared by the test modules."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime

from leave_core.schemas.auth import AuthContext

# Every test runs on 2024-06-01 so request dates in June 2024 are in the future.
NOW = datetime(2024, 6, 1, 9, 0, tzinfo=UTC)


def fixed_clock() -> datetime:
    return NOW


@dataclass(frozen=True)
class Org:
    """Seeded users as auth contexts.

    supervisor manages employee_a and employee_c; other_supervisor manages outsider.
    """

    admin: AuthContext
    hr: AuthContext
    supervisor: AuthContext
    employee_a: AuthContext
    employee_c: AuthContext
    other_supervisor: AuthContext
    outsider: AuthContext


def headers_for(auth: AuthContext) -> dict[str, str]:
    """Dev auth headers for an auth context."""
    headers = {"X-User-Id": str(auth.user_id), "X-Role": auth.role.value}
    if auth.manager_id is not None:
        headers["X-Manager-Id"] = str(auth.manager_id)
    return headers
