"""Tests for the audit recorder."""

from __future__ import annotations

import uuid
from datetime import date, datetime
from typing import TYPE_CHECKING
from unittest.mock import AsyncMock, patch

from sqlalchemy import select
from sqlalchemy.exc import OperationalError

from leave_core.models.audit import AuditLog
from leave_core.models.enums import AuditAction, AuditResourceType
from leave_core.schemas.audit import AuditEntry, AuditLogFilters
from leave_core.schemas.request import DateRange
from leave_core.services.audit import AuditRecorder, to_audit_value
from support import Org

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession


def _entry(actor_id: uuid.UUID, resource_id: uuid.UUID, action: AuditAction, **details: object) -> AuditEntry:
    return AuditEntry(
        user_id=actor_id,
        action=action.value,
        resource_type=AuditResourceType.LEAVE_REQUEST.value,
        resource_id=str(resource_id),
        details=details,
        ip_address="10.0.0.1",
        user_agent="pytest",
    )


def test_to_audit_value_makes_values_json_safe() -> None:
    value_id = uuid.uuid4()
    converted = to_audit_value(
        {
            "id": value_id,
            "dates": (date(2024, 6, 3), datetime(2024, 6, 1, 9, 30)),
            "nested": {"n": 1},
        }
    )
    assert converted == {
        "id": str(value_id),
        "dates": ["2024-06-03", "2024-06-01T09:30:00"],
        "nested": {"n": 1},
    }


async def test_record_persists_entry(db_session: AsyncSession, org: Org) -> None:
    recorder = AuditRecorder(db_session)
    request_id = uuid.uuid4()

    recorded = await recorder.record(
        _entry(
            org.supervisor.user_id,
            request_id,
            AuditAction.APPROVE_LEAVE_REQUEST,
            comments="enjoy",
            day=date(2024, 6, 3),
        )
    )

    assert recorded.recorded
    assert recorded.id is not None
    row = await db_session.get(AuditLog, recorded.id)
    assert row is not None
    assert row.details == {"comments": "enjoy", "day": "2024-06-03"}
    assert row.ip_address == "10.0.0.1"


async def test_record_returns_synthetic_entry_when_sink_fails(db_session: AsyncSession, org: Org) -> None:
    recorder = AuditRecorder(db_session)
    failure = OperationalError("INSERT INTO audit_logs", {}, Exception("connection refused"))

    with patch.object(db_session, "commit", AsyncMock(side_effect=failure)):
        result = await recorder.record(_entry(org.admin.user_id, uuid.uuid4(), AuditAction.CANCEL_LEAVE_REQUEST))

    assert not result.recorded
    assert result.id is None
    assert result.action == AuditAction.CANCEL_LEAVE_REQUEST
    rows = await db_session.execute(select(AuditLog))
    assert rows.scalars().all() == []


async def test_list_logs_filters(db_session: AsyncSession, org: Org) -> None:
    recorder = AuditRecorder(db_session)
    first_request = uuid.uuid4()
    second_request = uuid.uuid4()
    await recorder.record(_entry(org.employee_a.user_id, first_request, AuditAction.CREATE_LEAVE_REQUEST))
    await recorder.record(_entry(org.supervisor.user_id, first_request, AuditAction.APPROVE_LEAVE_REQUEST))
    await recorder.record(_entry(org.employee_c.user_id, second_request, AuditAction.CREATE_LEAVE_REQUEST))

    everything = await recorder.list_logs()
    assert everything.total == 3

    creates = await recorder.list_logs(AuditLogFilters(action=AuditAction.CREATE_LEAVE_REQUEST.value))
    assert {e.resource_id for e in creates.items} == {str(first_request), str(second_request)}

    by_actor = await recorder.list_logs(AuditLogFilters(user_id=org.supervisor.user_id))
    assert [e.action for e in by_actor.items] == [AuditAction.APPROVE_LEAVE_REQUEST]

    long_ago = await recorder.list_logs(
        AuditLogFilters(date_range=DateRange(start=date(2000, 1, 1), end=date(2000, 1, 31)))
    )
    assert long_ago.total == 0

    history = await recorder.list_for_resource(AuditResourceType.LEAVE_REQUEST.value, str(first_request))
    assert [e.action for e in history] == [AuditAction.APPROVE_LEAVE_REQUEST, AuditAction.CREATE_LEAVE_REQUEST]
