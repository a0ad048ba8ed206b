"""Tests for the notification dispatcher: best-effort writes and the inbox operations."""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING
from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy import select
from sqlalchemy.exc import OperationalError

from leave_core.exceptions import ForbiddenError, NotFoundError
from leave_core.models.enums import LeaveStatus, NotificationType
from leave_core.models.notification import Notification
from leave_core.schemas.notification import NotificationCreate
from leave_core.services.notification import NotificationDispatcher
from support import Org

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession


async def _seed(dispatcher: NotificationDispatcher, user_id: uuid.UUID, count: int = 2) -> list[uuid.UUID]:
    ids = []
    for i in range(count):
        created = await dispatcher.record(NotificationCreate(user_id=user_id, title=f"Note {i}", message="hello"))
        assert created.id is not None
        ids.append(created.id)
    return ids


# ---------------------------------------------------------------------------
# Event-driven writes
# ---------------------------------------------------------------------------


async def test_decision_notifications_carry_type_and_title(db_session: AsyncSession, org: Org) -> None:
    dispatcher = NotificationDispatcher(db_session)
    request_id = uuid.uuid4()

    approved = await dispatcher.notify_leave_decision(org.employee_a.user_id, request_id, LeaveStatus.APPROVED)
    rejected = await dispatcher.notify_leave_decision(org.employee_a.user_id, request_id, LeaveStatus.REJECTED)

    assert approved.type == NotificationType.SUCCESS
    assert approved.title == "Leave Request approved"
    assert approved.message == "Your leave request has been approved."
    assert approved.related_id == request_id
    assert approved.delivered
    assert rejected.type == NotificationType.ERROR
    assert rejected.title == "Leave Request rejected"


async def test_pending_approval_notification(db_session: AsyncSession, org: Org) -> None:
    dispatcher = NotificationDispatcher(db_session)
    sent = await dispatcher.notify_pending_approval(org.supervisor.user_id, "Alice Tester", uuid.uuid4())

    assert sent.user_id == org.supervisor.user_id
    assert sent.type == NotificationType.WARNING
    assert sent.title == "Leave Request Pending Approval"
    assert sent.message.startswith("Alice Tester has submitted")


async def test_record_returns_undelivered_notification_when_sink_fails(db_session: AsyncSession, org: Org) -> None:
    dispatcher = NotificationDispatcher(db_session)
    failure = OperationalError("INSERT INTO notifications", {}, Exception("database is locked"))

    with patch.object(db_session, "commit", AsyncMock(side_effect=failure)):
        result = await dispatcher.notify_leave_decision(org.employee_a.user_id, uuid.uuid4(), LeaveStatus.APPROVED)

    assert result.id is None
    assert not result.delivered
    assert result.type == NotificationType.SUCCESS
    rows = await db_session.execute(select(Notification))
    assert rows.scalars().all() == []


# ---------------------------------------------------------------------------
# Inbox
# ---------------------------------------------------------------------------


async def test_list_and_unread_count(db_session: AsyncSession, org: Org) -> None:
    dispatcher = NotificationDispatcher(db_session)
    await _seed(dispatcher, org.employee_a.user_id, count=3)
    await _seed(dispatcher, org.employee_c.user_id, count=1)

    inbox = await dispatcher.list_for_user(org.employee_a.user_id)
    assert inbox.total == 3
    assert inbox.unread == 3
    assert await dispatcher.unread_count(org.employee_c.user_id) == 1


async def test_mark_read_and_filter(db_session: AsyncSession, org: Org) -> None:
    dispatcher = NotificationDispatcher(db_session)
    first, _ = await _seed(dispatcher, org.employee_a.user_id)

    marked = await dispatcher.mark_read(first, org.employee_a.user_id)
    assert marked.is_read

    unread = await dispatcher.list_for_user(org.employee_a.user_id, is_read=False)
    assert unread.total == 1
    assert unread.unread == 1
    read = await dispatcher.list_for_user(org.employee_a.user_id, is_read=True)
    assert [n.id for n in read.items] == [first]


async def test_mark_all_read(db_session: AsyncSession, org: Org) -> None:
    dispatcher = NotificationDispatcher(db_session)
    await _seed(dispatcher, org.employee_a.user_id, count=3)
    await _seed(dispatcher, org.employee_c.user_id, count=1)

    assert await dispatcher.mark_all_read(org.employee_a.user_id) == 3
    assert await dispatcher.unread_count(org.employee_a.user_id) == 0
    assert await dispatcher.unread_count(org.employee_c.user_id) == 1


async def test_inbox_operations_propagate_errors(db_session: AsyncSession, org: Org) -> None:
    dispatcher = NotificationDispatcher(db_session)
    (note_id,) = await _seed(dispatcher, org.employee_a.user_id, count=1)

    with pytest.raises(NotFoundError):
        await dispatcher.mark_read(uuid.uuid4(), org.employee_a.user_id)
    with pytest.raises(ForbiddenError):
        await dispatcher.mark_read(note_id, org.employee_c.user_id)
    with pytest.raises(ForbiddenError):
        await dispatcher.delete(note_id, org.employee_c.user_id)

    failure = OperationalError("UPDATE notifications", {}, Exception("disk I/O error"))
    with patch.object(db_session, "commit", AsyncMock(side_effect=failure)), pytest.raises(OperationalError):
        await dispatcher.mark_read(note_id, org.employee_a.user_id)


async def test_delete(db_session: AsyncSession, org: Org) -> None:
    dispatcher = NotificationDispatcher(db_session)
    first, second = await _seed(dispatcher, org.employee_a.user_id)

    await dispatcher.delete(first, org.employee_a.user_id)

    inbox = await dispatcher.list_for_user(org.employee_a.user_id)
    assert [n.id for n in inbox.items] == [second]
