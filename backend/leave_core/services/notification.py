# ruff: noqa: TC003
from __future__ import annotations

import logging
import uuid
from typing import TYPE_CHECKING

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import col

from leave_core.exceptions import ForbiddenError, NotFoundError
from leave_core.models.base import now_utc
from leave_core.models.enums import LeaveStatus, NotificationType
from leave_core.models.notification import Notification
from leave_core.schemas.notification import (
    NotificationCreate,
    NotificationListResponse,
    NotificationResponse,
)

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)

_DECISION_TYPES = {
    LeaveStatus.APPROVED: NotificationType.SUCCESS,
    LeaveStatus.REJECTED: NotificationType.ERROR,
}


def _build_notification_response(notification: Notification) -> NotificationResponse:
    return NotificationResponse(
        id=notification.id,
        user_id=notification.user_id,
        title=notification.title,
        message=notification.message,
        type=NotificationType(notification.type),
        is_read=notification.is_read,
        related_id=notification.related_id,
        created_at=notification.created_at,
    )


class NotificationDispatcher:
    """Produces notification records for lifecycle events and serves a user's inbox.

    Writes triggered by other operations (``record`` and the ``notify_*``
    helpers) never raise for sink failures. Inbox operations requested
    directly (mark read, delete) propagate their failures.
    """

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    # -----------------------------------------------------------------------
    # Event-driven writes
    # -----------------------------------------------------------------------

    async def record(self, data: NotificationCreate) -> NotificationResponse:
        """Store one notification in its own commit; return a synthetic undelivered one on sink failure."""
        notification = Notification(
            user_id=data.user_id,
            title=data.title,
            message=data.message,
            type=data.type.value,
            related_id=data.related_id,
        )
        try:
            self._session.add(notification)
            await self._session.commit()
        except SQLAlchemyError:
            logger.exception("Failed to create notification for user=%s title=%r", data.user_id, data.title)
            await self._session.rollback()
            return NotificationResponse(
                id=None,
                user_id=data.user_id,
                title=data.title,
                message=data.message,
                type=data.type,
                is_read=False,
                related_id=data.related_id,
                created_at=now_utc(),
                delivered=False,
            )
        return _build_notification_response(notification)

    async def notify_leave_decision(
        self,
        user_id: uuid.UUID,
        request_id: uuid.UUID,
        status: LeaveStatus,
    ) -> NotificationResponse:
        """Tell the owner their request was approved or rejected."""
        return await self.record(
            NotificationCreate(
                user_id=user_id,
                title=f"Leave Request {status.value}",
                message=f"Your leave request has been {status.value}.",
                type=_DECISION_TYPES.get(status, NotificationType.INFO),
                related_id=request_id,
            )
        )

    async def notify_pending_approval(
        self,
        approver_id: uuid.UUID,
        requester_name: str,
        request_id: uuid.UUID,
    ) -> NotificationResponse:
        """Tell the designated approver a request is waiting for them."""
        return await self.record(
            NotificationCreate(
                user_id=approver_id,
                title="Leave Request Pending Approval",
                message=f"{requester_name} has submitted a leave request that requires your approval.",
                type=NotificationType.WARNING,
                related_id=request_id,
            )
        )

    # -----------------------------------------------------------------------
    # Inbox
    # -----------------------------------------------------------------------

    async def list_for_user(
        self,
        user_id: uuid.UUID,
        *,
        is_read: bool | None = None,
        limit: int = 50,
    ) -> NotificationListResponse:
        """A user's notifications, newest first, with the unfiltered unread count."""
        query = select(Notification).where(col(Notification.user_id) == user_id)
        if is_read is not None:
            query = query.where(col(Notification.is_read) == is_read)
        result = await self._session.execute(query.order_by(col(Notification.created_at).desc()).limit(limit))
        items = [_build_notification_response(n) for n in result.scalars().all()]
        return NotificationListResponse(items=items, total=len(items), unread=await self.unread_count(user_id))

    async def unread_count(self, user_id: uuid.UUID) -> int:
        result = await self._session.execute(
            select(func.count())
            .select_from(Notification)
            .where(col(Notification.user_id) == user_id, col(Notification.is_read).is_(False))
        )
        return int(result.scalar_one())

    async def _get_owned(self, notification_id: uuid.UUID, user_id: uuid.UUID) -> Notification:
        result = await self._session.execute(
            select(Notification)
            .where(col(Notification.id) == notification_id)
            .execution_options(populate_existing=True)
        )
        notification = result.scalar_one_or_none()
        if notification is None:
            raise NotFoundError("Notification", notification_id)
        if notification.user_id != user_id:
            raise ForbiddenError("Not authorized to modify this notification")
        return notification

    async def mark_read(self, notification_id: uuid.UUID, user_id: uuid.UUID) -> NotificationResponse:
        """Mark one of the user's notifications as read."""
        notification = await self._get_owned(notification_id, user_id)
        notification.is_read = True
        await self._session.commit()
        return _build_notification_response(notification)

    async def mark_all_read(self, user_id: uuid.UUID) -> int:
        """Mark every unread notification of the user as read. Returns how many changed."""
        result = await self._session.execute(
            update(Notification)
            .where(col(Notification.user_id) == user_id, col(Notification.is_read).is_(False))
            .values(is_read=True)
            .execution_options(synchronize_session=False)
        )
        await self._session.commit()
        return int(result.rowcount)  # type: ignore[attr-defined]

    async def delete(self, notification_id: uuid.UUID, user_id: uuid.UUID) -> None:
        """Hard-delete one of the user's notifications."""
        await self._get_owned(notification_id, user_id)
        await self._session.execute(delete(Notification).where(col(Notification.id) == notification_id))
        await self._session.commit()
