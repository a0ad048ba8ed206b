# ruff: noqa: B008, TC001, TC003
from __future__ import annotations

import uuid

from fastapi import APIRouter, Query, status
from pydantic import BaseModel

from leave_core.api.deps import AuthDep, NotificationDep
from leave_core.schemas.notification import NotificationListResponse, NotificationResponse

notifications_router = APIRouter(prefix="/notifications", tags=["notifications"])


class UnreadCountResponse(BaseModel):
    """Number of unread notifications."""

    unread: int


class MarkAllReadResponse(BaseModel):
    """Number of notifications marked as read."""

    updated: int


@notifications_router.get("", response_model=NotificationListResponse)
async def list_notifications(
    notifications: NotificationDep,
    auth: AuthDep,
    is_read: bool | None = Query(default=None),
    limit: int = Query(default=50, ge=1, le=200),
) -> NotificationListResponse:
    """List the caller's notifications, newest first."""
    return await notifications.list_for_user(auth.user_id, is_read=is_read, limit=limit)


@notifications_router.get("/unread-count", response_model=UnreadCountResponse)
async def unread_count(
    notifications: NotificationDep,
    auth: AuthDep,
) -> UnreadCountResponse:
    """Count the caller's unread notifications."""
    return UnreadCountResponse(unread=await notifications.unread_count(auth.user_id))


@notifications_router.post("/read-all", response_model=MarkAllReadResponse)
async def mark_all_read(
    notifications: NotificationDep,
    auth: AuthDep,
) -> MarkAllReadResponse:
    """Mark all of the caller's notifications as read."""
    return MarkAllReadResponse(updated=await notifications.mark_all_read(auth.user_id))


@notifications_router.post("/{notification_id}/read", response_model=NotificationResponse)
async def mark_read(
    notification_id: uuid.UUID,
    notifications: NotificationDep,
    auth: AuthDep,
) -> NotificationResponse:
    """Mark one of the caller's notifications as read."""
    return await notifications.mark_read(notification_id, auth.user_id)


@notifications_router.delete("/{notification_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_notification(
    notification_id: uuid.UUID,
    notifications: NotificationDep,
    auth: AuthDep,
) -> None:
    """Delete one of the caller's notifications."""
    await notifications.delete(notification_id, auth.user_id)
