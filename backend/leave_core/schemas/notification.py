# ruff: noqa: TC001, TC003
from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, Field

from leave_core.models.enums import NotificationType


class NotificationCreate(BaseModel):
    """Data for one notification write."""

    user_id: uuid.UUID
    title: str = Field(min_length=1, max_length=255)
    message: str = Field(min_length=1)
    type: NotificationType = NotificationType.INFO
    related_id: uuid.UUID | None = None


class NotificationResponse(BaseModel):
    """A stored notification, or a synthetic one when the sink rejected the write.

    Synthetic notifications have ``id=None`` and ``delivered=False``.
    """

    id: uuid.UUID | None
    user_id: uuid.UUID
    title: str
    message: str
    type: NotificationType
    is_read: bool
    related_id: uuid.UUID | None
    created_at: datetime
    delivered: bool = True


class NotificationListResponse(BaseModel):
    """A user's notifications, newest first."""

    items: list[NotificationResponse]
    total: int
    unread: int
