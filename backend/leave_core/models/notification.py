# ruff: noqa: TC003
from __future__ import annotations

import uuid

from sqlmodel import Field

from leave_core.models.base import TimestampMixin, UUIDBase
from leave_core.models.enums import NotificationType


class Notification(UUIDBase, TimestampMixin, table=True):
    """User-facing message. Only ``is_read`` ever changes after insert."""

    __tablename__ = "notifications"

    user_id: uuid.UUID = Field(index=True)
    title: str = Field(max_length=255)
    message: str
    type: str = Field(default=NotificationType.INFO, max_length=20)
    is_read: bool = Field(default=False, index=True)
    related_id: uuid.UUID | None = None
