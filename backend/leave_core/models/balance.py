# ruff: noqa: TC003
from __future__ import annotations

import uuid

import sqlalchemy as sa
from sqlmodel import Field

from leave_core.models.base import TimestampMixin, UpdatedAtMixin, UUIDBase


class LeaveBalance(UUIDBase, TimestampMixin, UpdatedAtMixin, table=True):
    """Per-user, per-leave-type, per-year allowance ledger row.

    ``carried_over`` is already folded into ``total_allowance``; it is kept
    separately only to show how much of the allowance came from the prior
    year. ``remaining_days`` is always ``total_allowance - used_days``.
    """

    __tablename__ = "leave_balances"
    __table_args__ = (sa.UniqueConstraint("user_id", "leave_type", "year", name="uq_leave_balance_key"),)

    user_id: uuid.UUID = Field(
        sa_column=sa.Column(sa.Uuid, sa.ForeignKey("users.id"), nullable=False, index=True),
    )
    leave_type: str = Field(max_length=50)
    year: int
    total_allowance: float = Field(default=0, sa_column_kwargs={"server_default": "0"})
    used_days: float = Field(default=0, sa_column_kwargs={"server_default": "0"})
    remaining_days: float = Field(default=0, sa_column_kwargs={"server_default": "0"})
    carried_over: float = Field(default=0, sa_column_kwargs={"server_default": "0"})
