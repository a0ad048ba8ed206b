# ruff: noqa: TC001, TC003
from __future__ import annotations

import uuid
from datetime import datetime
from typing import Self

from pydantic import BaseModel, Field, model_validator

from leave_core.models.enums import LeaveType

# ---------------------------------------------------------------------------
# Balance request schemas
# ---------------------------------------------------------------------------


class LeaveBalanceUpsert(BaseModel):
    """Create or replace the balance row for (user, leave type, year).

    ``total_allowance`` already includes ``carried_over``.
    """

    user_id: uuid.UUID
    leave_type: LeaveType
    year: int = Field(ge=1970, le=9999)
    total_allowance: float = Field(ge=0)
    used_days: float = Field(default=0, ge=0)
    carried_over: float = Field(default=0, ge=0)


class LeaveBalancePatch(BaseModel):
    """Partial update of a balance row. ``remaining_days`` is always recomputed."""

    total_allowance: float | None = Field(default=None, ge=0)
    used_days: float | None = Field(default=None, ge=0)
    carried_over: float | None = Field(default=None, ge=0)


class LeaveBalanceFilters(BaseModel):
    """Optional filters for listing balance rows."""

    user_id: uuid.UUID | None = None
    leave_type: LeaveType | None = None
    year: int | None = None


class CarryOverPayload(BaseModel):
    """Roll unused days from one year into another."""

    from_year: int = Field(ge=1970, le=9999)
    to_year: int = Field(ge=1970, le=9999)

    @model_validator(mode="after")
    def _validate_years(self) -> Self:
        if self.to_year <= self.from_year:
            msg = "to_year must be after from_year"
            raise ValueError(msg)
        return self


# ---------------------------------------------------------------------------
# Balance response schemas
# ---------------------------------------------------------------------------


class LeaveBalanceResponse(BaseModel):
    """A single balance row."""

    id: uuid.UUID
    user_id: uuid.UUID
    leave_type: LeaveType
    year: int
    total_allowance: float
    used_days: float
    remaining_days: float
    carried_over: float
    created_at: datetime
    updated_at: datetime


class LeaveBalanceListResponse(BaseModel):
    """Balance rows."""

    items: list[LeaveBalanceResponse]
    total: int


class LeaveBalanceSummary(BaseModel):
    """All of a user's balances for a year plus simple totals."""

    user_id: uuid.UUID
    year: int
    balances: list[LeaveBalanceResponse]
    total_remaining: float
    total_used: float
