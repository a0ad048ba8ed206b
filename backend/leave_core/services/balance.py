# ruff: noqa: TC003
from __future__ import annotations

import logging
import uuid
from datetime import date
from typing import TYPE_CHECKING, Protocol

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlmodel import col

from leave_core.exceptions import NotFoundError
from leave_core.models.balance import LeaveBalance
from leave_core.models.enums import LeaveType
from leave_core.schemas.balance import (
    LeaveBalanceListResponse,
    LeaveBalanceResponse,
    LeaveBalanceSummary,
    LeaveBalanceUpsert,
)
from leave_core.services.request_store import translate_integrity_error

if TYPE_CHECKING:
    from collections.abc import Callable

    from sqlalchemy.ext.asyncio import AsyncSession

    from leave_core.schemas.balance import LeaveBalanceFilters, LeaveBalancePatch

logger = logging.getLogger(__name__)


class ApprovedLeave(Protocol):
    """What the ledger needs to know about an approved request."""

    user_id: uuid.UUID
    leave_type: LeaveType
    total_days: float


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def build_balance_response(balance: LeaveBalance) -> LeaveBalanceResponse:
    """Map a balance model to its response schema."""
    return LeaveBalanceResponse(
        id=balance.id,
        user_id=balance.user_id,
        leave_type=LeaveType(balance.leave_type),
        year=balance.year,
        total_allowance=balance.total_allowance,
        used_days=balance.used_days,
        remaining_days=balance.remaining_days,
        carried_over=balance.carried_over,
        created_at=balance.created_at,
        updated_at=balance.updated_at,
    )


def _recompute(balance: LeaveBalance) -> None:
    # carried_over is part of total_allowance, so it is not added again here.
    balance.remaining_days = balance.total_allowance - balance.used_days


# ---------------------------------------------------------------------------
# Ledger
# ---------------------------------------------------------------------------


class LeaveBalanceLedger:
    """Per-user, per-type, per-year balances and the accounting rules that mutate them.

    ``remaining_days`` is derived on every write; callers never set it.
    """

    def __init__(self, session: AsyncSession, today: Callable[[], date] = date.today) -> None:
        self._session = session
        self._today = today

    async def _find_row(self, user_id: uuid.UUID, leave_type: str, year: int) -> LeaveBalance | None:
        result = await self._session.execute(
            select(LeaveBalance)
            .where(
                col(LeaveBalance.user_id) == user_id,
                col(LeaveBalance.leave_type) == leave_type,
                col(LeaveBalance.year) == year,
            )
            .with_for_update()
        )
        return result.scalar_one_or_none()

    async def _commit(self, operation: str) -> None:
        try:
            await self._session.flush()
        except IntegrityError as exc:
            await self._session.rollback()
            raise translate_integrity_error(exc, operation) from None
        await self._session.commit()

    # -----------------------------------------------------------------------
    # Read path
    # -----------------------------------------------------------------------

    async def get_balances(self, user_id: uuid.UUID, year: int) -> list[LeaveBalanceResponse]:
        """All of a user's balance rows for a year."""
        result = await self._session.execute(
            select(LeaveBalance)
            .where(col(LeaveBalance.user_id) == user_id, col(LeaveBalance.year) == year)
            .order_by(col(LeaveBalance.leave_type))
        )
        return [build_balance_response(b) for b in result.scalars().all()]

    async def list_balances(self, filters: LeaveBalanceFilters | None = None) -> LeaveBalanceListResponse:
        query = select(LeaveBalance)
        if filters is not None:
            if filters.user_id is not None:
                query = query.where(col(LeaveBalance.user_id) == filters.user_id)
            if filters.leave_type is not None:
                query = query.where(col(LeaveBalance.leave_type) == filters.leave_type.value)
            if filters.year is not None:
                query = query.where(col(LeaveBalance.year) == filters.year)
        result = await self._session.execute(
            query.order_by(col(LeaveBalance.year).desc(), col(LeaveBalance.leave_type))
        )
        items = [build_balance_response(b) for b in result.scalars().all()]
        return LeaveBalanceListResponse(items=items, total=len(items))

    async def summary(self, user_id: uuid.UUID, year: int) -> LeaveBalanceSummary:
        """Balances for a year with total remaining and total used across types."""
        balances = await self.get_balances(user_id, year)
        return LeaveBalanceSummary(
            user_id=user_id,
            year=year,
            balances=balances,
            total_remaining=sum(b.remaining_days for b in balances),
            total_used=sum(b.used_days for b in balances),
        )

    # -----------------------------------------------------------------------
    # Write path
    # -----------------------------------------------------------------------

    async def upsert(self, data: LeaveBalanceUpsert) -> LeaveBalanceResponse:
        """Create the (user, type, year) row, or overwrite its figures if it exists."""
        balance = await self._find_row(data.user_id, data.leave_type.value, data.year)
        if balance is None:
            balance = LeaveBalance(
                user_id=data.user_id,
                leave_type=data.leave_type.value,
                year=data.year,
                total_allowance=data.total_allowance,
                used_days=data.used_days,
                carried_over=data.carried_over,
            )
            self._session.add(balance)
        else:
            balance.total_allowance = data.total_allowance
            balance.used_days = data.used_days
            balance.carried_over = data.carried_over
        _recompute(balance)

        await self._commit("upsert_leave_balance")
        return build_balance_response(balance)

    async def update(self, balance_id: uuid.UUID, patch: LeaveBalancePatch) -> LeaveBalanceResponse:
        """Apply a partial update and recompute remaining days."""
        result = await self._session.execute(
            select(LeaveBalance).where(col(LeaveBalance.id) == balance_id).with_for_update()
        )
        balance = result.scalar_one_or_none()
        if balance is None:
            raise NotFoundError("Leave balance", balance_id)

        for key, value in patch.model_dump(exclude_unset=True, exclude_none=True).items():
            setattr(balance, key, value)
        _recompute(balance)

        await self._commit("update_leave_balance")
        return build_balance_response(balance)

    async def apply_approval(self, request: ApprovedLeave) -> LeaveBalanceResponse | None:
        """Charge an approved request against the current year's balance for its type.

        Returns None when the user has no balance row for that type this year
        (e.g. unpaid leave has no allowance to track).
        """
        year = self._today().year
        balance = await self._find_row(request.user_id, LeaveType(request.leave_type).value, year)
        if balance is None:
            logger.info(
                "No %s balance for user=%s year=%d; approval not charged",
                request.leave_type,
                request.user_id,
                year,
            )
            return None

        balance.used_days += request.total_days
        _recompute(balance)

        await self._commit("apply_approval")
        return build_balance_response(balance)

    async def carry_over(self, user_id: uuid.UUID, from_year: int, to_year: int) -> list[LeaveBalanceResponse]:
        """Roll each positive remaining balance of ``from_year`` into a fresh ``to_year`` row.

        Rows with nothing remaining produce no carry-over row.
        """
        carried: list[LeaveBalanceResponse] = []
        for old in await self.get_balances(user_id, from_year):
            if old.remaining_days <= 0:
                continue
            carried.append(
                await self.upsert(
                    LeaveBalanceUpsert(
                        user_id=user_id,
                        leave_type=old.leave_type,
                        year=to_year,
                        total_allowance=old.total_allowance + old.remaining_days,
                        used_days=0,
                        carried_over=old.remaining_days,
                    )
                )
            )
        logger.info(
            "Carried over %d balance(s) for user=%s from %d to %d", len(carried), user_id, from_year, to_year
        )
        return carried
