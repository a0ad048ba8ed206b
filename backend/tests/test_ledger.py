"""Tests for the leave balance ledger: upsert, update, approval charges, carry-over, summary."""

from __future__ import annotations

import uuid
from datetime import date
from typing import TYPE_CHECKING

import pytest
from sqlalchemy.exc import IntegrityError

from leave_core.exceptions import ConflictError, NotFoundError
from leave_core.models.balance import LeaveBalance
from leave_core.models.enums import LeaveType
from leave_core.schemas.balance import (
    LeaveBalanceFilters,
    LeaveBalancePatch,
    LeaveBalanceResponse,
    LeaveBalanceUpsert,
)
from leave_core.services.balance import LeaveBalanceLedger
from leave_core.services.request_store import translate_integrity_error
from support import Org

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession


class _Approved:
    """Minimal approved request as seen by the ledger."""

    def __init__(self, user_id: uuid.UUID, leave_type: LeaveType, total_days: float) -> None:
        self.user_id = user_id
        self.leave_type = leave_type
        self.total_days = total_days


def _ledger(session: AsyncSession, today: date = date(2024, 6, 1)) -> LeaveBalanceLedger:
    return LeaveBalanceLedger(session, today=lambda: today)


def _upsert(user_id: uuid.UUID, **overrides: object) -> LeaveBalanceUpsert:
    data: dict[str, object] = {
        "user_id": user_id,
        "leave_type": LeaveType.VACATION,
        "year": 2024,
        "total_allowance": 10,
    }
    data.update(overrides)
    return LeaveBalanceUpsert.model_validate(data)


def _assert_invariant(balance: LeaveBalanceResponse) -> None:
    # carried_over is folded into total_allowance.
    assert balance.remaining_days == balance.total_allowance - balance.used_days


# ---------------------------------------------------------------------------
# Upsert / update
# ---------------------------------------------------------------------------


async def test_upsert_creates_then_overwrites(db_session: AsyncSession, org: Org) -> None:
    ledger = _ledger(db_session)
    user_id = org.employee_a.user_id

    created = await ledger.upsert(_upsert(user_id, used_days=2))
    assert created.remaining_days == 8

    replaced = await ledger.upsert(_upsert(user_id, total_allowance=15, used_days=5))
    assert replaced.id == created.id
    assert replaced.total_allowance == 15
    assert replaced.remaining_days == 10

    rows = await ledger.get_balances(user_id, 2024)
    assert len(rows) == 1


async def test_update_recomputes_remaining(db_session: AsyncSession, org: Org) -> None:
    ledger = _ledger(db_session)
    created = await ledger.upsert(_upsert(org.employee_a.user_id))

    updated = await ledger.update(created.id, LeaveBalancePatch(used_days=4.5))
    assert updated.used_days == 4.5
    assert updated.remaining_days == 5.5
    _assert_invariant(updated)


async def test_update_unknown_balance_is_not_found(db_session: AsyncSession) -> None:
    with pytest.raises(NotFoundError):
        await _ledger(db_session).update(uuid.uuid4(), LeaveBalancePatch(used_days=1))


async def test_duplicate_key_insert_is_conflict(db_session: AsyncSession, org: Org) -> None:
    db_session.add(LeaveBalance(user_id=org.employee_a.user_id, leave_type="vacation", year=2024))
    await db_session.commit()
    db_session.add(LeaveBalance(user_id=org.employee_a.user_id, leave_type="vacation", year=2024))

    with pytest.raises(IntegrityError) as exc_info:
        await db_session.commit()
    await db_session.rollback()

    assert isinstance(translate_integrity_error(exc_info.value, "insert_leave_balance"), ConflictError)


# ---------------------------------------------------------------------------
# Approval charges
# ---------------------------------------------------------------------------


async def test_apply_approval_charges_current_year(db_session: AsyncSession, org: Org) -> None:
    ledger = _ledger(db_session, today=date(2024, 6, 1))
    user_id = org.employee_a.user_id
    await ledger.upsert(_upsert(user_id, total_allowance=20, year=2024))
    await ledger.upsert(_upsert(user_id, total_allowance=20, year=2025))

    charged = await ledger.apply_approval(_Approved(user_id, LeaveType.VACATION, 2.5))

    assert charged is not None
    assert charged.year == 2024
    assert charged.used_days == 2.5
    assert charged.remaining_days == 17.5
    _assert_invariant(charged)
    untouched = await ledger.get_balances(user_id, 2025)
    assert untouched[0].used_days == 0


async def test_apply_approval_without_row_is_noop(db_session: AsyncSession, org: Org) -> None:
    ledger = _ledger(db_session)
    await ledger.upsert(_upsert(org.employee_a.user_id))

    assert await ledger.apply_approval(_Approved(org.employee_a.user_id, LeaveType.UNPAID, 3)) is None
    rows = await ledger.get_balances(org.employee_a.user_id, 2024)
    assert [r.used_days for r in rows] == [0]


# ---------------------------------------------------------------------------
# Carry-over
# ---------------------------------------------------------------------------


async def test_carry_over_rolls_positive_remaining(db_session: AsyncSession, org: Org) -> None:
    ledger = _ledger(db_session)
    user_id = org.employee_a.user_id
    await ledger.upsert(_upsert(user_id, total_allowance=10, used_days=7))
    await ledger.upsert(_upsert(user_id, leave_type=LeaveType.SICK, total_allowance=5, used_days=5))

    carried = await ledger.carry_over(user_id, 2024, 2025)

    assert len(carried) == 1
    row = carried[0]
    assert row.year == 2025
    assert row.leave_type == LeaveType.VACATION
    assert row.total_allowance == 13
    assert row.used_days == 0
    assert row.carried_over == 3
    assert row.remaining_days == 13
    _assert_invariant(row)

    next_year = await ledger.get_balances(user_id, 2025)
    assert [b.leave_type for b in next_year] == [LeaveType.VACATION]


async def test_carry_over_with_nothing_remaining_creates_nothing(db_session: AsyncSession, org: Org) -> None:
    ledger = _ledger(db_session)
    await ledger.upsert(_upsert(org.employee_a.user_id, total_allowance=10, used_days=10))

    assert await ledger.carry_over(org.employee_a.user_id, 2024, 2025) == []
    assert await ledger.get_balances(org.employee_a.user_id, 2025) == []


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------


async def test_summary_sums_across_types(db_session: AsyncSession, org: Org) -> None:
    ledger = _ledger(db_session)
    user_id = org.employee_a.user_id
    await ledger.upsert(_upsert(user_id, total_allowance=20, used_days=5))
    await ledger.upsert(_upsert(user_id, leave_type=LeaveType.SICK, total_allowance=10, used_days=1.5))
    await ledger.upsert(_upsert(user_id, year=2023, total_allowance=99))

    summary = await ledger.summary(user_id, 2024)

    assert summary.year == 2024
    assert len(summary.balances) == 2
    assert summary.total_remaining == 23.5
    assert summary.total_used == 6.5


async def test_list_balances_filters(db_session: AsyncSession, org: Org) -> None:
    ledger = _ledger(db_session)
    await ledger.upsert(_upsert(org.employee_a.user_id))
    await ledger.upsert(_upsert(org.employee_a.user_id, leave_type=LeaveType.SICK))
    await ledger.upsert(_upsert(org.employee_c.user_id))

    everything = await ledger.list_balances()
    assert everything.total == 3

    sick = await ledger.list_balances(LeaveBalanceFilters(leave_type=LeaveType.SICK))
    assert [b.user_id for b in sick.items] == [org.employee_a.user_id]

    carl = await ledger.list_balances(LeaveBalanceFilters(user_id=org.employee_c.user_id, year=2024))
    assert carl.total == 1
