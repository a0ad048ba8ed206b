# ruff: noqa: B008, TC001, TC003
from __future__ import annotations

import uuid

from fastapi import APIRouter, Query

from leave_core.api.deps import AuthDep, LedgerDep, PrivilegedDep
from leave_core.db import SessionDep
from leave_core.exceptions import NotFoundError
from leave_core.models.base import now_utc
from leave_core.schemas.auth import AuthContext
from leave_core.schemas.balance import (
    CarryOverPayload,
    LeaveBalanceListResponse,
    LeaveBalancePatch,
    LeaveBalanceResponse,
    LeaveBalanceSummary,
    LeaveBalanceUpsert,
)
from leave_core.services.access import AccessScopeResolver
from leave_core.services.user import UserDirectory

user_balances_router = APIRouter(
    prefix="/users/{user_id}/leave-balances",
    tags=["leave-balances"],
)

balances_router = APIRouter(
    prefix="/leave-balances",
    tags=["leave-balances"],
)


async def _ensure_visible(session: SessionDep, auth: AuthContext, user_id: uuid.UUID) -> None:
    """Balances follow request visibility: owners, their manager, admin and hr."""
    user = await UserDirectory(session).get_user(user_id)
    if user is None or not AccessScopeResolver().can_view(auth, user.id, user.manager_id):
        raise NotFoundError("User", user_id)


@user_balances_router.get("", response_model=LeaveBalanceListResponse)
async def get_user_balances(
    user_id: uuid.UUID,
    session: SessionDep,
    ledger: LedgerDep,
    auth: AuthDep,
    year: int | None = Query(default=None),
) -> LeaveBalanceListResponse:
    """Get a user's balance rows for a year (the current year by default)."""
    await _ensure_visible(session, auth, user_id)
    items = await ledger.get_balances(user_id, year or now_utc().year)
    return LeaveBalanceListResponse(items=items, total=len(items))


@user_balances_router.get("/summary", response_model=LeaveBalanceSummary)
async def get_user_balance_summary(
    user_id: uuid.UUID,
    session: SessionDep,
    ledger: LedgerDep,
    auth: AuthDep,
    year: int | None = Query(default=None),
) -> LeaveBalanceSummary:
    """Get total remaining and used days across a user's balances for a year."""
    await _ensure_visible(session, auth, user_id)
    return await ledger.summary(user_id, year or now_utc().year)


@user_balances_router.post("/carry-over", response_model=LeaveBalanceListResponse)
async def carry_over_user_balances(
    user_id: uuid.UUID,
    payload: CarryOverPayload,
    ledger: LedgerDep,
    _auth: PrivilegedDep,
) -> LeaveBalanceListResponse:
    """Roll unused days into the next year's balances (admin/hr only)."""
    items = await ledger.carry_over(user_id, payload.from_year, payload.to_year)
    return LeaveBalanceListResponse(items=items, total=len(items))


@balances_router.put("", response_model=LeaveBalanceResponse)
async def upsert_balance(
    payload: LeaveBalanceUpsert,
    ledger: LedgerDep,
    _auth: PrivilegedDep,
) -> LeaveBalanceResponse:
    """Create or replace a balance row (admin/hr only)."""
    return await ledger.upsert(payload)


@balances_router.patch("/{balance_id}", response_model=LeaveBalanceResponse)
async def update_balance(
    balance_id: uuid.UUID,
    patch: LeaveBalancePatch,
    ledger: LedgerDep,
    _auth: PrivilegedDep,
) -> LeaveBalanceResponse:
    """Adjust a balance row; remaining days are recomputed (admin/hr only)."""
    return await ledger.update(balance_id, patch)
