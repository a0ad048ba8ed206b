"""Best-effort execution of effects that follow a committed transition.

A secondary effect (balance update after approval, audit entry,
notification) runs only after the primary change is durable. Its failure
is logged and recorded on the runner, never raised to the caller.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from sqlalchemy.exc import SQLAlchemyError

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SecondaryFailure:
    """One swallowed secondary-effect failure."""

    effect: str
    error: str


class SecondaryEffectRunner:
    """Runs secondary effects with a timeout and log-and-continue semantics."""

    def __init__(self, session: AsyncSession, timeout_seconds: float) -> None:
        self._session = session
        self._timeout_seconds = timeout_seconds
        self.failures: list[SecondaryFailure] = []

    async def run(self, effect: str, action: Callable[[], Awaitable[object]]) -> None:
        """Await ``action()``; on failure or timeout, log, roll back its pending writes and continue."""
        try:
            await asyncio.wait_for(action(), timeout=self._timeout_seconds)
        except TimeoutError:
            logger.warning("Secondary effect %s timed out after %.1fs", effect, self._timeout_seconds)
            self.failures.append(SecondaryFailure(effect=effect, error="timeout"))
            await self._discard_pending()
        except Exception as exc:
            logger.exception("Secondary effect %s failed", effect)
            self.failures.append(SecondaryFailure(effect=effect, error=type(exc).__name__))
            await self._discard_pending()

    async def _discard_pending(self) -> None:
        # The primary transition is already committed; this only drops the failed effect's writes.
        try:
            await self._session.rollback()
        except SQLAlchemyError:
            logger.exception("Rollback after secondary effect failure also failed")
