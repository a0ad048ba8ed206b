import logging
from typing import Literal

from fastapi import APIRouter
from pydantic import BaseModel
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from leave_core.config import get_settings
from leave_core.db import SessionDep

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    """Liveness of the service and reachability of the leave database."""

    status: Literal["ok", "degraded"]
    database: Literal["up", "down"]
    version: str
    environment: str


@router.get("/health", response_model=HealthResponse)
async def health(session: SessionDep) -> HealthResponse:
    """Report service health. Needs no auth headers."""
    settings = get_settings()
    database: Literal["up", "down"] = "up"

    try:
        await session.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError):
        logger.exception("Health check: leave database unreachable")
        database = "down"

    return HealthResponse(
        status="ok" if database == "up" else "degraded",
        database=database,
        version=settings.app_version,
        environment=settings.environment,
    )
