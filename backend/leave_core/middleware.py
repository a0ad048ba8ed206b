from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING

from fastapi.middleware.cors import CORSMiddleware

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from fastapi import FastAPI, Request, Response

    from leave_core.config import Settings

logger = logging.getLogger(__name__)

# Dev auth headers read by api.deps.get_auth_context.
AUTH_HEADERS = ["X-User-Id", "X-Role", "X-Department", "X-Manager-Id"]


async def _log_request(request: Request, call_next: Callable[[Request], Awaitable[Response]]) -> Response:
    start_ns = time.perf_counter_ns()
    response = await call_next(request)
    duration_ms = (time.perf_counter_ns() - start_ns) / 1_000_000
    logger.info(
        "%s %s -> %d (%.1fms) user=%s",
        request.method,
        request.url.path,
        response.status_code,
        duration_ms,
        request.headers.get("x-user-id", "-"),
    )
    return response


def setup_middleware(app: FastAPI, settings: Settings) -> None:
    """Configure CORS for the web client and per-request access logging."""
    app.add_middleware(
        CORSMiddleware,  # ty: ignore[invalid-argument-type]
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE"],
        allow_headers=["Content-Type", *AUTH_HEADERS],
    )
    app.middleware("http")(_log_request)
