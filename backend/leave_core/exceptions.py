from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel


class ErrorResponse(BaseModel):
    """Standard error response schema."""

    error: str
    detail: str | None = None
    status_code: int


class AppError(Exception):
    """Base application exception."""

    def __init__(self, message: str, status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR) -> None:
        self.message = message
        self.status_code = status_code
        super().__init__(self.message)


class LeaveValidationError(AppError):
    """Bad input rejected before anything is persisted."""

    def __init__(self, message: str) -> None:
        super().__init__(message, status_code=status.HTTP_422_UNPROCESSABLE_ENTITY)


class NotFoundError(AppError):
    """The requested entity does not exist (or is outside the caller's scope)."""

    def __init__(self, entity: str, entity_id: Any) -> None:
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} {entity_id} not found", status_code=status.HTTP_404_NOT_FOUND)


class ConflictError(AppError):
    """Duplicate key or a transition whose precondition no longer holds."""

    def __init__(self, message: str) -> None:
        super().__init__(message, status_code=status.HTTP_409_CONFLICT)


class ReferentialError(AppError):
    """A referenced row (usually a user) does not exist."""

    def __init__(self, message: str) -> None:
        super().__init__(message, status_code=status.HTTP_409_CONFLICT)


class ForbiddenError(AppError):
    """The caller lacks authority for the operation."""

    def __init__(self, message: str = "Not authorized to perform this action") -> None:
        super().__init__(message, status_code=status.HTTP_403_FORBIDDEN)


async def _app_exception_handler(request: Request, exc: AppError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(
            error=type(exc).__name__,
            detail=exc.message,
            status_code=exc.status_code,
        ).model_dump(),
    )


async def _validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=ErrorResponse(
            error="ValidationError",
            detail=str(exc.errors()),
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        ).model_dump(),
    )


def setup_exception_handlers(app: FastAPI) -> None:
    """Register exception handlers on the application."""
    app.add_exception_handler(AppError, _app_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, _validation_exception_handler)  # type: ignore[arg-type]
