from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel


class ErrorResponse(BaseModel):
    """Standard error response schema."""

    error: str
    detail: str | None = None
    details: dict[str, Any] | None = None
    status_code: int


class AppError(Exception):
    """Base application exception."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.details = details
        super().__init__(self.message)


class InsufficientBalance(AppError):
    """The ledger row cannot cover the requested days."""

    status_code = status.HTTP_400_BAD_REQUEST


class DateConflict(AppError):
    """The requested range intersects another live request of the same employee."""

    status_code = status.HTTP_409_CONFLICT


class InvalidDates(AppError):
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY


class InvalidTransition(AppError):
    """The event is not accepted in the request's current state."""

    status_code = status.HTTP_409_CONFLICT


class Forbidden(AppError):
    status_code = status.HTTP_403_FORBIDDEN


class InvalidHoldState(AppError):
    """The hold was already committed or released."""

    status_code = status.HTTP_409_CONFLICT


class InvariantViolation(AppError):
    """A ledger invariant would be breached. Always indicates a bug upstream."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


class NotFound(AppError):
    status_code = status.HTTP_404_NOT_FOUND


class Conflict(AppError):
    status_code = status.HTTP_409_CONFLICT


async def _app_exception_handler(request: Request, exc: AppError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(
            error=type(exc).__name__,
            detail=exc.message,
            details=exc.details,
            status_code=exc.status_code,
        ).model_dump(mode="json"),
    )


async def _validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=ErrorResponse(
            error="ValidationError",
            detail=str(exc.errors()),
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        ).model_dump(mode="json"),
    )


def setup_exception_handlers(app: FastAPI) -> None:
    """Register exception handlers on the application."""
    app.add_exception_handler(AppError, _app_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, _validation_exception_handler)  # type: ignore[arg-type]
