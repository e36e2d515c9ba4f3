"""
Application error types and the handlers that turn them into JSON envelopes.
"""
import logging
from decimal import Decimal
from typing import Any, Optional

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette import status
from starlette.exceptions import HTTPException as StarletteHTTPException

from busfleet.core.utils import error_response, round_money

logger = logging.getLogger(__name__)


class AppError(Exception):
    """Base error carrying an HTTP status and a stable machine-readable code."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    code: str = "INTERNAL_SERVER_ERROR"

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        code: Optional[str] = None,
        details: Any = None,
    ):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        if code is not None:
            self.code = code
        self.details = details


class BadRequestError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "BAD_REQUEST"

    def __init__(self, message: str = "Bad request", details: Any = None):
        super().__init__(message, details=details)


class UnauthorizedError(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "UNAUTHORIZED"

    def __init__(self, message: str = "Unauthorized", details: Any = None):
        super().__init__(message, details=details)


class ForbiddenError(AppError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "FORBIDDEN"

    def __init__(self, message: str = "Forbidden", details: Any = None):
        super().__init__(message, details=details)


class NotFoundError(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "NOT_FOUND"

    def __init__(self, message: str = "Resource not found", details: Any = None):
        super().__init__(message, details=details)


class ConflictError(AppError):
    status_code = status.HTTP_409_CONFLICT
    code = "CONFLICT"

    def __init__(self, message: str = "Conflict", details: Any = None):
        super().__init__(message, details=details)


class ValidationError(AppError):
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    code = "VALIDATION_ERROR"

    def __init__(self, message: str = "Validation failed", details: Any = None):
        super().__init__(message, details=details)


class InvalidRangeError(BadRequestError):
    """End date is not after the start date."""

    code = "INVALID_DATE_RANGE"

    def __init__(self, message: str = "End date must be after start date", details: Any = None):
        super().__init__(message, details=details)


class DuplicateMemberError(BadRequestError):
    code = "DUPLICATE_MEMBER"

    def __init__(self, group_id: int, user_id: int):
        super().__init__(
            "User is already a member of this group",
            details={"group_id": group_id, "user_id": user_id},
        )


class PercentageExceededError(BadRequestError):
    """Adding or changing a share would push the group above 100%."""

    code = "PERCENTAGE_EXCEEDED"

    def __init__(self, current_total: Decimal, attempted: Decimal):
        self.current_total = current_total = round_money(current_total)
        self.attempted = attempted = round_money(attempted)
        super().__init__(
            f"Percentage sum exceeds 100%. Current: {current_total}%, attempted: {attempted}%",
            details={"current_total": str(current_total), "attempted": str(attempted)},
        )


class GroupOverlapError(ConflictError):
    """Another active group already covers part of the requested period."""

    code = "GROUP_PERIOD_OVERLAP"

    def __init__(self, overlapping):
        super().__init__(
            "An active profit-sharing group already exists for this bus in the given period",
            details={
                "group_id": overlapping.id,
                "name": overlapping.name,
                "start_date": overlapping.start_date.isoformat(),
                "end_date": overlapping.end_date.isoformat() if overlapping.end_date else None,
            },
        )


def app_error_handler(request: Request, exc: AppError):  # type: ignore
    logger.warning(
        f"AppError {exc.code}: {exc.message} ({request.method} {request.url.path})"
    )
    return JSONResponse(
        status_code=exc.status_code,
        content=error_response(exc.message, exc.code, exc.details),
    )


def validation_error_handler(request: Request, exc: RequestValidationError):  # type: ignore
    details = [
        {
            "path": ".".join(str(part) for part in err.get("loc", ()) if part != "body"),
            "message": err.get("msg", ""),
        }
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=error_response("Validation failed", "VALIDATION_ERROR", details),
    )


def http_error_handler(request: Request, exc: StarletteHTTPException):  # type: ignore
    if exc.status_code == status.HTTP_404_NOT_FOUND:
        message = f"Route {request.method} {request.url.path} not found"
        code = "NOT_FOUND"
    else:
        message = str(exc.detail)
        code = "HTTP_ERROR"
    return JSONResponse(
        status_code=exc.status_code,
        content=error_response(message, code),
        headers=getattr(exc, "headers", None),
    )


def make_server_error_handler(expose_message: bool):
    """Build the catch-all handler; internal messages only leak in debug."""

    def server_error_handler(request: Request, exc: Exception):  # type: ignore
        logger.exception(f"Unhandled error on {request.method} {request.url.path}")
        message = str(exc) if expose_message else "Internal server error"
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=error_response(message, "INTERNAL_SERVER_ERROR"),
        )

    return server_error_handler


def register_exception_handlers(app, debug: bool = False) -> None:
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(Exception, make_server_error_handler(debug))
