"""Custom exceptions and FastAPI exception handlers.

Every handler answers with an RFC 7807 problem detail that also carries the
``success``/``message`` envelope keys. Status mapping:

- ValidationError and malformed requests: 400
- AuthenticationError: 401
- NotFoundError: 404
- DatabaseError, NotFoundPostWriteError and anything unexpected: 500
"""

from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError

from app.core.logging import get_logger
from app.core.problem_details import (
    ERROR_TYPES,
    ProblemDetailResponse,
    problem_response,
)

logger = get_logger(__name__)


# =============================================================================
# Exception Classes
# =============================================================================


class APCMSError(Exception):
    """Base exception for APCMS application errors.

    All application-specific exceptions should inherit from this class.
    Each exception type maps to an RFC 7807 problem type URI.
    """

    error_type_uri: str = ERROR_TYPES["INTERNAL_ERROR"]

    def __init__(
        self,
        message: str,
        code: str = "INTERNAL_ERROR",
        status_code: int = 500,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize application error.

        Args:
            message: Human-readable error message.
            code: Machine-readable error code.
            status_code: HTTP status code.
            details: Additional error context.
        """
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details or {}

    @property
    def title(self) -> str:
        """RFC 7807 title - short summary of problem type."""
        return self.code.replace("_", " ").title()


class ValidationError(APCMSError):
    """Request data failed validation before touching the database.

    Raised for missing required fields, values that cannot be coerced to
    their column type, malformed batch bodies and bad date filters. When
    fields are missing, ``details["missing_fields"]`` lists them.
    """

    error_type_uri: str = ERROR_TYPES["VALIDATION_ERROR"]

    def __init__(
        self,
        message: str = "Validation failed",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            code="VALIDATION_ERROR",
            status_code=400,
            details=details,
        )

    @property
    def missing_fields(self) -> list[str]:
        """Names of the required fields that were absent or null."""
        return list(self.details.get("missing_fields", []))


class AuthenticationError(APCMSError):
    """Missing or invalid API key at the gateway."""

    error_type_uri: str = ERROR_TYPES["UNAUTHORIZED"]

    def __init__(self, message: str = "Access Denied: Invalid API Key.") -> None:
        super().__init__(message=message, code="UNAUTHORIZED", status_code=401)


class NotFoundError(APCMSError):
    """A singleton lookup found no row."""

    error_type_uri: str = ERROR_TYPES["NOT_FOUND"]

    def __init__(
        self,
        message: str = "Resource not found",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            code="NOT_FOUND",
            status_code=404,
            details=details,
        )


class NotFoundPostWriteError(APCMSError):
    """The re-read after a successful write returned no row.

    Signals a store consistency anomaly; never expected in normal operation.
    """

    error_type_uri: str = ERROR_TYPES["NOT_FOUND_POST_WRITE"]

    def __init__(
        self,
        message: str = "Record not found after write",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            code="NOT_FOUND_POST_WRITE",
            status_code=500,
            details=details,
        )


class DatabaseError(APCMSError):
    """Database connection or statement failure."""

    error_type_uri: str = ERROR_TYPES["DATABASE_ERROR"]

    def __init__(
        self,
        message: str = "Database operation failed",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            code="DATABASE_ERROR",
            status_code=500,
            details=details,
        )


# =============================================================================
# Exception Handlers (RFC 7807)
# =============================================================================


async def apcms_exception_handler(
    request: Request,
    exc: APCMSError,
) -> ProblemDetailResponse:
    """Handle APCMSError exceptions with RFC 7807 Problem Details.

    Args:
        request: FastAPI request object.
        exc: The raised exception.

    Returns:
        RFC 7807 Problem Detail response.
    """
    log_fields: dict[str, Any] = {
        "error": exc.message,
        "error_type": type(exc).__name__,
        "error_code": exc.code,
        "status_code": exc.status_code,
        "details": exc.details,
        "path": str(request.url.path),
    }
    if exc.status_code >= 500:
        logger.error("app.error_handled", exc_info=True, **log_fields)
    else:
        logger.warning("app.error_handled", **log_fields)

    errors: list[dict[str, Any]] | None = None
    if isinstance(exc, ValidationError) and exc.missing_fields:
        errors = [
            {"field": name, "message": "Field is required", "type": "missing"}
            for name in exc.missing_fields
        ]

    headers = {"WWW-Authenticate": "ApiKey"} if isinstance(exc, AuthenticationError) else None

    return problem_response(
        status=exc.status_code,
        title=exc.title,
        detail=exc.message,
        error_code=exc.code,
        errors=errors,
        headers=headers,
    )


async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError,
) -> ProblemDetailResponse:
    """Handle FastAPI request validation errors as 400 Bad Request.

    Args:
        request: FastAPI request object.
        exc: Pydantic validation error.

    Returns:
        RFC 7807 Problem Detail response with field-level errors.
    """
    field_errors: list[dict[str, str]] = []
    for error in exc.errors():
        loc = error.get("loc", [])
        field_path = ".".join(str(part) for part in loc if part != "body")
        field_errors.append(
            {
                "field": field_path,
                "message": str(error.get("msg", "Validation failed")),
                "type": str(error.get("type", "unknown")),
            }
        )

    logger.warning(
        "app.validation_error",
        error_count=len(field_errors),
        path=str(request.url.path),
        fields=[e["field"] for e in field_errors],
    )

    return problem_response(
        status=400,
        title="Validation Error",
        detail=f"Request validation failed with {len(field_errors)} error(s).",
        error_code="VALIDATION_ERROR",
        errors=field_errors,
    )


async def unhandled_exception_handler(
    request: Request,
    exc: Exception,
) -> ProblemDetailResponse:
    """Handle unexpected exceptions with RFC 7807 Problem Details.

    Args:
        request: FastAPI request object.
        exc: The raised exception.

    Returns:
        RFC 7807 Problem Detail response.
    """
    logger.error(
        "app.unhandled_error",
        error=str(exc),
        error_type=type(exc).__name__,
        path=str(request.url.path),
        exc_info=True,
    )

    return problem_response(
        status=500,
        title="Internal Server Error",
        detail="An unexpected error occurred. Contact support with the request_id.",
        error_code="INTERNAL_ERROR",
    )


# =============================================================================
# Handler Registration
# =============================================================================


def register_exception_handlers(app: FastAPI) -> None:
    """Register exception handlers with FastAPI app.

    Args:
        app: FastAPI application instance.
    """
    app.add_exception_handler(APCMSError, apcms_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, validation_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, unhandled_exception_handler)
