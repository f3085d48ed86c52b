"""Domain exceptions and the standard error envelope for callers of this core.

Not-found conditions subclass ``LookupError`` and validation failures subclass
``ValueError`` so service layers can map them to 404 / 422 without importing
anything from here.
"""
from typing import Any

import sentry_sdk
import structlog
from pydantic import BaseModel


class VersionNotFoundError(LookupError):
    """A referenced document version does not exist."""

    def __init__(self, *version_ids: Any) -> None:
        self.version_ids = version_ids
        joined = ", ".join(str(v) for v in version_ids)
        super().__init__(f"Document version(s) not found: {joined}")


class ComparisonNotFoundError(LookupError):
    def __init__(self, comparison_id: Any) -> None:
        self.comparison_id = comparison_id
        super().__init__(f"Comparison {comparison_id} not found")


class VersionValidationError(ValueError):
    """A write would break lineage rules (e.g. cross-document rollback)."""


class ComparisonCancelledError(RuntimeError):
    """Diff computation was cancelled or exceeded its deadline; nothing was persisted."""


class ErrorResponse(BaseModel):
    """Standard error envelope for the surrounding service layer."""
    error: str
    message: str
    detail: Any = None

logger = structlog.get_logger()


def error_response(exc: Exception) -> ErrorResponse:
    """Map an exception raised by this core into a consistent envelope.

    Domain errors keep their message. Anything else is logged, reported to
    Sentry and hidden behind a generic message.
    """
    if isinstance(exc, VersionNotFoundError):
        return ErrorResponse(
            error="not_found",
            message=str(exc),
            detail={"version_ids": [str(v) for v in exc.version_ids]},
        )
    if isinstance(exc, LookupError):
        return ErrorResponse(error="not_found", message=str(exc))
    if isinstance(exc, ValueError):
        return ErrorResponse(error="validation_error", message=str(exc))
    if isinstance(exc, ComparisonCancelledError):
        return ErrorResponse(error="cancelled", message=str(exc))

    logger.error(
        "unhandled_exception",
        error=str(exc),
        error_type=type(exc).__name__,
    )
    sentry_sdk.capture_exception(exc)
    return ErrorResponse(
        error="internal_error",
        message="An unexpected error occurred. Our team has been notified.",
    )
