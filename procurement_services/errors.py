"""
procurement_services.errors -- exception to response mapping.

Each kernel error category maps onto one status.  Anything that is not a
``ProcurementKernelError`` is an unexpected failure (500) and its message
is not echoed back.
"""

from __future__ import annotations

from typing import Any

from procurement_kernel.exceptions import (
    ComputationError,
    ConflictError,
    DependencyFailureError,
    NotFoundError,
    ProcurementKernelError,
    ValidationError,
)
from procurement_kernel.logging_config import get_logger

logger = get_logger("services.errors")

INTERNAL_ERROR_CODE = "INTERNAL_ERROR"

STATUS_BY_CATEGORY: tuple[tuple[type[ProcurementKernelError], int], ...] = (
    (ValidationError, 400),
    (NotFoundError, 404),
    (ConflictError, 409),
    (ComputationError, 422),
    (DependencyFailureError, 503),
)


def status_for(exc: BaseException) -> int:
    for category, status in STATUS_BY_CATEGORY:
        if isinstance(exc, category):
            return status
    return 500


def to_error_response(exc: BaseException) -> tuple[int, dict[str, Any]]:
    """
    Translate an exception into ``(status, body)``.

    The body is ``{"error": <code>, "message": <text>}``; ``field`` is added
    for validation errors that name one.
    """
    status = status_for(exc)
    if isinstance(exc, ProcurementKernelError):
        body: dict[str, Any] = {"error": exc.code, "message": str(exc)}
        field = getattr(exc, "field", None)
        if field:
            body["field"] = field
    else:
        logger.error("unexpected_error", exc_info=exc)
        body = {"error": INTERNAL_ERROR_CODE, "message": "Internal error"}
    return status, body
