"""Domain errors and the result envelope returned across the public boundary.

Inside the engine, expected failures are raised as ``InventoryError``
subclasses. Public mutating operations are wrapped with ``reports_failures``
which converts them (and pydantic validation errors) into an
``OperationResult`` so callers never need a try/except for normal control
flow. Anything else is a defect and propagates untouched.
"""

from __future__ import annotations

import functools
import logging
from typing import Any, Callable

from pydantic import BaseModel, ValidationError

LOGGER = logging.getLogger(__name__)


class InventoryError(ValueError):
    """Base class for expected, reportable failures."""

    code = "inventory_error"

    def __init__(self, message: str, *, details: Any | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details


class ValidationFailed(InventoryError):
    code = "validation_error"


class InsufficientStock(ValidationFailed):
    code = "insufficient_stock"


class NotFound(InventoryError):
    code = "not_found"


class AlreadyReturned(InventoryError):
    code = "already_returned"


class NotAuthorized(InventoryError):
    code = "not_authorized"


class StorageUnavailable(InventoryError):
    code = "storage_unavailable"


class OperationResult(BaseModel):
    ok: bool
    value: Any = None
    code: str | None = None
    message: str | None = None
    details: Any | None = None

    @classmethod
    def success(cls, value: Any = None, message: str | None = None) -> "OperationResult":
        return cls(ok=True, value=value, message=message)

    @classmethod
    def failure(cls, code: str, message: str, details: Any | None = None) -> "OperationResult":
        return cls(ok=False, code=code, message=message, details=details)

    def __bool__(self) -> bool:
        return self.ok


def _describe_validation(exc: ValidationError) -> str:
    parts = []
    for err in exc.errors(include_url=False):
        loc = ".".join(str(piece) for piece in err.get("loc", ()))
        parts.append(f"{loc}: {err['msg']}" if loc else err["msg"])
    return "; ".join(parts) or "Validation failed"


def error_envelope(exc: Exception) -> OperationResult:
    """Translate an expected failure into a result envelope."""

    if isinstance(exc, ValidationError):
        return OperationResult.failure(
            ValidationFailed.code,
            _describe_validation(exc),
            details={"errors": exc.errors(include_url=False, include_context=False)},
        )
    if isinstance(exc, InventoryError):
        return OperationResult.failure(exc.code, exc.message, details=exc.details)
    raise exc


def reports_failures(func: Callable[..., Any]) -> Callable[..., OperationResult]:
    """Run ``func`` and wrap its return value or expected failure in a result."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> OperationResult:
        try:
            value = func(*args, **kwargs)
        except (InventoryError, ValidationError) as exc:
            result = error_envelope(exc)
            level = logging.WARNING if isinstance(exc, StorageUnavailable) else logging.INFO
            LOGGER.log(
                level,
                "operation.rejected",
                extra={
                    "extra_data": {
                        "operation": func.__name__,
                        "code": result.code,
                        "reason": result.message,
                    }
                },
            )
            return result
        return OperationResult.success(value)

    return wrapper
