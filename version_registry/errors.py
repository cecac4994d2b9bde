"""
Typed failures for lifecycle operations.

Every failure has a stable code, a category that decides how callers treat
it, and an HTTP-style status for the API layer. Operations return these in a
``LifecycleResult``; ``LifecycleError`` is only used inside a unit of work
to force a rollback.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Generic, Optional, TypeVar

T = TypeVar("T")


class ErrorCategory(str, Enum):
    CONFLICT = "conflict"
    NOT_FOUND = "not_found"
    INVALID_STATE = "invalid_state"
    INVALID_INPUT = "invalid_input"
    INFRASTRUCTURE = "infrastructure"
    INTERNAL = "internal"


class ErrorCode(str, Enum):
    DUPLICATE_VERSION = "DUPLICATE_VERSION"
    VERSION_NOT_FOUND = "VERSION_NOT_FOUND"
    INVALID_STATE = "INVALID_STATE"
    NO_ARTIFACTS = "NO_ARTIFACTS"
    ARTIFACT_RULE_VIOLATION = "ARTIFACT_RULE_VIOLATION"
    INVALID_TYPE = "INVALID_TYPE"
    INVALID_TRACK = "INVALID_TRACK"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    OUTBOX_GENERATION_FAILED = "OUTBOX_GENERATION_FAILED"
    INTERNAL_ERROR = "INTERNAL_ERROR"


ERROR_CATEGORIES: Dict[ErrorCode, ErrorCategory] = {
    ErrorCode.DUPLICATE_VERSION: ErrorCategory.CONFLICT,
    ErrorCode.VERSION_NOT_FOUND: ErrorCategory.NOT_FOUND,
    ErrorCode.INVALID_STATE: ErrorCategory.INVALID_STATE,
    ErrorCode.NO_ARTIFACTS: ErrorCategory.INVALID_STATE,
    ErrorCode.ARTIFACT_RULE_VIOLATION: ErrorCategory.INVALID_STATE,
    ErrorCode.INVALID_TYPE: ErrorCategory.INVALID_STATE,
    ErrorCode.INVALID_TRACK: ErrorCategory.INVALID_STATE,
    ErrorCode.VALIDATION_ERROR: ErrorCategory.INVALID_INPUT,
    ErrorCode.OUTBOX_GENERATION_FAILED: ErrorCategory.INFRASTRUCTURE,
    ErrorCode.INTERNAL_ERROR: ErrorCategory.INTERNAL,
}

HTTP_STATUS_BY_CATEGORY: Dict[ErrorCategory, int] = {
    ErrorCategory.CONFLICT: 409,
    ErrorCategory.NOT_FOUND: 404,
    ErrorCategory.INVALID_STATE: 422,
    ErrorCategory.INVALID_INPUT: 422,
    ErrorCategory.INFRASTRUCTURE: 502,
    ErrorCategory.INTERNAL: 500,
}


@dataclass(frozen=True)
class LifecycleFailure:
    """A failed lifecycle operation as seen by the caller."""

    code: ErrorCode
    message: str
    cause: Optional[str] = None

    @property
    def category(self) -> ErrorCategory:
        return ERROR_CATEGORIES[self.code]

    @property
    def http_status(self) -> int:
        return HTTP_STATUS_BY_CATEGORY[self.category]

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict for JSON serialization."""
        error: Dict[str, Any] = {
            "code": self.code.value,
            "category": self.category.value,
            "message": self.message,
        }
        if self.cause:
            error["cause"] = self.cause
        return {"error": error}


class LifecycleError(Exception):
    """
    Raised inside a unit of work when a rule check fails.

    Attributes:
        failure: The typed failure to report once the transaction is rolled back
    """

    def __init__(self, code: ErrorCode, message: str, cause: Optional[str] = None):
        self.failure = LifecycleFailure(code=code, message=message, cause=cause)
        super().__init__(f"{code.value}: {message}")

    @property
    def code(self) -> ErrorCode:
        return self.failure.code


@dataclass(frozen=True)
class LifecycleResult(Generic[T]):
    """Either the value an operation produced or the failure that stopped it."""

    value: Optional[T] = None
    failure: Optional[LifecycleFailure] = None

    @property
    def ok(self) -> bool:
        return self.failure is None

    @property
    def code(self) -> Optional[ErrorCode]:
        return self.failure.code if self.failure else None

    @classmethod
    def success(cls, value: T) -> "LifecycleResult[T]":
        return cls(value=value)

    @classmethod
    def fail(cls, failure: LifecycleFailure) -> "LifecycleResult[T]":
        return cls(failure=failure)

    def unwrap(self) -> T:
        """Return the value, or raise ``LifecycleError`` for a failed result."""
        if self.failure is not None:
            raise LifecycleError(
                self.failure.code, self.failure.message, self.failure.cause
            )
        return self.value
