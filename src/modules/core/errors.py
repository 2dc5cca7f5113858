"""Application error taxonomy.

Every failure the API reports on purpose is an ``AppError``.  The error
itself is a thin carrier: the *details* object is the tagged variant.  Each
details class declares the ``ErrorKind`` it belongs to plus the payload that
kind needs (resource type + id for NOT_FOUND, field map for VALIDATION, ...).

The set of kinds is closed.  ``modules.core.pipeline`` maps every kind to
exactly one HTTP status; anything that is not an ``AppError`` (and cannot be
classified into one) is reported as an unclassified 500.

Usage::

    raise AppError(NotFound("Order", order_id))
    raise AppError(Forbidden(resource="Admin Panel", action="access"))
    raise AppError(Validation({"email": ["Email is required"]}), "Validation failed")
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, ClassVar, Dict, List, Mapping, Optional


class ErrorKind(str, enum.Enum):
    VALIDATION = "VALIDATION_ERROR"
    BAD_REQUEST = "BAD_REQUEST"
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"
    NOT_FOUND = "RESOURCE_NOT_FOUND"
    CONFLICT = "RESOURCE_CONFLICT"
    INVALID_STATE = "INVALID_STATE"
    INVALID_OPERATION = "INVALID_OPERATION"
    TIMEOUT = "TIMEOUT"
    UNSUPPORTED_OPERATION = "UNSUPPORTED_OPERATION"
    TRANSACTION_FAILURE = "TRANSACTION_FAILURE"


# Kinds raised on purpose by business rules.  Failures outside this set are
# system-level and get an extra critical log line.
DOMAIN_KINDS: frozenset[ErrorKind] = frozenset(
    {
        ErrorKind.VALIDATION,
        ErrorKind.BAD_REQUEST,
        ErrorKind.UNAUTHORIZED,
        ErrorKind.FORBIDDEN,
        ErrorKind.NOT_FOUND,
        ErrorKind.CONFLICT,
        ErrorKind.INVALID_STATE,
        ErrorKind.INVALID_OPERATION,
    }
)


# ---------------------------------------------------------------------------
# Details variants
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ErrorDetails:
    """Base for all details variants."""

    kind: ClassVar[ErrorKind]

    def default_message(self) -> str:
        raise NotImplementedError

    def log_fields(self) -> Dict[str, Any]:
        """Kind-specific structured fields for the failure log entry."""
        return {}

    def field_errors(self) -> Optional[Dict[str, List[str]]]:
        """Field -> messages map; only VALIDATION variants return one."""
        return None


@dataclass(frozen=True)
class Validation(ErrorDetails):
    kind: ClassVar[ErrorKind] = ErrorKind.VALIDATION

    errors: Mapping[str, List[str]] = field(default_factory=dict)

    def default_message(self) -> str:
        return "One or more validation errors occurred."

    def field_errors(self) -> Dict[str, List[str]]:
        return {key: list(messages) for key, messages in self.errors.items()}

    def log_fields(self) -> Dict[str, Any]:
        return {"validation_errors": self.field_errors()}


@dataclass(frozen=True)
class BadRequest(ErrorDetails):
    kind: ClassVar[ErrorKind] = ErrorKind.BAD_REQUEST

    invalid_field: Optional[str] = None
    expected_format: Optional[str] = None

    def default_message(self) -> str:
        if self.invalid_field:
            return f"Invalid value for '{self.invalid_field}'."
        return "The request is malformed or invalid."

    def log_fields(self) -> Dict[str, Any]:
        return {
            "invalid_field": self.invalid_field or "Unknown",
            "expected_format": self.expected_format,
        }


@dataclass(frozen=True)
class Unauthorized(ErrorDetails):
    kind: ClassVar[ErrorKind] = ErrorKind.UNAUTHORIZED

    def default_message(self) -> str:
        return "Authentication is required to access this resource"


@dataclass(frozen=True)
class Forbidden(ErrorDetails):
    kind: ClassVar[ErrorKind] = ErrorKind.FORBIDDEN

    resource: Optional[str] = None
    action: Optional[str] = None

    def default_message(self) -> str:
        if self.resource and self.action:
            return f"You do not have permission to {self.action} {self.resource}"
        return "You do not have permission to access this resource"

    def log_fields(self) -> Dict[str, Any]:
        return {
            "attempted_action": self.action or "unknown action",
            "resource": self.resource or "unknown resource",
        }


@dataclass(frozen=True)
class NotFound(ErrorDetails):
    kind: ClassVar[ErrorKind] = ErrorKind.NOT_FOUND

    resource_type: Optional[str] = None
    resource_id: Any = None

    def default_message(self) -> str:
        if self.resource_type and self.resource_id is not None:
            return f"{self.resource_type} with ID '{self.resource_id}' was not found"
        return "The requested resource was not found"

    def log_fields(self) -> Dict[str, Any]:
        return {
            "resource_type": self.resource_type or "Unknown",
            "resource_id": (
                str(self.resource_id) if self.resource_id is not None else "Unknown"
            ),
        }


@dataclass(frozen=True)
class Conflict(ErrorDetails):
    kind: ClassVar[ErrorKind] = ErrorKind.CONFLICT

    resource_type: Optional[str] = None
    reason: Optional[str] = None

    def default_message(self) -> str:
        if self.resource_type and self.reason:
            return f"Conflict with {self.resource_type}: {self.reason}"
        return "The request conflicts with the current state of the resource"

    def log_fields(self) -> Dict[str, Any]:
        return {
            "resource_type": self.resource_type or "Unknown",
            "conflict_reason": self.reason or self.default_message(),
        }


@dataclass(frozen=True)
class InvalidState(ErrorDetails):
    kind: ClassVar[ErrorKind] = ErrorKind.INVALID_STATE

    resource_type: Optional[str] = None
    current_state: Optional[str] = None
    attempted: Optional[str] = None

    def default_message(self) -> str:
        if self.current_state and self.attempted:
            return f"Cannot {self.attempted} while in status {self.current_state}."
        return "The requested state transition is not allowed."

    def log_fields(self) -> Dict[str, Any]:
        return {
            "resource_type": self.resource_type or "Unknown",
            "current_state": self.current_state,
            "attempted": self.attempted,
        }


@dataclass(frozen=True)
class InvalidOperation(ErrorDetails):
    kind: ClassVar[ErrorKind] = ErrorKind.INVALID_OPERATION

    operation: Optional[str] = None

    def default_message(self) -> str:
        return "The requested operation is not valid in the current context."

    def log_fields(self) -> Dict[str, Any]:
        return {"operation": self.operation}


@dataclass(frozen=True)
class Timeout(ErrorDetails):
    kind: ClassVar[ErrorKind] = ErrorKind.TIMEOUT

    operation: Optional[str] = None

    def default_message(self) -> str:
        return "The operation timed out."

    def log_fields(self) -> Dict[str, Any]:
        return {"operation": self.operation}


@dataclass(frozen=True)
class UnsupportedOperation(ErrorDetails):
    kind: ClassVar[ErrorKind] = ErrorKind.UNSUPPORTED_OPERATION

    operation: Optional[str] = None

    def default_message(self) -> str:
        return "This operation is not supported."

    def log_fields(self) -> Dict[str, Any]:
        return {"operation": self.operation}


@dataclass(frozen=True)
class TransactionFailure(ErrorDetails):
    """Storage failure inside an atomic block; the whole unit was rolled back."""

    kind: ClassVar[ErrorKind] = ErrorKind.TRANSACTION_FAILURE

    operation: str = "unknown"

    def default_message(self) -> str:
        return f"Transaction '{self.operation}' failed and was rolled back."

    def log_fields(self) -> Dict[str, Any]:
        return {"operation": self.operation}


# ---------------------------------------------------------------------------
# Exception carrier
# ---------------------------------------------------------------------------


class AppError(Exception):
    """A classified failure.  ``details`` decides the kind and the payload."""

    def __init__(self, details: ErrorDetails, message: Optional[str] = None) -> None:
        self.details = details
        self.message = message or details.default_message()
        super().__init__(self.message)

    @property
    def kind(self) -> ErrorKind:
        return self.details.kind

    def __repr__(self) -> str:
        return f"AppError({self.details!r}, message={self.message!r})"
