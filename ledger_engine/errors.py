"""
Typed failures for the Ledger Engine.

Every failure the engine surfaces belongs to exactly one ErrorKind, so
callers branch on `error.kind` (or catch the class) instead of matching
message text:

    LedgerError (base)
    |
    +-- UnauthorizedError       no or invalid caller identity
    +-- NotFoundError           user, account or entry absent or not owned
    +-- ValidationError         bad amount, missing interval, malformed draft
    +-- ConflictError           unit of work could not commit (retryable)
    +-- ExternalServiceError    extraction adapter failed or returned junk
"""

from enum import Enum
from typing import Any, Optional

from ledger_engine.models.transaction import ErrorDetail, ValidationIssue


class ErrorKind(str, Enum):
    UNAUTHORIZED = "unauthorized"
    NOT_FOUND = "not_found"
    VALIDATION = "validation"
    CONFLICT = "conflict"
    EXTERNAL_SERVICE = "external_service"


class LedgerError(Exception):
    """Base exception for all ledger failures."""

    kind: ErrorKind
    code: str = "LEDGER_ERROR"
    retryable: bool = False

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_detail(self) -> ErrorDetail:
        return ErrorDetail(
            kind=self.kind.value,
            code=self.code,
            message=self.message,
            details=self.details,
        )


class UnauthorizedError(LedgerError):
    kind = ErrorKind.UNAUTHORIZED
    code = "UNAUTHORIZED"

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message)


class NotFoundError(LedgerError):
    """
    Entity absent or not owned by the caller.

    The two cases share one message so ownership checks never leak
    whether a foreign entity exists.
    """
    kind = ErrorKind.NOT_FOUND
    code = "NOT_FOUND"

    def __init__(self, entity_type: str, entity_id: Any = None):
        self.entity_type = entity_type
        self.entity_id = entity_id
        details = {"entity_type": entity_type}
        if entity_id is not None:
            details["entity_id"] = str(entity_id)
        super().__init__(f"{entity_type.capitalize()} not found", details)


class ValidationError(LedgerError):
    kind = ErrorKind.VALIDATION
    code = "VALIDATION_FAILED"

    def __init__(
        self,
        message: str,
        issues: Optional[list[ValidationIssue]] = None,
    ):
        self.issues = issues or []
        details = {}
        if self.issues:
            details["issues"] = [issue.model_dump() for issue in self.issues]
        super().__init__(message, details)


class ConflictError(LedgerError):
    kind = ErrorKind.CONFLICT
    code = "COMMIT_CONFLICT"
    retryable = True

    def __init__(self, operation: str, reason: str, attempts: Optional[int] = None):
        self.operation = operation
        self.reason = reason
        self.attempts = attempts
        details = {"operation": operation, "reason": reason}
        if attempts is not None:
            details["attempts"] = attempts
        super().__init__(
            f"Could not commit {operation} due to a concurrent modification",
            details,
        )


class ExternalServiceError(LedgerError):
    kind = ErrorKind.EXTERNAL_SERVICE
    code = "EXTERNAL_SERVICE_ERROR"

    def __init__(self, service: str, message: str):
        self.service = service
        super().__init__(message, {"service": service})
