"""
Audit Models for the Ledger Engine

Every ledger write, every rejected operation and every call to the
extraction service produces an AuditEvent. Events are append-only.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Ledger writes
    TRANSACTION_CREATED = "transaction_created"
    TRANSACTION_UPDATED = "transaction_updated"

    # Unit of work
    COMMIT_CONFLICT = "commit_conflict"
    OPERATION_REJECTED = "operation_rejected"

    # Receipt extraction
    RECEIPT_SCANNED = "receipt_scanned"
    RECEIPT_NOT_RECOGNISED = "receipt_not_recognised"

    # Downstream
    INVALIDATION_FAILED = "invalidation_failed"

    # System events
    EXTERNAL_SERVICE_ERROR = "external_service_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """A single audit event."""

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=datetime.utcnow,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType
    severity: AuditSeverity = AuditSeverity.INFO

    # What entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'transaction', 'account', 'receipt')"
    )
    entity_id: Optional[UUID] = None

    # Who asked for it
    actor_id: Optional[str] = Field(
        default=None,
        description="Caller identity returned by the access gate"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(default_factory=dict)

    error_code: Optional[str] = None
    error_message: Optional[str] = None

    def to_log_dict(self) -> dict:
        """Convert to a dictionary suitable for structured logging."""
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": str(self.entity_id) if self.entity_id else None,
            "actor_id": self.actor_id,
            "description": self.description,
            "details": self.details,
            "error_code": self.error_code,
            "error_message": self.error_message,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.transaction_created(
            transaction_id=entry.id,
            account_id=entry.account_id,
            actor_id=caller_id,
            effect="-50.00",
        )
    """

    @staticmethod
    def transaction_created(
        transaction_id: UUID,
        account_id: UUID,
        actor_id: str,
        effect: str,
        next_recurring_date: Optional[str] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_CREATED,
            entity_type="transaction",
            entity_id=transaction_id,
            actor_id=actor_id,
            description="Transaction recorded and account balance adjusted",
            details={
                "account_id": str(account_id),
                "effect": effect,
                "next_recurring_date": next_recurring_date,
            },
        )

    @staticmethod
    def transaction_updated(
        transaction_id: UUID,
        account_id: UUID,
        actor_id: str,
        old_effect: str,
        new_effect: str,
        delta: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_UPDATED,
            entity_type="transaction",
            entity_id=transaction_id,
            actor_id=actor_id,
            description="Transaction replaced and account balance adjusted by delta",
            details={
                "account_id": str(account_id),
                "old_effect": old_effect,
                "new_effect": new_effect,
                "delta": delta,
            },
        )

    @staticmethod
    def commit_conflict(
        operation: str,
        attempt: int,
        reason: str,
        actor_id: Optional[str] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.COMMIT_CONFLICT,
            severity=AuditSeverity.WARNING,
            actor_id=actor_id,
            description=f"Unit of work for {operation} hit a commit conflict",
            details={"operation": operation, "attempt": attempt},
            error_code="COMMIT_CONFLICT",
            error_message=reason,
        )

    @staticmethod
    def operation_rejected(
        operation: str,
        kind: str,
        code: str,
        message: str,
        actor_id: Optional[str] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.OPERATION_REJECTED,
            severity=AuditSeverity.WARNING,
            actor_id=actor_id,
            description=f"{operation} rejected ({kind})",
            details={"operation": operation, "kind": kind},
            error_code=code,
            error_message=message,
        )

    @staticmethod
    def receipt_scanned(
        mime_type: str,
        size_bytes: int,
        recognised: bool,
        actor_id: Optional[str] = None,
    ) -> AuditEvent:
        if recognised:
            event_type = AuditEventType.RECEIPT_SCANNED
            description = "Receipt fields extracted"
        else:
            event_type = AuditEventType.RECEIPT_NOT_RECOGNISED
            description = "Image was not recognised as a receipt"

        return AuditEvent(
            event_type=event_type,
            entity_type="receipt",
            actor_id=actor_id,
            description=description,
            details={"mime_type": mime_type, "size_bytes": size_bytes},
        )

    @staticmethod
    def invalidation_failed(path: str, error_message: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.INVALIDATION_FAILED,
            severity=AuditSeverity.WARNING,
            description=f"Could not invalidate view {path}",
            details={"path": path},
            error_message=error_message,
        )

    @staticmethod
    def external_service_error(
        service: str,
        error_message: str,
        actor_id: Optional[str] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXTERNAL_SERVICE_ERROR,
            severity=AuditSeverity.ERROR,
            actor_id=actor_id,
            description=f"External service error: {service}",
            details={"service": service},
            error_code="EXTERNAL_SERVICE_ERROR",
            error_message=error_message,
        )
