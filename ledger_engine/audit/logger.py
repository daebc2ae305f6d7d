"""
Audit Logger

Every ledger write, rejection, conflict retry and extraction call is
logged as a structured AuditEvent.

The audit logger:
- Writes through structlog as JSON lines
- Never raises into the operation being audited
"""

from typing import Optional
from uuid import UUID

import structlog

from ledger_engine.models.audit import AuditEvent, AuditEventBuilder


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """Central audit logging service."""

    def __init__(self):
        self._logger = structlog.get_logger("ledger_engine.audit")

    def log(self, event: AuditEvent) -> None:
        """Log an audit event at the level matching its severity."""
        log_dict = event.to_log_dict()

        if event.severity.value in ("error", "critical"):
            self._logger.error("audit_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("audit_event", **log_dict)
        elif event.severity.value == "debug":
            self._logger.debug("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

    def log_transaction_created(
        self,
        transaction_id: UUID,
        account_id: UUID,
        actor_id: str,
        effect: str,
        next_recurring_date: Optional[str] = None,
    ) -> None:
        self.log(AuditEventBuilder.transaction_created(
            transaction_id=transaction_id,
            account_id=account_id,
            actor_id=actor_id,
            effect=effect,
            next_recurring_date=next_recurring_date,
        ))

    def log_transaction_updated(
        self,
        transaction_id: UUID,
        account_id: UUID,
        actor_id: str,
        old_effect: str,
        new_effect: str,
        delta: str,
    ) -> None:
        self.log(AuditEventBuilder.transaction_updated(
            transaction_id=transaction_id,
            account_id=account_id,
            actor_id=actor_id,
            old_effect=old_effect,
            new_effect=new_effect,
            delta=delta,
        ))

    def log_commit_conflict(
        self,
        operation: str,
        attempt: int,
        reason: str,
        actor_id: Optional[str] = None,
    ) -> None:
        self.log(AuditEventBuilder.commit_conflict(
            operation=operation,
            attempt=attempt,
            reason=reason,
            actor_id=actor_id,
        ))

    def log_operation_rejected(
        self,
        operation: str,
        kind: str,
        code: str,
        message: str,
        actor_id: Optional[str] = None,
    ) -> None:
        self.log(AuditEventBuilder.operation_rejected(
            operation=operation,
            kind=kind,
            code=code,
            message=message,
            actor_id=actor_id,
        ))

    def log_receipt_scanned(
        self,
        mime_type: str,
        size_bytes: int,
        recognised: bool,
        actor_id: Optional[str] = None,
    ) -> None:
        self.log(AuditEventBuilder.receipt_scanned(
            mime_type=mime_type,
            size_bytes=size_bytes,
            recognised=recognised,
            actor_id=actor_id,
        ))

    def log_invalidation_failed(self, path: str, error_message: str) -> None:
        self.log(AuditEventBuilder.invalidation_failed(path, error_message))

    def log_external_service_error(
        self,
        service: str,
        error_message: str,
        actor_id: Optional[str] = None,
    ) -> None:
        self.log(AuditEventBuilder.external_service_error(
            service=service,
            error_message=error_message,
            actor_id=actor_id,
        ))
