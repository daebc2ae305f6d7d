"""
Request Flow for the Ledger Engine

Ties the access gate, the transaction engine and the receipt scanner
together for one caller request:

1. Authenticate once via the access gate (no identity -> Unauthorized,
   before the store is touched)
2. Run the engine operation in a worker thread
3. Wrap the outcome in an OperationResult

Only LedgerError kinds are turned into failure results; anything else is
a bug or an infrastructure fault and propagates to the caller.
"""

import asyncio
from typing import Any, Callable, Optional
from uuid import UUID

import structlog

from ledger_engine.audit import AuditLogger
from ledger_engine.config import DatabaseSettings, EngineSettings
from ledger_engine.errors import ExternalServiceError, LedgerError, UnauthorizedError
from ledger_engine.ledger.engine import DraftInput, TransactionEngine
from ledger_engine.models.transaction import OperationResult
from ledger_engine.services.access_gate import AccessGate
from ledger_engine.services.extraction import GeminiReceiptScanner, get_receipt_scanner
from ledger_engine.services.invalidation import InvalidationNotifier
from ledger_engine.services.storage import (
    create_ledger_engine,
    create_session_factory,
    create_tables,
)

logger = structlog.get_logger(__name__)


class TransactionFlow:
    """Async entry points for create, update, read and receipt scanning."""

    def __init__(
        self,
        engine: TransactionEngine,
        access_gate: AccessGate,
        receipt_scanner: Optional[GeminiReceiptScanner] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._engine = engine
        self._access_gate = access_gate
        self._receipt_scanner = receipt_scanner
        self._audit_logger = audit_logger or AuditLogger()

    @property
    def receipt_scanner(self) -> GeminiReceiptScanner:
        """Injected scanner, or the process-wide one on first use."""
        if self._receipt_scanner is None:
            self._receipt_scanner = get_receipt_scanner()
        return self._receipt_scanner

    async def create_transaction(
        self,
        request_context: Any,
        draft: DraftInput,
    ) -> OperationResult:
        return await self._call(
            "create_transaction",
            request_context,
            lambda caller_id: self._engine.create_transaction(caller_id, draft),
        )

    async def update_transaction(
        self,
        request_context: Any,
        transaction_id: UUID,
        draft: DraftInput,
    ) -> OperationResult:
        return await self._call(
            "update_transaction",
            request_context,
            lambda caller_id: self._engine.update_transaction(caller_id, transaction_id, draft),
        )

    async def get_transaction(
        self,
        request_context: Any,
        transaction_id: UUID,
    ) -> OperationResult:
        return await self._call(
            "get_transaction",
            request_context,
            lambda caller_id: self._engine.get_transaction(caller_id, transaction_id),
        )

    async def get_account(
        self,
        request_context: Any,
        account_id: UUID,
    ) -> OperationResult:
        return await self._call(
            "get_account",
            request_context,
            lambda caller_id: self._engine.get_account(caller_id, account_id),
        )

    async def scan_receipt(
        self,
        request_context: Any,
        image_bytes: bytes,
        mime_type: str,
    ) -> OperationResult:
        """
        Extract candidate fields from a receipt image.

        Success with data=None means the image was not a receipt.
        """
        caller_id = None
        try:
            caller_id = self._authenticate(request_context)
            candidate = await self.receipt_scanner.extract(image_bytes, mime_type)
        except ExternalServiceError as e:
            self._audit_logger.log_external_service_error(
                service=e.service,
                error_message=e.message,
                actor_id=caller_id,
            )
            return OperationResult.failure(e.to_detail())
        except LedgerError as e:
            return self._reject("scan_receipt", e, caller_id)

        self._audit_logger.log_receipt_scanned(
            mime_type=mime_type,
            size_bytes=len(image_bytes),
            recognised=candidate is not None,
            actor_id=caller_id,
        )
        return OperationResult.ok(candidate)

    async def _call(
        self,
        operation: str,
        request_context: Any,
        action: Callable[[str], Any],
    ) -> OperationResult:
        caller_id = None
        try:
            caller_id = self._authenticate(request_context)
            # The unit of work blocks on the database; keep it off the event loop
            data = await asyncio.to_thread(action, caller_id)
        except LedgerError as e:
            return self._reject(operation, e, caller_id)
        return OperationResult.ok(data)

    def _authenticate(self, request_context: Any) -> str:
        caller_id = self._access_gate.authenticate(request_context)
        if not caller_id:
            raise UnauthorizedError()
        return caller_id

    def _reject(
        self,
        operation: str,
        error: LedgerError,
        caller_id: Optional[str],
    ) -> OperationResult:
        self._audit_logger.log_operation_rejected(
            operation=operation,
            kind=error.kind.value,
            code=error.code,
            message=error.message,
            actor_id=caller_id,
        )
        return OperationResult.failure(error.to_detail())


def create_ledger_components(
    access_gate: AccessGate,
    notifier: Optional[InvalidationNotifier] = None,
    database_settings: Optional[DatabaseSettings] = None,
    engine_settings: Optional[EngineSettings] = None,
) -> tuple[TransactionFlow, TransactionEngine]:
    """
    Factory function to create the ledger components.

    Creates the tables if they do not exist yet.

    Returns:
        (transaction_flow, transaction_engine)
    """
    db_engine = create_ledger_engine(database_settings)
    create_tables(db_engine)
    session_factory = create_session_factory(db_engine)

    audit_logger = AuditLogger()
    engine = TransactionEngine(
        session_factory,
        notifier=notifier,
        audit_logger=audit_logger,
        settings=engine_settings,
    )
    flow = TransactionFlow(
        engine,
        access_gate,
        audit_logger=audit_logger,
    )
    return flow, engine
