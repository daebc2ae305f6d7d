"""Services package."""

from ledger_engine.services.access_gate import (
    AccessGate,
    StaticAccessGate,
    TokenAccessGate,
)
from ledger_engine.services.extraction import (
    GeminiReceiptScanner,
    get_receipt_scanner,
)
from ledger_engine.services.invalidation import (
    InvalidationNotifier,
    LoggingInvalidationNotifier,
    RecordingInvalidationNotifier,
)
from ledger_engine.services.storage import (
    LedgerStore,
    create_ledger_engine,
    create_session_factory,
    create_tables,
    session_scope,
)

__all__ = [
    # Access
    "AccessGate",
    "StaticAccessGate",
    "TokenAccessGate",
    # Extraction
    "GeminiReceiptScanner",
    "get_receipt_scanner",
    # Invalidation
    "InvalidationNotifier",
    "LoggingInvalidationNotifier",
    "RecordingInvalidationNotifier",
    # Storage
    "LedgerStore",
    "create_ledger_engine",
    "create_session_factory",
    "create_tables",
    "session_scope",
]
