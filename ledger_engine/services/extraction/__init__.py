"""Receipt extraction services package."""

from ledger_engine.services.extraction.gemini_service import (
    GeminiReceiptScanner,
    get_receipt_scanner,
)

__all__ = [
    "GeminiReceiptScanner",
    "get_receipt_scanner",
]
