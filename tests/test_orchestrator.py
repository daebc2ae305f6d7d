"""
Tests for the async TransactionFlow.

Coroutines are driven with asyncio.run; the Gemini model is faked.
"""

import asyncio
from decimal import Decimal
from uuid import uuid4

from ledger_engine.config import AppSettings, DatabaseSettings, GeminiSettings
from ledger_engine.ledger import TransactionEngine
from ledger_engine.models import AccountSnapshot, CandidateEntry, CommittedEntry, TransactionDraft
from ledger_engine.orchestrator import TransactionFlow, create_ledger_components
from ledger_engine.services.access_gate import StaticAccessGate, TokenAccessGate
from ledger_engine.services.extraction import GeminiReceiptScanner
from ledger_engine.services.invalidation import RecordingInvalidationNotifier

from conftest import ALICE, BOB

RECEIPT_JSON = (
    '{"amount": 18.4, "date": "2024-04-02", "description": "Lunch",'
    ' "merchantName": "Noodle Bar", "category": "food"}'
)


class FakeResponse:
    def __init__(self, text):
        self.text = text


class FakeModel:
    def __init__(self, text=None, error=None):
        self.text = text
        self.error = error

    async def generate_content_async(self, contents):
        if self.error is not None:
            raise self.error
        return FakeResponse(self.text)


def make_flow(ledger, user_id=ALICE, model=None) -> TransactionFlow:
    scanner = GeminiReceiptScanner(
        settings=GeminiSettings(api_key="test-key"),
        app_settings=AppSettings(),
        model=model or FakeModel(text=RECEIPT_JSON),
    )
    return TransactionFlow(ledger, StaticAccessGate(user_id), receipt_scanner=scanner)


class TestTransactionFlow:
    """Tests for the OperationResult envelope."""

    def test_create_success(self, ledger, alice_account, draft_for):
        result = asyncio.run(make_flow(ledger).create_transaction({}, draft_for(alice_account)))

        assert result.success
        assert result.error is None
        assert isinstance(result.data, CommittedEntry)

    def test_unauthenticated_request(self, ledger, alice_account, draft_for, balance_of):
        """No identity gives an unauthorized failure and no write."""
        flow = make_flow(ledger, user_id=None)

        result = asyncio.run(flow.create_transaction({}, draft_for(alice_account)))

        assert not result.success
        assert result.data is None
        assert result.error.kind == "unauthorized"
        assert balance_of(alice_account) == Decimal("1000.00")

    def test_validation_failure(self, ledger, alice_account, draft_for):
        result = asyncio.run(
            make_flow(ledger).create_transaction({}, draft_for(alice_account, amount=Decimal("0")))
        )

        assert result.error.kind == "validation"
        assert result.error.code == "VALIDATION_FAILED"
        assert result.error.details["issues"][0]["field"] == "amount"

    def test_update_and_read_back(self, ledger, alice_account, draft_for):
        flow = make_flow(ledger)
        created = asyncio.run(flow.create_transaction({}, draft_for(alice_account)))

        updated = asyncio.run(
            flow.update_transaction({}, created.data.id, draft_for(alice_account, amount=Decimal("75")))
        )
        fetched = asyncio.run(flow.get_transaction({}, created.data.id))
        account = asyncio.run(flow.get_account({}, alice_account))

        assert updated.success
        assert fetched.data.amount == 75.0
        assert isinstance(account.data, AccountSnapshot)
        assert account.data.balance == 925.0

    def test_foreign_entry_is_not_found(self, ledger, alice_account, draft_for):
        created = asyncio.run(make_flow(ledger).create_transaction({}, draft_for(alice_account)))

        result = asyncio.run(make_flow(ledger, user_id=BOB).get_transaction({}, created.data.id))

        assert result.error.kind == "not_found"
        assert result.error.message == "Transaction not found"


class TestScanReceipt:
    """Tests for receipt scanning through the flow."""

    def test_scan_then_create(self, ledger, alice_account, balance_of):
        """A scanned candidate can be submitted as an expense draft."""
        flow = make_flow(ledger)

        scanned = asyncio.run(flow.scan_receipt({}, b"\xff\xd8", "image/jpeg"))
        assert isinstance(scanned.data, CandidateEntry)

        draft = TransactionDraft.from_candidate(scanned.data, alice_account)
        created = asyncio.run(flow.create_transaction({}, draft))

        assert created.data.description == "Noodle Bar: Lunch"
        assert balance_of(alice_account) == Decimal("981.60")

    def test_not_a_receipt(self, ledger):
        flow = make_flow(ledger, model=FakeModel(text="{}"))

        result = asyncio.run(flow.scan_receipt({}, b"\xff\xd8", "image/jpeg"))

        assert result.success
        assert result.data is None

    def test_service_failure(self, ledger):
        flow = make_flow(ledger, model=FakeModel(error=ValueError("blocked")))

        result = asyncio.run(flow.scan_receipt({}, b"\xff\xd8", "image/jpeg"))

        assert not result.success
        assert result.error.kind == "external_service"
        assert result.error.details == {"service": "gemini"}

    def test_unsupported_upload(self, ledger):
        result = asyncio.run(make_flow(ledger).scan_receipt({}, b"GIF89a", "image/gif"))

        assert result.error.kind == "validation"

    def test_unauthenticated_scan(self, ledger):
        result = asyncio.run(make_flow(ledger, user_id=None).scan_receipt({}, b"\xff\xd8", "image/jpeg"))

        assert result.error.kind == "unauthorized"


class TestTokenAccessGate:
    """Tests for bearer token authentication."""

    def test_known_token(self):
        gate = TokenAccessGate({"abc123": ALICE})
        assert gate.authenticate({"authorization": "Bearer abc123"}) == ALICE

    def test_unknown_token(self):
        gate = TokenAccessGate({"abc123": ALICE})
        assert gate.authenticate({"authorization": "Bearer nope"}) is None

    def test_missing_header(self):
        gate = TokenAccessGate({"abc123": ALICE})
        assert gate.authenticate({}) is None
        assert gate.authenticate("Bearer abc123") is None

    def test_wrong_scheme(self):
        gate = TokenAccessGate({"abc123": ALICE})
        assert gate.authenticate({"authorization": "Basic abc123"}) is None


class TestCreateLedgerComponents:
    """Tests for the component factory."""

    def test_wires_flow_and_engine(self, tmp_path):
        notifier = RecordingInvalidationNotifier()
        flow, engine = create_ledger_components(
            TokenAccessGate({"t": ALICE}),
            notifier=notifier,
            database_settings=DatabaseSettings(url=f"sqlite:///{tmp_path / 'wired.db'}"),
        )

        assert isinstance(flow, TransactionFlow)
        assert isinstance(engine, TransactionEngine)

        # Tables exist but the caller has no user row yet
        result = asyncio.run(flow.get_account({"authorization": "Bearer t"}, uuid4()))

        assert result.error.kind == "not_found"
        assert result.error.details == {"entity_type": "user"}
