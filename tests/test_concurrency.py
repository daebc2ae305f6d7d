"""
Concurrent writers against the same account.

Threads share one SQLite file database. Each thread runs its own unit of
work; the balance must end up reflecting every committed entry.
"""

import threading
from concurrent.futures import ThreadPoolExecutor
from decimal import Decimal

from ledger_engine.models import TransactionCategory, TransactionType

from conftest import ALICE, STARTING_BALANCE


class TestConcurrentWriters:
    """Lost updates must not happen."""

    def test_updates_to_different_entries_both_land(
        self, ledger, alice_account, balance_of, draft_for
    ):
        """Two updates racing on one account compose: +10 and -5 give +5."""
        first = ledger.create_transaction(ALICE, draft_for(alice_account, amount=Decimal("100")))
        second = ledger.create_transaction(ALICE, draft_for(alice_account, amount=Decimal("100")))
        before = balance_of(alice_account)

        barrier = threading.Barrier(2)

        def amend(entry_id, amount):
            barrier.wait()
            return ledger.update_transaction(
                ALICE, entry_id, draft_for(alice_account, amount=amount)
            )

        with ThreadPoolExecutor(max_workers=2) as pool:
            futures = [
                # Expense 100 -> 90 raises the balance by 10
                pool.submit(amend, first.id, Decimal("90")),
                # Expense 100 -> 105 lowers it by 5
                pool.submit(amend, second.id, Decimal("105")),
            ]
            results = [future.result() for future in futures]

        assert [entry.amount for entry in results] == [90.0, 105.0]
        assert balance_of(alice_account) == before + Decimal("5")

    def test_racing_updates_to_one_entry(
        self, ledger, alice_account, balance_of, draft_for
    ):
        """The losing writer recomputes its delta from the winner's row."""
        entry = ledger.create_transaction(ALICE, draft_for(alice_account, amount=Decimal("100")))

        barrier = threading.Barrier(2)

        def amend(amount):
            barrier.wait()
            return ledger.update_transaction(
                ALICE, entry.id, draft_for(alice_account, amount=amount)
            )

        with ThreadPoolExecutor(max_workers=2) as pool:
            futures = [pool.submit(amend, amount) for amount in (Decimal("90"), Decimal("120"))]
            for future in futures:
                future.result()

        final = ledger.get_transaction(ALICE, entry.id)

        assert final.amount in (90.0, 120.0)
        assert balance_of(alice_account) == STARTING_BALANCE - Decimal(str(final.amount))

    def test_parallel_creates(self, ledger, alice_account, balance_of, draft_for):
        """Every concurrently created entry is reflected in the balance."""
        workers = 6
        barrier = threading.Barrier(workers)

        def record(index):
            barrier.wait()
            return ledger.create_transaction(
                ALICE,
                draft_for(
                    alice_account,
                    type=TransactionType.INCOME,
                    amount=Decimal(index + 1),
                    category=TransactionCategory.FREELANCE,
                ),
            )

        with ThreadPoolExecutor(max_workers=workers) as pool:
            entries = list(pool.map(record, range(workers)))

        assert len({entry.id for entry in entries}) == workers
        assert balance_of(alice_account) == STARTING_BALANCE + Decimal(sum(range(1, workers + 1)))
