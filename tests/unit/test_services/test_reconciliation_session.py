"""
Unit tests for the reconciliation session.

Tests persistence, cascading removals, derived views, filters and export.
"""

import json
import pytest
from datetime import date, datetime, timezone
from decimal import Decimal

from txmatch.core.store import BANK_TRANSACTIONS_KEY, MATCHES_KEY, RECEIPTS_KEY, InMemoryStore
from txmatch.services.session import ReconciliationSession, TransactionFilter


@pytest.fixture
def session(memory_store, sample_bank_transactions, sample_receipts):
    session = ReconciliationSession(memory_store)
    session.add_bank_transactions(sample_bank_transactions)
    session.add_receipts(sample_receipts)
    return session


class TestMutations:
    """Tests for add/remove/clear."""

    def test_adding_recomputes_matches(self, session):
        assert [(m.bank_id, m.receipt_id) for m in session.matches] == [("b1", "r1"), ("b2", "r2")]

    def test_state_is_persisted(self, session, memory_store):
        assert len(memory_store.load(BANK_TRANSACTIONS_KEY)) == 3
        assert len(memory_store.load(RECEIPTS_KEY)) == 2
        assert len(memory_store.load(MATCHES_KEY)) == 2

        reloaded = ReconciliationSession(memory_store)
        assert [t.id for t in reloaded.bank_transactions] == ["b1", "b2", "b3"]
        assert reloaded.bank_transactions[0].amount == Decimal("42.50")
        assert [m.receipt_id for m in reloaded.matches] == ["r1", "r2"]

    def test_remove_bank_cascades_without_recompute(self, session, receipt_factory):
        match_ids = {m.id for m in session.matches}

        assert session.remove_bank_transaction("b1")

        assert [t.id for t in session.bank_transactions] == ["b2", "b3"]
        assert [m.bank_id for m in session.matches] == ["b2"]
        assert {m.id for m in session.matches} < match_ids
        # r1 stays unmatched until the next add
        assert "r1" in {r.id for r in session.receipts}

    def test_remove_receipt_cascades(self, session):
        assert session.remove_receipt("r2")

        assert [m.receipt_id for m in session.matches] == ["r1"]
        assert [t.id for t in session.unmatched_bank] == ["b2", "b3"]

    def test_remove_unknown_id(self, session):
        assert not session.remove_bank_transaction("missing")
        assert len(session.matches) == 2

    def test_add_after_remove_recomputes(self, session, receipt_factory):
        session.remove_bank_transaction("b1")
        session.add_receipts([receipt_factory("r3", "15.99", date(2024, 1, 12))])

        assert sorted(m.receipt_id for m in session.matches) == ["r2", "r3"]

    def test_clear_all(self, session, memory_store):
        session.clear_all()

        assert session.bank_transactions == []
        assert session.receipts == []
        assert session.matches == []
        assert memory_store.load(MATCHES_KEY) == []

    def test_clear_receipts_drops_matches(self, session):
        session.clear_receipts()

        assert session.matches == []
        assert len(session.unmatched_bank) == 3

    def test_clear_bank_transactions_drops_matches(self, session, memory_store):
        session.clear_bank_transactions()

        assert session.bank_transactions == []
        assert session.matches == []
        assert [r.id for r in session.receipts] == ["r1", "r2"]
        assert memory_store.load(BANK_TRANSACTIONS_KEY) == []
        assert memory_store.load(MATCHES_KEY) == []


class TestDerivedViews:
    def test_unmatched_bank(self, session):
        assert [t.id for t in session.unmatched_bank] == ["b3"]

    def test_matched_pairs_drop_dangling_matches(self, sample_bank_transactions, sample_receipts):
        store = InMemoryStore()
        session = ReconciliationSession(store)
        session.add_bank_transactions(sample_bank_transactions)
        session.add_receipts(sample_receipts)
        session.receipts = [r for r in session.receipts if r.id != "r1"]

        pairs = session.matched_pairs

        assert [(p.bank.id, p.receipt.id) for p in pairs] == [("b2", "r2")]
        assert len(session.matches) == 2

    def test_employees_and_jobs_sorted_distinct(self, session, receipt_factory):
        session.add_receipts([receipt_factory("r9", "1.00", date(2024, 1, 1), employee="Jane Doe", job="WO-1")])

        assert session.employees == ["Jane Doe", "John Smith"]
        assert session.jobs == ["WO-1", "WO-3", "WO-7"]

    def test_stats(self, session):
        stats = session.stats()

        assert stats.total_bank == 3
        assert stats.total_receipts == 2
        assert stats.matched == 2
        assert stats.unmatched_bank == 1
        assert stats.unmatched_amount == Decimal("15.99")
        assert stats.matched_amount == Decimal("142.50")
        assert stats.to_dict()["matchedAmount"] == 142.5

    def test_aging(self, session):
        summary = session.aging(as_of=date(2024, 3, 1))

        assert summary.total_count == 1
        # b3 dated 2024-01-10 is 51 days old
        assert summary.critical_count == 1

    def test_aging_with_filter(self, session, bank_factory):
        session.add_bank_transactions([bank_factory("b4", "7.25", date(2024, 2, 25), "COFFEE SHOP")])

        summary = session.aging(as_of=date(2024, 3, 1), criteria=TransactionFilter(search_query="coffee"))

        assert summary.total_count == 1
        assert summary.total_amount == Decimal("7.25")
        assert summary.average_age == 5
        assert summary.critical_count == 0


class TestFilters:
    @pytest.mark.parametrize("criteria,expected", [
        (TransactionFilter(), ["b1", "b2", "b3"]),
        (TransactionFilter(search_query="depot"), ["b2"]),
        (TransactionFilter(min_amount=Decimal("42.50")), ["b1", "b2"]),
        (TransactionFilter(max_amount=Decimal("42.50")), ["b1", "b3"]),
        (TransactionFilter(date_from=date(2024, 2, 1)), ["b1", "b2"]),
        (TransactionFilter(date_to=date(2024, 2, 1)), ["b2", "b3"]),
        (TransactionFilter(search_query="o", date_from=date(2024, 2, 2)), ["b1"]),
    ])
    def test_filter_transactions(self, session, criteria, expected):
        assert [t.id for t in session.filter_transactions(criteria)] == expected

    def test_active_count(self):
        assert TransactionFilter().active_count == 0
        assert TransactionFilter(search_query="x", min_amount=Decimal("0")).active_count == 2

    def test_filter_receipts(self, session):
        criteria = TransactionFilter(employee="John Smith")

        assert [r.id for r in session.filter_receipts(criteria)] == ["r1"]


class TestExport:
    EXPORTED_AT = datetime(2024, 3, 1, 12, 30, tzinfo=timezone.utc)

    def test_export_document(self, session):
        document = session.export_document(
            TransactionFilter(search_query="shell"), exported_at=self.EXPORTED_AT
        )

        assert [t["id"] for t in document["bankTransactions"]] == ["b1"]
        assert len(document["receipts"]) == 2
        assert len(document["matches"]) == 2
        assert document["exportDate"] == "2024-03-01T12:30:00.000Z"

    def test_export_to_file(self, session, tmp_path):
        path, document = session.export_to_file(tmp_path / "exports", exported_at=self.EXPORTED_AT)

        assert path.name == "transaction-matcher-2024-03-01.json"
        with open(path) as f:
            assert json.load(f) == document


class TestImports:
    def test_import_bank_files(self, memory_store, write_file):
        session = ReconciliationSession(memory_store)
        path = write_file("jan.csv", "Date,Description,Amount\n01/05/2024,SHELL OIL,-42.50\n")

        result = session.import_bank_files([path])

        assert result.total_records == 1
        assert len(session.bank_transactions) == 1

    def test_import_receipts_matches(self, memory_store, write_file):
        session = ReconciliationSession(memory_store)
        session.import_bank_files([write_file("jan.csv", "Date,Description,Amount\n01/05/2024,SHELL OIL,-42.50\n")])

        result = session.import_receipt_files([write_file("r.csv", "Date,Employee,Amount\n2024-01-06,jane,42.50\n")])

        assert result.summary_message() == "Loaded 1 receipts"
        assert len(session.matches) == 1

    def test_failed_import_adds_nothing(self, memory_store, write_file):
        session = ReconciliationSession(memory_store)

        result = session.import_receipt_files([write_file("r.csv", "Foo,Bar\n1,2\n")])

        assert result.files_failed == 1
        assert session.receipts == []
