"""
Reconciliation session - the stateful layer over the pure core.

Holds the three collections (bank transactions, receipts, matches), keeps
them in a CollectionStore and re-runs the matching engine whenever records
are added. Removing a record cascades to exactly the matches that reference
it; the remaining matches are kept as they are.
"""

import json
import logging
from dataclasses import dataclass
from datetime import date, datetime, timezone
from decimal import Decimal
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

from txmatch.core.models import BankTransaction, Match, Receipt, to_cents
from txmatch.core.preferences import Preferences
from txmatch.core.store import (
    BANK_TRANSACTIONS_KEY,
    MATCHES_KEY,
    RECEIPTS_KEY,
    CollectionStore,
    InMemoryStore,
)
from txmatch.parsers.bank_statement import BankStatementParser
from txmatch.parsers.receipts import ReceiptParser
from txmatch.services.aging import AgingAnalyzer, AgingSummary
from txmatch.services.batch_ingester import BatchIngester, BatchResult
from txmatch.services.matching import MatchingEngine, remove_matches_for, unmatched_transactions

logger = logging.getLogger(__name__)


@dataclass
class TransactionFilter:
    """Dashboard-style filter; unset fields do not filter."""

    search_query: str = ""
    min_amount: Optional[Decimal] = None
    max_amount: Optional[Decimal] = None
    date_from: Optional[date] = None
    date_to: Optional[date] = None
    employee: str = ""
    job: str = ""

    @property
    def active_count(self) -> int:
        """Number of filters that are set."""
        values = [
            self.employee, self.job, self.date_from, self.date_to,
            self.min_amount is not None, self.max_amount is not None, self.search_query,
        ]
        return sum(1 for v in values if v)

    def matches_transaction(self, txn: BankTransaction) -> bool:
        if self.search_query and self.search_query.lower() not in txn.description.lower():
            return False
        if self.min_amount is not None and txn.amount < self.min_amount:
            return False
        if self.max_amount is not None and txn.amount > self.max_amount:
            return False
        if self.date_from and txn.date < self.date_from:
            return False
        if self.date_to and txn.date > self.date_to:
            return False
        return True

    def matches_receipt(self, receipt: Receipt) -> bool:
        if self.employee and receipt.employee != self.employee:
            return False
        if self.job and receipt.job != self.job:
            return False
        if self.date_from and receipt.date < self.date_from:
            return False
        if self.date_to and receipt.date > self.date_to:
            return False
        return True


@dataclass
class MatchedPair:
    """A match together with the two records it links."""

    match: Match
    bank: BankTransaction
    receipt: Receipt


@dataclass
class SessionStats:
    """Headline numbers for the current state."""

    total_bank: int
    total_receipts: int
    matched: int
    unmatched_bank: int
    unmatched_amount: Decimal
    matched_amount: Decimal

    def to_dict(self) -> Dict:
        return {
            "totalBank": self.total_bank,
            "totalReceipts": self.total_receipts,
            "matched": self.matched,
            "unmatchedBank": self.unmatched_bank,
            "unmatchedAmount": float(to_cents(self.unmatched_amount)),
            "matchedAmount": float(to_cents(self.matched_amount)),
        }


def filter_transactions(
    transactions: Sequence[BankTransaction],
    criteria: Optional[TransactionFilter] = None,
) -> List[BankTransaction]:
    """Apply a TransactionFilter, keeping input order."""
    if criteria is None:
        return list(transactions)
    return [t for t in transactions if criteria.matches_transaction(t)]


class ReconciliationSession:
    """
    Stateful reconciliation workspace backed by a CollectionStore.

    Usage:
        session = ReconciliationSession(SqliteStore("txmatch.db"))
        result = session.import_bank_files([Path("statement.csv")])
        print(result.summary_message())

        for pair in session.matched_pairs:
            print(pair.bank.description, pair.receipt.employee)
    """

    def __init__(
        self,
        store: Optional[CollectionStore] = None,
        preferences: Optional[Preferences] = None,
        engine: Optional[MatchingEngine] = None,
    ):
        """
        Initialize session and load the persisted snapshots.

        Args:
            store: Collection store (in-memory when omitted)
            preferences: User preferences (defaults when omitted)
            engine: Matching engine (built from preferences when omitted)
        """
        self.store = store or InMemoryStore()
        self.preferences = preferences or Preferences()
        self.engine = engine or MatchingEngine(self.preferences.matching)

        self.bank_transactions: List[BankTransaction] = [
            BankTransaction.from_dict(d) for d in self.store.load(BANK_TRANSACTIONS_KEY)
        ]
        self.receipts: List[Receipt] = [
            Receipt.from_dict(d) for d in self.store.load(RECEIPTS_KEY)
        ]
        self.matches: List[Match] = [
            Match.from_dict(d) for d in self.store.load(MATCHES_KEY)
        ]
        logger.debug(
            f"Session loaded: {len(self.bank_transactions)} bank, "
            f"{len(self.receipts)} receipts, {len(self.matches)} matches"
        )

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def _save_bank(self) -> None:
        self.store.save(BANK_TRANSACTIONS_KEY, [t.to_dict() for t in self.bank_transactions])

    def _save_receipts(self) -> None:
        self.store.save(RECEIPTS_KEY, [r.to_dict() for r in self.receipts])

    def _save_matches(self) -> None:
        self.store.save(MATCHES_KEY, [m.to_dict() for m in self.matches])

    def recalculate_matches(self) -> List[Match]:
        """Replace all matches with a fresh engine run."""
        self.matches = self.engine.find_matches(self.bank_transactions, self.receipts)
        self._save_matches()
        return self.matches

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def add_bank_transactions(self, transactions: Sequence[BankTransaction]) -> None:
        """Append bank transactions and recompute matches."""
        self.bank_transactions = self.bank_transactions + list(transactions)
        self._save_bank()
        self.recalculate_matches()
        logger.info(f"Added {len(transactions)} bank transactions")

    def add_receipts(self, receipts: Sequence[Receipt]) -> None:
        """Append receipts and recompute matches."""
        self.receipts = self.receipts + list(receipts)
        self._save_receipts()
        self.recalculate_matches()
        logger.info(f"Added {len(receipts)} receipts")

    def remove_bank_transaction(self, bank_id: str) -> bool:
        """
        Remove one bank transaction and the matches that reference it.

        Returns:
            True if a transaction with that id existed
        """
        before = len(self.bank_transactions)
        self.bank_transactions = [t for t in self.bank_transactions if t.id != bank_id]
        self.matches = remove_matches_for(self.matches, bank_id=bank_id)
        self._save_bank()
        self._save_matches()
        return len(self.bank_transactions) < before

    def remove_receipt(self, receipt_id: str) -> bool:
        """
        Remove one receipt and the matches that reference it.

        Returns:
            True if a receipt with that id existed
        """
        before = len(self.receipts)
        self.receipts = [r for r in self.receipts if r.id != receipt_id]
        self.matches = remove_matches_for(self.matches, receipt_id=receipt_id)
        self._save_receipts()
        self._save_matches()
        return len(self.receipts) < before

    def clear_bank_transactions(self) -> None:
        self.bank_transactions = []
        self._save_bank()
        self.recalculate_matches()

    def clear_receipts(self) -> None:
        self.receipts = []
        self._save_receipts()
        self.recalculate_matches()

    def clear_all(self) -> None:
        """Drop every collection."""
        self.bank_transactions = []
        self.receipts = []
        self.matches = []
        self._save_bank()
        self._save_receipts()
        self._save_matches()
        logger.info("Cleared all data")

    # ------------------------------------------------------------------
    # Imports
    # ------------------------------------------------------------------

    def import_bank_files(self, paths: Sequence[Path], cancel_event=None) -> BatchResult:
        """Parse statement files and add whatever they yielded."""
        result = BatchIngester(BankStatementParser(self.preferences)).ingest_batch(
            paths, cancel_event=cancel_event
        )
        if result.records:
            self.add_bank_transactions(result.records)
        return result

    def import_receipt_files(self, paths: Sequence[Path], cancel_event=None) -> BatchResult:
        """Parse receipt exports and add whatever they yielded."""
        result = BatchIngester(ReceiptParser(self.preferences)).ingest_batch(
            paths, cancel_event=cancel_event
        )
        if result.records:
            self.add_receipts(result.records)
        return result

    # ------------------------------------------------------------------
    # Derived views
    # ------------------------------------------------------------------

    @property
    def unmatched_bank(self) -> List[BankTransaction]:
        return unmatched_transactions(self.bank_transactions, self.matches)

    @property
    def matched_pairs(self) -> List[MatchedPair]:
        """Matches joined to their records; matches with a missing side are dropped."""
        bank_by_id = {t.id: t for t in self.bank_transactions}
        receipt_by_id = {r.id: r for r in self.receipts}

        pairs = []
        for match in self.matches:
            bank = bank_by_id.get(match.bank_id)
            receipt = receipt_by_id.get(match.receipt_id)
            if bank is not None and receipt is not None:
                pairs.append(MatchedPair(match=match, bank=bank, receipt=receipt))
        return pairs

    @property
    def employees(self) -> List[str]:
        return sorted({r.employee for r in self.receipts})

    @property
    def jobs(self) -> List[str]:
        return sorted({r.job for r in self.receipts})

    def stats(self) -> SessionStats:
        unmatched = self.unmatched_bank
        return SessionStats(
            total_bank=len(self.bank_transactions),
            total_receipts=len(self.receipts),
            matched=len(self.matches),
            unmatched_bank=len(unmatched),
            unmatched_amount=sum((t.amount for t in unmatched), Decimal("0")),
            matched_amount=sum((p.match.amount for p in self.matched_pairs), Decimal("0")),
        )

    def aging(
        self,
        as_of: Optional[date] = None,
        criteria: Optional[TransactionFilter] = None,
    ) -> AgingSummary:
        """Aging summary of the unmatched bank transactions that pass the filter."""
        analyzer = AgingAnalyzer(self.preferences.aging, as_of=as_of)
        return analyzer.summarize(filter_transactions(self.unmatched_bank, criteria))

    def filter_transactions(self, criteria: Optional[TransactionFilter] = None) -> List[BankTransaction]:
        return filter_transactions(self.bank_transactions, criteria)

    def filter_receipts(self, criteria: Optional[TransactionFilter] = None) -> List[Receipt]:
        if criteria is None:
            return list(self.receipts)
        return [r for r in self.receipts if criteria.matches_receipt(r)]

    # ------------------------------------------------------------------
    # Export
    # ------------------------------------------------------------------

    def export_document(self, criteria: Optional[TransactionFilter] = None, exported_at: datetime = None) -> Dict:
        """
        Build the JSON export document.

        Only the bank transactions go through the filter; receipts and
        matches are exported whole.
        """
        exported_at = exported_at or datetime.now(timezone.utc)
        return {
            "bankTransactions": [t.to_dict() for t in self.filter_transactions(criteria)],
            "receipts": [r.to_dict() for r in self.receipts],
            "matches": [m.to_dict() for m in self.matches],
            "exportDate": exported_at.isoformat(timespec="milliseconds").replace("+00:00", "Z"),
        }

    def export_to_file(
        self,
        directory: Path,
        criteria: Optional[TransactionFilter] = None,
        exported_at: datetime = None,
    ) -> Tuple[Path, Dict]:
        """
        Write the export document to ``transaction-matcher-YYYY-MM-DD.json``.

        Returns:
            (path written, document)
        """
        exported_at = exported_at or datetime.now(timezone.utc)
        document = self.export_document(criteria, exported_at=exported_at)

        directory = Path(directory)
        directory.mkdir(parents=True, exist_ok=True)
        output = directory / self.preferences.export.generate_filename(exported_at.date())

        with open(output, "w", encoding="utf-8") as f:
            json.dump(document, f, indent=2)

        logger.info(f"Exported {len(document['bankTransactions'])} bank transactions to {output}")
        return output, document
