"""
Matching Engine - pair bank transactions with receipts of identical amount.

The assignment is greedy and order dependent:

1. Bank transactions are grouped by exact amount, keeping input order.
2. Receipts are walked most recent first.
3. Each receipt takes the first unconsumed bank transaction in its bucket.

A receipt processed earlier can therefore take a bank transaction that would
have been a closer date fit for a later receipt. Downstream consumers rely on
this pairing order, so it must not be replaced with an optimal assignment.
"""

import logging
from collections import defaultdict
from datetime import datetime, timezone
from decimal import Decimal
from typing import Callable, Dict, List, Optional, Sequence

from txmatch.core.models import BankTransaction, Match, MatchConfidence, Receipt, generate_id
from txmatch.core.preferences import MatchingConfig

logger = logging.getLogger(__name__)


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class MatchingEngine:
    """
    Computes the full Match collection from scratch.

    Usage:
        engine = MatchingEngine()
        matches = engine.find_matches(bank_transactions, receipts)

        for match in matches:
            print(f"{match.bank_id} <-> {match.receipt_id} ({match.confidence.value})")
    """

    def __init__(
        self,
        config: Optional[MatchingConfig] = None,
        id_factory: Callable[[], str] = None,
        clock: Callable[[], str] = None,
    ):
        """
        Initialize the engine.

        Args:
            config: Matching settings (exact window, default 7 days)
            id_factory: Produces match ids (default ``match-<millis>-<random>``)
            clock: Produces the ISO-8601 match timestamp (default: UTC now)
        """
        self.config = config or MatchingConfig()
        self.id_factory = id_factory or (lambda: generate_id("match"))
        self.clock = clock or _utc_now_iso

    def classify(self, days_apart: int) -> MatchConfidence:
        """Exact when the dates are within the window, fuzzy otherwise."""
        if days_apart <= self.config.exact_window_days:
            return MatchConfidence.EXACT
        return MatchConfidence.FUZZY

    def find_matches(
        self,
        bank_transactions: Sequence[BankTransaction],
        receipts: Sequence[Receipt],
    ) -> List[Match]:
        """
        Pair bank transactions with receipts.

        Args:
            bank_transactions: Current bank transaction snapshot
            receipts: Current receipt snapshot

        Returns:
            New list of matches; each bank id and receipt id appears at most once
        """
        matches: List[Match] = []
        if not bank_transactions or not receipts:
            return matches

        used_bank_ids = set()
        used_receipt_ids = set()

        bank_by_amount: Dict[Decimal, List[BankTransaction]] = defaultdict(list)
        for txn in bank_transactions:
            bank_by_amount[txn.amount].append(txn)

        # Stable sort: receipts on the same date keep their input order
        sorted_receipts = sorted(receipts, key=lambda r: r.date, reverse=True)
        match_date = self.clock()

        for receipt in sorted_receipts:
            if receipt.id in used_receipt_ids:
                continue

            candidate = next(
                (t for t in bank_by_amount.get(receipt.amount, []) if t.id not in used_bank_ids),
                None,
            )
            if candidate is None:
                continue

            days_apart = abs((candidate.date - receipt.date).days)
            matches.append(Match(
                id=self.id_factory(),
                bank_id=candidate.id,
                receipt_id=receipt.id,
                amount=receipt.amount,
                match_date=match_date,
                confidence=self.classify(days_apart),
                days_since_match=days_apart,
            ))

            used_bank_ids.add(candidate.id)
            used_receipt_ids.add(receipt.id)

        logger.info(
            f"Matching complete: {len(bank_transactions)} bank transactions, "
            f"{len(receipts)} receipts, {len(matches)} matches"
        )
        return matches


def find_matches(
    bank_transactions: Sequence[BankTransaction],
    receipts: Sequence[Receipt],
    config: Optional[MatchingConfig] = None,
) -> List[Match]:
    """Convenience wrapper around MatchingEngine.find_matches."""
    return MatchingEngine(config).find_matches(bank_transactions, receipts)


def unmatched_transactions(
    bank_transactions: Sequence[BankTransaction],
    matches: Sequence[Match],
) -> List[BankTransaction]:
    """Bank transactions whose id appears in no match."""
    matched_ids = {m.bank_id for m in matches}
    return [t for t in bank_transactions if t.id not in matched_ids]


def remove_matches_for(
    matches: Sequence[Match],
    bank_id: Optional[str] = None,
    receipt_id: Optional[str] = None,
) -> List[Match]:
    """Drop exactly the matches that reference the removed bank transaction or receipt."""
    return [
        m for m in matches
        if not (bank_id is not None and m.bank_id == bank_id)
        and not (receipt_id is not None and m.receipt_id == receipt_id)
    ]
