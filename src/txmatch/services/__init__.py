"""Services module for txmatch business logic.

Provides services for:
- Matching Engine: Greedy exact-amount pairing of bank transactions and receipts
- Aging Analyzer: Age buckets for unmatched bank transactions
- Batch Ingester: Multi-file parsing with per-file error isolation
- Reconciliation Session: Persisted collections, cascades, filters and export
"""

from .matching import MatchingEngine, find_matches, unmatched_transactions, remove_matches_for
from .aging import AgingAnalyzer, AgingSummary, BUCKET_DEFINITIONS, aging_label
from .batch_ingester import BatchIngester, BatchResult, FileResult, FileStatus
from .session import (
    ReconciliationSession,
    TransactionFilter,
    MatchedPair,
    SessionStats,
    filter_transactions,
)

__all__ = [
    # Matching
    "MatchingEngine",
    "find_matches",
    "unmatched_transactions",
    "remove_matches_for",
    # Aging
    "AgingAnalyzer",
    "AgingSummary",
    "BUCKET_DEFINITIONS",
    "aging_label",
    # Batch Ingestion
    "BatchIngester",
    "BatchResult",
    "FileResult",
    "FileStatus",
    # Session
    "ReconciliationSession",
    "TransactionFilter",
    "MatchedPair",
    "SessionStats",
    "filter_transactions",
]
