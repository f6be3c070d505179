"""
Core module - Foundation components for txmatch.

Provides:
- Canonical models: BankTransaction, Receipt, Match, AgingBucket
- Field normalization primitives (dates, amounts, header aliases)
- Preferences: data-driven configuration with defaults
- CollectionStore: injected persistence for whole collections
- Exception taxonomy rooted at TxMatchError
"""

from txmatch.core.models import (
    BankTransaction,
    Receipt,
    Match,
    AgingBucket,
    TransactionType,
    MatchConfidence,
    generate_id,
    to_cents,
)
from txmatch.core.normalize import (
    NormalizeResult,
    normalize_date,
    normalize_amount,
    parse_signed_amount,
    normalize_header,
    resolve_field,
    title_case,
    truncate,
)
from txmatch.core.preferences import Preferences
from txmatch.core.store import (
    CollectionStore,
    InMemoryStore,
    SqliteStore,
    BANK_TRANSACTIONS_KEY,
    RECEIPTS_KEY,
    MATCHES_KEY,
)
from txmatch.core.exceptions import (
    TxMatchError,
    UnparseableDateError,
    UnparseableAmountError,
    EmptyInputError,
    UnrecognizedColumnsError,
    UnsupportedFileTypeError,
    StoreError,
    BatchIngestionError,
)

__all__ = [
    "BankTransaction",
    "Receipt",
    "Match",
    "AgingBucket",
    "TransactionType",
    "MatchConfidence",
    "generate_id",
    "to_cents",
    "NormalizeResult",
    "normalize_date",
    "normalize_amount",
    "parse_signed_amount",
    "normalize_header",
    "resolve_field",
    "title_case",
    "truncate",
    "Preferences",
    "CollectionStore",
    "InMemoryStore",
    "SqliteStore",
    "BANK_TRANSACTIONS_KEY",
    "RECEIPTS_KEY",
    "MATCHES_KEY",
    "TxMatchError",
    "UnparseableDateError",
    "UnparseableAmountError",
    "EmptyInputError",
    "UnrecognizedColumnsError",
    "UnsupportedFileTypeError",
    "StoreError",
    "BatchIngestionError",
]
