"""
Canonical record models.

Dataclasses for bank transactions, receipts, matches and aging buckets.
Serialization uses the same camelCase keys as the JSON export so the
collection store and the export document share one format.
"""

import secrets
import time
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from enum import Enum
from typing import Optional, List, Dict, Any

CENT = Decimal("0.01")


class TransactionType(Enum):
    """Direction of a bank transaction."""

    DEBIT = "debit"
    CREDIT = "credit"


class MatchConfidence(Enum):
    """Temporal proximity of a match; says nothing about amount certainty."""

    EXACT = "exact"
    FUZZY = "fuzzy"


def generate_id(prefix: str) -> str:
    """Generate a record id like ``bank-1704412800000-k3j9x2a1q``."""
    millis = int(time.time() * 1000)
    return f"{prefix}-{millis}-{secrets.token_hex(5)[:9]}"


def to_cents(value) -> Decimal:
    """Quantize a numeric value to cent precision."""
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def _amount_to_json(amount: Decimal) -> float:
    return float(to_cents(amount))


@dataclass(frozen=True)
class BankTransaction:
    """A single bank statement line after normalization."""

    id: str
    date: date
    description: str
    amount: Decimal
    type: TransactionType = TransactionType.DEBIT
    raw_text: Optional[str] = None

    @property
    def is_debit(self) -> bool:
        return self.type == TransactionType.DEBIT

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-ready dictionary."""
        data = {
            "id": self.id,
            "date": self.date.isoformat(),
            "description": self.description,
            "amount": _amount_to_json(self.amount),
            "type": self.type.value,
        }
        if self.raw_text is not None:
            data["rawText"] = self.raw_text
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BankTransaction":
        return cls(
            id=data["id"],
            date=date.fromisoformat(data["date"]),
            description=data.get("description", ""),
            amount=to_cents(data["amount"]),
            type=TransactionType(data.get("type", "debit")),
            raw_text=data.get("rawText"),
        )


@dataclass(frozen=True)
class Receipt:
    """A single expense/receipt row after normalization."""

    id: str
    date: date
    employee: str
    job: str
    amount: Decimal
    description: str = ""
    category: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-ready dictionary."""
        data = {
            "id": self.id,
            "date": self.date.isoformat(),
            "employee": self.employee,
            "job": self.job,
            "amount": _amount_to_json(self.amount),
            "description": self.description,
        }
        if self.category:
            data["category"] = self.category
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Receipt":
        return cls(
            id=data["id"],
            date=date.fromisoformat(data["date"]),
            employee=data.get("employee", "Unknown"),
            job=data.get("job", "General"),
            amount=to_cents(data["amount"]),
            description=data.get("description", ""),
            category=data.get("category") or None,
        )


@dataclass(frozen=True)
class Match:
    """Pairing of one bank transaction with one receipt of identical amount."""

    id: str
    bank_id: str
    receipt_id: str
    amount: Decimal
    match_date: str
    confidence: MatchConfidence
    days_since_match: int

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-ready dictionary."""
        return {
            "id": self.id,
            "bankId": self.bank_id,
            "receiptId": self.receipt_id,
            "amount": _amount_to_json(self.amount),
            "matchDate": self.match_date,
            "confidence": self.confidence.value,
            "daysSinceMatch": self.days_since_match,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Match":
        return cls(
            id=data["id"],
            bank_id=data["bankId"],
            receipt_id=data["receiptId"],
            amount=to_cents(data["amount"]),
            match_date=data.get("matchDate", ""),
            confidence=MatchConfidence(data.get("confidence", "exact")),
            days_since_match=int(data.get("daysSinceMatch", 0)),
        )


@dataclass
class AgingBucket:
    """Fixed day-range bucket of unmatched transactions."""

    range: str
    label: str
    min_days: int
    max_days: Optional[int]  # None = unbounded above
    transactions: List[BankTransaction] = field(default_factory=list)

    def contains(self, days: int) -> bool:
        """Check whether an age in days falls inside this bucket (inclusive)."""
        if days < self.min_days:
            return False
        return self.max_days is None or days <= self.max_days

    @property
    def count(self) -> int:
        return len(self.transactions)

    @property
    def total_amount(self) -> Decimal:
        return sum((t.amount for t in self.transactions), Decimal("0"))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "range": self.range,
            "label": self.label,
            "minDays": self.min_days,
            "maxDays": self.max_days,
            "count": self.count,
            "totalAmount": _amount_to_json(self.total_amount),
            "transactions": [t.to_dict() for t in self.transactions],
        }
