"""
Aging Analyzer - bucket unmatched bank transactions by age for triage.

Age is measured in whole days between the transaction date and a reference
date. The reference date is "today" in the configured zone (UTC by default);
transaction dates are calendar dates, so both sides are compared as midnight
in that one zone.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import List, Optional, Sequence
from zoneinfo import ZoneInfo

from txmatch.core.models import AgingBucket, BankTransaction
from txmatch.core.preferences import AgingConfig

logger = logging.getLogger(__name__)

# (range, label, min_days, max_days); max_days None means unbounded
BUCKET_DEFINITIONS = [
    ("0-7", "Current", 0, 7),
    ("8-14", "Warning", 8, 14),
    ("15-30", "Attention", 15, 30),
    ("31-60", "Critical", 31, 60),
    ("60+", "Overdue", 61, None),
]

# Buckets from this index on count towards the critical totals
CRITICAL_FROM_INDEX = 3


def empty_buckets() -> List[AgingBucket]:
    """Fresh bucket list with no members."""
    return [
        AgingBucket(range=rng, label=label, min_days=lo, max_days=hi)
        for rng, label, lo, hi in BUCKET_DEFINITIONS
    ]


def aging_label(days: int) -> str:
    """Label of the bucket an age falls in."""
    for bucket in empty_buckets():
        if bucket.contains(days):
            return bucket.label
    return BUCKET_DEFINITIONS[-1][1]


@dataclass
class AgingSummary:
    """Aggregate view over the aging buckets."""

    buckets: List[AgingBucket] = field(default_factory=list)
    total_count: int = 0
    total_amount: Decimal = Decimal("0")
    average_age: int = 0
    critical_count: int = 0
    critical_amount: Decimal = Decimal("0")
    as_of: Optional[date] = None

    def to_dict(self) -> dict:
        return {
            "asOf": self.as_of.isoformat() if self.as_of else None,
            "totalCount": self.total_count,
            "totalAmount": float(self.total_amount),
            "averageAge": self.average_age,
            "criticalCount": self.critical_count,
            "criticalAmount": float(self.critical_amount),
            "buckets": [b.to_dict() for b in self.buckets],
        }


class AgingAnalyzer:
    """
    Buckets unmatched transactions into fixed age ranges.

    Usage:
        analyzer = AgingAnalyzer()
        for bucket in analyzer.bucketize(unmatched):
            print(bucket.label, bucket.count, bucket.total_amount)
    """

    def __init__(self, config: Optional[AgingConfig] = None, as_of: Optional[date] = None):
        """
        Initialize analyzer.

        Args:
            config: Aging settings (reference time zone)
            as_of: Fixed reference date; defaults to today in the configured zone
        """
        self.config = config or AgingConfig()
        self._as_of = as_of

    @property
    def as_of(self) -> date:
        if self._as_of is not None:
            return self._as_of
        if self.config.timezone.upper() == "UTC":
            return datetime.now(timezone.utc).date()
        return datetime.now(ZoneInfo(self.config.timezone)).date()

    def age_in_days(self, txn: BankTransaction, as_of: Optional[date] = None) -> int:
        """Whole days elapsed since the transaction date."""
        return ((as_of or self.as_of) - txn.date).days

    def bucketize(self, transactions: Sequence[BankTransaction]) -> List[AgingBucket]:
        """
        Place each transaction in its age bucket.

        Ages that fall in no range (future-dated transactions) go to the last
        bucket.

        Returns:
            All five buckets, empty ones included
        """
        as_of = self.as_of
        buckets = empty_buckets()

        for txn in transactions:
            days = self.age_in_days(txn, as_of)
            bucket = next((b for b in buckets if b.contains(days)), buckets[-1])
            bucket.transactions.append(txn)

        return buckets

    def summarize(self, transactions: Sequence[BankTransaction]) -> AgingSummary:
        """Bucket the transactions and compute totals, average age and critical totals."""
        as_of = self.as_of
        buckets = self.bucketize(transactions)
        summary = AgingSummary(buckets=buckets, as_of=as_of)

        summary.total_count = len(transactions)
        summary.total_amount = sum((t.amount for t in transactions), Decimal("0"))

        if transactions:
            total_age = sum(self.age_in_days(t, as_of) for t in transactions)
            summary.average_age = int(
                (Decimal(total_age) / len(transactions)).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
            )

        critical = buckets[CRITICAL_FROM_INDEX:]
        summary.critical_count = sum(b.count for b in critical)
        summary.critical_amount = sum((b.total_amount for b in critical), Decimal("0"))

        logger.debug(
            f"Aging as of {as_of}: {summary.total_count} unmatched, "
            f"{summary.critical_count} critical"
        )
        return summary
