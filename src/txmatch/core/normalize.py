"""
Field normalization primitives shared by the bank and receipt parsers.

Every normalizer returns a NormalizeResult instead of raising, so scanning
loops can skip a bad row and keep going.

Usage:
    from txmatch.core.normalize import normalize_date, normalize_amount

    result = normalize_date("1/5/24")
    if result.ok:
        print(result.value)            # 2024-01-05
    amount = normalize_amount("(1,234.50)").value_or(Decimal("0"))
"""

import re
import warnings
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Dict, Generic, Iterable, Optional, TypeVar

import pandas as pd

from txmatch.core.exceptions import TxMatchError, UnparseableAmountError, UnparseableDateError
from txmatch.core.models import to_cents

T = TypeVar("T")

DEFAULT_TWO_DIGIT_YEAR_PIVOT = 50
DEFAULT_DESCRIPTION_LIMIT = 150

ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
US_DATE_RE = re.compile(r"^(\d{1,2})[/-](\d{1,2})[/-](\d{4})$")
SHORT_DATE_RE = re.compile(r"^(\d{1,2})[/-](\d{1,2})[/-](\d{2})$")
NUMERIC_RE = re.compile(r"^[+-]?(?:\d+(?:\.\d*)?|\.\d+)$")
HEADER_STRIP_RE = re.compile(r"[^a-z0-9\s]")
WORD_START_RE = re.compile(r"\b\w")


@dataclass(frozen=True)
class NormalizeResult(Generic[T]):
    """Tagged success/failure of a single normalization step."""

    ok: bool
    value: Optional[T] = None
    error: Optional[TxMatchError] = None

    @classmethod
    def success(cls, value: T) -> "NormalizeResult[T]":
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, error: TxMatchError) -> "NormalizeResult[T]":
        return cls(ok=False, error=error)

    def value_or(self, default: T) -> T:
        return self.value if self.ok else default


def _build_date(year: int, month: int, day: int) -> Optional[date]:
    try:
        return date(year, month, day)
    except ValueError:
        return None


def expand_two_digit_year(yy: int, pivot: int = DEFAULT_TWO_DIGIT_YEAR_PIVOT) -> int:
    """Map a two-digit year onto a century: below the pivot is 20xx, else 19xx."""
    return 2000 + yy if yy < pivot else 1900 + yy


def _generic_parse(text: str) -> Optional[date]:
    with warnings.catch_warnings():
        warnings.simplefilter("ignore")
        try:
            parsed = pd.to_datetime(text, errors="coerce")
        except (ValueError, TypeError, OverflowError):
            return None
    if parsed is None or pd.isna(parsed):
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.tz_convert("UTC")
    return parsed.date()


def normalize_date(raw: Any, pivot: int = DEFAULT_TWO_DIGIT_YEAR_PIVOT) -> NormalizeResult[date]:
    """
    Normalize a loosely formatted date to a calendar date.

    Rules, in order:
    - YYYY-MM-DD
    - M/D/YYYY or M-D-YYYY
    - M/D/YY with the two-digit-year pivot
    - generic calendar parse (pandas)

    Args:
        raw: Date text (or a date/datetime object from a spreadsheet cell)
        pivot: Two-digit years below this value map to 20xx

    Returns:
        NormalizeResult holding a ``datetime.date``
    """
    if isinstance(raw, datetime):
        return NormalizeResult.success(raw.date())
    if isinstance(raw, date):
        return NormalizeResult.success(raw)

    text = str(raw).strip() if raw is not None else ""
    if not text:
        return NormalizeResult.failure(UnparseableDateError(text))

    parsed = None
    if ISO_DATE_RE.match(text):
        parsed = _build_date(int(text[0:4]), int(text[5:7]), int(text[8:10]))
    elif US_DATE_RE.match(text):
        month, day, year = US_DATE_RE.match(text).groups()
        parsed = _build_date(int(year), int(month), int(day))
    elif SHORT_DATE_RE.match(text):
        month, day, yy = SHORT_DATE_RE.match(text).groups()
        parsed = _build_date(expand_two_digit_year(int(yy), pivot), int(month), int(day))
    else:
        parsed = _generic_parse(text)

    if parsed is None:
        return NormalizeResult.failure(UnparseableDateError(text))
    return NormalizeResult.success(parsed)


def _clean_amount_text(raw: Any) -> str:
    text = str(raw).strip() if raw is not None else ""
    text = text.replace("$", "").replace(",", "").strip()
    if text.startswith("(") and text.endswith(")"):
        text = "-" + text[1:-1].strip()
    return text


def parse_signed_amount(raw: Any) -> NormalizeResult[Decimal]:
    """Parse a currency value keeping its sign; parentheses mean negative."""
    if isinstance(raw, (int, float, Decimal)) and not isinstance(raw, bool):
        return NormalizeResult.success(to_cents(raw))

    cleaned = _clean_amount_text(raw)
    if not NUMERIC_RE.match(cleaned):
        return NormalizeResult.failure(UnparseableAmountError(str(raw)))
    try:
        return NormalizeResult.success(to_cents(Decimal(cleaned)))
    except InvalidOperation:
        return NormalizeResult.failure(UnparseableAmountError(str(raw)))


def normalize_amount(raw: Any) -> NormalizeResult[Decimal]:
    """
    Normalize a currency value to a non-negative cent-precision Decimal.

    Strips the currency symbol and thousands separators, treats a value in
    parentheses as negative, then takes the absolute value.
    """
    result = parse_signed_amount(raw)
    if not result.ok:
        return result
    return NormalizeResult.success(abs(result.value))


def normalize_header(cell: Any) -> str:
    """Lowercase a header cell and drop everything except letters, digits and spaces."""
    text = str(cell).strip().lower() if cell is not None else ""
    return HEADER_STRIP_RE.sub("", text).strip()


def resolve_field(
    row: Dict[str, Any],
    aliases: Iterable[str],
    converter: Optional[Callable[[str], NormalizeResult]] = None,
) -> Any:
    """
    Look up a value by trying a list of header aliases in priority order.

    Each alias is tried first in its normalized form, then as a literal key.
    The first non-blank value wins. When a converter is given, a value that
    fails conversion is passed over and the search continues.

    Returns:
        The stripped string (or converted value), or None when nothing matched
    """
    for alias in aliases:
        for key in (normalize_header(alias), alias):
            value = row.get(key)
            if value is None:
                continue
            text = str(value).strip()
            if not text:
                continue
            if converter is None:
                return text
            converted = converter(text)
            if converted.ok:
                return converted.value
    return None


def title_case(text: str) -> str:
    """Uppercase the first letter of every word, leaving other letters alone."""
    return WORD_START_RE.sub(lambda m: m.group(0).upper(), text or "")


def truncate(text: str, limit: int = DEFAULT_DESCRIPTION_LIMIT) -> str:
    return (text or "")[:limit]
