"""
Bank statement parser.

Turns raw statement exports into BankTransaction records. Two modes:

- CSV mode (``.csv`` files and spreadsheet rows): skip preamble lines until a
  header line, then read date / description / amount columns by position.
- Free-text mode (text extracted from PDFs, ``.txt``): scan each line for a
  date and a currency-shaped amount and keep what is left as the description.
"""

import logging
import re
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Tuple

from txmatch.core.exceptions import EmptyInputError, UnrecognizedColumnsError
from txmatch.core.models import BankTransaction, TransactionType, generate_id
from txmatch.core.normalize import normalize_date, parse_signed_amount, truncate
from txmatch.parsers.base import (
    BaseParser,
    ParseResult,
    CSV_EXTENSIONS,
    EXCEL_EXTENSIONS,
    PDF_EXTENSIONS,
    TEXT_EXTENSIONS,
    read_excel_rows,
    read_pdf_text,
    read_text,
)

logger = logging.getLogger(__name__)

HEADER_KEYWORDS = ("date", "description", "amount", "balance", "transaction", "posting")
HEADER_MAX_TOKENS = 5

QUOTE_RE = re.compile(r"^[\"']|[\"']$")
DESCRIPTION_NOISE_RE = re.compile(r"[^\w\s-]")
WHITESPACE_RE = re.compile(r"\s+")


def is_header_line(line: str) -> bool:
    """A header mentions a statement keyword and has at most five words."""
    lower = line.lower()
    if not any(keyword in lower for keyword in HEADER_KEYWORDS):
        return False
    return len(lower.split()) <= HEADER_MAX_TOKENS


def _split_csv_line(line: str) -> List[str]:
    return [QUOTE_RE.sub("", part.strip()) for part in line.split(",")]


def _drop_trailing_empty(fields: List[str]) -> List[str]:
    while len(fields) > 3 and not fields[-1]:
        fields = fields[:-1]
    return fields


class BankStatementParser(BaseParser):
    """Parser for bank statement exports (CSV, spreadsheet, PDF text, plain text)."""

    SUPPORTED_EXTENSIONS = CSV_EXTENSIONS | EXCEL_EXTENSIONS | PDF_EXTENSIONS | TEXT_EXTENSIONS
    RECORD_NAME = "transactions"
    BATCH_FAILURE_MESSAGE = "Failed to parse files. Try CSV format."
    BATCH_EMPTY_MESSAGE = "No transactions found in files."

    # Tried in order; the first pattern whose match is a valid date wins
    DATE_PATTERNS = [
        re.compile(r"(\d{1,2})/(\d{1,2})/(\d{4})"),
        re.compile(r"(\d{1,2})-(\d{1,2})-(\d{4})"),
        re.compile(r"(\d{4})-(\d{1,2})-(\d{1,2})"),
        re.compile(r"(\d{1,2})/(\d{1,2})/(\d{2})"),
    ]

    AMOUNT_PATTERN = re.compile(r"-?\$?[\d,]+\.\d{2}")

    MIN_DESCRIPTION_LENGTH = 3

    def _parse_file(self, file_path: Path, result: ParseResult) -> List[BankTransaction]:
        """Read a statement file and dispatch to the matching mode."""
        suffix = file_path.suffix.lower()

        if suffix in EXCEL_EXTENSIONS:
            rows = read_excel_rows(file_path)
            rows = [row for row in rows if any(cell for cell in row)]
            if not rows:
                raise EmptyInputError(source_file=str(file_path))
            result.rows_seen = len(rows)
            transactions = self.parse_rows(rows)
        else:
            if suffix in PDF_EXTENSIONS:
                text = read_pdf_text(file_path)
            else:
                text = read_text(file_path)

            lines = [line for line in text.splitlines() if line.strip()]
            if not lines:
                raise EmptyInputError(source_file=str(file_path))
            result.rows_seen = len(lines)
            transactions = self.parse_text(text, file_path.name)

        if not transactions:
            raise UnrecognizedColumnsError(
                "No transactions found in file. Try CSV format.",
                source_file=str(file_path),
            )
        return transactions

    def parse_text(self, text: str, file_name: str = "") -> List[BankTransaction]:
        """
        Parse decoded statement text.

        Args:
            text: Whole file content
            file_name: Used only to pick CSV mode (``.csv``) or free-text mode

        Returns:
            Accepted transactions in input order; bad lines are skipped
        """
        if file_name.lower().endswith(".csv"):
            return self.parse_csv_text(text)
        return self.parse_free_text(text)

    # ------------------------------------------------------------------
    # CSV mode
    # ------------------------------------------------------------------

    def parse_csv_text(self, text: str) -> List[BankTransaction]:
        """Parse comma-separated statement text."""
        lines = []
        for line in text.splitlines():
            trimmed = line.strip()
            if trimmed:
                lines.append((trimmed, _split_csv_line(trimmed)))
        return self._parse_statement_lines(lines)

    def parse_rows(self, rows: Iterable[Sequence[str]]) -> List[BankTransaction]:
        """
        Parse spreadsheet rows that are already split into cells.

        Trailing empty cells padded in by the spreadsheet are dropped, and the
        header check runs on the cells joined with commas.
        """
        lines = []
        for row in rows:
            fields = _drop_trailing_empty([str(f).strip() for f in row])
            if any(fields):
                lines.append((",".join(fields), fields))
        return self._parse_statement_lines(lines)

    def _parse_statement_lines(self, lines: Iterable[Tuple[str, List[str]]]) -> List[BankTransaction]:
        """
        Parse (line, fields) pairs.

        Lines before the first header line are preamble and ignored.
        """
        transactions = []
        header_found = False

        for line, fields in lines:
            if not header_found:
                if is_header_line(line):
                    header_found = True
                continue

            txn = self._parse_csv_fields(fields)
            if txn:
                transactions.append(txn)
            else:
                logger.debug(f"Skipped statement row: {fields}")

        if not header_found:
            logger.debug("No header line found; statement rows ignored")

        return transactions

    def _parse_csv_fields(self, fields: List[str]) -> Optional[BankTransaction]:
        """Build a transaction from date / description / ... / amount fields."""
        if len(fields) < 3:
            return None

        txn_date = normalize_date(fields[0], self.year_pivot)
        if not txn_date.ok:
            return None

        amount = parse_signed_amount(fields[-1])
        if not amount.ok:
            return None

        description = fields[1].strip()
        if len(description) <= 2:
            return None

        return BankTransaction(
            id=generate_id("bank"),
            date=txn_date.value,
            description=truncate(description, self.description_limit),
            amount=abs(amount.value),
            type=TransactionType.DEBIT if amount.value < 0 else TransactionType.CREDIT,
        )

    # ------------------------------------------------------------------
    # Free-text mode
    # ------------------------------------------------------------------

    def parse_free_text(self, text: str) -> List[BankTransaction]:
        """Parse unstructured statement text line by line."""
        transactions = []

        for line in text.splitlines():
            line = line.strip()
            if not line or is_header_line(line):
                continue

            txn = self._parse_transaction_line(line)
            if txn:
                transactions.append(txn)
            else:
                logger.debug(f"Skipped statement line: {line!r}")

        return transactions

    def _find_date(self, line: str):
        for pattern in self.DATE_PATTERNS:
            match = pattern.search(line)
            if not match:
                continue
            parsed = normalize_date(match.group(0), self.year_pivot)
            if parsed.ok:
                return parsed.value, match.span()
        return None, None

    def _parse_transaction_line(self, line: str) -> Optional[BankTransaction]:
        """Extract date, last amount and a cleaned description from one line."""
        txn_date, date_span = self._find_date(line)
        if txn_date is None:
            return None

        amount_matches = list(self.AMOUNT_PATTERN.finditer(line))
        if not amount_matches:
            return None

        last_amount = amount_matches[-1]
        amount = parse_signed_amount(last_amount.group(0))
        if not amount.ok:
            return None

        description = self._remove_spans(line, [date_span, last_amount.span()])
        description = DESCRIPTION_NOISE_RE.sub(" ", description)
        description = WHITESPACE_RE.sub(" ", description).strip()

        if len(description) < self.MIN_DESCRIPTION_LENGTH:
            return None

        return BankTransaction(
            id=generate_id("bank"),
            date=txn_date,
            description=truncate(description, self.description_limit),
            amount=abs(amount.value),
            type=TransactionType.DEBIT if amount.value < 0 else TransactionType.CREDIT,
            raw_text=line,
        )

    @staticmethod
    def _remove_spans(line: str, spans: List[tuple]) -> str:
        """Cut the given (start, end) spans out of a line, leaving a space."""
        pieces = []
        cursor = 0
        for start, end in sorted(spans):
            if start < cursor:
                # Overlapping span; only cut what is left of it
                start = cursor
            if end <= start:
                continue
            pieces.append(line[cursor:start])
            cursor = end
        pieces.append(line[cursor:])
        return " ".join(pieces)
