"""
Receipt export parser.

Parses expense/receipt exports (CSV or the first sheet of a workbook) whose
column names are not known in advance. Each canonical field is resolved
through a list of header aliases tried in priority order.
"""

import logging
from decimal import Decimal
from functools import partial
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from txmatch.core.exceptions import EmptyInputError, UnrecognizedColumnsError
from txmatch.core.models import Receipt, generate_id
from txmatch.core.normalize import (
    normalize_amount,
    normalize_date,
    normalize_header,
    resolve_field,
    title_case,
    truncate,
)
from txmatch.parsers.base import (
    BaseParser,
    ParseResult,
    CSV_EXTENSIONS,
    EXCEL_EXTENSIONS,
    read_csv_rows,
    read_excel_rows,
    read_text,
)

logger = logging.getLogger(__name__)


class ReceiptParser(BaseParser):
    """Parser for receipt/expense exports with loosely named columns."""

    SUPPORTED_EXTENSIONS = CSV_EXTENSIONS | EXCEL_EXTENSIONS
    RECORD_NAME = "receipts"
    # No BATCH_FAILURE_MESSAGE: the first file's own error is shown instead
    BATCH_EMPTY_MESSAGE = "No receipts found. Check column headers."

    # Header aliases per field, highest priority first
    FIELD_ALIASES = {
        "date": [
            "date", "reportdate", "report date", "expensedate", "expense date",
            "transactiondate", "transaction date", "created", "submitted",
            "datecreated", "date created",
        ],
        "employee": [
            "employee", "teammember", "team member", "submittedby", "submitted by",
            "user", "staff", "person", "name",
        ],
        "job": [
            "job", "jobnumber", "job number", "project", "workorder", "work order",
            "wo", "site", "job #", "job#",
        ],
        "amount": [
            "amount", "total", "totalamount", "total amount", "cost", "value",
            "price", "expenseamount", "expense amount",
        ],
        "description": [
            "description", "expensename", "expense name", "details", "memo",
            "note", "item", "expense",
        ],
        "category": [
            "category", "expensetype", "expense type", "type", "account",
        ],
    }

    DEFAULT_EMPLOYEE = "Unknown"
    DEFAULT_JOB = "General"

    def _parse_file(self, file_path: Path, result: ParseResult) -> List[Receipt]:
        """Read a CSV or workbook into rows and parse them."""
        if file_path.suffix.lower() in EXCEL_EXTENSIONS:
            rows = read_excel_rows(file_path)
        else:
            rows = read_csv_rows(read_text(file_path))

        result.rows_seen = max(len(rows) - 1, 0)
        try:
            return self.parse_rows(rows)
        except (EmptyInputError, UnrecognizedColumnsError) as e:
            e.source_file = str(file_path)
            raise

    def parse_csv_text(self, text: str) -> List[Receipt]:
        """Parse receipt CSV text (first line is the header)."""
        return self.parse_rows(read_csv_rows(text))

    def parse_rows(self, rows: Sequence[Sequence[str]]) -> List[Receipt]:
        """
        Parse tabular rows into receipts.

        Args:
            rows: Rows of cells; row 0 is the header

        Returns:
            Receipts for every row with a valid date and an amount above zero

        Raises:
            EmptyInputError: If there are no data rows
            UnrecognizedColumnsError: If rows exist but none yields a receipt
        """
        data_rows = [row for row in rows[1:] if row and any(str(c).strip() for c in row)] if rows else []
        if not data_rows:
            raise EmptyInputError("File appears to be empty or has no data rows")

        headers = [normalize_header(h) for h in rows[0]]
        logger.debug(f"Receipt headers: {headers}")

        receipts = []
        for index, row in enumerate(data_rows, start=1):
            row_data = self._row_to_dict(headers, row)
            receipt = self.parse_row(row_data)
            if receipt:
                receipts.append(receipt)
            else:
                logger.debug(f"Skipped receipt row {index}: {row_data}")

        if not receipts:
            raise UnrecognizedColumnsError(headers=headers)

        return receipts

    @staticmethod
    def _row_to_dict(headers: List[str], row: Sequence[str]) -> Dict[str, str]:
        row_data = {}
        for index, header in enumerate(headers):
            value = row[index] if index < len(row) else ""
            # First column wins when two headers normalize the same way
            if header not in row_data or not row_data[header]:
                row_data[header] = str(value or "").strip()
        return row_data

    def parse_row(self, row: Dict[str, str]) -> Optional[Receipt]:
        """
        Build a receipt from a header->value map.

        Returns None when the row has no usable date or a non-positive amount.
        """
        aliases = self.FIELD_ALIASES

        txn_date = resolve_field(
            row, aliases["date"], partial(normalize_date, pivot=self.year_pivot)
        )
        amount = resolve_field(row, aliases["amount"], normalize_amount) or Decimal("0")

        if txn_date is None or amount <= 0:
            return None

        employee = resolve_field(row, aliases["employee"]) or self.DEFAULT_EMPLOYEE
        job = resolve_field(row, aliases["job"]) or self.DEFAULT_JOB
        description = resolve_field(row, aliases["description"]) or ""
        category = resolve_field(row, aliases["category"])

        return Receipt(
            id=generate_id("receipt"),
            date=txn_date,
            employee=title_case(employee),
            job=job.upper(),
            amount=amount,
            description=truncate(description, self.description_limit),
            category=category,
        )
