"""
Base class and file readers for statement/receipt parsers.

Provides the ParseResult container, extension checks and the readers that
turn an uploaded file into decoded text or rows of string cells.
"""

import csv
import io
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from decimal import Decimal
from pathlib import Path
from typing import Any, List, Optional

import pandas as pd

from txmatch.core.exceptions import TxMatchError, UnsupportedFileTypeError
from txmatch.core.preferences import Preferences

logger = logging.getLogger(__name__)

CSV_EXTENSIONS = {".csv"}
EXCEL_EXTENSIONS = {".xlsx", ".xls"}
TEXT_EXTENSIONS = {".txt"}
PDF_EXTENSIONS = {".pdf"}


@dataclass
class ParseResult:
    """Result of parsing one file."""

    success: bool
    records: List[Any] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    error_code: Optional[str] = None
    source_file: str = ""
    rows_seen: int = 0

    def add_error(self, error: str, code: Optional[str] = None) -> None:
        """Add an error message."""
        self.errors.append(error)
        if code and not self.error_code:
            self.error_code = code

    def add_warning(self, warning: str) -> None:
        """Add a warning message."""
        self.warnings.append(warning)

    @property
    def record_count(self) -> int:
        """Get number of records parsed."""
        return len(self.records)

    @property
    def rows_skipped(self) -> int:
        return max(self.rows_seen - len(self.records), 0)

    @property
    def total_amount(self) -> Decimal:
        """Sum of record amounts."""
        return sum((r.amount for r in self.records), Decimal("0"))


def check_extension(file_path: Path, supported: set) -> str:
    """
    Return the lowercased suffix, failing fast on unsupported types.

    Raises:
        UnsupportedFileTypeError: If the suffix is not in ``supported``
    """
    suffix = Path(file_path).suffix.lower()
    if suffix not in supported:
        raise UnsupportedFileTypeError(suffix, sorted(supported))
    return suffix


def read_text(file_path: Path) -> str:
    """Read a text file as UTF-8, tolerating a byte order mark."""
    with open(file_path, encoding="utf-8-sig", errors="replace") as f:
        return f.read()


def read_pdf_text(file_path: Path, password: Optional[str] = None) -> str:
    """Extract page text from a PDF, one page after another."""
    import pdfplumber

    text_content = []
    with pdfplumber.open(file_path, password=password) as pdf:
        for page in pdf.pages:
            text_content.append(page.extract_text() or "")
    return "\n".join(text_content)


def _cell_to_str(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and pd.isna(value):
        return ""
    return str(value).strip()


def read_excel_rows(file_path: Path) -> List[List[str]]:
    """
    Read the first sheet of a workbook as rows of string cells.

    Row 0 is the header row; nothing is inferred from cell types.
    """
    df = pd.read_excel(file_path, sheet_name=0, header=None, dtype=str)
    rows = []
    for values in df.itertuples(index=False, name=None):
        rows.append([_cell_to_str(v) for v in values])
    return rows


def read_csv_rows(text: str) -> List[List[str]]:
    """Split CSV text into rows of cells, dropping fully blank lines."""
    reader = csv.reader(io.StringIO(text))
    return [[cell.strip() for cell in row] for row in reader if any(c.strip() for c in row)]


class BaseParser(ABC):
    """Abstract base class for file parsers."""

    SUPPORTED_EXTENSIONS: set = set()
    RECORD_NAME: str = "records"

    def __init__(self, preferences: Optional[Preferences] = None):
        """
        Initialize parser.

        Args:
            preferences: Parser settings (defaults when omitted)
        """
        self.preferences = preferences or Preferences()

    @property
    def description_limit(self) -> int:
        return self.preferences.parsers.description_max_length

    @property
    def year_pivot(self) -> int:
        return self.preferences.parsers.two_digit_year_pivot

    def parse(self, file_path: Path) -> ParseResult:
        """
        Parse a file into canonical records.

        Args:
            file_path: Path to the uploaded file

        Returns:
            ParseResult with records, or errors when the file yielded nothing
        """
        file_path = Path(file_path)
        result = ParseResult(success=False, source_file=str(file_path))

        try:
            check_extension(file_path, self.SUPPORTED_EXTENSIONS)
            if not file_path.exists():
                result.add_error(f"File not found: {file_path}", "FILE_NOT_FOUND")
                return result

            result.records = self._parse_file(file_path, result)
            result.success = True
            if result.rows_skipped:
                result.add_warning(f"{result.rows_skipped} of {result.rows_seen} rows skipped")
            logger.info(
                f"Parsed {result.record_count} {self.RECORD_NAME} from {file_path.name} "
                f"({result.rows_skipped} rows skipped)"
            )

        except TxMatchError as e:
            result.add_error(e.message, e.code)
            logger.warning(f"Failed to parse {file_path.name}: {e.message}")
        except Exception as e:
            result.add_error(f"Error parsing file: {e}", "PARSE_ERROR")
            logger.exception(f"Failed to parse {file_path}")

        return result

    @abstractmethod
    def _parse_file(self, file_path: Path, result: ParseResult) -> list:
        """
        Read and parse one file. Override in subclass.

        Implementations raise EmptyInputError / UnrecognizedColumnsError when
        the whole file yields nothing, and update ``result.rows_seen``.
        """
