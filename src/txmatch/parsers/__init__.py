"""
txmatch parsers - bank statement and receipt export parsers.

Supports:
- Bank statements: CSV, Excel (.xlsx, .xls), PDF text, plain text
- Receipt exports: CSV, Excel (.xlsx, .xls)
"""

from txmatch.parsers.base import BaseParser, ParseResult, check_extension
from txmatch.parsers.bank_statement import BankStatementParser, is_header_line
from txmatch.parsers.receipts import ReceiptParser

__all__ = [
    "BaseParser",
    "ParseResult",
    "check_extension",
    "BankStatementParser",
    "is_header_line",
    "ReceiptParser",
]
