"""
Custom exceptions for the txmatch core module.

All txmatch-specific exceptions inherit from TxMatchError for easy catching.
Each carries a machine-readable ``code`` so callers can give targeted
guidance without matching on message text.
"""


class TxMatchError(Exception):
    """Base exception for all txmatch errors."""

    def __init__(self, message: str, code: str = None):
        super().__init__(message)
        self.message = message
        self.code = code


class UnparseableDateError(TxMatchError):
    """Raised when a date value matches no known format."""

    def __init__(self, value: str, code: str = "UNPARSEABLE_DATE"):
        super().__init__(f"Unparseable date: {value!r}", code)
        self.value = value


class UnparseableAmountError(TxMatchError):
    """Raised when an amount value is not numeric after cleaning."""

    def __init__(self, value: str, code: str = "UNPARSEABLE_AMOUNT"):
        super().__init__(f"Unparseable amount: {value!r}", code)
        self.value = value


class EmptyInputError(TxMatchError):
    """Raised when a file contains no data rows at all."""

    def __init__(self, message: str = "File appears to be empty or has no data rows",
                 source_file: str = "", code: str = "EMPTY_INPUT"):
        super().__init__(message, code)
        self.source_file = source_file


class UnrecognizedColumnsError(TxMatchError):
    """Raised when a file has rows but none of them yield a valid record."""

    def __init__(self, message: str = "No valid records found. Please check the column headers.",
                 source_file: str = "", headers: list = None, code: str = "UNRECOGNIZED_COLUMNS"):
        super().__init__(message, code)
        self.source_file = source_file
        self.headers = headers or []


class UnsupportedFileTypeError(TxMatchError):
    """Raised before parsing when the file extension is not supported."""

    def __init__(self, suffix: str, supported: list = None, code: str = "UNSUPPORTED_FILE_TYPE"):
        supported = supported or []
        message = f"Unsupported format: {suffix or '(none)'}"
        if supported:
            message += f". Please upload {', '.join(supported)} files"
        super().__init__(message, code)
        self.suffix = suffix
        self.supported = supported


class StoreError(TxMatchError):
    """Collection store read/write errors."""

    def __init__(self, message: str, code: str = "STORE_ERROR"):
        super().__init__(message, code)


class BatchIngestionError(TxMatchError):
    """Raised when a batch produced no records and every file failed."""

    def __init__(self, message: str, failed_files: list = None, code: str = "BATCH_ERROR"):
        super().__init__(message, code)
        self.failed_files = failed_files or []
