"""
Batch Ingester for txmatch.

Runs one parser over a list of uploaded files. Files are independent: a file
that fails to parse is recorded and the rest of the batch continues. Records
from every successful file are collected in upload order.
"""

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, List, Optional, Sequence

from txmatch.core.exceptions import BatchIngestionError
from txmatch.parsers.base import BaseParser

logger = logging.getLogger(__name__)


class FileStatus(Enum):
    """Status of individual file processing."""

    SUCCESS = "success"
    FAILED = "failed"
    SKIPPED = "skipped"  # batch cancelled before the file was read


@dataclass
class FileResult:
    """Result of processing a single file."""

    file_path: Path
    status: FileStatus
    records_processed: int = 0
    error_message: Optional[str] = None
    error_code: Optional[str] = None
    processing_time_ms: int = 0


@dataclass
class BatchResult:
    """Result of batch ingestion."""

    success: bool
    total_files: int
    files_processed: int = 0
    files_failed: int = 0
    files_skipped: int = 0
    total_records: int = 0
    file_results: List[FileResult] = field(default_factory=list)
    records: List[Any] = field(default_factory=list)
    record_name: str = "records"
    failure_message: Optional[str] = None
    empty_message: Optional[str] = None
    cancelled: bool = False
    processing_time_ms: int = 0

    def add_file_result(self, result: FileResult, records: Sequence[Any] = ()) -> None:
        """Add a file result (and its records) to the batch."""
        self.file_results.append(result)
        if result.status == FileStatus.SUCCESS:
            self.files_processed += 1
            self.total_records += result.records_processed
            self.records.extend(records)
        elif result.status == FileStatus.FAILED:
            self.files_failed += 1
        elif result.status == FileStatus.SKIPPED:
            self.files_skipped += 1

    @property
    def errors(self) -> List[str]:
        return [r.error_message for r in self.file_results if r.status == FileStatus.FAILED and r.error_message]

    def summary_message(self) -> str:
        """
        One-line status for the upload.

        Examples:
            "Loaded 12 transactions (1 files failed)"
            "Failed to parse files. Try CSV format."
        """
        if self.total_records > 0:
            message = f"Loaded {self.total_records} {self.record_name}"
            if self.files_failed:
                message += f" ({self.files_failed} files failed)"
            return message

        if self.files_failed:
            if self.failure_message:
                return self.failure_message
            return self.errors[0] if self.errors else "Failed to parse files. Check format."

        return self.empty_message or f"No {self.record_name} found."


class BatchIngester:
    """
    Sequential multi-file ingester with per-file error isolation.

    Usage:
        ingester = BatchIngester(BankStatementParser())
        result = ingester.ingest_batch([Path("jan.csv"), Path("feb.pdf")])

        print(result.summary_message())
        session.add_bank_transactions(result.records)
    """

    def __init__(self, parser: BaseParser):
        """
        Initialize batch ingester.

        Args:
            parser: Parser applied to every file in the batch
        """
        self.parser = parser

    def ingest_batch(
        self,
        files: Sequence[Path],
        cancel_event: Optional[threading.Event] = None,
        raise_on_failure: bool = False,
    ) -> BatchResult:
        """
        Parse every file in order.

        Args:
            files: Paths to parse
            cancel_event: When set, files not yet started are skipped
            raise_on_failure: Raise instead of returning when every file failed

        Returns:
            BatchResult with per-file details and the accepted records

        Raises:
            BatchIngestionError: If raise_on_failure and nothing was loaded
        """
        start_time = datetime.now()
        result = BatchResult(
            success=False,
            total_files=len(files),
            record_name=self.parser.RECORD_NAME,
            failure_message=getattr(self.parser, "BATCH_FAILURE_MESSAGE", None),
            empty_message=getattr(self.parser, "BATCH_EMPTY_MESSAGE", None),
        )

        for file_path in files:
            file_path = Path(file_path)

            if cancel_event is not None and cancel_event.is_set():
                result.cancelled = True
                result.add_file_result(FileResult(
                    file_path=file_path,
                    status=FileStatus.SKIPPED,
                    error_message="Batch cancelled",
                ))
                continue

            file_start = datetime.now()
            file_result, records = self._process_single_file(file_path)
            file_result.processing_time_ms = int(
                (datetime.now() - file_start).total_seconds() * 1000
            )
            result.add_file_result(file_result, records)

        result.success = result.total_records > 0 or result.files_failed == 0
        result.processing_time_ms = int(
            (datetime.now() - start_time).total_seconds() * 1000
        )

        if result.files_failed:
            logger.warning(
                f"Batch loaded {result.total_records} {result.record_name}; "
                f"{result.files_failed} of {result.total_files} files failed"
            )
        else:
            logger.info(
                f"Batch loaded {result.total_records} {result.record_name} "
                f"from {result.files_processed} files"
            )

        if raise_on_failure and not result.success:
            raise BatchIngestionError(
                result.summary_message(),
                failed_files=[str(r.file_path) for r in result.file_results if r.status == FileStatus.FAILED],
            )

        return result

    def _process_single_file(self, file_path: Path):
        """
        Parse one file, never letting its failure escape.

        Returns:
            (FileResult, records) tuple
        """
        try:
            parse_result = self.parser.parse(file_path)
        except Exception as e:
            logger.exception(f"Failed to parse {file_path}: {e}")
            return FileResult(
                file_path=file_path,
                status=FileStatus.FAILED,
                error_message=str(e),
                error_code="PARSE_ERROR",
            ), []

        if not parse_result.success:
            return FileResult(
                file_path=file_path,
                status=FileStatus.FAILED,
                error_message="; ".join(parse_result.errors) or "Parse failed",
                error_code=parse_result.error_code,
            ), []

        return FileResult(
            file_path=file_path,
            status=FileStatus.SUCCESS,
            records_processed=parse_result.record_count,
        ), parse_result.records
