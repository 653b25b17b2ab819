from __future__ import annotations

"""File-level failures of the ingestion pipeline.

Each exception aborts the current file only. ``error_type`` is the code
written to the error log (UPPER_SNAKE). Row-level problems are never raised;
they are counted as skipped rows by the normalizer.
"""

__all__ = [
    "IngestError",
    "ParseError",
    "EmptyFileError",
    "HeaderNotFoundError",
    "RequiredColumnMissingError",
    "UnsupportedFormatError",
    "FileTooLargeError",
]


class IngestError(Exception):
    """Base class for errors that make a whole file fail."""
    error_type = "INGEST_ERROR"


class ParseError(IngestError):
    """Raised when the uploaded bytes are not a readable spreadsheet."""
    error_type = "PARSE_ERROR"


class EmptyFileError(IngestError):
    """Raised when the workbook parses but its first sheet has no rows."""
    error_type = "EMPTY_FILE"


class HeaderNotFoundError(IngestError):
    """Raised when no row in the scan window carries the required labels."""
    error_type = "HEADER_NOT_FOUND"

    def __init__(self, message: str, sought_labels: tuple[str, ...] = ()) -> None:
        super().__init__(message)
        self.sought_labels = sought_labels


class RequiredColumnMissingError(IngestError):
    """Raised when a required column cannot be resolved in the header row."""
    error_type = "REQUIRED_COLUMN_MISSING"


class UnsupportedFormatError(IngestError):
    """Raised when an upload is neither xlsx, xls nor csv."""
    error_type = "UNSUPPORTED_FORMAT"


class FileTooLargeError(IngestError):
    """Raised when an upload exceeds the configured size limit."""
    error_type = "FILE_TOO_LARGE"
