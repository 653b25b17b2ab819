from __future__ import annotations

from pathlib import PurePath

from ..excel.errors import FileTooLargeError, UnsupportedFormatError

"""Upload validation performed before any parsing.

An upload is accepted when its extension OR its declared MIME type is a
spreadsheet one, and when it is not larger than the configured limit.
"""

__all__ = [
    "ALLOWED_EXTENSIONS",
    "ALLOWED_CONTENT_TYPES",
    "DEFAULT_MAX_BYTES",
    "validate_upload",
]

ALLOWED_EXTENSIONS = frozenset({".xlsx", ".xls", ".csv"})

ALLOWED_CONTENT_TYPES = frozenset({
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "application/vnd.ms-excel",
    "text/csv",
})

DEFAULT_MAX_BYTES = 50 * 1024 * 1024


def validate_upload(
    file_name: str,
    size: int,
    content_type: str | None = None,
    max_bytes: int = DEFAULT_MAX_BYTES,
) -> None:
    """Reject uploads that are not spreadsheets or are too large.

    Raises:
        UnsupportedFormatError: neither extension nor MIME type is accepted
        FileTooLargeError: ``size`` exceeds ``max_bytes``
    """
    extension = PurePath(file_name).suffix.lower()
    if extension not in ALLOWED_EXTENSIONS and content_type not in ALLOWED_CONTENT_TYPES:
        raise UnsupportedFormatError(
            f"unsupported format for '{file_name}': use Excel (.xlsx, .xls) or CSV files"
        )
    if size > max_bytes:
        raise FileTooLargeError(
            f"file size ({size / 1024 / 1024:.2f}MB) exceeds maximum allowed size "
            f"({max_bytes / 1024 / 1024:.0f}MB)"
        )
