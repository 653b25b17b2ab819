"""Domain models for the SIIGO spreadsheet ingestion pipeline."""

from .document_type import (
    ALL_DOCUMENT_TYPES,
    DOCUMENT_TYPE_NAMES,
    MONTH_NAMES,
    DocumentTypeCode,
    FileTypeHint,
    classify_document_code,
    detect_file_type_hint,
)
from .processing_result import (
    AggregateSummary,
    DateRange,
    FileStat,
    FileStatus,
    IngestionMetadata,
    IngestionResult,
    MonthlyTotal,
    ProcessingResult,
    TypeTotals,
)
from .raw_cell import Boolean, DateValue, Empty, Number, RawCell, Text, to_raw_cell
from .siigo_record import SiigoRecord
from .uploaded_file import UploadedFileRow

__all__ = [
    # Cells
    "RawCell",
    "Empty",
    "Number",
    "Boolean",
    "Text",
    "DateValue",
    "to_raw_cell",
    # Document types
    "DocumentTypeCode",
    "FileTypeHint",
    "ALL_DOCUMENT_TYPES",
    "DOCUMENT_TYPE_NAMES",
    "MONTH_NAMES",
    "classify_document_code",
    "detect_file_type_hint",
    # Records and results
    "SiigoRecord",
    "TypeTotals",
    "AggregateSummary",
    "DateRange",
    "IngestionMetadata",
    "IngestionResult",
    "MonthlyTotal",
    "FileStatus",
    "FileStat",
    "ProcessingResult",
    "UploadedFileRow",
]
