from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from datetime import datetime

from ..excel.header import ColumnMap
from ..excel.values import DEFAULT_YEAR_WINDOW, cell_text, parse_siigo_date, parse_value
from ..models.document_type import ALL_DOCUMENT_TYPES, DocumentTypeCode, classify_document_code
from ..models.processing_result import AggregateSummary, DateRange, IngestionMetadata, IngestionResult
from ..models.raw_cell import EMPTY, RawCell
from ..models.siigo_record import SiigoRecord

"""Row normalizer and aggregator.

Every row after the header either becomes a SiigoRecord or is counted as
skipped. A row is skipped when:

- the document code cell is empty
- the code carries no known ``FC-``/``ND-``/``DS-``/``RP-`` token
- the date cannot be parsed (or falls outside the year window for text dates)
- the value is not positive

Skips are counted, never raised: one bad line in a large export must not
abort the import. Callers judge data quality from ``metadata.skipped_rows``.
"""

__all__ = [
    "normalize_rows",
]

logger = logging.getLogger(__name__)


def _cell(row: Sequence[RawCell], index: int | None) -> RawCell:
    if index is None or index >= len(row):
        return EMPTY
    return row[index]


def _optional_text(row: Sequence[RawCell], index: int | None) -> str | None:
    if index is None:
        return None
    return cell_text(_cell(row, index)) or None


def _normalize_row(
    row: Sequence[RawCell],
    column_map: ColumnMap,
    known_types: frozenset[DocumentTypeCode],
    year_window: tuple[int, int],
    default_currency: str,
) -> SiigoRecord | None:
    document_code = cell_text(_cell(row, column_map.document_code_index))
    if not document_code:
        return None
    doc_type = classify_document_code(document_code, known_types)
    if doc_type is None:
        return None
    date = parse_siigo_date(_cell(row, column_map.date_index), year_window)
    if date is None:
        return None
    value = parse_value(_cell(row, column_map.value_index))
    if value <= 0:
        return None
    return SiigoRecord.build(
        document_code,
        date,
        value,
        doc_type,
        identification=_optional_text(row, column_map.identification_index),
        provider=_optional_text(row, column_map.provider_index),
        currency=_optional_text(row, column_map.currency_index) or default_currency,
    )


def normalize_rows(
    rows: Sequence[Sequence[RawCell]],
    header_index: int,
    column_map: ColumnMap,
    *,
    file_name: str | None = None,
    known_types: Iterable[DocumentTypeCode] = ALL_DOCUMENT_TYPES,
    year_window: tuple[int, int] = DEFAULT_YEAR_WINDOW,
    default_currency: str = "COP",
) -> IngestionResult:
    """Normalize the data rows below ``header_index`` and aggregate them.

    Args:
        rows: every row of the sheet, header and title rows included
        header_index: index of the header row in ``rows``
        column_map: resolved columns for this sheet
        file_name: carried into the result for reporting only
        known_types: document types accepted by classification
        year_window: inclusive plausible year range for text dates
        default_currency: used when the "Moneda" column is absent or blank

    Raises:
        TypeError: ``column_map`` is not a ColumnMap
        ValueError: ``header_index`` is outside ``rows``
    """
    if not isinstance(column_map, ColumnMap):
        raise TypeError(f"column_map must be a ColumnMap, got {type(column_map).__name__}")
    if not 0 <= header_index < len(rows):
        raise ValueError(f"header_index {header_index} out of range for {len(rows)} rows")

    accepted_types = frozenset(known_types)
    data_rows = rows[header_index + 1:]
    records: list[SiigoRecord] = []
    summary = AggregateSummary()
    date_range: DateRange | None = None
    skipped = 0

    for row in data_rows:
        record = _normalize_row(row, column_map, accepted_types, year_window, default_currency)
        if record is None:
            skipped += 1
            continue
        records.append(record)
        summary.add(record)
        date_range = _extend(date_range, record.date)

    metadata = IngestionMetadata(
        total_rows=len(data_rows),
        processed_rows=len(records),
        skipped_rows=skipped,
        date_range=date_range,
    )
    logger.debug(
        "file=%s rows=%d processed=%d skipped=%d",
        file_name,
        metadata.total_rows,
        metadata.processed_rows,
        metadata.skipped_rows,
    )
    return IngestionResult(
        records=tuple(records),
        summary=summary,
        metadata=metadata,
        file_name=file_name,
    )


def _extend(date_range: DateRange | None, value: datetime) -> DateRange:
    if date_range is None:
        return DateRange(start=value, end=value)
    return date_range.extend(value)
