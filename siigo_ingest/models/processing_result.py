from __future__ import annotations

import json
from collections.abc import Iterator
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from .document_type import DocumentTypeCode
from .siigo_record import SiigoRecord

"""Result models for the ingestion pipeline.

Per file: ``IngestionResult`` = records + ``AggregateSummary`` +
``IngestionMetadata``. Per batch (CLI / multi-file upload): ``FileStat`` and
``ProcessingResult``.

Invariants kept by these models:
- ``TypeTotals.total == sum(TypeTotals.by_month)`` (total is derived)
- ``processed_rows + skipped_rows == total_rows``
- ``date_range is None`` iff no row was accepted
"""

MONTHS_PER_YEAR = 12


@dataclass
class TypeTotals:
    """Running totals of one document type, indexed by zero-based month."""
    by_month: list[float] = field(default_factory=lambda: [0.0] * MONTHS_PER_YEAR)

    @property
    def total(self) -> float:
        return sum(self.by_month)

    def to_dict(self) -> dict[str, object]:
        return {"total": self.total, "byMonth": list(self.by_month)}


@dataclass
class AggregateSummary:
    """Per-type, per-month totals. Always carries the four document types."""
    totals: dict[DocumentTypeCode, TypeTotals] = field(
        default_factory=lambda: {t: TypeTotals() for t in DocumentTypeCode}
    )

    def add(self, record: SiigoRecord) -> None:
        self.totals[record.type].by_month[record.month] += record.value

    def __getitem__(self, doc_type: DocumentTypeCode) -> TypeTotals:
        return self.totals[doc_type]

    @property
    def grand_total(self) -> float:
        return sum(t.total for t in self.totals.values())

    def to_dict(self) -> dict[str, object]:
        return {t.value: self.totals[t].to_dict() for t in DocumentTypeCode}


@dataclass(frozen=True)
class DateRange:
    start: datetime
    end: datetime

    def extend(self, value: datetime) -> DateRange:
        if value < self.start:
            return DateRange(start=value, end=self.end)
        if value > self.end:
            return DateRange(start=self.start, end=value)
        return self


@dataclass(frozen=True)
class IngestionMetadata:
    total_rows: int  # data rows after the header row
    processed_rows: int  # rows turned into a SiigoRecord
    skipped_rows: int  # rows rejected (empty code, unknown type, bad date, value <= 0)
    date_range: DateRange | None = None

    def to_dict(self) -> dict[str, object]:
        date_range = None
        if self.date_range is not None:
            date_range = {
                "start": self.date_range.start.isoformat(),
                "end": self.date_range.end.isoformat(),
            }
        return {
            "totalRecords": self.total_rows,
            "processedRecords": self.processed_rows,
            "skippedRecords": self.skipped_rows,
            "dateRange": date_range,
        }


@dataclass(frozen=True)
class MonthlyTotal:
    """One persisted summary row candidate: (type, month, year) of a file."""
    document_type: DocumentTypeCode
    month: int  # 1..12
    year: int
    total_value: float
    processed_rows: int


@dataclass(frozen=True)
class IngestionResult:
    """Output of one pipeline run over a single file."""
    records: tuple[SiigoRecord, ...]
    summary: AggregateSummary
    metadata: IngestionMetadata
    file_name: str | None = None

    def monthly_totals(self) -> Iterator[MonthlyTotal]:
        """Yield totals per (type, year, month) present in the records.

        ``summary.by_month`` folds years together; persistence needs the year,
        so this regroups from the records themselves. Order is stable:
        document type order, then year, then month.
        """
        groups: dict[tuple[DocumentTypeCode, int, int], list[float]] = {}
        for record in self.records:
            groups.setdefault((record.type, record.year, record.month), []).append(record.value)
        type_order = {t: i for i, t in enumerate(DocumentTypeCode)}
        for (doc_type, year, month) in sorted(groups, key=lambda k: (type_order[k[0]], k[1], k[2])):
            values = groups[(doc_type, year, month)]
            yield MonthlyTotal(
                document_type=doc_type,
                month=month + 1,
                year=year,
                total_value=sum(values),
                processed_rows=len(values),
            )

    def to_dict(self) -> dict[str, object]:
        return {
            "records": [r.to_dict() for r in self.records],
            "summary": self.summary.to_dict(),
            "metadata": self.metadata.to_dict(),
        }

    def to_json(self, indent: int | None = 2) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False, indent=indent)


class FileStatus(Enum):
    """Lifecycle of one uploaded file inside a batch.

    pending -> processing -> (success | failed)
    """
    PENDING = "pending"
    PROCESSING = "processing"
    SUCCESS = "success"
    FAILED = "failed"


@dataclass(frozen=True)
class FileStat:
    """Per-file outcome inside a batch run."""
    file_name: str
    status: str  # success/failed
    type_hint: str  # file-name hint (FC/ND/DS/RP/unknown), display only
    processed_rows: int
    skipped_rows: int
    total_value: float
    elapsed_seconds: float
    saved_rows: int = 0  # uploaded_files rows written
    error: str | None = None


@dataclass(frozen=True)
class ProcessingResult:
    """Aggregated metrics of a batch run, rendered as the SUMMARY line."""
    success_files: int
    failed_files: int
    total_processed_rows: int
    total_skipped_rows: int
    grand_total_value: float
    start_time: datetime
    end_time: datetime
    elapsed_seconds: float
    file_stats: list[FileStat] | None = None
    results: list[IngestionResult] | None = None

    @property
    def total_files(self) -> int:
        return self.success_files + self.failed_files
