from __future__ import annotations

import json
from datetime import UTC, datetime
from decimal import Decimal

import pytest

from siigo_ingest.models import (
    AggregateSummary,
    DateRange,
    DocumentTypeCode,
    IngestionMetadata,
    IngestionResult,
    ProcessingResult,
    SiigoRecord,
    TypeTotals,
    UploadedFileRow,
)


def _rec(code: str, when: datetime, value: float, doc_type: DocumentTypeCode) -> SiigoRecord:
    return SiigoRecord.build(code, when, value, doc_type)


def test_siigo_record_month_is_zero_based():
    r = _rec("FC-1", datetime(2024, 1, 15), 10.0, DocumentTypeCode.FC)
    assert r.month == 0
    assert r.year == 2024
    assert r.currency == "COP"
    d = r.to_dict()
    assert d["documentCode"] == "FC-1"
    assert d["type"] == "FC"
    assert d["date"] == "2024-01-15T00:00:00"


def test_type_totals_total_is_sum_of_months():
    t = TypeTotals()
    t.by_month[0] = 100.0
    t.by_month[11] = 50.5
    assert t.total == pytest.approx(150.5)
    assert t.to_dict() == {"total": pytest.approx(150.5), "byMonth": t.by_month}


def test_aggregate_summary_always_has_four_types():
    s = AggregateSummary()
    s.add(_rec("ND-1", datetime(2024, 6, 1), 500.0, DocumentTypeCode.ND))
    assert set(s.totals) == set(DocumentTypeCode)
    assert s[DocumentTypeCode.ND].by_month[5] == 500.0
    assert s[DocumentTypeCode.FC].total == 0
    assert s.grand_total == 500.0
    assert list(s.to_dict()) == ["FC", "ND", "DS", "RP"]


def test_date_range_extend():
    r = DateRange(datetime(2024, 3, 1), datetime(2024, 3, 1))
    r = r.extend(datetime(2024, 1, 1)).extend(datetime(2024, 5, 1)).extend(datetime(2024, 2, 1))
    assert r == DateRange(datetime(2024, 1, 1), datetime(2024, 5, 1))


def test_metadata_to_dict():
    meta = IngestionMetadata(total_rows=3, processed_rows=2, skipped_rows=1, date_range=None)
    assert meta.to_dict() == {
        "totalRecords": 3,
        "processedRecords": 2,
        "skippedRecords": 1,
        "dateRange": None,
    }


def test_monthly_totals_split_by_year_and_ordered():
    records = (
        _rec("ND-1", datetime(2024, 6, 3), 500.0, DocumentTypeCode.ND),
        _rec("FC-1", datetime(2024, 1, 2), 100.0, DocumentTypeCode.FC),
        _rec("FC-2", datetime(2024, 1, 20), 50.0, DocumentTypeCode.FC),
        _rec("FC-3", datetime(2023, 1, 5), 7.0, DocumentTypeCode.FC),
    )
    summary = AggregateSummary()
    for r in records:
        summary.add(r)
    result = IngestionResult(records=records, summary=summary, metadata=IngestionMetadata(4, 4, 0))

    totals = list(result.monthly_totals())
    assert [(t.document_type, t.year, t.month) for t in totals] == [
        (DocumentTypeCode.FC, 2023, 1),
        (DocumentTypeCode.FC, 2024, 1),
        (DocumentTypeCode.ND, 2024, 6),
    ]
    assert totals[1].total_value == pytest.approx(150.0)
    assert totals[1].processed_rows == 2
    # by_month folds years together
    assert summary[DocumentTypeCode.FC].by_month[0] == pytest.approx(157.0)


def test_ingestion_result_to_json():
    result = IngestionResult(records=(), summary=AggregateSummary(), metadata=IngestionMetadata(0, 0, 0))
    data = json.loads(result.to_json())
    assert data["records"] == []
    assert data["summary"]["RP"]["byMonth"] == [0.0] * 12
    assert data["metadata"]["processedRecords"] == 0


def test_processing_result_total_files():
    now = datetime.now(UTC)
    r = ProcessingResult(
        success_files=2, failed_files=1, total_processed_rows=10, total_skipped_rows=0,
        grand_total_value=0.0, start_time=now, end_time=now, elapsed_seconds=0.0,
    )
    assert r.total_files == 3


def test_uploaded_file_row_from_db_tuple():
    row = UploadedFileRow.from_row(
        (1, 7, "compras.xlsx", "FC", 3, 2024, Decimal("1500.50"), 4, datetime(2024, 4, 1, 9, 0))
    )
    assert row.total_value == 1500.5
    assert isinstance(row.total_value, float)
    assert row.to_dict()["uploaded_at"] == "2024-04-01T09:00:00"


def test_uploaded_file_row_rejects_wrong_width():
    with pytest.raises(ValueError):
        UploadedFileRow.from_row((1, 2, 3))
