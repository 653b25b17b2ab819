from __future__ import annotations

from datetime import datetime

import pandas as pd
import pytest

from conftest import SIIGO_HEADER
from siigo_ingest.excel.header import map_columns
from siigo_ingest.models.document_type import DocumentTypeCode
from siigo_ingest.models.raw_cell import to_raw_cell
from siigo_ingest.services.normalizer import normalize_rows

FC = DocumentTypeCode.FC
ND = DocumentTypeCode.ND


def _rows(*data_rows):
    return [[to_raw_cell(v) for v in row] for row in [SIIGO_HEADER, *data_rows]]


def _run(rows, **kwargs):
    return normalize_rows(rows, 0, map_columns(rows[0]), **kwargs)


def test_basic_scenario():
    rows = _rows(
        ["FC-001", datetime(2024, 1, 15), "", "", 1000, ""],
        ["ND-002", "15/06/2024", "", "", "500", ""],
        ["XX-003", datetime(2024, 2, 1), "", "", 200, ""],
    )
    result = _run(rows)

    assert len(result.records) == 2
    assert result.metadata.total_rows == 3
    assert result.metadata.processed_rows == 2
    assert result.metadata.skipped_rows == 1
    assert result.summary[FC].total == 1000
    assert result.summary[FC].by_month[0] == 1000
    assert result.summary[ND].by_month[5] == 500
    assert result.metadata.date_range.start == datetime(2024, 1, 15)
    assert result.metadata.date_range.end == datetime(2024, 6, 15)


def test_colombian_text_formats_end_to_end():
    rows = _rows(
        ["FC-1", "01/01/2024", "", "", "1.000,00", ""],
        ["ND-2", "15/06/2024", "", "", 500, ""],
        ["", "15/06/2024", "", "", 700, ""],
    )
    result = _run(rows)

    assert len(result.records) == 2
    assert result.metadata.processed_rows == 2
    assert result.metadata.skipped_rows == 1
    assert result.summary[FC].total == 1000
    assert result.summary[FC].by_month[0] == 1000
    assert result.summary[ND].by_month[5] == 500
    assert result.records[0].date == datetime(2024, 1, 1)


def test_aware_and_naive_dates_mix_in_one_sheet():
    rows = _rows(
        ["FC-1", pd.Timestamp("2024-01-01", tz="UTC"), "", "", 10, ""],
        ["FC-2", "02/01/2024", "", "", 10, ""],
    )
    result = _run(rows)

    assert result.metadata.processed_rows == 2
    assert result.metadata.date_range.start == datetime(2024, 1, 1)
    assert result.metadata.date_range.end == datetime(2024, 1, 2)


def test_invariants_hold():
    rows = _rows(
        ["FC-1", "01/01/2024", "", "", "1.000,50", ""],
        ["FC-2", "01/03/2024", "", "", "2.000", ""],
        ["DS-3", "10/12/2024", "", "", 300, ""],
        ["", "10/12/2024", "", "", 300, ""],
    )
    result = _run(rows)
    meta = result.metadata
    assert meta.processed_rows + meta.skipped_rows == meta.total_rows
    assert meta.processed_rows == len(result.records)
    for doc_type in DocumentTypeCode:
        totals = result.summary[doc_type]
        assert totals.total == pytest.approx(sum(totals.by_month))
    assert result.summary.grand_total == pytest.approx(sum(r.value for r in result.records))
    assert all(r.value > 0 for r in result.records)
    assert all(0 <= r.month <= 11 for r in result.records)


@pytest.mark.parametrize(
    "row",
    [
        ["", "15/01/2024", "", "", 100, ""],
        ["XX-1", "15/01/2024", "", "", 100, ""],
        ["FC-1", "31/02/2024", "", "", 100, ""],
        ["FC-1", "15/01/2019", "", "", 100, ""],
        ["FC-1", "", "", "", 100, ""],
        ["FC-1", "15/01/2024", "", "", 0, ""],
        ["FC-1", "15/01/2024", "", "", "abc", ""],
        ["FC-1", "15/01/2024"],
    ],
)
def test_rows_skipped(row):
    result = _run(_rows(row))
    assert result.records == ()
    assert result.metadata.skipped_rows == 1
    assert result.metadata.date_range is None


def test_negative_amount_is_taken_as_absolute():
    result = _run(_rows(["FC-1", "15/01/2024", "", "", -300, ""]))
    assert result.records[0].value == 300


def test_optional_fields_and_currency_default():
    rows = _rows(
        ["FC-1", "15/01/2024", "900123", "Proveedor A", 100, "USD"],
        ["FC-2", "15/01/2024", "", "", 100, ""],
    )
    result = _run(rows, default_currency="EUR")
    first, second = result.records
    assert (first.identification, first.provider, first.currency) == ("900123", "Proveedor A", "USD")
    assert (second.identification, second.provider, second.currency) == (None, None, "EUR")


def test_currency_default_without_currency_column():
    rows = [[to_raw_cell(v) for v in r] for r in (["Factura proveedor", "Fecha elaboración", "Valor"], ["FC-1", "15/01/2024", 10])]
    result = _run(rows)
    assert result.records[0].currency == "COP"
    assert result.records[0].provider is None


def test_known_types_restrict_classification():
    rows = _rows(
        ["FC-1", "15/01/2024", "", "", 100, ""],
        ["ND-1", "15/01/2024", "", "", 100, ""],
    )
    result = _run(rows, known_types={FC})
    assert [r.type for r in result.records] == [FC]
    assert result.metadata.skipped_rows == 1


def test_year_window_is_configurable():
    rows = _rows(["FC-1", "15/01/2019", "", "", 100, ""])
    assert _run(rows, year_window=(2010, 2030)).metadata.processed_rows == 1


def test_header_only_sheet():
    result = _run(_rows())
    assert result.metadata.total_rows == 0
    assert result.summary.grand_total == 0
    assert result.metadata.date_range is None


def test_rows_above_header_are_ignored():
    rows = [[to_raw_cell("FC-9")], *_rows(["FC-1", "15/01/2024", "", "", 100, ""])]
    result = normalize_rows(rows, 1, map_columns(rows[1]))
    assert [r.document_code for r in result.records] == ["FC-1"]


def test_invalid_arguments():
    rows = _rows()
    with pytest.raises(ValueError):
        normalize_rows(rows, 5, map_columns(rows[0]))
    with pytest.raises(TypeError):
        normalize_rows(rows, 0, {"documentCodeIndex": 0})
    with pytest.raises(ValueError):
        normalize_rows(rows, -1, map_columns(rows[0]))
