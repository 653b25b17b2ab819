# Shared pytest fixtures
from __future__ import annotations
import csv
import io
import tempfile
from datetime import datetime
from pathlib import Path

import pandas as pd
import pytest
import xlwt

from siigo_ingest.logging.init import reset_logging

SIIGO_HEADER = ["Factura proveedor", "Fecha elaboración", "Identificación", "Proveedor", "Valor", "Moneda"]


def build_xlsx(rows: list[list[object]], sheet_name: str = "Compras") -> bytes:
    """Write ``rows`` (no header handling) to an in-memory xlsx workbook."""
    buf = io.BytesIO()
    with pd.ExcelWriter(buf, engine="openpyxl") as writer:
        pd.DataFrame(rows).to_excel(writer, sheet_name=sheet_name, header=False, index=False)
    return buf.getvalue()


def build_xls(rows: list[list[object]], sheet_name: str = "Compras") -> bytes:
    """Legacy BIFF workbook; datetimes get a dd/mm/yyyy date format."""
    book = xlwt.Workbook()
    sheet = book.add_sheet(sheet_name)
    date_style = xlwt.easyxf(num_format_str="DD/MM/YYYY")
    for r, row in enumerate(rows):
        for c, value in enumerate(row):
            if value is None:
                continue
            if isinstance(value, datetime):
                sheet.write(r, c, value, date_style)
            else:
                sheet.write(r, c, value)
    buf = io.BytesIO()
    book.save(buf)
    return buf.getvalue()


def build_csv(rows: list[list[object]], delimiter: str = ";", encoding: str = "utf-8") -> bytes:
    buf = io.StringIO()
    writer = csv.writer(buf, delimiter=delimiter, lineterminator="\n")
    for row in rows:
        writer.writerow(["" if v is None else v for v in row])
    return buf.getvalue().encode(encoding)


def siigo_sheet_rows() -> list[list[object]]:
    """Typical export: two title lines, header, FC + ND rows and one unknown code."""
    return [
        ["EMPRESA DEMO S.A.S."],
        ["Informe de compras enero - junio 2024"],
        SIIGO_HEADER,
        ["FC-001", datetime(2024, 1, 15), "900123456", "Proveedor A", 1000, "COP"],
        ["ND-002", "15/06/2024", "800456789", "Proveedor B", "500", None],
        ["XX-003", datetime(2024, 2, 1), "1", "Proveedor C", 200, "COP"],
    ]


@pytest.fixture()
def temp_workdir(monkeypatch) -> Path:
    with tempfile.TemporaryDirectory() as d:
        p = Path(d)
        (p / "config").mkdir()
        (p / "data").mkdir()
        (p / "logs").mkdir()
        monkeypatch.chdir(p)
        yield p


@pytest.fixture(autouse=True)
def _clean_logging():
    reset_logging()
    yield
    reset_logging()


@pytest.fixture()
def sample_config_yaml() -> str:
    return """header_scan_rows: 10
year_window:
  min: 2020
  max: 2030
default_currency: COP
document_types: [FC, ND, DS, RP]
max_file_size_mb: 5
max_files_per_batch: 20
user_id: 7
logs_dir: ./logs
database:
  host: localhost
  port: 5432
  user: appuser
  password: secret
  database: appdb
"""


@pytest.fixture()
def write_config(temp_workdir: Path, sample_config_yaml: str) -> Path:
    cfg = temp_workdir / "config" / "ingest.yml"
    cfg.write_text(sample_config_yaml, encoding="utf-8")
    return cfg


@pytest.fixture()
def siigo_xlsx(temp_workdir: Path) -> Path:
    p = temp_workdir / "data" / "facturas_compra_2024.xlsx"
    p.write_bytes(build_xlsx(siigo_sheet_rows()))
    return p


class DummyConnection:
    def __init__(self) -> None:
        self.commits = 0
        self.rollbacks = 0

    def commit(self) -> None:
        self.commits += 1

    def rollback(self) -> None:
        self.rollbacks += 1


class DummyCursor:
    """Fake DB-API cursor recording statements; RETURNING rows are synthesized."""

    def __init__(self, fail_on: str | None = None) -> None:
        self.executed: list[tuple[str, tuple]] = []
        self.fail_on = fail_on
        self._next_id = 1
        self._result: list[tuple] = []
        self.connection = DummyConnection()

    def execute(self, sql: str, params: tuple = ()) -> None:
        self.executed.append((sql, params))
        if self.fail_on is not None and self.fail_on in sql:
            raise RuntimeError(f"simulated failure on {self.fail_on}")
        if sql.startswith("INSERT"):
            user_id, file_name, doc_type, month, year, total, rows = params
            self._result = [(self._next_id, user_id, file_name, doc_type, month, year, total, rows, datetime(2024, 7, 1))]
            self._next_id += 1
        else:
            self._result = []

    def fetchone(self):
        return self._result[0] if self._result else None

    def fetchall(self):
        return list(self._result)

    def statements(self) -> list[str]:
        return [sql.split()[0] for sql, _ in self.executed]


@pytest.fixture()
def dummy_cursor() -> DummyCursor:
    return DummyCursor()
