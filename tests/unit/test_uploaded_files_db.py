from __future__ import annotations

from datetime import datetime
from decimal import Decimal

import pytest

from conftest import DummyCursor
from siigo_ingest.db.uploaded_files import (
    DeletionCriteriaError,
    PersistenceError,
    delete_uploaded_files,
    ensure_schema,
    file_exists,
    list_uploaded_files,
    save_uploaded_file,
)


class ScriptedCursor:
    """Cursor returning preset rows for every statement."""

    def __init__(self, rows: list[tuple]) -> None:
        self.rows = rows
        self.executed: list[tuple[str, tuple]] = []

    def execute(self, sql: str, params: tuple = ()) -> None:
        self.executed.append((sql, params))

    def fetchone(self):
        return self.rows[0] if self.rows else None

    def fetchall(self):
        return list(self.rows)


def _db_row(row_id: int = 1, doc_type: str = "FC", month: int = 3) -> tuple:
    return (row_id, 7, "compras.xlsx", doc_type, month, 2024, Decimal("1500.00"), 4, datetime(2024, 4, 1))


def test_ensure_schema(dummy_cursor: DummyCursor):
    ensure_schema(dummy_cursor)
    sql, _ = dummy_cursor.executed[0]
    assert "CREATE TABLE IF NOT EXISTS uploaded_files" in sql
    assert "CHECK (month BETWEEN 1 AND 12)" in sql


def test_save_uploaded_file(dummy_cursor: DummyCursor):
    row = save_uploaded_file(dummy_cursor, 7, "compras.xlsx", "FC", 3, 2024, 1500.0, 4)
    assert row.id == 1
    assert (row.user_id, row.document_type, row.month, row.year) == (7, "FC", 3, 2024)
    assert row.total_value == 1500.0
    sql, params = dummy_cursor.executed[0]
    assert sql.startswith("INSERT INTO uploaded_files")
    assert "RETURNING id, user_id" in sql
    assert params == (7, "compras.xlsx", "FC", 3, 2024, 1500.0, 4)


def test_save_is_append_only(dummy_cursor: DummyCursor):
    first = save_uploaded_file(dummy_cursor, 7, "a.xlsx", "FC", 3, 2024, 1.0, 1)
    second = save_uploaded_file(dummy_cursor, 7, "a.xlsx", "FC", 3, 2024, 1.0, 1)
    assert (first.id, second.id) == (1, 2)
    assert dummy_cursor.statements() == ["INSERT", "INSERT"]


@pytest.mark.parametrize("month", [0, 13])
def test_save_rejects_month_out_of_range(dummy_cursor: DummyCursor, month: int):
    with pytest.raises(ValueError, match="1..12"):
        save_uploaded_file(dummy_cursor, 7, "a.xlsx", "FC", month, 2024, 1.0, 1)
    assert dummy_cursor.executed == []


def test_save_wraps_database_errors():
    with pytest.raises(PersistenceError, match="simulated failure"):
        save_uploaded_file(DummyCursor(fail_on="INSERT"), 7, "a.xlsx", "FC", 1, 2024, 1.0, 1)


def test_save_without_returned_row():
    with pytest.raises(PersistenceError, match="returned no row"):
        save_uploaded_file(ScriptedCursor([]), 7, "a.xlsx", "FC", 1, 2024, 1.0, 1)


def test_delete_by_id():
    cur = ScriptedCursor([(5,)])
    assert delete_uploaded_files(cur, row_id=5) == 1
    sql, params = cur.executed[0]
    assert sql == "DELETE FROM uploaded_files WHERE id = %s RETURNING id"
    assert params == (5,)


def test_delete_by_period_file_and_user():
    cur = ScriptedCursor([(1,), (2,)])
    deleted = delete_uploaded_files(
        cur, document_type="FC", month=3, year=2024, file_name="compras.xlsx", user_id=7
    )
    assert deleted == 2
    sql, params = cur.executed[0]
    assert "document_type = %s AND month = %s AND year = %s AND file_name = %s AND user_id = %s" in sql
    assert params == ("FC", 3, 2024, "compras.xlsx", 7)


def test_delete_by_file_name_only():
    cur = ScriptedCursor([])
    assert delete_uploaded_files(cur, file_name="compras.xlsx") == 0
    assert cur.executed[0][1] == ("compras.xlsx",)


@pytest.mark.parametrize(
    "kwargs",
    [{}, {"user_id": 7}, {"document_type": "FC", "month": 3}, {"month": 3, "year": 2024}],
)
def test_delete_requires_criteria(kwargs):
    cur = ScriptedCursor([])
    with pytest.raises(DeletionCriteriaError):
        delete_uploaded_files(cur, **kwargs)
    assert cur.executed == []


def test_list_uploaded_files_with_filters():
    cur = ScriptedCursor([_db_row(2, "ND", 6), _db_row(1, "FC", 3)])
    rows = list_uploaded_files(cur, user_id=7, year=2024)
    assert [r.id for r in rows] == [2, 1]
    sql, params = cur.executed[0]
    assert "WHERE user_id = %s AND year = %s" in sql
    assert sql.endswith("ORDER BY year DESC, month DESC, document_type")
    assert params == (7, 2024)


def test_list_uploaded_files_without_filters():
    cur = ScriptedCursor([])
    assert list_uploaded_files(cur) == []
    assert "WHERE" not in cur.executed[0][0]


def test_file_exists():
    assert file_exists(ScriptedCursor([(1,)]), 7, "FC", 3, 2024) is True
    cur = ScriptedCursor([])
    assert file_exists(cur, 7, "FC", 3, 2024) is False
    assert cur.executed[0][1] == (7, "FC", 3, 2024)
