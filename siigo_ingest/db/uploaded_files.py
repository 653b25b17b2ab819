from __future__ import annotations

import logging
from typing import Any

from ..models.uploaded_file import UPLOADED_FILE_COLUMNS, UploadedFileRow

"""Persistence of per-(type, month, year) summary rows.

``uploaded_files`` is an append-only log: every upload inserts new rows, even
for a type/month/year already present. Rows go away only through an explicit
delete, by id or by (document_type, month, year[, file_name]).

All functions take a DB-API cursor (psycopg2 in production) and never commit;
transaction boundaries belong to the caller.
"""

__all__ = [
    "CREATE_TABLE_SQL",
    "PersistenceError",
    "DeletionCriteriaError",
    "ensure_schema",
    "save_uploaded_file",
    "delete_uploaded_files",
    "list_uploaded_files",
    "file_exists",
]

logger = logging.getLogger(__name__)

TABLE = "uploaded_files"
_COLUMNS_SQL = ", ".join(UPLOADED_FILE_COLUMNS)

CREATE_TABLE_SQL = f"""
CREATE TABLE IF NOT EXISTS {TABLE} (
    id SERIAL PRIMARY KEY,
    user_id INTEGER NOT NULL,
    file_name TEXT NOT NULL,
    document_type VARCHAR(2) NOT NULL,
    month SMALLINT NOT NULL CHECK (month BETWEEN 1 AND 12),
    year SMALLINT NOT NULL,
    total_value NUMERIC(18, 2) NOT NULL DEFAULT 0,
    processed_rows INTEGER NOT NULL DEFAULT 0,
    uploaded_at TIMESTAMP NOT NULL DEFAULT NOW()
)
"""


class PersistenceError(Exception):
    """Raised when a statement on uploaded_files fails."""


class DeletionCriteriaError(ValueError):
    """Raised when a delete is requested without enough criteria."""


def _execute(cursor: Any, sql: str, params: tuple[Any, ...] = ()) -> None:
    try:
        cursor.execute(sql, params)
    except Exception as e:
        raise PersistenceError(str(e)) from e


def ensure_schema(cursor: Any) -> None:
    _execute(cursor, CREATE_TABLE_SQL)


def save_uploaded_file(
    cursor: Any,
    user_id: int,
    file_name: str,
    document_type: str,
    month: int,
    year: int,
    total_value: float,
    processed_rows: int,
) -> UploadedFileRow:
    """Append one summary row and return it as stored.

    ``month`` is 1..12.
    """
    if not 1 <= month <= 12:
        raise ValueError(f"month must be 1..12, got {month}")
    _execute(
        cursor,
        f"INSERT INTO {TABLE} "
        "(user_id, file_name, document_type, month, year, total_value, processed_rows, uploaded_at) "
        f"VALUES (%s, %s, %s, %s, %s, %s, %s, NOW()) RETURNING {_COLUMNS_SQL}",
        (user_id, file_name, document_type, month, year, total_value, processed_rows),
    )
    row = cursor.fetchone()
    if row is None:
        raise PersistenceError(f"insert into {TABLE} returned no row")
    saved = UploadedFileRow.from_row(row)
    logger.debug(
        "saved id=%s type=%s month=%d year=%d total=%s rows=%d",
        saved.id, document_type, month, year, total_value, processed_rows,
    )
    return saved


def delete_uploaded_files(
    cursor: Any,
    *,
    row_id: int | None = None,
    document_type: str | None = None,
    month: int | None = None,
    year: int | None = None,
    file_name: str | None = None,
    user_id: int | None = None,
) -> int:
    """Delete matching rows and return how many were deleted.

    Criteria, in priority order:
        row_id                                 single row
        document_type + month + year           optionally narrowed by file_name
        file_name                              every row of that upload
    ``user_id`` further restricts any of them.

    Raises:
        DeletionCriteriaError: none of the criteria above is complete
    """
    conditions: list[str] = []
    params: list[Any] = []
    if row_id is not None:
        conditions.append("id = %s")
        params.append(row_id)
    elif document_type and month and year:
        conditions += ["document_type = %s", "month = %s", "year = %s"]
        params += [document_type, month, year]
        if file_name:
            conditions.append("file_name = %s")
            params.append(file_name)
    elif file_name:
        conditions.append("file_name = %s")
        params.append(file_name)
    else:
        raise DeletionCriteriaError("row_id, (document_type, month, year) or file_name is required")

    if user_id is not None:
        conditions.append("user_id = %s")
        params.append(user_id)

    _execute(
        cursor,
        f"DELETE FROM {TABLE} WHERE {' AND '.join(conditions)} RETURNING id",
        tuple(params),
    )
    deleted = len(cursor.fetchall())
    logger.debug("deleted %d row(s) from %s", deleted, TABLE)
    return deleted


def list_uploaded_files(
    cursor: Any,
    *,
    user_id: int | None = None,
    document_type: str | None = None,
    month: int | None = None,
    year: int | None = None,
) -> list[UploadedFileRow]:
    """Return rows matching every given filter, newest period first."""
    conditions: list[str] = []
    params: list[Any] = []
    for column, value in (
        ("user_id", user_id),
        ("document_type", document_type),
        ("month", month),
        ("year", year),
    ):
        if value is not None:
            conditions.append(f"{column} = %s")
            params.append(value)
    where = f" WHERE {' AND '.join(conditions)}" if conditions else ""
    _execute(
        cursor,
        f"SELECT {_COLUMNS_SQL} FROM {TABLE}{where} ORDER BY year DESC, month DESC, document_type",
        tuple(params),
    )
    return [UploadedFileRow.from_row(r) for r in cursor.fetchall()]


def file_exists(cursor: Any, user_id: int, document_type: str, month: int, year: int) -> bool:
    _execute(
        cursor,
        f"SELECT 1 FROM {TABLE} WHERE user_id = %s AND document_type = %s AND month = %s AND year = %s LIMIT 1",
        (user_id, document_type, month, year),
    )
    return cursor.fetchone() is not None
