from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any

"""UploadedFileRow: one row of the append-only ``uploaded_files`` log."""

__all__ = [
    "UPLOADED_FILE_COLUMNS",
    "UploadedFileRow",
]

# Column order used by every SELECT/RETURNING on uploaded_files.
UPLOADED_FILE_COLUMNS: tuple[str, ...] = (
    "id",
    "user_id",
    "file_name",
    "document_type",
    "month",
    "year",
    "total_value",
    "processed_rows",
    "uploaded_at",
)


@dataclass(frozen=True)
class UploadedFileRow:
    id: int
    user_id: int
    file_name: str
    document_type: str  # FC/ND/DS/RP
    month: int  # 1..12
    year: int
    total_value: float
    processed_rows: int
    uploaded_at: datetime | None

    @classmethod
    def from_row(cls, row: tuple[Any, ...]) -> UploadedFileRow:
        """Build from a DB-API tuple ordered as ``UPLOADED_FILE_COLUMNS``."""
        values = dict(zip(UPLOADED_FILE_COLUMNS, row, strict=True))
        # NUMERIC columns come back as Decimal from psycopg2
        values["total_value"] = float(values["total_value"])
        return cls(**values)

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "file_name": self.file_name,
            "document_type": self.document_type,
            "month": self.month,
            "year": self.year,
            "total_value": self.total_value,
            "processed_rows": self.processed_rows,
            "uploaded_at": self.uploaded_at.isoformat() if self.uploaded_at else None,
        }
