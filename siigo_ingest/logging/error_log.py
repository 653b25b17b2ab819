from __future__ import annotations

from collections import Counter
from datetime import UTC, datetime
from pathlib import Path

from ..models.error_record import ErrorRecord

"""File-level failure log of a batch run.

Failed uploads are collected while the batch runs and written at the end as
JSON Lines to ``<logs_dir>/errors-YYYYMMDD-HHMMSS.log`` (UTC start of the
first write). A batch where every file succeeds leaves no log behind.
"""

__all__ = [
    "ErrorRecord",
    "ErrorLogBuffer",
    "FILE_LEVEL_ROW",
]

DEFAULT_LOGS_DIR = Path("./logs")
FILE_LEVEL_ROW = -1


class ErrorLogBuffer:
    """Failures of one batch, kept in memory until ``flush``."""

    def __init__(self, logs_dir: Path | str | None = None) -> None:
        self.logs_dir = Path(logs_dir) if logs_dir is not None else DEFAULT_LOGS_DIR
        self._pending: list[ErrorRecord] = []
        self._by_type: Counter[str] = Counter()
        self._log_file: Path | None = None

    def record_failure(
        self, file_name: str, error_type: str, message: str, row: int = FILE_LEVEL_ROW
    ) -> ErrorRecord:
        """Stamp and queue a failure for ``file_name``."""
        record = ErrorRecord.create(file=file_name, row=row, error_type=error_type, message=message)
        self.append(record)
        return record

    def append(self, record: ErrorRecord) -> None:
        self._pending.append(record)
        self._by_type[record.error_type] += 1

    @property
    def records(self) -> list[ErrorRecord]:
        return list(self._pending)

    def counts_by_type(self) -> dict[str, int]:
        # flushed records included
        return dict(self._by_type)

    def __len__(self) -> int:
        return len(self._pending)

    def _target(self) -> Path:
        if self._log_file is None:
            self.logs_dir.mkdir(parents=True, exist_ok=True)
            started = datetime.now(UTC).strftime("%Y%m%d-%H%M%S")
            self._log_file = self.logs_dir / f"errors-{started}.log"
        return self._log_file

    def flush(self) -> Path | None:
        """Append queued records to the run's log file.

        Returns the log path, or None when nothing was queued (no file is
        created in that case).
        """
        if not self._pending:
            return None
        target = self._target()
        lines = "".join(f"{record.to_json_line()}\n" for record in self._pending)
        with target.open("a", encoding="utf-8") as fh:
            fh.write(lines)
        self._pending.clear()
        return target
