from __future__ import annotations

import sys
from typing import Any

from tqdm import tqdm
from tqdm.std import tqdm as TqdmType

from ..models.processing_result import FileStat, FileStatus

"""tqdm bar for a batch of uploads, shown on a TTY only."""

__all__ = [
    "BatchProgress",
    "is_tty_enabled",
]


def is_tty_enabled() -> bool:
    return sys.stdout.isatty()


class BatchProgress:
    """One bar per batch; each uploaded file advances it by one.

    The postfix carries the running ok/failed counts and the accepted row
    total. Off a TTY (CI, piped output) nothing is drawn but the counters
    are still kept.
    """

    def __init__(self, total_files: int, *, label: str = "SIIGO") -> None:
        self.total_files = total_files
        self.label = label
        self.ok = 0
        self.failed = 0
        self.rows = 0
        self.bar: TqdmType[Any] | None = None
        if is_tty_enabled():
            self.bar = tqdm(total=total_files, desc=label, unit="file", leave=True, ncols=80, ascii=True)

    @property
    def done(self) -> int:
        return self.ok + self.failed

    def begin(self, file_name: str) -> None:
        if self.bar is not None:
            self.bar.set_description(f"{self.label} {file_name}")

    def advance(self, stat: FileStat) -> None:
        if stat.status == FileStatus.SUCCESS.value:
            self.ok += 1
            self.rows += stat.processed_rows
        else:
            self.failed += 1
        if self.bar is not None:
            self.bar.set_description(self.label)
            self.bar.set_postfix(ok=self.ok, failed=self.failed, rows=self.rows)
            self.bar.update(1)

    def close(self) -> None:
        if self.bar is not None:
            self.bar.close()
            self.bar = None

    def __enter__(self) -> BatchProgress:
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()
