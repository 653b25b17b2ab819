from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Sequence
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Protocol

from ..config.loader import IngestConfig
from ..db.uploaded_files import PersistenceError, save_uploaded_file
from ..excel.errors import IngestError
from ..excel.header import locate_header, map_columns
from ..excel.reader import read_workbook
from ..logging.error_log import ErrorLogBuffer
from ..models.document_type import DocumentTypeCode, detect_file_type_hint
from ..models.processing_result import FileStat, FileStatus, IngestionResult, ProcessingResult
from ..models.uploaded_file import UploadedFileRow
from .normalizer import normalize_rows
from .progress import BatchProgress
from .upload_check import ALLOWED_EXTENSIONS, validate_upload

"""Ingestion pipeline orchestration.

Single file:  bytes -> read_workbook -> locate_header / map_columns ->
normalize_rows -> IngestionResult. Strictly linear; a stage error aborts
the file and no partial result is returned.

Batch (CLI, multi-file upload): each file is validated, ingested and, with a
cursor, persisted inside its own transaction. A failing file is rolled back,
logged to the error log and the batch continues. Files share no state.
"""

__all__ = [
    "ProcessingError",
    "SaveFn",
    "ingest_workbook",
    "ingest_path",
    "ingest_upload",
    "persist_result",
    "scan_spreadsheet_files",
    "collect_paths",
    "process_files",
]

logger = logging.getLogger(__name__)

SaveFn = Callable[..., UploadedFileRow]


class ProcessingError(Exception):
    """Fatal batch error (bad input set), as opposed to a single failing file."""


class AsyncUpload(Protocol):
    """What ``ingest_upload`` needs from an HTTP framework upload object."""
    filename: str | None

    async def read(self) -> bytes: ...


def ingest_workbook(
    data: bytes,
    file_name: str | None = None,
    config: IngestConfig | None = None,
    known_types: Iterable[DocumentTypeCode] | None = None,
) -> IngestionResult:
    """Run the three pipeline stages over an in-memory spreadsheet.

    Raises:
        ParseError, EmptyFileError: from the workbook reader
        HeaderNotFoundError, RequiredColumnMissingError: from the column mapper
    """
    cfg = config or IngestConfig()
    rows = read_workbook(data, file_name)
    header_index = locate_header(rows, cfg.header_scan_rows)
    column_map = map_columns(rows[header_index])
    return normalize_rows(
        rows,
        header_index,
        column_map,
        file_name=file_name,
        known_types=known_types if known_types is not None else cfg.document_types,
        year_window=cfg.year_window,
        default_currency=cfg.default_currency,
    )


def ingest_path(path: Path, config: IngestConfig | None = None) -> IngestionResult:
    return ingest_workbook(path.read_bytes(), path.name, config)


async def ingest_upload(upload: AsyncUpload, config: IngestConfig | None = None) -> IngestionResult:
    """Ingest an upload object exposing ``filename`` and ``async read()``.

    Reading the bytes is the only suspension point; parsing runs
    synchronously afterwards.
    """
    cfg = config or IngestConfig()
    data = await upload.read()
    file_name = upload.filename or "<upload>"
    validate_upload(
        file_name,
        len(data),
        getattr(upload, "content_type", None),
        max_bytes=cfg.max_file_size_bytes,
    )
    return ingest_workbook(data, file_name, cfg)


def persist_result(
    cursor: Any,
    user_id: int,
    result: IngestionResult,
    save: SaveFn = save_uploaded_file,
) -> list[UploadedFileRow]:
    """Append one uploaded_files row per (type, month, year) of the result."""
    file_name = result.file_name or "<upload>"
    saved: list[UploadedFileRow] = []
    for monthly in result.monthly_totals():
        saved.append(
            save(
                cursor,
                user_id,
                file_name,
                monthly.document_type.value,
                monthly.month,
                monthly.year,
                monthly.total_value,
                monthly.processed_rows,
            )
        )
    return saved


def scan_spreadsheet_files(directory: Path) -> list[Path]:
    """Scan a directory (non-recursive) for .xlsx / .xls / .csv files, sorted by name.

    Raises:
        ProcessingError: the directory does not exist or cannot be read
    """
    if not directory.exists():
        raise ProcessingError(f"Directory not found: {directory}")
    if not directory.is_dir():
        raise ProcessingError(f"Path is not a directory: {directory}")
    try:
        return sorted(
            p for p in directory.iterdir() if p.is_file() and p.suffix.lower() in ALLOWED_EXTENSIONS
        )
    except OSError as e:
        raise ProcessingError(f"Error reading directory {directory}: {e}") from e


def collect_paths(inputs: Sequence[Path]) -> list[Path]:
    """Expand CLI inputs: directories are scanned, files are kept as given."""
    paths: list[Path] = []
    for item in inputs:
        if item.is_dir():
            paths.extend(scan_spreadsheet_files(item))
        elif item.exists():
            paths.append(item)
        else:
            raise ProcessingError(f"File not found: {item}")
    return paths


def _failed_stat(name: str, hint: str, elapsed: float, error: str) -> FileStat:
    return FileStat(
        file_name=name,
        status=FileStatus.FAILED.value,
        type_hint=hint,
        processed_rows=0,
        skipped_rows=0,
        total_value=0.0,
        elapsed_seconds=elapsed,
        error=error,
    )


def _rollback(cursor: Any, file_name: str) -> None:
    try:
        cursor.execute("ROLLBACK")
    except Exception as e:  # pragma: no cover
        logger.warning("file=%s rollback failed: %s", file_name, e)


def _process_single_file(
    path: Path,
    config: IngestConfig,
    cursor: Any,
    user_id: int,
    error_log: ErrorLogBuffer,
    save: SaveFn,
) -> tuple[FileStat, IngestionResult | None]:
    name = path.name
    hint = detect_file_type_hint(name).value
    start = datetime.now(UTC)

    def _elapsed() -> float:
        return (datetime.now(UTC) - start).total_seconds()

    try:
        validate_upload(name, path.stat().st_size, max_bytes=config.max_file_size_bytes)
        result = ingest_workbook(path.read_bytes(), name, config)
    except IngestError as e:
        logger.error("file=%s %s: %s", name, e.error_type, e)
        error_log.record_failure(name, e.error_type, str(e))
        return _failed_stat(name, hint, _elapsed(), str(e)), None
    except OSError as e:
        logger.error("file=%s FILE_READ_ERROR: %s", name, e)
        error_log.record_failure(name, "FILE_READ_ERROR", str(e))
        return _failed_stat(name, hint, _elapsed(), str(e)), None

    saved_rows = 0
    if cursor is not None:
        try:
            cursor.execute("BEGIN")
            saved_rows = len(persist_result(cursor, user_id, result, save))
            cursor.execute("COMMIT")
        except Exception as e:
            _rollback(cursor, name)
            logger.error("file=%s DATABASE_ERROR: %s", name, e)
            error_log.record_failure(name, "DATABASE_ERROR", str(e))
            return _failed_stat(name, hint, _elapsed(), f"transaction rolled back: {e}"), None

    meta = result.metadata
    logger.info(
        "file=%s hint=%s processed=%d skipped=%d total=%s saved=%d",
        name,
        hint,
        meta.processed_rows,
        meta.skipped_rows,
        round(result.summary.grand_total, 2),
        saved_rows,
    )
    stat = FileStat(
        file_name=name,
        status=FileStatus.SUCCESS.value,
        type_hint=hint,
        processed_rows=meta.processed_rows,
        skipped_rows=meta.skipped_rows,
        total_value=result.summary.grand_total,
        elapsed_seconds=_elapsed(),
        saved_rows=saved_rows,
    )
    return stat, result


def process_files(
    paths: Sequence[Path],
    config: IngestConfig | None = None,
    cursor: Any = None,
    user_id: int | None = None,
    dry_run: bool = False,
    save: SaveFn = save_uploaded_file,
) -> ProcessingResult:
    """Ingest a batch of files and, when ``cursor`` is given, persist their summaries.

    Args:
        paths: spreadsheet files, processed in the given order
        config: ingestion settings (defaults when None)
        cursor: DB-API cursor; None runs without persistence (dry run)
        user_id: owner of the persisted rows, ``config.user_id`` when None
        dry_run: parse and aggregate only, even when a cursor is given
        save: persistence function, ``save_uploaded_file`` by default

    Raises:
        ProcessingError: more files than ``config.max_files_per_batch``
    """
    cfg = config or IngestConfig()
    if len(paths) > cfg.max_files_per_batch:
        raise ProcessingError(
            f"too many files: maximum {cfg.max_files_per_batch} allowed, received {len(paths)}"
        )
    owner = user_id if user_id is not None else cfg.user_id
    if dry_run:
        cursor = None
    start_time = datetime.now(UTC)
    error_log = ErrorLogBuffer(cfg.logs_dir)

    file_stats: list[FileStat] = []
    results: list[IngestionResult] = []
    skipped_rows = 0
    grand_total = 0.0

    with BatchProgress(len(paths)) as progress:
        for path in paths:
            progress.begin(path.name)
            stat, result = _process_single_file(path, cfg, cursor, owner, error_log, save)
            file_stats.append(stat)
            progress.advance(stat)
            if result is not None:
                results.append(result)
                skipped_rows += stat.skipped_rows
                grand_total += stat.total_value

    log_path = error_log.flush()
    if log_path is not None:
        logger.warning("file errors written to %s %s", log_path, error_log.counts_by_type())

    end_time = datetime.now(UTC)
    return ProcessingResult(
        success_files=progress.ok,
        failed_files=progress.failed,
        total_processed_rows=progress.rows,
        total_skipped_rows=skipped_rows,
        grand_total_value=grand_total,
        start_time=start_time,
        end_time=end_time,
        elapsed_seconds=(end_time - start_time).total_seconds(),
        file_stats=file_stats,
        results=results,
    )
