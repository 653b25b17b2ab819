from __future__ import annotations

import argparse
import json
import os
import sys
from pathlib import Path

import psycopg2
from dotenv import load_dotenv

from ..config.loader import DEFAULT_CONFIG_PATH, ConfigError, IngestConfig, load_config
from ..db.connection import db_connection
from ..db.uploaded_files import (
    DeletionCriteriaError,
    PersistenceError,
    delete_uploaded_files,
    ensure_schema,
    list_uploaded_files,
)
from ..excel.errors import IngestError
from ..excel.header import locate_header, map_columns
from ..excel.reader import read_workbook
from ..excel.values import cell_text
from ..logging.init import log_summary, set_level, setup_logging
from ..models.processing_result import ProcessingResult
from ..services.pipeline import ProcessingError, collect_paths, process_files
from ..services.summary import format_cop, render_summary_line

"""CLI entrypoint: ``python -m siigo_ingest.cli`` / ``siigo-ingest``.

Modes:
- ingest (default): files / directories -> pipeline -> uploaded_files
- ``--inspect-data``: print header position, column map and sample rows
- ``--list``: print persisted monthly summaries
- ``--delete-*``: remove persisted summaries

Exit codes: 0 all files succeeded, 2 at least one file failed, 1 fatal
(config, input set or database error in list/delete mode).
"""

EXIT_SUCCESS_ALL = 0
EXIT_PARTIAL_FAILURE = 2
EXIT_FATAL = 1

INSPECT_SAMPLE_ROWS = 3


def _load_env_file(path: Path, override: bool = True) -> None:
    """Load .env so its values take precedence for PG* / DATABASE_URL."""
    if path.exists():
        load_dotenv(dotenv_path=path, override=override)


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        prog="siigo-ingest",
        description="SIIGO spreadsheet (.xlsx/.xls/.csv) -> monthly totals ingester",
    )
    p.add_argument("inputs", nargs="*", type=Path, help="Spreadsheet files or directories (non-recursive)")
    p.add_argument("--config", type=Path, default=None, help=f"YAML config (default: {DEFAULT_CONFIG_PATH} if present)")
    p.add_argument("--user-id", type=int, default=None, help="Owner of persisted rows (overrides config)")
    p.add_argument("--dry-run", action="store_true", help="Parse and aggregate only; do not touch the database")
    p.add_argument("--json", type=Path, default=None, metavar="PATH", help="Write per-file results as JSON")
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    p.add_argument("--inspect-data", action="store_true", help="Print header row, column map and first rows then exit")
    p.add_argument("--list", action="store_true", help="List persisted monthly summaries")
    p.add_argument("--delete-id", type=int, default=None, help="Delete one persisted row by id")
    p.add_argument("--delete-type", choices=["FC", "ND", "DS", "RP"], default=None)
    p.add_argument("--delete-month", type=int, default=None, help="1..12")
    p.add_argument("--delete-year", type=int, default=None)
    p.add_argument("--delete-file-name", default=None)
    return p.parse_args(argv)


def _wants_delete(args: argparse.Namespace) -> bool:
    return any(
        v is not None
        for v in (args.delete_id, args.delete_type, args.delete_month, args.delete_year, args.delete_file_name)
    )


def _resolve_config(path: Path | None) -> IngestConfig:
    if path is not None:
        return load_config(path)
    if DEFAULT_CONFIG_PATH.exists():
        return load_config(DEFAULT_CONFIG_PATH)
    return IngestConfig()


def _inspect_data(paths: list[Path], cfg: IngestConfig) -> int:
    if not paths:
        print("inspect: no spreadsheet files")
        return EXIT_SUCCESS_ALL
    for path in paths:
        print(f"FILE: {path.name}")
        try:
            rows = read_workbook(path.read_bytes(), path.name)
            header_index = locate_header(rows, cfg.header_scan_rows)
            column_map = map_columns(rows[header_index])
        except (IngestError, OSError) as e:
            print(f"  error={e}")
            continue
        print(f"  header_row={header_index} columns={column_map.as_wire()}")
        for row in rows[header_index + 1 : header_index + 1 + INSPECT_SAMPLE_ROWS]:
            print("    ", [cell_text(c) for c in row])
    return EXIT_SUCCESS_ALL


def _list_rows(cfg: IngestConfig, user_id: int | None) -> int:
    with db_connection(cfg) as cur:
        ensure_schema(cur)
        rows = list_uploaded_files(cur, user_id=user_id)
    for r in rows:
        print(
            f"{r.id}\t{r.document_type}\t{r.year}-{r.month:02d}\t{format_cop(r.total_value)}"
            f"\trows={r.processed_rows}\t{r.file_name}"
        )
    print(f"{len(rows)} row(s)")
    return EXIT_SUCCESS_ALL


def _delete_rows(args: argparse.Namespace, cfg: IngestConfig) -> int:
    with db_connection(cfg) as cur:
        deleted = delete_uploaded_files(
            cur,
            row_id=args.delete_id,
            document_type=args.delete_type,
            month=args.delete_month,
            year=args.delete_year,
            file_name=args.delete_file_name,
            user_id=args.user_id,
        )
    print(f"deleted {deleted} row(s)")
    return EXIT_SUCCESS_ALL


def _write_json(path: Path, result: ProcessingResult) -> None:
    payload = [
        {"fileName": r.file_name, **r.to_dict()}
        for r in (result.results or [])
    ]
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(payload, ensure_ascii=False, indent=2), encoding="utf-8")


def _run_ingest(paths: list[Path], cfg: IngestConfig, args: argparse.Namespace, logger) -> ProcessingResult:
    disable_db = args.dry_run or os.getenv("DISABLE_DB_CONNECT") == "1"
    if disable_db:
        logger.debug("database disabled -> dry run")
        return process_files(paths, cfg, user_id=args.user_id, dry_run=True)
    try:
        with db_connection(cfg) as cur:
            ensure_schema(cur)
            # schema outlives a rolled-back first file
            cur.connection.commit()
            return process_files(paths, cfg, cursor=cur, user_id=args.user_id)
    except PersistenceError as e:
        raise ProcessingError(f"database: {e}") from e
    except psycopg2.OperationalError as db_e:
        logger.info("DB connection failed -> dry run: %s", db_e)
        return process_files(paths, cfg, cursor=None, user_id=args.user_id)


def main(argv: list[str] | None = None) -> int:
    logger = setup_logging()

    # None only: an explicit [] must not pick up the test runner's argv
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)
    _load_env_file(Path(".env"), override=True)

    if args.debug:
        set_level("DEBUG")
        logger.debug("debug mode enabled")

    try:
        cfg = _resolve_config(args.config)
    except ConfigError as e:
        logger.error("config: %s", e)
        return EXIT_FATAL

    if args.list or _wants_delete(args):
        try:
            if args.list:
                return _list_rows(cfg, args.user_id)
            return _delete_rows(args, cfg)
        except DeletionCriteriaError as e:
            logger.error("delete: %s", e)
            return EXIT_FATAL
        except Exception as e:
            logger.error("database: %s", e)
            return EXIT_FATAL

    try:
        paths = collect_paths(args.inputs)
    except ProcessingError as e:
        logger.error("input: %s", e)
        return EXIT_FATAL

    if args.inspect_data:
        return _inspect_data(paths, cfg)

    if not paths:
        logger.error("no spreadsheet files given")
        return EXIT_FATAL

    logger.info("Processing %d file(s)", len(paths))
    try:
        result = _run_ingest(paths, cfg, args, logger)
    except ProcessingError as e:
        logger.error("processing: %s", e)
        return EXIT_FATAL

    if args.json is not None:
        _write_json(args.json, result)
        logger.info("results written to %s", args.json)

    # log_summary adds its own "SUMMARY " label
    log_summary(render_summary_line(result)[len("SUMMARY "):])

    if result.failed_files > 0:
        return EXIT_PARTIAL_FAILURE
    return EXIT_SUCCESS_ALL


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
