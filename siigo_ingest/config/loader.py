from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from jsonschema.exceptions import ValidationError

from ..models.document_type import ALL_DOCUMENT_TYPES, DocumentTypeCode

"""Config loader.

Responsibilities:
- Load the YAML config (default ``config/ingest.yml``)
- Validate it against the JSON schema shipped next to this module
- Apply defaults for every omitted key

Environment variables for the database (DATABASE_URL, PG*) take precedence
over the ``database`` section; that resolution happens in ``db.connection``.
"""

SCHEMA_PATH = Path(__file__).with_name("ingest_schema.json")
DEFAULT_CONFIG_PATH = Path("config/ingest.yml")


class ConfigError(Exception):
    pass


@dataclass(frozen=True)
class DatabaseConfig:
    host: str | None = None
    port: int | None = None
    user: str | None = None
    password: str | None = None
    database: str | None = None
    dsn: str | None = None


@dataclass(frozen=True)
class IngestConfig:
    header_scan_rows: int = 10  # rows inspected for the header
    year_window: tuple[int, int] = (2020, 2030)  # plausible years for text dates
    default_currency: str = "COP"
    document_types: frozenset[DocumentTypeCode] = ALL_DOCUMENT_TYPES
    max_file_size_mb: float = 50
    max_files_per_batch: int = 20
    user_id: int = 1  # owner of persisted rows when the caller gives none
    logs_dir: str = "./logs"
    database: DatabaseConfig = field(default_factory=DatabaseConfig)

    @property
    def max_file_size_bytes(self) -> int:
        return int(self.max_file_size_mb * 1024 * 1024)


def _validate_config_schema(data: dict[str, Any]) -> None:
    """Validate config data against the JSON schema.

    Raises:
        ConfigError: the schema file is missing or invalid, or the data
            violates it (unknown keys, wrong types, bad year window...)
    """
    if not SCHEMA_PATH.exists():
        raise ConfigError(f"config schema not found: {SCHEMA_PATH}")
    try:
        schema = json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))
        jsonschema.validate(data, schema)
    except json.JSONDecodeError as e:
        raise ConfigError(f"invalid schema file: {e}") from e
    except ValidationError as e:
        raise ConfigError(f"config validation failed: {e.message}") from e


def config_from_dict(data: dict[str, Any]) -> IngestConfig:
    _validate_config_schema(data)

    defaults = IngestConfig()
    window = data.get("year_window")
    year_window = (window["min"], window["max"]) if window else defaults.year_window
    if year_window[0] > year_window[1]:
        raise ConfigError(f"config validation failed: year_window min > max {year_window}")

    types = data.get("document_types")
    document_types = (
        frozenset(DocumentTypeCode(t) for t in types) if types else defaults.document_types
    )

    db_raw = data.get("database") or {}
    db = DatabaseConfig(
        host=db_raw.get("host"),
        port=db_raw.get("port"),
        user=db_raw.get("user"),
        password=db_raw.get("password"),
        database=db_raw.get("database"),
        dsn=db_raw.get("dsn"),
    )
    return IngestConfig(
        header_scan_rows=data.get("header_scan_rows", defaults.header_scan_rows),
        year_window=year_window,
        default_currency=data.get("default_currency", defaults.default_currency),
        document_types=document_types,
        max_file_size_mb=data.get("max_file_size_mb", defaults.max_file_size_mb),
        max_files_per_batch=data.get("max_files_per_batch", defaults.max_files_per_batch),
        user_id=data.get("user_id", defaults.user_id),
        logs_dir=data.get("logs_dir", defaults.logs_dir),
        database=db,
    )


def load_config(path: Path) -> IngestConfig:
    if not path.exists():
        raise ConfigError(f"config file not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid yaml: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"config root must be a mapping: {path}")
    return config_from_dict(data)
