from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable
from dataclasses import dataclass, field

from ..models.document_type import DocumentTypeCode
from ..models.processing_result import MONTHS_PER_YEAR, ProcessingResult
from ..models.siigo_record import SiigoRecord

"""Reporting helpers: SUMMARY line, record grouping and statistics.

SUMMARY line format:

    SUMMARY files={n}/{n} success={s} failed={f} records={p} skipped_rows={k}
    total_value={v} elapsed_sec={e}
"""

__all__ = [
    "DetailedStats",
    "render_summary_line",
    "group_by_month_and_type",
    "detailed_stats",
    "format_cop",
]


def _format_number(value: float) -> str:
    """Plain decimal form: integers without '.0', tiny numbers without exponent."""
    if value == 0:
        return "0"
    if value == int(value):
        return str(int(value))
    if abs(value) < 0.01:
        return f"{value:.6f}".rstrip("0").rstrip(".")
    return str(round(value, 2))


def render_summary_line(result: ProcessingResult) -> str:
    """Render the SUMMARY line of a batch run.

    Examples:
        >>> from datetime import datetime, timezone
        >>> start = datetime(2024, 1, 1, 10, 0, 0, tzinfo=timezone.utc)
        >>> end = datetime(2024, 1, 1, 10, 0, 2, tzinfo=timezone.utc)
        >>> result = ProcessingResult(
        ...     success_files=1, failed_files=0, total_processed_rows=120,
        ...     total_skipped_rows=3, grand_total_value=1500.5, start_time=start,
        ...     end_time=end, elapsed_seconds=2.0,
        ... )
        >>> render_summary_line(result)
        'SUMMARY files=1/1 success=1 failed=0 records=120 skipped_rows=3 total_value=1500.5 elapsed_sec=2'
    """
    total_files = result.total_files
    return (
        f"SUMMARY files={total_files}/{total_files} "
        f"success={result.success_files} "
        f"failed={result.failed_files} "
        f"records={result.total_processed_rows} "
        f"skipped_rows={result.total_skipped_rows} "
        f"total_value={_format_number(result.grand_total_value)} "
        f"elapsed_sec={_format_number(result.elapsed_seconds)}"
    )


def group_by_month_and_type(
    records: Iterable[SiigoRecord],
) -> dict[DocumentTypeCode, dict[int, list[SiigoRecord]]]:
    """Group records by document type, then zero-based month."""
    grouped: dict[DocumentTypeCode, dict[int, list[SiigoRecord]]] = {t: {} for t in DocumentTypeCode}
    for record in records:
        grouped[record.type].setdefault(record.month, []).append(record)
    return grouped


@dataclass
class DetailedStats:
    by_type: dict[DocumentTypeCode, float] = field(default_factory=lambda: {t: 0.0 for t in DocumentTypeCode})
    by_month: list[float] = field(default_factory=lambda: [0.0] * MONTHS_PER_YEAR)
    by_provider: dict[str, float] = field(default_factory=lambda: defaultdict(float))
    total_value: float = 0.0
    record_count: int = 0


def detailed_stats(records: Iterable[SiigoRecord]) -> DetailedStats:
    """Totals by type, by month and by provider (records without provider under "")."""
    stats = DetailedStats()
    for record in records:
        stats.by_type[record.type] += record.value
        stats.by_month[record.month] += record.value
        stats.by_provider[record.provider or ""] += record.value
        stats.total_value += record.value
        stats.record_count += 1
    stats.by_provider = dict(stats.by_provider)
    return stats


def format_cop(value: float) -> str:
    """Colombian peso display format without decimals: ``$ 1.234.568``."""
    rounded = round(value)
    sign = "-" if rounded < 0 else ""
    digits = f"{abs(rounded):,}".replace(",", ".")
    return f"{sign}$ {digits}"
