from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass

from ..models.raw_cell import RawCell
from .errors import HeaderNotFoundError, RequiredColumnMissingError
from .values import cell_text, normalize_text

"""Header locator and column mapper.

SIIGO exports carry a few title lines (company, report name, period) above
the real header, so the header row is found by content within the first
rows rather than by position. Matching is done on normalized text
(lowercase, accents stripped, whitespace collapsed).

Required columns:
    document code  header containing "factura" and "proveedor"
    date           header containing "fecha" and "elaboracion"
    value          header equal to "valor"

"valor" only needs to be contained for the row to qualify as header, but the
value column is resolved by equality, since "valor unitario" and similar
labels are common in these reports.
"""

__all__ = [
    "DEFAULT_HEADER_SCAN_ROWS",
    "REQUIRED_LABELS",
    "ColumnMap",
    "normalize_row",
    "is_header_row",
    "locate_header",
    "map_columns",
    "normalize_text",
]

logger = logging.getLogger(__name__)

DEFAULT_HEADER_SCAN_ROWS = 10

REQUIRED_LABELS: tuple[str, ...] = ("factura proveedor", "fecha elaboracion", "valor")


@dataclass(frozen=True)
class ColumnMap:
    """Resolved column positions of one sheet (0-based).

    Required indices are validated on construction; optional ones are None
    when the column is absent.
    """
    document_code_index: int
    date_index: int
    value_index: int
    provider_index: int | None = None
    identification_index: int | None = None
    currency_index: int | None = None

    def __post_init__(self) -> None:
        for name in ("document_code_index", "date_index", "value_index"):
            index = getattr(self, name)
            if not isinstance(index, int) or index < 0:
                raise RequiredColumnMissingError(f"invalid column map: {name}={index!r}")

    def as_wire(self) -> dict[str, int]:
        """Legacy form with -1 for absent optional columns."""
        def _w(index: int | None) -> int:
            return -1 if index is None else index

        return {
            "documentCodeIndex": self.document_code_index,
            "dateIndex": self.date_index,
            "valueIndex": self.value_index,
            "providerIndex": _w(self.provider_index),
            "identificationIndex": _w(self.identification_index),
            "currencyIndex": _w(self.currency_index),
        }


def normalize_row(row: Sequence[RawCell]) -> list[str]:
    return [normalize_text(cell_text(cell)) for cell in row]


def _is_document_code_label(label: str) -> bool:
    return "factura" in label and "proveedor" in label


def _is_date_label(label: str) -> bool:
    return "fecha" in label and "elaboracion" in label


def is_header_row(labels: Sequence[str]) -> bool:
    """True when the normalized labels cover the three required columns."""
    return (
        any(_is_document_code_label(label) for label in labels)
        and any(_is_date_label(label) for label in labels)
        and any("valor" in label for label in labels)
    )


def locate_header(
    rows: Sequence[Sequence[RawCell]], scan_rows: int = DEFAULT_HEADER_SCAN_ROWS
) -> int:
    """Return the index of the first header row within the first ``scan_rows`` rows.

    Raises:
        HeaderNotFoundError: no row in the window has all the required labels
    """
    for index, row in enumerate(rows[:scan_rows]):
        if is_header_row(normalize_row(row)):
            logger.debug("header row found at index=%d", index)
            return index
    sought = ", ".join(f"'{label}'" for label in REQUIRED_LABELS)
    raise HeaderNotFoundError(
        f"required SIIGO headers not found in the first {scan_rows} rows (sought: {sought})",
        sought_labels=REQUIRED_LABELS,
    )


def _first(labels: Sequence[str], predicate) -> int | None:
    for index, label in enumerate(labels):
        if predicate(label):
            return index
    return None


def map_columns(header_row: Sequence[RawCell]) -> ColumnMap:
    """Resolve semantic column indices from the header row.

    Raises:
        RequiredColumnMissingError: a required column could not be resolved
            (e.g. the only value-like header is "valor total")
    """
    labels = normalize_row(header_row)
    document_code = _first(labels, _is_document_code_label)
    date = _first(labels, _is_date_label)
    value = _first(labels, lambda label: label == "valor")

    missing = [
        name
        for name, index in (("factura proveedor", document_code), ("fecha elaboracion", date), ("valor", value))
        if index is None
    ]
    if missing:
        raise RequiredColumnMissingError(f"required columns not found in header: {missing}")

    return ColumnMap(
        document_code_index=document_code,
        date_index=date,
        value_index=value,
        provider_index=_first(labels, lambda label: label == "proveedor"),
        identification_index=_first(labels, lambda label: label == "identificacion"),
        currency_index=_first(labels, lambda label: label == "moneda"),
    )
