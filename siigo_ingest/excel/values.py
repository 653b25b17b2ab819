from __future__ import annotations

import math
import re
import unicodedata
from datetime import datetime, timedelta

from ..models.raw_cell import Boolean, DateValue, Empty, Number, RawCell, Text

"""Cell coercion helpers shared by the header locator and the normalizer.

Amount formats seen in SIIGO exports:

    1.234.567,89   Colombian (dot thousands, comma decimals)
    1,234,567.89   US (comma thousands, dot decimals)
    1234,56        comma decimals only
    1.234.567      dot thousands, no decimals
    1,234,567      comma thousands, no decimals

Dates arrive as native datetimes (xlsx date cells), spreadsheet serials
(numbers) or ``DD/MM/YYYY`` / ``DD/MM/YY`` text.
"""

__all__ = [
    "DEFAULT_YEAR_WINDOW",
    "normalize_text",
    "cell_text",
    "parse_value",
    "parse_siigo_date",
    "serial_to_datetime",
]

DEFAULT_YEAR_WINDOW: tuple[int, int] = (2020, 2030)

# Days between 1899-12-30 (spreadsheet day zero) and 1970-01-01.
_UNIX_EPOCH_SERIAL = 25569
_UNIX_EPOCH = datetime(1970, 1, 1)

_CURRENCY_NOISE = re.compile(r"[$€£¥₹₽\s ]|COP|USD|EUR", re.IGNORECASE)
_COLOMBIAN_DECIMAL = re.compile(r"\d+\.\d{3},\d{2}$")
_US_DECIMAL = re.compile(r"\d+,\d{3}\.\d{2}$")
_COMMA_DECIMAL = re.compile(r"^-?\d+,\d{2}$")
_DOT_THOUSANDS = re.compile(r"^-?\d{1,3}(?:\.\d{3})+$")
_COMMA_THOUSANDS = re.compile(r"^-?\d{1,3}(?:,\d{3})+$")
_LEADING_FLOAT = re.compile(r"^[-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?")

_DMY_DATE = re.compile(r"(\d{1,2})/(\d{1,2})/(\d{2,4})")
_ISO_DATE = re.compile(r"^(\d{4})-(\d{1,2})-(\d{1,2})")


def normalize_text(text: str) -> str:
    """Lowercase, strip accents and collapse whitespace (header matching)."""
    decomposed = unicodedata.normalize("NFD", str(text).lower())
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return " ".join(stripped.split())


def cell_text(cell: RawCell) -> str:
    """Text form of a cell; integral numbers lose their ``.0``."""
    match cell:
        case Empty():
            return ""
        case Text(value=value):
            return value.strip()
        case Number(value=value):
            if math.isfinite(value) and value == int(value):
                return str(int(value))
            return repr(value)
        case Boolean(value=value):
            return "true" if value else "false"
        case DateValue(value=value):
            return value.isoformat()
    raise TypeError(f"not a RawCell: {cell!r}")


def _clean_amount(text: str) -> str:
    cleaned = _CURRENCY_NOISE.sub("", text).strip()
    if _COLOMBIAN_DECIMAL.search(cleaned):
        return cleaned.replace(".", "").replace(",", ".")
    if _US_DECIMAL.search(cleaned):
        return cleaned.replace(",", "")
    if _COMMA_DECIMAL.match(cleaned):
        return cleaned.replace(",", ".")
    if _DOT_THOUSANDS.match(cleaned):
        return cleaned.replace(".", "")
    if _COMMA_THOUSANDS.match(cleaned):
        return cleaned.replace(",", "")
    return cleaned


def parse_value(cell: RawCell) -> float:
    """Parse a monetary cell into a non-negative float.

    The sign carries no meaning for these amounts, so the absolute value is
    returned. Unparsable or non-finite input yields 0.
    """
    match cell:
        case Number(value=value):
            return abs(value) if math.isfinite(value) else 0.0
        case Text(value=value):
            m = _LEADING_FLOAT.match(_clean_amount(value))
            if m is None:
                return 0.0
            parsed = float(m.group(0))
            return abs(parsed) if math.isfinite(parsed) else 0.0
        case _:
            return 0.0


def serial_to_datetime(serial: float) -> datetime | None:
    """Spreadsheet serial -> datetime, as ``(serial - 25569) * 86400 s`` after 1970-01-01."""
    if not math.isfinite(serial):
        return None
    try:
        return _UNIX_EPOCH + timedelta(days=serial - _UNIX_EPOCH_SERIAL)
    except OverflowError:
        return None


def _expand_year(year: int) -> int:
    if year < 100:
        return 2000 + year if year < 50 else 1900 + year
    return year


def _text_date(text: str, year_window: tuple[int, int]) -> datetime | None:
    low, high = year_window
    m = _DMY_DATE.search(text)
    if m is not None:
        day, month, year = (int(g) for g in m.groups())
        year = _expand_year(year)
    else:
        m = _ISO_DATE.match(text)
        if m is None:
            return None
        year, month, day = (int(g) for g in m.groups())
    if not low <= year <= high:
        return None
    try:
        return datetime(year, month, day)
    except ValueError:
        # 31/02/2024 and the like
        return None


def parse_siigo_date(
    cell: RawCell, year_window: tuple[int, int] = DEFAULT_YEAR_WINDOW
) -> datetime | None:
    """Parse a "Fecha elaboración" cell.

    Precedence: native date, then spreadsheet serial, then ``D/M/Y`` text
    (two digit years below 50 are 2000s, otherwise 1900s) or ISO text. The
    plausibility window applies to text dates only; returns None when no rule
    gives a valid date.
    """
    match cell:
        case DateValue(value=value):
            return value
        case Number(value=value):
            return serial_to_datetime(value)
        case Text(value=value):
            return _text_date(value.strip(), year_window)
        case _:
            return None
