from __future__ import annotations

import csv
import io
import logging
from collections import Counter

import pandas as pd

from ..models.raw_cell import Empty, RawCell, to_raw_cell
from .errors import EmptyFileError, ParseError

"""Workbook reader.

Turns an uploaded spreadsheet buffer into rows of RawCell values:

1. Detect the format from the content (xlsx zip / xls OLE2 / text csv)
2. Read the first sheet without header handling (the header row is located
   by content later, see ``excel.header``)
3. Keep native date cells as ``DateValue`` (openpyxl / xlrd give datetimes)
4. Drop fully blank rows

Only the first sheet is used, whatever its name.
"""

__all__ = [
    "SpreadsheetFormat",
    "detect_format",
    "detect_encoding",
    "detect_delimiter",
    "read_workbook",
]

logger = logging.getLogger(__name__)

_XLSX_MAGIC = b"PK\x03\x04"
_XLS_MAGIC = b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1"
_CSV_ENCODINGS = ("utf-8-sig", "cp1252", "latin-1")
_CSV_DELIMITERS = (";", ",", "\t", "|")
_DELIMITER_SAMPLE_LINES = 20


class SpreadsheetFormat:
    XLSX = "xlsx"
    XLS = "xls"
    CSV = "csv"


def detect_format(data: bytes) -> str:
    """Return the SpreadsheetFormat of ``data`` judging by its content.

    Raises:
        ParseError: binary content that is neither an xlsx nor an xls workbook
    """
    if data.startswith(_XLSX_MAGIC):
        return SpreadsheetFormat.XLSX
    if data.startswith(_XLS_MAGIC):
        return SpreadsheetFormat.XLS
    if b"\x00" in data:
        raise ParseError("file is not a valid spreadsheet (unrecognized binary content)")
    return SpreadsheetFormat.CSV


def detect_encoding(data: bytes) -> str:
    """Pick the first encoding in utf-8-sig -> cp1252 -> latin-1 that decodes."""
    for enc in _CSV_ENCODINGS:
        try:
            data.decode(enc)
        except UnicodeDecodeError:
            continue
        return enc
    return "latin-1"  # pragma: no cover (latin-1 decodes any byte)


def detect_delimiter(text: str) -> str:
    """Choose the CSV delimiter yielding the most columns on the sample lines.

    SIIGO exports from Colombian locales usually use ';' because ',' is the
    decimal separator, so quoted amounts like "1.000,00" must not count as a
    split point; csv.reader takes care of the quoting.
    """
    lines = [line for line in text.splitlines() if line.strip()][:_DELIMITER_SAMPLE_LINES]
    if not lines:
        return ","
    best, best_score = ",", 1
    for delimiter in _CSV_DELIMITERS:
        widths = [len(fields) for fields in csv.reader(lines, delimiter=delimiter)]
        # modal width is robust against title lines above the header
        width, _ = Counter(widths).most_common(1)[0]
        if width > best_score:
            best, best_score = delimiter, width
    return best


def _read_frame(data: bytes, fmt: str) -> pd.DataFrame:
    if fmt == SpreadsheetFormat.XLSX:
        return pd.read_excel(io.BytesIO(data), sheet_name=0, header=None, dtype=object, engine="openpyxl")
    if fmt == SpreadsheetFormat.XLS:
        return pd.read_excel(io.BytesIO(data), sheet_name=0, header=None, dtype=object, engine="xlrd")

    encoding = detect_encoding(data)
    text = data.decode(encoding)
    delimiter = detect_delimiter(text)
    lines = text.splitlines()
    width = max((len(f) for f in csv.reader(lines, delimiter=delimiter)), default=0)
    if width == 0:
        return pd.DataFrame()
    logger.debug("csv encoding=%s delimiter=%r width=%d", encoding, delimiter, width)
    # names= pads short rows so ragged exports do not raise
    return pd.read_csv(
        io.StringIO(text),
        sep=delimiter,
        header=None,
        names=list(range(width)),
        dtype=str,
        keep_default_na=False,
        skip_blank_lines=True,
        engine="python",
    )


def read_workbook(data: bytes, file_name: str | None = None) -> list[list[RawCell]]:
    """Read the first sheet of a spreadsheet buffer into rows of RawCell.

    Parameters
    ----------
    data: raw bytes of an xlsx, xls or csv upload
    file_name: original upload name, used only in error messages

    Raises
    ------
    ParseError: the bytes cannot be read as a supported spreadsheet
    EmptyFileError: the sheet has no non-blank rows
    """
    label = file_name or "<upload>"
    if not data:
        raise EmptyFileError(f"file '{label}' is empty")

    fmt = detect_format(data)
    try:
        df = _read_frame(data, fmt)
    except Exception as e:
        raise ParseError(f"file '{label}' is not a valid spreadsheet ({fmt}): {e}") from e

    rows: list[list[RawCell]] = []
    for raw in df.itertuples(index=False, name=None):
        cells = [to_raw_cell(v) for v in raw]
        if all(isinstance(c, Empty) for c in cells):
            continue
        rows.append(cells)

    if not rows:
        raise EmptyFileError(f"file '{label}' has no rows")
    logger.debug("file=%s format=%s rows=%d", label, fmt, len(rows))
    return rows
