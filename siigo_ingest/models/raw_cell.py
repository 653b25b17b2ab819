from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, TypeAlias

import numpy as np
import pandas as pd

"""RawCell tagged union for spreadsheet cell values.

A worksheet cell arrives from pandas/openpyxl/xlrd as an untyped scalar. The
reader converts each one into exactly one RawCell variant so downstream
coercion can ``match`` on the variant instead of probing runtime types.
"""

__all__ = [
    "Empty",
    "Number",
    "Boolean",
    "Text",
    "DateValue",
    "RawCell",
    "EMPTY",
    "to_raw_cell",
]


@dataclass(frozen=True)
class Empty:
    """Blank cell (None, NaN, NaT or whitespace-only text)."""


@dataclass(frozen=True)
class Number:
    value: float


@dataclass(frozen=True)
class Boolean:
    value: bool


@dataclass(frozen=True)
class Text:
    value: str


@dataclass(frozen=True)
class DateValue:
    value: datetime


RawCell: TypeAlias = Empty | Number | Boolean | Text | DateValue

EMPTY = Empty()


def to_raw_cell(value: Any) -> RawCell:
    """Convert a pandas/openpyxl scalar into a RawCell variant.

    bool is checked before numbers because ``bool`` is an ``int`` subclass.
    """
    if value is None or value is pd.NaT:
        return EMPTY
    if isinstance(value, str):
        return Text(value) if value.strip() else EMPTY
    if isinstance(value, (bool, np.bool_)):
        return Boolean(bool(value))
    if isinstance(value, pd.Timestamp):
        if value.tzinfo is not None:
            value = value.tz_localize(None)
        return DateValue(value.to_pydatetime())
    if isinstance(value, datetime):
        # wall-clock time; aware and naive dates must stay comparable
        return DateValue(value.replace(tzinfo=None))
    if isinstance(value, date):
        return DateValue(datetime(value.year, value.month, value.day))
    if isinstance(value, (int, float, np.integer, np.floating)):
        number = float(value)
        if math.isnan(number):
            return EMPTY
        return Number(number)
    return Text(str(value))
