"""Raw cell coercion: numbers, timestamps and content shapes.

Spreadsheet exports hand us a mix of native values (floats, datetimes,
Excel serial numbers) and locale-formatted strings.  Everything in this
module is total: a cell that cannot be coerced yields a default or a
failed ``DateParse``, never an exception.
"""

from __future__ import annotations

import math
import numbers
import re
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal, InvalidOperation
from typing import Any

import pandas as pd

from trade_report.core.enums import CellShape

_EMPTY_MARKERS = {"", "-", "—", "–", "n/a", "na", "nan", "none", "null"}
_STRIP_CHARS = re.compile(r"[\s$€£¥'\"]")
_NUMERIC = re.compile(r"^[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?$")

_TIME_RE = re.compile(r"^(\d{1,2}):(\d{2})(?::(\d{2}))?$")
_DOTTED_RE = re.compile(
    r"^(\d{1,4})\.(\d{1,2})\.(\d{2,4})"
    r"(?:[ T]+(\d{1,2}):(\d{2})(?::(\d{2}))?)?$"
)
_SLASHED_RE = re.compile(
    r"^(\d{1,4})/(\d{1,2})/(\d{1,4})"
    r"(?:[ T]+(\d{1,2}):(\d{2})(?::(\d{2}))?)?$"
)
_ISO_DATE_RE = re.compile(r"^\d{4}-\d{1,2}-\d{1,2}")

# Excel stores dates as days since 1899-12-30; accept roughly 1954..2119.
_EXCEL_EPOCH = datetime(1899, 12, 30)
_EXCEL_SERIAL_RANGE = (20_000, 80_000)


@dataclass(frozen=True)
class DateParse:
    """Outcome of parsing one timestamp cell."""

    value: datetime | None
    ok: bool
    fmt: str = ""  # Which rule matched: "native", "iso", "dotted", ...

    @classmethod
    def failed(cls) -> DateParse:
        return cls(value=None, ok=False, fmt="")


# ---------------------------------------------------------------------------
# Text
# ---------------------------------------------------------------------------

def cell_text(value: Any) -> str:
    """Render a cell as trimmed text.

    Integral floats (deal ids read from xlsx) lose their ``.0`` suffix.
    """
    if value is None:
        return ""
    if isinstance(value, float):
        if math.isnan(value):
            return ""
        if value.is_integer():
            return str(int(value))
    if isinstance(value, Decimal) and value == value.to_integral_value():
        return str(int(value))
    return str(value).strip()


def is_blank(value: Any) -> bool:
    return cell_text(value).lower() in _EMPTY_MARKERS


# ---------------------------------------------------------------------------
# Numbers
# ---------------------------------------------------------------------------

def _normalise_separators(text: str) -> str:
    """Resolve European vs US thousands/decimal separators."""
    if "," in text and "." in text:
        if text.rfind(",") > text.rfind("."):
            # European: 1.234,56
            return text.replace(".", "").replace(",", ".")
        # US: 1,234.56
        return text.replace(",", "")

    if "," in text:
        head, _, tail = text.rpartition(",")
        if text.count(",") > 1:
            return text.replace(",", "")
        digits = head.lstrip("+-")
        if len(tail) == 3 and digits not in ("", "0"):
            return head + tail  # 1,234
        return head + "." + tail  # 1,5 / 0,123 / 1,0850

    if text.count(".") > 1:
        return text.replace(".", "")  # 1.234.567
    return text


def to_decimal(value: Any, default: Decimal | None = Decimal("0")) -> Decimal | None:
    """Coerce a cell to ``Decimal``, returning *default* when not numeric."""
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, Decimal):
        return value if value.is_finite() else default
    if isinstance(value, numbers.Real):
        if not math.isfinite(value):
            return default
        return Decimal(str(value))

    text = str(value).strip()
    if text.lower() in _EMPTY_MARKERS:
        return default

    negative = text.startswith("(") and text.endswith(")")
    if negative:
        text = text[1:-1]
    text = _STRIP_CHARS.sub("", text)
    if not text:
        return default

    text = _normalise_separators(text)
    if not _NUMERIC.match(text):
        return default
    try:
        result = Decimal(text)
    except InvalidOperation:
        return default
    return -result if negative else result


def to_float(value: Any, default: float = 0.0) -> float:
    dec = to_decimal(value, default=None)
    return float(dec) if dec is not None else default


# ---------------------------------------------------------------------------
# Timestamps
# ---------------------------------------------------------------------------

def _build(year: int, month: int, day: int, hh: str | None, mm: str | None,
           ss: str | None) -> datetime:
    if year < 100:
        year += 2000
    return datetime(
        year, month, day,
        int(hh or 0), int(mm or 0), int(ss or 0),
    )


def _naive(ts: datetime) -> datetime:
    if ts.tzinfo is not None:
        return ts.astimezone(timezone.utc).replace(tzinfo=None)
    return ts


def parse_datetime(value: Any) -> DateParse:
    """Parse a timestamp cell.

    Priority: native datetime / Excel serial, ISO strings, dotted
    ``DD.MM.YYYY`` or ``YYYY.MM.DD`` (MT5), slashed ``MM/DD/YYYY``
    (MT4 / TradingView), then an unstructured fallback.
    """
    if value is None or isinstance(value, bool):
        return DateParse.failed()

    if isinstance(value, pd.Timestamp):
        if pd.isna(value):
            return DateParse.failed()
        return DateParse(_naive(value.to_pydatetime()), True, "native")
    if isinstance(value, datetime):
        return DateParse(_naive(value), True, "native")
    if isinstance(value, date):
        return DateParse(datetime(value.year, value.month, value.day), True, "native")
    if isinstance(value, numbers.Real):
        lo, hi = _EXCEL_SERIAL_RANGE
        if not math.isfinite(value):
            return DateParse.failed()
        if lo <= value <= hi:
            return DateParse(_EXCEL_EPOCH + timedelta(days=float(value)), True, "excel")
        return DateParse.failed()

    text = str(value).strip().strip("\"'")
    if not text:
        return DateParse.failed()

    if _ISO_DATE_RE.match(text):
        try:
            return DateParse(_naive(datetime.fromisoformat(text)), True, "iso")
        except ValueError:
            pass

    m = _DOTTED_RE.match(text)
    if m:
        a, b, c, hh, mm, ss = m.groups()
        try:
            if len(a) == 4:
                ts = _build(int(a), int(b), int(c), hh, mm, ss)  # YYYY.MM.DD
            else:
                ts = _build(int(c), int(b), int(a), hh, mm, ss)  # DD.MM.YYYY
            return DateParse(ts, True, "dotted")
        except ValueError:
            return DateParse.failed()

    m = _SLASHED_RE.match(text)
    if m:
        a, b, c, hh, mm, ss = m.groups()
        try:
            if len(a) == 4:
                ts = _build(int(a), int(b), int(c), hh, mm, ss)  # YYYY/MM/DD
            elif int(a) > 12 >= int(b):
                ts = _build(int(c), int(b), int(a), hh, mm, ss)  # DD/MM/YYYY
            else:
                ts = _build(int(c), int(a), int(b), hh, mm, ss)  # MM/DD/YYYY
            return DateParse(ts, True, "slashed")
        except ValueError:
            return DateParse.failed()

    # Unstructured fallback ("Jan 5, 2024 10:00"); must look date-like.
    if re.search(r"\d", text) and re.search(r"[A-Za-z/\-.:]", text):
        try:
            ts = pd.to_datetime(text, errors="coerce")
        except (ValueError, TypeError, OverflowError):
            ts = pd.NaT
        if ts is not pd.NaT and not pd.isna(ts):
            return DateParse(_naive(ts.to_pydatetime()), True, "fallback")

    return DateParse.failed()


def combine_date_time(date_cell: Any, time_cell: Any) -> DateParse:
    """Parse a timestamp split across a date cell and a time cell."""
    date_part = parse_datetime(date_cell)
    if not date_part.ok:
        return date_part
    m = _TIME_RE.match(cell_text(time_cell))
    if not m:
        return date_part
    hh, mm, ss = m.groups()
    try:
        ts = date_part.value.replace(
            hour=int(hh), minute=int(mm), second=int(ss or 0),
        )
    except ValueError:
        return DateParse.failed()
    return DateParse(ts, True, date_part.fmt)


# ---------------------------------------------------------------------------
# Shapes
# ---------------------------------------------------------------------------

def classify_cell(value: Any) -> CellShape:
    """Classify a cell by its content signature.

    * ``"10:00:00"`` → TIME
    * ``"02.01.2024"`` / ``"01/02/2024"`` → DATE
    * a cell holding both a date part (``.``, ``/`` or ``-``) and ``:`` that
      parses as a timestamp → DATETIME
    * anything ``to_decimal`` accepts → NUMBER
    """
    if isinstance(value, (datetime, pd.Timestamp)):
        return CellShape.DATETIME
    if isinstance(value, date):
        return CellShape.DATE
    if isinstance(value, (numbers.Real, Decimal)) and not isinstance(value, bool):
        if isinstance(value, numbers.Real) and not math.isfinite(value):
            return CellShape.EMPTY
        return CellShape.NUMBER

    text = cell_text(value)
    if not text:
        return CellShape.EMPTY
    if _TIME_RE.match(text):
        return CellShape.TIME
    if ":" not in text:
        m = _DOTTED_RE.match(text) or _SLASHED_RE.match(text)
        if (m and len(m.group(3)) >= 2) or (
            _ISO_DATE_RE.match(text) and len(text) <= 10
        ):
            return CellShape.DATE
    elif any(sep in text for sep in "./-") and parse_datetime(text).ok:
        return CellShape.DATETIME
    if to_decimal(text, default=None) is not None:
        return CellShape.NUMBER
    return CellShape.TEXT
