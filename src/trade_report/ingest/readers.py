"""File readers: CSV / XLSX exports into a ``RawTable``.

Broker CSVs are ragged (preamble rows, section titles, summary blocks), so
they go through ``csv.reader`` rather than a rectangular frame reader.
Workbooks are read with pandas + openpyxl, preferring TradingView's
"List of trades" sheet when present.
"""

from __future__ import annotations

import csv
import io
import logging
import zipfile
from pathlib import Path
from typing import Any

import pandas as pd

from trade_report.core.errors import UnsupportedFileError
from trade_report.core.models import RawTable

from .detector import TRADINGVIEW_SHEET

logger = logging.getLogger(__name__)

CSV_EXTENSIONS = (".csv", ".txt")
EXCEL_EXTENSIONS = (".xlsx", ".xlsm")

_UTF16_BOMS = (b"\xff\xfe", b"\xfe\xff")


def _decode(data: bytes) -> str:
    """MT5 writes UTF-16 with a BOM; other exports are UTF-8 or Latin-1."""
    if data.startswith(_UTF16_BOMS):
        return data.decode("utf-16")
    try:
        return data.decode("utf-8-sig")
    except UnicodeDecodeError:
        return data.decode("latin-1")


def _sniff_delimiter(text: str) -> str:
    sample = "\n".join(text.splitlines()[:50])
    try:
        return csv.Sniffer().sniff(sample, delimiters=",;\t|").delimiter
    except csv.Error:
        return ","


def read_csv_rows(data: bytes) -> list[list[Any]]:
    text = _decode(data)
    if not text.strip():
        return []
    reader = csv.reader(io.StringIO(text), delimiter=_sniff_delimiter(text))
    return [list(row) for row in reader]


def _frame_rows(frame: pd.DataFrame) -> list[list[Any]]:
    cleaned = frame.astype(object).where(pd.notna(frame), None)
    return cleaned.values.tolist()


def _pick_sheet(sheets: dict[str, pd.DataFrame]) -> str:
    for name in sheets:
        if name.strip().lower() == TRADINGVIEW_SHEET:
            return name
    return next(iter(sheets))


def read_excel_rows(data: bytes) -> tuple[list[list[Any]], str]:
    """Rows of the preferred sheet and that sheet's name."""
    sheets = pd.read_excel(
        io.BytesIO(data), sheet_name=None, header=None, engine="openpyxl",
    )
    if not sheets:
        return [], ""
    name = _pick_sheet(sheets)
    return _frame_rows(sheets[name]), name


def read_table_bytes(data: bytes, filename: str) -> RawTable:
    """Build a ``RawTable`` from uploaded bytes.

    Raises:
        UnsupportedFileError: The extension is not a supported export type.
    """
    ext = Path(filename).suffix.lower()
    if ext in CSV_EXTENSIONS:
        rows, sheet = read_csv_rows(data), ""
    elif ext in EXCEL_EXTENSIONS:
        try:
            rows, sheet = read_excel_rows(data)
        except (ValueError, KeyError, OSError, zipfile.BadZipFile) as exc:
            raise UnsupportedFileError(f"Cannot read workbook {filename}: {exc}") from exc
    else:
        raise UnsupportedFileError(
            f"Unsupported file type {ext or '<none>'} for {filename}; "
            f"expected one of {', '.join(CSV_EXTENSIONS + EXCEL_EXTENSIONS)}"
        )

    logger.debug("Read %s: %d rows (sheet=%r)", filename, len(rows), sheet)
    return RawTable(rows=rows, filename=filename, sheet_name=sheet)


def read_table(path: str | Path) -> RawTable:
    """Read an export from disk."""
    path = Path(path)
    if path.suffix.lower() not in CSV_EXTENSIONS + EXCEL_EXTENSIONS:
        raise UnsupportedFileError(f"Unsupported file type {path.suffix or '<none>'} for {path.name}")
    return read_table_bytes(path.read_bytes(), path.name)
