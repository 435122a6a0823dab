"""Source platform detection.

Decides which platform produced an export so the parser can try that
platform's layout strategies first.  Signals are consulted from most to
least explicit: the upload filename, the workbook sheet name, then
header/content tokens.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Sequence

from trade_report.core.enums import Platform

from .cells import cell_text

logger = logging.getLogger(__name__)

TRADINGVIEW_SHEET = "list of trades"

_TV_HEADER_TOKENS = ("trade #", "signal", "cumulative profit", "price usd")
_TV_FILENAME_RE = re.compile(r"(^|[^a-z])tv[_ ]")

# How many leading rows are scanned for header tokens.
_SCAN_ROWS = 60


def _platform_from_filename(filename: str) -> Platform | None:
    name = filename.lower()
    if not name:
        return None
    if "tradingview" in name or "trading view" in name or _TV_FILENAME_RE.search(name):
        return Platform.TRADINGVIEW
    if "mt5" in name:
        return Platform.MT5
    if "mt4" in name:
        return Platform.MT4
    return None


def _platform_from_sheet(sheet_name: str) -> Platform | None:
    name = sheet_name.strip().lower()
    if name == TRADINGVIEW_SHEET or "tradingview" in name:
        return Platform.TRADINGVIEW
    return None


def _platform_from_tokens(rows: Sequence[Sequence[Any]]) -> Platform | None:
    for row in rows[:_SCAN_ROWS]:
        cells = [cell_text(c).lower() for c in row]
        joined = " | ".join(cells)

        if "tradingview" in joined:
            return Platform.TRADINGVIEW
        if sum(1 for tok in _TV_HEADER_TOKENS if tok in cells) >= 2:
            return Platform.TRADINGVIEW

        has_profit = any("profit" in c for c in cells)
        if "deal" in cells and ("balance" in cells or has_profit):
            return Platform.MT5
        if "ticket" in cells and has_profit:
            return Platform.MT4
    return None


def detect_platform(
    header: Sequence[Any] | None = None,
    rows: Sequence[Sequence[Any]] = (),
    filename_hint: str = "",
    sheet_name: str = "",
    default: Platform = Platform.MT5,
) -> Platform:
    """Identify the platform that produced a trade log.

    Args:
        header: Header row if the caller already knows it.
        rows: Raw table rows (scanned for header tokens when *header* is
            not given or is inconclusive).
        filename_hint: Original upload filename.
        sheet_name: Workbook sheet the rows came from.
        default: Returned when nothing is conclusive.
    """
    platform = _platform_from_filename(filename_hint)
    source = "filename"
    if platform is None:
        platform = _platform_from_sheet(sheet_name)
        source = "sheet"
    if platform is None:
        candidates = [header] if header else []
        platform = _platform_from_tokens([*candidates, *rows])
        source = "content"
    if platform is None:
        platform = default
        source = "default"

    logger.debug("Detected platform %s (from %s)", platform.value, source)
    return platform
