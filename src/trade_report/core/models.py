"""Core domain models used across the trade report engine.

These are the canonical "truth models" for the system.  Every source
platform (MT5, MT4, TradingView) is normalised into the same ``Trade``
shape; no platform-specific variants leak past the ingest layer.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, Field

from .enums import Platform, TradeSide, TradeState


# ---------------------------------------------------------------------------
# Raw input
# ---------------------------------------------------------------------------

class RawTable(BaseModel):
    """Tabular cells extracted from a spreadsheet or CSV export."""

    rows: list[list[Any]] = Field(default_factory=list)
    filename: str = ""  # Hint supplied by the upload layer
    sheet_name: str = ""


class RowIssue(BaseModel):
    """A data-quality problem found while parsing a single row."""

    row_index: int
    reason: str
    cells: list[str] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Trade
# ---------------------------------------------------------------------------

class Trade(BaseModel):
    """One normalised deal / trade row.

    Immutable once parsed.  ``profit`` is only meaningful on closing
    (``out``) rows and balance rows; ``balance`` when present is an
    authoritative running-balance snapshot.
    """

    model_config = {"frozen": True}

    open_time: datetime | None = None
    close_time: datetime | None = None
    entry_time: datetime | None = None  # Matched opening leg of a closing deal
    time_valid: bool = True  # False when the timestamp cell was unparseable

    order_id: str = ""
    deal_id: str = ""
    symbol: str = ""  # Empty only on balance rows
    type: str = ""  # Raw platform label, e.g. "buy", "Exit Long"
    side: TradeSide = TradeSide.LONG
    state: TradeState = TradeState.OUT

    volume: Decimal = Decimal("0")
    price_open: Decimal = Decimal("0")
    stop_loss: Decimal | None = None
    take_profit: Decimal | None = None
    comment: str = ""

    profit: Decimal | None = None
    commission: Decimal = Decimal("0")
    swap: Decimal = Decimal("0")
    balance: Decimal | None = None

    @property
    def is_balance(self) -> bool:
        """Deposit / withdrawal / credit row rather than a market deal."""
        return not self.symbol or self.type.strip().lower() == "balance"

    @property
    def is_closed(self) -> bool:
        """Closing deal with realised profit (counts towards statistics)."""
        return (
            self.state == TradeState.OUT
            and self.profit is not None
            and not self.is_balance
        )

    @property
    def realized_time(self) -> datetime | None:
        """When the profit was realised."""
        return self.close_time or self.open_time

    @property
    def holding_hours(self) -> float | None:
        """Hours between the opening leg and the close, ``None`` if unknown."""
        if not self.time_valid:
            return None
        start = self.entry_time or self.open_time
        end = self.close_time or self.open_time
        if start is None or end is None:
            return None
        return max(0.0, (end - start).total_seconds() / 3600.0)


# ---------------------------------------------------------------------------
# Parser output
# ---------------------------------------------------------------------------

class ParsedReport(BaseModel):
    """Result of parsing one exported trade log."""

    trades: list[Trade] = Field(default_factory=list)
    summary: dict[str, str | int | float] = Field(default_factory=dict)
    platform: Platform = Platform.MT5
    strategy: str = ""  # Name of the layout strategy that matched
    issues: list[RowIssue] = Field(default_factory=list)
    skipped_rows: int = 0

    @property
    def closed_trades(self) -> list[Trade]:
        return [t for t in self.trades if t.is_closed]

    @property
    def invalid_time_rows(self) -> int:
        return sum(1 for t in self.trades if not t.time_valid)
