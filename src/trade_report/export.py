"""Trade export: normalised CSV / JSON output.

The CSV uses the MT5 deals column order so the file can be fed straight
back into the parser (or into any tool that reads MT5 deal lists).

Usage::

    exporter = TradeExporter()
    csv_str = exporter.to_csv(report.trades)
    exporter.write_csv(report.trades, "normalised.csv")
"""

from __future__ import annotations

import csv
import io
import json
import logging
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from pathlib import Path
from typing import Any, Sequence

from trade_report.core.enums import TradeSide, TradeState
from trade_report.core.models import Trade
from trade_report.ingest.strategies import MT5_COLUMNS

logger = logging.getLogger(__name__)

TIME_FORMAT = "%Y.%m.%d %H:%M:%S"

_CENT = Decimal("0.01")


def _money(value: Decimal | None) -> str:
    if value is None:
        return ""
    return str(value.quantize(_CENT, rounding=ROUND_HALF_UP))


def _plain(value: Decimal | None) -> str:
    if value is None:
        return ""
    return format(value.normalize(), "f") if value != 0 else "0"


class TradeExporter:
    """Export trades to CSV / JSON.

    Parameters
    ----------
    time_format : str
        ``strftime`` pattern for the Time column.
    """

    def __init__(self, *, time_format: str = TIME_FORMAT) -> None:
        self._time_format = time_format

    def _trade_to_row(self, trade: Trade) -> dict[str, str]:
        if trade.is_balance:
            type_label = "balance"
            direction = ""
        else:
            type_label = "buy" if trade.side == TradeSide.LONG else "sell"
            direction = trade.state.value

        ts = trade.open_time if trade.time_valid else None
        return {
            "Time": self._format_time(ts),
            "Deal": trade.deal_id,
            "Symbol": trade.symbol,
            "Type": type_label,
            "Direction": direction,
            "Volume": _plain(trade.volume),
            "Price": _plain(trade.price_open),
            "Order": trade.order_id,
            "Commission": _money(trade.commission),
            "Swap": _money(trade.swap),
            "Profit": _money(trade.profit),
            "Balance": _money(trade.balance),
            "Comment": trade.comment,
        }

    def _format_time(self, ts: datetime | None) -> str:
        return ts.strftime(self._time_format) if ts else ""

    @staticmethod
    def _is_round_trip(trade: Trade) -> bool:
        """A closed position carrying its own close time (MT4 / generic rows)."""
        return (
            trade.is_closed
            and trade.time_valid
            and trade.open_time is not None
            and trade.close_time is not None
            and trade.close_time != trade.open_time
        )

    def _round_trip_rows(self, trade: Trade) -> tuple[dict[str, str], dict[str, str]]:
        """Split a round trip into MT5 ``in`` / ``out`` deals sharing one order id."""
        order = trade.order_id or trade.deal_id
        exit_row = self._trade_to_row(trade)
        exit_row["Time"] = self._format_time(trade.close_time)
        exit_row["Order"] = order

        entry_row = dict(exit_row)
        entry_row.update({
            "Time": self._format_time(trade.open_time),
            "Deal": "",
            "Direction": TradeState.IN.value,
            "Commission": _money(Decimal("0")),
            "Swap": _money(Decimal("0")),
            "Profit": "",
            "Balance": "",
            "Comment": "",
        })
        return entry_row, exit_row

    def _rows(self, trades: Sequence[Trade]) -> list[dict[str, str]]:
        """CSV rows in time order; rows without a valid time follow their predecessor."""
        keyed: list[tuple[datetime, int, dict[str, str]]] = []
        last_seen = datetime.min
        for trade in trades:
            if self._is_round_trip(trade):
                legs = zip((trade.open_time, trade.close_time), self._round_trip_rows(trade))
            else:
                ts = trade.open_time if trade.time_valid else None
                legs = [(ts, self._trade_to_row(trade))]
            for ts, row in legs:
                if ts is not None:
                    last_seen = ts
                keyed.append((last_seen, len(keyed), row))
        keyed.sort(key=lambda item: (item[0], item[1]))
        return [row for _, _, row in keyed]

    # ------------------------------------------------------------------ #
    # CSV Export                                                           #
    # ------------------------------------------------------------------ #

    def to_csv(self, trades: Sequence[Trade]) -> str:
        """Export trades as a CSV string with an MT5-style header row.

        Trades with a separate close time are written as an ``in`` deal at
        the open and an ``out`` deal at the close so re-parsing restores
        the holding time.
        """
        buf = io.StringIO()
        writer = csv.DictWriter(buf, fieldnames=list(MT5_COLUMNS), lineterminator="\n")
        writer.writeheader()
        writer.writerows(self._rows(trades))
        return buf.getvalue()

    def write_csv(self, trades: Sequence[Trade], path: str | Path) -> Path:
        path = Path(path)
        path.write_text(self.to_csv(trades), encoding="utf-8")
        logger.info("Wrote %d trades to %s", len(trades), path)
        return path

    # ------------------------------------------------------------------ #
    # JSON Export                                                          #
    # ------------------------------------------------------------------ #

    def to_records(self, trades: Sequence[Trade]) -> list[dict[str, Any]]:
        """Trades as JSON-able dicts (full canonical fields)."""
        return [t.model_dump(mode="json") for t in trades]

    def to_json(self, trades: Sequence[Trade], *, indent: int = 2) -> str:
        """Export trades as a JSON string (list of trade objects)."""
        return json.dumps(self.to_records(trades), indent=indent, default=str)
