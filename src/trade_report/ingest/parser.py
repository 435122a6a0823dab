"""TradeReportParser: the single entry point from raw rows to trades.

Flow::

    RawTable ─► detect_platform ─► strategies (detected platform first)
             ─► order_trades ─► pair_entries ─► ParsedReport

Row-level problems never raise; they are collected as ``RowIssue``s.  Only
a table that no strategy recognises raises ``UnparseableReportError``.
"""

from __future__ import annotations

import logging
from pathlib import Path

from trade_report.analytics.equity import build_equity_curve, infer_initial_balance
from trade_report.core.config import ParserConfig
from trade_report.core.enums import Platform, TradeState
from trade_report.core.errors import UnparseableReportError
from trade_report.core.models import ParsedReport, RawTable, Trade

from .detector import detect_platform
from .normalizer import order_trades, pair_entries
from .readers import read_table
from .strategies import create_strategies

logger = logging.getLogger(__name__)


def computed_summary(
    trades: list[Trade],
    platform: Platform,
    initial_balance: float | None = None,
) -> dict[str, str | float]:
    """Deal counts and balances derived from the parsed trades."""
    deals = [t for t in trades if not t.is_balance]
    closed = [t for t in trades if t.is_closed]
    wins = sum(1 for t in closed if t.profit > 0)
    losses = sum(1 for t in closed if t.profit < 0)
    net = sum(float(t.profit) for t in closed)

    if initial_balance is None:
        initial_balance = infer_initial_balance(trades)
    curve = build_equity_curve(trades, initial_balance)

    return {
        "Total Deals": len(deals),
        "In Deals": sum(1 for t in deals if t.state == TradeState.IN),
        "Out Deals": sum(1 for t in deals if t.state == TradeState.OUT),
        "Profitable Deals": wins,
        "Loss Deals": losses,
        "Win Rate": round(wins / len(closed) * 100, 2) if closed else 0.0,
        "Total Net Profit": round(net, 2),
        "Initial Balance": round(initial_balance, 2),
        "Final Balance": round(curve.final_equity, 2),
        "Source": platform.label,
    }


class TradeReportParser:
    """Parse exported trade logs into a ``ParsedReport``.

    Args:
        config: Parser configuration (default platform, TradingView
            starting balance).
    """

    def __init__(self, config: ParserConfig | None = None) -> None:
        self._config = config or ParserConfig()

    def parse(
        self,
        table: RawTable,
        *,
        initial_balance: float | None = None,
        platform: Platform | None = None,
    ) -> ParsedReport:
        """Parse an in-memory table.

        Args:
            table: Raw rows plus filename / sheet hints.
            initial_balance: Starting balance override (TradingView lists
                and the computed summary).
            platform: Skip detection and prefer this platform's layouts.

        Raises:
            UnparseableReportError: No layout strategy recognised the table.
        """
        detected = platform or detect_platform(
            rows=table.rows,
            filename_hint=table.filename,
            sheet_name=table.sheet_name,
            default=self._config.default_platform,
        )

        result = None
        for strategy in create_strategies(detected, self._config, initial_balance):
            result = strategy.try_parse(table)
            if result is not None:
                break
        if result is None:
            logger.error(
                "No layout matched %s (%d rows)", table.filename or "<rows>", len(table.rows),
            )
            raise UnparseableReportError(table.filename, len(table.rows))

        resolved = result.platform or detected
        trades = pair_entries(order_trades(result.trades))

        if initial_balance is None and "Initial Balance" in result.summary:
            seeded = result.summary["Initial Balance"]
            initial_balance = seeded if isinstance(seeded, float) else None

        summary = dict(result.summary)
        summary.update(computed_summary(trades, resolved, initial_balance))

        report = ParsedReport(
            trades=trades,
            summary=summary,
            platform=resolved,
            strategy=result.strategy,
            issues=result.issues,
            skipped_rows=result.skipped_rows,
        )
        logger.info(
            "Parsed %s: platform=%s strategy=%s trades=%d issues=%d skipped=%d",
            table.filename or "<rows>",
            resolved.value,
            result.strategy,
            len(trades),
            len(report.issues),
            report.skipped_rows,
        )
        return report

    def parse_file(
        self,
        path: str | Path,
        *,
        initial_balance: float | None = None,
        platform: Platform | None = None,
    ) -> ParsedReport:
        """Read a CSV / XLSX export from disk and parse it."""
        table = read_table(path)
        return self.parse(table, initial_balance=initial_balance, platform=platform)
