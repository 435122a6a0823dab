"""Shared fixtures for the trade-report test suite."""

from __future__ import annotations

import csv
import logging
from datetime import datetime, timedelta
from decimal import Decimal
from pathlib import Path
from typing import Any, Callable, Sequence

import pytest
import structlog

from trade_report.core.enums import TradeSide, TradeState
from trade_report.core.models import RawTable, Trade
from trade_report.ingest.strategies import MT5_COLUMNS

BASE_TIME = datetime(2024, 1, 2, 10, 0, 0)


def _dec(value: Any) -> Decimal | None:
    if value is None:
        return None
    return Decimal(str(value))


# ---------------------------------------------------------------------------
# Trade factories
# ---------------------------------------------------------------------------

def make_trade(
    profit: float | str | None = None,
    *,
    symbol: str = "EURUSD",
    time: datetime | None = None,
    side: TradeSide = TradeSide.LONG,
    state: TradeState = TradeState.OUT,
    balance: float | str | Decimal | None = None,
    volume: str = "0.10",
    entry_time: datetime | None = None,
    close_time: datetime | None = None,
    time_valid: bool = True,
    deal_id: str = "",
    commission: str = "0",
    swap: str = "0",
    comment: str = "",
) -> Trade:
    """A closing deal by default; pass ``state=TradeState.IN`` for an opening leg."""
    time = time or BASE_TIME
    return Trade(
        open_time=time if time_valid else None,
        close_time=(close_time or time) if time_valid else None,
        entry_time=entry_time,
        time_valid=time_valid,
        deal_id=deal_id,
        order_id=deal_id,
        symbol=symbol,
        type="buy" if side == TradeSide.LONG else "sell",
        side=side,
        state=state,
        volume=Decimal(volume),
        price_open=Decimal("1.1000"),
        profit=_dec(profit),
        commission=Decimal(commission),
        swap=Decimal(swap),
        balance=_dec(balance),
        comment=comment,
    )


def make_deposit(
    amount: float | str,
    *,
    time: datetime | None = None,
    balance: float | str | None = None,
) -> Trade:
    time = time or BASE_TIME - timedelta(days=1)
    return Trade(
        open_time=time,
        close_time=time,
        symbol="",
        type="balance",
        profit=_dec(amount),
        balance=_dec(balance),
        comment="Deposit",
    )


def make_series(
    profits: Sequence[float],
    *,
    symbol: str = "EURUSD",
    start: datetime = BASE_TIME,
    step: timedelta = timedelta(days=1),
    initial: float | None = None,
) -> list[Trade]:
    """Closing deals at *step* intervals, with running balances if *initial* is set."""
    running = _dec(initial)
    trades = []
    for i, profit in enumerate(profits):
        if running is not None:
            running += _dec(profit)
        trades.append(make_trade(
            profit,
            symbol=symbol,
            time=start + i * step,
            balance=running,
            deal_id=str(i + 1),
        ))
    return trades


# ---------------------------------------------------------------------------
# Raw export tables
# ---------------------------------------------------------------------------

def _mt5_deal(time, deal, symbol, type_, direction, volume, price, profit, balance, comment=""):
    return [
        time, deal, symbol, type_, direction, volume, price, deal,
        "0.00", "0.00", profit, balance, comment,
    ]


def mt5_report_rows() -> list[list[Any]]:
    """MT5 history report: preamble, Deals header, six deals, totals, summary block."""
    return [
        ["Trade History Report"],
        ["Name:", "", "", "Demo Account"],
        ["Account:", "", "", "12345678"],
        [],
        ["Deals"],
        list(MT5_COLUMNS),
        _mt5_deal("2024.01.01 09:00:00", "1", "", "balance", "", "", "", "10000.00", "10000.00", "Initial deposit"),
        _mt5_deal("2024.01.02 10:00:00", "2", "EURUSD", "buy", "in", "0.10", "1.10000", "0.00", "10000.00", "sl 1.0950 tp 1.1100"),
        _mt5_deal("2024.01.02 14:00:00", "3", "EURUSD", "sell", "out", "0.10", "1.11000", "100.00", "10100.00"),
        _mt5_deal("2024.01.03 09:30:00", "4", "GBPUSD", "sell", "in", "0.20", "1.27000", "0.00", "10100.00"),
        _mt5_deal("2024.01.03 16:30:00", "5", "GBPUSD", "buy", "out", "0.20", "1.27250", "-50.00", "10050.00"),
        _mt5_deal("2024.01.04 08:00:00", "6", "XAUUSD", "buy", "in", "0.01", "2050.00", "0.00", "10050.00"),
        _mt5_deal("2024.01.05 12:00:00", "7", "XAUUSD", "sell", "out", "0.01", "2070.00", "200.00", "10250.00"),
        ["", "", "", "", "", "", "", "", "0.00", "0.00", "10250.00", "", ""],
        [],
        ["Total Net Profit:", "250.00", "", "Gross Profit:", "300.00", "", "Gross Loss:", "-50.00"],
        ["Profit Factor:", "6.00"],
    ]


def mt5_deals_section_rows() -> list[list[Any]]:
    """MT5 report without a header row; dates and times in separate cells."""
    return [
        ["Positions"],
        [],
        ["Deals"],
        ["02.01.2024", "10:00:00", "1001", "EURUSD", "buy", "in", "0.10", "1.1000", "5001", "0", "0", "0", "10000", ""],
        ["02.01.2024", "15:30:00", "1002", "EURUSD", "sell", "out", "0.10", "1.1050", "5002", "-0.50", "0", "50", "10050", ""],
        ["31.02.2024", "09:00:00", "1003", "GBPUSD", "sell", "out", "0.10", "1.2700", "5003", "0", "0", "-20", "10030", ""],
        ["03.01.2024", "11:00:00", "1004", "GBPUSD", "buy", "out", "0.10", "1.2650", "5004", "0", "0", "30", "10060", ""],
        ["garbage", "x", "y"],
        [],
        ["Summary:"],
        ["Balance:", "10060.00"],
    ]


def mt4_statement_rows() -> list[list[Any]]:
    """MT4 detailed statement: Ticket / Open Time / Item / Close Time / Profit."""
    return [
        ["Account: 5551234", "Name: Demo"],
        ["Closed Transactions:"],
        [
            "Ticket", "Open Time", "Type", "Size", "Item", "Price", "S / L", "T / P",
            "Close Time", "Price", "Commission", "Taxes", "Swap", "Profit",
        ],
        ["1000", "2024.01.01 09:00", "balance", "", "", "", "", "", "", "", "", "", "", "5000.00"],
        [
            "1001", "2024.01.02 10:00", "buy", "0.10", "eurusd", "1.1000", "1.0950", "1.1100",
            "2024.01.02 14:00", "1.1050", "-0.70", "0.00", "0.00", "50.00",
        ],
        [
            "1002", "2024.01.03 09:00", "sell", "0.20", "gbpusd", "1.2700", "1.2750", "1.2600",
            "2024.01.03 18:30", "1.2720", "-1.40", "0.00", "-0.35", "-40.00",
        ],
        ["", "", "", "", "", "", "", "", "", "", "-2.10", "0.00", "-0.35", "5010.00"],
    ]


TRADINGVIEW_HEADER = [
    "Trade #", "Type", "Signal", "Date/Time", "Price USD", "Contracts",
    "Profit USD", "Profit %", "Cumulative profit USD", "Cumulative profit %",
]


def tradingview_rows() -> list[list[Any]]:
    """TradingView Strategy Tester "List of trades"."""
    return [
        TRADINGVIEW_HEADER,
        ["1", "Entry Long", "Long", "2024-01-02 10:00", "1.1000", "1", "100", "1.0", "100", "1.0"],
        ["1", "Exit Long", "Close", "2024-01-02 14:00", "1.1100", "1", "100", "1.0", "100", "1.0"],
        ["2", "Entry Short", "Short", "2024-01-03 09:00", "1.1150", "1", "-40", "-0.4", "60", "0.6"],
        ["2", "Exit Short", "Close", "2024-01-03 12:30", "1.1190", "1", "-40", "-0.4", "60", "0.6"],
    ]


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def base_time() -> datetime:
    return BASE_TIME


@pytest.fixture
def scenario_trades() -> list[Trade]:
    """+100 / -50 / +200 from a 10,000 account (balances 10100 / 10050 / 10250)."""
    return make_series([100, -50, 200], initial=10_000)


@pytest.fixture
def mt5_table() -> RawTable:
    return RawTable(rows=mt5_report_rows(), filename="ReportHistory-12345678.csv")


@pytest.fixture
def write_csv(tmp_path: Path) -> Callable[..., Path]:
    """Write rows to a CSV file under ``tmp_path`` and return its path."""

    def _write(name: str, rows: Sequence[Sequence[Any]], delimiter: str = ",") -> Path:
        path = tmp_path / name
        with open(path, "w", newline="", encoding="utf-8") as f:
            writer = csv.writer(f, delimiter=delimiter)
            for row in rows:
                writer.writerow(row)
        return path

    return _write


@pytest.fixture
def restore_logging():
    """Undo ``setup_logging`` so later tests see the default root logger."""
    root = logging.getLogger()
    level = root.level
    yield
    for handler in list(root.handlers):
        if isinstance(handler.formatter, structlog.stdlib.ProcessorFormatter):
            root.removeHandler(handler)
    root.setLevel(level)
    structlog.reset_defaults()
