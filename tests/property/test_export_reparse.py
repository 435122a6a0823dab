"""Property test: an exported trade list parses back to the same deals."""

import csv
import io
from datetime import timedelta
from decimal import Decimal

import pytest
from hypothesis import given, settings, strategies as st

from trade_report.core.enums import TradeSide
from trade_report.core.models import RawTable
from trade_report.export import TradeExporter
from trade_report.ingest.parser import TradeReportParser

from ..conftest import BASE_TIME, make_trade

deal = st.tuples(
    st.decimals(min_value=Decimal("-5000"), max_value=Decimal("5000"), places=2),
    st.decimals(min_value=Decimal("0.01"), max_value=Decimal("100"), places=2),
    st.sampled_from(["EURUSD", "GBPJPY", "XAUUSD", "US30"]),
    st.sampled_from([TradeSide.LONG, TradeSide.SHORT]),
    st.integers(min_value=1, max_value=86_400),
)

# Seconds between open and close.
holding = st.integers(min_value=1, max_value=10 * 86_400)


def _reparse(trades):
    text = TradeExporter().to_csv(trades)
    return TradeReportParser().parse(RawTable(rows=list(csv.reader(io.StringIO(text)))))


@given(deals=st.lists(deal, min_size=1, max_size=25))
@settings(max_examples=100, deadline=None)
def test_export_then_parse_preserves_deals(deals):
    """Profits, balances, volumes, symbols, sides and times survive a CSV round trip."""
    trades = []
    time = BASE_TIME
    balance = Decimal("100000")
    for i, (profit, volume, symbol, side, gap) in enumerate(deals):
        time += timedelta(seconds=gap)
        balance += profit
        trades.append(make_trade(
            profit,
            symbol=symbol,
            side=side,
            time=time,
            volume=str(volume),
            balance=balance,
            deal_id=str(i + 1),
        ))

    reparsed = _reparse(trades)

    assert len(reparsed.trades) == len(trades)
    for before, after in zip(trades, reparsed.trades):
        assert after.deal_id == before.deal_id
        assert after.open_time == before.open_time
        assert after.symbol == before.symbol
        assert after.side == before.side
        assert after.state == before.state
        assert after.profit == before.profit
        assert after.balance == before.balance
        assert after.volume == before.volume


@given(deals=st.lists(st.tuples(deal, holding), min_size=1, max_size=25))
@settings(max_examples=100, deadline=None)
def test_close_times_and_holding_survive_reparse(deals):
    """Positions with their own close time come back with the same close and holding time."""
    trades = []
    time = BASE_TIME
    for i, ((profit, volume, symbol, side, gap), hold) in enumerate(deals):
        time += timedelta(seconds=gap)
        trades.append(make_trade(
            profit,
            symbol=symbol,
            side=side,
            time=time,
            close_time=time + timedelta(seconds=hold),
            volume=str(volume),
            deal_id=str(i + 1),
        ))

    reparsed = _reparse(trades)
    closed = {t.deal_id: t for t in reparsed.closed_trades}

    assert len(reparsed.closed_trades) == len(trades)
    for before in trades:
        after = closed[before.deal_id]
        assert after.realized_time == before.realized_time
        assert after.symbol == before.symbol
        assert after.side == before.side
        assert after.profit == before.profit
        assert after.volume == before.volume
        assert after.holding_hours == pytest.approx(before.holding_hours)
