"""Trade normalizer: canonical side/state and derived fields.

Layout strategies only locate cells; this module decides what they mean.
Platforms encode direction inconsistently:

* MT5 deals carry both ``Type`` (buy/sell/balance) and ``Direction``
  (in/out/in-out).
* TradingView carries ``Type`` (``Entry Long`` / ``Exit Short``) and a
  free-text ``Signal``.
* MT4 and generic exports carry one or the other.

When both are present ``Type`` wins for the side and ``Direction`` wins for
the state.  Keeping this separate from the strategies means a new source
format never touches the statistics code.
"""

from __future__ import annotations

import logging
import re
from collections import defaultdict, deque
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any

from trade_report.core.enums import TradeSide, TradeState
from trade_report.core.models import Trade

from .cells import DateParse, cell_text, to_decimal

logger = logging.getLogger(__name__)

_SL_RE = re.compile(r"\bsl\s*[:=]?\s*(\d+(?:\.\d+)?)", re.IGNORECASE)
_TP_RE = re.compile(r"\btp\s*[:=]?\s*(\d+(?:\.\d+)?)", re.IGNORECASE)


@dataclass
class RawTradeFields:
    """Positionally identified cells for one row, not yet interpreted."""

    time: DateParse
    close_time: DateParse | None = None
    deal: Any = None
    order: Any = None
    symbol: Any = None
    type: Any = None
    direction: Any = None
    volume: Any = None
    price: Any = None
    stop_loss: Any = None
    take_profit: Any = None
    commission: Any = None
    swap: Any = None
    profit: Any = None
    balance: Any = None
    comment: Any = None
    extra: dict[str, Any] = field(default_factory=dict)


# ---------------------------------------------------------------------------
# Field resolution
# ---------------------------------------------------------------------------

def _side_from(text: str) -> TradeSide | None:
    if "buy" in text or "long" in text:
        return TradeSide.LONG
    if "sell" in text or "short" in text:
        return TradeSide.SHORT
    return None


def _state_from_direction(text: str) -> TradeState | None:
    if not text:
        return None
    if "out" in text or "exit" in text or "close" in text:
        return TradeState.OUT  # "out", "in/out", "out by"
    if text == "in" or text.startswith("in ") or "entry" in text or "open" in text:
        return TradeState.IN
    return None


def _state_from_type(text: str) -> TradeState | None:
    if "entry" in text or "open" in text:
        return TradeState.IN
    if "exit" in text or "close" in text:
        return TradeState.OUT
    return None


def resolve_side_state(
    type_text: str,
    direction_text: str,
    *,
    has_profit: bool,
) -> tuple[TradeSide, TradeState]:
    """Resolve ``(side, state)`` from the Type and Direction columns."""
    type_l = type_text.strip().lower()
    dir_l = direction_text.strip().lower()

    side = _side_from(type_l) or _side_from(dir_l) or TradeSide.LONG
    state = _state_from_direction(dir_l) or _state_from_type(type_l)
    if state is None:
        state = TradeState.OUT if has_profit else TradeState.IN
    return side, state


def extract_stops(comment: str) -> tuple[Decimal | None, Decimal | None]:
    """Pull ``sl <price>`` / ``tp <price>`` out of a free-text comment."""
    sl = _SL_RE.search(comment)
    tp = _TP_RE.search(comment)
    return (
        Decimal(sl.group(1)) if sl else None,
        Decimal(tp.group(1)) if tp else None,
    )


def is_balance_row(symbol: str, type_text: str) -> bool:
    return not symbol or type_text.strip().lower() == "balance"


# ---------------------------------------------------------------------------
# Normalisation
# ---------------------------------------------------------------------------

def normalize(
    raw: RawTradeFields,
    *,
    previous_balance: Decimal | None = None,
) -> Trade:
    """Build a canonical ``Trade`` from positionally identified cells.

    Parameters
    ----------
    raw : RawTradeFields
        Cells located by a layout strategy.
    previous_balance : Decimal | None
        Last balance snapshot seen in the file; used to derive the profit
        of balance rows that only report the new balance.
    """
    symbol = cell_text(raw.symbol)
    type_text = cell_text(raw.type)
    direction_text = cell_text(raw.direction)
    comment = cell_text(raw.comment)

    profit = to_decimal(raw.profit, default=None)
    balance = to_decimal(raw.balance, default=None)

    if is_balance_row(symbol, type_text):
        side, state = TradeSide.LONG, TradeState.OUT
        if profit is None and balance is not None:
            profit = balance - (previous_balance or Decimal("0"))
    else:
        side, state = resolve_side_state(
            type_text, direction_text, has_profit=profit is not None,
        )
        if state == TradeState.IN:
            profit = None

    stop_loss = to_decimal(raw.stop_loss, default=None)
    take_profit = to_decimal(raw.take_profit, default=None)
    if comment and (stop_loss is None or take_profit is None):
        sl, tp = extract_stops(comment)
        stop_loss = stop_loss if stop_loss is not None else sl
        take_profit = take_profit if take_profit is not None else tp

    open_time = raw.time.value
    close_time = open_time
    time_valid = raw.time.ok
    if raw.close_time is not None and raw.close_time.ok:
        close_time = raw.close_time.value
        if open_time is None:
            open_time = close_time

    return Trade(
        open_time=open_time,
        close_time=close_time,
        time_valid=time_valid,
        order_id=cell_text(raw.order),
        deal_id=cell_text(raw.deal),
        symbol=symbol,
        type=type_text,
        side=side,
        state=state,
        volume=to_decimal(raw.volume) or Decimal("0"),
        price_open=to_decimal(raw.price) or Decimal("0"),
        stop_loss=stop_loss,
        take_profit=take_profit,
        comment=comment,
        profit=profit,
        commission=to_decimal(raw.commission) or Decimal("0"),
        swap=to_decimal(raw.swap) or Decimal("0"),
        balance=balance,
    )


def order_trades(trades: list[Trade]) -> list[Trade]:
    """Stable chronological order.

    Rows with an unparseable timestamp keep their place directly after the
    row that preceded them in the source.
    """
    keyed: list[tuple[datetime, int, Trade]] = []
    last_seen = datetime.min
    for idx, trade in enumerate(trades):
        if trade.time_valid and trade.open_time is not None:
            last_seen = trade.open_time
        keyed.append((last_seen, idx, trade))
    keyed.sort(key=lambda item: (item[0], item[1]))
    return [t for _, _, t in keyed]


def _take_leg(queue: deque[list[Any]], order_id: str) -> list[Any] | None:
    """Oldest open leg, or the one sharing the closing deal's order id."""
    if order_id:
        for leg in queue:
            if leg[2] == order_id:
                return leg
    return queue[0] if queue else None


def pair_entries(trades: list[Trade]) -> list[Trade]:
    """Attach the opening-leg time to each closing deal.

    An open leg with the same order id is matched first (exports that split
    a position into an in/out pair share it); otherwise FIFO per symbol.
    Only deal-style rows (close time == open time) are paired; rows that
    already carry an explicit close time are left untouched.
    """
    open_legs: dict[str, deque[list[Any]]] = defaultdict(deque)
    paired: list[Trade] = []

    for trade in trades:
        if trade.is_balance or not trade.time_valid or trade.open_time is None:
            paired.append(trade)
            continue

        queue = open_legs[trade.symbol]
        if trade.state == TradeState.IN:
            queue.append([trade.open_time, trade.volume, trade.order_id])
            paired.append(trade)
            continue

        if trade.close_time != trade.open_time or not queue:
            paired.append(trade)
            continue

        leg = _take_leg(queue, trade.order_id)
        entry_time = leg[0]
        if leg is not queue[0]:
            queue.remove(leg)
            paired.append(trade.model_copy(update={"entry_time": entry_time}))
            continue

        remaining = trade.volume if trade.volume > 0 else queue[0][1]
        while queue and remaining > 0:
            leg = queue[0]
            used = min(leg[1], remaining)
            leg[1] -= used
            remaining -= used
            if leg[1] <= 0:
                queue.popleft()
        paired.append(trade.model_copy(update={"entry_time": entry_time}))

    return paired
