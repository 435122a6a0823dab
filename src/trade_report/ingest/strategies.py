"""Layout strategies: one object per known export layout.

Each strategy inspects a ``RawTable`` and either claims it (returning a
``StrategyResult``) or declines with ``None``.  Strategies register
themselves with ``register_layout``; the parser tries them in priority
order with the detected platform's strategies first.  Supporting a new
broker format means adding one class here.

Strategies only locate cells.  Interpretation (side, state, balance rows,
SL/TP) is delegated to :mod:`trade_report.ingest.normalizer`.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Callable, Sequence, Type

from trade_report.core.config import ParserConfig
from trade_report.core.enums import CellShape, Platform
from trade_report.core.models import RawTable, RowIssue, Trade

from .cells import (
    DateParse,
    cell_text,
    classify_cell,
    combine_date_time,
    is_blank,
    parse_datetime,
    to_decimal,
    to_float,
)
from .normalizer import RawTradeFields, normalize

logger = logging.getLogger(__name__)

# Header rows are searched for in the first rows only.
_HEADER_SCAN_ROWS = 200

_SUMMARY_PREFIXES = ("summary", "total", "results")


@dataclass
class StrategyResult:
    """What a strategy extracted from a table it recognised."""

    strategy: str
    platform: Platform | None  # None when the layout is not platform-specific
    trades: list[Trade] = field(default_factory=list)
    summary: dict[str, str | float] = field(default_factory=dict)
    issues: list[RowIssue] = field(default_factory=list)
    skipped_rows: int = 0


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

_REGISTRY: dict[str, Type[LayoutStrategy]] = {}


def register_layout(name: str):
    """Decorator to register a layout strategy class (registration order = priority)."""

    def decorator(cls: Type[LayoutStrategy]) -> Type[LayoutStrategy]:
        cls.name = name
        _REGISTRY[name] = cls
        return cls

    return decorator


def list_layouts() -> list[str]:
    """Registered layout names in priority order."""
    return list(_REGISTRY.keys())


def create_strategies(
    platform: Platform,
    config: ParserConfig | None = None,
    initial_balance: float | None = None,
) -> list[LayoutStrategy]:
    """Instantiate every strategy, those for *platform* first."""
    classes = list(_REGISTRY.values())
    ordered = [c for c in classes if c.platform == platform]
    ordered += [c for c in classes if c.platform != platform]
    return [cls(config=config, initial_balance=initial_balance) for cls in ordered]


# ---------------------------------------------------------------------------
# Shared helpers
# ---------------------------------------------------------------------------

def _row_texts(row: Sequence[Any]) -> list[str]:
    return [cell_text(c) for c in row]


def _non_blank(row: Sequence[Any]) -> list[Any]:
    return [c for c in row if not is_blank(c)]


def _is_blank_row(row: Sequence[Any]) -> bool:
    return not _non_blank(row)


def _is_section_break(row: Sequence[Any]) -> bool:
    """A lone title cell ("Orders") or a ``Label:`` row ends a data block."""
    cells = _non_blank(row)
    if not cells:
        return False
    first = cell_text(cells[0])
    if first.endswith(":"):
        return True
    return len(cells) == 1 and classify_cell(cells[0]) == CellShape.TEXT


def _is_totals_row(row: Sequence[Any]) -> bool:
    cells = _non_blank(row)
    if not cells:
        return False
    first = cell_text(cells[0]).lower()
    return first.startswith(_SUMMARY_PREFIXES)


def collect_summary(
    rows: Sequence[Sequence[Any]],
    skip: range = range(0),
) -> dict[str, str | float]:
    """Collect ``Label:`` / value pairs from rows outside the data block.

    The value is the next non-blank cell on the same row; numeric values
    are coerced to float.
    """
    summary: dict[str, str | float] = {}
    for idx, row in enumerate(rows):
        if idx in skip:
            continue
        texts = _row_texts(row)
        for pos, text in enumerate(texts):
            if len(text) < 2 or not text.endswith(":"):
                continue
            value = next((v for v in row[pos + 1:] if not is_blank(v)), None)
            if value is None:
                continue
            label = text[:-1].strip()
            number = to_decimal(value, default=None)
            summary[label] = float(number) if number is not None else cell_text(value)
    return summary


class _RowSink:
    """Normalises located rows and keeps the running balance for balance rows."""

    def __init__(self) -> None:
        self.trades: list[Trade] = []
        self.issues: list[RowIssue] = []
        self.skipped = 0
        self._balance: Decimal | None = None

    def add(self, row_index: int, raw: RawTradeFields, row: Sequence[Any]) -> Trade:
        trade = normalize(raw, previous_balance=self._balance)
        if not trade.time_valid:
            self.issues.append(RowIssue(
                row_index=row_index,
                reason="unparseable timestamp",
                cells=_row_texts(row),
            ))
            logger.warning(
                "Row %d: unparseable timestamp %r", row_index, cell_text(raw.extra.get("time_cell")),
            )
        if trade.balance is not None:
            self._balance = trade.balance
        elif trade.profit is not None and self._balance is not None:
            self._balance += trade.profit
        self.trades.append(trade)
        return trade

    def skip(self, row_index: int, reason: str, row: Sequence[Any]) -> None:
        self.skipped += 1
        if reason:
            self.issues.append(RowIssue(
                row_index=row_index, reason=reason, cells=_row_texts(row),
            ))
            logger.debug("Row %d skipped: %s", row_index, reason)


def _cell(row: Sequence[Any], idx: int | None) -> Any:
    if idx is None or idx >= len(row):
        return None
    return row[idx]


def _time_from(row: Sequence[Any], idx: int | None) -> DateParse:
    value = _cell(row, idx)
    if is_blank(value):
        return DateParse.failed()
    return parse_datetime(value)


_FIELD_NAMES = (
    "deal", "order", "symbol", "type", "direction", "volume", "price",
    "stop_loss", "take_profit", "commission", "swap", "profit", "balance",
    "comment",
)


def _fields_from_columns(row: Sequence[Any], columns: dict[str, int]) -> RawTradeFields:
    raw = RawTradeFields(
        time=_time_from(row, columns.get("time")),
        close_time=(
            _time_from(row, columns["close_time"]) if "close_time" in columns else None
        ),
        extra={"time_cell": _cell(row, columns.get("time"))},
    )
    for name in _FIELD_NAMES:
        if name in columns:
            setattr(raw, name, _cell(row, columns[name]))
    return raw


# ---------------------------------------------------------------------------
# Base
# ---------------------------------------------------------------------------

class LayoutStrategy(ABC):
    """Abstract base for export layout recognisers."""

    name: str = ""
    platform: Platform = Platform.MT5
    claims_platform: bool = True

    def __init__(
        self,
        config: ParserConfig | None = None,
        initial_balance: float | None = None,
    ) -> None:
        self._config = config or ParserConfig()
        self._initial_balance = initial_balance

    @abstractmethod
    def try_parse(self, table: RawTable) -> StrategyResult | None:
        """Return the extracted trades, or ``None`` if the layout does not match."""
        ...

    def _result(self, sink: _RowSink, summary: dict[str, str | float]) -> StrategyResult:
        return StrategyResult(
            strategy=self.name,
            platform=self.platform if self.claims_platform else None,
            trades=sink.trades,
            summary=summary,
            issues=sink.issues,
            skipped_rows=sink.skipped,
        )


class _HeaderMappedStrategy(LayoutStrategy):
    """Common flow for layouts with a header row naming the columns."""

    @abstractmethod
    def _map_header(self, texts: list[str]) -> dict[str, int] | None:
        """Column name -> index for a header row, or ``None`` if it is not one."""
        ...

    def _find_header(self, rows: Sequence[Sequence[Any]]) -> tuple[int, dict[str, int]] | None:
        for idx, row in enumerate(rows[:_HEADER_SCAN_ROWS]):
            columns = self._map_header([t.lower() for t in _row_texts(row)])
            if columns:
                return idx, columns
        return None

    def _fields(self, row: Sequence[Any], columns: dict[str, int]) -> RawTradeFields:
        return _fields_from_columns(row, columns)

    def try_parse(self, table: RawTable) -> StrategyResult | None:
        found = self._find_header(table.rows)
        if found is None:
            return None
        header_idx, columns = found
        logger.debug("%s: header at row %d -> %s", self.name, header_idx, columns)

        sink = _RowSink()
        end = len(table.rows)
        for idx in range(header_idx + 1, len(table.rows)):
            row = table.rows[idx]
            if _is_blank_row(row):
                continue
            if _is_section_break(row):
                end = idx
                break
            if _is_totals_row(row):
                sink.skip(idx, "", row)
                continue
            symbol = _cell(row, columns.get("symbol"))
            time_cell = _cell(row, columns.get("time"))
            if is_blank(time_cell) and is_blank(symbol) and is_blank(_cell(row, columns.get("type"))):
                sink.skip(idx, "", row)  # Column totals under the table
                continue
            sink.add(idx, self._fields(row, columns), row)

        summary = collect_summary(table.rows, skip=range(header_idx, end))
        return self._result(sink, summary)


# ---------------------------------------------------------------------------
# Concrete layouts
# ---------------------------------------------------------------------------

MT5_COLUMNS = (
    "Time", "Deal", "Symbol", "Type", "Direction", "Volume", "Price",
    "Order", "Commission", "Swap", "Profit", "Balance", "Comment",
)


@register_layout("mt5_header")
class Mt5HeaderStrategy(_HeaderMappedStrategy):
    """MT5 deals table with an explicit ``Time | Deal | ...`` header row."""

    platform = Platform.MT5

    def _map_header(self, texts: list[str]) -> dict[str, int] | None:
        leading = [t for t in texts if t][:3]
        if "time" not in leading or "deal" not in leading:
            return None
        columns: dict[str, int] = {}
        for idx, text in enumerate(texts):
            for name in MT5_COLUMNS:
                key = name.lower()
                if text == key and key not in columns:
                    columns[key] = idx
        return columns


@register_layout("mt5_deals_section")
class Mt5DealsSectionStrategy(LayoutStrategy):
    """MT5 report whose deals follow a ``Deals`` marker, resolved by cell shape.

    Used when the header row is missing or localised.  Each data row must
    start with a date-shaped cell: either a combined date-time cell or a
    date cell followed by a time cell.  A purely numeric cell right after
    it is the deal id; the remaining cells are taken positionally.
    """

    platform = Platform.MT5

    _POSITIONAL = (
        "symbol", "type", "direction", "volume", "price", "order",
        "commission", "swap", "profit", "balance", "comment",
    )

    def _find_marker(self, rows: Sequence[Sequence[Any]]) -> int | None:
        for idx, row in enumerate(rows):
            cells = _non_blank(row)
            if cells and cell_text(cells[0]).lower() == "deals":
                return idx
        return None

    def _locate(self, row: Sequence[Any]) -> RawTradeFields | None:
        start = next((i for i, c in enumerate(row) if not is_blank(c)), None)
        if start is None:
            return None

        shape = classify_cell(row[start])
        if shape == CellShape.DATETIME:
            time = parse_datetime(row[start])
            pos = start + 1
        elif shape == CellShape.DATE:
            nxt = _cell(row, start + 1)
            if nxt is not None and classify_cell(nxt) == CellShape.TIME:
                time = combine_date_time(row[start], nxt)
                pos = start + 2
            else:
                time = parse_datetime(row[start])
                pos = start + 1
        else:
            return None

        raw = RawTradeFields(time=time, extra={"time_cell": row[start]})
        deal = _cell(row, pos)
        if deal is not None and classify_cell(deal) == CellShape.NUMBER:
            raw.deal = deal
            pos += 1
        for offset, name in enumerate(self._POSITIONAL):
            setattr(raw, name, _cell(row, pos + offset))
        return raw

    def try_parse(self, table: RawTable) -> StrategyResult | None:
        marker = self._find_marker(table.rows)
        if marker is None:
            return None

        sink = _RowSink()
        end = len(table.rows)
        for idx in range(marker + 1, len(table.rows)):
            row = table.rows[idx]
            if _is_blank_row(row):
                continue
            if _is_totals_row(row):
                sink.skip(idx, "", row)
                continue
            raw = self._locate(row)
            if raw is None:
                if _is_section_break(row):
                    end = idx
                    break
                texts = [t.lower() for t in _row_texts(row)]
                if "time" in texts and "deal" in texts:
                    continue  # Header row inside the section
                sink.skip(idx, "row does not start with a date", row)
                continue
            sink.add(idx, raw, row)

        if not sink.trades:
            return None
        summary = collect_summary(table.rows, skip=range(marker, end))
        return self._result(sink, summary)


@register_layout("tradingview")
class TradingViewStrategy(_HeaderMappedStrategy):
    """TradingView "List of trades" export (Strategy Tester)."""

    platform = Platform.TRADINGVIEW

    def _map_header(self, texts: list[str]) -> dict[str, int] | None:
        if "trade #" not in texts or "type" not in texts:
            return None
        columns: dict[str, int] = {"deal": texts.index("trade #"), "type": texts.index("type")}
        for idx, text in enumerate(texts):
            if "signal" in text:
                columns.setdefault("comment", idx)
            elif "date" in text:
                columns.setdefault("time", idx)
            elif "cumulative" in text and "%" not in text:
                columns.setdefault("cumulative", idx)
            elif "profit" in text and "%" not in text and "cumulative" not in text:
                columns.setdefault("profit", idx)
            elif text.startswith("price"):
                columns.setdefault("price", idx)
            elif text.startswith(("contracts", "quantity", "qty", "size")):
                columns.setdefault("volume", idx)
            elif text in ("symbol", "ticker"):
                columns.setdefault("symbol", idx)
        if "time" not in columns:
            return None
        return columns

    def try_parse(self, table: RawTable) -> StrategyResult | None:
        initial = (
            self._initial_balance
            if self._initial_balance is not None
            else self._config.tradingview_initial_balance
        )
        self._running = Decimal(str(initial))
        result = super().try_parse(table)
        if result is not None:
            result.summary.setdefault("Initial Balance", float(initial))
        return result

    def _fields(self, row: Sequence[Any], columns: dict[str, int]) -> RawTradeFields:
        raw = _fields_from_columns(row, columns)
        trade_no = cell_text(raw.deal)
        raw.order = trade_no
        raw.deal = f"TV-{trade_no}" if trade_no else ""
        if is_blank(raw.symbol):
            raw.symbol = self._config.tradingview_symbol

        # Entry rows repeat the trade's profit; only exits realise it.
        if "exit" in cell_text(raw.type).lower():
            self._running += Decimal(str(to_float(raw.profit)))
            raw.balance = self._running
        return raw


_GENERIC_RULES: tuple[tuple[str, Callable[[str], bool]], ...] = (
    ("close_time", lambda h: "close" in h and ("time" in h or "date" in h)),
    ("time", lambda h: "time" in h or "date" in h),
    ("deal", lambda h: any(k in h for k in ("ticket", "deal", "order", "position"))),
    ("symbol", lambda h: "symbol" in h or "instrument" in h or h == "item"),
    ("type", lambda h: "type" in h or "action" in h),
    ("direction", lambda h: "direction" in h or h == "side" or h == "entry"),
    ("volume", lambda h: any(k in h for k in ("volume", "lot", "size", "quantity"))),
    ("stop_loss", lambda h: h.replace(" ", "") == "s/l" or "stop loss" in h),
    ("take_profit", lambda h: h.replace(" ", "") == "t/p" or "take profit" in h),
    ("price", lambda h: "price" in h),
    ("commission", lambda h: "commission" in h or "fee" in h),
    ("swap", lambda h: "swap" in h or "rollover" in h),
    ("profit", lambda h: "profit" in h or "pnl" in h or "p/l" in h or h == "net"),
    ("comment", lambda h: "comment" in h or "note" in h),
    ("balance", lambda h: "balance" in h or "equity" in h),
)


@register_layout("generic_header")
class GenericHeaderStrategy(_HeaderMappedStrategy):
    """MT4 statements and unknown exports, mapped by header substrings."""

    platform = Platform.MT4
    claims_platform = False

    def _map_header(self, texts: list[str]) -> dict[str, int] | None:
        columns: dict[str, int] = {}
        for idx, text in enumerate(texts):
            if not text:
                continue
            for name, matches in _GENERIC_RULES:
                if not matches(text):
                    continue
                if name not in columns:
                    columns[name] = idx
                    break
                if name == "deal" and "order" not in columns:
                    columns["order"] = idx  # Second id column, e.g. Ticket + Order
                    break
                break
        if "time" in columns and "profit" in columns and (
            "symbol" in columns or "type" in columns
        ):
            return columns
        return None

    def _fields(self, row: Sequence[Any], columns: dict[str, int]) -> RawTradeFields:
        raw = _fields_from_columns(row, columns)
        # Without a symbol column only an explicit "balance" type marks a balance row.
        if "symbol" not in columns and cell_text(raw.type).strip().lower() != "balance":
            raw.symbol = self._config.default_symbol
        return raw
