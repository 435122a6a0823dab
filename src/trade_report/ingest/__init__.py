"""Ingestion: exported trade logs into canonical ``Trade`` records.

Key components
--------------
read_table            CSV / XLSX file into a ``RawTable``
detect_platform       MT5 / MT4 / TradingView identification
LayoutStrategy        One recogniser per export layout (registry-ordered)
normalize             Side / state / balance-row interpretation
TradeReportParser     Facade: table in, ``ParsedReport`` out
"""

from .detector import detect_platform
from .normalizer import RawTradeFields, normalize, pair_entries
from .parser import TradeReportParser
from .readers import read_table, read_table_bytes
from .strategies import LayoutStrategy, StrategyResult, create_strategies, list_layouts

__all__ = [
    "LayoutStrategy",
    "RawTradeFields",
    "StrategyResult",
    "TradeReportParser",
    "create_strategies",
    "detect_platform",
    "list_layouts",
    "normalize",
    "pair_entries",
    "read_table",
    "read_table_bytes",
]
