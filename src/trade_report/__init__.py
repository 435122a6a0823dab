"""Trade report analytics for MT4 / MT5 / TradingView trade logs."""

__version__ = "0.1.0"
