"""Custom exception hierarchy for the trade report engine."""


class ReportError(Exception):
    """Base exception for all trade report errors."""


# --- Configuration ---
class ConfigError(ReportError):
    """Invalid or missing configuration."""


# --- Ingestion ---
class IngestError(ReportError):
    """Trade log ingestion error."""


class UnsupportedFileError(IngestError):
    """File extension or container format is not readable."""


class UnparseableReportError(IngestError):
    """No known layout was recognised anywhere in the input."""

    def __init__(self, filename: str, rows_scanned: int):
        self.filename = filename
        self.rows_scanned = rows_scanned
        name = filename or "<rows>"
        super().__init__(
            f"Unparseable report {name}: no recognisable header or "
            f"data section in {rows_scanned} rows"
        )


# --- Analytics ---
class AnalyticsError(ReportError):
    """Analytics computation error."""


class InsufficientDataError(AnalyticsError):
    """Not enough samples for the requested computation."""

    def __init__(self, required: int, available: int):
        self.required = required
        self.available = available
        super().__init__(
            f"Insufficient data: {available} samples available, "
            f"{required} required"
        )
