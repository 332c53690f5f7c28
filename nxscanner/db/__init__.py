"""SQLite-backed scan ledger."""

from .ledger import LedgerError, ScanLedger, derive_key, end_of_day
from .models import ScanOutcome, ScanRecord
from .schema import ensure_schema

__all__ = [
    "LedgerError",
    "ScanLedger",
    "ScanOutcome",
    "ScanRecord",
    "derive_key",
    "end_of_day",
    "ensure_schema",
]
