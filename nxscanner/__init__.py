"""Ticket QR payload validation and scan deduplication."""

from .config import ScannerConfig, load_config
from .db import LedgerError, ScanLedger, ScanOutcome, ScanRecord
from .payload import KIND_QIT, KIND_SHORT, ParseResult, QitFields, ShortFields, parse
from .service import ScanService

__version__ = "0.1.0"

__all__ = [
    "KIND_QIT",
    "KIND_SHORT",
    "LedgerError",
    "ParseResult",
    "QitFields",
    "ScanLedger",
    "ScanOutcome",
    "ScanRecord",
    "ScanService",
    "ScannerConfig",
    "ShortFields",
    "load_config",
    "parse",
]
