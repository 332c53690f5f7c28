"""Request/response operations over the parser and the scan ledger."""

from __future__ import annotations

import asyncio
import logging

from .db import LedgerError, ScanLedger
from .payload import parse

logger = logging.getLogger(__name__)


class ScanService:
    """Transport-agnostic scan operations.

    Ledger calls block on SQLite, so they run in a worker thread.  Store
    failures come back as ``{"ok": False, "error": ...}``; ticket validation
    problems never do, they live in the parse result's ``errors``.
    """

    def __init__(self, ledger: ScanLedger) -> None:
        self._ledger = ledger

    @property
    def ledger(self) -> ScanLedger:
        return self._ledger

    def parse_payload(self, text: str | None) -> dict:
        return parse(text).to_dict()

    async def submit_scan(self, text: str | None, parsed: dict | None) -> dict:
        try:
            outcome = await asyncio.to_thread(self._ledger.record, text, parsed)
        except LedgerError as e:
            logger.error("Scan could not be recorded: %s", e)
            return {"ok": False, "error": str(e)}
        return outcome.to_dict()

    async def get_scan(self, key: str) -> dict:
        try:
            record = await asyncio.to_thread(self._ledger.get, key)
        except LedgerError as e:
            logger.error("Scan lookup failed: %s", e)
            return {"ok": False, "error": str(e)}
        return {"ok": True, "scan": record.to_dict() if record else None}

    async def list_today_scans(self) -> dict:
        try:
            records = await asyncio.to_thread(self._ledger.list_today)
        except LedgerError as e:
            logger.error("Listing scans failed: %s", e)
            return {"ok": False, "error": str(e)}
        return {"ok": True, "scans": [r.to_dict() for r in records]}

    async def clear_all_scans(self) -> dict:
        try:
            deleted = await asyncio.to_thread(self._ledger.clear_all)
        except LedgerError as e:
            logger.error("Clearing scans failed: %s", e)
            return {"ok": False, "error": str(e)}
        return {"ok": True, "deletedCount": deleted}

    async def purge_expired(self) -> dict:
        try:
            deleted = await asyncio.to_thread(self._ledger.purge_expired)
        except LedgerError as e:
            logger.error("Expiry sweep failed: %s", e)
            return {"ok": False, "error": str(e)}
        return {"ok": True, "deletedCount": deleted}
