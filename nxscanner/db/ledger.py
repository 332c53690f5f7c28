"""Deduplicating scan ledger backed by SQLite."""

from __future__ import annotations

import json
import logging
import sqlite3
import threading
from collections.abc import Callable
from datetime import datetime, time
from pathlib import Path

from .models import ScanOutcome, ScanRecord, to_iso
from .schema import TTL_INDEX_DDL, ensure_schema

logger = logging.getLogger(__name__)

DEFAULT_LIST_LIMIT = 1000

# Single statement: the row is created or bumped atomically, so concurrent
# scans of one key cannot both see count == 1.  A row left over from an
# earlier day that the sweep has not evicted yet starts again from scratch.
_UPSERT_SQL = """
INSERT INTO scans
    (key, text, parsed, count, first_seen, last_seen, uses, created_at, expires_at)
VALUES (?, ?, ?, 1, ?, ?, json_array(json_object('at', ?)), ?, ?)
ON CONFLICT(key) DO UPDATE SET
    text = excluded.text,
    parsed = excluded.parsed,
    last_seen = excluded.last_seen,
    expires_at = excluded.expires_at,
    count = CASE WHEN scans.expires_at < excluded.last_seen
        THEN 1 ELSE scans.count + 1 END,
    first_seen = CASE WHEN scans.expires_at < excluded.last_seen
        THEN excluded.first_seen ELSE scans.first_seen END,
    created_at = CASE WHEN scans.expires_at < excluded.last_seen
        THEN excluded.created_at ELSE scans.created_at END,
    uses = CASE WHEN scans.expires_at < excluded.last_seen
        THEN excluded.uses
        ELSE json_insert(scans.uses, '$[#]', json_object('at', excluded.last_seen)) END
RETURNING *
"""


class LedgerError(RuntimeError):
    """The scan store could not be read or written."""


def derive_key(text: str | None, parsed: dict | None) -> str | None:
    """Return the dedup key: embedded hash, else id, else the raw text."""
    if parsed:
        key = parsed.get("hash") or parsed.get("id")
        if key:
            return str(key)
    return text if isinstance(text, str) else None


def end_of_day(moment: datetime) -> datetime:
    return datetime.combine(moment.date(), time(23, 59, 59, 999000))


def start_of_day(moment: datetime) -> datetime:
    return datetime.combine(moment.date(), time.min)


class ScanLedger:
    """Records ticket scans, one row per dedup key.

    The connection is opened on first use and shared by every later call,
    including calls from worker threads.
    """

    def __init__(
        self,
        db_path: str | Path = "~/.config/nxscanner/scans.db",
        *,
        clock: Callable[[], datetime] = datetime.now,
        recent_uses: int = 10,
        list_limit: int = DEFAULT_LIST_LIMIT,
    ) -> None:
        self._db_path = db_path
        self._clock = clock
        self._recent_uses = recent_uses
        self._list_limit = list_limit
        self._conn: sqlite3.Connection | None = None
        self._lock = threading.Lock()

    def _get_conn(self) -> sqlite3.Connection:
        # Caller holds self._lock
        if self._conn is None:
            try:
                conn = ensure_schema(self._db_path)
            except (sqlite3.Error, OSError) as e:
                raise LedgerError(f"Could not open scan database: {e}") from e
            try:
                conn.execute(TTL_INDEX_DDL)
                conn.commit()
            except sqlite3.Error:
                logger.warning("Could not create TTL index on scans.expires_at", exc_info=True)
            self._conn = conn
            logger.info("Scan ledger opened: %s", self._db_path)
        return self._conn

    def close(self) -> None:
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None

    def record(self, text: str | None, parsed: dict | None) -> ScanOutcome:
        """Upsert a scan and return the post-update statistics.

        Raises:
            LedgerError: If the store operation fails.
        """
        key = derive_key(text, parsed)
        now = self._clock()
        at = to_iso(now)
        parsed_json = json.dumps(parsed, ensure_ascii=False) if parsed is not None else None

        with self._lock:
            conn = self._get_conn()
            try:
                row = conn.execute(
                    _UPSERT_SQL,
                    (key, text, parsed_json, at, at, at, at, to_iso(end_of_day(now))),
                ).fetchone()
                conn.commit()
            except sqlite3.Error as e:
                conn.rollback()
                raise LedgerError(f"Failed to upsert scan document: {e}") from e

        record = ScanRecord.from_row(row)
        if record.count > 1:
            logger.info("Duplicate scan of %s (count=%d)", key, record.count)
        recent = list(reversed(record.uses))[: self._recent_uses]
        return ScanOutcome(record=record, recent_uses=recent)

    def get(self, key: str) -> ScanRecord | None:
        with self._lock:
            conn = self._get_conn()
            try:
                row = conn.execute("SELECT * FROM scans WHERE key = ?", (key,)).fetchone()
            except sqlite3.Error as e:
                raise LedgerError(f"Failed to read scan: {e}") from e
        return ScanRecord.from_row(row) if row else None

    def list_today(self, limit: int | None = None) -> list[ScanRecord]:
        """Return scans created today, most recently used first.

        The page size is capped at the ledger's ``list_limit``.
        """
        now = self._clock()
        limit = min(limit if limit is not None else self._list_limit, self._list_limit)
        with self._lock:
            conn = self._get_conn()
            try:
                rows = conn.execute(
                    """SELECT * FROM scans
                       WHERE created_at >= ? AND created_at <= ?
                       ORDER BY last_seen DESC, id DESC
                       LIMIT ?""",
                    (to_iso(start_of_day(now)), to_iso(end_of_day(now)), limit),
                ).fetchall()
            except sqlite3.Error as e:
                raise LedgerError(f"Failed to list scans: {e}") from e
        return [ScanRecord.from_row(r) for r in rows]

    def clear_all(self) -> int:
        """Delete every scan. Safe to call repeatedly.

        Returns:
            Number of rows deleted.
        """
        with self._lock:
            conn = self._get_conn()
            try:
                cur = conn.execute("DELETE FROM scans")
                conn.commit()
            except sqlite3.Error as e:
                conn.rollback()
                raise LedgerError(f"Failed to clear scans: {e}") from e
        logger.info("Cleared %d scans", cur.rowcount)
        return cur.rowcount

    def purge_expired(self) -> int:
        """Delete scans whose ``expires_at`` has passed.

        Returns:
            Number of rows deleted.
        """
        now = self._clock()
        with self._lock:
            conn = self._get_conn()
            try:
                cur = conn.execute(
                    "DELETE FROM scans WHERE expires_at < ?", (to_iso(now),)
                )
                conn.commit()
            except sqlite3.Error as e:
                conn.rollback()
                raise LedgerError(f"Failed to purge expired scans: {e}") from e
        return cur.rowcount
