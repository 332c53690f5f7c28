"""Data models for ledger rows."""

from __future__ import annotations

import json
import sqlite3
from dataclasses import dataclass, field
from datetime import datetime


def to_iso(value: datetime) -> str:
    return value.isoformat(timespec="milliseconds")


@dataclass
class ScanRecord:
    """One deduplicated ticket in the scan ledger."""

    key: str | None
    text: str | None
    parsed: dict | None
    count: int
    first_seen: datetime
    last_seen: datetime
    uses: list[datetime] = field(default_factory=list)  # oldest first
    created_at: datetime | None = None
    expires_at: datetime | None = None

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> ScanRecord:
        parsed = json.loads(row["parsed"]) if row["parsed"] else None
        uses = [datetime.fromisoformat(u["at"]) for u in json.loads(row["uses"] or "[]")]
        return cls(
            key=row["key"],
            text=row["text"],
            parsed=parsed,
            count=row["count"],
            first_seen=datetime.fromisoformat(row["first_seen"]),
            last_seen=datetime.fromisoformat(row["last_seen"]),
            uses=uses,
            created_at=datetime.fromisoformat(row["created_at"]),
            expires_at=datetime.fromisoformat(row["expires_at"]),
        )

    def to_dict(self) -> dict:
        return {
            "key": self.key,
            "text": self.text,
            "parsed": self.parsed,
            "count": self.count,
            "firstSeen": to_iso(self.first_seen),
            "lastSeen": to_iso(self.last_seen),
            "uses": [{"at": to_iso(u)} for u in self.uses],
            "createdAt": to_iso(self.created_at) if self.created_at else None,
            "expiresAt": to_iso(self.expires_at) if self.expires_at else None,
        }


@dataclass
class ScanOutcome:
    """Result of recording one scan."""

    record: ScanRecord
    recent_uses: list[datetime]  # newest first

    @property
    def was_duplicate(self) -> bool:
        return self.record.count > 1

    def to_dict(self) -> dict:
        return {
            "ok": True,
            "wasDuplicate": self.was_duplicate,
            "count": self.record.count,
            "firstSeen": to_iso(self.record.first_seen),
            "lastSeen": to_iso(self.record.last_seen),
            "recentUses": [to_iso(u) for u in self.recent_uses],
        }
