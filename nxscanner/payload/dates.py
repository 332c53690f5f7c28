"""Compact date token decoding used by the ticket grammars."""

from __future__ import annotations

import re
from datetime import date, datetime

_DATETIME_RE = re.compile(r"^(?:\d{6}|\d{10})$")
_DDMM_RE = re.compile(r"^\d{4}$")


def is_date_token(token: str | None) -> bool:
    """Return True if the token has the shape of a DDMMYY or DDMMYYHHMM value."""
    return bool(token) and _DATETIME_RE.match(token) is not None


def decode_datetime(token: str | None) -> datetime | None:
    """Decode ``DDMMYYHHMM`` (or ``DDMMYY`` at 00:00) into a naive datetime.

    Year is ``2000 + YY``.  Returns None for anything out of range, including
    days that do not exist in the given month.
    """
    if not is_date_token(token):
        return None

    dd = int(token[0:2])
    mm = int(token[2:4])
    yy = int(token[4:6])
    hh = int(token[6:8]) if len(token) == 10 else 0
    mi = int(token[8:10]) if len(token) == 10 else 0

    if not 1 <= dd <= 31 or not 1 <= mm <= 12:
        return None
    if not 0 <= hh <= 23 or not 0 <= mi <= 59:
        return None

    try:
        return datetime(2000 + yy, mm, dd, hh, mi)
    except ValueError:
        return None


def parse_ddmm(token: str | None) -> tuple[int, int] | None:
    """Parse a ``DDMM`` token into ``(day, month)``.

    Only the ranges are checked (day 1-31, month 1-12); month lengths are not.
    """
    if not token or not _DDMM_RE.match(token):
        return None
    dd = int(token[0:2])
    mm = int(token[2:4])
    if not 1 <= mm <= 12 or not 1 <= dd <= 31:
        return None
    return dd, mm


def ddmm_ordinal(token: str) -> int | None:
    """Naive month*100+day value used to order two DDMM tokens."""
    parsed = parse_ddmm(token)
    if parsed is None:
        return None
    dd, mm = parsed
    return mm * 100 + dd


def today_ddmm(today: date) -> str:
    return f"{today.day:02d}{today.month:02d}"
