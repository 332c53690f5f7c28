"""Ticket payload parsing and validation."""

from __future__ import annotations

from datetime import datetime

from .models import KIND_QIT, KIND_SHORT, ParseResult, QitFields, ShortFields
from .qit import QIT_SEPARATOR, QIT_TAGS, is_qit_payload, parse_qit
from .short import SHORT_MARKER, parse_short


def parse(raw: str | None, now: datetime | None = None) -> ParseResult:
    """Parse a decoded QR payload into a tagged, validated result.

    Never raises: malformed input comes back with ``errors`` populated and
    whatever fields could be recovered.

    Args:
        raw: Text as delivered by the QR decoder.
        now: Reference time for the date rules (defaults to local now).
    """
    now = now or datetime.now()
    text = (raw or "").strip()
    if not text:
        return ParseResult(raw=text, kind=None, errors=["Empty payload"])

    stripped = text[:-1] if text.endswith(":") else text

    if is_qit_payload(stripped):
        return parse_qit(text, stripped, now)

    if SHORT_MARKER in stripped:
        return parse_short(text, stripped, now.date())

    return ParseResult(
        raw=text,
        kind=None,
        errors=[f"missing '{SHORT_MARKER}' markers for short format"],
    )


__all__ = [
    "KIND_QIT",
    "KIND_SHORT",
    "ParseResult",
    "QitFields",
    "ShortFields",
    "QIT_SEPARATOR",
    "QIT_TAGS",
    "SHORT_MARKER",
    "parse",
]
