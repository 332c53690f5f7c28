"""Data models for parsed ticket payloads."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import ClassVar

KIND_QIT = "QIT_LIKE"
KIND_SHORT = "SHORT"


@dataclass
class QitFields:
    """Fields of a QIT-like payload (``QIT:`` or ``QIT2:`` tag)."""

    kind: ClassVar[str] = KIND_QIT

    variant: str
    flight: str | None = None
    rrdl: str | None = None
    type: str | None = None  # SINGLE / RETURN
    fare: str | None = None
    purchase: str | None = None  # raw DDMMYY[HHMM]
    depart: str | None = None
    return_: str | None = None
    adults: int | None = None
    children: int | None = None
    qcode: str | None = None
    hash: str | None = None

    def to_dict(self) -> dict:
        return {
            "variant": self.variant,
            "flight": self.flight,
            "rrdl": self.rrdl,
            "type": self.type,
            "fare": self.fare,
            "purchase": self.purchase,
            "depart": self.depart,
            "return": self.return_,
            "adults": self.adults,
            "children": self.children,
            "qcode": self.qcode,
            "hash": self.hash,
        }


@dataclass
class ShortFields:
    """Fields of a short (coach) payload."""

    kind: ClassVar[str] = KIND_SHORT

    ticket_no: str | None = None
    depart: str | None = None  # DDMM
    return_: str | None = None
    type: str = ""  # single / return
    adults: int | None = None
    children: int | None = None
    fare: str | None = None
    coach_card: str | None = None
    refs: list[str] = field(default_factory=list)
    hash: str = ""

    def to_dict(self) -> dict:
        return {
            "ticketNo": self.ticket_no,
            "depart": self.depart,
            "return": self.return_,
            "type": self.type,
            "adults": self.adults,
            "children": self.children,
            "fare": self.fare,
            "coachCard": self.coach_card,
            "refs": list(self.refs),
            "hash": self.hash,
        }


@dataclass
class ParseResult:
    """Outcome of parsing one raw payload.

    ``kind`` tags which grammar matched (``None`` for empty or unrecognised
    text).  ``errors`` is empty when the ticket is valid; fields that failed a
    rule are still populated with their raw value.
    """

    raw: str
    kind: str | None
    fields: QitFields | ShortFields | None = None
    errors: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return self.kind is not None and self.fields is not None and not self.errors

    def fields_dict(self) -> dict | None:
        return self.fields.to_dict() if self.fields is not None else None

    def to_dict(self) -> dict:
        return {
            "raw": self.raw,
            "kind": self.kind,
            "fields": self.fields_dict(),
            "errors": list(self.errors),
        }
