"""Short (coach) payload grammar.

Layout::

    ticketNo:depart:[return]:type:adults:children:fare[:coachCard]::#:refs::#:hash
"""

from __future__ import annotations

import re
from datetime import date

from .dates import ddmm_ordinal, parse_ddmm, today_ddmm
from .models import KIND_SHORT, ParseResult, ShortFields

SHORT_MARKER = "::#:"

FARE_CODES: tuple[str, ...] = ("CST", "CFL", "CFLL")

_TICKET_NO_RE = re.compile(r"^[A-Za-z0-9]{8}$")
_INT_RE = re.compile(r"^[0-9]+$")
_COACH_CARD_RE = re.compile(r"^[A-Za-z0-9]{6,12}$")
_REF_RE = re.compile(r"^[A-Z]{4}$")
_HASH_RE = re.compile(r"^[0-9a-fA-F]{16,32}$")


def _at(parts: list[str], idx: int) -> str | None:
    return parts[idx] if idx < len(parts) else None


def parse_short(raw: str, text: str, today: date) -> ParseResult:
    """Parse and validate a short payload.

    ``today`` drives the day-of-use rule, so the verdict for the same text
    changes from one day to the next.
    """
    errors: list[str] = []

    parts = text.split(SHORT_MARKER)
    if len(parts) < 3:
        errors.append("unexpected short format segmentation")
        return ParseResult(raw=raw, kind=KIND_SHORT, fields=None, errors=errors)

    prefix, refs_part = parts[0], parts[1]
    # Extra markers belong to the hash segment
    hash_part = SHORT_MARKER.join(parts[2:])

    positional = prefix.split(":")
    ticket_no = _at(positional, 0)
    depart = _at(positional, 1)
    ret = _at(positional, 2)
    ticket_type = (_at(positional, 3) or "").lower()
    adults = _at(positional, 4)
    children = _at(positional, 5)
    fare = _at(positional, 6)
    coach_card = _at(positional, 7) or None

    refs = [r.strip() for r in refs_part.split(":") if r.strip()]
    hash_value = hash_part[:-1] if hash_part.endswith(":") else hash_part

    if not _TICKET_NO_RE.match(ticket_no or ""):
        errors.append("ticketNo: invalid format")

    if parse_ddmm(depart) is None:
        errors.append("depart: invalid DDMM")

    if ticket_type == "single":
        if ret and ret.strip():
            errors.append("return: must be empty for single tickets")
    elif ticket_type == "return":
        if parse_ddmm(ret) is None:
            errors.append("return: invalid DDMM for return ticket")
        else:
            dep_val = ddmm_ordinal(depart or "")
            if dep_val is not None and ddmm_ordinal(ret) < dep_val:
                errors.append("return: must not be before depart")
    else:
        errors.append("type: must be single or return")

    if not _INT_RE.match(adults or ""):
        errors.append("adults: must be integer >= 0")
    if not _INT_RE.match(children or ""):
        errors.append("children: must be integer >= 0")

    if fare not in FARE_CODES:
        errors.append("fare: must be CST, CFL, or CFLL")

    if coach_card is not None and not _COACH_CARD_RE.match(coach_card):
        errors.append("coachCard: invalid format")

    bad_refs = [r for r in refs if not _REF_RE.match(r)]
    if bad_refs:
        errors.append("refs: invalid bus reference codes: " + ",".join(bad_refs))

    if not _HASH_RE.match(hash_value):
        errors.append("hash: invalid hex id")

    # Day of use: outbound today, or the return leg of a return ticket today
    todays = today_ddmm(today)
    valid_today = depart == todays or (ticket_type == "return" and ret == todays)
    if not valid_today:
        errors.append("date: ticket not valid for today")

    fields = ShortFields(
        ticket_no=ticket_no,
        depart=depart,
        return_=ret if ret else None,
        type=ticket_type,
        adults=int(adults) if _INT_RE.match(adults or "") else None,
        children=int(children) if _INT_RE.match(children or "") else None,
        fare=fare,
        coach_card=coach_card,
        refs=refs,
        hash=hash_value,
    )
    return ParseResult(raw=raw, kind=KIND_SHORT, fields=fields, errors=errors)
