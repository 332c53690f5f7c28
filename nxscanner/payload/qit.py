"""QIT-like payload grammar.

Layout::

    TAG:flight[:rrdl]:type:fare[:purchase][:adults;children | :adults[:children]]
        :depart[:return]::Qcode::#:::#:hash

Optional tokens may be absent, so the token list is walked with a cursor and a
lookahead predicate per field instead of fixed indices.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from datetime import datetime, timedelta

from .dates import decode_datetime, is_date_token
from .models import KIND_QIT, ParseResult, QitFields

QIT_TAGS: tuple[str, ...] = ("QIT", "QIT2")
QIT_SEPARATOR = "::#:::#:"

TYPE_SINGLE = "SINGLE"
TYPE_RETURN = "RETURN"

# Departures further ahead than this are rejected.
MAX_DEPART_AHEAD = timedelta(days=2)

_FLIGHT_RE = re.compile(r"^[A-Za-z0-9]+$")
_RRDL_RE = re.compile(r"^RRDL[0-9]+$")
_FARE_RE = re.compile(r"^[A-Z]{3,4}$")
_COUNT_RE = re.compile(r"^[0-9]{1,4}$")
_INT_RE = re.compile(r"^[0-9]+$")
_HASH_RE = re.compile(r"^[0-9a-fA-F]{16,32}$")
_QCODE_RE = re.compile(r"^Q[A-Za-z0-9]+$")


def is_qit_payload(text: str) -> bool:
    return any(text.startswith(f"{tag}:") for tag in QIT_TAGS)


class _TokenCursor:
    """Left-to-right cursor over colon-separated tokens."""

    def __init__(self, tokens: list[str]) -> None:
        self._tokens = tokens
        self._pos = 0

    def peek(self) -> str | None:
        if self._pos < len(self._tokens):
            return self._tokens[self._pos]
        return None

    def take(self) -> str | None:
        token = self.peek()
        if token is not None:
            self._pos += 1
        return token

    def take_if(self, predicate: Callable[[str], bool]) -> str | None:
        """Consume the next token only if it satisfies ``predicate``."""
        token = self.peek()
        if token is not None and predicate(token):
            self._pos += 1
            return token
        return None

    def count_remaining(self, predicate: Callable[[str], bool]) -> int:
        """Number of unconsumed tokens satisfying ``predicate``."""
        return sum(1 for t in self._tokens[self._pos:] if predicate(t))


def _matches(pattern: re.Pattern[str]) -> Callable[[str], bool]:
    return lambda token: pattern.match(token) is not None


def _is_type(token: str) -> bool:
    return token.upper() in (TYPE_SINGLE, TYPE_RETURN)


def _is_count_pair(token: str) -> bool:
    return ";" in token


def _is_schedule_token(token: str) -> bool:
    """Tokens that belong to the dates-and-counts tail of the layout."""
    return is_date_token(token) or _is_count_pair(token) or bool(_COUNT_RE.match(token))


def _is_purchase_next(cursor: _TokenCursor, ticket_type: str | None) -> bool:
    """Decide whether the next date token is the purchase stamp.

    Three dates are purchase, depart and return.  With two, a RETURN ticket
    reads them as depart and return; any other ticket as purchase and depart.
    """
    token = cursor.peek()
    if token is None or not is_date_token(token):
        return False
    dates = cursor.count_remaining(is_date_token)
    if dates >= 3:
        return True
    return dates == 2 and ticket_type != TYPE_RETURN


def _strip_trailing_colon(value: str) -> str:
    return value[:-1] if value.endswith(":") else value


def _tokenize(head: str) -> list[str]:
    """Split the coded section, drop the tag, keep flight, skip blanks after it."""
    tokens = head.split(":")[1:]
    if not tokens:
        return []
    return [tokens[0]] + [t for t in tokens[1:] if t.strip()]


def parse_qit(raw: str, text: str, now: datetime) -> ParseResult:
    """Parse and validate a QIT-like payload.

    Args:
        raw: The trimmed input, echoed back on the result.
        text: ``raw`` with one trailing colon removed.
        now: Reference time for the proximity and open-return rules.
    """
    errors: list[str] = []

    sep_idx = text.find(QIT_SEPARATOR)
    if sep_idx == -1:
        errors.append(f"missing QCODE separator '{QIT_SEPARATOR}'")
        return ParseResult(raw=raw, kind=KIND_QIT, fields=None, errors=errors)

    coded = text[:sep_idx]
    unique = _strip_trailing_colon(text[sep_idx + len(QIT_SEPARATOR):])
    head, _, qcode = coded.rpartition(":")

    cursor = _TokenCursor(_tokenize(head))
    fields = QitFields(variant=text.split(":", 1)[0], qcode=qcode, hash=unique)

    fields.flight = cursor.take()
    fields.rrdl = cursor.take_if(_matches(_RRDL_RE))
    # A misspelled type or fare is kept raw so the walk can go on
    type_token = cursor.take_if(_is_type) or cursor.take_if(
        lambda t: not _FARE_RE.match(t) and not _is_schedule_token(t)
    )
    fields.type = type_token.upper() if type_token and _is_type(type_token) else type_token
    fields.fare = cursor.take_if(_matches(_FARE_RE)) or cursor.take_if(
        lambda t: not _is_schedule_token(t)
    )
    if _is_purchase_next(cursor, fields.type):
        fields.purchase = cursor.take()

    adults_raw, children_raw = _take_counts(cursor)
    fields.depart = cursor.take_if(is_date_token)
    if adults_raw is None:
        # Older layouts put the passenger counts after the depart date
        adults_raw, children_raw = _take_counts(cursor)
    fields.return_ = cursor.take_if(is_date_token)

    # Field-level checks
    if not _FLIGHT_RE.match(fields.flight or ""):
        errors.append("flight: invalid code")
    if fields.rrdl is not None and not _RRDL_RE.match(fields.rrdl):
        errors.append("rrdl: invalid RRDL code")
    if fields.type not in (TYPE_SINGLE, TYPE_RETURN):
        errors.append("type: must be SINGLE or RETURN")
    if not _FARE_RE.match(fields.fare or ""):
        errors.append("fare: expected CST/CFL/CFLL-like code")

    purchase_dt = decode_datetime(fields.purchase)
    if fields.purchase is not None and purchase_dt is None:
        errors.append("purchase: invalid DDMMYY[HHMM]")
    depart_dt = decode_datetime(fields.depart)
    if depart_dt is None:
        errors.append("depart: invalid DDMMYY[HHMM]")
    return_dt = decode_datetime(fields.return_)

    # Cross-field checks
    if purchase_dt and depart_dt and purchase_dt > depart_dt:
        errors.append("purchase: must not be after depart")
    if fields.type == TYPE_SINGLE and fields.return_:
        errors.append("return: must be empty for SINGLE tickets")
    elif fields.type == TYPE_RETURN:
        if return_dt is None:
            errors.append("return: invalid or missing DDMMYY[HHMM] for RETURN ticket")
        elif depart_dt and return_dt < depart_dt:
            errors.append("return: must be after or equal to depart")

    if depart_dt and depart_dt - now > MAX_DEPART_AHEAD:
        errors.append("depart: more than 2 days away from now")

    fields.adults = _count(adults_raw, "adults", errors)
    fields.children = _count(children_raw, "children", errors)

    if not _HASH_RE.match(unique or ""):
        errors.append("hash: invalid hex id")
    if not _QCODE_RE.match(qcode or ""):
        errors.append("qcode: invalid format")

    # Open return: an unexpired return leg stands on its own, so depart
    # problems no longer apply.  Must run after every other check.
    if fields.type == TYPE_RETURN and return_dt is not None and return_dt >= now:
        errors = [e for e in errors if not e.startswith("depart:")]

    return ParseResult(raw=raw, kind=KIND_QIT, fields=fields, errors=errors)


def _take_counts(cursor: _TokenCursor) -> tuple[str | None, str | None]:
    """Consume ``adults;children`` or up to two bare count tokens."""
    pair = cursor.take_if(_is_count_pair)
    if pair is not None:
        adults, _, children = pair.partition(";")
        return adults, children
    adults = cursor.take_if(_matches(_COUNT_RE))
    children = cursor.take_if(_matches(_COUNT_RE)) if adults is not None else None
    return adults, children


def _count(token: str | None, name: str, errors: list[str]) -> int | None:
    if token is None:
        return None
    if not _INT_RE.match(token):
        errors.append(f"{name}: must be integer >= 0")
        return None
    return int(token)
