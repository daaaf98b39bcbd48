# query_gateway/query/dates.py
"""Best-effort normalization of caller-supplied date strings to YYYY-MM-DD."""

import re
from datetime import date, timedelta
from typing import Any, Optional

_YEAR_FIRST = re.compile(r"([0-9]{4})-([0-9]{1,2})-([0-9]{1,2})")
_DAY_FIRST = re.compile(r"([0-9]{1,2})-([0-9]{1,2})-([0-9]{4})")
_MONTH_FIRST = re.compile(r"([0-9]{1,2})/([0-9]{1,2})/([0-9]{4})")
_CANONICAL = re.compile(r"[0-9]{4}-[0-9]{2}-[0-9]{2}")


def _canonical(year: str, month: str, day: str) -> str:
    return f"{year}-{month.zfill(2)}-{day.zfill(2)}"


def normalize_date(value: Any) -> Optional[str]:
    """
    Rewrite YYYY-M-D, D-M-YYYY and M/D/YYYY to zero-padded YYYY-MM-DD.

    A four-digit first segment always means year-first; ambiguous day/month
    orderings are resolved by position alone. Any other shape is returned
    unchanged, so ISO datetimes and already-canonical values pass through.
    """
    if value is None:
        return None
    text = str(value).strip()
    if not text:
        return None

    match = _YEAR_FIRST.fullmatch(text)
    if match:
        year, month, day = match.groups()
        return _canonical(year, month, day)

    match = _DAY_FIRST.fullmatch(text)
    if match:
        day, month, year = match.groups()
        return _canonical(year, month, day)

    match = _MONTH_FIRST.fullmatch(text)
    if match:
        month, day, year = match.groups()
        return _canonical(year, month, day)

    return text


def looks_like_canonical_date(value: Any) -> bool:
    return isinstance(value, str) and _CANONICAL.fullmatch(value) is not None


def parse_canonical_date(value: Any) -> Optional[date]:
    """Return a date for a canonical string naming a real calendar day, else None."""
    if not looks_like_canonical_date(value):
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        return None


def next_day(canonical: str) -> str:
    """The calendar day after a canonical date, in canonical form."""
    return (date.fromisoformat(canonical) + timedelta(days=1)).isoformat()
