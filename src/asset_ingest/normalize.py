"""Normalization functions for bulk asset CSV ingestion.

Every function here is lenient: bad input degrades to None or to a documented
default, never to an exception.  Row rejection is decided in
asset_ingest.reconcile, not here.
"""

from __future__ import annotations

import re
from datetime import date, datetime, time
from decimal import Decimal, InvalidOperation
from typing import Any

from dateutil import parser as dateutil_parser

ASSET_STATUSES = ("active", "in_store", "in_repair", "in_transit", "disposed")
DEFAULT_STATUS = "active"

ASSET_CONDITIONS = ("new", "good", "fair", "poor")
DEFAULT_CONDITION = "good"

_HEADER_INVALID_CHARS_RE = re.compile(r"[^a-z0-9_]")
_CURRENCY_NOISE_RE = re.compile(r"[$,£€\s]")
_LEADING_NUMBER_RE = re.compile(r"[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?")
_DATE_PARTS_RE = re.compile(r"[/\-.]")

# Differs from the Jan 1st default in year, month and day; March has 31 days.
_ALT_DATE_DEFAULT = datetime(2000, 3, 3)


# ---------------------------------------------------------------------------
# Rule 1: trim
# ---------------------------------------------------------------------------

def trim(value: Any) -> str | None:
    """Strip leading/trailing whitespace; treat empty string as None.

    Non-string values (numbers arriving from a JSON request body) are
    converted with str() first.
    """
    if value is None:
        return None
    v = str(value).strip()
    return v if v else None


# ---------------------------------------------------------------------------
# Rule 2: canonical_header_key
# ---------------------------------------------------------------------------

def canonical_header_key(cell: str) -> str:
    """Lowercase a header cell and replace anything outside [a-z0-9_] with '_'.

    'Serial Number' -> 'serial_number', 'IP-Address' -> 'ip_address'.
    """
    return _HEADER_INVALID_CHARS_RE.sub("_", cell.lower())


# ---------------------------------------------------------------------------
# Rule 3: site codes and lookup keys
# ---------------------------------------------------------------------------

def normalize_site_code(value: Any) -> str | None:
    """Uppercase and trim a site code."""
    v = trim(value)
    return v.upper() if v is not None else None


def normalize_lookup_key(value: Any) -> str | None:
    """Lowercase and trim a free-text reference (type, manufacturer, category)."""
    v = trim(value)
    return v.lower() if v is not None else None


# ---------------------------------------------------------------------------
# Rule 4: parse_purchase_value
# ---------------------------------------------------------------------------

def parse_purchase_value(value: Any) -> Decimal:
    """Parse a currency amount such as '$1,450.00' or '£ 900'.

    Strips $ , £ € and whitespace, then reads the leading decimal number.
    Empty, non-numeric and negative input all yield Decimal(0).
    """
    if value is None:
        return Decimal(0)
    cleaned = _CURRENCY_NOISE_RE.sub("", str(value))
    m = _LEADING_NUMBER_RE.match(cleaned)
    if m is None:
        return Decimal(0)
    try:
        amount = Decimal(m.group(0))
    except InvalidOperation:
        return Decimal(0)
    if not amount.is_finite() or amount <= 0:
        return Decimal(0)
    return amount


# ---------------------------------------------------------------------------
# Rule 5: parse_asset_date
# ---------------------------------------------------------------------------

def _generic_date(value: str) -> date | None:
    # Missing components default to January 1st of the current year, so
    # 'March 2024' becomes 2024-03-01 rather than borrowing today's day.
    default = datetime.combine(date.today().replace(month=1, day=1), time())
    try:
        parsed = dateutil_parser.parse(value, default=default).date()
        alt = dateutil_parser.parse(value, default=_ALT_DATE_DEFAULT).date()
    except (ValueError, OverflowError):
        return None
    # Every component followed the default: the input held no date ('10:30', 'Sun').
    if parsed.year != alt.year and parsed.month != alt.month and parsed.day != alt.day:
        return None
    return parsed


def parse_asset_date(value: Any) -> str | None:
    """Return an ISO 'YYYY-MM-DD' string, or None when unparseable.

    Generic parsing runs first (ISO strings, month names, month-first
    numeric forms); text with no year, month or day of its own, such as a
    bare time or weekday, does not count as a date.  If that fails and the value is three numeric parts
    separated by '/', '-' or '.' whose first part exceeds 12, it is read as
    day-month-year.  Ambiguous values such as '03/04/2024' therefore parse
    month-first.
    """
    v = trim(value)
    if v is None:
        return None

    parsed = _generic_date(v)
    if parsed is not None:
        return parsed.isoformat()

    parts = _DATE_PARTS_RE.split(v)
    if len(parts) == 3 and all(p.isdigit() for p in parts):
        day, month, year = parts
        if int(day) > 12:
            return f"{year}-{month.zfill(2)}-{day.zfill(2)}"
    return None


# ---------------------------------------------------------------------------
# Rule 6: enumerations
# ---------------------------------------------------------------------------

def normalize_status(value: Any) -> str:
    """Lowercase/trim; anything outside ASSET_STATUSES becomes 'active'."""
    v = normalize_lookup_key(value)
    return v if v in ASSET_STATUSES else DEFAULT_STATUS


def normalize_condition(value: Any) -> str:
    """Lowercase/trim; anything outside ASSET_CONDITIONS becomes 'good'."""
    v = normalize_lookup_key(value)
    return v if v in ASSET_CONDITIONS else DEFAULT_CONDITION
