"""
Numeric and date coercion helpers.

Records arrive from CSV/XLSX parsing and database queries with loosely typed
values. These helpers are the single boundary where raw values become numbers
or timestamps; transforms never coerce inline.
"""

import math
import numbers
import re
import warnings
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Final

import pandas as pd

_NON_NUMERIC: Final = re.compile(r"[^0-9.\-]")
_DATE_TOKENS: Final = re.compile(r"YYYY|MM|DD|M|D")
_MONTH_KEY: Final = re.compile(r"^(\d{4})-(\d{2})$")

MONTH_ABBR: Final[tuple[str, ...]] = (
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
)  # fmt: skip


def parse_number(value: Any) -> int | float | None:
    """
    Parse a value into a finite number.

    Finite ints and floats are returned unchanged; booleans are not numbers.
    Strings are parsed as-is first, then again after stripping everything
    except digits, dots and minus signs (``"$1,200.50"`` → ``1200.5``).

    Args:
        value: Raw field value

    Returns:
        Finite number, or None when the value cannot be parsed

    """
    if isinstance(value, bool):
        return None

    if isinstance(value, (numbers.Real, Decimal)):
        try:
            as_float = float(value)
        except (TypeError, ValueError, OverflowError):
            return None
        if not math.isfinite(as_float):
            return None
        return value if isinstance(value, (int, float)) else as_float

    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        for candidate in (text, _NON_NUMERIC.sub("", text)):
            try:
                parsed = float(candidate)
            except ValueError:
                continue
            return parsed if math.isfinite(parsed) else None

    return None


def to_number(value: Any) -> int | float:
    """
    Coerce a value to a number, defaulting to ``0``.

    The zero default lets sums and averages complete over dirty data instead
    of failing the whole transform.
    """
    parsed = parse_number(value)
    return 0 if parsed is None else parsed


def parse_date(value: Any) -> pd.Timestamp | None:
    """
    Parse a date-like value into a naive pandas Timestamp.

    Accepts datetime/date objects and any string pandas can parse, including
    partial formats such as ``"2025/03/13"`` or ``"March 13, 2025"``.
    Numbers, booleans and plain text are rejected.

    Args:
        value: Raw field value

    Returns:
        Timestamp, or None when the value is not a valid date

    """
    if value is None or value is pd.NaT or isinstance(value, (bool, numbers.Number)):
        return None

    if isinstance(value, (datetime, date)):
        parsed = pd.Timestamp(value)
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            with warnings.catch_warnings():
                warnings.simplefilter("ignore")
                parsed = pd.to_datetime(text, errors="coerce")
        except (ValueError, TypeError, OverflowError):
            return None
    else:
        return None

    if parsed is None or pd.isna(parsed):
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.tz_convert(None)
    return parsed


def is_date_like(value: Any) -> bool:
    """Check whether a value is a date object or a parseable date string."""
    return parse_date(value) is not None


def format_date(value: Any, pattern: str = "MM/DD/YYYY") -> str:
    """
    Format a date with simple token patterns.

    Supported tokens: ``YYYY``, ``MM``/``DD`` (zero-padded) and ``M``/``D``
    (unpadded). Tokens are substituted in a single pass.

    Args:
        value: datetime, date or Timestamp
        pattern: Format pattern, e.g. "MM/DD/YYYY"

    Returns:
        Formatted string, or ``str(value)`` when value is not a valid date

    """
    if value is pd.NaT or not isinstance(value, (datetime, date)):
        return str(value)

    tokens = {
        "YYYY": f"{value.year:04d}",
        "MM": f"{value.month:02d}",
        "DD": f"{value.day:02d}",
        "M": str(value.month),
        "D": str(value.day),
    }
    return _DATE_TOKENS.sub(lambda match: tokens[match.group(0)], pattern)


def format_month_year(period_key: str) -> str:
    """Convert a ``YYYY-MM`` key to ``Mon YYYY``; other strings pass through."""
    match = _MONTH_KEY.match(period_key)
    if not match:
        return period_key
    year, month = match.groups()
    month_index = int(month)
    if not 1 <= month_index <= 12:
        return period_key
    return f"{MONTH_ABBR[month_index - 1]} {year}"
