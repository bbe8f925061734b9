"""Field validators and sanitizers used by the resource services.

All helpers are pure: they never raise and never touch the database, so
they can be called in any order and tested on their own.
"""

from __future__ import annotations

import re
from datetime import date
from numbers import Real
from typing import Any

EMAIL_RE = re.compile(r"[^\s@]+@[^\s@]+\.[^\s@]+")
DATE_RE = re.compile(r"\d{4}-\d{2}-\d{2}", re.ASCII)

WEEKDAYS = (
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
    "Sunday",
)


def is_number(value: Any) -> bool:
    """Return True for real numbers; booleans and NaN do not count."""
    return isinstance(value, Real) and not isinstance(value, bool) and value == value


def is_valid_email(value: Any) -> bool:
    """Return True if `value` looks like `local@domain.tld`."""
    return isinstance(value, str) and EMAIL_RE.fullmatch(value) is not None


def parse_date(value: Any) -> date | None:
    """Parse a strict `YYYY-MM-DD` string into a `date`, or return None."""
    if not isinstance(value, str) or DATE_RE.fullmatch(value) is None:
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        return None


def is_valid_date(value: Any) -> bool:
    """Return True for `YYYY-MM-DD` strings naming a real calendar date."""
    return parse_date(value) is not None


def is_valid_rating(value: Any) -> bool:
    """Return True for integral numbers between 1 and 5 inclusive.

    `4.0` is accepted because JSON does not distinguish it from `4`.
    """
    if not is_number(value):
        return False
    if isinstance(value, float) and not value.is_integer():
        return False
    return 1 <= value <= 5


def is_positive_number(value: Any) -> bool:
    return is_number(value) and value > 0


def is_non_empty_array(value: Any) -> bool:
    return isinstance(value, (list, tuple)) and len(value) > 0


def sanitize_string(value: Any) -> Any:
    """Trim surrounding whitespace from strings; pass anything else through."""
    if not isinstance(value, str):
        return value
    return value.strip()
