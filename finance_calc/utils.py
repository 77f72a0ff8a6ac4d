"""Utility functions for the finance calculators.

This module provides helpers for parsing record values into Python data types
and for calendar arithmetic. All dates are plain ``datetime.date`` values
(calendar days without a time of day) so no timezone can shift an occurrence
onto a neighbouring day.
"""

from __future__ import annotations

import calendar
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation, getcontext
from typing import Optional, Union

from .config import CONVERSION_RATES

getcontext().prec = 28  # increase decimal precision to avoid rounding errors

CENT = Decimal("0.01")


def parse_iso_date(value: Union[str, date, None]) -> Optional[date]:
    """Parse an ISO ``YYYY-MM-DD`` string into a ``date``.

    Full ISO timestamps are accepted and cut to their date part. Missing
    values (``None`` or an empty string) return ``None``.

    Raises
    ------
    ValueError
        If the string is not a valid calendar date.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    if not text:
        return None
    try:
        return date.fromisoformat(text[:10])
    except ValueError as exc:
        raise ValueError(f"Invalid date string: {value!r}") from exc


def days_in_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def with_day(dt: date, day: int) -> date:
    """Return ``dt`` moved to ``day`` of the same month, clamped to its length."""
    return date(dt.year, dt.month, max(1, min(day, days_in_month(dt.year, dt.month))))


def add_months(dt: date, months: int) -> date:
    """Return a new date a number of months after ``dt``.

    The day of the month is clamped to the last valid day if needed (e.g.,
    adding one month to Jan 31 yields Feb 28 or 29).
    """
    year = dt.year + (dt.month - 1 + months) // 12
    month = (dt.month - 1 + months) % 12 + 1
    day = min(dt.day, days_in_month(year, month))
    return date(year, month, day)


def month_key(dt: date) -> str:
    return dt.strftime("%Y-%m")


def decimal_from_value(value: object) -> Decimal:
    """Convert a number or numeric string into a ``Decimal``.

    Floats go through ``str`` so ``0.1`` becomes ``Decimal("0.1")`` rather
    than its binary expansion. Commas in strings are stripped.
    """
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise ValueError(f"Invalid numeric value: {value!r}")
    try:
        if isinstance(value, (int, float)):
            return Decimal(str(value))
        return Decimal(str(value).replace(",", "").strip())
    except (InvalidOperation, TypeError) as exc:
        raise ValueError(f"Invalid numeric value: {value!r}") from exc


def optional_decimal(value: object) -> Optional[Decimal]:
    if value is None or value == "":
        return None
    return decimal_from_value(value)


def convert_to_eur(amount: Decimal, currency: str) -> Decimal:
    return amount * CONVERSION_RATES.get(currency, Decimal("1"))


def round_money(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)
