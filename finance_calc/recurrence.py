"""Occurrence stepping for recurring transactions and goals.

Month and year steps are anchored: a monthly item due on the 31st lands on
Feb 28 (or 29) and returns to the 31st in March, rather than drifting to the
28th for the rest of its life.
"""

from __future__ import annotations

from datetime import date, timedelta
from typing import Iterator

from .data_models import RecurringTransaction
from .utils import add_months, with_day


def next_occurrence(current: date, frequency: str, interval: int, anchor_day: int, anchor_month: int) -> date:
    """Return the occurrence following ``current``.

    Parameters
    ----------
    current: date
        The current occurrence.
    frequency: str
        ``"daily"``, ``"weekly"``, ``"monthly"`` or ``"yearly"``.
    interval: int
        Number of frequency units between occurrences (values below 1 count
        as 1).
    anchor_day: int
        Preferred day of month for monthly and yearly steps; clamped to
        the range 1 to the target month's length.
    anchor_month: int
        Month used by yearly steps.
    """
    interval = max(1, interval or 1)
    if frequency == "daily":
        return current + timedelta(days=interval)
    if frequency == "weekly":
        return current + timedelta(days=7 * interval)
    if frequency == "monthly":
        first = add_months(date(current.year, current.month, 1), interval)
        return with_day(first, anchor_day)
    if frequency == "yearly":
        year = current.year + interval
        return with_day(date(year, anchor_month, 1), anchor_day)
    raise ValueError(f"Unknown frequency: {frequency}")


def step(rt: RecurringTransaction, current: date) -> date:
    anchor_day = rt.due_date_of_month or rt.start_date.day
    return next_occurrence(current, rt.frequency, rt.frequency_interval, anchor_day, rt.start_date.month)


def fast_forward(rt: RecurringTransaction, window_start: date) -> date:
    """Advance ``rt.next_due_date`` past occurrences due before ``window_start``.

    Stepping stops early at the template's end date so an expired template
    never reaches the window.
    """
    current = rt.next_due_date
    while current < window_start and (rt.end_date is None or current < rt.end_date):
        current = step(rt, current)
    return current


def iter_occurrences(rt: RecurringTransaction, window_start: date, window_end: date) -> Iterator[date]:
    """Yield the dates ``rt`` falls due between ``window_start`` and ``window_end``."""
    current = fast_forward(rt, window_start)
    if current < window_start:
        # ended before the window opened
        return
    while current <= window_end and (rt.end_date is None or current <= rt.end_date):
        yield current
        current = step(rt, current)
