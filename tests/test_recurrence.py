from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from finance_calc.data_models import RecurringTransaction
from finance_calc.recurrence import fast_forward, iter_occurrences, next_occurrence


def _rt(start: date, frequency: str = "monthly", **kwargs) -> RecurringTransaction:
    kwargs.setdefault("next_due_date", start)
    return RecurringTransaction(
        id="rt1",
        account_id="chk",
        amount=Decimal("100"),
        type="expense",
        frequency=frequency,
        start_date=start,
        **kwargs,
    )


def test_monthly_31st_clamps_and_returns():
    rt = _rt(date(2023, 1, 31), due_date_of_month=31)
    dates = list(iter_occurrences(rt, date(2023, 1, 1), date(2023, 4, 30)))
    assert dates == [date(2023, 1, 31), date(2023, 2, 28), date(2023, 3, 31), date(2023, 4, 30)]


def test_monthly_31st_in_leap_year():
    rt = _rt(date(2024, 1, 31), due_date_of_month=31)
    dates = list(iter_occurrences(rt, date(2024, 1, 1), date(2024, 3, 31)))
    assert dates == [date(2024, 1, 31), date(2024, 2, 29), date(2024, 3, 31)]


def test_monthly_anchor_defaults_to_start_day():
    rt = _rt(date(2024, 1, 30), next_due_date=date(2024, 2, 29))
    dates = list(iter_occurrences(rt, date(2024, 2, 1), date(2024, 4, 30)))
    assert dates == [date(2024, 2, 29), date(2024, 3, 30), date(2024, 4, 30)]


def test_weekly_with_interval():
    rt = _rt(date(2024, 1, 1), frequency="weekly", frequency_interval=2)
    dates = list(iter_occurrences(rt, date(2024, 1, 1), date(2024, 2, 1)))
    assert dates == [date(2024, 1, 1), date(2024, 1, 15), date(2024, 1, 29)]


def test_daily():
    rt = _rt(date(2024, 1, 30), frequency="daily")
    assert list(iter_occurrences(rt, date(2024, 1, 1), date(2024, 2, 2))) == [
        date(2024, 1, 30),
        date(2024, 1, 31),
        date(2024, 2, 1),
        date(2024, 2, 2),
    ]


def test_yearly_from_leap_day():
    assert next_occurrence(date(2024, 2, 29), "yearly", 1, 29, 2) == date(2025, 2, 28)
    assert next_occurrence(date(2027, 2, 28), "yearly", 1, 29, 2) == date(2028, 2, 29)


def test_fast_forward_skips_past_occurrences():
    rt = _rt(date(2023, 6, 10), next_due_date=date(2024, 1, 10))
    assert fast_forward(rt, date(2024, 3, 5)) == date(2024, 3, 10)


def test_end_date_stops_series():
    rt = _rt(date(2024, 1, 10), end_date=date(2024, 2, 15))
    dates = list(iter_occurrences(rt, date(2024, 1, 1), date(2024, 12, 31)))
    assert dates == [date(2024, 1, 10), date(2024, 2, 10)]


def test_series_ended_before_window_yields_nothing():
    rt = _rt(date(2023, 1, 10), end_date=date(2023, 6, 1))
    assert list(iter_occurrences(rt, date(2024, 1, 1), date(2024, 12, 31))) == []


def test_unknown_frequency_raises():
    with pytest.raises(ValueError):
        next_occurrence(date(2024, 1, 1), "fortnightly", 1, 1, 1)


def test_anchor_day_below_one_clamps_to_first_of_month():
    assert next_occurrence(date(2024, 1, 15), "monthly", 1, -1, 1) == date(2024, 2, 1)
    assert next_occurrence(date(2024, 3, 15), "yearly", 1, 0, 3) == date(2025, 3, 1)
