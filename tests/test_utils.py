from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from finance_calc.utils import (
    add_months,
    convert_to_eur,
    decimal_from_value,
    parse_iso_date,
    round_money,
    with_day,
)


def test_add_months_clamps_to_month_end():
    assert add_months(date(2024, 1, 31), 1) == date(2024, 2, 29)
    assert add_months(date(2023, 1, 31), 1) == date(2023, 2, 28)
    assert add_months(date(2024, 11, 15), 3) == date(2025, 2, 15)
    assert add_months(date(2024, 3, 31), -1) == date(2024, 2, 29)


def test_with_day_clamps():
    assert with_day(date(2023, 2, 10), 31) == date(2023, 2, 28)
    assert with_day(date(2023, 4, 10), 15) == date(2023, 4, 15)


def test_parse_iso_date_accepts_dates_and_timestamps():
    assert parse_iso_date("2024-05-06") == date(2024, 5, 6)
    assert parse_iso_date("2024-05-06T10:00:00.000Z") == date(2024, 5, 6)
    assert parse_iso_date(date(2024, 5, 6)) == date(2024, 5, 6)
    assert parse_iso_date("") is None
    assert parse_iso_date(None) is None


@pytest.mark.parametrize("value", ["2024-13-01", "not a date", "2024-02-30"])
def test_parse_iso_date_rejects_malformed(value):
    with pytest.raises(ValueError):
        parse_iso_date(value)


def test_decimal_from_value():
    assert decimal_from_value(0.1) == Decimal("0.1")
    assert decimal_from_value("1,250.50") == Decimal("1250.50")
    assert decimal_from_value(12) == Decimal("12")
    with pytest.raises(ValueError):
        decimal_from_value("abc")
    with pytest.raises(ValueError):
        decimal_from_value(True)


def test_convert_to_eur_uses_static_rates():
    assert convert_to_eur(Decimal("100"), "USD") == Decimal("93")
    assert convert_to_eur(Decimal("100"), "EUR") == Decimal("100")
    # Unknown currencies convert one to one
    assert convert_to_eur(Decimal("100"), "JPY") == Decimal("100")


def test_round_money_half_up():
    assert round_money(Decimal("1.005")) == Decimal("1.01")
    assert round_money(Decimal("299.7085")) == Decimal("299.71")
