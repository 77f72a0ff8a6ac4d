"""Shared configuration for the finance calculators.

Static reference data (conversion rates, account groupings) lives here so the
engines, the command line and the web app read the same values. Deployment
settings are read from the environment with sensible local defaults.
"""

from __future__ import annotations

import os
from decimal import Decimal
from typing import Dict, Tuple

# Static EUR conversion table. Values are multiplied into an amount to express
# it in EUR; currencies missing from the table convert at 1.
CONVERSION_RATES: Dict[str, Decimal] = {
    "USD": Decimal("0.93"),
    "GBP": Decimal("1.18"),
    "BTC": Decimal("65000"),
    "EUR": Decimal("1"),
    "RON": Decimal("0.20"),
}

ACCOUNT_TYPES: Tuple[str, ...] = (
    "Checking",
    "Savings",
    "Credit Card",
    "Investment",
    "Loan",
    "Property",
    "Vehicle",
    "Other Assets",
    "Other Liabilities",
    "Lending",
)

# Accounts whose balance counts as available cash in the forecast.
LIQUID_ACCOUNT_TYPES: Tuple[str, ...] = ("Checking", "Savings", "Credit Card")

LOAN_ACCOUNT_TYPES: Tuple[str, ...] = ("Loan", "Lending")

FREQUENCIES: Tuple[str, ...] = ("daily", "weekly", "monthly", "yearly")

# Internal forecast horizon; views clip it to the period they display.
DEFAULT_FORECAST_YEARS = 10

FORECAST_DURATIONS: Tuple[str, ...] = ("3M", "6M", "EOY", "1Y", "10Y")

# Look-ahead windows (days) for the lowest balance report.
LOWEST_BALANCE_WINDOWS: Tuple[int, ...] = (7, 30, 90, 365)

DISPLAY_MAX_ROWS = 120

DATABASE_URL = os.environ.get("FINANCE_CALC_DATABASE_URL", "sqlite:///finance_calc.sqlite3")
LOG_LEVEL = os.environ.get("FINANCE_CALC_LOG_LEVEL", "WARNING").upper()
