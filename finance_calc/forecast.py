"""Liquid balance forecast engine.

The forecast starts from today's combined balance of the liquid accounts and
walks forward one calendar day at a time. Dated cash movements are collected
first into a sparse day map from three sources:

* recurring transactions (income, expenses and transfers crossing the edge of
  the liquid account set),
* financial goals (a one-time target, or periodic contributions until the
  goal is funded),
* unpaid bills.

All amounts are converted to EUR with the static conversion table before they
touch the running balance.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from datetime import date, timedelta
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from .config import DEFAULT_FORECAST_YEARS, LIQUID_ACCOUNT_TYPES, LOWEST_BALANCE_WINDOWS
from .data_models import (
    Account,
    BillPayment,
    FinancialGoal,
    ForecastEvent,
    ForecastPoint,
    ForecastResult,
    RecurringOverride,
    RecurringTransaction,
)
from .recurrence import iter_occurrences, next_occurrence
from .utils import add_months, convert_to_eur

logger = logging.getLogger(__name__)

ZERO = Decimal("0")

EventMap = Dict[date, List[ForecastEvent]]


def forecast_end_for(duration: str, today: Optional[date] = None) -> date:
    """Return the last forecast day for a display period.

    ``3M``, ``6M`` and ``1Y`` count from today; ``EOY`` is December 31st of
    the current year and ``10Y`` is the internal horizon.
    """
    today = today or date.today()
    if duration == "3M":
        return add_months(today, 3)
    if duration == "6M":
        return add_months(today, 6)
    if duration == "EOY":
        return date(today.year, 12, 31)
    if duration == "1Y":
        return add_months(today, 12)
    if duration == "10Y":
        return add_months(today, 12 * DEFAULT_FORECAST_YEARS)
    raise ValueError(f"Unknown forecast duration: {duration}")


def _signed_amount(rt: RecurringTransaction, magnitude: Decimal, liquid_ids: set) -> Decimal:
    """Return the effect of one occurrence on the liquid balance.

    Transfers only move money when exactly one side is liquid; a transfer
    between two liquid accounts cancels out.
    """
    if rt.type == "transfer":
        from_liquid = rt.account_id in liquid_ids
        to_liquid = rt.to_account_id in liquid_ids if rt.to_account_id else False
        if from_liquid and not to_liquid:
            return -magnitude
        if to_liquid and not from_liquid:
            return magnitude
        return ZERO
    if rt.account_id not in liquid_ids:
        return ZERO
    return -magnitude if rt.type == "expense" else magnitude


def _account_label(rt: RecurringTransaction, names: Dict[str, str]) -> str:
    if rt.type == "transfer":
        target = names.get(rt.to_account_id, "External") if rt.to_account_id else "External"
        return f"{names.get(rt.account_id, 'External')} → {target}"
    return names.get(rt.account_id, "Unknown")


def _add_recurring_events(
    events: EventMap,
    recurring: Iterable[RecurringTransaction],
    overrides: Dict[Tuple[str, date], RecurringOverride],
    liquid_ids: set,
    names: Dict[str, str],
    start: date,
    end: date,
) -> None:
    for rt in recurring:
        for occurrence in iter_occurrences(rt, start, end):
            override = overrides.get((rt.id, occurrence))
            if override is not None and override.is_skipped:
                continue
            day = occurrence
            magnitude = abs(rt.amount)
            description = rt.description
            if override is not None:
                day = override.date or occurrence
                if override.amount is not None:
                    magnitude = abs(override.amount)
                description = override.description or description
            if not start <= day <= end:
                continue
            amount = _signed_amount(rt, magnitude, liquid_ids)
            if amount == 0:
                continue
            events[day].append(
                ForecastEvent(
                    date=day,
                    amount=convert_to_eur(amount, rt.currency),
                    description=description,
                    account_name=_account_label(rt, names),
                    kind="Recurring",
                )
            )


def _goal_contributions(goal: FinancialGoal, start: date, end: date) -> List[Tuple[date, Decimal]]:
    """Return the dated contributions that fund a recurring goal.

    Contributions run from the goal's start date (fast-forwarded to ``start``)
    and stop at ``end`` or once the shortfall is covered; the last installment
    is cut down so the total never exceeds the shortfall.
    """
    remaining = goal.shortfall
    contribution = goal.monthly_contribution
    if remaining <= 0 or not contribution or contribution <= 0:
        return []
    first = goal.start_date or start
    frequency = goal.frequency or "monthly"
    anchor_day = goal.due_date_of_month or first.day

    current = first
    while current < start:
        current = next_occurrence(current, frequency, 1, anchor_day, first.month)

    contributions = []
    while current <= end and remaining > 0:
        installment = min(contribution, remaining)
        contributions.append((current, installment))
        remaining -= installment
        current = next_occurrence(current, frequency, 1, anchor_day, first.month)
    return contributions


def _add_goal_events(
    events: EventMap,
    goals: Iterable[FinancialGoal],
    liquid_ids: set,
    names: Dict[str, str],
    start: date,
    end: date,
) -> None:
    for goal in goals:
        if goal.payment_account_id and goal.payment_account_id not in liquid_ids:
            continue
        account_name = names.get(goal.payment_account_id, "Unknown") if goal.payment_account_id else "External"

        if goal.type == "one-time":
            if goal.date is None or not start <= goal.date <= end:
                continue
            amount = goal.shortfall
            if goal.transaction_type == "expense":
                amount = -amount
            if amount == 0:
                continue
            events[goal.date].append(
                ForecastEvent(
                    date=goal.date,
                    amount=convert_to_eur(amount, goal.currency),
                    description=goal.name,
                    account_name=account_name,
                    kind="Financial Goal",
                    is_goal=True,
                )
            )
            continue

        for day, installment in _goal_contributions(goal, start, end):
            events[day].append(
                ForecastEvent(
                    date=day,
                    amount=convert_to_eur(-installment, goal.currency),
                    description=goal.name,
                    account_name=account_name,
                    kind="Financial Goal",
                    is_goal=True,
                )
            )


def _add_bill_events(events: EventMap, bills: Iterable[BillPayment], names: Dict[str, str],
                     start: date, end: date) -> None:
    for bill in bills:
        if bill.status != "unpaid" or not start <= bill.due_date <= end:
            continue
        amount = abs(bill.amount) if bill.type == "deposit" else -abs(bill.amount)
        events[bill.due_date].append(
            ForecastEvent(
                date=bill.due_date,
                amount=convert_to_eur(amount, bill.currency),
                description=bill.description,
                account_name=names.get(bill.account_id, "External") if bill.account_id else "External",
                kind="Bill/Payment",
            )
        )


def build_forecast(
    accounts: Iterable[Account],
    recurring_transactions: Iterable[RecurringTransaction] = (),
    goals: Iterable[FinancialGoal] = (),
    bills: Iterable[BillPayment] = (),
    forecast_end_date: Optional[date] = None,
    overrides: Iterable[RecurringOverride] = (),
    today: Optional[date] = None,
    account_ids: Optional[Iterable[str]] = None,
) -> ForecastResult:
    """Project the liquid balance from today through ``forecast_end_date``.

    Returns a ``ForecastResult`` holding one point per calendar day, the table
    of applied events with the balance after each one, and the lowest point.
    ``account_ids`` narrows the liquid set to a selection of accounts; money
    moving to an account outside the selection then leaves the forecast.
    An empty result is returned when no liquid account is given.
    """
    today = today or date.today()
    end = forecast_end_date or add_months(today, 12 * DEFAULT_FORECAST_YEARS)

    accounts = list(accounts)
    selected = set(account_ids) if account_ids is not None else None
    liquid = [
        a for a in accounts if a.type in LIQUID_ACCOUNT_TYPES and (selected is None or a.id in selected)
    ]
    if not liquid:
        logger.debug("No liquid accounts; forecast is empty")
        return ForecastResult()

    liquid_ids = {a.id for a in liquid}
    names = {a.id: a.name for a in accounts}
    override_map = {(o.recurring_transaction_id, o.original_date): o for o in overrides}

    events: EventMap = defaultdict(list)
    _add_recurring_events(events, recurring_transactions, override_map, liquid_ids, names, today, end)
    _add_goal_events(events, goals, liquid_ids, names, today, end)
    _add_bill_events(events, bills, names, today, end)
    logger.debug("Forecast %s..%s: %d event days", today, end, len(events))

    balance = sum((convert_to_eur(a.balance, a.currency) for a in liquid), ZERO)
    result = ForecastResult()
    current = today
    while current <= end:
        # expenses before income on the same day
        for event in sorted(events.get(current, []), key=lambda e: e.amount):
            balance += event.amount
            event.balance = balance
            result.events.append(event)
        result.points.append(ForecastPoint(date=current, value=balance))
        current += timedelta(days=1)

    if result.points:
        result.lowest_point = min(result.points, key=lambda p: p.value)
    return result


def generate_balance_forecast(
    accounts: Iterable[Account],
    recurring_transactions: Iterable[RecurringTransaction],
    goals: Iterable[FinancialGoal],
    bills: Iterable[BillPayment],
    forecast_end_date: date,
    overrides: Iterable[RecurringOverride] = (),
    today: Optional[date] = None,
) -> List[ForecastPoint]:
    """Return one ``ForecastPoint`` per day from today through ``forecast_end_date``."""
    return build_forecast(
        accounts, recurring_transactions, goals, bills, forecast_end_date, overrides, today
    ).points


def clip_points(points: Sequence[ForecastPoint], end: date) -> List[ForecastPoint]:
    return [p for p in points if p.date <= end]


def lowest_balances(
    points: Sequence[ForecastPoint],
    today: Optional[date] = None,
    windows: Sequence[int] = LOWEST_BALANCE_WINDOWS,
) -> List[Dict[str, object]]:
    """Return the lowest forecast point within each look-ahead window of days."""
    today = today or date.today()
    report = []
    for days in windows:
        horizon = today + timedelta(days=days)
        window = [p for p in points if p.date <= horizon]
        if not window:
            continue
        low = min(window, key=lambda p: p.value)
        report.append({"period": f"{days}D", "lowestBalance": float(low.value), "date": low.date.isoformat()})
    return report
