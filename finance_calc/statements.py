"""Credit card statement cycles.

A card configured with a statement start day, a payment day and a settlement
account is paid off once per statement. The statement balance is the sum of
the card's transactions in the cycle, leaving out repayments that arrive
from the settlement account. Unpaid statements become one-off transfer
templates the forecast can consume next to the synthetic loan payments.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal
from typing import Iterable, List, Optional, Tuple

from .data_models import Account, RecurringTransaction, Transaction
from .utils import add_months, with_day

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


@dataclass
class StatementPeriod:
    start: date
    end: date
    payment_due: date


def _cycle_start(month: date, statement_day: int) -> date:
    return with_day(month.replace(day=1), statement_day)


def _payment_due(period_end: date, payment_day: int) -> date:
    due = with_day(period_end, payment_day)
    if due <= period_end:
        due = with_day(add_months(period_end.replace(day=1), 1), payment_day)
    return due


def calculate_statement_periods(
    statement_day: int, payment_day: int, today: Optional[date] = None
) -> Tuple[StatementPeriod, StatementPeriod]:
    """Return the statement cycle containing ``today`` and the one after it.

    Each cycle runs from its start day to the day before the next cycle
    starts. The payment falls due on ``payment_day`` of the month the cycle
    ends in, or of the following month when that day is not after the end.
    """
    today = today or date.today()
    current_start = _cycle_start(today, statement_day)
    if current_start > today:
        current_start = _cycle_start(add_months(today.replace(day=1), -1), statement_day)
    future_start = _cycle_start(add_months(current_start.replace(day=1), 1), statement_day)
    following_start = _cycle_start(add_months(future_start.replace(day=1), 1), statement_day)

    current_end = future_start - timedelta(days=1)
    future_end = following_start - timedelta(days=1)
    return (
        StatementPeriod(current_start, current_end, _payment_due(current_end, payment_day)),
        StatementPeriod(future_start, future_end, _payment_due(future_end, payment_day)),
    )


def statement_details(
    card: Account, period: StatementPeriod, transactions: Iterable[Transaction]
) -> Tuple[Decimal, Decimal]:
    """Return ``(statement_balance, amount_paid)`` of ``card`` for ``period``.

    Charges are negative, so an outstanding statement has a negative balance.
    Income transferred in from the settlement account counts as paid and is
    left out of the balance.
    """
    if card.type != "Credit Card":
        return ZERO, ZERO
    transactions = list(transactions)
    balance = ZERO
    paid = ZERO
    for tx in transactions:
        if tx.account_id != card.id or not period.start <= tx.date <= period.end:
            continue
        if tx.type == "income" and tx.transfer_id and card.settlement_account_id:
            counterpart = next(
                (t for t in transactions if t.transfer_id == tx.transfer_id and t.id != tx.id), None
            )
            if counterpart is not None and counterpart.account_id == card.settlement_account_id:
                paid += tx.amount
                continue
        balance += tx.amount
    return balance, paid


def generate_synthetic_credit_card_payments(
    accounts: Iterable[Account], transactions: Iterable[Transaction], today: Optional[date] = None
) -> List[RecurringTransaction]:
    """Build one-off settlement transfers for unpaid credit card statements.

    Only the current and the next statement are considered, and only when
    their payment is not yet due in the past.
    """
    today = today or date.today()
    transactions = list(transactions)
    synthetic: List[RecurringTransaction] = []
    for card in accounts:
        if card.type != "Credit Card":
            continue
        if not card.statement_start_date or not card.payment_date or not card.settlement_account_id:
            continue
        current, future = calculate_statement_periods(card.statement_start_date, card.payment_date, today)
        for period, label in ((current, "Current"), (future, "Next")):
            if period.payment_due < today:
                continue
            balance, _ = statement_details(card, period, transactions)
            if balance >= 0:
                continue
            due = period.payment_due
            synthetic.append(
                RecurringTransaction(
                    id=f"cc-pmt-{card.id}-{due.isoformat()}",
                    account_id=card.settlement_account_id,
                    to_account_id=card.id,
                    description=f"Payment for {card.name} ({label} Statement)",
                    amount=abs(balance),
                    type="transfer",
                    currency=card.currency,
                    frequency="monthly",
                    start_date=due,
                    next_due_date=due,
                    end_date=due,
                    is_synthetic=True,
                )
            )
    logger.debug("Generated %d credit card statement payments", len(synthetic))
    return synthetic
