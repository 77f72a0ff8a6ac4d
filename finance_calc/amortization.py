"""Loan amortization engine.

This module builds the month-by-month payment schedule of a Loan or Lending
account. The schedule is recomputed from the account's contract terms on every
call; only the sparse map of per-period user overrides is ever stored.
Repayments that were actually booked (a transfer between the loan and its
linked account) mark their month as paid and carry their recorded principal
and interest split into the schedule.
"""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from .config import LOAN_ACCOUNT_TYPES
from .data_models import Account, PaymentOverride, RecurringTransaction, ScheduledPayment, Transaction
from .utils import add_months, month_key, round_money, with_day

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


def _calculate_annuity_payment(principal: Decimal, rate_per_month: Decimal, term: int) -> Decimal:
    """Return the annuity (equal installment) monthly payment for a loan.

    The formula is:

        payment = P * (i * (1 + i)^n) / ((1 + i)^n - 1)

    where ``P`` is the principal, ``i`` is the monthly interest rate and
    ``n`` is the number of payments. When the interest rate is zero, the
    payment simplifies to ``P / n``.
    """
    if term <= 0:
        raise ValueError("Term must be positive")
    if rate_per_month == 0:
        return principal / Decimal(term)
    factor = (1 + rate_per_month) ** term
    return principal * (rate_per_month * factor) / (factor - 1)


def _is_repayment(account: Account, tx: Transaction) -> bool:
    if tx.account_id != account.id or not tx.transfer_id:
        return False
    if account.type == "Loan":
        return tx.type == "income"
    return account.type == "Lending" and tx.type == "expense"


def _prepare_payments(account: Account, transactions: Iterable[Transaction]) -> Dict[str, Transaction]:
    """Map ``YYYY-MM`` to the booked repayment for that month.

    A repayment counts only when its transfer counterpart sits on the
    account's linked account (or on any account when no link is set). When a
    month holds several repayments the earliest one wins.
    """
    transactions = list(transactions)
    by_transfer: Dict[str, List[Transaction]] = {}
    for tx in transactions:
        if tx.transfer_id:
            by_transfer.setdefault(tx.transfer_id, []).append(tx)

    candidates = []
    for tx in transactions:
        if not _is_repayment(account, tx):
            continue
        counterparts = [t for t in by_transfer.get(tx.transfer_id, []) if t.id != tx.id]
        if account.linked_account_id:
            counterparts = [t for t in counterparts if t.account_id == account.linked_account_id]
        if counterparts:
            candidates.append(tx)

    mapping: Dict[str, Transaction] = {}
    for tx in sorted(candidates, key=lambda t: t.date):
        mapping.setdefault(month_key(tx.date), tx)
    return mapping


def _apply_override(
    override: Optional[PaymentOverride],
    base_payment: Decimal,
    calculated_interest: Decimal,
    outstanding: Decimal,
) -> Tuple[Decimal, Decimal, Decimal]:
    """Return ``(total, principal, interest)`` for one period.

    User values replace computed ones field by field. Two clamps keep the row
    consistent afterwards: interest can never exceed the total payment, and
    neither the payment nor its principal can exceed what is left to repay.
    """
    interest = calculated_interest
    total = base_payment
    principal = None
    if override is not None:
        if override.interest is not None:
            interest = override.interest
        if override.total_payment is not None:
            total = override.total_payment
        elif override.principal is not None:
            total = override.principal + interest
        principal = override.principal
    if principal is None:
        principal = total - interest

    if interest > total:
        principal = ZERO
        interest = total
    if outstanding + interest < total or principal > outstanding:
        total = outstanding + interest
        principal = outstanding
    return total, principal, interest


def generate_amortization_schedule(
    account: Account,
    transactions: Iterable[Transaction] = (),
    overrides: Optional[Mapping[int, PaymentOverride]] = None,
    today: Optional[date] = None,
) -> List[ScheduledPayment]:
    """Compute the payment schedule of a loan account.

    Parameters
    ----------
    account: Account
        A Loan or Lending account. ``principal_amount``, ``duration`` and
        ``loan_start_date`` must be set and ``interest_rate`` must not be
        ``None`` (zero is a valid rate); otherwise an empty schedule is
        returned.
    transactions: Iterable[Transaction]
        Booked transactions; repayments among them mark periods as paid.
    overrides: Mapping[int, PaymentOverride]
        Sparse per-period corrections keyed by payment number (1-based).
    today: date
        Reference day for the overdue status. Defaults to the current date.

    Returns
    -------
    List[ScheduledPayment]
        One entry per month of the loan's duration. Money fields are rounded
        to cents; the balance carried between periods keeps full precision.
    """
    principal_amount = account.principal_amount
    duration = account.duration
    start = account.loan_start_date
    if not principal_amount or not duration or duration <= 0 or not start or account.interest_rate is None:
        logger.debug("Account %s lacks loan terms; no schedule generated", account.id)
        return []

    today = today or date.today()
    overrides = overrides or {}
    rate_per_month = account.interest_rate / Decimal(100) / Decimal(12)
    payment_map = _prepare_payments(account, transactions)

    standard_payment = _calculate_annuity_payment(principal_amount, rate_per_month, duration)
    if account.monthly_payment:
        standard_payment = account.monthly_payment

    schedule: List[ScheduledPayment] = []
    outstanding = principal_amount

    for number in range(1, duration + 1):
        scheduled_date = add_months(start, number)
        real_payment = payment_map.get(month_key(scheduled_date))
        # Future unpaid periods fall on the configured payment day
        if account.payment_day_of_month and real_payment is None and scheduled_date >= today:
            scheduled_date = with_day(scheduled_date, account.payment_day_of_month)

        calculated_interest = outstanding * rate_per_month
        status = "Upcoming"
        transaction_id = None

        if outstanding <= 0 and real_payment is None:
            # Loan already retired; keep the schedule at full length
            total = principal = interest = ZERO
        else:
            base_payment = outstanding + calculated_interest if number == duration else standard_payment
            total, principal, interest = _apply_override(
                overrides.get(number), base_payment, calculated_interest, outstanding
            )
            if real_payment is not None:
                status = "Paid"
                transaction_id = real_payment.id
                if real_payment.principal_amount is not None or real_payment.interest_amount is not None:
                    principal = real_payment.principal_amount or ZERO
                    interest = real_payment.interest_amount or ZERO
                    total = principal + interest
            elif scheduled_date < today:
                status = "Overdue"

        outstanding = max(ZERO, outstanding - principal)
        schedule.append(
            ScheduledPayment(
                payment_number=number,
                date=scheduled_date,
                total_payment=round_money(total),
                principal=round_money(principal),
                interest=round_money(interest),
                outstanding_balance=round_money(outstanding),
                status=status,
                transaction_id=transaction_id,
            )
        )

    return schedule


def summarize_schedule(schedule: List[ScheduledPayment]) -> Dict[str, object]:
    """Aggregate a schedule into the figures shown next to it.

    ``paid_*`` totals only count periods backed by a booked repayment.
    ``next_payment`` is the first period that is not yet paid.
    """
    total_principal = sum((p.principal for p in schedule), ZERO)
    total_interest = sum((p.interest for p in schedule), ZERO)
    paid = [p for p in schedule if p.status == "Paid"]
    next_payment = next((p for p in schedule if p.status != "Paid" and p.total_payment > 0), None)

    # Balance after the last paid period; the full principal when nothing is paid
    remaining = schedule[0].outstanding_balance + schedule[0].principal if schedule else ZERO
    for entry in paid:
        remaining = entry.outstanding_balance

    return {
        "total_principal": float(total_principal),
        "total_interest": float(total_interest),
        "total_cost": float(total_principal + total_interest),
        "paid_principal": float(sum((p.principal for p in paid), ZERO)),
        "paid_interest": float(sum((p.interest for p in paid), ZERO)),
        "payments_made": len(paid),
        "payments_overdue": sum(1 for p in schedule if p.status == "Overdue"),
        "remaining_balance": float(remaining),
        "next_payment": next_payment.to_dict() if next_payment else None,
        "end_date": schedule[-1].date.isoformat() if schedule else None,
    }


def generate_synthetic_loan_payments(accounts: Iterable[Account], today: Optional[date] = None) -> List[RecurringTransaction]:
    """Build monthly transfer templates for loans with a configured repayment.

    Loan accounts are repaid from their linked account; Lending accounts pay
    back into it. The first due date is this month's payment day, or next
    month's when that day has already passed.
    """
    today = today or date.today()
    synthetic: List[RecurringTransaction] = []
    for account in accounts:
        if account.type not in LOAN_ACCOUNT_TYPES:
            continue
        if not account.monthly_payment or account.monthly_payment <= 0 or not account.linked_account_id:
            continue
        day = account.payment_day_of_month
        if not day or not 1 <= day <= 31:
            continue

        next_due = with_day(today, day)
        if next_due < today:
            next_due = with_day(add_months(today.replace(day=1), 1), day)

        lending = account.type == "Lending"
        synthetic.append(
            RecurringTransaction(
                id=f"loan-pmt-{account.id}",
                account_id=account.id if lending else account.linked_account_id,
                to_account_id=account.linked_account_id if lending else account.id,
                description=f"{'Lending Repayment' if lending else 'Loan Payment'}: {account.name}",
                amount=account.monthly_payment,
                type="transfer",
                currency=account.currency,
                frequency="monthly",
                start_date=account.loan_start_date or today,
                next_due_date=next_due,
                due_date_of_month=day,
                is_synthetic=True,
            )
        )
    return synthetic
