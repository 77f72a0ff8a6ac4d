"""Data models for the finance calculators.

This module defines dataclasses for the records the engines consume (accounts,
transactions, recurring transactions, goals and bills) and the values they
produce (scheduled loan payments and forecast points). Records are built from
the camelCase dictionaries of the application's JSON document with
``from_dict``; the produced values serialize back to camelCase with
``to_dict``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Mapping, Optional

from .config import ACCOUNT_TYPES, FREQUENCIES
from .utils import decimal_from_value, optional_decimal, parse_iso_date


class RecordError(ValueError):
    """Raised when a record dictionary cannot be turned into a dataclass."""

    def __init__(self, record: str, key: str, message: str) -> None:
        super().__init__(f"{record}.{key}: {message}")
        self.record = record
        self.key = key


def _required(data: Mapping[str, Any], key: str, record: str) -> Any:
    value = data.get(key)
    if value is None or value == "":
        raise RecordError(record, key, "missing required value")
    return value


def _money(data: Mapping[str, Any], key: str, record: str, default: Optional[str] = None) -> Decimal:
    value = data.get(key)
    if value is None or value == "":
        if default is None:
            raise RecordError(record, key, "missing required value")
        return Decimal(default)
    try:
        return decimal_from_value(value)
    except ValueError as exc:
        raise RecordError(record, key, str(exc)) from exc


def _optional_money(data: Mapping[str, Any], key: str, record: str) -> Optional[Decimal]:
    try:
        return optional_decimal(data.get(key))
    except ValueError as exc:
        raise RecordError(record, key, str(exc)) from exc


def _date(data: Mapping[str, Any], key: str, record: str, required: bool = False) -> Optional[date]:
    try:
        value = parse_iso_date(data.get(key))
    except ValueError as exc:
        raise RecordError(record, key, str(exc)) from exc
    if value is None and required:
        raise RecordError(record, key, "missing required value")
    return value


def _optional_int(data: Mapping[str, Any], key: str, record: str) -> Optional[int]:
    value = data.get(key)
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise RecordError(record, key, f"invalid integer {value!r}") from exc


def _day_of_month(data: Mapping[str, Any], key: str, record: str) -> Optional[int]:
    value = _optional_int(data, key, record)
    if value is not None and not 1 <= value <= 31:
        raise RecordError(record, key, f"day of month must be between 1 and 31; got {value}")
    return value


def _choice(value: str, allowed, record: str, key: str) -> str:
    if value not in allowed:
        raise RecordError(record, key, f"expected one of {', '.join(allowed)}; got {value!r}")
    return value


def _float(value: Optional[Decimal]) -> Optional[float]:
    return float(value) if value is not None else None


@dataclass
class Account:
    """A user account.

    Only the fields the calculators read are modelled. Loan and Lending
    accounts additionally carry their contract terms; ``interest_rate`` is an
    annual percentage where ``None`` means "not entered" and ``0`` is a valid
    interest-free loan.
    """

    id: str
    name: str
    type: str
    balance: Decimal
    currency: str = "EUR"
    linked_account_id: Optional[str] = None

    principal_amount: Optional[Decimal] = None
    interest_rate: Optional[Decimal] = None
    duration: Optional[int] = None  # months
    loan_start_date: Optional[date] = None
    monthly_payment: Optional[Decimal] = None
    payment_day_of_month: Optional[int] = None

    # Credit cards: statement cycle days and the account that settles them
    statement_start_date: Optional[int] = None
    payment_date: Optional[int] = None
    settlement_account_id: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Account":
        name = "Account"
        return cls(
            id=str(_required(data, "id", name)),
            name=str(data.get("name") or ""),
            type=_choice(str(_required(data, "type", name)), ACCOUNT_TYPES, name, "type"),
            balance=_money(data, "balance", name, default="0"),
            currency=str(data.get("currency") or "EUR"),
            linked_account_id=data.get("linkedAccountId"),
            principal_amount=_optional_money(data, "principalAmount", name),
            interest_rate=_optional_money(data, "interestRate", name),
            duration=_optional_int(data, "duration", name),
            loan_start_date=_date(data, "loanStartDate", name),
            monthly_payment=_optional_money(data, "monthlyPayment", name),
            payment_day_of_month=_day_of_month(data, "paymentDayOfMonth", name),
            statement_start_date=_day_of_month(data, "statementStartDate", name),
            payment_date=_day_of_month(data, "paymentDate", name),
            settlement_account_id=data.get("settlementAccountId"),
        )


@dataclass
class Transaction:
    """A booked transaction.

    Transfers are stored as two transactions sharing ``transfer_id``. Loan
    repayments may record how the amount split into principal and interest.
    """

    id: str
    account_id: str
    date: date
    amount: Decimal
    type: str  # "income" or "expense"
    currency: str = "EUR"
    description: str = ""
    transfer_id: Optional[str] = None
    principal_amount: Optional[Decimal] = None
    interest_amount: Optional[Decimal] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Transaction":
        name = "Transaction"
        return cls(
            id=str(_required(data, "id", name)),
            account_id=str(_required(data, "accountId", name)),
            date=_date(data, "date", name, required=True),
            amount=_money(data, "amount", name, default="0"),
            type=_choice(str(_required(data, "type", name)), ("income", "expense"), name, "type"),
            currency=str(data.get("currency") or "EUR"),
            description=str(data.get("description") or ""),
            transfer_id=data.get("transferId"),
            principal_amount=_optional_money(data, "principalAmount", name),
            interest_amount=_optional_money(data, "interestAmount", name),
        )


@dataclass
class RecurringTransaction:
    """Template for a repeating income, expense or transfer."""

    id: str
    account_id: str
    amount: Decimal
    type: str  # "income", "expense" or "transfer"
    frequency: str  # "daily", "weekly", "monthly" or "yearly"
    start_date: date
    next_due_date: date
    currency: str = "EUR"
    description: str = ""
    to_account_id: Optional[str] = None
    frequency_interval: int = 1
    end_date: Optional[date] = None
    due_date_of_month: Optional[int] = None
    is_synthetic: bool = False

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "RecurringTransaction":
        name = "RecurringTransaction"
        start = _date(data, "startDate", name)
        next_due = _date(data, "nextDueDate", name) or start
        if next_due is None:
            raise RecordError(name, "nextDueDate", "missing required value")
        return cls(
            id=str(_required(data, "id", name)),
            account_id=str(_required(data, "accountId", name)),
            amount=_money(data, "amount", name),
            type=_choice(str(_required(data, "type", name)), ("income", "expense", "transfer"), name, "type"),
            frequency=_choice(str(_required(data, "frequency", name)), FREQUENCIES, name, "frequency"),
            start_date=start or next_due,
            next_due_date=next_due,
            currency=str(data.get("currency") or "EUR"),
            description=str(data.get("description") or ""),
            to_account_id=data.get("toAccountId"),
            frequency_interval=_optional_int(data, "frequencyInterval", name) or 1,
            end_date=_date(data, "endDate", name),
            due_date_of_month=_day_of_month(data, "dueDateOfMonth", name),
            is_synthetic=bool(data.get("isSynthetic", False)),
        )


@dataclass
class RecurringOverride:
    """A change to one occurrence of a recurring transaction.

    ``original_date`` identifies the occurrence. The occurrence can be
    skipped, moved to ``date``, or given a different ``amount``.
    """

    recurring_transaction_id: str
    original_date: date
    date: Optional[date] = None
    amount: Optional[Decimal] = None
    description: Optional[str] = None
    is_skipped: bool = False

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "RecurringOverride":
        name = "RecurringOverride"
        return cls(
            recurring_transaction_id=str(_required(data, "recurringTransactionId", name)),
            original_date=_date(data, "originalDate", name, required=True),
            date=_date(data, "date", name),
            amount=_optional_money(data, "amount", name),
            description=data.get("description"),
            is_skipped=bool(data.get("isSkipped", False)),
        )


@dataclass
class FinancialGoal:
    """A savings or spending goal.

    One-time goals have a target ``date``. Recurring goals are funded by
    periodic contributions of ``monthly_contribution`` from ``start_date``
    until ``amount`` is reached.
    """

    id: str
    name: str
    amount: Decimal
    current_amount: Decimal
    type: str  # "one-time" or "recurring"
    transaction_type: str = "expense"
    currency: str = "EUR"
    date: Optional[date] = None
    frequency: Optional[str] = None
    start_date: Optional[date] = None
    monthly_contribution: Optional[Decimal] = None
    due_date_of_month: Optional[int] = None
    payment_account_id: Optional[str] = None

    @property
    def shortfall(self) -> Decimal:
        return self.amount - self.current_amount

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "FinancialGoal":
        name = "FinancialGoal"
        frequency = data.get("frequency")
        if frequency:
            _choice(frequency, FREQUENCIES, name, "frequency")
        return cls(
            id=str(_required(data, "id", name)),
            name=str(data.get("name") or ""),
            amount=_money(data, "amount", name),
            current_amount=_money(data, "currentAmount", name, default="0"),
            type=_choice(str(_required(data, "type", name)), ("one-time", "recurring"), name, "type"),
            transaction_type=_choice(
                str(data.get("transactionType") or "expense"), ("income", "expense"), name, "transactionType"
            ),
            currency=str(data.get("currency") or "EUR"),
            date=_date(data, "date", name),
            frequency=frequency or None,
            start_date=_date(data, "startDate", name),
            monthly_contribution=_optional_money(data, "monthlyContribution", name),
            due_date_of_month=_day_of_month(data, "dueDateOfMonth", name),
            payment_account_id=data.get("paymentAccountId"),
        )


@dataclass
class BillPayment:
    """A one-off bill to pay or deposit to receive."""

    id: str
    description: str
    amount: Decimal
    due_date: date
    status: str = "unpaid"  # "paid", "unpaid" or "overdue"
    type: str = "payment"  # "payment" or "deposit"
    currency: str = "EUR"
    account_id: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "BillPayment":
        name = "BillPayment"
        return cls(
            id=str(_required(data, "id", name)),
            description=str(data.get("description") or ""),
            amount=_money(data, "amount", name),
            due_date=_date(data, "dueDate", name, required=True),
            status=_choice(str(data.get("status") or "unpaid"), ("paid", "unpaid", "overdue"), name, "status"),
            type=_choice(str(data.get("type") or "payment"), ("payment", "deposit"), name, "type"),
            currency=str(data.get("currency") or "EUR"),
            account_id=data.get("accountId"),
        )


@dataclass
class PaymentOverride:
    """User correction of a single amortization period.

    Any field left as ``None`` keeps the computed value.
    """

    total_payment: Optional[Decimal] = None
    principal: Optional[Decimal] = None
    interest: Optional[Decimal] = None

    def is_empty(self) -> bool:
        return self.total_payment is None and self.principal is None and self.interest is None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "PaymentOverride":
        name = "PaymentOverride"
        if not isinstance(data, Mapping):
            raise RecordError(name, "value", f"expected an object; got {type(data).__name__}")
        return cls(
            total_payment=_optional_money(data, "totalPayment", name),
            principal=_optional_money(data, "principal", name),
            interest=_optional_money(data, "interest", name),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalPayment": _float(self.total_payment),
            "principal": _float(self.principal),
            "interest": _float(self.interest),
        }


def parse_override_map(data: Optional[Mapping[Any, Any]]) -> Dict[int, PaymentOverride]:
    """Parse a ``{paymentNumber: {...}}`` mapping; JSON object keys are strings."""
    if data is None:
        return {}
    if not isinstance(data, Mapping):
        raise RecordError("PaymentOverride", "overrides", f"expected an object; got {type(data).__name__}")
    overrides: Dict[int, PaymentOverride] = {}
    for key, value in data.items():
        try:
            number = int(key)
        except (TypeError, ValueError) as exc:
            raise RecordError("PaymentOverride", str(key), "payment number must be an integer") from exc
        overrides[number] = PaymentOverride.from_dict(value or {})
    return overrides


@dataclass
class ScheduledPayment:
    """One period of an amortization schedule."""

    payment_number: int
    date: date
    total_payment: Decimal
    principal: Decimal
    interest: Decimal
    outstanding_balance: Decimal
    status: str  # "Upcoming", "Paid" or "Overdue"
    transaction_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "paymentNumber": self.payment_number,
            "date": self.date.isoformat(),
            "totalPayment": float(self.total_payment),
            "principal": float(self.principal),
            "interest": float(self.interest),
            "outstandingBalance": float(self.outstanding_balance),
            "status": self.status,
            "transactionId": self.transaction_id,
        }


@dataclass
class ForecastPoint:
    date: date
    value: Decimal

    def to_dict(self) -> Dict[str, Any]:
        return {"date": self.date.isoformat(), "value": float(self.value)}


@dataclass
class ForecastEvent:
    """A dated cash movement applied by the forecast, with the balance after it."""

    date: date
    amount: Decimal  # EUR
    description: str
    account_name: str
    kind: str  # "Recurring", "Bill/Payment" or "Financial Goal"
    is_goal: bool = False
    balance: Optional[Decimal] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "date": self.date.isoformat(),
            "amount": float(self.amount),
            "description": self.description,
            "accountName": self.account_name,
            "type": self.kind,
            "isGoal": self.is_goal,
            "balance": _float(self.balance),
        }


@dataclass
class ForecastResult:
    points: List[ForecastPoint] = field(default_factory=list)
    events: List[ForecastEvent] = field(default_factory=list)
    lowest_point: Optional[ForecastPoint] = None


@dataclass
class FinanceData:
    """The parts of a user's finance document the calculators read."""

    accounts: List[Account] = field(default_factory=list)
    transactions: List[Transaction] = field(default_factory=list)
    recurring_transactions: List[RecurringTransaction] = field(default_factory=list)
    recurring_overrides: List[RecurringOverride] = field(default_factory=list)
    goals: List[FinancialGoal] = field(default_factory=list)
    bills: List[BillPayment] = field(default_factory=list)
    loan_overrides: Dict[str, Dict[int, PaymentOverride]] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "FinanceData":
        loan_overrides = data.get("loanPaymentOverrides") or {}
        if not isinstance(loan_overrides, Mapping):
            raise RecordError("FinanceData", "loanPaymentOverrides", "expected an object keyed by account id")
        return cls(
            accounts=[Account.from_dict(a) for a in data.get("accounts") or []],
            transactions=[Transaction.from_dict(t) for t in data.get("transactions") or []],
            recurring_transactions=[
                RecurringTransaction.from_dict(r) for r in data.get("recurringTransactions") or []
            ],
            recurring_overrides=[
                RecurringOverride.from_dict(o) for o in data.get("recurringTransactionOverrides") or []
            ],
            goals=[FinancialGoal.from_dict(g) for g in data.get("financialGoals") or []],
            bills=[BillPayment.from_dict(b) for b in data.get("billsAndPayments") or []],
            loan_overrides={
                str(account_id): parse_override_map(mapping)
                for account_id, mapping in loan_overrides.items()
            },
        )

    def account(self, account_id: str) -> Optional[Account]:
        return next((a for a in self.accounts if a.id == account_id), None)
