from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from finance_calc.data_models import (
    Account,
    FinanceData,
    FinancialGoal,
    PaymentOverride,
    RecordError,
    RecurringTransaction,
    ScheduledPayment,
    parse_override_map,
)


def test_account_keeps_zero_interest_rate():
    account = Account.from_dict(
        {
            "id": "loan1",
            "name": "Family loan",
            "type": "Loan",
            "balance": -5000,
            "principalAmount": 5000,
            "interestRate": 0,
            "duration": "24",
            "loanStartDate": "2024-01-15",
        }
    )

    assert account.interest_rate == Decimal("0")
    assert account.duration == 24
    assert account.loan_start_date == date(2024, 1, 15)
    assert account.currency == "EUR"


def test_account_without_rate_is_not_interest_free():
    account = Account.from_dict({"id": "loan1", "name": "Loan", "type": "Loan", "balance": 0})
    assert account.interest_rate is None


def test_unknown_account_type_is_rejected():
    with pytest.raises(RecordError) as info:
        Account.from_dict({"id": "x", "name": "X", "type": "Piggy bank"})
    assert info.value.key == "type"
    assert isinstance(info.value, ValueError)


def test_malformed_date_is_rejected():
    with pytest.raises(RecordError, match="loanStartDate"):
        Account.from_dict({"id": "x", "name": "X", "type": "Loan", "loanStartDate": "2024-02-30"})


def test_recurring_next_due_falls_back_to_start():
    rt = RecurringTransaction.from_dict(
        {
            "id": "rt1",
            "accountId": "chk",
            "amount": "45.50",
            "type": "expense",
            "frequency": "monthly",
            "startDate": "2024-01-31",
            "dueDateOfMonth": 31,
        }
    )

    assert rt.next_due_date == date(2024, 1, 31)
    assert rt.frequency_interval == 1
    assert rt.due_date_of_month == 31
    assert rt.amount == Decimal("45.50")


def test_recurring_without_any_date_is_rejected():
    with pytest.raises(RecordError, match="nextDueDate"):
        RecurringTransaction.from_dict(
            {"id": "rt1", "accountId": "chk", "amount": 1, "type": "expense", "frequency": "monthly"}
        )


def test_parse_override_map_uses_integer_keys():
    overrides = parse_override_map({"3": {"principal": 2500}, "7": {"totalPayment": "100", "interest": None}})

    assert overrides[3] == PaymentOverride(principal=Decimal("2500"))
    assert overrides[7].total_payment == Decimal("100")
    assert overrides[7].interest is None
    assert PaymentOverride().is_empty()


def test_parse_override_map_rejects_non_numeric_keys():
    with pytest.raises(RecordError):
        parse_override_map({"first": {"principal": 1}})


def test_finance_data_from_document():
    data = FinanceData.from_dict(
        {
            "accounts": [{"id": "chk", "name": "Checking", "type": "Checking", "balance": 100}],
            "recurringTransactions": [
                {
                    "id": "rt1",
                    "accountId": "chk",
                    "amount": 10,
                    "type": "income",
                    "frequency": "weekly",
                    "nextDueDate": "2024-03-04",
                }
            ],
            "recurringTransactionOverrides": [
                {"recurringTransactionId": "rt1", "originalDate": "2024-03-11", "isSkipped": True}
            ],
            "financialGoals": [{"id": "g1", "name": "Trip", "amount": 500, "type": "one-time", "date": "2024-06-01"}],
            "billsAndPayments": [{"id": "b1", "description": "Tax", "amount": 80, "dueDate": "2024-04-01"}],
            "loanPaymentOverrides": {"loan1": {"2": {"interest": 10}}},
        }
    )

    assert data.account("chk").balance == Decimal("100")
    assert data.account("missing") is None
    assert data.recurring_overrides[0].is_skipped
    assert data.goals[0].shortfall == Decimal("500")
    assert data.bills[0].status == "unpaid"
    assert data.loan_overrides["loan1"][2].interest == Decimal("10")
    assert data.transactions == []


def test_scheduled_payment_to_dict():
    entry = ScheduledPayment(
        payment_number=1,
        date=date(2024, 2, 1),
        total_payment=Decimal("299.71"),
        principal=Decimal("258.04"),
        interest=Decimal("41.67"),
        outstanding_balance=Decimal("9741.96"),
        status="Upcoming",
    )

    assert entry.to_dict() == {
        "paymentNumber": 1,
        "date": "2024-02-01",
        "totalPayment": 299.71,
        "principal": 258.04,
        "interest": 41.67,
        "outstandingBalance": 9741.96,
        "status": "Upcoming",
        "transactionId": None,
    }


@pytest.mark.parametrize("day", [-1, 0, 32])
def test_out_of_range_due_day_is_rejected(day):
    recurring = {
        "id": "rt1",
        "accountId": "chk",
        "amount": 10,
        "type": "expense",
        "frequency": "monthly",
        "startDate": "2024-01-31",
        "dueDateOfMonth": day,
    }
    goal = {"id": "g1", "name": "Trip", "amount": 500, "type": "recurring", "dueDateOfMonth": day}

    with pytest.raises(RecordError, match="dueDateOfMonth"):
        RecurringTransaction.from_dict(recurring)
    with pytest.raises(RecordError, match="dueDateOfMonth"):
        FinancialGoal.from_dict(goal)
    with pytest.raises(RecordError):
        FinanceData.from_dict({"recurringTransactions": [recurring]})


def test_credit_card_fields():
    card = Account.from_dict(
        {
            "id": "cc",
            "name": "Visa",
            "type": "Credit Card",
            "balance": -250,
            "statementStartDate": 15,
            "paymentDate": "5",
            "settlementAccountId": "chk",
        }
    )

    assert (card.statement_start_date, card.payment_date, card.settlement_account_id) == (15, 5, "chk")
    with pytest.raises(RecordError, match="statementStartDate"):
        Account.from_dict({"id": "cc", "name": "Visa", "type": "Credit Card", "statementStartDate": 40})


@pytest.mark.parametrize("overrides", [[{"principal": 1}], {"3": 5}, {"3": [1, 2]}, "3"])
def test_parse_override_map_rejects_non_objects(overrides):
    with pytest.raises(RecordError):
        parse_override_map(overrides)


def test_loan_overrides_must_be_keyed_by_account():
    with pytest.raises(RecordError, match="loanPaymentOverrides"):
        FinanceData.from_dict({"loanPaymentOverrides": [{"2": {"interest": 10}}]})
