from __future__ import annotations

import json

import pytest
from click.testing import CliRunner

from finance_calc.main import cli

DOCUMENT = {
    "accounts": [
        {"id": "chk", "name": "Checking", "type": "Checking", "balance": 3000},
        {
            "id": "loan1",
            "name": "Car loan",
            "type": "Loan",
            "balance": -12000,
            "linkedAccountId": "chk",
            "principalAmount": 12000,
            "interestRate": 0,
            "duration": 12,
            "loanStartDate": "2024-01-01",
            "monthlyPayment": 1000,
            "paymentDayOfMonth": 1,
        },
    ],
    "recurringTransactions": [
        {
            "id": "rent",
            "accountId": "chk",
            "amount": 800,
            "type": "expense",
            "frequency": "monthly",
            "startDate": "2024-01-05",
            "nextDueDate": "2024-03-05",
            "description": "Rent",
        }
    ],
    "loanPaymentOverrides": {"loan1": {"3": {"principal": 2000}}},
}


@pytest.fixture
def document(tmp_path):
    path = tmp_path / "finance.json"
    path.write_text(json.dumps(DOCUMENT), encoding="utf-8")
    return path


def test_schedule_prints_summary_and_rows(document):
    result = CliRunner().invoke(cli, ["schedule", str(document), "--account", "loan1", "--today", "2023-12-01"])

    assert result.exit_code == 0, result.output
    assert "Summary" in result.output
    assert "2024-02-01" in result.output
    assert "Upcoming" in result.output


def test_schedule_exports_json_with_stored_overrides(document, tmp_path):
    output = tmp_path / "schedule.json"
    result = CliRunner().invoke(
        cli, ["schedule", str(document), "-a", "loan1", "--today", "2023-12-01", "--output", str(output)]
    )

    assert result.exit_code == 0, result.output
    assert "Schedule exported to" in result.output
    payload = json.loads(output.read_text(encoding="utf-8"))
    assert len(payload["schedule"]) == 12
    assert payload["schedule"][2]["principal"] == 2000.0
    assert payload["summary"]["total_principal"] == 12000.0


def test_schedule_rejects_non_loan_and_unknown_accounts(document):
    runner = CliRunner()
    assert runner.invoke(cli, ["schedule", str(document), "-a", "nope"]).exit_code != 0
    result = runner.invoke(cli, ["summary", str(document), "-a", "chk"])
    assert result.exit_code != 0
    assert "not a loan" in result.output


def test_summary_command(document):
    result = CliRunner().invoke(cli, ["summary", str(document), "-a", "loan1", "--today", "2024-04-15"])

    assert result.exit_code == 0, result.output
    assert "Payments overdue   : 3" in result.output


def test_forecast_prints_balances(document):
    result = CliRunner().invoke(cli, ["forecast", str(document), "--today", "2024-03-01", "--events"])

    assert result.exit_code == 0, result.output
    assert "Starting balance   : 3000.00" in result.output
    assert "Lowest in 90D" in result.output
    assert "Rent" in result.output


def test_forecast_exports_clipped_json(document, tmp_path):
    output = tmp_path / "forecast.json"
    result = CliRunner().invoke(
        cli,
        ["forecast", str(document), "--today", "2024-03-01", "--duration", "3M", "--include-loans",
         "--output", str(output)],
    )

    assert result.exit_code == 0, result.output
    payload = json.loads(output.read_text(encoding="utf-8"))
    assert len(payload["chartData"]) == 93
    assert payload["chartData"][-1]["date"] == "2024-06-01"
    # March to June: four loan payments of 1000 and three rents of 800
    assert payload["chartData"][-1]["value"] == 3000 - 4000 - 2400
    assert [row["period"] for row in payload["lowestBalances"]] == ["7D", "30D", "90D", "365D"]


def test_forecast_rejects_end_before_today(document):
    result = CliRunner().invoke(cli, ["forecast", str(document), "--today", "2024-03-01", "--end", "2024-02-01"])
    assert result.exit_code != 0


def test_invalid_record_is_reported(tmp_path):
    path = tmp_path / "broken.json"
    path.write_text(
        json.dumps({"accounts": [{"id": "chk", "name": "C", "type": "Checking", "loanStartDate": "soon"}]}),
        encoding="utf-8",
    )
    result = CliRunner().invoke(cli, ["forecast", str(path)])

    assert result.exit_code == 1
    assert "Invalid record" in result.output


CARD_DOCUMENT = {
    "accounts": [
        {"id": "chk", "name": "Checking", "type": "Checking", "balance": 1000},
        {
            "id": "cc",
            "name": "Visa",
            "type": "Credit Card",
            "balance": -200,
            "statementStartDate": 15,
            "paymentDate": 5,
            "settlementAccountId": "chk",
        },
    ],
    "transactions": [
        {"id": "t1", "accountId": "cc", "date": "2024-03-16", "amount": -200, "type": "expense"},
    ],
}


def test_forecast_includes_credit_card_statement_for_selected_account(tmp_path):
    path = tmp_path / "cards.json"
    path.write_text(json.dumps(CARD_DOCUMENT), encoding="utf-8")
    output = tmp_path / "forecast.json"
    result = CliRunner().invoke(
        cli,
        ["forecast", str(path), "--today", "2024-03-20", "-a", "chk", "--include-credit-cards",
         "--output", str(output)],
    )

    assert result.exit_code == 0, result.output
    payload = json.loads(output.read_text(encoding="utf-8"))
    assert [(row["date"], row["amount"]) for row in payload["tableData"]] == [("2024-05-05", -200.0)]
    assert payload["chartData"][0]["value"] == 1000.0
    assert payload["chartData"][-1]["value"] == 800.0


def test_forecast_rejects_unknown_account_selection(document):
    result = CliRunner().invoke(cli, ["forecast", str(document), "--today", "2024-03-01", "-a", "nope"])
    assert result.exit_code != 0
    assert "No account with id nope" in result.output
