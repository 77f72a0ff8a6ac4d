import logging
import os
from datetime import date
from uuid import uuid4

from flask import Flask, jsonify, request, session

from finance_calc.amortization import generate_amortization_schedule, generate_synthetic_loan_payments, summarize_schedule
from finance_calc.config import FORECAST_DURATIONS, LOAN_ACCOUNT_TYPES, LOG_LEVEL
from finance_calc.data_models import Account, FinanceData, PaymentOverride, Transaction, parse_override_map
from finance_calc.forecast import build_forecast, clip_points, forecast_end_for, lowest_balances
from finance_calc.statements import generate_synthetic_credit_card_payments
from finance_calc.utils import parse_iso_date
from finance_calc_web.override_store import create_store_from_env

logger = logging.getLogger(__name__)

app = Flask(__name__)
app.secret_key = os.environ.get("FLASK_SECRET_KEY", "dev-secret-key")
override_store = create_store_from_env(os.environ.get("FINANCE_CALC_DATABASE_URL"))


def _ensure_user_token() -> str:
    token = session.get("user_token")
    if not token:
        token = uuid4().hex
        session["user_token"] = token
        session.modified = True
    return token


def _payload() -> dict:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValueError("Request body must be a JSON object")
    return data


def _reference_day(data: dict) -> date:
    return parse_iso_date(data.get("today")) or date.today()


@app.errorhandler(ValueError)
def bad_request(exc: ValueError):
    logger.warning("Rejected %s %s: %s", request.method, request.path, exc)
    return jsonify({"error": str(exc)}), 400


@app.post("/api/schedule")
def loan_schedule():
    """Amortization schedule of one loan, with the user's stored overrides applied."""
    data = _payload()
    account = Account.from_dict(data.get("account") or {})
    if account.type not in LOAN_ACCOUNT_TYPES:
        raise ValueError(f"Account {account.id} is a {account.type} account, not a loan")
    transactions = [Transaction.from_dict(t) for t in data.get("transactions") or []]

    overrides = override_store.get_overrides(_ensure_user_token(), account.id)
    # Overrides sent with the request win over stored ones
    overrides.update(parse_override_map(data.get("overrides")))

    schedule = generate_amortization_schedule(account, transactions, overrides, today=_reference_day(data))
    return jsonify(
        {
            "schedule": [entry.to_dict() for entry in schedule],
            "summary": summarize_schedule(schedule),
        }
    )


@app.get("/api/overrides/<account_id>")
def list_overrides(account_id: str):
    overrides = override_store.get_overrides(_ensure_user_token(), account_id)
    return jsonify({str(number): override.to_dict() for number, override in overrides.items()})


@app.post("/api/overrides/<account_id>/<int:payment_number>")
def save_override(account_id: str, payment_number: int):
    if payment_number < 1:
        raise ValueError("Payment numbers start at 1")
    override = PaymentOverride.from_dict(_payload())
    override_store.set_override(_ensure_user_token(), account_id, payment_number, override)
    return list_overrides(account_id)


@app.post("/api/overrides/<account_id>/clear")
def clear_overrides(account_id: str):
    override_store.clear_overrides(_ensure_user_token(), account_id)
    return jsonify({})


@app.post("/api/forecast")
def balance_forecast():
    """Liquid balance forecast for the posted finance document."""
    data = _payload()
    document = FinanceData.from_dict(data)
    today = _reference_day(data)

    duration = data.get("duration") or "3M"
    if duration not in FORECAST_DURATIONS:
        raise ValueError(f"Unknown forecast duration: {duration}")
    display_end = parse_iso_date(data.get("endDate")) or forecast_end_for(duration, today)
    if display_end < today:
        raise ValueError("endDate lies before today")

    recurring = list(document.recurring_transactions)
    if data.get("includeLoans"):
        recurring.extend(generate_synthetic_loan_payments(document.accounts, today=today))
    if data.get("includeCreditCards"):
        recurring.extend(generate_synthetic_credit_card_payments(document.accounts, document.transactions, today=today))

    account_ids = data.get("accountIds")
    if account_ids is not None and not isinstance(account_ids, list):
        raise ValueError("accountIds must be a list of account ids")

    result = build_forecast(
        document.accounts,
        recurring,
        document.goals,
        document.bills,
        max(display_end, forecast_end_for("10Y", today)),
        overrides=document.recurring_overrides,
        today=today,
        account_ids=account_ids,
    )
    points = clip_points(result.points, display_end)
    lowest = min(points, key=lambda p: p.value) if points else None
    return jsonify(
        {
            "chartData": [p.to_dict() for p in points],
            "tableData": [e.to_dict() for e in result.events if e.date <= display_end],
            "lowestPoint": lowest.to_dict() if lowest else None,
            "lowestBalances": lowest_balances(result.points, today),
        }
    )


if __name__ == "__main__":
    print("Starting finance calculator API...")
    logging.basicConfig(level=LOG_LEVEL)
    app.run(debug=os.environ.get("FLASK_DEBUG") == "1")
