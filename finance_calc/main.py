"""Command‑line interface for the finance calculators.

This module uses the ``click`` library to implement a multi‑command
interface over a finance JSON document (the same document the application
stores per user). Users can print a loan's amortization schedule or summary
and project the liquid balance forecast. Results can be printed to the
terminal or exported to JSON files.
"""

from __future__ import annotations

import json
import logging
from datetime import date
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import click

from .amortization import generate_amortization_schedule, generate_synthetic_loan_payments, summarize_schedule
from .config import DISPLAY_MAX_ROWS, FORECAST_DURATIONS, LOAN_ACCOUNT_TYPES, LOG_LEVEL
from .data_models import FinanceData, ScheduledPayment
from .forecast import build_forecast, clip_points, forecast_end_for, lowest_balances
from .formatter import print_forecast_events, print_loan_summary, print_lowest_balances, print_schedule
from .statements import generate_synthetic_credit_card_payments
from .utils import parse_iso_date

logger = logging.getLogger(__name__)


def parse_day(value: Optional[str]) -> Optional[date]:
    """Parse an optional ``YYYY-MM-DD`` option value."""
    if not value:
        return None
    try:
        return parse_iso_date(value)
    except ValueError as exc:
        raise click.BadParameter(str(exc))


def load_document(path: Path) -> FinanceData:
    """Read and parse a finance JSON document."""
    try:
        with path.open("r", encoding="utf-8") as f:
            raw = json.load(f)
    except json.JSONDecodeError as exc:
        raise click.ClickException(f"{path} is not valid JSON: {exc}")
    if not isinstance(raw, dict):
        raise click.ClickException(f"{path} must contain a JSON object")
    try:
        return FinanceData.from_dict(raw)
    except ValueError as exc:
        raise click.ClickException(f"Invalid record in {path}: {exc}")


def _loan_schedule(data: FinanceData, account_id: str, today: Optional[date]) -> List[ScheduledPayment]:
    account = data.account(account_id)
    if account is None:
        raise click.BadParameter(f"No account with id {account_id}", param_hint="--account")
    if account.type not in LOAN_ACCOUNT_TYPES:
        raise click.BadParameter(f"Account {account_id} is a {account.type} account, not a loan", param_hint="--account")
    schedule = generate_amortization_schedule(
        account, data.transactions, data.loan_overrides.get(account_id, {}), today=today
    )
    if not schedule:
        click.echo(f"Account {account_id} is missing principal, rate, duration or start date.", err=True)
    return schedule


def export_to_json(path: Path, payload: Dict[str, Any]) -> None:
    with path.open("w", encoding="utf-8") as f:
        json.dump(payload, f, indent=2)


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Log calculation details")
def cli(verbose: bool) -> None:
    """Loan schedules and balance forecasts for a finance document."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else LOG_LEVEL,
        format="%(levelname)s %(name)s: %(message)s",
    )


@cli.command()
@click.argument("data_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--account", "-a", "account_id", required=True, help="Loan or Lending account id")
@click.option("--today", "today", help="Reference day (YYYY-MM-DD); defaults to the current date")
@click.option("--output", "output", type=str, help="Output file path (.json)")
def schedule(data_file: Path, account_id: str, today: Optional[str], output: Optional[str]) -> None:
    """Compute and print a loan's amortization schedule."""
    data = load_document(data_file)
    entries = _loan_schedule(data, account_id, parse_day(today))
    summary_data = summarize_schedule(entries)
    if output:
        path = Path(output)
        if path.suffix.lower() != ".json":
            raise click.BadParameter("Unsupported output format; use .json")
        export_to_json(path, {"summary": summary_data, "schedule": [e.to_dict() for e in entries]})
        click.echo(f"Schedule exported to {path}")
        return
    print_loan_summary(summary_data)
    # Limit schedule length printed to avoid flooding the terminal
    if len(entries) > DISPLAY_MAX_ROWS:
        click.echo(f"Schedule has {len(entries)} rows; showing first {DISPLAY_MAX_ROWS} rows.")
        print_schedule(entries[:DISPLAY_MAX_ROWS])
    else:
        print_schedule(entries)


@cli.command()
@click.argument("data_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--account", "-a", "account_id", required=True, help="Loan or Lending account id")
@click.option("--today", "today", help="Reference day (YYYY-MM-DD); defaults to the current date")
def summary(data_file: Path, account_id: str, today: Optional[str]) -> None:
    """Compute and print only the summary figures of a loan."""
    data = load_document(data_file)
    print_loan_summary(summarize_schedule(_loan_schedule(data, account_id, parse_day(today))))


@cli.command()
@click.argument("data_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--duration", "duration", type=click.Choice(FORECAST_DURATIONS), default="3M", help="Displayed period")
@click.option("--end", "end", help="Last forecast day (YYYY-MM-DD); overrides --duration")
@click.option("--account", "-a", "account_ids", multiple=True, help="Forecast only these accounts (repeatable)")
@click.option("--include-loans", is_flag=True, help="Add the monthly repayments of configured loans")
@click.option("--include-credit-cards", is_flag=True, help="Add payments of unpaid credit card statements")
@click.option("--events/--no-events", "show_events", default=False, help="Print the dated movements")
@click.option("--today", "today", help="Reference day (YYYY-MM-DD); defaults to the current date")
@click.option("--output", "output", type=str, help="Output file path (.json)")
def forecast(
    data_file: Path,
    duration: str,
    end: Optional[str],
    account_ids: Tuple[str, ...],
    include_loans: bool,
    include_credit_cards: bool,
    show_events: bool,
    today: Optional[str],
    output: Optional[str],
) -> None:
    """Project the liquid balance of the document's accounts."""
    data = load_document(data_file)
    today_value = parse_day(today) or date.today()
    display_end = parse_day(end) or forecast_end_for(duration, today_value)
    if display_end < today_value:
        raise click.BadParameter("End date lies before the reference day", param_hint="--end")
    for account_id in account_ids:
        if data.account(account_id) is None:
            raise click.BadParameter(f"No account with id {account_id}", param_hint="--account")

    recurring = list(data.recurring_transactions)
    if include_loans:
        recurring.extend(generate_synthetic_loan_payments(data.accounts, today=today_value))
    if include_credit_cards:
        recurring.extend(generate_synthetic_credit_card_payments(data.accounts, data.transactions, today=today_value))

    # The internal horizon is always the long one; views are clipped to their period
    horizon = max(display_end, forecast_end_for("10Y", today_value))
    logger.debug("Forecasting %s..%s, displaying through %s", today_value, horizon, display_end)
    result = build_forecast(
        data.accounts,
        recurring,
        data.goals,
        data.bills,
        horizon,
        overrides=data.recurring_overrides,
        today=today_value,
        account_ids=account_ids or None,
    )
    points = clip_points(result.points, display_end)
    events = [e for e in result.events if e.date <= display_end]
    # lowest balance windows read the full horizon
    report = lowest_balances(result.points, today_value)

    if output:
        path = Path(output)
        if path.suffix.lower() != ".json":
            raise click.BadParameter("Unsupported output format; use .json")
        export_to_json(
            path,
            {
                "chartData": [p.to_dict() for p in points],
                "tableData": [e.to_dict() for e in events],
                "lowestBalances": report,
            },
        )
        click.echo(f"Forecast exported to {path}")
        return
    print_lowest_balances(points, report)
    if show_events:
        print_forecast_events(events)


if __name__ == "__main__":
    cli()
