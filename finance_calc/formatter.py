"""Output helpers for the finance calculators.

This module renders loan schedules, loan summaries and balance forecasts as
simple tab separated tables for the terminal.
"""

from __future__ import annotations

from typing import Dict, Iterable, List

from .data_models import ForecastEvent, ForecastPoint, ScheduledPayment


def print_loan_summary(summary: Dict[str, object]) -> None:
    """Print the aggregate figures of a loan schedule."""
    print("Summary")
    print("-" * 72)
    print(f"Total principal    : {summary['total_principal']:.2f}")
    print(f"Total interest     : {summary['total_interest']:.2f}")
    print(f"Total cost         : {summary['total_cost']:.2f}")
    print(f"Paid principal     : {summary['paid_principal']:.2f}")
    print(f"Paid interest      : {summary['paid_interest']:.2f}")
    print(f"Remaining balance  : {summary['remaining_balance']:.2f}")
    print(f"Payments made      : {summary['payments_made']}")
    if summary.get("payments_overdue"):
        print(f"Payments overdue   : {summary['payments_overdue']}")
    next_payment = summary.get("next_payment")
    if next_payment:
        print(f"Next payment       : {next_payment['date']} {next_payment['totalPayment']:.2f}")
    if summary.get("end_date"):
        print(f"End date           : {summary['end_date']}")
    print("-" * 72)


def print_schedule(schedule: Iterable[ScheduledPayment]) -> None:
    """Print the amortization schedule as a simple table."""
    headers = ["No", "Date", "Payment", "Principal", "Interest", "Balance", "Status"]
    print("\t".join(headers))
    for entry in schedule:
        row = [
            str(entry.payment_number),
            entry.date.isoformat(),
            f"{entry.total_payment:.2f}",
            f"{entry.principal:.2f}",
            f"{entry.interest:.2f}",
            f"{entry.outstanding_balance:.2f}",
            entry.status,
        ]
        print("\t".join(row))


def print_forecast_events(events: Iterable[ForecastEvent]) -> None:
    """Print the dated movements applied by a forecast and the balance after each."""
    print("\t".join(["Date", "Type", "Account", "Description", "Amount", "Balance"]))
    for event in events:
        print(
            "\t".join(
                [
                    event.date.isoformat(),
                    event.kind,
                    event.account_name,
                    event.description,
                    f"{event.amount:+.2f}",
                    f"{event.balance:.2f}" if event.balance is not None else "",
                ]
            )
        )


def print_lowest_balances(points: List[ForecastPoint], report: List[Dict[str, object]]) -> None:
    if not points:
        print("No liquid accounts to forecast.")
        return
    print("Forecast")
    print("-" * 72)
    print(f"Starting balance   : {points[0].value:.2f} ({points[0].date.isoformat()})")
    print(f"Ending balance     : {points[-1].value:.2f} ({points[-1].date.isoformat()})")
    for row in report:
        print(f"Lowest in {row['period']:<9s}: {row['lowestBalance']:.2f} ({row['date']})")
    print("-" * 72)
