"""Implementation of 'billcycle schedule' command.

Previews the occurrence dates a billing period produces in a month.
"""

import typer
from rich.panel import Panel

from billcycle.cli.utils import console, format_currency, parse_date
from billcycle.core.exceptions import InvalidMonthError
from billcycle.core.models import BillingPeriod
from billcycle.engine.periods import current_month, parse_month
from billcycle.engine.recurrence import (
    billing_period_info,
    is_extra_occurrence_month,
    occurrence_dates,
    prorated_monthly_amount,
)


def schedule_command(
    period: BillingPeriod = typer.Argument(..., help="Billing period"),
    anchor: str = typer.Option(
        None,
        "--anchor",
        "-a",
        help="Date of the first real occurrence (YYYY-MM-DD)",
    ),
    month: str = typer.Option(
        None,
        "--month",
        "-m",
        help="Month to preview (default: current month)",
    ),
    amount: int = typer.Option(
        None,
        "--amount",
        help="Per-occurrence amount in cents, to show the monthly total",
    ),
) -> None:
    """Show the occurrence dates of a schedule in one month."""
    target = month or current_month()
    try:
        parse_month(target)
    except InvalidMonthError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    anchor_date = parse_date(anchor)
    dates = occurrence_dates(period, anchor_date, target)
    info = billing_period_info(period)

    console.print()
    console.print(Panel(f"[bold]{info.description} in {target}[/bold]", style="cyan"))
    if anchor_date is None and period != BillingPeriod.MONTHLY:
        console.print("[dim]No anchor date: using the default placeholder schedule[/dim]")

    if not dates:
        console.print("[yellow]No occurrences this month[/yellow]")
    for day in dates:
        console.print(f"  {day}  {day.strftime('%A')}")

    if is_extra_occurrence_month(period, len(dates)):
        console.print(f"[bold yellow]Extra occurrence month ({len(dates)} occurrences)[/bold yellow]")

    if amount is not None:
        total = prorated_monthly_amount(amount, period, anchor_date, target)
        console.print()
        console.print(f"Monthly total: {format_currency(total):>12}")
