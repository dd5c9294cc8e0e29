"""Implementation of 'billcycle occurrence' commands.

Close, reopen and split individual occurrences of an instance.
"""

from datetime import date

import typer

from billcycle.cli.utils import (
    build_service,
    console,
    format_currency,
    parse_date,
    parse_kind,
    run,
)

occurrence_app = typer.Typer(help="Close, reopen and split occurrences")

KIND_OPTION = typer.Option(
    "bill",
    "--kind",
    "-k",
    help="Instance section: bill or income",
)


@occurrence_app.command(name="close")
def occurrence_close(
    ctx: typer.Context,
    month: str = typer.Argument(..., help="Month (YYYY-MM)"),
    instance_id: str = typer.Argument(..., help="Instance id"),
    occurrence_id: str = typer.Argument(..., help="Occurrence id"),
    kind: str = KIND_OPTION,
    closed_date: str = typer.Option(
        None,
        "--date",
        "-d",
        help="Close date (YYYY-MM-DD, default: today)",
    ),
    notes: str = typer.Option(None, "--notes", "-n", help="Notes"),
    source: str = typer.Option(None, "--source", "-s", help="Payment source id"),
) -> None:
    """Mark an occurrence as paid or received."""
    service = build_service(ctx.obj)
    instance = run(
        service.close_occurrence(
            month,
            parse_kind(kind),
            instance_id,
            occurrence_id,
            closed_date=parse_date(closed_date),
            notes=notes,
            payment_source_id=source,
        )
    )
    console.print(f"[green]Closed[/green] occurrence {occurrence_id}")
    if instance.is_closed:
        console.print(f"[dim]All occurrences of {instance.name or instance.id} are closed[/dim]")


@occurrence_app.command(name="reopen")
def occurrence_reopen(
    ctx: typer.Context,
    month: str = typer.Argument(..., help="Month (YYYY-MM)"),
    instance_id: str = typer.Argument(..., help="Instance id"),
    occurrence_id: str = typer.Argument(..., help="Occurrence id"),
    kind: str = KIND_OPTION,
) -> None:
    """Mark a closed occurrence as open again."""
    service = build_service(ctx.obj)
    run(service.reopen_occurrence(month, parse_kind(kind), instance_id, occurrence_id))
    console.print(f"[green]Reopened[/green] occurrence {occurrence_id}")


@occurrence_app.command(name="split")
def occurrence_split(
    ctx: typer.Context,
    month: str = typer.Argument(..., help="Month (YYYY-MM)"),
    instance_id: str = typer.Argument(..., help="Instance id"),
    occurrence_id: str = typer.Argument(..., help="Occurrence id"),
    amount: int = typer.Option(
        ...,
        "--amount",
        "-a",
        help="Amount paid now, in cents",
    ),
    kind: str = KIND_OPTION,
    closed_date: str = typer.Option(
        None,
        "--date",
        "-d",
        help="Payment date (YYYY-MM-DD, default: today)",
    ),
    notes: str = typer.Option(None, "--notes", "-n", help="Notes"),
    source: str = typer.Option(None, "--source", "-s", help="Payment source id"),
) -> None:
    """Record a partial payment.

    The occurrence is closed for the paid amount and the remainder becomes a
    new open occurrence due at the end of the month.
    """
    service = build_service(ctx.obj)
    result = run(
        service.split_occurrence(
            month,
            parse_kind(kind),
            instance_id,
            occurrence_id,
            paid_amount=amount,
            closed_date=parse_date(closed_date) or date.today(),
            payment_source_id=source,
            notes=notes,
        )
    )
    remainder = result.new_occurrence
    console.print(
        f"[green]Paid[/green] {format_currency(result.closed_occurrence.expected_amount)}"
    )
    console.print(
        f"Remaining {format_currency(remainder.expected_amount)} due {remainder.expected_date} "
        f"[dim]({remainder.id})[/dim]"
    )
