"""Implementation of 'billcycle month' commands.

Generate, sync, inspect, lock and delete monthly documents.
"""

import typer
from rich.panel import Panel

from billcycle.cli.utils import build_service, console, format_currency, run
from billcycle.core.models import Instance, MonthlyDocument, SectionTally
from billcycle.engine.calculator import calculate_month_summary, calculate_remaining_amount

month_app = typer.Typer(help="Generate and manage monthly documents")


def _print_tally(label: str, tally: SectionTally) -> None:
    console.print(f"[bold]{label}[/bold]")
    console.print(f"  Expected:   {format_currency(tally.expected):>12}")
    console.print(f"  Paid:       {format_currency(tally.paid):>12}")
    console.print(f"  Remaining:  {format_currency(tally.remaining):>12}")
    console.print(
        f"  [dim]{tally.closed_occurrences} closed, {tally.open_occurrences} open[/dim]"
    )


def _print_instance(instance: Instance) -> None:
    marker = "[green]✓[/green]" if instance.is_closed else "[yellow]○[/yellow]"
    period = instance.billing_period.value.replace("_", "-")
    console.print(
        f"  {marker} {instance.name or instance.template_id or 'Ad-hoc'} "
        f"[dim]({period}, id {instance.id})[/dim]"
    )
    console.print(
        f"      {format_currency(instance.expected_amount):>12} expected, "
        f"{format_currency(calculate_remaining_amount(instance))} remaining"
    )
    for occ in instance.occurrences:
        status = f"[green]closed {occ.closed_date}[/green]" if occ.is_closed else "open"
        adhoc = " [dim](ad-hoc)[/dim]" if occ.is_adhoc else ""
        console.print(
            f"      #{occ.sequence} {occ.expected_date} "
            f"{format_currency(occ.expected_amount):>12}  {status}{adhoc}  [dim]{occ.id}[/dim]"
        )
        if occ.notes:
            console.print(f"         [dim]{occ.notes}[/dim]")


def _print_document(document: MonthlyDocument) -> None:
    summary = calculate_month_summary(document)

    title = f"Month {document.month}"
    if document.is_read_only:
        title += " (read-only)"
    console.print()
    console.print(Panel(f"[bold]{title}[/bold]", style="cyan"))
    console.print()

    console.print("[bold]Bills[/bold]")
    if not document.bill_instances:
        console.print("  [dim]No bills[/dim]")
    for instance in document.bill_instances:
        _print_instance(instance)
    console.print()

    console.print("[bold]Incomes[/bold]")
    if not document.income_instances:
        console.print("  [dim]No incomes[/dim]")
    for instance in document.income_instances:
        _print_instance(instance)
    console.print()

    _print_tally("Bills total", summary.bills)
    _print_tally("Incomes total", summary.incomes)
    console.print()
    console.print(f"Net expected:   {format_currency(summary.net_expected):>12}")
    console.print(f"Net remaining:  {format_currency(summary.net_remaining):>12}")


@month_app.command(name="generate")
def month_generate(
    ctx: typer.Context,
    month: str = typer.Argument(..., help="Month to generate (YYYY-MM)"),
    force: bool = typer.Option(
        False,
        "--force",
        "-f",
        help="Replace the month if it already exists",
    ),
) -> None:
    """Generate a month from all active bill and income templates."""
    service = build_service(ctx.obj)

    if run(service.month_exists(month)) and not force:
        console.print(f"[yellow]Month {month} already exists[/yellow]")
        console.print("Run with [bold]--force[/bold] to regenerate or use 'billcycle month sync'")
        raise typer.Exit(0)

    document = run(service.generate_month(month))
    console.print(
        f"[green]Generated {month}:[/green] "
        f"{len(document.bill_instances)} bills, {len(document.income_instances)} incomes"
    )


@month_app.command(name="sync")
def month_sync(
    ctx: typer.Context,
    month: str = typer.Argument(..., help="Month to sync (YYYY-MM)"),
) -> None:
    """Add instances for templates created since the month was generated."""
    service = build_service(ctx.obj)
    before = run(service.require_month(month))
    after = run(service.sync_month(month))

    added = (len(after.bill_instances) - len(before.bill_instances)) + (
        len(after.income_instances) - len(before.income_instances)
    )
    if added == 0:
        console.print(f"[dim]{month} is already up to date[/dim]")
    else:
        console.print(f"[green]Synced {month}:[/green] {added} new instances")


@month_app.command(name="show")
def month_show(
    ctx: typer.Context,
    month: str = typer.Argument(..., help="Month to show (YYYY-MM)"),
) -> None:
    """Show instances, occurrences and totals for a month."""
    service = build_service(ctx.obj)
    _print_document(run(service.require_month(month)))


@month_app.command(name="list")
def month_list(ctx: typer.Context) -> None:
    """List stored months with totals, newest first."""
    service = build_service(ctx.obj)
    summaries = run(service.list_months())

    if not summaries:
        console.print("[yellow]No months found[/yellow]")
        console.print("[dim]Run 'billcycle month generate <YYYY-MM>' to create one[/dim]")
        raise typer.Exit(0)

    for summary in summaries:
        lock = " [dim](read-only)[/dim]" if summary.is_read_only else ""
        console.print(
            f"[bold]{summary.month}[/bold]{lock}  "
            f"bills {format_currency(summary.bills.expected):>12}  "
            f"incomes {format_currency(summary.incomes.expected):>12}  "
            f"net {format_currency(summary.net_expected):>12}"
        )


@month_app.command(name="delete")
def month_delete(
    ctx: typer.Context,
    month: str = typer.Argument(..., help="Month to delete (YYYY-MM)"),
    confirm: bool = typer.Option(
        False,
        "--confirm",
        "-y",
        help="Confirm deletion (required)",
    ),
) -> None:
    """Delete a month document.

    Read-only months must be unlocked first. Requires --confirm.
    """
    service = build_service(ctx.obj)
    run(service.require_month(month))

    if not confirm:
        console.print(f"[yellow]This will delete all data for {month}![/yellow]")
        console.print("Run with [bold]--confirm[/bold] to proceed")
        raise typer.Exit(0)

    run(service.delete_month(month))
    console.print(f"[green]Deleted:[/green] {month}")


@month_app.command(name="lock")
def month_lock(
    ctx: typer.Context,
    month: str = typer.Argument(..., help="Month to lock or unlock (YYYY-MM)"),
) -> None:
    """Toggle a month between read-only and editable."""
    service = build_service(ctx.obj)
    document = run(service.toggle_read_only(month))
    state = "read-only" if document.is_read_only else "editable"
    console.print(f"[green]{month} is now {state}[/green]")
