"""billcycle command-line entry point."""

from pathlib import Path

import typer

from billcycle.cli.months import month_app
from billcycle.cli.occurrences import occurrence_app
from billcycle.cli.schedule import schedule_command
from billcycle.cli.utils import load_settings

app = typer.Typer(
    name="billcycle",
    help="Recurring bills and incomes, materialized month by month",
    no_args_is_help=True,
)


@app.callback()
def main(
    ctx: typer.Context,
    data_dir: Path = typer.Option(
        None,
        "--data-dir",
        "-D",
        help="Data directory (default: $BILLCYCLE_DATA_DIR or ./data)",
    ),
) -> None:
    """Load settings once and hand them to every subcommand."""
    ctx.obj = load_settings(data_dir)


app.add_typer(month_app, name="month")
app.add_typer(occurrence_app, name="occurrence")
app.command(name="schedule")(schedule_command)


if __name__ == "__main__":
    app()
