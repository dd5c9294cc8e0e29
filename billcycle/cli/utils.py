"""Shared helpers for CLI commands."""

import asyncio
from collections.abc import Coroutine
from datetime import date
from pathlib import Path
from typing import Any, TypeVar

import typer
from rich.console import Console

from billcycle.core.config import BillcycleSettings
from billcycle.core.exceptions import BillcycleError
from billcycle.core.log import configure_logging
from billcycle.core.models import InstanceKind
from billcycle.services.months import MonthsService
from billcycle.services.templates import TemplateRepository
from billcycle.storage.json_store import JsonStore

console = Console()

T = TypeVar("T")


def load_settings(data_dir: Path | None = None) -> BillcycleSettings:
    """Build settings from the environment, overriding the data directory."""
    settings = BillcycleSettings()
    if data_dir is not None:
        settings = settings.model_copy(update={"data_dir": data_dir})
    configure_logging(settings)
    return settings


def build_service(settings: BillcycleSettings) -> MonthsService:
    """Wire store, template repository and month service together."""
    store = JsonStore(settings.data_dir)
    return MonthsService(store, TemplateRepository(store, settings), settings)


def run(coro: Coroutine[Any, Any, T]) -> T:
    """Run a service call, turning domain errors into a red message and exit 1."""
    try:
        return asyncio.run(coro)
    except BillcycleError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)


def parse_date(value: str | None) -> date | None:
    """Parse an optional YYYY-MM-DD option value."""
    if value is None:
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        console.print(f"[red]Error:[/red] Invalid date: {value}. Expected YYYY-MM-DD")
        raise typer.Exit(1)


def parse_kind(value: str) -> InstanceKind:
    try:
        return InstanceKind(value.lower())
    except ValueError:
        console.print(f"[red]Error:[/red] Unknown kind: {value}. Use 'bill' or 'income'")
        raise typer.Exit(1)


def format_currency(amount: int, currency: str = "$") -> str:
    """Format minor units as a currency string.

    Args:
        amount: Amount in cents.
        currency: Symbol placed before the number.

    Returns:
        Formatted string like "$1,234.56" or "-$12.00".
    """
    sign = "-" if amount < 0 else ""
    whole, cents = divmod(abs(amount), 100)
    return f"{sign}{currency}{whole:,}.{cents:02d}"
