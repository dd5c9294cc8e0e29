"""Shared fixtures for billcycle tests."""

import json
from datetime import date
from pathlib import Path

import pytest
import structlog

from billcycle.core.config import BillcycleSettings
from billcycle.core.models import BillingPeriod, BillTemplate, IncomeTemplate
from billcycle.services.months import MonthsService
from billcycle.services.templates import TemplateRepository
from billcycle.storage.json_store import JsonStore


@pytest.fixture(autouse=True)
def reset_structlog():
    """Drop any logging configuration a test (e.g. the CLI) installed."""
    yield
    structlog.reset_defaults()


@pytest.fixture
def settings(tmp_path: Path) -> BillcycleSettings:
    return BillcycleSettings(data_dir=tmp_path / "data")


@pytest.fixture
def store(settings: BillcycleSettings) -> JsonStore:
    return JsonStore(settings.data_dir)


@pytest.fixture
def bill_templates() -> list[BillTemplate]:
    return [
        BillTemplate(id="rent", name="Rent", amount=150000, day_of_month=1),
        BillTemplate(
            id="daycare",
            name="Daycare",
            amount=10000,
            billing_period=BillingPeriod.BI_WEEKLY,
            start_date=date(2025, 1, 3),
        ),
        BillTemplate(
            id="insurance",
            name="Car insurance",
            amount=60000,
            billing_period=BillingPeriod.SEMI_ANNUALLY,
            start_date=date(2025, 1, 15),
        ),
        BillTemplate(id="gym", name="Gym", amount=4000, day_of_month=31, is_active=False),
    ]


@pytest.fixture
def income_templates() -> list[IncomeTemplate]:
    return [
        IncomeTemplate(
            id="salary",
            name="Salary",
            amount=250000,
            billing_period=BillingPeriod.BI_WEEKLY,
            start_date=date(2025, 1, 10),
        ),
    ]


def write_templates(
    settings: BillcycleSettings,
    bills: list[BillTemplate],
    incomes: list[IncomeTemplate],
) -> None:
    """Seed template lists directly on disk."""
    for key, templates in ((settings.bills_key, bills), (settings.incomes_key, incomes)):
        path = settings.data_dir / key
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps([t.model_dump(mode="json") for t in templates]))


@pytest.fixture
def service(
    settings: BillcycleSettings,
    store: JsonStore,
    bill_templates: list[BillTemplate],
    income_templates: list[IncomeTemplate],
) -> MonthsService:
    write_templates(settings, bill_templates, income_templates)
    return MonthsService(store, TemplateRepository(store, settings), settings)
