"""Template repository.

Bills and incomes are flat JSON arrays owned by the CRUD layer. This
repository only reads them (and writes whole lists for seeding/import);
field validation beyond the model schema belongs to that layer.
"""

from typing import TypeVar

import structlog
from pydantic import TypeAdapter, ValidationError

from billcycle.core.config import BillcycleSettings
from billcycle.core.models import BillTemplate, IncomeTemplate, Template
from billcycle.storage.json_store import JsonStore

logger = structlog.get_logger()

T = TypeVar("T", bound=Template)


class TemplateRepository:
    """Reads bill and income templates from the document store."""

    def __init__(self, store: JsonStore, settings: BillcycleSettings) -> None:
        self.store = store
        self.settings = settings

    async def _load(self, key: str, model: type[T]) -> list[T]:
        raw = await self.store.read(key)
        if not isinstance(raw, list):
            return []
        templates: list[T] = []
        for record in raw:
            try:
                templates.append(model.model_validate(record))
            except ValidationError as e:
                logger.warning(
                    "template_skipped",
                    key=key,
                    template_id=record.get("id") if isinstance(record, dict) else None,
                    error=str(e),
                )
        return templates

    async def get_bills(self) -> list[BillTemplate]:
        return await self._load(self.settings.bills_key, BillTemplate)

    async def get_incomes(self) -> list[IncomeTemplate]:
        return await self._load(self.settings.incomes_key, IncomeTemplate)

    async def get_bill(self, template_id: str) -> BillTemplate | None:
        return next((t for t in await self.get_bills() if t.id == template_id), None)

    async def get_income(self, template_id: str) -> IncomeTemplate | None:
        return next((t for t in await self.get_incomes() if t.id == template_id), None)

    async def save_bills(self, bills: list[BillTemplate]) -> None:
        adapter = TypeAdapter(list[BillTemplate])
        await self.store.write(self.settings.bills_key, adapter.dump_python(bills, mode="json"))

    async def save_incomes(self, incomes: list[IncomeTemplate]) -> None:
        adapter = TypeAdapter(list[IncomeTemplate])
        await self.store.write(self.settings.incomes_key, adapter.dump_python(incomes, mode="json"))
