"""Month service.

Async orchestration around the engine: every mutation reads the whole month
document, applies one in-memory operation and writes the whole document back
under ``months/{YYYY-MM}.json``. Mutations of the same month are serialized
for the full read-modify-write; the store additionally orders raw writes per
key. Operations validate before mutating, so a rejected call never writes.
"""

from collections.abc import Callable
from datetime import date
from typing import Any, TypeVar

import structlog

from billcycle.core.config import BillcycleSettings
from billcycle.core.exceptions import InvalidMonthError, NotFoundError, ReadOnlyMonthError
from billcycle.core.migration import needs_upgrade, upgrade_instance
from billcycle.core.models import (
    Instance,
    InstanceKind,
    MonthlyDocument,
    MonthSummary,
    Occurrence,
    SplitResult,
    Template,
    utcnow,
)
from billcycle.engine import lifecycle, materializer
from billcycle.engine.calculator import calculate_month_summary
from billcycle.engine.periods import parse_month
from billcycle.services.templates import TemplateRepository
from billcycle.storage.json_store import JsonStore
from billcycle.storage.locks import KeyedMutex

logger = structlog.get_logger()

R = TypeVar("R")


class MonthsService:
    """Generates, syncs and edits monthly documents."""

    def __init__(
        self,
        store: JsonStore,
        templates: TemplateRepository,
        settings: BillcycleSettings,
    ) -> None:
        """Initialize the service.

        Args:
            store: Document store holding month documents.
            templates: Source of bill and income templates.
            settings: Process settings (key layout).
        """
        self.store = store
        self.templates = templates
        self.settings = settings
        self._month_locks = KeyedMutex()

    # -------------------------------------------------------------------------
    # Loading and saving
    # -------------------------------------------------------------------------

    def _key(self, month: str) -> str:
        parse_month(month)
        return self.settings.month_key(month)

    async def _read_document(self, month: str) -> tuple[MonthlyDocument | None, bool]:
        """Load and upgrade a month document.

        Returns:
            The document (None if missing or malformed) and whether any
            stored record had to be upgraded.
        """
        raw = await self.store.read(self._key(month))
        if not isinstance(raw, dict):
            return None, False

        upgraded = False
        data: dict[str, Any] = dict(raw)
        try:
            for field in ("bill_instances", "income_instances"):
                records = data.get(field) or []
                if any(needs_upgrade(r) for r in records if isinstance(r, dict)):
                    upgraded = True
                data[field] = [
                    upgrade_instance(r, month) if isinstance(r, dict) else r for r in records
                ]
            document = MonthlyDocument.model_validate(data)
        except ValueError as e:
            logger.warning("month_malformed", month=month, error=str(e))
            return None, False
        return document, upgraded

    async def save_month(self, document: MonthlyDocument) -> None:
        """Persist a whole month document."""
        await self.store.write(self._key(document.month), document.model_dump(mode="json"))
        logger.debug("month_saved", month=document.month)

    async def get_month(self, month: str) -> MonthlyDocument | None:
        """Load a month, upgrading legacy records once.

        Returns:
            The document, or None if it does not exist.
        """
        document, upgraded = await self._read_document(month)
        if document is None or not upgraded:
            return document

        # Re-read under the lock so a concurrent mutation is not overwritten.
        async with self._month_locks.hold(month):
            document, upgraded = await self._read_document(month)
            if document is not None and upgraded:
                await self.save_month(document)
                logger.info("month_migrated", month=month)
        return document

    async def require_month(self, month: str) -> MonthlyDocument:
        """Load a month or raise NotFoundError."""
        document = await self.get_month(month)
        if document is None:
            raise NotFoundError("Month", month)
        return document

    async def month_exists(self, month: str) -> bool:
        return await self.store.exists(self._key(month))

    async def list_months(self) -> list[MonthSummary]:
        """Summaries of every stored month, newest first."""
        summaries = []
        for key in await self.store.list_keys(f"{self.settings.months_prefix}/"):
            if not key.endswith(".json"):
                continue
            month = key.rsplit("/", 1)[-1][: -len(".json")]
            try:
                parse_month(month)
            except InvalidMonthError:
                continue
            document = await self.get_month(month)
            if document is not None:
                summaries.append(calculate_month_summary(document))
        summaries.sort(key=lambda s: s.month, reverse=True)
        return summaries

    async def get_summary(self, month: str) -> MonthSummary:
        return calculate_month_summary(await self.require_month(month))

    # -------------------------------------------------------------------------
    # Generation
    # -------------------------------------------------------------------------

    async def generate_month(self, month: str) -> MonthlyDocument:
        """Generate a month from active templates, replacing any stored one."""
        parse_month(month)
        bills = await self.templates.get_bills()
        incomes = await self.templates.get_incomes()

        async with self._month_locks.hold(month):
            document = materializer.generate(bills, incomes, month)
            await self.save_month(document)

        logger.info(
            "month_generated",
            month=month,
            bills=len(document.bill_instances),
            incomes=len(document.income_instances),
        )
        return document

    async def sync_month(self, month: str) -> MonthlyDocument:
        """Add instances for templates the stored month is missing.

        Raises:
            NotFoundError: If the month has not been generated yet.
        """
        bills = await self.templates.get_bills()
        incomes = await self.templates.get_incomes()

        async with self._month_locks.hold(month):
            existing, upgraded = await self._read_document(month)
            if existing is None:
                raise NotFoundError("Month", month)
            if existing.is_read_only:
                raise ReadOnlyMonthError(month)

            synced = materializer.sync(existing, bills, incomes, month)
            added_bills = len(synced.bill_instances) - len(existing.bill_instances)
            added_incomes = len(synced.income_instances) - len(existing.income_instances)
            if synced is not existing or upgraded:
                await self.save_month(synced)

        logger.info("month_synced", month=month, bills=added_bills, incomes=added_incomes)
        return synced

    async def ensure_month(self, month: str) -> MonthlyDocument:
        """Sync the month if it exists, otherwise generate it."""
        if await self.month_exists(month):
            return await self.sync_month(month)
        return await self.generate_month(month)

    # -------------------------------------------------------------------------
    # Month management
    # -------------------------------------------------------------------------

    async def delete_month(self, month: str) -> None:
        """Delete a month document.

        Raises:
            NotFoundError: If the month does not exist.
            ReadOnlyMonthError: If the month is locked.
        """
        async with self._month_locks.hold(month):
            document, _ = await self._read_document(month)
            if document is None:
                raise NotFoundError("Month", month)
            if document.is_read_only:
                raise ReadOnlyMonthError(month)
            await self.store.delete(self._key(month))
        logger.info("month_deleted", month=month)

    async def toggle_read_only(self, month: str) -> MonthlyDocument:
        """Lock or unlock a month against changes."""

        def toggle(document: MonthlyDocument) -> MonthlyDocument:
            document.is_read_only = not document.is_read_only
            return document

        document = await self._mutate(month, toggle, "toggle_read_only", allow_read_only=True)
        logger.info("month_lock_changed", month=month, read_only=document.is_read_only)
        return document

    # -------------------------------------------------------------------------
    # Occurrence operations
    # -------------------------------------------------------------------------

    async def _mutate(
        self,
        month: str,
        operation: Callable[[MonthlyDocument], R],
        action: str,
        allow_read_only: bool = False,
    ) -> R:
        """Read-modify-write one month under its lock.

        Raises:
            NotFoundError: If the month (or anything the operation looks up)
                does not exist.
            ReadOnlyMonthError: If the month is locked and the operation is
                not allowed on locked months.
        """
        async with self._month_locks.hold(month):
            document, _ = await self._read_document(month)
            if document is None:
                raise NotFoundError("Month", month)
            if document.is_read_only and not allow_read_only:
                raise ReadOnlyMonthError(month)

            result = operation(document)
            document.updated_at = utcnow()
            await self.save_month(document)

        logger.info(action, month=month)
        return result

    def _instance_operation(
        self,
        kind: InstanceKind,
        instance_id: str,
        apply: Callable[[Instance], R],
    ) -> Callable[[MonthlyDocument], R]:
        def operation(document: MonthlyDocument) -> R:
            return apply(lifecycle.find_instance(document, kind, instance_id))

        return operation

    async def close_occurrence(
        self,
        month: str,
        kind: InstanceKind,
        instance_id: str,
        occurrence_id: str,
        closed_date: date | None = None,
        notes: str | None = None,
        payment_source_id: str | None = None,
    ) -> Instance:
        """Close one occurrence; closed_date defaults to today."""
        closed_on = closed_date or date.today()
        return await self._mutate(
            month,
            self._instance_operation(
                kind,
                instance_id,
                lambda inst: lifecycle.close(
                    inst, occurrence_id, closed_on, notes=notes, payment_source_id=payment_source_id
                ),
            ),
            "occurrence_closed",
        )

    async def reopen_occurrence(
        self,
        month: str,
        kind: InstanceKind,
        instance_id: str,
        occurrence_id: str,
    ) -> Instance:
        return await self._mutate(
            month,
            self._instance_operation(
                kind, instance_id, lambda inst: lifecycle.reopen(inst, occurrence_id)
            ),
            "occurrence_reopened",
        )

    async def split_occurrence(
        self,
        month: str,
        kind: InstanceKind,
        instance_id: str,
        occurrence_id: str,
        paid_amount: int,
        closed_date: date,
        payment_source_id: str | None = None,
        notes: str | None = None,
    ) -> SplitResult:
        """Record a partial payment by splitting an occurrence."""
        result = await self._mutate(
            month,
            self._instance_operation(
                kind,
                instance_id,
                lambda inst: lifecycle.split(
                    inst,
                    occurrence_id,
                    paid_amount,
                    closed_date,
                    payment_source_id=payment_source_id,
                    notes=notes,
                ),
            ),
            "occurrence_split",
        )
        logger.info(
            "split_amounts",
            month=month,
            paid=result.closed_occurrence.expected_amount,
            remaining=result.new_occurrence.expected_amount,
        )
        return result

    async def update_occurrence(
        self,
        month: str,
        kind: InstanceKind,
        instance_id: str,
        occurrence_id: str,
        **changes: Any,
    ) -> Instance:
        """Edit expected_date, expected_amount or notes of an occurrence."""
        return await self._mutate(
            month,
            self._instance_operation(
                kind,
                instance_id,
                lambda inst: lifecycle.update_occurrence(inst, occurrence_id, **changes),
            ),
            "occurrence_updated",
        )

    async def add_adhoc_occurrence(
        self,
        month: str,
        kind: InstanceKind,
        instance_id: str,
        expected_date: date,
        expected_amount: int,
    ) -> Occurrence:
        return await self._mutate(
            month,
            self._instance_operation(
                kind,
                instance_id,
                lambda inst: lifecycle.add_adhoc_occurrence(inst, expected_date, expected_amount),
            ),
            "occurrence_added",
        )

    async def remove_occurrence(
        self,
        month: str,
        kind: InstanceKind,
        instance_id: str,
        occurrence_id: str,
    ) -> Instance:
        return await self._mutate(
            month,
            self._instance_operation(
                kind, instance_id, lambda inst: lifecycle.remove_occurrence(inst, occurrence_id)
            ),
            "occurrence_removed",
        )

    async def add_payment(
        self,
        month: str,
        kind: InstanceKind,
        instance_id: str,
        occurrence_id: str,
        amount: int,
        payment_date: date,
    ) -> Instance:
        return await self._mutate(
            month,
            self._instance_operation(
                kind,
                instance_id,
                lambda inst: lifecycle.add_payment(inst, occurrence_id, amount, payment_date),
            ),
            "payment_added",
        )

    async def close_instance(
        self,
        month: str,
        kind: InstanceKind,
        instance_id: str,
        closed_date: date | None = None,
    ) -> Instance:
        closed_on = closed_date or date.today()
        return await self._mutate(
            month,
            self._instance_operation(
                kind, instance_id, lambda inst: lifecycle.close_instance(inst, closed_on)
            ),
            "instance_closed",
        )

    async def reopen_instance(self, month: str, kind: InstanceKind, instance_id: str) -> Instance:
        return await self._mutate(
            month,
            self._instance_operation(kind, instance_id, lifecycle.reopen_instance),
            "instance_reopened",
        )

    async def reset_instance(self, month: str, kind: InstanceKind, instance_id: str) -> Instance:
        """Regenerate an instance from its template's current definition.

        Raises:
            NotFoundError: If the instance or its template does not exist.
            InvalidStateError: If the instance is ad-hoc.
        """
        document = await self.require_month(month)
        instance = lifecycle.find_instance(document, kind, instance_id)
        template: Template | None = None
        if instance.template_id is not None:
            if kind == InstanceKind.BILL:
                template = await self.templates.get_bill(instance.template_id)
            else:
                template = await self.templates.get_income(instance.template_id)

        return await self._mutate(
            month,
            self._instance_operation(
                kind, instance_id, lambda inst: lifecycle.reset_instance(inst, template)
            ),
            "instance_reset",
        )
