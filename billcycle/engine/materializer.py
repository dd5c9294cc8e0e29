"""Monthly instance materializer.

Builds a month's bill and income instances from active templates. Generation
produces a brand-new document; synchronization only appends instances for
templates the month does not reference yet and never touches existing ones.
"""

from collections.abc import Iterable
from datetime import datetime

from billcycle.core.models import (
    Instance,
    InstanceKind,
    MonthlyDocument,
    Template,
    utcnow,
)
from billcycle.engine.calculator import sum_expected_amounts
from billcycle.engine.periods import parse_month
from billcycle.engine.recurrence import generate_occurrences


def build_instance(template: Template, target_month: str, now: datetime | None = None) -> Instance:
    """Materialize one template into a default, open instance for a month.

    Args:
        template: Source template (assumed active).
        target_month: Month as ``YYYY-MM``.
        now: Timestamp for record metadata.

    Returns:
        Instance whose expected_amount is the sum of its occurrences.
    """
    now = now or utcnow()
    occurrences = generate_occurrences(template, target_month)
    return Instance(
        template_id=template.id,
        month=target_month,
        billing_period=template.billing_period,
        name=template.name,
        expected_amount=sum_expected_amounts(occurrences),
        occurrences=occurrences,
        is_default=True,
        is_adhoc=False,
        created_at=now,
        updated_at=now,
    )


def _build_instances(
    templates: Iterable[Template],
    target_month: str,
    now: datetime,
    skip_ids: set[str] | None = None,
) -> list[Instance]:
    skip_ids = skip_ids or set()
    instances = []
    for template in templates:
        if not template.is_active:
            continue
        if template.id in skip_ids:
            continue
        instances.append(build_instance(template, target_month, now))
    return instances


def generate(
    bills: Iterable[Template],
    incomes: Iterable[Template],
    target_month: str,
) -> MonthlyDocument:
    """Generate a fresh month document from all active templates.

    Args:
        bills: Bill templates (inactive ones are skipped).
        incomes: Income templates (inactive ones are skipped).
        target_month: Month as ``YYYY-MM``.

    Returns:
        New MonthlyDocument. An empty template set yields empty lists.
    """
    parse_month(target_month)
    now = utcnow()
    return MonthlyDocument(
        month=target_month,
        bill_instances=_build_instances(bills, target_month, now),
        income_instances=_build_instances(incomes, target_month, now),
        created_at=now,
        updated_at=now,
    )


def sync(
    existing: MonthlyDocument,
    bills: Iterable[Template],
    incomes: Iterable[Template],
    target_month: str | None = None,
) -> MonthlyDocument:
    """Append instances for active templates the month does not reference yet.

    Existing instances, including edited, closed or split ones, are kept
    exactly as they are even if their template changed since generation.
    Calling this twice with the same templates adds nothing the second time.

    Args:
        existing: Current month document (not modified).
        bills: Bill templates.
        incomes: Income templates.
        target_month: Month as ``YYYY-MM``; defaults to the document's month.

    Returns:
        The document with any new instances appended. When nothing is missing
        the returned document equals ``existing``.
    """
    target_month = target_month or existing.month
    referenced = existing.referenced_template_ids
    now = utcnow()

    new_bills = _build_instances(bills, target_month, now, referenced[InstanceKind.BILL])
    new_incomes = _build_instances(incomes, target_month, now, referenced[InstanceKind.INCOME])

    if not new_bills and not new_incomes:
        return existing

    synced = existing.model_copy(deep=True)
    synced.bill_instances.extend(new_bills)
    synced.income_instances.extend(new_incomes)
    synced.updated_at = now
    return synced
