"""Schema versions of stored instance records and their upgrade path.

Month documents written by older releases hold flat instance records (one
amount, an ``is_paid`` flag, payments on the instance itself). Current records
carry occurrences. Both shapes are modelled explicitly and resolved through a
discriminated union; ``upgrade_instance`` turns any of them into the current
``Instance`` once, at load time.
"""

from datetime import date, datetime
from typing import Annotated, Any, Union

from pydantic import (
    AliasChoices,
    BaseModel,
    Discriminator,
    Field,
    Tag,
    TypeAdapter,
)

from billcycle.core.models import (
    MONTH_PATTERN,
    BillingPeriod,
    Instance,
    Occurrence,
    Payment,
    utcnow,
)


class LegacyInstanceRecord(BaseModel):
    """Flat instance record without occurrences (schema version 1)."""

    id: str
    template_id: str | None = Field(
        default=None,
        validation_alias=AliasChoices("template_id", "bill_id", "income_id"),
    )
    month: str = Field(pattern=MONTH_PATTERN)
    billing_period: BillingPeriod = BillingPeriod.MONTHLY
    name: str | None = None
    amount: Annotated[int, Field(ge=0)] = 0
    expected_amount: Annotated[int, Field(ge=0)] | None = None
    actual_amount: int | None = None
    payments: list[Payment] = Field(default_factory=list)
    is_default: bool = False
    is_paid: bool = False
    is_adhoc: bool = False
    due_date: date | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


def record_version(record: Any) -> str:
    """Discriminate stored instance records by shape."""
    if isinstance(record, dict):
        return "current" if "occurrences" in record else "legacy"
    return "current" if isinstance(record, Instance) else "legacy"


StoredInstance = Annotated[
    Union[
        Annotated[LegacyInstanceRecord, Tag("legacy")],
        Annotated[Instance, Tag("current")],
    ],
    Discriminator(record_version),
]

_stored_instance = TypeAdapter(StoredInstance)


def needs_upgrade(record: dict[str, Any]) -> bool:
    return record_version(record) != "current"


def _upgrade_legacy(record: LegacyInstanceRecord) -> Instance:
    now = utcnow()
    expected = record.expected_amount if record.expected_amount is not None else record.amount
    due = record.due_date or date.fromisoformat(f"{record.month}-01")

    occurrences = []
    # A zero amount had nothing due; it upgrades to an instance without occurrences.
    if expected > 0:
        occurrences.append(
            Occurrence(
                sequence=1,
                expected_date=due,
                expected_amount=expected,
                is_closed=record.is_paid,
                closed_date=due if record.is_paid else None,
                payments=list(record.payments),
                created_at=record.created_at or now,
                updated_at=record.updated_at or now,
            )
        )
    return Instance(
        id=record.id,
        template_id=record.template_id,
        month=record.month,
        billing_period=record.billing_period,
        name=record.name,
        expected_amount=expected,
        occurrences=occurrences,
        is_default=record.is_default,
        is_adhoc=record.is_adhoc,
        created_at=record.created_at or now,
        updated_at=record.updated_at or now,
    )


def upgrade_instance(record: dict[str, Any], month: str | None = None) -> Instance:
    """Parse a stored instance record of any version into an Instance.

    Args:
        record: Raw JSON record.
        month: Month of the enclosing document, used when the record
            predates the per-instance ``month`` field.

    Returns:
        Instance in the current schema.
    """
    if month is not None and "month" not in record:
        record = {**record, "month": month}
    parsed = _stored_instance.validate_python(record)
    if isinstance(parsed, LegacyInstanceRecord):
        return _upgrade_legacy(parsed)
    return parsed
