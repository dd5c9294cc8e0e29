"""Domain models for billcycle.

All ledger data structures are defined here using Pydantic v2 for validation.
Amounts are integers in minor currency units (cents) throughout.
"""

from datetime import date, datetime, timezone
from enum import Enum
from typing import Annotated, Any
from uuid import uuid4

from pydantic import AliasChoices, BaseModel, Field, computed_field, model_validator

MONTH_PATTERN = r"^\d{4}-(0[1-9]|1[0-2])$"


def new_id() -> str:
    """Generate a new record identifier."""
    return str(uuid4())


def utcnow() -> datetime:
    """Current UTC timestamp for record metadata."""
    return datetime.now(timezone.utc)


# -----------------------------------------------------------------------------
# Enums
# -----------------------------------------------------------------------------


class BillingPeriod(str, Enum):
    """How often a template recurs.

    MONTHLY: once per month on a day of month.
    WEEKLY / BI_WEEKLY: every 7 / 14 days from the start date.
    SEMI_ANNUALLY: the start date's month and six months later.
    """

    MONTHLY = "monthly"
    WEEKLY = "weekly"
    BI_WEEKLY = "bi_weekly"
    SEMI_ANNUALLY = "semi_annually"


class InstanceKind(str, Enum):
    """Section of a monthly document an instance lives in."""

    BILL = "bill"
    INCOME = "income"


# -----------------------------------------------------------------------------
# Templates
# -----------------------------------------------------------------------------


class Template(BaseModel):
    """A recurring bill or income definition.

    Attributes:
        id: Template identifier, referenced by instances.
        name: Display name.
        amount: Per-occurrence amount in minor units.
        billing_period: Recurrence period.
        day_of_month: Anchor for monthly templates (clamped to month length).
        start_date: Anchor (first real occurrence) for the other periods.
        is_active: Inactive templates are never materialized.
    """

    id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    amount: Annotated[int, Field(gt=0)]
    billing_period: BillingPeriod = BillingPeriod.MONTHLY
    day_of_month: Annotated[int, Field(ge=1, le=31)] | None = None
    start_date: date | None = None
    is_active: bool = True


class BillTemplate(Template):
    """A recurring bill (money out)."""


class IncomeTemplate(Template):
    """A recurring income (money in)."""


# -----------------------------------------------------------------------------
# Occurrences
# -----------------------------------------------------------------------------


class Payment(BaseModel):
    """A partial payment recorded against an occurrence (amount-only mode)."""

    id: str = Field(default_factory=new_id)
    amount: Annotated[int, Field(gt=0)]
    date: date
    created_at: datetime = Field(default_factory=utcnow)


class Occurrence(BaseModel):
    """A single expected payment or receipt inside an instance.

    Closed-state rules:
        - closed_date is set if and only if is_closed is True.
        - is_adhoc marks occurrences not produced by the recurrence
          calculation (user additions, split remainders).
    """

    id: str = Field(default_factory=new_id)
    sequence: Annotated[int, Field(ge=1)]
    expected_date: date
    expected_amount: Annotated[int, Field(gt=0)]
    is_closed: bool = False
    closed_date: date | None = None
    notes: str | None = None
    payment_source_id: str | None = None
    payments: list[Payment] = Field(default_factory=list)
    is_adhoc: bool = False
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @model_validator(mode="after")
    def validate_closed_date(self) -> "Occurrence":
        """Ensure closed_date is present exactly when the occurrence is closed."""
        if self.is_closed and self.closed_date is None:
            raise ValueError("closed occurrence requires closed_date")
        if not self.is_closed and self.closed_date is not None:
            raise ValueError("open occurrence cannot have closed_date")
        return self

    @property
    def paid_amount(self) -> int:
        """Amount settled so far: full amount once closed, else recorded payments."""
        if self.is_closed:
            return self.expected_amount
        return sum(p.amount for p in self.payments)


def all_occurrences_closed(occurrences: list[Occurrence]) -> bool:
    """Instance-level closed state: every occurrence closed.

    An instance without occurrences has nothing settled and is never closed.
    """
    if not occurrences:
        return False
    return all(occ.is_closed for occ in occurrences)


# -----------------------------------------------------------------------------
# Instances
# -----------------------------------------------------------------------------


class Instance(BaseModel):
    """Month-specific materialization of a template (or an ad-hoc entry).

    is_closed and closed_date are derived from the occurrences on every
    access and on serialization; they are never stored independently.
    """

    id: str = Field(default_factory=new_id)
    template_id: str | None = Field(
        default=None,
        validation_alias=AliasChoices("template_id", "bill_id", "income_id"),
    )
    month: str = Field(pattern=MONTH_PATTERN)
    billing_period: BillingPeriod = BillingPeriod.MONTHLY
    name: str | None = None
    expected_amount: Annotated[int, Field(ge=0)] = 0
    occurrences: list[Occurrence] = Field(default_factory=list)
    is_default: bool = True
    is_adhoc: bool = False
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @computed_field  # type: ignore[misc]
    @property
    def is_closed(self) -> bool:
        """True when every occurrence is closed."""
        return all_occurrences_closed(self.occurrences)

    @computed_field  # type: ignore[misc]
    @property
    def closed_date(self) -> date | None:
        """Latest occurrence close date, once the whole instance is closed."""
        if not self.is_closed:
            return None
        return max(occ.closed_date for occ in self.occurrences if occ.closed_date)

    @property
    def next_sequence(self) -> int:
        """Sequence number for a newly appended occurrence."""
        return max((occ.sequence for occ in self.occurrences), default=0) + 1

    def get_occurrence(self, occurrence_id: str) -> Occurrence | None:
        """Find an occurrence by id."""
        for occ in self.occurrences:
            if occ.id == occurrence_id:
                return occ
        return None


# -----------------------------------------------------------------------------
# Monthly Document
# -----------------------------------------------------------------------------


class MonthlyDocument(BaseModel):
    """All instances and month-level data for one calendar month.

    Stored as a single JSON document under ``months/{YYYY-MM}.json`` and
    always written back in full.
    """

    month: str = Field(pattern=MONTH_PATTERN)
    bill_instances: list[Instance] = Field(default_factory=list)
    income_instances: list[Instance] = Field(default_factory=list)
    variable_expenses: list[dict[str, Any]] = Field(default_factory=list)
    free_flowing_expenses: list[dict[str, Any]] = Field(default_factory=list)
    bank_balances: dict[str, int] = Field(default_factory=dict)
    is_read_only: bool = False
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    def instances(self, kind: InstanceKind) -> list[Instance]:
        """Instance list for a section."""
        if kind == InstanceKind.BILL:
            return self.bill_instances
        return self.income_instances

    @property
    def referenced_template_ids(self) -> dict[InstanceKind, set[str]]:
        """Template ids already materialized, per section."""
        return {
            kind: {i.template_id for i in self.instances(kind) if i.template_id is not None}
            for kind in InstanceKind
        }


# -----------------------------------------------------------------------------
# Operation Results
# -----------------------------------------------------------------------------


class SplitResult(BaseModel):
    """Outcome of splitting an occurrence into a paid and a remaining part."""

    closed_occurrence: Occurrence
    new_occurrence: Occurrence


class SectionTally(BaseModel):
    """Expected / settled / outstanding totals for bills or incomes."""

    expected: int = 0
    paid: int = 0
    remaining: int = 0
    open_occurrences: int = 0
    closed_occurrences: int = 0


class MonthSummary(BaseModel):
    """Tallies for a whole month (output model for listings)."""

    month: str
    is_read_only: bool = False
    bills: SectionTally = Field(default_factory=SectionTally)
    incomes: SectionTally = Field(default_factory=SectionTally)

    @computed_field  # type: ignore[misc]
    @property
    def net_expected(self) -> int:
        """Expected income minus expected bills."""
        return self.incomes.expected - self.bills.expected

    @computed_field  # type: ignore[misc]
    @property
    def net_remaining(self) -> int:
        """Income still to receive minus bills still to pay."""
        return self.incomes.remaining - self.bills.remaining
