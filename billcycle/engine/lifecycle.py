"""Occurrence lifecycle operations.

State machine per occurrence:

    Open --close--> Closed --reopen--> Open
    Open --split--> Closed (paid portion) + new Open (remainder)

Every operation validates its preconditions before touching the instance, so
a rejected operation leaves it unchanged. Instance-level closed state is a
fold over the occurrences (``Instance.is_closed``, backed by
``all_occurrences_closed``) and is never stored on its own.
"""

from datetime import date

from billcycle.core.exceptions import (
    InvalidAmountError,
    InvalidStateError,
    NotFoundError,
)
from billcycle.core.models import (
    Instance,
    InstanceKind,
    MonthlyDocument,
    Occurrence,
    Payment,
    SplitResult,
    Template,
    utcnow,
)
from billcycle.engine.calculator import sum_expected_amounts
from billcycle.engine.periods import get_month_end
from billcycle.engine.recurrence import generate_occurrences

_KEEP = object()


def _clean_notes(notes: str | None) -> str | None:
    if notes is None:
        return None
    return notes.strip() or None


def _clean_id(value: str | None) -> str | None:
    return value or None


def _touch(instance: Instance, *occurrences: Occurrence) -> None:
    now = utcnow()
    for occ in occurrences:
        occ.updated_at = now
    instance.updated_at = now


def resequence(occurrences: list[Occurrence]) -> list[Occurrence]:
    """Order occurrences by expected date and renumber them from 1."""
    ordered = sorted(occurrences, key=lambda occ: (occ.expected_date, occ.sequence))
    for index, occ in enumerate(ordered, start=1):
        occ.sequence = index
    return ordered


# -----------------------------------------------------------------------------
# Lookup
# -----------------------------------------------------------------------------


def find_instance(document: MonthlyDocument, kind: InstanceKind, instance_id: str) -> Instance:
    """Locate an instance in one section of a month.

    Raises:
        NotFoundError: If no instance has that id.
    """
    for instance in document.instances(kind):
        if instance.id == instance_id:
            return instance
    label = "Bill instance" if kind == InstanceKind.BILL else "Income instance"
    raise NotFoundError(label, instance_id)


def find_occurrence(instance: Instance, occurrence_id: str) -> Occurrence:
    """Locate an occurrence within an instance.

    Raises:
        NotFoundError: If no occurrence has that id.
    """
    occurrence = instance.get_occurrence(occurrence_id)
    if occurrence is None:
        raise NotFoundError("Occurrence", occurrence_id)
    return occurrence


# -----------------------------------------------------------------------------
# Close / reopen
# -----------------------------------------------------------------------------


def close(
    instance: Instance,
    occurrence_id: str,
    closed_date: date,
    notes: str | None = None,
    payment_source_id: str | None = None,
) -> Instance:
    """Mark an occurrence as settled.

    Closing an already closed occurrence is allowed and reasserts the
    close date, notes and payment source.

    Raises:
        NotFoundError: If the occurrence does not exist.
    """
    occurrence = find_occurrence(instance, occurrence_id)
    occurrence.is_closed = True
    occurrence.closed_date = closed_date
    occurrence.notes = _clean_notes(notes)
    occurrence.payment_source_id = _clean_id(payment_source_id)
    _touch(instance, occurrence)
    return instance


def reopen(instance: Instance, occurrence_id: str) -> Instance:
    """Mark an occurrence as open again.

    Raises:
        NotFoundError: If the occurrence does not exist.
    """
    occurrence = find_occurrence(instance, occurrence_id)
    occurrence.is_closed = False
    occurrence.closed_date = None
    _touch(instance, occurrence)
    return instance


def close_instance(instance: Instance, closed_date: date) -> Instance:
    """Close every occurrence of an instance on the same date."""
    for occ in instance.occurrences:
        occ.is_closed = True
        occ.closed_date = closed_date
    _touch(instance, *instance.occurrences)
    return instance


def reopen_instance(instance: Instance) -> Instance:
    """Reopen every occurrence of an instance."""
    for occ in instance.occurrences:
        occ.is_closed = False
        occ.closed_date = None
    _touch(instance, *instance.occurrences)
    return instance


# -----------------------------------------------------------------------------
# Split
# -----------------------------------------------------------------------------


def split(
    instance: Instance,
    occurrence_id: str,
    paid_amount: int,
    closed_date: date,
    payment_source_id: str | None = None,
    notes: str | None = None,
) -> SplitResult:
    """Split an open occurrence into a closed paid portion and an open remainder.

    The existing occurrence keeps its id and date, is reduced to
    ``paid_amount`` and closed. The remainder is appended as a new ad-hoc
    occurrence due on the last day of the instance's month, with the next
    unused sequence number. Paid portion plus remainder always equals the
    original expected amount.

    Raises:
        NotFoundError: If the occurrence does not exist.
        InvalidStateError: If the occurrence is already closed.
        InvalidAmountError: If paid_amount is not strictly between 0 and the
            expected amount. A full payment should use ``close``.
    """
    occurrence = find_occurrence(instance, occurrence_id)
    if occurrence.is_closed:
        raise InvalidStateError("Cannot split an already closed occurrence")
    if paid_amount <= 0:
        raise InvalidAmountError("Paid amount must be greater than 0", amount=paid_amount)
    if paid_amount >= occurrence.expected_amount:
        raise InvalidAmountError(
            "Paid amount must be less than expected amount", amount=paid_amount
        )

    remaining = occurrence.expected_amount - paid_amount
    remainder = Occurrence(
        sequence=instance.next_sequence,
        expected_date=get_month_end(instance.month),
        expected_amount=remaining,
        is_adhoc=True,
    )

    occurrence.expected_amount = paid_amount
    occurrence.is_closed = True
    occurrence.closed_date = closed_date
    occurrence.payment_source_id = _clean_id(payment_source_id)
    occurrence.notes = _clean_notes(notes)

    instance.occurrences.append(remainder)
    _touch(instance, occurrence, remainder)
    return SplitResult(closed_occurrence=occurrence, new_occurrence=remainder)


# -----------------------------------------------------------------------------
# Edits and ad-hoc occurrences
# -----------------------------------------------------------------------------


def update_occurrence(
    instance: Instance,
    occurrence_id: str,
    expected_date: date | None = None,
    expected_amount: int | None = None,
    notes: object = _KEEP,
) -> Instance:
    """Edit an occurrence's date, amount or notes.

    Occurrences are resequenced by date afterwards and the instance total
    follows the new amounts. Pass ``notes=None`` to clear notes.

    Raises:
        NotFoundError: If the occurrence does not exist.
        InvalidAmountError: If expected_amount is not positive.
    """
    occurrence = find_occurrence(instance, occurrence_id)
    if expected_amount is not None and expected_amount <= 0:
        raise InvalidAmountError("Expected amount must be greater than 0", amount=expected_amount)

    if expected_date is not None:
        occurrence.expected_date = expected_date
    if expected_amount is not None:
        occurrence.expected_amount = expected_amount
    if notes is not _KEEP:
        occurrence.notes = _clean_notes(notes)  # type: ignore[arg-type]

    instance.occurrences = resequence(instance.occurrences)
    instance.expected_amount = sum_expected_amounts(instance.occurrences)
    instance.is_default = False
    _touch(instance, occurrence)
    return instance


def add_adhoc_occurrence(
    instance: Instance,
    expected_date: date,
    expected_amount: int,
) -> Occurrence:
    """Add a user-defined occurrence to an instance.

    Raises:
        InvalidAmountError: If expected_amount is not positive.
    """
    if expected_amount <= 0:
        raise InvalidAmountError("Expected amount must be greater than 0", amount=expected_amount)

    occurrence = Occurrence(
        sequence=instance.next_sequence,
        expected_date=expected_date,
        expected_amount=expected_amount,
        is_adhoc=True,
    )
    instance.occurrences.append(occurrence)
    instance.occurrences = resequence(instance.occurrences)
    instance.expected_amount = sum_expected_amounts(instance.occurrences)
    instance.is_default = False
    _touch(instance, occurrence)
    return occurrence


def remove_occurrence(instance: Instance, occurrence_id: str) -> Instance:
    """Remove an ad-hoc occurrence.

    Raises:
        NotFoundError: If the occurrence does not exist.
        InvalidStateError: If the occurrence came from the schedule.
    """
    occurrence = find_occurrence(instance, occurrence_id)
    if not occurrence.is_adhoc:
        raise InvalidStateError("Can only remove ad-hoc occurrences")

    instance.occurrences = resequence([o for o in instance.occurrences if o.id != occurrence_id])
    instance.expected_amount = sum_expected_amounts(instance.occurrences)
    instance.is_default = False
    _touch(instance)
    return instance


# -----------------------------------------------------------------------------
# Payments (amount-only mode)
# -----------------------------------------------------------------------------


def add_payment(
    instance: Instance,
    occurrence_id: str,
    amount: int,
    payment_date: date,
) -> Instance:
    """Record a partial payment against an open occurrence.

    Once payments cover the expected amount the occurrence is closed on the
    date of the covering payment.

    Raises:
        NotFoundError: If the occurrence does not exist.
        InvalidAmountError: If the amount is not positive.
        InvalidStateError: If the occurrence is already closed.
    """
    occurrence = find_occurrence(instance, occurrence_id)
    if amount <= 0:
        raise InvalidAmountError("Payment amount must be positive", amount=amount)
    if occurrence.is_closed:
        raise InvalidStateError("Cannot add a payment to a closed occurrence")

    occurrence.payments.append(Payment(amount=amount, date=payment_date))
    if occurrence.paid_amount >= occurrence.expected_amount:
        occurrence.is_closed = True
        occurrence.closed_date = payment_date
    instance.is_default = False
    _touch(instance, occurrence)
    return instance


# -----------------------------------------------------------------------------
# Reset
# -----------------------------------------------------------------------------


def reset_instance(instance: Instance, template: Template | None) -> Instance:
    """Regenerate an instance's occurrences from its template.

    Discards edits, splits and closures on this one instance.

    Raises:
        InvalidStateError: If the instance is ad-hoc (no template).
        NotFoundError: If the referenced template no longer exists.
    """
    if instance.template_id is None:
        raise InvalidStateError("Cannot reset ad-hoc instance - no template reference")
    if template is None:
        raise NotFoundError("Template", instance.template_id)

    instance.occurrences = generate_occurrences(template, instance.month)
    instance.expected_amount = sum_expected_amounts(instance.occurrences)
    instance.billing_period = template.billing_period
    instance.is_default = True
    _touch(instance)
    return instance
