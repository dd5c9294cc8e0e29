"""Month tally calculations.

Aggregates occurrence-level amounts into instance, section and month
totals for display and listings.
"""

from billcycle.core.models import (
    Instance,
    MonthlyDocument,
    MonthSummary,
    Occurrence,
    SectionTally,
)


def sum_expected_amounts(occurrences: list[Occurrence]) -> int:
    """Sum of expected amounts over occurrences.

    Args:
        occurrences: Occurrences of one instance.

    Returns:
        Total expected amount in minor units.
    """
    return sum(occ.expected_amount for occ in occurrences)


def sum_payments(occurrences: list[Occurrence]) -> int:
    """Sum of recorded partial payments over occurrences.

    Only counts the ``payments`` lists (amount-only mode); closing an
    occurrence without payments does not add anything here.

    Args:
        occurrences: Occurrences of one instance.

    Returns:
        Total of all payment amounts.
    """
    return sum(p.amount for occ in occurrences for p in occ.payments)


def calculate_paid_amount(instance: Instance) -> int:
    """Amount settled for an instance.

    Closed occurrences count in full; open occurrences count their
    recorded payments, capped at their expected amount.

    Args:
        instance: Instance to evaluate.

    Returns:
        Settled amount (>= 0).
    """
    return sum(min(occ.paid_amount, occ.expected_amount) for occ in instance.occurrences)


def calculate_remaining_amount(instance: Instance) -> int:
    """Amount still outstanding for an instance.

    Args:
        instance: Instance to evaluate.

    Returns:
        Outstanding amount (>= 0). Zero once every occurrence is closed.
    """
    return sum(
        max(0, occ.expected_amount - occ.paid_amount)
        for occ in instance.occurrences
        if not occ.is_closed
    )


def calculate_section_tally(instances: list[Instance]) -> SectionTally:
    """Aggregate a list of instances into a section tally.

    Args:
        instances: Bill or income instances of one month.

    Returns:
        SectionTally with expected, paid and remaining totals.
    """
    expected = 0
    paid = 0
    remaining = 0
    open_count = 0
    closed_count = 0

    for instance in instances:
        expected += sum_expected_amounts(instance.occurrences)
        paid += calculate_paid_amount(instance)
        remaining += calculate_remaining_amount(instance)
        for occ in instance.occurrences:
            if occ.is_closed:
                closed_count += 1
            else:
                open_count += 1

    return SectionTally(
        expected=expected,
        paid=paid,
        remaining=remaining,
        open_occurrences=open_count,
        closed_occurrences=closed_count,
    )


def calculate_month_summary(document: MonthlyDocument) -> MonthSummary:
    """Summarize a month document.

    Args:
        document: Month to summarize.

    Returns:
        MonthSummary with bill and income tallies.
    """
    return MonthSummary(
        month=document.month,
        is_read_only=document.is_read_only,
        bills=calculate_section_tally(document.bill_instances),
        incomes=calculate_section_tally(document.income_instances),
    )
