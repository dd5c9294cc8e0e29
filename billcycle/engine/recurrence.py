"""Recurrence calculator.

Pure functions turning a billing period and its anchor into the concrete
occurrence dates, counts and amounts for a target month. Nothing here raises
for months outside a template's range; such months simply have no
occurrences.
"""

from dataclasses import dataclass
from datetime import date, timedelta
from fractions import Fraction

from billcycle.core.models import BillingPeriod, Occurrence, Template, utcnow
from billcycle.engine.periods import (
    clamp_day,
    get_month_end,
    get_month_start,
    month_of,
    months_between,
)

_STEP_DAYS = {
    BillingPeriod.WEEKLY: 7,
    BillingPeriod.BI_WEEKLY: 14,
}


@dataclass(frozen=True)
class BillingPeriodInfo:
    """Display information for a billing period."""

    period: BillingPeriod
    instances_per_month: Fraction
    description: str


BILLING_PERIODS: dict[BillingPeriod, BillingPeriodInfo] = {
    BillingPeriod.MONTHLY: BillingPeriodInfo(
        BillingPeriod.MONTHLY, Fraction(1), "Once per month"
    ),
    BillingPeriod.BI_WEEKLY: BillingPeriodInfo(
        BillingPeriod.BI_WEEKLY, Fraction(26, 12), "Every 2 weeks (26 times per year)"
    ),
    BillingPeriod.WEEKLY: BillingPeriodInfo(
        BillingPeriod.WEEKLY, Fraction(52, 12), "Every week (52 times per year)"
    ),
    BillingPeriod.SEMI_ANNUALLY: BillingPeriodInfo(
        BillingPeriod.SEMI_ANNUALLY, Fraction(2, 12), "Twice per year"
    ),
}


def billing_period_info(period: BillingPeriod) -> BillingPeriodInfo:
    return BILLING_PERIODS[period]


def average_instances_per_month(period: BillingPeriod) -> Fraction:
    """Average occurrences per month over a year.

    Only used when a template has no anchor date (legacy records).
    """
    return BILLING_PERIODS[period].instances_per_month


def round_half_away_from_zero(value: Fraction) -> int:
    """Round a rational to the nearest integer, ties away from zero."""
    magnitude = abs(value)
    whole = magnitude.numerator // magnitude.denominator
    if magnitude - whole >= Fraction(1, 2):
        whole += 1
    return whole if value >= 0 else -whole


# -----------------------------------------------------------------------------
# Occurrence dates
# -----------------------------------------------------------------------------


def _stepped_dates(anchor: date, step: int, target_month: str) -> list[date]:
    """Dates ``anchor + step*k`` (k >= 0) inside the target month.

    The first candidate is found arithmetically, so the search never walks
    more than one step outside the month.
    """
    month_start = get_month_start(target_month)
    month_end = get_month_end(target_month)

    if month_end < anchor:
        return []

    if anchor >= month_start:
        current = anchor
    else:
        periods = -(-(month_start - anchor).days // step)  # ceil division
        current = anchor + timedelta(days=periods * step)

    dates: list[date] = []
    while current <= month_end:
        dates.append(current)
        current += timedelta(days=step)
    return dates


def _semi_annual_dates(anchor: date, target_month: str) -> list[date]:
    """The anchor's month and every sixth month after it, day clamped."""
    offset = months_between(month_of(anchor), target_month)
    if offset < 0 or offset % 6 != 0:
        return []
    return [clamp_day(target_month, anchor.day)]


def _weekday_dates(target_month: str, weekday: int) -> list[date]:
    """Every date in the month falling on ``weekday`` (Monday is 0)."""
    current = get_month_start(target_month)
    month_end = get_month_end(target_month)
    current += timedelta(days=(weekday - current.weekday()) % 7)
    dates: list[date] = []
    while current <= month_end:
        dates.append(current)
        current += timedelta(days=7)
    return dates


def _unanchored_dates(period: BillingPeriod, target_month: str) -> list[date]:
    """Placeholder schedule for legacy templates without a start date."""
    if period == BillingPeriod.BI_WEEKLY:
        return [clamp_day(target_month, 1), clamp_day(target_month, 15)]
    if period == BillingPeriod.WEEKLY:
        return _weekday_dates(target_month, 0)
    if period == BillingPeriod.SEMI_ANNUALLY:
        if get_month_start(target_month).month in (1, 7):
            return [clamp_day(target_month, 1)]
        return []
    return [clamp_day(target_month, 1)]


def monthly_occurrence_dates(day_of_month: int | None, target_month: str) -> list[date]:
    """Single monthly date; day defaults to the 1st and is clamped to month length."""
    return [clamp_day(target_month, day_of_month or 1)]


def occurrence_dates(
    period: BillingPeriod,
    anchor_date: date | None,
    target_month: str,
) -> list[date]:
    """Concrete occurrence dates of a schedule within a month, ascending.

    Args:
        period: Billing period.
        anchor_date: First real occurrence. For monthly schedules only its day
            of month matters. When absent, a legacy placeholder schedule is
            used (1st/15th, Mondays, or January/July 1st).
        target_month: Month as ``YYYY-MM``.

    Returns:
        Dates inside the target month. Empty when the month precedes the
        first occurrence.
    """
    if period == BillingPeriod.MONTHLY:
        return monthly_occurrence_dates(anchor_date.day if anchor_date else None, target_month)

    if anchor_date is None:
        return _unanchored_dates(period, target_month)

    if period == BillingPeriod.SEMI_ANNUALLY:
        return _semi_annual_dates(anchor_date, target_month)

    return _stepped_dates(anchor_date, _STEP_DAYS[period], target_month)


def occurrence_count(
    period: BillingPeriod,
    anchor_date: date | None,
    target_month: str,
) -> int:
    """Number of occurrences of a schedule within a month.

    Monthly schedules always occur exactly once.
    """
    if period == BillingPeriod.MONTHLY:
        return 1
    return len(occurrence_dates(period, anchor_date, target_month))


def prorated_monthly_amount(
    base_amount: int,
    period: BillingPeriod,
    anchor_date: date | None,
    target_month: str,
) -> int:
    """Total amount due in a month for a per-occurrence amount.

    With an anchor date this is exact (amount times occurrences). Without
    one, the yearly average is used and rounded half away from zero.
    """
    if anchor_date is not None:
        return base_amount * occurrence_count(period, anchor_date, target_month)
    return round_half_away_from_zero(base_amount * average_instances_per_month(period))


# -----------------------------------------------------------------------------
# Period heuristics
# -----------------------------------------------------------------------------


def typical_occurrence_count(period: BillingPeriod) -> int:
    """Usual number of occurrences in a month for a period."""
    return {
        BillingPeriod.MONTHLY: 1,
        BillingPeriod.BI_WEEKLY: 2,
        BillingPeriod.WEEKLY: 4,
        BillingPeriod.SEMI_ANNUALLY: 0,
    }[period]


def is_extra_occurrence_month(period: BillingPeriod, count: int) -> bool:
    """True for the occasional third bi-weekly or fifth weekly occurrence."""
    if period in (BillingPeriod.BI_WEEKLY, BillingPeriod.WEEKLY):
        return count > typical_occurrence_count(period)
    return False


# -----------------------------------------------------------------------------
# Templates
# -----------------------------------------------------------------------------


def template_occurrence_dates(template: Template, target_month: str) -> list[date]:
    """Occurrence dates for a template, resolving its anchor.

    Monthly templates anchor on day_of_month (falling back to the start
    date's day); all other periods anchor on start_date.
    """
    if template.billing_period == BillingPeriod.MONTHLY:
        day = template.day_of_month
        if day is None and template.start_date is not None:
            day = template.start_date.day
        return monthly_occurrence_dates(day, target_month)
    return occurrence_dates(template.billing_period, template.start_date, target_month)


def generate_occurrences(template: Template, target_month: str) -> list[Occurrence]:
    """Fresh, open occurrences for a template in a month (sequence 1..N)."""
    now = utcnow()
    return [
        Occurrence(
            sequence=index,
            expected_date=day,
            expected_amount=template.amount,
            created_at=now,
            updated_at=now,
        )
        for index, day in enumerate(template_occurrence_dates(template, target_month), start=1)
    ]
