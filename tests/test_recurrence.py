"""Tests for the recurrence calculator and month helpers."""

from datetime import date
from fractions import Fraction

import pytest

from billcycle.core.exceptions import InvalidMonthError
from billcycle.core.models import BillingPeriod, BillTemplate
from billcycle.engine.periods import (
    add_months,
    clamp_day,
    get_month_end,
    iterate_months,
    months_between,
    parse_month,
)
from billcycle.engine.recurrence import (
    average_instances_per_month,
    generate_occurrences,
    is_extra_occurrence_month,
    occurrence_count,
    occurrence_dates,
    prorated_monthly_amount,
    round_half_away_from_zero,
    template_occurrence_dates,
)


class TestPeriods:
    """Tests for YYYY-MM helpers."""

    def test_parse_month(self) -> None:
        assert parse_month("2025-02") == (2025, 2)

    @pytest.mark.parametrize("value", ["2025-13", "2025-1", "25-01", "2025/01", ""])
    def test_parse_month_rejects_malformed(self, value: str) -> None:
        with pytest.raises(InvalidMonthError):
            parse_month(value)

    def test_month_end_handles_leap_years(self) -> None:
        assert get_month_end("2024-02") == date(2024, 2, 29)
        assert get_month_end("2025-02") == date(2025, 2, 28)

    def test_clamp_day(self) -> None:
        assert clamp_day("2025-04", 31) == date(2025, 4, 30)
        assert clamp_day("2025-04", 12) == date(2025, 4, 12)

    def test_add_months_crosses_years(self) -> None:
        assert add_months("2025-11", 3) == "2026-02"
        assert add_months("2025-01", -1) == "2024-12"

    def test_months_between(self) -> None:
        assert months_between("2025-01", "2025-07") == 6
        assert months_between("2025-07", "2025-01") == -6

    def test_iterate_months(self) -> None:
        assert list(iterate_months("2024-11", "2025-02")) == [
            "2024-11",
            "2024-12",
            "2025-01",
            "2025-02",
        ]


class TestBiWeekly:
    """Tests for bi-weekly schedules anchored on a start date."""

    anchor = date(2025, 1, 3)

    def test_three_occurrences_in_january(self) -> None:
        dates = occurrence_dates(BillingPeriod.BI_WEEKLY, self.anchor, "2025-01")
        assert dates == [date(2025, 1, 3), date(2025, 1, 17), date(2025, 1, 31)]

    def test_two_occurrences_in_february(self) -> None:
        dates = occurrence_dates(BillingPeriod.BI_WEEKLY, self.anchor, "2025-02")
        assert dates == [date(2025, 2, 14), date(2025, 2, 28)]

    def test_far_month_stays_on_cadence(self) -> None:
        dates = occurrence_dates(BillingPeriod.BI_WEEKLY, self.anchor, "2025-12")
        assert dates == [date(2025, 12, 5), date(2025, 12, 19)]

    def test_months_before_anchor_are_empty(self) -> None:
        """The anchor is the first real occurrence; nothing precedes it."""
        assert occurrence_dates(BillingPeriod.BI_WEEKLY, self.anchor, "2024-12") == []
        assert occurrence_count(BillingPeriod.BI_WEEKLY, self.anchor, "2024-12") == 0

    def test_far_past_month_is_empty(self) -> None:
        assert occurrence_dates(BillingPeriod.BI_WEEKLY, self.anchor, "2019-07") == []

    def test_years_after_anchor_stays_on_cadence(self) -> None:
        dates = occurrence_dates(BillingPeriod.BI_WEEKLY, self.anchor, "2030-03")
        assert dates == [date(2030, 3, 8), date(2030, 3, 22)]

    def test_extra_occurrence_month(self) -> None:
        assert is_extra_occurrence_month(BillingPeriod.BI_WEEKLY, 3)
        assert not is_extra_occurrence_month(BillingPeriod.BI_WEEKLY, 2)


class TestWeekly:
    """Tests for weekly schedules."""

    anchor = date(2025, 1, 6)

    def test_four_mondays_in_january(self) -> None:
        assert occurrence_count(BillingPeriod.WEEKLY, self.anchor, "2025-01") == 4

    def test_february_dates(self) -> None:
        dates = occurrence_dates(BillingPeriod.WEEKLY, self.anchor, "2025-02")
        assert dates == [date(2025, 2, 3), date(2025, 2, 10), date(2025, 2, 17), date(2025, 2, 24)]

    def test_five_occurrence_month(self) -> None:
        dates = occurrence_dates(BillingPeriod.WEEKLY, self.anchor, "2025-03")
        assert len(dates) == 5
        assert dates[-1] == date(2025, 3, 31)
        assert is_extra_occurrence_month(BillingPeriod.WEEKLY, len(dates))

    def test_anchor_mid_month(self) -> None:
        """An anchor inside the month starts the schedule on that day."""
        dates = occurrence_dates(BillingPeriod.WEEKLY, date(2025, 1, 20), "2025-01")
        assert dates == [date(2025, 1, 20), date(2025, 1, 27)]

    def test_months_before_anchor_are_empty(self) -> None:
        assert occurrence_dates(BillingPeriod.WEEKLY, self.anchor, "2024-12") == []
        assert occurrence_count(BillingPeriod.WEEKLY, self.anchor, "2024-12") == 0

    def test_far_past_month_is_empty(self) -> None:
        assert occurrence_dates(BillingPeriod.WEEKLY, self.anchor, "2020-06") == []


class TestSemiAnnual:
    """Tests for semi-annual schedules."""

    anchor = date(2025, 1, 15)

    def test_anchor_month(self) -> None:
        assert occurrence_dates(BillingPeriod.SEMI_ANNUALLY, self.anchor, "2025-01") == [
            date(2025, 1, 15)
        ]

    def test_six_months_later(self) -> None:
        assert occurrence_count(BillingPeriod.SEMI_ANNUALLY, self.anchor, "2025-07") == 1

    def test_following_year(self) -> None:
        assert occurrence_count(BillingPeriod.SEMI_ANNUALLY, self.anchor, "2026-01") == 1

    def test_off_months_are_empty(self) -> None:
        assert occurrence_count(BillingPeriod.SEMI_ANNUALLY, self.anchor, "2025-03") == 0

    def test_before_anchor_is_empty(self) -> None:
        assert occurrence_count(BillingPeriod.SEMI_ANNUALLY, self.anchor, "2024-07") == 0

    def test_day_is_clamped(self) -> None:
        dates = occurrence_dates(BillingPeriod.SEMI_ANNUALLY, date(2025, 8, 31), "2026-02")
        assert dates == [date(2026, 2, 28)]


class TestMonthly:
    """Tests for monthly schedules."""

    def test_day_31_in_february(self) -> None:
        assert occurrence_dates(BillingPeriod.MONTHLY, date(2025, 1, 31), "2025-02") == [
            date(2025, 2, 28)
        ]

    def test_day_31_in_leap_february(self) -> None:
        assert occurrence_dates(BillingPeriod.MONTHLY, date(2024, 1, 31), "2024-02") == [
            date(2024, 2, 29)
        ]

    def test_count_is_always_one(self) -> None:
        assert occurrence_count(BillingPeriod.MONTHLY, date(2030, 1, 1), "2025-01") == 1
        assert occurrence_count(BillingPeriod.MONTHLY, None, "2025-01") == 1


class TestUnanchoredSchedules:
    """Legacy templates without a start date use placeholder schedules."""

    def test_bi_weekly_first_and_fifteenth(self) -> None:
        assert occurrence_dates(BillingPeriod.BI_WEEKLY, None, "2025-03") == [
            date(2025, 3, 1),
            date(2025, 3, 15),
        ]

    def test_weekly_mondays(self) -> None:
        assert occurrence_dates(BillingPeriod.WEEKLY, None, "2025-01") == [
            date(2025, 1, 6),
            date(2025, 1, 13),
            date(2025, 1, 20),
            date(2025, 1, 27),
        ]

    def test_semi_annual_january_and_july(self) -> None:
        assert occurrence_dates(BillingPeriod.SEMI_ANNUALLY, None, "2025-07") == [date(2025, 7, 1)]
        assert occurrence_dates(BillingPeriod.SEMI_ANNUALLY, None, "2025-08") == []


class TestProration:
    """Tests for prorated_monthly_amount."""

    def test_anchored_is_exact(self) -> None:
        amount = prorated_monthly_amount(10000, BillingPeriod.BI_WEEKLY, date(2025, 1, 3), "2025-01")
        assert amount == 30000

    def test_unanchored_uses_yearly_average(self) -> None:
        """10000 * 26 / 12 = 21666.67, rounded to 21667."""
        amount = prorated_monthly_amount(10000, BillingPeriod.BI_WEEKLY, None, "2025-01")
        assert amount == 21667

    def test_unanchored_weekly(self) -> None:
        amount = prorated_monthly_amount(10000, BillingPeriod.WEEKLY, None, "2025-01")
        assert amount == 43333

    def test_anchored_off_month_is_zero(self) -> None:
        amount = prorated_monthly_amount(
            60000, BillingPeriod.SEMI_ANNUALLY, date(2025, 1, 15), "2025-02"
        )
        assert amount == 0

    def test_average_instances(self) -> None:
        assert average_instances_per_month(BillingPeriod.MONTHLY) == 1
        assert average_instances_per_month(BillingPeriod.SEMI_ANNUALLY) == Fraction(1, 6)

    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            (Fraction(5, 2), 3),
            (Fraction(-5, 2), -3),
            (Fraction(7, 3), 2),
            (Fraction(-7, 3), -2),
            (Fraction(4), 4),
        ],
    )
    def test_round_half_away_from_zero(self, value: Fraction, expected: int) -> None:
        assert round_half_away_from_zero(value) == expected


class TestTemplateOccurrences:
    """Tests for resolving template anchors."""

    def test_monthly_uses_day_of_month(self) -> None:
        template = BillTemplate(id="rent", name="Rent", amount=100, day_of_month=31)
        assert template_occurrence_dates(template, "2025-04") == [date(2025, 4, 30)]

    def test_monthly_falls_back_to_start_date(self) -> None:
        template = BillTemplate(id="rent", name="Rent", amount=100, start_date=date(2024, 6, 12))
        assert template_occurrence_dates(template, "2025-04") == [date(2025, 4, 12)]

    def test_monthly_defaults_to_first(self) -> None:
        template = BillTemplate(id="rent", name="Rent", amount=100)
        assert template_occurrence_dates(template, "2025-04") == [date(2025, 4, 1)]

    def test_generate_occurrences(self) -> None:
        template = BillTemplate(
            id="daycare",
            name="Daycare",
            amount=10000,
            billing_period=BillingPeriod.BI_WEEKLY,
            start_date=date(2025, 1, 3),
        )
        occurrences = generate_occurrences(template, "2025-01")

        assert [o.sequence for o in occurrences] == [1, 2, 3]
        assert all(o.expected_amount == 10000 for o in occurrences)
        assert not any(o.is_closed or o.is_adhoc for o in occurrences)
        assert len({o.id for o in occurrences}) == 3
