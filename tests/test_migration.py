"""Tests for upgrading stored instance records."""

from datetime import date

import pytest
from pydantic import ValidationError

from billcycle.core.migration import needs_upgrade, record_version, upgrade_instance
from billcycle.core.models import BillingPeriod, Instance


LEGACY_PAID = {
    "id": "inst-1",
    "bill_id": "rent",
    "month": "2025-01",
    "name": "Rent",
    "amount": 150000,
    "is_paid": True,
    "is_default": True,
    "due_date": "2025-01-05",
}

LEGACY_OPEN = {
    "id": "inst-2",
    "income_id": "salary",
    "billing_period": "bi_weekly",
    "name": "Salary",
    "amount": 250000,
    "expected_amount": 500000,
    "is_paid": False,
    "payments": [{"id": "p1", "amount": 1000, "date": "2025-01-10"}],
}


class TestRecordVersion:
    """Tests for detecting record versions."""

    def test_legacy_without_occurrences(self) -> None:
        assert record_version(LEGACY_PAID) == "legacy"
        assert needs_upgrade(LEGACY_PAID)

    def test_current_with_occurrences(self) -> None:
        record = {"id": "x", "month": "2025-01", "occurrences": []}
        assert record_version(record) == "current"
        assert not needs_upgrade(record)


class TestUpgradeInstance:
    """Tests for upgrade_instance."""

    def test_paid_record_becomes_closed_occurrence(self) -> None:
        instance = upgrade_instance(LEGACY_PAID)

        assert instance.id == "inst-1"
        assert instance.template_id == "rent"
        assert instance.expected_amount == 150000
        assert len(instance.occurrences) == 1
        occ = instance.occurrences[0]
        assert occ.sequence == 1
        assert occ.expected_date == date(2025, 1, 5)
        assert occ.is_closed
        assert occ.closed_date == date(2025, 1, 5)
        assert instance.is_closed

    def test_open_record_keeps_payments(self) -> None:
        instance = upgrade_instance(LEGACY_OPEN, month="2025-01")

        assert instance.template_id == "salary"
        assert instance.month == "2025-01"
        assert instance.billing_period == BillingPeriod.BI_WEEKLY
        assert instance.expected_amount == 500000
        occ = instance.occurrences[0]
        assert occ.expected_date == date(2025, 1, 1)
        assert not occ.is_closed
        assert occ.paid_amount == 1000

    def test_current_record_is_parsed_as_is(self) -> None:
        current = upgrade_instance(LEGACY_PAID).model_dump(mode="json")

        instance = upgrade_instance(current)

        assert isinstance(instance, Instance)
        assert instance.occurrences[0].id == current["occurrences"][0]["id"]
        assert instance.is_closed

    def test_stored_closed_flags_are_derived(self) -> None:
        """Stored is_closed on an instance is ignored in favour of its occurrences."""
        record = {
            "id": "x",
            "month": "2025-01",
            "is_closed": True,
            "closed_date": "2025-01-31",
            "occurrences": [
                {"sequence": 1, "expected_date": "2025-01-05", "expected_amount": 100},
            ],
        }

        instance = upgrade_instance(record)

        assert not instance.is_closed
        assert instance.closed_date is None

    def test_legacy_invalid_month_is_rejected(self) -> None:
        record = {"id": "x", "bill_id": "b", "month": "2025-13", "amount": 100}

        with pytest.raises(ValidationError):
            upgrade_instance(record)

    def test_legacy_zero_amount_has_no_occurrences(self) -> None:
        instance = upgrade_instance({**LEGACY_PAID, "amount": 0})

        assert instance.expected_amount == 0
        assert instance.occurrences == []
        assert not instance.is_closed
