"""Tests for settings and exceptions."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from billcycle.core.config import BillcycleSettings, LogFormat
from billcycle.core.exceptions import (
    BillcycleError,
    InvalidAmountError,
    NotFoundError,
    ReadOnlyMonthError,
    StorageIOError,
)


class TestSettings:
    """Tests for BillcycleSettings."""

    def test_defaults(self, monkeypatch: pytest.MonkeyPatch) -> None:
        for name in ("DATA_DIR", "LOG_LEVEL", "LOG_FORMAT", "MONTHS_PREFIX"):
            monkeypatch.delenv(f"BILLCYCLE_{name}", raising=False)

        settings = BillcycleSettings(_env_file=None)

        assert settings.data_dir == Path("data")
        assert settings.log_level == "INFO"
        assert settings.log_format == LogFormat.CONSOLE
        assert settings.month_key("2025-01") == "months/2025-01.json"
        assert settings.bills_key == "entities/bills.json"
        assert settings.incomes_key == "entities/incomes.json"

    def test_environment_overrides(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
        monkeypatch.setenv("BILLCYCLE_DATA_DIR", str(tmp_path))
        monkeypatch.setenv("BILLCYCLE_LOG_LEVEL", "debug")
        monkeypatch.setenv("BILLCYCLE_LOG_FORMAT", "json")
        monkeypatch.setenv("BILLCYCLE_MONTHS_PREFIX", "/ledger/months/")

        settings = BillcycleSettings(_env_file=None)

        assert settings.data_dir == tmp_path
        assert settings.log_level == "DEBUG"
        assert settings.log_format == LogFormat.JSON
        assert settings.month_key("2025-01") == "ledger/months/2025-01.json"

    def test_rejects_unknown_log_level(self) -> None:
        with pytest.raises(ValidationError):
            BillcycleSettings(log_level="verbose", _env_file=None)

    def test_rejects_empty_prefix(self) -> None:
        with pytest.raises(ValidationError):
            BillcycleSettings(entities_prefix="/", _env_file=None)


class TestExceptions:
    """Tests for the exception hierarchy."""

    def test_not_found_message(self) -> None:
        error = NotFoundError("Occurrence", "occ-1")
        assert str(error) == "Occurrence with id occ-1 not found"
        assert error.to_dict() == {
            "kind": "NotFound",
            "message": "Occurrence with id occ-1 not found",
            "resource": "Occurrence",
            "id": "occ-1",
        }

    def test_read_only_is_invalid_state(self) -> None:
        error = ReadOnlyMonthError("2025-01")
        assert error.kind == "InvalidState"
        assert error.details == {"month": "2025-01"}

    def test_amount_details(self) -> None:
        error = InvalidAmountError("Paid amount must be greater than 0", amount=0)
        assert error.details == {"amount": 0}
        assert isinstance(error, BillcycleError)

    def test_storage_errors_are_not_recoverable(self) -> None:
        error = StorageIOError("disk full", key="months/2025-01.json")
        assert not error.recoverable
        assert "StorageIOError" in repr(error)
