"""Exceptions raised by billcycle.

Every error carries a kind and a human-readable message so callers can show
it directly. All of them inherit from BillcycleError.

Example:
    try:
        await service.split_occurrence(...)
    except InvalidAmountError as e:
        console.print(f"[red]Error:[/red] {e}")
    except BillcycleError as e:
        logger.error("operation_failed", kind=e.kind, error=str(e))
"""

from typing import Any


class BillcycleError(Exception):
    """Base exception for all billcycle errors.

    Attributes:
        message: Human-readable error description.
        details: Additional context about the failure.
        recoverable: Whether the caller can reasonably retry or correct input.
    """

    kind = "Error"

    def __init__(
        self,
        message: str,
        *,
        details: dict[str, Any] | None = None,
        recoverable: bool = True,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.recoverable = recoverable

    def __str__(self) -> str:
        return self.message

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"details={self.details!r}, "
            f"recoverable={self.recoverable!r})"
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialize for display or API responses."""
        return {"kind": self.kind, "message": self.message, **self.details}


class NotFoundError(BillcycleError):
    """A referenced month, instance or occurrence does not exist.

    Example:
        >>> raise NotFoundError("Occurrence", "occ-1")
        NotFoundError: Occurrence with id occ-1 not found
    """

    kind = "NotFound"

    def __init__(self, resource: str, identifier: str | None = None) -> None:
        message = (
            f"{resource} with id {identifier} not found"
            if identifier
            else f"{resource} not found"
        )
        details: dict[str, Any] = {"resource": resource}
        if identifier:
            details["id"] = identifier
        super().__init__(message, details=details)
        self.resource = resource
        self.identifier = identifier


class InvalidStateError(BillcycleError):
    """The operation is not legal for the current occurrence or month state."""

    kind = "InvalidState"


class ReadOnlyMonthError(InvalidStateError):
    """The month is locked against changes."""

    def __init__(self, month: str) -> None:
        super().__init__(
            f"Month {month} is read-only. Unlock it to make changes.",
            details={"month": month},
        )
        self.month = month


class InvalidAmountError(BillcycleError):
    """An amount is outside the range the operation accepts."""

    kind = "InvalidAmount"

    def __init__(self, message: str, *, amount: int | None = None) -> None:
        details = {"amount": amount} if amount is not None else None
        super().__init__(message, details=details)
        self.amount = amount


class InvalidMonthError(BillcycleError):
    """A month string is not in YYYY-MM format."""

    kind = "InvalidMonth"

    def __init__(self, value: str) -> None:
        super().__init__(
            f"Invalid month format: {value!r}. Expected YYYY-MM",
            details={"value": value},
        )
        self.value = value


class StorageIOError(BillcycleError):
    """A persistence operation failed.

    Not retried automatically; the per-key write lock is released so later
    operations on the same key still run.
    """

    kind = "IOFailure"

    def __init__(self, message: str, *, key: str | None = None) -> None:
        super().__init__(
            message,
            details={"key": key} if key else None,
            recoverable=False,
        )
        self.key = key


__all__ = [
    "BillcycleError",
    "NotFoundError",
    "InvalidStateError",
    "ReadOnlyMonthError",
    "InvalidAmountError",
    "InvalidMonthError",
    "StorageIOError",
]
