"""Exception taxonomy for ``balance``.

Every failure the application reports to the user derives from
:class:`BalanceError`. Per-row validation failures during CSV import are not
exceptions; they are collected as :class:`~balance.interchange.RowError` values
so the remaining rows can proceed.
"""

from __future__ import annotations


class BalanceError(Exception):
    """Base class for user-visible ``balance`` errors."""


class CsvStructureError(BalanceError):
    """The CSV payload could not be parsed at all.

    Raised for malformed quoting, a row whose field count disagrees with the
    header, or bytes that are not valid UTF-8. Aborts the whole import.
    """

    def __init__(self, message: str, *, line: int | None = None) -> None:
        super().__init__(message)
        self.line = line


class NothingToExportError(BalanceError):
    """The collection(s) handed to an encoder were empty; no file is produced."""


class NotAuthenticatedError(BalanceError):
    """A mutating operation was attempted without a signed-in user."""

    def __init__(self, action: str | None = None) -> None:
        msg = "Please sign in first"
        if action:
            msg = f"Please sign in to {action}"
        super().__init__(msg)
        self.action = action


class StoreError(BalanceError):
    """The external store rejected or failed an operation.

    ``str(err)`` carries the store's own message verbatim.
    """

    def __init__(self, operation: str, message: str) -> None:
        super().__init__(message)
        self.operation = operation


class InvalidRecordError(BalanceError):
    """A manually created or edited record failed validation."""


__all__ = [
    "BalanceError",
    "CsvStructureError",
    "InvalidRecordError",
    "NotAuthenticatedError",
    "NothingToExportError",
    "StoreError",
]
