"""Typed failures surfaced by the backup, restore and delivery paths.

Numeric code (XIRR, risk rules) never raises for degenerate input; it
returns None or a default verdict instead. Only operations that can lose
user data raise.
"""

from __future__ import annotations


class WealthError(Exception):
    """Base class for all application errors."""


class InvalidSnapshotFormat(WealthError, ValueError):
    """The backup document is malformed. Raised before anything is cleared."""


class RestoreTransactionError(WealthError):
    """A table write failed mid-restore. The transaction was rolled back."""

    def __init__(self, message: str, table: str | None = None) -> None:
        super().__init__(message)
        self.table = table


class DeliveryError(WealthError):
    """Both the save picker and the fallback writer failed."""
