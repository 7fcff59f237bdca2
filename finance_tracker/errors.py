"""Exception types shared by the store, models and export layers."""

from __future__ import annotations


class FinanceTrackerError(Exception):
    """Base class for all application errors."""


class InvalidRecordError(FinanceTrackerError, ValueError):
    """Raised when user input cannot be turned into a valid record."""


class StoreError(FinanceTrackerError):
    """Raised when the persistence layer fails to complete an operation."""


class RecordNotFoundError(StoreError, LookupError):
    """Raised when a record does not exist for the calling user.

    Records owned by another user are reported the same way, so callers
    cannot discover ids they are not allowed to see.
    """

    def __init__(self, kind: str, record_id: str):
        super().__init__(f"No {kind} with id '{record_id}'")
        self.kind = kind
        self.record_id = record_id


class ExportError(FinanceTrackerError, ValueError):
    """Raised when records cannot be serialised for export."""
