"""Error and warning types raised or reported by the practice sheet."""

from __future__ import annotations


class SheetError(Exception):
    """Base class for practice sheet errors."""


class ValidationError(SheetError):
    """Raised when an ingestion payload is malformed.

    Raised before any tree mutation, so the store keeps its prior tree.
    """


class TransportError(SheetError):
    """Raised when the sheet source cannot be fetched."""

    def __init__(self, message: str, *, url: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.url = url
        self.status_code = status_code


class ReorderIndexError(SheetError, IndexError):
    """Raised when a reorder receives a position outside the sequence."""


class PersistenceError(SheetError):
    """Raised by snapshot backends when a read or write fails.

    The store logs it and keeps working from the in-memory tree.
    """


class TransformWarning(UserWarning):
    """A record skipped while transforming a payload.

    Warnings are reported to a callback, never raised.
    """

    def __init__(self, message: str, *, ref: str) -> None:
        super().__init__(message)
        self.ref = ref


class NotFoundWarning(TransformWarning):
    """A question id or topic name that resolves to nothing."""

    def __init__(self, message: str, *, ref: str, kind: str) -> None:
        super().__init__(message, ref=ref)
        self.kind = kind


class DuplicateRecordWarning(TransformWarning):
    """A question id or topic name listed more than once in an order list."""
