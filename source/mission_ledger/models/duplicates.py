"""This module defines the models used by duplicate transaction detection."""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel


class DuplicateScanRow(BaseModel):
    """The subset of a transaction's columns needed to detect duplicates."""

    id: UUID
    transaction_reference: str | None = None
    balance: Decimal | None = None
    created_at: datetime


class DuplicateEntry(BaseModel):
    """A transaction identified as a later copy of an earlier one.

    Attributes:
        id: The duplicate row, which is the one to delete.
        transaction_reference: The duplicate's reference as stored.
        balance: The duplicate's balance as stored.
        created_at: When the duplicate was inserted.
        composite_key: The normalized reference/balance key it shares with
            the kept row.
        kept_id: The first row seen with the same key, which is kept.
    """

    id: UUID
    transaction_reference: str
    balance: Decimal
    created_at: datetime
    composite_key: str
    kept_id: UUID


class DuplicateReport(BaseModel):
    """The result of scanning all transactions for duplicates."""

    total_scanned: int
    unique_keys: int
    duplicates: list[DuplicateEntry] = []

    @property
    def duplicate_ids(self) -> list[UUID]:
        """Returns the ids to delete, in the order they were found."""
        return [entry.id for entry in self.duplicates]

    @property
    def duplicate_count(self) -> int:
        """Returns the number of duplicates found."""
        return len(self.duplicates)

    @property
    def has_duplicates(self) -> bool:
        """Returns True when at least one duplicate was found."""
        return bool(self.duplicates)


class DeletionResult(BaseModel):
    """The outcome of deleting duplicates in batches.

    Deletion stops at the first failing batch. Batches deleted before the
    failure stay deleted, so `deleted` may be lower than `requested`.
    """

    requested: int
    deleted: int = 0
    batches_completed: int = 0
    error: str | None = None

    @property
    def is_complete(self) -> bool:
        """Returns True when every requested id was deleted."""
        return self.error is None and self.deleted == self.requested
