"""This module defines the models returned by bank statement imports."""

from pydantic import BaseModel


class StatementImportResult(BaseModel):
    """Summarizes a bank statement import.

    Attributes:
        rows_imported: The number of transactions inserted.
        duplicates_skipped: The number of rows skipped because their
            transaction reference was already stored.
        duplicate_references: A sample of the skipped references.
        message: A human-readable summary.
    """

    rows_imported: int
    duplicates_skipped: int = 0
    duplicate_references: list[str] = []
    message: str
