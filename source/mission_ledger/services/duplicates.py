"""This module defines the DuplicateDetectionService.

Bank statements are often uploaded more than once, and the same line then
appears several times in `bank_transactions`. Two lines are considered the
same real-world transaction when their normalized transaction reference and
their balance (to two decimals) are equal. The balance is part of the key
so that recurring transfers sharing a reference are not collapsed.

For every key the oldest line (by `created_at`) is kept and the later ones
are reported as duplicates. Removing them is a separate, explicitly
confirmed step that deletes in batches.
"""

import re
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from uuid import UUID

from mission_ledger.exceptions.ledger import DuplicateRemovalError, TransactionLoadError
from mission_ledger.models.duplicates import DeletionResult, DuplicateEntry, DuplicateReport, DuplicateScanRow
from mission_ledger.providers.config import Config
from mission_ledger.providers.logging import Logger, LoggingProvider
from mission_ledger.repositories.bank_transactions import BankTransactionsRepository
from mission_ledger.repositories.pagination import fetch_all_in_batches
from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError

KEY_SEPARATOR = "|||"
PLACEHOLDER_REFERENCES = frozenset({"null", "undefined"})

_WHITESPACE = re.compile(r"\s+")
_CENTS = Decimal("0.01")


def normalize_reference(reference: str | None) -> str | None:
    """Normalizes a transaction reference for comparison.

    Args:
        reference: The reference as stored.

    Returns:
        The trimmed, lowercased reference with whitespace runs collapsed to a
        single space, or None if the reference is missing, blank, or one of
        the placeholder strings "null" / "undefined".
    """
    if reference is None:
        return None
    normalized = _WHITESPACE.sub(" ", str(reference).strip().lower())
    if not normalized or normalized in PLACEHOLDER_REFERENCES:
        return None
    return normalized


def format_balance(balance: Decimal | float | str | None) -> str | None:
    """Formats a balance with exactly two decimals.

    Args:
        balance: The balance as stored.

    Returns:
        The balance rounded half-up to cents, e.g. "100.00", or None if it is
        missing or not a number.
    """
    if balance is None:
        return None
    try:
        value = Decimal(str(balance))
    except InvalidOperation:
        return None
    if not value.is_finite():
        return None
    return str(value.quantize(_CENTS, rounding=ROUND_HALF_UP))


def build_composite_key(reference: str | None, balance: Decimal | float | str | None) -> str | None:
    """Builds the key that identifies the same real-world transaction.

    Args:
        reference: The transaction reference as stored.
        balance: The balance as stored.

    Returns:
        The key, or None if the row is not eligible for deduplication.
    """
    normalized_reference = normalize_reference(reference)
    if normalized_reference is None:
        return None
    formatted_balance = format_balance(balance)
    if formatted_balance is None:
        return None
    return f"{normalized_reference}{KEY_SEPARATOR}{formatted_balance}"


def find_duplicates(rows: list[DuplicateScanRow]) -> DuplicateReport:
    """Finds the duplicates in a list of rows ordered oldest first.

    The first row seen for a key is kept; every later row with the same key
    is a duplicate. Rows without a usable reference or balance are never
    reported.

    Args:
        rows: The rows to scan, ordered by `created_at` ascending.

    Returns:
        The scan report.
    """
    kept: dict[str, UUID] = {}
    duplicates: list[DuplicateEntry] = []

    for row in rows:
        key = build_composite_key(row.transaction_reference, row.balance)
        if key is None:
            continue
        if key in kept:
            duplicates.append(
                DuplicateEntry(
                    id=row.id,
                    transaction_reference=row.transaction_reference or "",
                    balance=row.balance,
                    created_at=row.created_at,
                    composite_key=key,
                    kept_id=kept[key],
                )
            )
        else:
            kept[key] = row.id

    return DuplicateReport(total_scanned=len(rows), unique_keys=len(kept), duplicates=duplicates)


class DuplicateDetectionService:
    """Detects and removes duplicate bank transactions."""

    logger: Logger
    transactions_repo: BankTransactionsRepository
    config: Config

    def __init__(self, transactions_repo: BankTransactionsRepository, config: Config) -> None:
        """Initializes the service with its dependencies.

        Args:
            transactions_repo: The repository for bank transactions.
            config: The application configuration object.
        """
        self.logger = LoggingProvider().get_logger()
        self.transactions_repo = transactions_repo
        self.config = config

    def scan(self) -> DuplicateReport:
        """Scans every stored transaction for duplicates.

        Returns:
            The scan report. It is empty when there are no transactions.

        Raises:
            TransactionLoadError: If reading the transactions fails.
        """
        self.logger.info("Scanning bank transactions for duplicates...")
        try:
            rows = fetch_all_in_batches(
                self.transactions_repo.fetch_duplicate_scan_page, self.config.TRANSACTION_FETCH_BATCH_SIZE
            )
        except (SQLAlchemyError, ValidationError) as e:
            self.logger.error(f"Failed to fetch transactions: {e}")
            raise TransactionLoadError(f"Failed to fetch transactions: {e}") from e

        report = find_duplicates(rows)
        self.logger.info(
            f"Found {report.duplicate_count} duplicates out of {report.total_scanned} total transactions "
            f"({report.unique_keys} unique reference/balance combinations)."
        )
        for entry in report.duplicates:
            self.logger.debug(f"Duplicate {entry.id} of {entry.kept_id} with key '{entry.composite_key}'.")
        return report

    def remove_duplicates(self, transaction_ids: list[UUID]) -> DeletionResult:
        """Deletes transactions in sequential batches.

        Batches are not rolled back as a whole. The first failing batch stops
        the run; the returned result records how many rows were deleted
        before it and the error that stopped it.

        Args:
            transaction_ids: The duplicates to delete, usually
                `DuplicateReport.duplicate_ids`.

        Returns:
            The deletion result.

        Raises:
            DuplicateRemovalError: If the same id is requested twice.
        """
        if len(set(transaction_ids)) != len(transaction_ids):
            raise DuplicateRemovalError("The list of transactions to remove contains repeated ids.")

        result = DeletionResult(requested=len(transaction_ids))
        if not transaction_ids:
            self.logger.info("No duplicate transactions to remove.")
            return result

        batch_size = self.config.DEDUP_DELETE_BATCH_SIZE
        for start in range(0, len(transaction_ids), batch_size):
            batch = transaction_ids[start : start + batch_size]
            batch_number = start // batch_size + 1
            try:
                deleted = self.transactions_repo.delete_transactions(batch)
            except SQLAlchemyError as e:
                result.error = f"Failed to remove duplicates: {e}"
                self.logger.error(
                    f"Batch {batch_number} failed after deleting {result.deleted} of {result.requested} "
                    f"duplicate(s): {e}"
                )
                return result
            result.deleted += deleted
            result.batches_completed += 1
            self.logger.info(f"Deleted batch {batch_number}: {deleted} of {len(batch)} records.")

        self.logger.info(f"Successfully removed {result.deleted} duplicate transaction(s).")
        return result
