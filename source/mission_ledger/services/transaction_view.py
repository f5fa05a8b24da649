"""This module implements the in-memory filter, sort and pagination of transactions.

Everything here is pure: functions take the loaded rows and return new
lists without touching storage.
"""

import math
from datetime import date, datetime, time, timezone
from decimal import Decimal, InvalidOperation
from enum import StrEnum

from mission_ledger.models.bank_transactions import EnrichedBankTransaction
from pydantic import BaseModel

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


class SortField(StrEnum):
    """The columns a transaction list can be sorted by."""

    VALUE_DATE = "value_date"
    DEBIT_AMOUNT = "debit_amount"
    CREDIT_AMOUNT = "credit_amount"
    BALANCE = "balance"
    TRANSACTION_DATE = "transaction_date"


class SortDirection(StrEnum):
    """The direction of a sort."""

    ASC = "asc"
    DESC = "desc"


NUMERIC_SORT_FIELDS = (SortField.DEBIT_AMOUNT, SortField.CREDIT_AMOUNT, SortField.BALANCE)


class TransactionFilters(BaseModel):
    """The filters a transaction list can be narrowed with.

    Every active filter must match (logical AND). Text filters are
    case-insensitive substring matches; an empty string is inactive. Date
    bounds are inclusive and apply to the value date.
    """

    start_date: date | None = None
    end_date: date | None = None
    transaction_reference: str | None = None
    narrative: str | None = None
    beneficiary_account: str | None = None
    beneficiary_name: str | None = None
    receipt_number: str | None = None

    @property
    def text_filters(self) -> dict[str, str]:
        """Returns the active text filters keyed by the transaction attribute they match.

        Returns:
            A mapping of attribute name to lowercased needle.
        """
        candidates = {
            "transaction_reference": self.transaction_reference,
            "description": self.narrative,
            "beneficiary_account": self.beneficiary_account,
            "beneficiary_name": self.beneficiary_name,
            "receipt_number": self.receipt_number,
        }
        return {attribute: needle.lower() for attribute, needle in candidates.items() if needle}

    @property
    def is_active(self) -> bool:
        """Returns True if any filter would exclude rows."""
        return bool(self.start_date or self.end_date or self.text_filters)


class TransactionPage(BaseModel):
    """One page of a filtered, sorted transaction list."""

    rows: list[EnrichedBankTransaction]
    page: int
    page_size: int
    total_pages: int
    filtered_count: int

    @property
    def start_index(self) -> int:
        """Returns the zero-based index of the page's first row in the filtered list."""
        return (self.page - 1) * self.page_size


def matches_filters(transaction: EnrichedBankTransaction, filters: TransactionFilters) -> bool:
    """Checks a single transaction against every active filter.

    Args:
        transaction: The transaction to check.
        filters: The filters to apply.

    Returns:
        True if the transaction passes all active filters.
    """
    if filters.start_date or filters.end_date:
        if transaction.value_date is None:
            return False
        if filters.start_date and transaction.value_date < filters.start_date:
            return False
        if filters.end_date and transaction.value_date > filters.end_date:
            return False

    for attribute, needle in filters.text_filters.items():
        value = getattr(transaction, attribute)
        if value is None or needle not in value.lower():
            return False
    return True


def filter_transactions(
    transactions: list[EnrichedBankTransaction], filters: TransactionFilters
) -> list[EnrichedBankTransaction]:
    """Returns the transactions that pass every active filter, in input order."""
    if not filters.is_active:
        return list(transactions)
    return [transaction for transaction in transactions if matches_filters(transaction, filters)]


def _numeric_key(value: Decimal | None) -> float:
    if value is None:
        return 0.0
    try:
        return float(value)
    except (InvalidOperation, ValueError):
        return 0.0


def _date_key(value: date | None) -> float:
    if value is None:
        return EPOCH.timestamp()
    return datetime.combine(value, time.min, tzinfo=timezone.utc).timestamp()


def sort_key(transaction: EnrichedBankTransaction, field: SortField) -> float:
    """Returns the comparable value of a transaction for the given sort field.

    Args:
        transaction: The transaction.
        field: The field to sort by.

    Returns:
        A float: amounts as numbers (missing as 0), dates as UTC timestamps
        (missing as the epoch).
    """
    value = getattr(transaction, field.value)
    if field in NUMERIC_SORT_FIELDS:
        return _numeric_key(value)
    return _date_key(value)


def sort_transactions(
    transactions: list[EnrichedBankTransaction],
    field: SortField = SortField.VALUE_DATE,
    direction: SortDirection = SortDirection.DESC,
) -> list[EnrichedBankTransaction]:
    """Sorts transactions by one field.

    Args:
        transactions: The transactions to sort.
        field: The field to sort by.
        direction: Ascending or descending.

    Returns:
        A new, sorted list.
    """
    return sorted(
        transactions,
        key=lambda transaction: sort_key(transaction, field),
        reverse=direction == SortDirection.DESC,
    )


def paginate(transactions: list[EnrichedBankTransaction], page: int, page_size: int) -> TransactionPage:
    """Slices a list of transactions into one page.

    Args:
        transactions: The filtered, sorted transactions.
        page: The 1-based page number. Out-of-range values are clamped to
            the first or last page.
        page_size: The number of rows per page.

    Returns:
        The requested page.

    Raises:
        ValueError: If `page_size` is not positive.
    """
    if page_size <= 0:
        raise ValueError("page_size must be a positive integer.")

    total_pages = math.ceil(len(transactions) / page_size)
    page = min(max(page, 1), max(total_pages, 1))
    start = (page - 1) * page_size
    return TransactionPage(
        rows=transactions[start : start + page_size],
        page=page,
        page_size=page_size,
        total_pages=total_pages,
        filtered_count=len(transactions),
    )


def build_view(
    transactions: list[EnrichedBankTransaction],
    filters: TransactionFilters | None = None,
    sort_field: SortField = SortField.VALUE_DATE,
    sort_direction: SortDirection = SortDirection.DESC,
    page: int = 1,
    page_size: int = 10,
) -> TransactionPage:
    """Filters, sorts and paginates transactions in one step.

    Args:
        transactions: The loaded transactions.
        filters: The filters to apply, if any.
        sort_field: The field to sort by.
        sort_direction: The sort direction.
        page: The 1-based page number.
        page_size: The number of rows per page.

    Returns:
        The requested page of the filtered, sorted list.
    """
    filtered = filter_transactions(transactions, filters or TransactionFilters())
    return paginate(sort_transactions(filtered, sort_field, sort_direction), page, page_size)
