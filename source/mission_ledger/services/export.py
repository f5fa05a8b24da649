"""This module renders transaction lists as downloadable CSV."""

import csv
import io
from datetime import date
from decimal import Decimal

from mission_ledger.models.bank_transactions import EnrichedBankTransaction
from mission_ledger.providers.date import DateProvider

EXPORT_HEADERS = (
    "Value Date",
    "Transaction Type",
    "Transaction Reference",
    "Posting Date",
    "Debit Amount",
    "Credit Amount",
    "Balance",
    "Narrative",
    "Benificiary AC",
    "Benificiary Name",
    "Transaction Date",
    "Receipt Number",
    "Status",
    "Linked To",
)


def _text(value: object) -> str:
    return "" if value is None else str(value)


def _amount(value: Decimal | None) -> str:
    return "0" if value is None else str(value)


def export_row(transaction: EnrichedBankTransaction) -> list[str]:
    """Returns the cells of one exported transaction, in header order."""
    return [
        _text(transaction.value_date),
        _text(transaction.transaction_type),
        _text(transaction.transaction_reference),
        _text(transaction.posting_date),
        _amount(transaction.debit_amount),
        _amount(transaction.credit_amount),
        _amount(transaction.balance),
        _text(transaction.description),
        _text(transaction.beneficiary_account),
        _text(transaction.beneficiary_name),
        _text(transaction.transaction_date),
        _text(transaction.receipt_number),
        "Reconciled" if transaction.is_reconciled else "Unreconciled",
        _text(transaction.linked_to),
    ]


def export_transactions_csv(transactions: list[EnrichedBankTransaction]) -> str:
    """Renders transactions as CSV with a fixed header and every cell quoted.

    Args:
        transactions: The transactions to export, usually the filtered view.

    Returns:
        The CSV text, rows separated by newlines.
    """
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(EXPORT_HEADERS)
    writer.writerows(export_row(transaction) for transaction in transactions)
    return buffer.getvalue()


def export_filename(today: date | None = None) -> str:
    """Returns the download file name for an export made on the given day."""
    return f"bank-transactions-{(today or DateProvider.today()).strftime(DateProvider.DATE_FORMAT)}.csv"
