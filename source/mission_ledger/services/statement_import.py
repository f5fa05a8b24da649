"""This module defines the StatementImportService.

It turns a bank statement export (CSV with a header row) into
`bank_transactions` rows. Banks label their columns differently, so each
field is looked up under a list of known header aliases. Lines whose
transaction reference is already stored are skipped.
"""

import csv
import io
import re
from collections.abc import Callable, Mapping
from decimal import Decimal, InvalidOperation

from mission_ledger.exceptions.ledger import StatementImportError
from mission_ledger.models.bank_transactions import NewBankTransaction
from mission_ledger.models.imports import StatementImportResult
from mission_ledger.providers.config import Config
from mission_ledger.providers.date import DateProvider
from mission_ledger.providers.logging import Logger, LoggingProvider
from mission_ledger.repositories.bank_transactions import BankTransactionsRepository
from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError

COLUMN_ALIASES: dict[str, tuple[str, ...]] = {
    "value_date": ("Value Date", "VALUE DATE", "Value date"),
    "transaction_type": ("Transaction Type", "TRANSACTION TYPE", "Transaction type"),
    "transaction_reference": ("Transaction Reference", "TRANSACTION REFERENCE", "Reference", "REFERENCE"),
    "posting_date": ("Posting Date", "POSTING DATE", "Posting date"),
    "debit_amount": ("Debit", "DEBIT", "Withdrawal", "WITHDRAWAL"),
    "credit_amount": ("Credit", "CREDIT", "Deposit", "DEPOSIT"),
    "balance": ("Balance", "BALANCE"),
    "description": ("Narrative", "NARRATIVE", "Description", "DESCRIPTION"),
    "beneficiary_account": ("Beneficiary AC", "BENEFICIARY AC", "Beneficiary Account", "Benificiary AC"),
    "beneficiary_name": ("Beneficiary Name", "BENEFICIARY NAME", "Benificiary Name"),
    "transaction_date": ("Transaction Date", "TRANSACTION DATE", "Date", "DATE"),
    "branch_code": ("Branch Code", "BRANCH CODE"),
    "account_number": ("Account Number", "ACCOUNT NUMBER"),
}

DATE_FIELDS = ("value_date", "posting_date", "transaction_date")
AMOUNT_FIELDS = ("debit_amount", "credit_amount", "balance")

_NON_NUMERIC = re.compile(r"[^\d.\-]")

ImportCallback = Callable[[StatementImportResult], None]
RawValue = str | int | float | None


def parse_amount(value: str | None) -> Decimal:
    """Parses an amount cell, ignoring currency symbols and thousands separators.

    Args:
        value: The raw cell value.

    Returns:
        The amount, or 0 when the cell is empty or not a number.
    """
    if not value:
        return Decimal("0")
    cleaned = _NON_NUMERIC.sub("", str(value))
    try:
        amount = Decimal(cleaned)
    except InvalidOperation:
        return Decimal("0")
    return amount if amount.is_finite() else Decimal("0")


def pick_column(row: Mapping[str, str | None], aliases: tuple[str, ...]) -> str:
    """Returns the first non-empty value found under any of the aliases.

    Args:
        row: A CSV row keyed by trimmed header.
        aliases: The header names to try, in order.

    Returns:
        The value, or an empty string when none of the aliases has one.
    """
    for alias in aliases:
        value = row.get(alias)
        if value:
            return value.strip()
    return ""


def build_transaction(values: Mapping[str, RawValue]) -> NewBankTransaction:
    """Builds an insertable transaction from raw values keyed by field name.

    Args:
        values: Raw values keyed by `NewBankTransaction` field name. Numbers
            are read as their text form.

    Returns:
        The transaction, with dates and amounts parsed and the remaining
        text fields kept as given (empty text stored as an empty string).
    """
    data: dict[str, object] = {}
    for field in COLUMN_ALIASES:
        value = values.get(field)
        raw = None if value is None else str(value)
        if field in DATE_FIELDS:
            data[field] = DateProvider.parse_statement_date(raw)
        elif field in AMOUNT_FIELDS:
            data[field] = parse_amount(raw)
        else:
            data[field] = (raw or "").strip()
    data["notes"] = ""
    return NewBankTransaction.model_validate(data)


def read_statement_rows(content: str) -> list[dict[str, str | None]]:
    """Parses CSV text into rows keyed by trimmed header names.

    Args:
        content: The CSV text, header row first.

    Returns:
        The non-empty rows.

    Raises:
        StatementImportError: If the text has no header or is not valid CSV.
    """
    reader = csv.DictReader(io.StringIO(content.lstrip("\ufeff")))
    try:
        if not reader.fieldnames:
            raise StatementImportError("CSV parsing error: the file has no header row.")
        reader.fieldnames = [header.strip() for header in reader.fieldnames]
        return [row for row in reader if any((value or "").strip() for value in row.values() if isinstance(value, str))]
    except csv.Error as e:
        raise StatementImportError(f"CSV parsing error: {e}") from e


class StatementImportService:
    """Imports bank statement files into the transactions table."""

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

    def import_csv(self, content: str, on_imported: ImportCallback | None = None) -> StatementImportResult:
        """Imports a bank statement exported as CSV.

        Args:
            content: The CSV text.
            on_imported: Called with the result once the rows are stored, so
                that views holding loaded transactions can refresh.

        Returns:
            The import summary.

        Raises:
            StatementImportError: If the file cannot be parsed or stored.
        """
        rows = read_statement_rows(content)
        self.logger.info(f"Parsed {len(rows)} statement row(s).")

        try:
            existing_references = self.transactions_repo.get_existing_references()
        except SQLAlchemyError as e:
            self.logger.error(f"Error checking existing transactions: {e}")
            raise StatementImportError(f"Error checking existing transactions: {e}") from e

        transactions: list[NewBankTransaction] = []
        duplicates: list[str] = []
        for row in rows:
            values = {field: pick_column(row, aliases) for field, aliases in COLUMN_ALIASES.items()}
            reference = values["transaction_reference"]
            if reference and reference in existing_references:
                duplicates.append(reference)
                continue
            try:
                transactions.append(build_transaction(values))
            except ValidationError as e:
                raise StatementImportError(f"Invalid statement row with reference '{reference}': {e}") from e

        rows_imported = self._insert(transactions)

        message = f"Successfully imported {rows_imported} transactions."
        if duplicates:
            message += f" Skipped {len(duplicates)} duplicate transactions."
        result = StatementImportResult(
            rows_imported=rows_imported,
            duplicates_skipped=len(duplicates),
            duplicate_references=duplicates[: self.config.IMPORT_DUPLICATE_SAMPLE_SIZE],
            message=message,
        )
        self.logger.info(message)
        if on_imported:
            on_imported(result)
        return result

    def import_mapped(
        self, rows: list[Mapping[str, RawValue]], on_imported: ImportCallback | None = None
    ) -> StatementImportResult:
        """Imports rows whose columns were already mapped to transaction fields.

        Args:
            rows: Raw values keyed by `NewBankTransaction` field name.
            on_imported: Called with the result once the rows are stored.

        Returns:
            The import summary.

        Raises:
            StatementImportError: If there are no rows or they cannot be stored.
        """
        if not rows:
            raise StatementImportError("No transactions to import.")
        try:
            transactions = [build_transaction(row) for row in rows]
        except ValidationError as e:
            raise StatementImportError(f"Invalid transaction data: {e}") from e

        rows_imported = self._insert(transactions)
        result = StatementImportResult(
            rows_imported=rows_imported, message=f"Successfully imported {rows_imported} transactions."
        )
        if on_imported:
            on_imported(result)
        return result

    def _insert(self, transactions: list[NewBankTransaction]) -> int:
        try:
            return self.transactions_repo.insert_transactions(transactions)
        except SQLAlchemyError as e:
            self.logger.error(f"Database insertion error: {e}")
            raise StatementImportError(f"Error inserting transactions: {e}") from e
