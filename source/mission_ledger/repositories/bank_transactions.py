"""This module defines the repository for bank statement lines."""

from uuid import UUID

from mission_ledger.models.bank_transactions import BankTransaction, NewBankTransaction
from mission_ledger.models.duplicates import DuplicateScanRow
from mission_ledger.providers.logging import Logger, LoggingProvider
from sqlalchemy import Connection, Engine, text

TRANSACTION_COLUMNS = """
    id, value_date, posting_date, transaction_date, transaction_type,
    transaction_reference, debit_amount, credit_amount, balance, description,
    benificiary_ac, benificiary_name, branch_code, account_number,
    receipt_number, notes, reconciled, pledge_id, outgoing_id, created_at
"""


class BankTransactionsRepository:
    """Handles database operations for the `bank_transactions` table.

    Reads return validated `BankTransaction` models. The link setters take
    an open connection so that the reconciliation service can run them in
    the same database transaction as the pledge or outgoing update.

    Args:
        engine: An SQLAlchemy Engine instance for database communication.
    """

    logger: Logger
    engine: Engine

    def __init__(self, engine: Engine) -> None:
        """Initializes the repository with a database engine.

        Args:
            engine: The SQLAlchemy Engine to be used for all database
                communications.
        """
        self.logger = LoggingProvider().get_logger()
        self.engine = engine

    def fetch_page(self, offset: int, limit: int) -> list[BankTransaction]:
        """Fetches one page of transactions, most recent transaction date first.

        Args:
            offset: The number of rows to skip.
            limit: The maximum number of rows to return.

        Returns:
            The transactions in the requested window.
        """
        self.logger.debug(f"Fetching bank transactions {offset}-{offset + limit - 1}.")
        sql = text(
            f"""
            SELECT {TRANSACTION_COLUMNS}
            FROM bank_transactions
            ORDER BY transaction_date DESC NULLS LAST, id
            LIMIT :limit OFFSET :offset;
            """
        )  # nosec B608
        with self.engine.connect() as conn:
            result = conn.execute(sql, {"limit": limit, "offset": offset}).mappings().all()
        return [BankTransaction.model_validate(dict(row)) for row in result]

    def fetch_duplicate_scan_page(self, offset: int, limit: int) -> list[DuplicateScanRow]:
        """Fetches one page of the columns used for duplicate detection.

        Rows are ordered by insertion time, oldest first, with the id as a
        tiebreak so that pages never overlap.

        Args:
            offset: The number of rows to skip.
            limit: The maximum number of rows to return.

        Returns:
            The scan rows in the requested window.
        """
        self.logger.debug(f"Fetching duplicate scan rows {offset}-{offset + limit - 1}.")
        sql = text(
            """
            SELECT id, transaction_reference, balance, created_at
            FROM bank_transactions
            ORDER BY created_at ASC, id ASC
            LIMIT :limit OFFSET :offset;
            """
        )
        with self.engine.connect() as conn:
            result = conn.execute(sql, {"limit": limit, "offset": offset}).mappings().all()
        return [DuplicateScanRow.model_validate(dict(row)) for row in result]

    def get_transaction_for_update(self, conn: Connection, transaction_id: UUID) -> BankTransaction | None:
        """Retrieves a single transaction and locks its row until the transaction ends.

        Args:
            conn: An open connection inside a database transaction.
            transaction_id: The transaction's primary key.

        Returns:
            The transaction, or None if it does not exist.
        """
        sql = text(f"SELECT {TRANSACTION_COLUMNS} FROM bank_transactions WHERE id = :id FOR UPDATE;")  # nosec B608
        row = conn.execute(sql, {"id": transaction_id}).mappings().first()
        return BankTransaction.model_validate(dict(row)) if row else None

    def insert_transactions(self, transactions: list[NewBankTransaction]) -> int:
        """Inserts bank statement lines in a single statement batch.

        Args:
            transactions: The lines to insert.

        Returns:
            The number of lines inserted.
        """
        if not transactions:
            return 0

        self.logger.info(f"Inserting {len(transactions)} bank transaction(s).")
        sql = text(
            """
            INSERT INTO bank_transactions (
                value_date, posting_date, transaction_date, transaction_type,
                transaction_reference, debit_amount, credit_amount, balance,
                description, benificiary_ac, benificiary_name, branch_code,
                account_number, receipt_number, notes, reconciled
            ) VALUES (
                :value_date, :posting_date, :transaction_date, :transaction_type,
                :transaction_reference, :debit_amount, :credit_amount, :balance,
                :description, :benificiary_ac, :benificiary_name, :branch_code,
                :account_number, :receipt_number, :notes, :reconciled
            );
            """
        )
        with self.engine.connect() as conn:
            conn.execute(sql, [transaction.to_row() for transaction in transactions])
            conn.commit()
        self.logger.info("Bank transactions inserted successfully.")
        return len(transactions)

    def get_existing_references(self) -> set[str]:
        """Returns every non-empty transaction reference already stored.

        Returns:
            The set of stored references, as stored.
        """
        sql = text(
            """
            SELECT DISTINCT transaction_reference
            FROM bank_transactions
            WHERE transaction_reference IS NOT NULL AND transaction_reference <> '';
            """
        )
        with self.engine.connect() as conn:
            return set(conn.execute(sql).scalars().all())

    def update_receipt_number(self, transaction_id: UUID, receipt_number: str | None) -> bool:
        """Sets the receipt number recorded against a transaction.

        Args:
            transaction_id: The transaction's primary key.
            receipt_number: The new receipt number, or None to clear it.

        Returns:
            True if the transaction existed and was updated.
        """
        self.logger.info(f"Updating receipt number for transaction {transaction_id}.")
        sql = text("UPDATE bank_transactions SET receipt_number = :receipt_number WHERE id = :id;")
        with self.engine.connect() as conn:
            result = conn.execute(sql, {"id": transaction_id, "receipt_number": receipt_number})
            conn.commit()
        return result.rowcount > 0

    def set_pledge_link(self, conn: Connection, transaction_id: UUID, pledge_id: UUID | None) -> None:
        """Links a transaction to a pledge, or unlinks it when `pledge_id` is None.

        Args:
            conn: An open connection inside a database transaction.
            transaction_id: The transaction's primary key.
            pledge_id: The pledge to link to, or None to unlink.
        """
        sql = text("UPDATE bank_transactions SET pledge_id = :pledge_id, reconciled = :reconciled WHERE id = :id;")
        conn.execute(sql, {"id": transaction_id, "pledge_id": pledge_id, "reconciled": pledge_id is not None})

    def set_outgoing_link(self, conn: Connection, transaction_id: UUID, outgoing_id: UUID | None) -> None:
        """Links a transaction to an outgoing, or unlinks it when `outgoing_id` is None.

        Args:
            conn: An open connection inside a database transaction.
            transaction_id: The transaction's primary key.
            outgoing_id: The outgoing to link to, or None to unlink.
        """
        sql = text(
            "UPDATE bank_transactions SET outgoing_id = :outgoing_id, reconciled = :reconciled WHERE id = :id;"
        )
        conn.execute(sql, {"id": transaction_id, "outgoing_id": outgoing_id, "reconciled": outgoing_id is not None})

    def delete_transactions(self, transaction_ids: list[UUID]) -> int:
        """Deletes a batch of transactions in one statement.

        Args:
            transaction_ids: The primary keys to delete.

        Returns:
            The number of rows deleted.
        """
        if not transaction_ids:
            return 0

        self.logger.info(f"Deleting {len(transaction_ids)} bank transaction(s).")
        sql = text("DELETE FROM bank_transactions WHERE id = ANY(:ids);")
        with self.engine.connect() as conn:
            result = conn.execute(sql, {"ids": transaction_ids})
            conn.commit()
        return result.rowcount
