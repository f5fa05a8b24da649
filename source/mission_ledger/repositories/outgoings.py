"""This module defines the repository for outgoing payment requests."""

from decimal import Decimal
from uuid import UUID

from mission_ledger.models.outgoings import PAYABLE_STATUSES, Outgoing, OutgoingOption, PaidStatus
from mission_ledger.providers.logging import Logger, LoggingProvider
from sqlalchemy import Connection, Engine, text


class OutgoingsRepository:
    """Handles database operations for the `outgoings` table.

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

    def list_payable_outgoings(self) -> list[OutgoingOption]:
        """Lists the outgoings a debit transaction may be linked to.

        Returns:
            The approved and finalized outgoings, sorted by title.
        """
        self.logger.debug("Fetching approved and finalized outgoings.")
        sql = text(
            """
            SELECT id, title
            FROM outgoings
            WHERE status = ANY(:statuses)
            ORDER BY title;
            """
        )
        with self.engine.connect() as conn:
            result = conn.execute(sql, {"statuses": [status.value for status in PAYABLE_STATUSES]}).mappings().all()
        return [OutgoingOption.model_validate(dict(row)) for row in result]

    def get_outgoing_for_update(self, conn: Connection, outgoing_id: UUID) -> Outgoing | None:
        """Reads an outgoing and locks its row until the surrounding transaction ends.

        Args:
            conn: An open connection inside a database transaction.
            outgoing_id: The outgoing's primary key.

        Returns:
            The outgoing, or None if it does not exist.
        """
        sql = text(
            """
            SELECT id, title, type, amount, paid_amount, paid_status, status, request_date
            FROM outgoings
            WHERE id = :id
            FOR UPDATE;
            """
        )
        row = conn.execute(sql, {"id": outgoing_id}).mappings().first()
        return Outgoing.model_validate(dict(row)) if row else None

    def update_payment(
        self, conn: Connection, outgoing_id: UUID, paid_amount: Decimal, paid_status: PaidStatus
    ) -> None:
        """Writes an outgoing's accumulated paid amount and derived paid status.

        Args:
            conn: An open connection inside a database transaction.
            outgoing_id: The outgoing's primary key.
            paid_amount: The new accumulated paid amount.
            paid_status: The paid status derived from it.
        """
        self.logger.info(f"Setting outgoing {outgoing_id} paid amount to {paid_amount} ({paid_status.value}).")
        sql = text("UPDATE outgoings SET paid_amount = :paid_amount, paid_status = :paid_status WHERE id = :id;")
        conn.execute(sql, {"id": outgoing_id, "paid_amount": paid_amount, "paid_status": paid_status.value})
