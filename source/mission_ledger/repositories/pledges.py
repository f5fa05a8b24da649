"""This module defines the repository for pledges."""

from uuid import UUID

from mission_ledger.models.pledges import Pledge, PledgeOption
from mission_ledger.providers.logging import Logger, LoggingProvider
from sqlalchemy import Connection, Engine, text

PLEDGE_COLUMNS = """
    id, individual_id, missionaries_committed, frequency, amount_per_frequency,
    special_support_amount, special_support_frequency, yearly_missionary_support,
    yearly_special_support, fulfillment_status, last_fulfillment_date
"""


class PledgesRepository:
    """Handles database operations for the `pledges` table.

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

    def list_pledge_options(self) -> list[PledgeOption]:
        """Lists every pledge together with its donor's name.

        Pledges whose individual no longer exists are left out.

        Returns:
            The pledges, sorted by donor name.
        """
        self.logger.debug("Fetching pledges with individual names.")
        sql = text(
            """
            SELECT p.id, i.name AS individual_name, p.missionaries_committed, p.frequency
            FROM pledges p
            INNER JOIN individuals i ON i.id = p.individual_id
            ORDER BY i.name;
            """
        )
        with self.engine.connect() as conn:
            result = conn.execute(sql).mappings().all()
        return [PledgeOption.model_validate(dict(row)) for row in result]

    def get_pledge_for_update(self, conn: Connection, pledge_id: UUID) -> Pledge | None:
        """Reads a pledge and locks its row until the surrounding transaction ends.

        Args:
            conn: An open connection inside a database transaction.
            pledge_id: The pledge's primary key.

        Returns:
            The pledge, or None if it does not exist.
        """
        sql = text(f"SELECT {PLEDGE_COLUMNS} FROM pledges WHERE id = :id FOR UPDATE;")  # nosec B608
        row = conn.execute(sql, {"id": pledge_id}).mappings().first()
        return Pledge.model_validate(dict(row)) if row else None

    def update_fulfillment_status(self, conn: Connection, pledge_id: UUID, fulfillment_status: int) -> None:
        """Writes a pledge's fulfillment percentage.

        Args:
            conn: An open connection inside a database transaction.
            pledge_id: The pledge's primary key.
            fulfillment_status: The new percentage, 0 to 100.
        """
        self.logger.info(f"Setting fulfillment status of pledge {pledge_id} to {fulfillment_status}%.")
        sql = text("UPDATE pledges SET fulfillment_status = :fulfillment_status WHERE id = :id;")
        conn.execute(sql, {"id": pledge_id, "fulfillment_status": fulfillment_status})
