"""This module defines the TransactionLoaderService.

It reads the full set of bank transactions together with the pledges and
outgoings they can be linked to, and produces the enriched working set
every transaction view starts from.
"""

from uuid import UUID

from mission_ledger.exceptions.ledger import TransactionLoadError
from mission_ledger.models.bank_transactions import (
    BankTransaction,
    EnrichedBankTransaction,
    LinkedOutgoing,
    LinkedPledge,
    LoadedTransactions,
    TransactionTotals,
)
from mission_ledger.models.outgoings import OutgoingOption
from mission_ledger.models.pledges import PledgeOption
from mission_ledger.providers.config import Config
from mission_ledger.providers.logging import Logger, LoggingProvider
from mission_ledger.repositories.bank_transactions import BankTransactionsRepository
from mission_ledger.repositories.outgoings import OutgoingsRepository
from mission_ledger.repositories.pagination import fetch_all_in_batches
from mission_ledger.repositories.pledges import PledgesRepository
from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError


def build_pledge_lookup(pledges: list[PledgeOption]) -> dict[UUID, LinkedPledge]:
    """Maps pledge ids to the display data shown for a linked transaction.

    Args:
        pledges: The pledges, with their donors' names.

    Returns:
        A dictionary keyed by pledge id.
    """
    return {
        pledge.id: LinkedPledge(
            individual_name=pledge.individual_name, missionaries_committed=pledge.missionaries_committed
        )
        for pledge in pledges
    }


def build_outgoing_lookup(outgoings: list[OutgoingOption]) -> dict[UUID, LinkedOutgoing]:
    """Maps outgoing ids to the display data shown for a linked transaction.

    Args:
        outgoings: The payable outgoings.

    Returns:
        A dictionary keyed by outgoing id.
    """
    return {outgoing.id: LinkedOutgoing(title=outgoing.title) for outgoing in outgoings}


def enrich_transactions(
    transactions: list[BankTransaction],
    pledge_lookup: dict[UUID, LinkedPledge],
    outgoing_lookup: dict[UUID, LinkedOutgoing],
) -> list[EnrichedBankTransaction]:
    """Attaches the linked pledge's donor or the linked outgoing's title to each transaction.

    A link pointing at a record missing from the lookups (for example an
    outgoing that is still only requested) resolves to None.

    Args:
        transactions: The transactions to enrich.
        pledge_lookup: Pledge display data keyed by pledge id.
        outgoing_lookup: Outgoing display data keyed by outgoing id.

    Returns:
        The enriched transactions, in input order.
    """
    return [
        EnrichedBankTransaction(
            **transaction.model_dump(),
            pledge=pledge_lookup.get(transaction.pledge_id) if transaction.pledge_id else None,
            outgoing=outgoing_lookup.get(transaction.outgoing_id) if transaction.outgoing_id else None,
        )
        for transaction in transactions
    ]


class TransactionLoaderService:
    """Loads every bank transaction and resolves what each one is linked to."""

    logger: Logger
    transactions_repo: BankTransactionsRepository
    pledges_repo: PledgesRepository
    outgoings_repo: OutgoingsRepository
    config: Config

    def __init__(
        self,
        transactions_repo: BankTransactionsRepository,
        pledges_repo: PledgesRepository,
        outgoings_repo: OutgoingsRepository,
        config: Config,
    ) -> None:
        """Initializes the service with its dependencies.

        Args:
            transactions_repo: The repository for bank transactions.
            pledges_repo: The repository for pledges.
            outgoings_repo: The repository for outgoings.
            config: The application configuration object.
        """
        self.logger = LoggingProvider().get_logger()
        self.transactions_repo = transactions_repo
        self.pledges_repo = pledges_repo
        self.outgoings_repo = outgoings_repo
        self.config = config

    def load_transactions(self) -> LoadedTransactions:
        """Loads the full working set of transactions.

        All reads must succeed. If any of them fails, nothing is returned and
        a single `TransactionLoadError` describes the failure.

        Returns:
            The enriched transactions, their totals, and the pledges and
            outgoings available for linking.

        Raises:
            TransactionLoadError: If any read fails or returns malformed rows.
        """
        self.logger.info("Loading all bank transactions...")
        try:
            transactions = fetch_all_in_batches(
                self.transactions_repo.fetch_page, self.config.TRANSACTION_FETCH_BATCH_SIZE
            )
            pledges = self.pledges_repo.list_pledge_options()
            outgoings = self.outgoings_repo.list_payable_outgoings()
        except (SQLAlchemyError, ValidationError) as e:
            self.logger.error(f"Failed to load bank transactions: {e}")
            raise TransactionLoadError(f"Failed to load bank transactions: {e}") from e

        totals = TransactionTotals.from_transactions(transactions)
        self.logger.info(
            f"Loaded {totals.count} transactions "
            f"(total debit {totals.total_debit}, total credit {totals.total_credit})."
        )

        rows = enrich_transactions(transactions, build_pledge_lookup(pledges), build_outgoing_lookup(outgoings))
        return LoadedTransactions(
            rows=rows,
            totals=totals,
            pledges=sorted(pledges, key=lambda p: p.individual_name.casefold()),
            outgoings=sorted(outgoings, key=lambda o: o.title.casefold()),
        )
