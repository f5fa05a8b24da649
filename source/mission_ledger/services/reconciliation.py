"""This module defines the ReconciliationService.

Reconciliation links a bank transaction to what it pays for: a credit to
the pledge it fulfils, a debit to the outgoing it settles. Linking also
moves the linked record's progress forward (the pledge's fulfillment
percentage, the outgoing's paid amount and status).

The transaction update and the related-record update are written in one
database transaction, with the rows read `FOR UPDATE`, so either both land
or neither does.
"""

from decimal import ROUND_HALF_UP, Decimal
from uuid import UUID

from mission_ledger.exceptions.ledger import (
    InvalidLinkError,
    LinkTargetNotFoundError,
    ReconciliationError,
    TransactionNotFoundError,
)
from mission_ledger.models.bank_transactions import BankTransaction
from mission_ledger.models.outgoings import PAYABLE_STATUSES, Outgoing, PaidStatus, derive_paid_status
from mission_ledger.models.reconciliation import LinkKind, LinkResult
from mission_ledger.providers.config import Config
from mission_ledger.providers.logging import Logger, LoggingProvider
from mission_ledger.repositories.bank_transactions import BankTransactionsRepository
from mission_ledger.repositories.outgoings import OutgoingsRepository
from mission_ledger.repositories.pledges import PledgesRepository
from pydantic import ValidationError
from sqlalchemy import Connection, Engine
from sqlalchemy.exc import SQLAlchemyError

MAX_FULFILLMENT = 100


def _contribution_percent(credit_amount: Decimal, yearly_total: Decimal) -> Decimal:
    return Decimal(credit_amount) / Decimal(yearly_total) * 100


def compute_fulfillment_status(current_status: int, credit_amount: Decimal, yearly_total: Decimal) -> int:
    """Adds a credit's share of a pledge's yearly total to its fulfillment percentage.

    Args:
        current_status: The pledge's current fulfillment percentage.
        credit_amount: The credit amount of the transaction being linked.
        yearly_total: The pledge's yearly total.

    Returns:
        The new percentage, rounded half-up and capped at 100.

    Raises:
        InvalidLinkError: If the yearly total is not positive.
    """
    if yearly_total <= 0:
        raise InvalidLinkError("The pledge has no yearly total to measure fulfillment against.")
    raw = Decimal(current_status or 0) + _contribution_percent(credit_amount, yearly_total)
    return min(MAX_FULFILLMENT, int(raw.quantize(Decimal("1"), rounding=ROUND_HALF_UP)))


def retract_fulfillment_status(current_status: int, credit_amount: Decimal, yearly_total: Decimal) -> int:
    """Removes a credit's share of a pledge's yearly total from its fulfillment percentage.

    Args:
        current_status: The pledge's current fulfillment percentage.
        credit_amount: The credit amount of the transaction being moved away.
        yearly_total: The pledge's yearly total.

    Returns:
        The new percentage, rounded half-up and floored at 0. A pledge
        without a yearly total keeps its current percentage.
    """
    if yearly_total <= 0:
        return current_status
    raw = Decimal(current_status or 0) - _contribution_percent(credit_amount, yearly_total)
    return max(0, int(raw.quantize(Decimal("1"), rounding=ROUND_HALF_UP)))


def apply_outgoing_payment(outgoing: Outgoing, debit_amount: Decimal) -> tuple[Decimal, PaidStatus]:
    """Adds a debit to an outgoing's accumulated paid amount.

    Args:
        outgoing: The outgoing being paid.
        debit_amount: The debit amount of the transaction being linked.
            A negative value retracts a previous payment.

    Returns:
        The new paid amount (never below zero) and the paid status derived
        from it.
    """
    paid_amount = max(Decimal("0"), outgoing.paid_amount + debit_amount)
    return paid_amount, derive_paid_status(paid_amount, outgoing.amount)


class ReconciliationService:
    """Links bank transactions to pledges and outgoings."""

    logger: Logger
    engine: Engine
    transactions_repo: BankTransactionsRepository
    pledges_repo: PledgesRepository
    outgoings_repo: OutgoingsRepository
    config: Config

    def __init__(
        self,
        engine: Engine,
        transactions_repo: BankTransactionsRepository,
        pledges_repo: PledgesRepository,
        outgoings_repo: OutgoingsRepository,
        config: Config,
    ) -> None:
        """Initializes the service with its dependencies.

        Args:
            engine: The SQLAlchemy Engine used to open link transactions.
            transactions_repo: The repository for bank transactions.
            pledges_repo: The repository for pledges.
            outgoings_repo: The repository for outgoings.
            config: The application configuration object.
        """
        self.logger = LoggingProvider().get_logger()
        self.engine = engine
        self.transactions_repo = transactions_repo
        self.pledges_repo = pledges_repo
        self.outgoings_repo = outgoings_repo
        self.config = config

    def link_transaction(self, transaction_id: UUID, kind: LinkKind, target_id: UUID | None) -> LinkResult:
        """Links a transaction to a pledge or outgoing, or unlinks it.

        Unlinking clears the link and the reconciled flag without touching
        the previously linked record. Linking sets the link and the
        reconciled flag and then adds the transaction's amount to the linked
        record.

        By default, re-linking a transaction that is already linked does not
        take its amount back from the previous record. Set
        `RECONCILIATION_NET_PREVIOUS_LINK` to retract it first.

        Args:
            transaction_id: The transaction to link.
            kind: Link to a pledge or an outgoing.
            target_id: The pledge or outgoing to link to, or None to unlink.

        Returns:
            The link result.

        Raises:
            TransactionNotFoundError: If the transaction does not exist.
            LinkTargetNotFoundError: If the pledge or outgoing does not exist.
            InvalidLinkError: If the link is not allowed. Nothing is written.
            ReconciliationError: If the database rejects the update. Nothing
                is written.
        """
        action = "Unlinking" if target_id is None else f"Linking to {kind.value} {target_id}:"
        self.logger.info(f"{action} transaction {transaction_id}.")
        try:
            with self.engine.begin() as conn:
                transaction = self.transactions_repo.get_transaction_for_update(conn, transaction_id)
                if transaction is None:
                    raise TransactionNotFoundError(f"Transaction {transaction_id} not found.")

                if target_id is None:
                    result = self._unlink(conn, transaction, kind)
                elif kind == LinkKind.PLEDGE:
                    result = self._link_pledge(conn, transaction, target_id)
                else:
                    result = self._link_outgoing(conn, transaction, target_id)
        except (SQLAlchemyError, ValidationError) as e:
            self.logger.error(f"Failed to link transaction {transaction_id}: {e}")
            raise ReconciliationError(f"Failed to link transaction: {e}") from e

        self.logger.info(f"Transaction {transaction_id} {'linked' if result.linked else 'unlinked'}.")
        return result

    def update_receipt_number(self, transaction_id: UUID, receipt_number: str | None) -> str | None:
        """Records the receipt number issued for a transaction.

        Args:
            transaction_id: The transaction to update.
            receipt_number: The receipt number. Blank input clears it.

        Returns:
            The stored receipt number.

        Raises:
            TransactionNotFoundError: If the transaction does not exist.
            ReconciliationError: If the database rejects the update.
        """
        cleaned = receipt_number.strip() if receipt_number else None
        cleaned = cleaned or None
        try:
            updated = self.transactions_repo.update_receipt_number(transaction_id, cleaned)
        except SQLAlchemyError as e:
            self.logger.error(f"Failed to update receipt number for {transaction_id}: {e}")
            raise ReconciliationError(f"Failed to update receipt number: {e}") from e
        if not updated:
            raise TransactionNotFoundError(f"Transaction {transaction_id} not found.")
        return cleaned

    def _unlink(self, conn: Connection, transaction: BankTransaction, kind: LinkKind) -> LinkResult:
        if kind == LinkKind.PLEDGE:
            previous = transaction.pledge_id
            self.transactions_repo.set_pledge_link(conn, transaction.id, None)
        else:
            previous = transaction.outgoing_id
            self.transactions_repo.set_outgoing_link(conn, transaction.id, None)
        return LinkResult(
            transaction_id=transaction.id, kind=kind, target_id=None, previous_target_id=previous, linked=False
        )

    def _link_pledge(self, conn: Connection, transaction: BankTransaction, pledge_id: UUID) -> LinkResult:
        if transaction.link_kind != LinkKind.PLEDGE:
            raise InvalidLinkError("Only credit transactions can be linked to a pledge.")

        previous = transaction.pledge_id
        if previous and self.config.RECONCILIATION_NET_PREVIOUS_LINK:
            previous_pledge = self.pledges_repo.get_pledge_for_update(conn, previous)
            if previous_pledge is not None:
                retracted = retract_fulfillment_status(
                    previous_pledge.fulfillment_status, transaction.credit_amount, previous_pledge.yearly_total
                )
                self.pledges_repo.update_fulfillment_status(conn, previous, retracted)

        pledge = self.pledges_repo.get_pledge_for_update(conn, pledge_id)
        if pledge is None:
            raise LinkTargetNotFoundError(f"Pledge {pledge_id} not found.")

        status = compute_fulfillment_status(pledge.fulfillment_status, transaction.credit_amount, pledge.yearly_total)
        self.transactions_repo.set_pledge_link(conn, transaction.id, pledge_id)
        self.pledges_repo.update_fulfillment_status(conn, pledge_id, status)
        return LinkResult(
            transaction_id=transaction.id,
            kind=LinkKind.PLEDGE,
            target_id=pledge_id,
            previous_target_id=previous,
            linked=True,
            fulfillment_status=status,
        )

    def _link_outgoing(self, conn: Connection, transaction: BankTransaction, outgoing_id: UUID) -> LinkResult:
        if transaction.link_kind != LinkKind.OUTGOING:
            raise InvalidLinkError("Only debit transactions can be linked to an outgoing.")

        previous = transaction.outgoing_id
        if previous and self.config.RECONCILIATION_NET_PREVIOUS_LINK:
            previous_outgoing = self.outgoings_repo.get_outgoing_for_update(conn, previous)
            if previous_outgoing is not None:
                paid_amount, paid_status = apply_outgoing_payment(previous_outgoing, -transaction.debit_amount)
                self.outgoings_repo.update_payment(conn, previous, paid_amount, paid_status)

        outgoing = self.outgoings_repo.get_outgoing_for_update(conn, outgoing_id)
        if outgoing is None:
            raise LinkTargetNotFoundError(f"Outgoing {outgoing_id} not found.")
        if outgoing.status not in PAYABLE_STATUSES:
            raise InvalidLinkError(f"Outgoing {outgoing_id} is {outgoing.status.value} and cannot be paid yet.")

        paid_amount, paid_status = apply_outgoing_payment(outgoing, transaction.debit_amount)
        self.transactions_repo.set_outgoing_link(conn, transaction.id, outgoing_id)
        self.outgoings_repo.update_payment(conn, outgoing_id, paid_amount, paid_status)
        return LinkResult(
            transaction_id=transaction.id,
            kind=LinkKind.OUTGOING,
            target_id=outgoing_id,
            previous_target_id=previous,
            linked=True,
            paid_amount=paid_amount,
            paid_status=paid_status,
        )
