"""This module defines the Pydantic models for bank transactions.

These models represent one line of a bank statement as stored in the
`bank_transactions` table, the data needed to insert a new line, and the
enriched view of a line produced by the transaction loader.
"""

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from mission_ledger.models.outgoings import OutgoingOption
from mission_ledger.models.pledges import PledgeOption
from mission_ledger.models.reconciliation import LinkKind
from pydantic import BaseModel, ConfigDict, Field, field_validator


class NewBankTransaction(BaseModel):
    """Defines the data required to insert a bank statement line.

    The beneficiary columns keep the spelling used by the database
    (`benificiary_ac`, `benificiary_name`); the model exposes them under
    corrected names and accepts either spelling on input.
    """

    model_config = ConfigDict(populate_by_name=True)

    value_date: date | None = None
    posting_date: date | None = None
    transaction_date: date | None = None
    transaction_type: str | None = None
    transaction_reference: str | None = None
    debit_amount: Decimal = Decimal("0")
    credit_amount: Decimal = Decimal("0")
    balance: Decimal | None = None
    description: str | None = None
    beneficiary_account: str | None = Field(default=None, alias="benificiary_ac")
    beneficiary_name: str | None = Field(default=None, alias="benificiary_name")
    branch_code: str | None = None
    account_number: str | None = None
    receipt_number: str | None = None
    notes: str | None = None
    reconciled: bool = False

    @field_validator("debit_amount", "credit_amount", mode="before")
    @classmethod
    def null_amount_as_zero(cls, value: object) -> object:
        """Treats a missing debit or credit amount as zero.

        Args:
            value: The raw column value.

        Returns:
            The value, or 0 when it is None or blank.
        """
        if value is None or (isinstance(value, str) and not value.strip()):
            return Decimal("0")
        return value

    @field_validator("reconciled", mode="before")
    @classmethod
    def null_as_unreconciled(cls, value: object) -> object:
        """Treats a NULL reconciled flag as not reconciled.

        Args:
            value: The raw column value.

        Returns:
            The value, or False when it is None.
        """
        return False if value is None else value

    def to_row(self) -> dict:
        """Returns the column/value mapping used for inserts.

        Returns:
            A dictionary keyed by database column names.
        """
        return self.model_dump(by_alias=True)


class BankTransaction(NewBankTransaction):
    """Represents a bank statement line read from the database."""

    id: UUID
    created_at: datetime
    pledge_id: UUID | None = None
    outgoing_id: UUID | None = None

    @property
    def is_credit(self) -> bool:
        """Returns True when money came into the account on this line."""
        return self.credit_amount > 0

    @property
    def is_debit(self) -> bool:
        """Returns True when money left the account on this line."""
        return self.debit_amount > 0

    @property
    def link_kind(self) -> LinkKind | None:
        """Returns the kind of record this line can be reconciled against.

        Returns:
            PLEDGE for credits, OUTGOING for debits, or None when the line
            moves no money.
        """
        if self.is_credit:
            return LinkKind.PLEDGE
        if self.is_debit:
            return LinkKind.OUTGOING
        return None


class LinkedPledge(BaseModel):
    """Display data for the pledge a transaction is linked to."""

    individual_name: str
    missionaries_committed: int | None = None


class LinkedOutgoing(BaseModel):
    """Display data for the outgoing a transaction is linked to."""

    title: str


class EnrichedBankTransaction(BankTransaction):
    """A bank transaction carrying the resolved names of what it is linked to."""

    pledge: LinkedPledge | None = None
    outgoing: LinkedOutgoing | None = None

    @property
    def linked_to(self) -> str | None:
        """Returns the donor's name or the outgoing's title, whichever is linked."""
        if self.pledge:
            return self.pledge.individual_name
        if self.outgoing:
            return self.outgoing.title
        return None

    @property
    def is_reconciled(self) -> bool:
        """Returns True if the line is flagged reconciled or linked to anything."""
        return bool(self.reconciled or self.pledge_id or self.outgoing_id)


class TransactionRow(BaseModel):
    """The flat, serializable view of an enriched transaction returned to callers."""

    id: UUID
    value_date: date | None = None
    posting_date: date | None = None
    transaction_date: date | None = None
    transaction_type: str | None = None
    transaction_reference: str | None = None
    debit_amount: Decimal
    credit_amount: Decimal
    balance: Decimal | None = None
    description: str | None = None
    beneficiary_account: str | None = None
    beneficiary_name: str | None = None
    receipt_number: str | None = None
    notes: str | None = None
    pledge_id: UUID | None = None
    outgoing_id: UUID | None = None
    reconciled: bool
    linked_to: str | None = None
    created_at: datetime

    @classmethod
    def from_transaction(cls, transaction: EnrichedBankTransaction) -> "TransactionRow":
        """Flattens an enriched transaction.

        Args:
            transaction: The enriched transaction.

        Returns:
            The row, with `reconciled` set when the transaction is flagged or
            linked and `linked_to` holding the donor name or outgoing title.
        """
        data = transaction.model_dump(include=set(cls.model_fields) - {"reconciled", "linked_to"})
        return cls(**data, reconciled=transaction.is_reconciled, linked_to=transaction.linked_to)


class TransactionTotals(BaseModel):
    """Aggregates over the full, unfiltered set of transactions."""

    total_debit: Decimal = Decimal("0")
    total_credit: Decimal = Decimal("0")
    count: int = 0

    @classmethod
    def from_transactions(cls, transactions: list[BankTransaction]) -> "TransactionTotals":
        """Sums the debit and credit amounts of a list of transactions.

        Args:
            transactions: The transactions to aggregate.

        Returns:
            The totals.
        """
        return cls(
            total_debit=sum((t.debit_amount for t in transactions), Decimal("0")),
            total_credit=sum((t.credit_amount for t in transactions), Decimal("0")),
            count=len(transactions),
        )


class LoadedTransactions(BaseModel):
    """The working set produced by the transaction loader.

    Attributes:
        rows: Every transaction, enriched with its linked pledge or outgoing.
        totals: Debit/credit totals and the row count over all rows.
        pledges: The pledges a credit transaction can be linked to, sorted by
            donor name.
        outgoings: The approved or finalized outgoings a debit transaction can
            be linked to, sorted by title.
    """

    rows: list[EnrichedBankTransaction]
    totals: TransactionTotals
    pledges: list[PledgeOption] = []
    outgoings: list[OutgoingOption] = []
