"""Request and response bodies of the HTTP API."""

from uuid import UUID

from mission_ledger.models.bank_transactions import TransactionRow, TransactionTotals
from mission_ledger.models.outgoings import OutgoingOption
from mission_ledger.models.pledges import PledgeOption
from mission_ledger.models.reconciliation import LinkKind
from pydantic import BaseModel


class TransactionListResponse(BaseModel):
    """One page of the filtered, sorted transaction list."""

    totals: TransactionTotals
    page: int
    page_size: int
    total_pages: int
    filtered_count: int
    rows: list[TransactionRow]
    pledges: list[PledgeOption]
    outgoings: list[OutgoingOption]


class RemoveDuplicatesRequest(BaseModel):
    ids: list[UUID]


class LinkRequest(BaseModel):
    """Links a transaction to a pledge or an outgoing; a null target unlinks it."""

    kind: LinkKind
    target_id: UUID | None = None


class ReceiptRequest(BaseModel):
    receipt_number: str | None = None


class ReceiptResponse(BaseModel):
    transaction_id: UUID
    receipt_number: str | None


class MappedImportRequest(BaseModel):
    """Statement lines whose columns the client already mapped to transaction fields."""

    transactions: list[dict[str, str | int | float | None]]
