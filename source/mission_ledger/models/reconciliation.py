"""This module defines the models describing reconciliation link operations."""

from decimal import Decimal
from enum import StrEnum
from uuid import UUID

from mission_ledger.models.outgoings import PaidStatus
from pydantic import BaseModel


class LinkKind(StrEnum):
    """The kind of record a bank transaction can be reconciled against.

    Credit transactions are reconciled against pledges, debit transactions
    against outgoings.
    """

    PLEDGE = "pledge"
    OUTGOING = "outgoing"


class LinkResult(BaseModel):
    """Describes the outcome of a link or unlink operation.

    Attributes:
        transaction_id: The transaction that was linked or unlinked.
        kind: Whether the pledge or the outgoing side was touched.
        target_id: The pledge or outgoing now linked, or None after an unlink.
        previous_target_id: The record the transaction was linked to before
            this operation, if any.
        linked: True after a link, False after an unlink.
        fulfillment_status: The pledge's new fulfillment percentage, for
            pledge links.
        paid_amount: The outgoing's new accumulated paid amount, for outgoing
            links.
        paid_status: The outgoing's new paid status, for outgoing links.
    """

    transaction_id: UUID
    kind: LinkKind
    target_id: UUID | None
    previous_target_id: UUID | None = None
    linked: bool
    fulfillment_status: int | None = None
    paid_amount: Decimal | None = None
    paid_status: PaidStatus | None = None
