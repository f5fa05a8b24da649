"""This module defines the Pydantic models for outgoing payment requests."""

from datetime import date
from decimal import Decimal
from enum import StrEnum
from uuid import UUID

from pydantic import BaseModel, field_validator


class OutgoingStatus(StrEnum):
    """The approval lifecycle of an outgoing payment request."""

    REQUESTED = "requested"
    APPROVED = "approved"
    FINALIZED = "finalized"


class PaidStatus(StrEnum):
    """How much of an outgoing has been covered by linked debit transactions."""

    UNPAID = "unpaid"
    PARTIAL = "partial"
    PAID = "paid"


class OutgoingType(StrEnum):
    """The purpose of an outgoing payment."""

    MISSIONARY_SUPPORT = "missionary_support"
    OTHER = "other"


PAYABLE_STATUSES = (OutgoingStatus.APPROVED, OutgoingStatus.FINALIZED)


def derive_paid_status(paid_amount: Decimal, amount: Decimal) -> PaidStatus:
    """Derives the paid status of an outgoing from its accumulated payments.

    Args:
        paid_amount: The total amount of the debit transactions linked so far.
        amount: The requested amount of the outgoing.

    Returns:
        PAID once the paid amount reaches the requested amount, PARTIAL while
        something but not everything has been paid, UNPAID otherwise.
    """
    if paid_amount >= amount:
        return PaidStatus.PAID
    if paid_amount > 0:
        return PaidStatus.PARTIAL
    return PaidStatus.UNPAID


class Outgoing(BaseModel):
    """Represents a row of the `outgoings` table.

    Only the columns the reconciliation pipeline reads or writes are mapped.
    """

    id: UUID
    title: str
    type: OutgoingType | None = None
    amount: Decimal
    paid_amount: Decimal = Decimal("0")
    paid_status: PaidStatus = PaidStatus.UNPAID
    status: OutgoingStatus
    request_date: date | None = None

    @field_validator("paid_amount", mode="before")
    @classmethod
    def default_paid_amount(cls, value: object) -> object:
        """Treats a NULL paid amount as nothing paid yet.

        Args:
            value: The raw column value.

        Returns:
            The value, or zero when it is None.
        """
        return Decimal("0") if value is None else value

    @field_validator("paid_status", mode="before")
    @classmethod
    def default_paid_status(cls, value: object) -> object:
        """Treats a NULL paid status as unpaid.

        Args:
            value: The raw column value.

        Returns:
            The value, or UNPAID when it is None.
        """
        return PaidStatus.UNPAID if value is None else value


class OutgoingOption(BaseModel):
    """An approved or finalized outgoing that a debit transaction can be linked to."""

    id: UUID
    title: str
