"""This module defines the Pydantic models for pledges.

A pledge is the support an individual has committed to give. The
reconciliation pipeline only needs the yearly totals and the fulfillment
percentage, plus enough of the donor's identity to show who a credit
transaction was linked to.
"""

from datetime import date
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, Field, field_validator


class Pledge(BaseModel):
    """Represents a row of the `pledges` table.

    Attributes:
        id: The pledge's primary key.
        individual_id: The donor the pledge belongs to.
        missionaries_committed: How many missionaries the donor supports.
        frequency: How often the missionary support is given, as stored by the
            pledge forms (monthly, quarterly, biannually, annually, one-time...).
        amount_per_frequency: The missionary support given per period.
        special_support_amount: Any additional special support per period.
        special_support_frequency: The frequency of the special support.
        yearly_missionary_support: The missionary support summed over a year.
        yearly_special_support: The special support summed over a year.
        fulfillment_status: The percentage (0-100) of the yearly total that
            linked credit transactions have covered.
        last_fulfillment_date: When the pledge last received a contribution.
    """

    id: UUID
    individual_id: UUID
    missionaries_committed: int = 0
    frequency: str | None = None
    amount_per_frequency: Decimal = Decimal("0")
    special_support_amount: Decimal = Decimal("0")
    special_support_frequency: str | None = None
    yearly_missionary_support: Decimal = Decimal("0")
    yearly_special_support: Decimal = Decimal("0")
    fulfillment_status: int = Field(default=0, ge=0)
    last_fulfillment_date: date | None = None

    @field_validator(
        "missionaries_committed",
        "amount_per_frequency",
        "special_support_amount",
        "yearly_missionary_support",
        "yearly_special_support",
        "fulfillment_status",
        mode="before",
    )
    @classmethod
    def null_as_zero(cls, value: object) -> object:
        """Maps NULL numeric columns to zero.

        Args:
            value: The raw column value.

        Returns:
            The value, or 0 when it is None.
        """
        return 0 if value is None else value

    @property
    def yearly_total(self) -> Decimal:
        """Returns the full yearly commitment the fulfillment percentage is measured against.

        Returns:
            The yearly missionary support plus the yearly special support.
        """
        return self.yearly_missionary_support + self.yearly_special_support


class PledgeOption(BaseModel):
    """A pledge as offered for linking, labelled with the donor's name."""

    id: UUID
    individual_name: str
    missionaries_committed: int | None = None
    frequency: str | None = None
