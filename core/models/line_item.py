"""Line item domain models.

Two line shapes exist and are kept apart by an explicit ``mode`` tag:

- ``amount``: description / category / job / tax_code with the amount
  entered directly (bookkeeping-style lines).
- ``quantity``: name / quantity / unit_amount, with amount derived as
  quantity * unit_amount (catalogue-style lines).

Amounts are Decimal dollars. Malformed amounts coerce to zero and a blank or
malformed quantity means one unit; a numeric quantity must be positive.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Annotated, Literal, Union
from uuid import UUID

from pydantic import BaseModel, Field, field_validator, model_validator

from utils.money import compute_line_amount, parse_decimal, to_decimal


class LineItemMode(str, Enum):
    """Which line item shape a row uses."""

    AMOUNT = "amount"
    QUANTITY = "quantity"


DEFAULT_TAX_CODE = "GST"


class AmountLineItemInput(BaseModel):
    """Line whose amount is entered directly."""

    mode: Literal["amount"] = "amount"
    description: str | None = Field(None, max_length=1000)
    category: str | None = Field(None, max_length=255)
    amount: Decimal = Decimal("0")
    job: str | None = Field(None, max_length=255)
    tax_code: str | None = Field(DEFAULT_TAX_CODE, max_length=50)

    @field_validator("amount", mode="before")
    @classmethod
    def coerce_amount(cls, value):
        return to_decimal(value)


class QuantityLineItemInput(BaseModel):
    """Line whose amount is quantity * unit_amount."""

    mode: Literal["quantity"] = "quantity"
    name: str | None = Field(None, max_length=255)
    description: str | None = Field(None, max_length=1000)
    quantity: Decimal = Field(Decimal("1"), gt=0)
    unit_amount: Decimal = Decimal("0")
    tax_code: str | None = Field(DEFAULT_TAX_CODE, max_length=50)
    amount: Decimal = Decimal("0")

    @field_validator("unit_amount", mode="before")
    @classmethod
    def coerce_unit_amount(cls, value):
        return to_decimal(value)

    @field_validator("quantity", mode="before")
    @classmethod
    def default_quantity(cls, value):
        # A blank or unreadable quantity box means one unit, not zero.
        quantity = parse_decimal(value)
        return Decimal("1") if quantity is None else quantity

    @model_validator(mode="after")
    def derive_amount(self) -> "QuantityLineItemInput":
        """Amount always follows quantity and unit_amount; any submitted value is ignored."""
        self.amount = compute_line_amount(self.quantity, self.unit_amount)
        return self


LineItemInput = Annotated[
    Union[AmountLineItemInput, QuantityLineItemInput],
    Field(discriminator="mode"),
]


class LineItem(BaseModel):
    """Full line item entity as stored. Columns of the other shape are null."""

    id: UUID
    invoice_id: UUID
    position: int
    mode: LineItemMode
    description: str | None = None
    name: str | None = None
    category: str | None = None
    job: str | None = None
    tax_code: str | None = None
    quantity: Decimal | None = None
    unit_amount: Decimal | None = None
    amount: Decimal
    created_at: datetime

    model_config = {"from_attributes": True}

    def to_input(self) -> AmountLineItemInput | QuantityLineItemInput:
        """Rebuild the input model so an unchanged item set can be re-saved as-is."""
        if self.mode == LineItemMode.QUANTITY:
            return QuantityLineItemInput(
                name=self.name,
                description=self.description,
                quantity=self.quantity if self.quantity is not None else Decimal("1"),
                unit_amount=self.unit_amount,
                tax_code=self.tax_code,
            )
        return AmountLineItemInput(
            description=self.description,
            category=self.category,
            amount=self.amount,
            job=self.job,
            tax_code=self.tax_code,
        )
