"""Invoice domain models.

Money fields are Decimal dollars with two places. subtotal, tax, total and
balance_due are derived by core.ledger on every save and are never accepted
from callers. Tax is GST at 10%, either added on top or extracted from
tax-inclusive amounts.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from core.models.line_item import LineItem, LineItemInput
from utils.money import to_decimal


class InvoiceStatus(str, Enum):
    """Invoice lifecycle status."""

    DRAFT = "draft"
    SENT = "sent"
    PAID = "paid"
    OVERDUE = "overdue"
    CANCELLED = "cancelled"


def _clean_invoice_number(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    if not value:
        raise ValueError("invoice_number must not be blank")
    return value


class InvoiceCreate(BaseModel):
    """
    Data required to create an invoice.

    customer_id is optional at the model level so that a missing customer
    surfaces as a precondition failure from the service, not a 422.
    invoice_number is generated when omitted.
    """

    customer_id: UUID | None = None
    invoice_number: str | None = Field(None, max_length=50)
    customer_po_number: str | None = Field(None, max_length=100)
    issue_date: date | None = None
    due_date: date | None = None
    is_tax_inclusive: bool = False
    items: list[LineItemInput] = Field(default_factory=list)
    notes: str | None = Field(None, max_length=5000)
    amount_paid: Decimal = Decimal("0")

    @field_validator("invoice_number")
    @classmethod
    def invoice_number_not_blank(cls, value):
        return _clean_invoice_number(value)

    @field_validator("amount_paid", mode="before")
    @classmethod
    def coerce_amount_paid(cls, value):
        return to_decimal(value)


class InvoiceUpdate(BaseModel):
    """Fields that can change on save. All optional; items replace the whole set."""

    customer_id: UUID | None = None
    invoice_number: str | None = Field(None, max_length=50)
    customer_po_number: str | None = Field(None, max_length=100)
    issue_date: date | None = None
    due_date: date | None = None
    is_tax_inclusive: bool | None = None
    items: list[LineItemInput] | None = None
    notes: str | None = Field(None, max_length=5000)
    amount_paid: Decimal | None = None

    @field_validator("invoice_number")
    @classmethod
    def invoice_number_not_blank(cls, value):
        return _clean_invoice_number(value)

    @field_validator("amount_paid", mode="before")
    @classmethod
    def coerce_amount_paid(cls, value):
        if value is None:
            return None
        return to_decimal(value)


class Invoice(BaseModel):
    """Full invoice entity as stored, with its line items."""

    id: UUID
    business_id: UUID
    customer_id: UUID
    invoice_number: str
    customer_po_number: str | None = None
    issue_date: date
    due_date: date
    notes: str | None = None
    is_tax_inclusive: bool = False
    subtotal: Decimal
    tax: Decimal
    total: Decimal
    amount_paid: Decimal
    balance_due: Decimal
    status: InvoiceStatus
    version: int
    created_at: datetime
    updated_at: datetime
    items: list[LineItem] = Field(default_factory=list)

    model_config = {"from_attributes": True}

    @property
    def is_paid(self) -> bool:
        """Whether invoice is marked paid."""
        return self.status == InvoiceStatus.PAID

