"""
Domain events for invoicing.

Immutable event objects that represent state changes of an invoice.
Events enable loose coupling between services: a service publishes what
happened, and handlers react without the publisher knowing who's listening.

Events carry the full domain object so handlers don't need to re-fetch state.
They are published only after the write (and its activity entries) committed.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any
from uuid import uuid4

from utils.timezone import now_utc


@dataclass(frozen=True, kw_only=True)
class InvoicingEvent:
    """Base class for all invoicing domain events."""
    event_id: str = field(default_factory=lambda: str(uuid4()))
    occurred_at: datetime = field(default_factory=now_utc)


@dataclass(frozen=True)
class InvoiceEvent(InvoicingEvent):
    """Events related to invoice lifecycle."""
    invoice: Any = None  # Invoice; Any avoids a circular import


@dataclass(frozen=True)
class InvoiceCreated(InvoiceEvent):
    """A new invoice was saved for the first time, in DRAFT status."""

    @classmethod
    def create(cls, invoice: Any) -> "InvoiceCreated":
        return cls(invoice=invoice)


@dataclass(frozen=True)
class InvoiceUpdated(InvoiceEvent):
    """An invoice was saved with recomputed totals and a replaced item set."""

    @classmethod
    def create(cls, invoice: Any) -> "InvoiceUpdated":
        return cls(invoice=invoice)


@dataclass(frozen=True)
class InvoiceStatusReverted(InvoiceEvent):
    """A paid invoice was edited, confirmed, and reverted to draft."""
    previous_total: Decimal | None = None

    @classmethod
    def create(cls, invoice: Any, previous_total: Decimal) -> "InvoiceStatusReverted":
        return cls(invoice=invoice, previous_total=previous_total)


@dataclass(frozen=True)
class InvoiceSent(InvoiceEvent):
    """Invoice was emailed to a recipient."""
    recipient_email: str | None = None

    @classmethod
    def create(cls, invoice: Any, recipient_email: str) -> "InvoiceSent":
        return cls(invoice=invoice, recipient_email=recipient_email)


@dataclass(frozen=True)
class InvoicePaid(InvoiceEvent):
    """A payment was applied and the invoice is now marked paid."""
    payment_amount: Decimal | None = None

    @classmethod
    def create(cls, invoice: Any, payment_amount: Decimal) -> "InvoicePaid":
        return cls(invoice=invoice, payment_amount=payment_amount)


@dataclass(frozen=True)
class PaymentFailed(InvoicingEvent):
    """The payment processor reported a failed payment attempt."""
    invoice_id: Any = None
    reason: str | None = None

    @classmethod
    def create(cls, invoice_id: Any, reason: str) -> "PaymentFailed":
        return cls(invoice_id=invoice_id, reason=reason)
