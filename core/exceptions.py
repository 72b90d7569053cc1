"""Typed exceptions for invoicing failures."""

from decimal import Decimal
from uuid import UUID

from core.models import InvoiceStatus


class InvoicingError(Exception):
    """Base class for invoicing domain errors."""


class PreconditionFailedError(InvoicingError):
    """
    A required relation is missing (no business profile, no customer).

    Raised before any ledger computation or write happens.
    """


class StatusReversionRequired(InvoicingError):
    """
    Saving would change the total of a paid invoice.

    Nothing has been written. Resubmit with confirmation to save and revert
    the invoice to forced_status; otherwise the save is abandoned.
    """

    def __init__(
        self,
        invoice_id: UUID,
        previous_total: Decimal,
        new_total: Decimal,
        forced_status: InvoiceStatus,
    ):
        self.invoice_id = invoice_id
        self.previous_total = previous_total
        self.new_total = new_total
        self.forced_status = forced_status
        super().__init__(
            f"Invoice {invoice_id} is paid and its total would change from "
            f"{previous_total} to {new_total}. Confirm to revert it to {forced_status.value}."
        )


class VersionConflictError(InvoicingError):
    """The invoice changed since it was read (another save or a payment webhook)."""

    def __init__(self, invoice_id: UUID, expected_version: int | None = None):
        self.invoice_id = invoice_id
        self.expected_version = expected_version
        super().__init__(
            f"Invoice {invoice_id} was modified concurrently "
            f"(expected version {expected_version}). Reload and retry."
        )


class WebhookError(InvoicingError):
    """Webhook payload could not be verified or is missing required data."""
