"""
Online payments: payment links out, processor webhooks in.

Webhook events are verified, deduplicated by event id, then applied
through InvoiceService so payments get the same ledger arithmetic,
compare-and-set retry and activity trail as manual entries.
"""

import logging
from typing import Any
from uuid import UUID

from clients.postgres_client import PostgresClient
from clients.stripe_client import StripeClient
from core.config import InvoicingConfig
from core.context import InvoiceContext
from core.exceptions import WebhookError
from core.services.invoice_service import InvoiceService
from utils.money import ZERO, from_cents, to_cents
from utils.timezone import now_utc

logger = logging.getLogger(__name__)

CHECKOUT_COMPLETED = "checkout.session.completed"
PAYMENT_FAILED = "payment_intent.payment_failed"


def _invoice_id_from(obj: Any, required: bool) -> UUID | None:
    metadata = obj.get("metadata") or {}
    raw = metadata.get("invoiceId")
    if not raw:
        if required:
            raise WebhookError("No invoice ID found in event metadata")
        return None
    try:
        return UUID(str(raw))
    except ValueError:
        raise WebhookError(f"Invalid invoice ID in event metadata: {raw}")


class PaymentService:
    """Service for processor-backed payments."""

    def __init__(
        self,
        postgres: PostgresClient,
        invoices: InvoiceService,
        stripe: StripeClient,
        config: InvoicingConfig | None = None,
    ):
        self.postgres = postgres
        self.invoices = invoices
        self.stripe = stripe
        self.config = config or InvoicingConfig()

    def create_payment_link(
        self,
        ctx: InvoiceContext,
        invoice_id: UUID,
        redirect_base_url: str | None = None,
    ) -> str:
        """
        Create a hosted payment link for the invoice's balance due.

        The link is recorded as a share on the invoice.

        Args:
            ctx: Business scope
            invoice_id: Invoice UUID
            redirect_base_url: App URL to return to after paying (default from config)

        Returns:
            Payment link URL

        Raises:
            ValueError: Invoice not found or nothing owing
            PaymentProviderError: Processor call failed
        """
        invoice = self.invoices.get_by_id(ctx, invoice_id)
        if invoice is None:
            raise ValueError(f"Invoice {invoice_id} not found")
        if invoice.balance_due <= ZERO:
            raise ValueError(f"Invoice {invoice.invoice_number} has no balance due")

        customer = self.invoices.customers.get_by_id(ctx, invoice.customer_id)
        base_url = (redirect_base_url or self.config.app_base_url).rstrip("/")

        url = self.stripe.create_payment_link(
            invoice_id=str(invoice.id),
            invoice_number=invoice.invoice_number,
            customer_name=customer.display_name if customer else "Customer",
            amount_cents=to_cents(invoice.balance_due),
            currency=self.config.currency,
            redirect_url=f"{base_url}/dashboard/invoices/{invoice.id}?payment=success",
        )

        self.invoices.record_share(ctx, invoice_id, url)
        return url

    def _claim_event(self, event_id: str, event_type: str) -> bool:
        """Mark an event as processed. False when it already was."""
        rows = self.postgres.execute_returning(
            """
            INSERT INTO processed_webhook_events (event_id, event_type, processed_at)
            VALUES (%s, %s, %s)
            ON CONFLICT (event_id) DO NOTHING
            RETURNING event_id
            """,
            (event_id, event_type, now_utc())
        )
        return bool(rows)

    def _release_event(self, event_id: str) -> None:
        """Forget a claimed event so the processor's retry is handled again."""
        self.postgres.execute(
            "DELETE FROM processed_webhook_events WHERE event_id = %s",
            (event_id,)
        )

    def handle_webhook(self, payload: bytes, signature: str | None) -> dict:
        """
        Verify and apply one processor webhook event.

        Args:
            payload: Raw request body
            signature: Stripe-Signature header

        Returns:
            {"received": True, "event_type": ..., "duplicate": bool}

        Raises:
            WebhookError: Missing/invalid signature or missing invoice metadata
            ValueError: Referenced invoice not found
        """
        if not signature:
            raise WebhookError("Missing Stripe signature")

        try:
            event = self.stripe.construct_event(payload, signature)
        except ValueError as e:
            logger.warning(f"Webhook verification failed: {e}")
            raise WebhookError(f"Webhook verification failed: {e}")

        event_id = event["id"]
        event_type = event["type"]

        if not self._claim_event(event_id, event_type):
            logger.warning(f"Duplicate webhook event {event_id} ({event_type}) ignored")
            return {"received": True, "event_type": event_type, "duplicate": True}

        try:
            self._dispatch(event_type, event["data"]["object"])
        except Exception:
            self._release_event(event_id)
            raise

        return {"received": True, "event_type": event_type, "duplicate": False}

    def _dispatch(self, event_type: str, obj: Any) -> None:
        if event_type == CHECKOUT_COMPLETED:
            self._handle_checkout_completed(obj)
        elif event_type == PAYMENT_FAILED:
            self._handle_payment_failed(obj)
        else:
            logger.info(f"Unhandled webhook event type {event_type}")

    def _handle_checkout_completed(self, session: Any) -> None:
        invoice_id = _invoice_id_from(session, required=True)
        payment_intent_id = session.get("payment_intent")

        amount_cents = session.get("amount_total")
        if amount_cents is None:
            if not payment_intent_id:
                raise WebhookError("Checkout session carries no amount")
            amount_cents = self.stripe.retrieve_payment_intent_amount(payment_intent_id)

        logger.info(f"Processing payment for invoice {invoice_id}")
        self.invoices.record_processor_payment(
            invoice_id,
            from_cents(amount_cents),
            reference=payment_intent_id or session.get("id"),
        )

    def _handle_payment_failed(self, intent: Any) -> None:
        invoice_id = _invoice_id_from(intent, required=False)
        if invoice_id is None:
            logger.info(f"Payment failure {intent.get('id')} is not linked to an invoice")
            return

        error = intent.get("last_payment_error") or {}
        reason = error.get("message") or "Payment was declined"
        self.invoices.record_payment_failure(invoice_id, reason)
