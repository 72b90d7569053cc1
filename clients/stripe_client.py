"""
Payment processor client (Stripe).

Creates hosted payment links for invoices and verifies incoming webhook
events. Amounts cross this boundary in integer cents; conversion to and
from Decimal dollars happens in the payment service.
"""

import logging
from typing import Any

import stripe

logger = logging.getLogger(__name__)


class PaymentProviderError(Exception):
    """Raised when a call to the payment processor fails."""


class StripeClient:
    """Thin wrapper over the stripe SDK for the calls invoicing needs."""

    def __init__(self, secret_key: str, webhook_secret: str):
        """
        Initialize with processor credentials.

        Raises:
            ValueError: If any credential is empty
        """
        if not secret_key:
            raise ValueError("secret_key is required")
        if not webhook_secret:
            raise ValueError("webhook_secret is required")

        stripe.api_key = secret_key
        self.webhook_secret = webhook_secret

    def construct_event(self, payload: bytes, signature: str) -> Any:
        """
        Verify a webhook signature and parse the event.

        Args:
            payload: Raw request body
            signature: Value of the Stripe-Signature header

        Returns:
            Stripe event object

        Raises:
            ValueError: If the payload is malformed or the signature invalid
        """
        try:
            return stripe.Webhook.construct_event(payload, signature, self.webhook_secret)
        except ValueError as e:
            raise ValueError(f"Invalid payload: {e}") from e
        except stripe.SignatureVerificationError as e:
            raise ValueError(f"Invalid signature: {e}") from e

    def create_payment_link(
        self,
        invoice_id: str,
        invoice_number: str,
        customer_name: str,
        amount_cents: int,
        currency: str,
        redirect_url: str,
    ) -> str:
        """
        Create a one-off product, price and payment link for an invoice.

        The invoice id is attached as ``invoiceId`` metadata to the product,
        the link, its checkout sessions and their payment intents so webhooks
        can find the invoice again.

        Returns:
            Public URL of the payment link

        Raises:
            PaymentProviderError: On any processor failure
        """
        metadata = {"invoiceId": invoice_id, "invoiceNumber": invoice_number}

        try:
            product = stripe.Product.create(
                name=f"Invoice {invoice_number} for {customer_name}",
                description=f"Payment for invoice {invoice_number}",
                metadata=metadata,
            )
            price = stripe.Price.create(
                product=product.id,
                unit_amount=amount_cents,
                currency=currency,
                metadata=metadata,
            )
            link = stripe.PaymentLink.create(
                line_items=[{"price": price.id, "quantity": 1}],
                metadata=metadata,
                payment_intent_data={"metadata": metadata},
                after_completion={"type": "redirect", "redirect": {"url": redirect_url}},
            )
        except stripe.StripeError as e:
            logger.error(f"Payment link creation failed for invoice {invoice_number}: {e}")
            raise PaymentProviderError(f"Could not create payment link: {e}") from e

        logger.info(f"Payment link created for invoice {invoice_number}")
        return link.url

    def retrieve_payment_intent_amount(self, payment_intent_id: str) -> int:
        """
        Amount received on a payment intent, in cents.

        Raises:
            PaymentProviderError: On any processor failure
        """
        try:
            intent = stripe.PaymentIntent.retrieve(payment_intent_id)
        except stripe.StripeError as e:
            logger.error(f"Payment intent lookup failed for {payment_intent_id}: {e}")
            raise PaymentProviderError(f"Could not retrieve payment intent: {e}") from e

        return intent.amount_received or intent.amount
