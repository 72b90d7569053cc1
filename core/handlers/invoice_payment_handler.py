"""
Handler for InvoicePaid events.

On invoice payment, emails a receipt to the customer's billing address.
"""

import logging
from typing import Callable

from clients.email_client import EmailGatewayClient
from core.context import InvoiceContext
from core.documents import render_payment_received_email
from core.events import InvoicePaid

logger = logging.getLogger(__name__)


def handle_invoice_paid(
    customer_service,
    email_client: EmailGatewayClient,
    sender: str = "system",
) -> Callable:
    """
    Factory that returns an InvoicePaid handler.

    Args:
        customer_service: CustomerService instance
        email_client: Gateway used to deliver the receipt
        sender: Gateway sender identity

    Returns:
        Handler callable that emails a payment receipt
    """

    def handler(event: InvoicePaid):
        invoice = event.invoice
        ctx = InvoiceContext(business_id=invoice.business_id)

        customer = customer_service.get_by_id(ctx, invoice.customer_id)
        if customer is None or not customer.billing_email:
            logger.info(f"No billing email for invoice {invoice.invoice_number}; receipt skipped")
            return

        rendered = render_payment_received_email(invoice, customer, event.payment_amount)
        email_client.send_email(
            to=customer.billing_email,
            subject=rendered.subject,
            body=rendered.text,
            html=rendered.html,
            sender=sender,
        )

    return handler
