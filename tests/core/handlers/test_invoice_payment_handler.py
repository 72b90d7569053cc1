"""Tests for the InvoicePaid receipt handler."""

from decimal import Decimal
from unittest.mock import MagicMock

import pytest


@pytest.fixture
def handler(customer_service, email_client):
    from core.handlers.invoice_payment_handler import handle_invoice_paid
    return handle_invoice_paid(customer_service, email_client, sender="system")


def _paid_event(make_invoice, amount="110.00"):
    from core.events import InvoicePaid

    invoice = make_invoice(status="paid", amount_paid=Decimal(amount), balance_due=Decimal("0.00"))
    return InvoicePaid.create(invoice=invoice, payment_amount=Decimal(amount))


class TestInvoicePaidHandler:

    def test_emails_receipt_to_billing_address(self, handler, make_invoice, stored_customer, email_client):
        handler(_paid_event(make_invoice))

        kwargs = email_client.send_email.call_args.kwargs
        assert kwargs["to"] == "accounts@example.com"
        assert kwargs["subject"] == "Payment Received for Invoice INV-20240301-0001"
        assert "Thank you for your payment of $110.00" in kwargs["body"]
        assert kwargs["sender"] == "system"

    def test_looks_up_customer_in_invoice_business(self, handler, make_invoice, stored_customer, routes):
        event = _paid_event(make_invoice)

        handler(event)

        _, params = routes.single.queries("FROM customers")[0]
        assert params == (event.invoice.customer_id, event.invoice.business_id)

    def test_skips_customer_without_email(self, handler, make_invoice, routes, customer_row, email_client):
        routes.single.on("FROM customers", customer_row(billing_email=None))

        handler(_paid_event(make_invoice))

        email_client.send_email.assert_not_called()

    def test_skips_missing_customer(self, handler, make_invoice, email_client):
        handler(_paid_event(make_invoice))

        email_client.send_email.assert_not_called()

    def test_delivery_failure_does_not_escape_the_bus(self, customer_service, make_invoice, stored_customer):
        from clients.email_client import EmailGatewayClient, EmailGatewayError
        from core.event_bus import EventBus
        from core.handlers.invoice_payment_handler import handle_invoice_paid

        email = MagicMock(spec=EmailGatewayClient)
        email.send_email.side_effect = EmailGatewayError("down")
        bus = EventBus()
        bus.subscribe("InvoicePaid", handle_invoice_paid(customer_service, email))

        bus.publish(_paid_event(make_invoice))

        email.send_email.assert_called_once()
