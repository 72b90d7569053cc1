"""Tests for invoicing domain events."""

import dataclasses
from decimal import Decimal
from uuid import uuid4

import pytest

from core.events import (
    InvoiceCreated,
    InvoicePaid,
    InvoiceSent,
    InvoiceStatusReverted,
    PaymentFailed,
)


class TestEventConstruction:
    """Factories populate payload and envelope fields."""

    def test_event_gets_id_and_timestamp(self, make_invoice):
        event = InvoiceCreated.create(invoice=make_invoice())

        assert event.event_id
        assert event.occurred_at.tzinfo is not None

    def test_paid_carries_amount(self, make_invoice):
        event = InvoicePaid.create(invoice=make_invoice(), payment_amount=Decimal("25.00"))

        assert event.payment_amount == Decimal("25.00")

    def test_sent_carries_recipient(self, make_invoice):
        event = InvoiceSent.create(invoice=make_invoice(), recipient_email="a@example.com")

        assert event.recipient_email == "a@example.com"

    def test_reverted_carries_previous_total(self, make_invoice):
        event = InvoiceStatusReverted.create(invoice=make_invoice(), previous_total=Decimal("99.00"))

        assert event.previous_total == Decimal("99.00")

    def test_payment_failed_needs_no_invoice_object(self):
        invoice_id = uuid4()

        event = PaymentFailed.create(invoice_id=invoice_id, reason="card declined")

        assert event.invoice_id == invoice_id
        assert event.reason == "card declined"


class TestEventImmutability:
    """Events are frozen once published."""

    def test_cannot_reassign_fields(self, make_invoice):
        event = InvoiceCreated.create(invoice=make_invoice())

        with pytest.raises(dataclasses.FrozenInstanceError):
            event.invoice = None
