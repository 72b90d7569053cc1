"""Tests for invoice PDF and email rendering."""

from decimal import Decimal
from uuid import uuid4

import pytest


@pytest.fixture
def customer(customer_row):
    from core.models import Customer
    return Customer.model_validate(customer_row())


@pytest.fixture
def profile(profile_row):
    from core.models import BusinessProfile
    return BusinessProfile.model_validate(profile_row())


class TestFormatMoney:

    @pytest.mark.parametrize("value, expected", [
        (Decimal("0"), "$0.00"),
        (Decimal("1234.5"), "$1,234.50"),
        ("83.125", "$83.13"),
        (Decimal("-40"), "-$40.00"),
        (None, "$0.00"),
    ])
    def test_formats(self, value, expected):
        from core.documents import format_money

        assert format_money(value) == expected


class TestInvoicePdf:

    def test_renders_pdf_bytes(self, make_invoice, customer, profile):
        from core.documents import render_invoice_pdf

        pdf = render_invoice_pdf(make_invoice(), customer, profile)

        assert pdf.startswith(b"%PDF")
        assert len(pdf) > 1000

    def test_renders_without_profile_customer_or_items(self, make_invoice):
        from core.documents import render_invoice_pdf

        pdf = render_invoice_pdf(make_invoice(items=[]), None, None)

        assert pdf.startswith(b"%PDF")

    def test_quantity_rows_show_quantity_and_unit_price(self, make_invoice, item_row):
        from core.documents import _item_rows

        invoice = make_invoice(items=[
            item_row(
                mode="quantity", name="Widget", description="Blue", category=None,
                quantity=Decimal("3.000"), unit_amount=Decimal("12.50"), amount=Decimal("37.50"),
            ),
            item_row(id=uuid4(), position=1),
        ])

        rows = _item_rows(invoice)

        assert rows[0] == ["Description", "Qty", "Unit Price", "Tax", "Amount"]
        assert rows[1] == ["Widget - Blue", "3", "$12.50", "GST", "$37.50"]
        assert rows[2] == ["Consulting", "", "", "GST", "$100.00"]

    def test_empty_invoice_has_placeholder_row(self, make_invoice):
        from core.documents import _item_rows

        assert _item_rows(make_invoice(items=[]))[1][0] == "(No items)"


class TestInvoiceEmail:

    def test_subject_and_figures(self, make_invoice, profile):
        from core.documents import render_invoice_email

        invoice = make_invoice(amount_paid=Decimal("10.00"), balance_due=Decimal("100.00"))

        rendered = render_invoice_email(invoice, profile)

        assert rendered.subject == "Invoice INV-20240301-0001 from Tradie Co"
        assert "Amount Due: $100.00" in rendered.text
        assert "Total Amount: $110.00" in rendered.text
        assert "Consulting: $100.00" in rendered.text
        assert "Due Date: 15/03/2024" in rendered.text

    def test_optional_message(self, make_invoice, profile):
        from core.documents import render_invoice_email

        rendered = render_invoice_email(make_invoice(), profile, message="Thanks for the work")

        assert "Thanks for the work" in rendered.text
        assert "<p>Thanks for the work</p>" in rendered.html

    def test_html_is_escaped(self, make_invoice, profile_row):
        from core.documents import render_invoice_email
        from core.models import BusinessProfile

        profile = BusinessProfile.model_validate(profile_row(business_name="Smith & <Sons>"))

        rendered = render_invoice_email(make_invoice(), profile)

        assert "Smith &amp; &lt;Sons&gt;" in rendered.html
        assert rendered.subject == "Invoice INV-20240301-0001 from Smith & <Sons>"

    def test_falls_back_without_profile(self, make_invoice):
        from core.documents import render_invoice_email

        assert render_invoice_email(make_invoice(), None).subject.endswith("from Our Company")


class TestPaymentReceivedEmail:

    def test_receipt(self, make_invoice, customer):
        from core.documents import render_payment_received_email

        rendered = render_payment_received_email(make_invoice(), customer, Decimal("50"))

        assert rendered.subject == "Payment Received for Invoice INV-20240301-0001"
        assert rendered.text.startswith("Dear Acme Pty Ltd,")
        assert "Thank you for your payment of $50.00 for invoice INV-20240301-0001." in rendered.text
        assert "Total Invoice Amount: $110.00" in rendered.text
