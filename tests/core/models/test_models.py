"""Tests for core domain models - custom validators only."""

from decimal import Decimal

import pytest
from pydantic import TypeAdapter, ValidationError


class TestLineItemInput:
    """Tests for the tagged line item union."""

    def _parse(self, data):
        from core.models import LineItemInput
        return TypeAdapter(LineItemInput).validate_python(data)

    def test_amount_mode(self):
        """Amount lines keep the entered amount."""
        from core.models import AmountLineItemInput

        item = self._parse({"mode": "amount", "description": "Callout", "amount": "85.50"})

        assert isinstance(item, AmountLineItemInput)
        assert item.amount == Decimal("85.50")
        assert item.tax_code == "GST"

    def test_quantity_mode_derives_amount(self):
        """Quantity lines compute amount from quantity and unit amount."""
        from core.models import QuantityLineItemInput

        item = self._parse({"mode": "quantity", "name": "Widget", "quantity": 3, "unit_amount": "2.50"})

        assert isinstance(item, QuantityLineItemInput)
        assert item.amount == Decimal("7.50")

    def test_quantity_mode_ignores_submitted_amount(self):
        item = self._parse({"mode": "quantity", "quantity": 2, "unit_amount": 5, "amount": 999})

        assert item.amount == Decimal("10")

    def test_mode_is_required(self):
        """The two shapes are never guessed from their fields."""
        with pytest.raises(ValidationError):
            self._parse({"description": "Untagged", "amount": 10})

    def test_unknown_mode_rejected(self):
        with pytest.raises(ValidationError):
            self._parse({"mode": "hourly", "amount": 10})

    def test_malformed_amount_coerces_to_zero(self):
        item = self._parse({"mode": "amount", "amount": "twelve"})

        assert item.amount == Decimal("0")

    def test_blank_quantity_means_one(self):
        item = self._parse({"mode": "quantity", "quantity": "", "unit_amount": "4"})

        assert item.quantity == Decimal("1")
        assert item.amount == Decimal("4")

    @pytest.mark.parametrize("bad", ["abc", "NaN", None, True])
    def test_unreadable_quantity_means_one(self, bad):
        item = self._parse({"mode": "quantity", "quantity": bad, "unit_amount": "4"})

        assert item.quantity == Decimal("1")
        assert item.amount == Decimal("4")

    def test_quantity_must_be_positive(self):
        with pytest.raises(ValidationError, match="greater than 0"):
            self._parse({"mode": "quantity", "quantity": 0, "unit_amount": 4})

    def test_negative_amount_allowed_for_credits(self):
        item = self._parse({"mode": "amount", "description": "Discount", "amount": "-20"})

        assert item.amount == Decimal("-20")


class TestLineItem:
    """Tests for the stored LineItem model."""

    def test_to_input_round_trips_quantity_line(self, item_row):
        from core.models import LineItem, QuantityLineItemInput

        item = LineItem.model_validate(item_row(
            mode="quantity", name="Widget", description=None, category=None,
            quantity=Decimal("2.000"), unit_amount=Decimal("12.50"), amount=Decimal("25.00"),
        ))

        restored = item.to_input()

        assert isinstance(restored, QuantityLineItemInput)
        assert restored.amount == Decimal("25.00")

    def test_to_input_round_trips_amount_line(self, item_row):
        from core.models import AmountLineItemInput, LineItem

        restored = LineItem.model_validate(item_row()).to_input()

        assert isinstance(restored, AmountLineItemInput)
        assert restored.description == "Consulting"
        assert restored.amount == Decimal("100.00")


class TestInvoiceCreate:
    """Tests for InvoiceCreate custom validators."""

    def test_defaults(self):
        from core.models import InvoiceCreate

        data = InvoiceCreate()

        assert data.customer_id is None
        assert data.items == []
        assert data.is_tax_inclusive is False
        assert data.amount_paid == Decimal("0")

    def test_blank_invoice_number_rejected(self):
        from core.models import InvoiceCreate

        with pytest.raises(ValidationError, match="must not be blank"):
            InvoiceCreate(invoice_number="   ")

    def test_invoice_number_trimmed(self):
        from core.models import InvoiceCreate

        assert InvoiceCreate(invoice_number=" INV-7 ").invoice_number == "INV-7"

    def test_amount_paid_coerced(self):
        from core.models import InvoiceCreate

        assert InvoiceCreate(amount_paid="").amount_paid == Decimal("0")

    def test_items_parsed_by_mode(self):
        from core.models import AmountLineItemInput, InvoiceCreate, QuantityLineItemInput

        data = InvoiceCreate(items=[
            {"mode": "amount", "amount": 10},
            {"mode": "quantity", "quantity": 1, "unit_amount": 5},
        ])

        assert isinstance(data.items[0], AmountLineItemInput)
        assert isinstance(data.items[1], QuantityLineItemInput)


class TestInvoiceUpdate:
    """Tests for InvoiceUpdate."""

    def test_unset_fields_stay_unset(self):
        from core.models import InvoiceUpdate

        data = InvoiceUpdate(notes="Thanks")

        assert data.model_fields_set == {"notes"}
        assert data.items is None
        assert data.amount_paid is None


class TestCustomerCreate:
    """Tests for CustomerCreate custom validators."""

    def test_requires_at_least_one_name(self):
        """Rejects when no name fields provided."""
        from core.models import CustomerCreate

        with pytest.raises(ValidationError, match="(?i)at least one of"):
            CustomerCreate()

    def test_accepts_company_only(self):
        from core.models import CustomerCreate

        assert CustomerCreate(company_name="Acme").company_name == "Acme"

    def test_rejects_bad_email(self):
        from core.models import CustomerCreate

        with pytest.raises(ValidationError):
            CustomerCreate(first_name="Al", billing_email="not-an-email")


class TestCustomer:
    """Tests for Customer display helpers."""

    def test_display_name_prefers_company(self, customer_row):
        from core.models import Customer

        assert Customer.model_validate(customer_row()).display_name == "Acme Pty Ltd"

    def test_display_name_falls_back_to_person(self, customer_row):
        from core.models import Customer

        customer = Customer.model_validate(customer_row(company_name=None, first_name="Jo", surname="Bloggs"))

        assert customer.display_name == "Jo Bloggs"

    def test_billing_address_lines(self, customer_row):
        from core.models import Customer

        lines = Customer.model_validate(customer_row()).billing_address_lines

        assert lines == ["1 Main St", "Fitzroy VIC 3065", "Australia"]


class TestBusinessProfile:
    """Tests for BusinessProfile helpers."""

    def test_upsert_requires_name(self):
        from core.models import BusinessProfileUpsert

        with pytest.raises(ValidationError):
            BusinessProfileUpsert(business_name="")

    def test_display_name_default(self, profile_row):
        from core.models import BusinessProfile

        assert BusinessProfile.model_validate(profile_row(business_name=None)).display_name == "Our Company"

    def test_address_lines(self, profile_row):
        from core.models import BusinessProfile

        lines = BusinessProfile.model_validate(profile_row()).address_lines

        assert lines == ["9 Work Rd", "Melbourne VIC 3000", "Australia"]
