"""Shared test fixtures for the invoicing test suite.

Tests run without external infrastructure. The database is a
MagicMock(spec=PostgresClient) whose query methods answer by SQL fragment
through QueryRouter; statements inside transaction() land on the `tx` mock.
"""

from datetime import date, datetime, timezone
from decimal import Decimal
from pathlib import Path
from unittest.mock import MagicMock
from uuid import UUID, uuid4

import pytest
from dotenv import load_dotenv

# Load .env file BEFORE any other imports that might use env vars
load_dotenv(Path(__file__).parent.parent / ".env")

# Reset vault client singleton so no test sees secrets cached by another
import clients.vault_client as vault_module
vault_module._vault_client_instance = None
vault_module._secret_cache.clear()

from clients.postgres_client import PostgresClient


# =============================================================================
# TEST CONSTANTS
# =============================================================================

TEST_BUSINESS_ID = UUID("00000000-0000-0000-0000-0000000000b1")
TEST_BUSINESS_B_ID = UUID("00000000-0000-0000-0000-0000000000b2")
TEST_USER_ID = UUID("00000000-0000-0000-0000-000000000001")
TEST_CUSTOMER_ID = UUID("00000000-0000-0000-0000-0000000000c1")
TEST_INVOICE_ID = UUID("00000000-0000-0000-0000-0000000000a1")

FIXED_NOW = datetime(2024, 3, 1, 9, 30, tzinfo=timezone.utc)


# =============================================================================
# CONTEXT FIXTURES
# =============================================================================


@pytest.fixture
def ctx():
    """InvoiceContext for the primary test business and user."""
    from core.context import InvoiceContext
    return InvoiceContext(business_id=TEST_BUSINESS_ID, user_id=TEST_USER_ID)


@pytest.fixture
def ctx_b():
    """InvoiceContext for a second business (isolation tests)."""
    from core.context import InvoiceContext
    return InvoiceContext(business_id=TEST_BUSINESS_B_ID)


# =============================================================================
# DATABASE FIXTURES
# =============================================================================


class QueryRouter:
    """
    Answers queries by the first registered SQL fragment they contain.

    Results may be values or callables taking (query, params). Later
    registrations take precedence over earlier ones. Every call is kept in
    `calls` for assertions.
    """

    def __init__(self, default):
        self.default = default
        self.routes: list[tuple[str, object]] = []
        self.calls: list[tuple[str, object]] = []

    def on(self, fragment: str, result) -> "QueryRouter":
        self.routes.insert(0, (fragment, result))
        return self

    def __call__(self, query, params=None):
        self.calls.append((query, params))
        for fragment, result in self.routes:
            if fragment in query:
                return result(query, params) if callable(result) else result
        return self.default

    def queries(self, fragment: str) -> list[tuple[str, object]]:
        """Recorded calls whose SQL contains fragment."""
        return [(q, p) for q, p in self.calls if fragment in q]


class DatabaseRoutes:
    """One router per PostgresClient read method."""

    def __init__(self):
        self.single = QueryRouter(None)
        self.many = QueryRouter([])
        self.returning = QueryRouter([])


@pytest.fixture
def routes():
    return DatabaseRoutes()


@pytest.fixture
def postgres(routes):
    """PostgresClient mock routed through `routes`."""
    db = MagicMock(spec=PostgresClient)
    db.execute_single.side_effect = routes.single
    db.execute.side_effect = routes.many
    db.execute_returning.side_effect = routes.returning

    tx = db.transaction.return_value.__enter__.return_value
    tx.execute.return_value = []
    tx.execute_returning.return_value = [{"version": 2}]
    return db


@pytest.fixture
def tx(postgres):
    """The Transaction mock yielded by postgres.transaction()."""
    return postgres.transaction.return_value.__enter__.return_value


# =============================================================================
# ROW FACTORIES
# =============================================================================


@pytest.fixture
def invoice_row():
    """Factory for invoices table rows. Defaults: sent, 100.00 + GST, unpaid."""

    def make(**overrides):
        row = {
            "id": TEST_INVOICE_ID,
            "business_id": TEST_BUSINESS_ID,
            "customer_id": TEST_CUSTOMER_ID,
            "invoice_number": "INV-20240301-0001",
            "customer_po_number": None,
            "issue_date": date(2024, 3, 1),
            "due_date": date(2024, 3, 15),
            "notes": None,
            "is_tax_inclusive": False,
            "subtotal": Decimal("100.00"),
            "tax": Decimal("10.00"),
            "total": Decimal("110.00"),
            "amount_paid": Decimal("0.00"),
            "balance_due": Decimal("110.00"),
            "status": "sent",
            "version": 1,
            "created_at": FIXED_NOW,
            "updated_at": FIXED_NOW,
        }
        row.update(overrides)
        return row

    return make


@pytest.fixture
def item_row():
    """Factory for invoice_items rows. Defaults: one amount-mode line of 100.00."""

    def make(**overrides):
        row = {
            "id": uuid4(),
            "invoice_id": TEST_INVOICE_ID,
            "position": 0,
            "mode": "amount",
            "description": "Consulting",
            "name": None,
            "category": "Services",
            "job": None,
            "tax_code": "GST",
            "quantity": None,
            "unit_amount": None,
            "amount": Decimal("100.00"),
            "created_at": FIXED_NOW,
        }
        row.update(overrides)
        return row

    return make


@pytest.fixture
def customer_row():
    """Factory for customers rows."""

    def make(**overrides):
        row = {
            "id": TEST_CUSTOMER_ID,
            "business_id": TEST_BUSINESS_ID,
            "company_name": "Acme Pty Ltd",
            "first_name": None,
            "surname": None,
            "billing_email": "accounts@example.com",
            "billing_phone": None,
            "billing_address": "1 Main St",
            "billing_suburb": "Fitzroy",
            "billing_state": "VIC",
            "billing_postcode": "3065",
            "billing_country": "Australia",
            "abn": None,
            "notes": None,
            "is_inactive": False,
            "created_at": FIXED_NOW,
            "updated_at": FIXED_NOW,
            "deleted_at": None,
        }
        row.update(overrides)
        return row

    return make


@pytest.fixture
def profile_row():
    """Factory for business_profiles rows."""

    def make(**overrides):
        row = {
            "id": TEST_BUSINESS_ID,
            "user_id": TEST_USER_ID,
            "business_name": "Tradie Co",
            "abn_acn": "12 345 678 901",
            "address_line1": "9 Work Rd",
            "address_line2": None,
            "city": "Melbourne",
            "state": "VIC",
            "postcode": "3000",
            "country": "Australia",
            "pdf_notes_template": "Payment by bank transfer.",
            "created_at": FIXED_NOW,
            "updated_at": FIXED_NOW,
        }
        row.update(overrides)
        return row

    return make


@pytest.fixture
def make_invoice(invoice_row, item_row):
    """Factory for Invoice models (with one default item unless items= given)."""
    from core.models import Invoice

    def make(items=None, **overrides):
        item_rows = [item_row()] if items is None else items
        return Invoice.model_validate({**invoice_row(**overrides), "items": item_rows})

    return make


# =============================================================================
# SERVICE FIXTURES
# =============================================================================


@pytest.fixture
def event_bus():
    from core.event_bus import EventBus
    return MagicMock(spec=EventBus)


@pytest.fixture
def activity(postgres):
    from core.activity import ActivityLog
    return ActivityLog(postgres)


@pytest.fixture
def customer_service(postgres):
    from core.services.customer_service import CustomerService
    return CustomerService(postgres)


@pytest.fixture
def profile_service(postgres):
    from core.services.business_profile_service import BusinessProfileService
    return BusinessProfileService(postgres)


@pytest.fixture
def email_client():
    from clients.email_client import EmailGatewayClient
    return MagicMock(spec=EmailGatewayClient)


@pytest.fixture
def invoicing_config():
    from core.config import InvoicingConfig
    return InvoicingConfig()


@pytest.fixture
def invoice_service(
    postgres, activity, event_bus, customer_service, profile_service, email_client, invoicing_config
):
    from core.services.invoice_service import InvoiceService
    return InvoiceService(
        postgres, activity, event_bus, customer_service, profile_service,
        email=email_client, config=invoicing_config,
    )


@pytest.fixture
def stored_invoice(routes, invoice_row, item_row):
    """
    Route invoice and item reads to a stored invoice.

    Returns a setter: call it with invoice row overrides (and items=) to
    change what the database holds.
    """

    def store(items=None, **overrides):
        row = invoice_row(**overrides)
        rows = [item_row()] if items is None else items
        routes.single.on("FROM invoices WHERE id", row)
        routes.many.on("FROM invoice_items", rows)
        return row

    store()
    return store


@pytest.fixture
def stored_customer(routes, customer_row):
    row = customer_row()
    routes.single.on("FROM customers", row)
    return row


@pytest.fixture
def stored_profile(routes, profile_row):
    row = profile_row()
    routes.single.on("FROM business_profiles", row)
    return row
