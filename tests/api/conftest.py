"""API test fixtures: the full app over real services and a routed database mock."""

from unittest.mock import MagicMock

import pytest
from starlette.testclient import TestClient

from api.app import create_app
from clients.stripe_client import StripeClient
from core.services.payment_service import PaymentService

BUSINESS_HEADERS = {
    "X-Business-ID": "00000000-0000-0000-0000-0000000000b1",
    "X-User-ID": "00000000-0000-0000-0000-000000000001",
}


@pytest.fixture
def stripe_client():
    client = MagicMock(spec=StripeClient)
    client.create_payment_link.return_value = "https://buy.stripe.test/abc"
    return client


@pytest.fixture
def services(postgres, customer_service, profile_service, invoice_service, stripe_client, invoicing_config):
    return {
        "customer": customer_service,
        "business_profile": profile_service,
        "invoice": invoice_service,
        "payment": PaymentService(postgres, invoice_service, stripe_client, config=invoicing_config),
    }


@pytest.fixture
def app(services):
    return create_app(services)


@pytest.fixture
def client(app):
    """Client acting for the test business."""
    return TestClient(app, raise_server_exceptions=False, headers=BUSINESS_HEADERS)


@pytest.fixture
def unauthed_client(app):
    """Client without business context."""
    return TestClient(app, raise_server_exceptions=False)


@pytest.fixture
def act(client):
    """POST one action and return the response."""

    def post(domain, action, **data):
        return client.post("/api/actions", json={"domain": domain, "action": action, "data": data})

    return post
