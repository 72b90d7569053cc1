"""Application wiring: logging, services, FastAPI app."""

import logging

from fastapi import FastAPI

from api.actions import create_actions_router
from api.base import success_response
from api.data import create_data_router
from api.errors import register_error_handlers
from api.middleware import BusinessContextMiddleware, RequestIDMiddleware
from api.webhooks import create_webhooks_router
from clients.email_client import EmailGatewayClient
from clients.postgres_client import PostgresClient
from clients.stripe_client import StripeClient
from clients.vault_client import get_database_url, get_email_config, get_stripe_config
from core.activity import ActivityLog
from core.config import InvoicingConfig
from core.event_bus import EventBus
from core.events import InvoicePaid
from core.handlers.invoice_payment_handler import handle_invoice_paid
from core.services.business_profile_service import BusinessProfileService
from core.services.customer_service import CustomerService
from core.services.invoice_service import InvoiceService
from core.services.payment_service import PaymentService

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """Single process-wide log format."""
    logging.basicConfig(level=level, format=LOG_FORMAT)


def build_services(config: InvoicingConfig | None = None) -> dict:
    """
    Wire clients and services from Vault secrets.

    Raises:
        VaultError: Secrets unavailable (fatal at startup)
    """
    config = config or InvoicingConfig()

    postgres = PostgresClient(get_database_url())
    email = EmailGatewayClient(**get_email_config())
    stripe_config = get_stripe_config()
    stripe = StripeClient(stripe_config["secret_key"], stripe_config["webhook_secret"])

    event_bus = EventBus()
    activity = ActivityLog(postgres)
    customers = CustomerService(postgres)
    profiles = BusinessProfileService(postgres)
    invoices = InvoiceService(
        postgres, activity, event_bus, customers, profiles, email=email, config=config,
    )
    payments = PaymentService(postgres, invoices, stripe, config=config)

    event_bus.subscribe(
        InvoicePaid, handle_invoice_paid(customers, email, sender=config.email_sender)
    )

    logger.info("Invoicing services initialized")
    return {
        "customer": customers,
        "business_profile": profiles,
        "invoice": invoices,
        "payment": payments,
    }


def create_app(services: dict) -> FastAPI:
    """FastAPI app with middleware, error handlers, and all routes."""
    app = FastAPI(title="Invoicing")
    # Added last runs first: request id is set before the context check.
    app.add_middleware(BusinessContextMiddleware)
    app.add_middleware(RequestIDMiddleware)
    register_error_handlers(app)

    app.include_router(create_data_router(services), prefix="/api")
    app.include_router(create_actions_router(services), prefix="/api")
    app.include_router(create_webhooks_router(services), prefix="/webhooks")

    @app.get("/health")
    async def health():
        return success_response({"status": "ok"}).model_dump(mode="json")

    return app


def main() -> FastAPI:
    """ASGI factory: ``uvicorn api.app:main --factory``."""
    configure_logging()
    return create_app(build_services())
