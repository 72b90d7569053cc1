"""Invoicing behaviour configuration."""

from pydantic import BaseModel, Field


class InvoicingConfig(BaseModel):
    """
    Invoicing configuration.

    Secrets (database URL, gateway keys) live in Vault, not here.
    """

    # Invoice defaults
    default_due_days: int = Field(
        default=14,
        description="Days between issue date and default due date",
        ge=0,
        le=365,
    )
    invoice_number_prefix: str = Field(
        default="INV",
        description="Prefix for generated invoice numbers",
        min_length=1,
        max_length=10,
    )

    # Payments
    currency: str = Field(
        default="aud",
        description="ISO currency code for payment links",
        min_length=3,
        max_length=3,
    )
    payment_retry_attempts: int = Field(
        default=3,
        description="Compare-and-set attempts when recording a payment races a save",
        ge=1,
        le=10,
    )

    # Application
    app_base_url: str = Field(
        default="http://localhost:8000",
        description="Base URL for payment link redirects",
    )
    email_sender: str = Field(
        default="system",
        pattern="^(auth|system)$",
        description="Email gateway sender identity",
    )
