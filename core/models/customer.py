"""Customer (contact) domain models."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field, EmailStr, model_validator


class CustomerCreate(BaseModel):
    """Data required to create a customer."""

    company_name: str | None = Field(None, max_length=255)
    first_name: str | None = Field(None, max_length=255)
    surname: str | None = Field(None, max_length=255)
    billing_email: EmailStr | None = None
    billing_phone: str | None = Field(None, max_length=50)
    billing_address: str | None = Field(None, max_length=500)
    billing_suburb: str | None = Field(None, max_length=100)
    billing_state: str | None = Field(None, max_length=100)
    billing_postcode: str | None = Field(None, max_length=20)
    billing_country: str | None = Field(None, max_length=100)
    abn: str | None = Field(None, max_length=20)
    notes: str | None = Field(None, max_length=10000)

    @model_validator(mode="after")
    def require_a_name(self) -> "CustomerCreate":
        """Ensure the contact can be named on an invoice."""
        if not any([self.company_name, self.first_name, self.surname]):
            raise ValueError("At least one of company_name, first_name, or surname is required")
        return self


class CustomerUpdate(BaseModel):
    """Data that can be updated on a customer. All fields optional."""

    company_name: str | None = Field(None, max_length=255)
    first_name: str | None = Field(None, max_length=255)
    surname: str | None = Field(None, max_length=255)
    billing_email: EmailStr | None = None
    billing_phone: str | None = Field(None, max_length=50)
    billing_address: str | None = Field(None, max_length=500)
    billing_suburb: str | None = Field(None, max_length=100)
    billing_state: str | None = Field(None, max_length=100)
    billing_postcode: str | None = Field(None, max_length=20)
    billing_country: str | None = Field(None, max_length=100)
    abn: str | None = Field(None, max_length=20)
    notes: str | None = Field(None, max_length=10000)
    is_inactive: bool | None = None


class Customer(BaseModel):
    """Full customer entity as stored."""

    id: UUID
    business_id: UUID
    company_name: str | None = None
    first_name: str | None = None
    surname: str | None = None
    billing_email: str | None = None
    billing_phone: str | None = None
    billing_address: str | None = None
    billing_suburb: str | None = None
    billing_state: str | None = None
    billing_postcode: str | None = None
    billing_country: str | None = None
    abn: str | None = None
    notes: str | None = None
    is_inactive: bool = False
    created_at: datetime
    updated_at: datetime
    deleted_at: datetime | None = None

    model_config = {"from_attributes": True}

    @property
    def display_name(self) -> str:
        """Human-readable name for invoices and emails."""
        if self.company_name:
            return self.company_name
        parts = [p for p in [self.first_name, self.surname] if p]
        return " ".join(parts) if parts else "Unnamed Customer"

    @property
    def billing_address_lines(self) -> list[str]:
        """Address lines for the billed-to block, blanks dropped."""
        locality = " ".join(
            p for p in [self.billing_suburb, self.billing_state, self.billing_postcode] if p
        )
        return [line for line in [self.billing_address, locality, self.billing_country] if line]
