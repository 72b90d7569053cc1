"""Business profile: the issuer printed at the top of every invoice."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field


class BusinessProfileUpsert(BaseModel):
    """Data accepted when creating or replacing the business profile."""

    business_name: str = Field(..., min_length=1, max_length=255)
    abn_acn: str | None = Field(None, max_length=20)
    address_line1: str | None = Field(None, max_length=255)
    address_line2: str | None = Field(None, max_length=255)
    city: str | None = Field(None, max_length=100)
    state: str | None = Field(None, max_length=100)
    postcode: str | None = Field(None, max_length=20)
    country: str | None = Field(None, max_length=100)
    pdf_notes_template: str | None = Field(None, max_length=5000)


class BusinessProfile(BaseModel):
    """Full business profile as stored. id is the business_id used everywhere else."""

    id: UUID
    user_id: UUID | None = None
    business_name: str | None = None
    abn_acn: str | None = None
    address_line1: str | None = None
    address_line2: str | None = None
    city: str | None = None
    state: str | None = None
    postcode: str | None = None
    country: str | None = None
    pdf_notes_template: str | None = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}

    @property
    def display_name(self) -> str:
        return self.business_name or "Our Company"

    @property
    def address_lines(self) -> list[str]:
        locality = " ".join(p for p in [self.city, self.state, self.postcode] if p)
        return [
            line for line in [self.address_line1, self.address_line2, locality, self.country]
            if line
        ]
