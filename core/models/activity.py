"""Invoice activity (audit trail) models."""

from datetime import datetime
from enum import Enum
from uuid import UUID

from pydantic import BaseModel


class ActivityType(str, Enum):
    """Activity tags written by this service. Stored as free-form text."""

    CREATE = "create"
    UPDATE = "update"
    SHARE = "share"
    EMAIL_SENT = "email_sent"
    PAYMENT_RECEIVED = "payment_received"
    PAYMENT_FAILED = "payment_failed"
    STATUS_CHANGE = "status_change"


class Activity(BaseModel):
    """One immutable entry in an invoice's activity trail."""

    id: UUID
    invoice_id: UUID
    activity_type: str
    description: str
    performed_by: UUID | None = None
    created_at: datetime

    model_config = {"from_attributes": True}
