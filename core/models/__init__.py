"""Core domain models."""

from core.models.line_item import (
    LineItem, LineItemInput, LineItemMode,
    AmountLineItemInput, QuantityLineItemInput,
)
from core.models.invoice import Invoice, InvoiceCreate, InvoiceUpdate, InvoiceStatus
from core.models.activity import Activity, ActivityType
from core.models.customer import Customer, CustomerCreate, CustomerUpdate
from core.models.business_profile import BusinessProfile, BusinessProfileUpsert

__all__ = [
    # LineItem
    "LineItem", "LineItemInput", "LineItemMode",
    "AmountLineItemInput", "QuantityLineItemInput",
    # Invoice
    "Invoice", "InvoiceCreate", "InvoiceUpdate", "InvoiceStatus",
    # Activity
    "Activity", "ActivityType",
    # Customer
    "Customer", "CustomerCreate", "CustomerUpdate",
    # BusinessProfile
    "BusinessProfile", "BusinessProfileUpsert",
]
