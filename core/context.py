"""
Explicit business context for service calls.

Every operation on business data takes an InvoiceContext argument instead
of looking up "the current business" from an ambient session. The HTTP
layer builds it once per request; tests and background jobs build it
directly.
"""

from dataclasses import dataclass
from uuid import UUID


@dataclass(frozen=True)
class InvoiceContext:
    """Who is acting, and on behalf of which business."""

    business_id: UUID
    user_id: UUID | None = None
