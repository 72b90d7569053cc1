"""POST /api/actions — unified mutation endpoint."""

from dataclasses import asdict
from uuid import UUID

from fastapi import APIRouter, Request
from pydantic import BaseModel

from api.base import success_response
from api.middleware import get_context
from core.context import InvoiceContext
from core.ledger import compute_totals
from core.models import (
    BusinessProfileUpsert,
    CustomerCreate, CustomerUpdate,
    InvoiceCreate, InvoiceStatus, InvoiceUpdate,
)


class ActionRequest(BaseModel):
    domain: str
    action: str
    data: dict


def create_actions_router(services: dict) -> APIRouter:
    router = APIRouter()

    handlers = {
        "customer": CustomerHandler(services["customer"]),
        "invoice": InvoiceHandler(services["invoice"], services["payment"]),
        "business_profile": BusinessProfileHandler(services["business_profile"]),
    }

    @router.post("/actions")
    async def perform_action(request: Request, body: ActionRequest):
        handler = handlers.get(body.domain)
        if handler is None:
            raise ValueError(
                f"Unknown domain '{body.domain}'. "
                f"Valid domains: {', '.join(sorted(handlers.keys()))}"
            )

        if body.action not in handler.ALLOWED_ACTIONS:
            raise ValueError(
                f"Action '{body.action}' not allowed on '{body.domain}'. "
                f"Allowed: {', '.join(sorted(handler.ALLOWED_ACTIONS))}"
            )

        method = getattr(handler, f"_handle_{body.action}")
        result = method(get_context(request), dict(body.data))
        return success_response(
            result, getattr(request.state, "request_id", None)
        ).model_dump(mode="json")

    return router


# =============================================================================
# HANDLER CLASSES
# =============================================================================


def _require_id(data: dict, key: str = "id") -> UUID:
    if not data.get(key):
        raise ValueError(f"'{key}' is required")
    return UUID(str(data.pop(key)))


def _require_version(data: dict) -> int:
    if data.get("version") is None:
        raise ValueError("'version' is required")
    return int(data.pop("version"))


class CustomerHandler:
    ALLOWED_ACTIONS = {"create", "update", "delete"}

    def __init__(self, service):
        self.service = service

    def _handle_create(self, ctx: InvoiceContext, data: dict):
        customer = self.service.create(ctx, CustomerCreate(**data))
        return customer.model_dump(mode="json")

    def _handle_update(self, ctx: InvoiceContext, data: dict):
        customer_id = _require_id(data)
        customer = self.service.update(ctx, customer_id, CustomerUpdate(**data))
        return customer.model_dump(mode="json")

    def _handle_delete(self, ctx: InvoiceContext, data: dict):
        customer_id = _require_id(data)
        if not self.service.delete(ctx, customer_id):
            raise ValueError(f"Customer {customer_id} not found")
        return {"deleted": True}


class InvoiceHandler:
    ALLOWED_ACTIONS = {
        "create", "save", "send", "record_payment", "set_status",
        "share", "create_payment_link", "preview_totals",
    }

    def __init__(self, service, payment_service):
        self.service = service
        self.payment_service = payment_service

    def _handle_create(self, ctx: InvoiceContext, data: dict):
        invoice = self.service.create(ctx, InvoiceCreate(**data))
        return invoice.model_dump(mode="json")

    def _handle_save(self, ctx: InvoiceContext, data: dict):
        invoice_id = _require_id(data)
        version = _require_version(data)
        confirm = bool(data.pop("confirm_status_reversion", False))
        invoice = self.service.save(
            ctx, invoice_id, InvoiceUpdate(**data), version,
            confirm_status_reversion=confirm,
        )
        return invoice.model_dump(mode="json")

    def _handle_send(self, ctx: InvoiceContext, data: dict):
        invoice_id = _require_id(data)
        recipient = data.get("recipient_email")
        if not recipient:
            raise ValueError("'recipient_email' is required")
        invoice = self.service.send(ctx, invoice_id, recipient, data.get("message"))
        return invoice.model_dump(mode="json")

    def _handle_record_payment(self, ctx: InvoiceContext, data: dict):
        invoice_id = _require_id(data)
        invoice = self.service.record_payment(ctx, invoice_id, data.get("amount"))
        return invoice.model_dump(mode="json")

    def _handle_set_status(self, ctx: InvoiceContext, data: dict):
        invoice_id = _require_id(data)
        version = _require_version(data)
        invoice = self.service.set_status(ctx, invoice_id, InvoiceStatus(data.get("status")), version)
        return invoice.model_dump(mode="json")

    def _handle_share(self, ctx: InvoiceContext, data: dict):
        invoice_id = _require_id(data)
        if not data.get("url"):
            raise ValueError("'url' is required")
        activity = self.service.record_share(ctx, invoice_id, data["url"])
        return activity.model_dump(mode="json")

    def _handle_create_payment_link(self, ctx: InvoiceContext, data: dict):
        invoice_id = _require_id(data)
        url = self.payment_service.create_payment_link(
            ctx, invoice_id, data.get("redirect_base_url")
        )
        return {"url": url}

    def _handle_preview_totals(self, ctx: InvoiceContext, data: dict):
        draft = InvoiceCreate(**data)
        totals = compute_totals(draft.items, draft.is_tax_inclusive, draft.amount_paid)
        # Strings, like model_dump(mode="json"), so wide amounts keep every digit.
        return {name: str(value) for name, value in asdict(totals).items()}


class BusinessProfileHandler:
    ALLOWED_ACTIONS = {"upsert"}

    def __init__(self, service):
        self.service = service

    def _handle_upsert(self, ctx: InvoiceContext, data: dict):
        profile = self.service.upsert(ctx, BusinessProfileUpsert(**data))
        return profile.model_dump(mode="json")
