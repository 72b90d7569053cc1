"""GET /api/data — unified read endpoint."""

from dataclasses import asdict
from uuid import UUID

from fastapi import APIRouter, Query, Request
from starlette.responses import Response

from api.base import success_response
from api.middleware import get_context
from core.models import InvoiceStatus
from utils.timezone import parse_date


VALID_TYPES = {"customers", "invoices", "invoice_summary", "business_profile"}


def create_data_router(services: dict) -> APIRouter:
    router = APIRouter()

    customer_svc = services["customer"]
    invoice_svc = services["invoice"]
    profile_svc = services["business_profile"]

    # -------------------------------------------------------------------------
    # Invoice sub-resources (registered before the generic /data route)
    # -------------------------------------------------------------------------

    @router.get("/data/invoices/{invoice_id}/activities")
    async def invoice_activities(request: Request, invoice_id: UUID):
        activities = invoice_svc.list_activities(get_context(request), invoice_id)
        return success_response(
            [a.model_dump(mode="json") for a in activities]
        ).model_dump(mode="json")

    @router.get("/data/invoices/{invoice_id}/pdf")
    async def invoice_pdf(request: Request, invoice_id: UUID):
        pdf = invoice_svc.render_pdf(get_context(request), invoice_id)
        return Response(
            content=pdf,
            media_type="application/pdf",
            headers={"Content-Disposition": f'inline; filename="invoice-{invoice_id}.pdf"'},
        )

    # -------------------------------------------------------------------------
    # Generic data endpoint
    # -------------------------------------------------------------------------

    @router.get("/data")
    async def get_data(
        request: Request,
        type: str | None = Query(None),
        id: str | None = Query(None),
        search: str | None = Query(None),
        status: str | None = Query(None),
        customer_id: str | None = Query(None),
        date_from: str | None = Query(None),
        date_to: str | None = Query(None),
        include_inactive: bool = Query(False),
        limit: int = Query(50, ge=1, le=500),
        offset: int = Query(0, ge=0),
    ):
        if type is None:
            raise ValueError("'type' query parameter is required")

        if type not in VALID_TYPES:
            raise ValueError(f"Unknown type '{type}'. Valid types: {', '.join(sorted(VALID_TYPES))}")

        ctx = get_context(request)

        if type == "customers":
            return _handle_customers(
                customer_svc, ctx, id, search, include_inactive, limit, offset
            )

        if type == "business_profile":
            profile = profile_svc.get(ctx)
            data = profile.model_dump(mode="json") if profile else None
            return success_response(data).model_dump(mode="json")

        filters = {
            "status": InvoiceStatus(status) if status else None,
            "customer_id": UUID(customer_id) if customer_id else None,
            "date_from": parse_date(date_from),
            "date_to": parse_date(date_to),
        }

        if type == "invoice_summary":
            summary = invoice_svc.summarize(ctx, **filters)
            return success_response(asdict(summary)).model_dump(mode="json")

        return _handle_invoices(invoice_svc, ctx, id, filters, limit)

    return router


def _handle_customers(customer_svc, ctx, id, search, include_inactive, limit, offset):
    if id:
        customer = customer_svc.get_by_id(ctx, UUID(id))
        if customer is None:
            raise ValueError(f"Customer {id} not found")
        return success_response(customer.model_dump(mode="json")).model_dump(mode="json")

    if search:
        customers = customer_svc.search(ctx, search, limit)
    else:
        customers = customer_svc.list_all(ctx, include_inactive, limit, offset)

    return success_response(
        [c.model_dump(mode="json") for c in customers]
    ).model_dump(mode="json")


def _handle_invoices(invoice_svc, ctx, id, filters, limit):
    if id:
        invoice = invoice_svc.get_by_id(ctx, UUID(id))
        if invoice is None:
            raise ValueError(f"Invoice {id} not found")
        return success_response(invoice.model_dump(mode="json")).model_dump(mode="json")

    invoices = invoice_svc.list_all(ctx, limit=limit, **filters)
    return success_response(
        [i.model_dump(mode="json") for i in invoices]
    ).model_dump(mode="json")
