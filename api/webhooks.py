"""POST /webhooks/stripe — payment processor callbacks.

Public route: the processor authenticates by signing the payload, not by
business context.
"""

from fastapi import APIRouter, Request

from api.base import success_response


def create_webhooks_router(services: dict) -> APIRouter:
    router = APIRouter()

    payment_svc = services["payment"]

    @router.post("/stripe")
    async def stripe_webhook(request: Request):
        payload = await request.body()
        signature = request.headers.get("stripe-signature")

        result = payment_svc.handle_webhook(payload, signature)
        return success_response(result).model_dump(mode="json")

    return router
