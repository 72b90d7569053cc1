"""Global exception handlers for FastAPI."""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError
from starlette.responses import JSONResponse

from api.base import error_response, ErrorCodes
from clients.email_client import EmailGatewayError
from clients.stripe_client import PaymentProviderError
from core.exceptions import (
    PreconditionFailedError,
    StatusReversionRequired,
    VersionConflictError,
    WebhookError,
)

logger = logging.getLogger(__name__)


def _json(request: Request, status_code: int, code: str, message: str, data=None) -> JSONResponse:
    request_id = getattr(request.state, "request_id", None)
    return JSONResponse(
        status_code=status_code,
        content=error_response(code, message, data, request_id).model_dump(mode="json"),
    )


def register_error_handlers(app: FastAPI) -> None:
    """Register global exception handlers on the app."""

    @app.exception_handler(ValueError)
    async def value_error_handler(request: Request, exc: ValueError):
        message = str(exc)
        if "not found" in message.lower():
            return _json(request, 404, ErrorCodes.NOT_FOUND, message)
        return _json(request, 400, ErrorCodes.INVALID_REQUEST, message)

    @app.exception_handler(RequestValidationError)
    async def request_validation_error_handler(request: Request, exc: RequestValidationError):
        return _json(request, 422, ErrorCodes.VALIDATION_ERROR, str(exc.errors()))

    @app.exception_handler(ValidationError)
    async def validation_error_handler(request: Request, exc: ValidationError):
        return _json(request, 422, ErrorCodes.VALIDATION_ERROR, str(exc.errors()))

    @app.exception_handler(PreconditionFailedError)
    async def precondition_failed_handler(request: Request, exc: PreconditionFailedError):
        return _json(request, 422, ErrorCodes.PRECONDITION_FAILED, str(exc))

    @app.exception_handler(StatusReversionRequired)
    async def status_reversion_handler(request: Request, exc: StatusReversionRequired):
        decision = {
            "invoice_id": str(exc.invoice_id),
            "previous_total": str(exc.previous_total),
            "new_total": str(exc.new_total),
            "forced_status": exc.forced_status.value,
        }
        return _json(request, 409, ErrorCodes.STATUS_REVERSION_REQUIRED, str(exc), decision)

    @app.exception_handler(VersionConflictError)
    async def version_conflict_handler(request: Request, exc: VersionConflictError):
        return _json(request, 409, ErrorCodes.VERSION_CONFLICT, str(exc))

    @app.exception_handler(WebhookError)
    async def webhook_error_handler(request: Request, exc: WebhookError):
        return _json(request, 400, ErrorCodes.WEBHOOK_INVALID, str(exc))

    @app.exception_handler(EmailGatewayError)
    async def email_error_handler(request: Request, exc: EmailGatewayError):
        return _json(request, 502, ErrorCodes.EMAIL_DELIVERY_FAILED, str(exc))

    @app.exception_handler(PaymentProviderError)
    async def payment_provider_error_handler(request: Request, exc: PaymentProviderError):
        return _json(request, 502, ErrorCodes.PAYMENT_PROVIDER_ERROR, str(exc))

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled exception")
        return _json(request, 500, ErrorCodes.INTERNAL_ERROR, "An internal error occurred")
