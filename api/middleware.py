"""Request-scoped middleware for API requests."""

from uuid import UUID, uuid4

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse

from api.base import error_response, ErrorCodes
from core.context import InvoiceContext

BUSINESS_HEADER = "X-Business-ID"
USER_HEADER = "X-User-ID"


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Assigns a unique request ID to every request."""

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or str(uuid4())
        request.state.request_id = request_id
        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response


class BusinessContextMiddleware(BaseHTTPMiddleware):
    """Builds the InvoiceContext for a request from gateway-forwarded headers.

    Authentication happens upstream; the gateway forwards the authenticated
    business (and user, when known) as headers. Requests without a valid
    business id are rejected. Public paths bypass the check entirely.
    """

    PUBLIC_PATHS = [
        "/webhooks/",
        "/health",
        "/docs",
        "/openapi.json",
    ]

    def _is_public_path(self, path: str) -> bool:
        """Check if path is in public paths list."""
        return any(path == p or path.startswith(p) for p in self.PUBLIC_PATHS)

    def _reject(self, message: str) -> JSONResponse:
        return JSONResponse(
            status_code=401,
            content=error_response(ErrorCodes.NOT_AUTHENTICATED, message).model_dump(mode="json"),
        )

    async def dispatch(self, request: Request, call_next):
        if self._is_public_path(request.url.path):
            return await call_next(request)

        business_id = request.headers.get(BUSINESS_HEADER)
        if not business_id:
            return self._reject("Business context required")

        user_id = request.headers.get(USER_HEADER)
        try:
            ctx = InvoiceContext(
                business_id=UUID(business_id),
                user_id=UUID(user_id) if user_id else None,
            )
        except ValueError:
            return self._reject("Malformed business or user id")

        request.state.invoice_context = ctx
        return await call_next(request)


def get_context(request: Request) -> InvoiceContext:
    """InvoiceContext set by BusinessContextMiddleware."""
    return request.state.invoice_context
