"""HTTP API: unified read and mutation endpoints plus processor webhooks."""

from api.base import (
    APIError,
    APIMeta,
    APIResponse,
    success_response,
    error_response,
    ErrorCodes,
)
