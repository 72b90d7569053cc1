"""Tests for RequestIDMiddleware and BusinessContextMiddleware."""

import pytest
from uuid import UUID
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.testclient import TestClient

from api.middleware import BusinessContextMiddleware, RequestIDMiddleware, get_context

BUSINESS_ID = "00000000-0000-0000-0000-0000000000b1"
USER_ID = "00000000-0000-0000-0000-000000000001"


@pytest.fixture
def app():
    """Minimal FastAPI app with both middlewares."""
    app = FastAPI()
    app.add_middleware(BusinessContextMiddleware)
    app.add_middleware(RequestIDMiddleware)

    @app.get("/test")
    async def test_endpoint(request: Request):
        ctx = get_context(request)
        return JSONResponse({
            "request_id": request.state.request_id,
            "business_id": str(ctx.business_id),
            "user_id": str(ctx.user_id) if ctx.user_id else None,
        })

    @app.post("/webhooks/stripe")
    async def webhook():
        return JSONResponse({"ok": True})

    return app


@pytest.fixture
def client(app):
    return TestClient(app, headers={"X-Business-ID": BUSINESS_ID})


class TestRequestIDMiddleware:
    """Tests for RequestIDMiddleware."""

    def test_response_has_request_id_header(self, client):
        """Response includes X-Request-ID header."""
        response = client.get("/test")

        assert "X-Request-ID" in response.headers
        # Should be a valid UUID
        UUID(response.headers["X-Request-ID"])

    def test_request_state_has_request_id(self, client):
        """request.state.request_id is set and matches header."""
        response = client.get("/test")

        header_id = response.headers["X-Request-ID"]
        body_id = response.json()["request_id"]
        assert header_id == body_id

    def test_each_request_gets_unique_id(self, client):
        """Different requests get different IDs."""
        r1 = client.get("/test")
        r2 = client.get("/test")

        assert r1.headers["X-Request-ID"] != r2.headers["X-Request-ID"]

    def test_incoming_request_id_is_kept(self, client):
        response = client.get("/test", headers={"X-Request-ID": "upstream-123"})

        assert response.headers["X-Request-ID"] == "upstream-123"


class TestBusinessContextMiddleware:
    """Tests for BusinessContextMiddleware."""

    def test_builds_context_from_headers(self, client):
        response = client.get("/test", headers={"X-User-ID": USER_ID})

        assert response.json()["business_id"] == BUSINESS_ID
        assert response.json()["user_id"] == USER_ID

    def test_user_is_optional(self, client):
        assert client.get("/test").json()["user_id"] is None

    def test_missing_business_rejected(self, app):
        response = TestClient(app).get("/test")

        assert response.status_code == 401
        assert response.json()["error"]["code"] == "NOT_AUTHENTICATED"
        assert response.json()["error"]["message"] == "Business context required"

    def test_malformed_business_rejected(self, app):
        response = TestClient(app).get("/test", headers={"X-Business-ID": "not-a-uuid"})

        assert response.status_code == 401
        assert "Malformed" in response.json()["error"]["message"]

    def test_public_paths_skip_check(self, app):
        response = TestClient(app).post("/webhooks/stripe")

        assert response.status_code == 200
