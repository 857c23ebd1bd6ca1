"""Unit tests for identity and request id middleware."""

from datetime import timedelta

import pytest
from fastapi import FastAPI, Request
from httpx import ASGITransport, AsyncClient

from gatekeeper.core.auth import IdentityMiddleware, RequestIdMiddleware
from gatekeeper.core.auth.backend import create_access_token


@pytest.fixture
def whoami_app(authority) -> FastAPI:
    """Minimal app exposing what the middleware attached."""
    app = FastAPI()
    app.add_middleware(IdentityMiddleware, authority=authority)
    app.add_middleware(RequestIdMiddleware)

    @app.get("/whoami")
    async def whoami(request: Request) -> dict:
        return {
            "user_id": getattr(request.state, "user_id", None),
            "request_id": getattr(request.state, "request_id", None),
        }

    return app


@pytest.fixture
async def whoami_client(whoami_app):
    transport = ASGITransport(app=whoami_app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


class TestIdentityMiddleware:
    """Tests for IdentityMiddleware."""

    async def test_valid_token_sets_user_id(self, whoami_client, authority):
        """A valid bearer token attaches the subject id."""
        token = create_access_token(authority.config, "user-42", "a@example.com")

        response = await whoami_client.get(
            "/whoami", headers={"Authorization": f"Bearer {token}"}
        )

        assert response.json()["user_id"] == "user-42"

    async def test_anonymous_request(self, whoami_client):
        """Requests without a token pass through anonymously."""
        response = await whoami_client.get("/whoami")

        assert response.status_code == 200
        assert response.json()["user_id"] is None

    async def test_invalid_token_is_ignored(self, whoami_client, authority):
        """Expired tokens do not attach identity or fail the request."""
        token = create_access_token(
            authority.config, "user-42", "a@example.com", expires_delta=timedelta(seconds=-1)
        )

        response = await whoami_client.get(
            "/whoami", headers={"Authorization": f"Bearer {token}"}
        )

        assert response.status_code == 200
        assert response.json()["user_id"] is None

    async def test_blacklist_not_consulted(self, whoami_client, authority, store):
        """Identity is signature-only; a store outage does not matter here."""
        token = create_access_token(authority.config, "user-42", "a@example.com")
        store.available = False

        response = await whoami_client.get(
            "/whoami", headers={"Authorization": f"Bearer {token}"}
        )

        assert response.json()["user_id"] == "user-42"


class TestRequestIdMiddleware:
    """Tests for RequestIdMiddleware."""

    async def test_generates_request_id(self, whoami_client):
        """A request id is generated and echoed in the response."""
        response = await whoami_client.get("/whoami")

        request_id = response.headers["X-Request-ID"]
        assert request_id
        assert response.json()["request_id"] == request_id

    async def test_propagates_incoming_request_id(self, whoami_client):
        """An incoming X-Request-ID is reused."""
        response = await whoami_client.get("/whoami", headers={"X-Request-ID": "abc-123"})

        assert response.headers["X-Request-ID"] == "abc-123"
        assert response.json()["request_id"] == "abc-123"
