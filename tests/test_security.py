"""Tests for session token authentication, shop lookup and health routes"""

import time
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient
from jose import jwt

from app.core.config import settings
from app.core.exceptions import UnauthorizedException
from app.core.security import SESSION_TOKEN_ALGORITHM, SessionTokenUtils
from app.models import ShopSession
from app.services.shopify_client import ShopifyAdminClient
from app.utils.dependencies import get_admin_client

SHOP = "demo.myshopify.com"

def session_token(**overrides):
    now = int(time.time())
    claims = {
        "iss": f"https://{SHOP}/admin",
        "dest": f"https://{SHOP}",
        "aud": settings.SHOPIFY_API_KEY,
        "sub": "42",
        "sid": "session-abc",
        "iat": now,
        "nbf": now,
        "exp": now + 60,
    }
    claims.update(overrides)
    secret = claims.pop("secret", settings.SHOPIFY_API_SECRET)
    return jwt.encode(claims, secret, algorithm=SESSION_TOKEN_ALGORITHM)

@pytest.fixture
def raw_client():
    from app.main import app

    with TestClient(app) as test_client:
        yield test_client

class TestSessionTokenUtils:

    def test_valid_token(self):
        payload = SessionTokenUtils.decode_session_token(session_token())

        assert SessionTokenUtils.shop_from_claims(payload) == SHOP
        assert payload["sub"] == "42"

    def test_wrong_secret(self):
        with pytest.raises(UnauthorizedException):
            SessionTokenUtils.decode_session_token(session_token(secret="not-the-secret"))

    def test_wrong_audience(self):
        with pytest.raises(UnauthorizedException):
            SessionTokenUtils.decode_session_token(session_token(aud="another-app"))

    def test_expired(self):
        with pytest.raises(UnauthorizedException):
            SessionTokenUtils.decode_session_token(session_token(exp=int(time.time()) - 3600))

    def test_destination_must_be_a_shop(self):
        with pytest.raises(UnauthorizedException):
            SessionTokenUtils.shop_from_claims({"dest": "https://example.com"})

    def test_issuer_must_match_destination(self):
        with pytest.raises(UnauthorizedException):
            SessionTokenUtils.shop_from_claims({
                "dest": f"https://{SHOP}",
                "iss": "https://evil.myshopify.com/admin",
            })

class TestAuthenticatedRoutes:

    def test_missing_token_is_401(self, raw_client):
        response = raw_client.get("/api/v1/saved-lists")

        assert response.status_code == 401
        assert response.json() == {"error": "UNAUTHORIZED", "detail": "Missing session token"}

    def test_bad_token_is_401(self, raw_client):
        response = raw_client.get("/api/v1/saved-lists", headers={"Authorization": "Bearer nope"})

        assert response.status_code == 401
        assert response.json()["detail"] == "Invalid session token"

    def test_valid_token_reaches_route(self, raw_client):
        response = raw_client.get(
            "/api/v1/saved-lists",
            headers={"Authorization": f"Bearer {session_token()}"},
        )

        assert response.status_code == 200
        assert "lists" in response.json()

    def test_uninstalled_shop_has_no_admin_client(self, raw_client):
        response = raw_client.get(
            "/api/v1/filter-audience/options",
            headers={"Authorization": f"Bearer {session_token()}"},
        )

        assert response.status_code == 401
        assert response.json()["error"] == "SHOP_NOT_INSTALLED"

class TestGetAdminClient:

    async def test_builds_client_from_stored_session(self):
        db = AsyncMock()
        db.get.return_value = ShopSession(shop=SHOP, access_token="shpat_123")

        client = await get_admin_client({"shop": SHOP}, db)

        assert isinstance(client, ShopifyAdminClient)
        assert client.shop == SHOP
        assert client.access_token == "shpat_123"
        db.get.assert_awaited_once_with(ShopSession, SHOP)

class TestHealth:

    def test_health(self, raw_client):
        body = raw_client.get("/health").json()

        assert body["status"] == "healthy"
        assert body["version"] == settings.APP_VERSION

    def test_detailed_health(self, raw_client):
        body = raw_client.get("/health/detailed").json()

        assert body["status"] == "healthy"
        assert body["components"]["database"]["status"] == "healthy"
        assert body["components"]["cache"] == {"status": "healthy", "backend": "memory"}
        assert body["components"]["ai_webhook"]["status"] == "not_configured"

    def test_security_headers(self, raw_client):
        response = raw_client.get("/health")

        assert response.headers["X-Content-Type-Options"] == "nosniff"
        assert "frame-ancestors https://admin.shopify.com" in response.headers["Content-Security-Policy"]
