"""API 라우트 통합 테스트"""
from datetime import datetime, timedelta, timezone

import httpx
import pytest
from fastapi.testclient import TestClient
from jose import jwt
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

from market_import.app.di import build_container
from market_import.app.main import create_app


@pytest.fixture
def test_client(settings, clock, fake_ml):
    """가짜 마켓/메모리 DB 로 구성한 테스트 클라이언트"""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False}
    )
    container = build_container(
        settings,
        clock=clock,
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(fake_ml)),
        engine=engine
    )
    container.owns_http_client = True
    app = create_app(container=container)

    with TestClient(app) as client:
        yield client


def _bearer(settings, sub="user-1", **claims):
    payload = {"sub": sub, "aud": "authenticated",
               "exp": datetime.now(timezone.utc) + timedelta(minutes=5), **claims}
    token = jwt.encode(payload, settings.auth_jwt_secret, algorithm=settings.auth_jwt_algorithm)
    return {"Authorization": f"Bearer {token}"}


def _connect(client):
    response = client.post("/api/v1/marketplace-oauth", json={
        "marketplace": "MercadoLivre",
        "action": "exchange_code",
        "code": "good-code",
        "userId": "user-1"
    })
    assert response.status_code == 200
    return response.json()


def test_health_check(test_client):
    response = test_client.get("/api/v1/health")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert "mercadolivre" in data["marketplaces"]


class TestOAuthRoutes:

    def test_get_auth_url(self, test_client):
        response = test_client.post("/api/v1/marketplace-oauth", json={
            "marketplace": "mercadolivre",
            "action": "get_auth_url",
            "redirectUri": "https://loja.test/cb"
        })

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["authUrl"].startswith("https://auth.mercadolibre.com.br/authorization?")

    def test_exchange_code(self, test_client):
        data = _connect(test_client)

        assert data["connection"]["connection_status"] == "connected"
        assert data["tokenData"]["expires_in"] == 21600
        assert data["tokenData"]["user_nickname"] == "LOJA_TESTE"
        assert data["connection"]["needs_refresh"] is False
        assert "access_token" not in str(data)

    def test_exchange_bad_code(self, test_client):
        response = test_client.post("/api/v1/marketplace-oauth", json={
            "marketplace": "mercadolivre", "action": "exchange_code", "code": "bad", "userId": "user-1"
        })

        assert response.status_code == 400
        assert response.json()["type"] == "OAuthExchangeError"
        assert response.json()["success"] is False

    def test_refresh_token(self, test_client):
        connection_id = _connect(test_client)["connection"]["id"]

        response = test_client.post("/api/v1/marketplace-oauth", json={
            "marketplace": "mercadolivre", "action": "refresh_token", "connectionId": connection_id
        })

        assert response.status_code == 200
        assert response.json()["tokenData"]["refreshed_at"]

    def test_unsupported_marketplace(self, test_client):
        response = test_client.post("/api/v1/marketplace-oauth", json={
            "marketplace": "shopee", "action": "get_auth_url", "redirectUri": "https://x"
        })

        assert response.status_code == 400
        assert response.json()["type"] == "UnsupportedMarketplaceError"

    def test_disconnect(self, test_client):
        connection_id = _connect(test_client)["connection"]["id"]

        response = test_client.post(f"/api/v1/connections/{connection_id}/disconnect")

        assert response.status_code == 200
        assert response.json()["connection"]["connection_status"] == "disconnected"
        assert response.json()["connection"]["needs_refresh"] is False


class TestProductRoutes:

    def test_search_import_then_get_and_reprice(self, test_client, fake_ml):
        connection_id = _connect(test_client)["connection"]["id"]
        fake_ml.add_items(3)

        response = test_client.post("/api/v1/product-import", json={
            "connectionId": connection_id, "searchQuery": "fone"
        })

        assert response.status_code == 200
        data = response.json()
        assert data["imported_count"] == 3
        assert data["execution"]["products_found"] == 3
        assert data["execution"]["status"] == "completed"
        product_id = data["products"][0]["id"]

        response = test_client.get(f"/api/v1/products/{product_id}")
        assert response.status_code == 200
        assert response.json()["price"] == 130.0

        response = test_client.patch(f"/api/v1/products/{product_id}/markup", json={
            "markupType": "flat", "markupValue": 5
        })
        assert response.status_code == 200
        assert response.json()["price"] == 105.0

        listed = test_client.get(f"/api/v1/connections/{connection_id}/products").json()
        assert listed["total"] == 3
        executions = test_client.get(f"/api/v1/connections/{connection_id}/executions").json()
        assert len(executions["executions"]) == 1

    def test_selective_import(self, test_client, fake_ml):
        connection_id = _connect(test_client)["connection"]["id"]
        fake_ml.add_items(5)

        response = test_client.post("/api/v1/product-import", json={
            "connectionId": connection_id, "importSelected": True, "productIds": ["MLB0001", "MLB0003"]
        })

        data = response.json()
        assert data["execution"]["execution_type"] == "selective_import"
        assert [p["marketplace_product_id"] for p in data["products"]] == ["MLB0001", "MLB0003"]

    def test_import_expired_token(self, test_client, clock, fake_ml):
        connection_id = _connect(test_client)["connection"]["id"]
        clock.advance(21600)

        response = test_client.post("/api/v1/product-import", json={
            "connectionId": connection_id, "searchQuery": "fone"
        })

        assert response.status_code == 409
        assert response.json()["type"] == "TokenExpiredError"
        assert fake_ml.market_calls == []

    def test_import_unknown_connection(self, test_client):
        response = test_client.post("/api/v1/product-import", json={
            "connectionId": "missing", "searchQuery": "fone"
        })

        assert response.status_code == 404

    def test_import_requires_query_or_ids(self, test_client):
        connection_id = _connect(test_client)["connection"]["id"]

        response = test_client.post("/api/v1/product-import", json={"connectionId": connection_id})

        assert response.status_code == 400

    def test_missing_product(self, test_client):
        assert test_client.get("/api/v1/products/nope").status_code == 404

    def test_sync_prices_skips_disabled_products(self, test_client, fake_ml):
        connection_id = _connect(test_client)["connection"]["id"]
        fake_ml.add_items(2)
        products = test_client.post("/api/v1/product-import", json={
            "connectionId": connection_id, "searchQuery": "fone"
        }).json()["products"]
        first, second = (p["id"] for p in products)
        assert test_client.get(f"/api/v1/products/{first}").json()["price"] == 130.0

        response = test_client.patch(f"/api/v1/products/{second}/auto-sync", json={"enabled": False})
        assert response.status_code == 200
        assert response.json()["auto_sync_enabled"] is False

        fake_ml.items["MLB0000"]["price"] = 200
        fake_ml.items["MLB0001"]["price"] = 200
        response = test_client.post("/api/v1/sync-products", json={
            "connectionId": connection_id, "syncType": "prices"
        })

        assert response.status_code == 200
        data = response.json()
        assert data["type"] == "prices"
        assert data["message"] == "prices sync completed"
        assert data["updated_count"] == 1
        assert data["execution"]["execution_type"] == "sync_prices"
        assert data["execution"]["products_found"] == 1
        assert data["execution"]["products_updated"] == 1
        assert test_client.get(f"/api/v1/products/{first}").json()["price"] == 260.0
        assert test_client.get(f"/api/v1/products/{second}").json()["price"] == 130.0

    def test_sync_unknown_type(self, test_client):
        connection_id = _connect(test_client)["connection"]["id"]

        response = test_client.post("/api/v1/sync-products", json={
            "connectionId": connection_id, "syncType": "everything"
        })

        assert response.status_code == 400
        assert response.json()["type"] == "ValidationError"


class TestCredentialRoutes:

    def test_save_requires_bearer(self, test_client):
        response = test_client.post("/api/v1/save-marketplace-credentials", json={
            "marketplace": "AliExpress", "credentials": {"appKey": "k", "appSecret": "s"}
        })

        assert response.status_code == 401

    def test_save_credentials(self, test_client, settings):
        response = test_client.post(
            "/api/v1/save-marketplace-credentials",
            json={"marketplace": "AliExpress", "credentials": {"appKey": "k", "appSecret": "s"}},
            headers=_bearer(settings)
        )

        assert response.status_code == 200
        assert response.json()["secretNames"] == ["ALIEXPRESS_APP_KEY", "ALIEXPRESS_APP_SECRET"]
        assert response.json()["connectionStatus"] == "connected"

    def test_invalid_token(self, test_client, settings):
        headers = _bearer(settings, aud="someone-else")

        response = test_client.post(
            "/api/v1/save-marketplace-credentials",
            json={"marketplace": "AliExpress", "credentials": {"appKey": "k"}},
            headers=headers
        )

        assert response.status_code == 401

    def test_connection_test_retries_transient_errors(self, test_client, fake_ml, clock):
        fake_ml.token_statuses = [503, 429]

        response = test_client.post("/api/v1/test-marketplace-api", json={
            "marketplace": "MercadoLivre", "credentials": {"clientId": "id", "clientSecret": "secret"}
        })

        assert response.status_code == 200
        assert response.json()["success"] is True
        assert clock.sleeps == [0.5, 1.0]

    def test_connection_test_rejected_credentials(self, test_client, fake_ml):
        fake_ml.token_statuses = [401]

        response = test_client.post("/api/v1/test-marketplace-api", json={
            "marketplace": "MercadoLivre", "credentials": {"clientId": "id", "clientSecret": "bad"}
        })

        assert response.status_code == 502
        assert response.json()["type"] == "ConnectionTestError"

    def test_connection_test_missing_fields(self, test_client):
        response = test_client.post("/api/v1/test-marketplace-api", json={
            "marketplace": "Amazon", "credentials": {"clientId": "id"}
        })

        assert response.status_code == 400
        assert response.json()["details"]["missing"] == ["clientSecret", "refreshToken"]


class TestCacheRoutes:

    def test_set_get_delete(self, test_client):
        response = test_client.post("/cache", json={"key": "k", "data": {"a": 1}, "ttl": 1000})
        assert response.json() == {"success": True, "key": "k", "ttl": 1000}

        response = test_client.get("/cache", params={"key": "k"})
        assert response.status_code == 200
        assert response.headers["X-Cache"] == "HIT"
        assert response.json()["data"] == {"a": 1}

        test_client.delete("/cache", params={"key": "k"})
        assert test_client.get("/cache", params={"key": "k"}).status_code == 404

    def test_ttl_in_milliseconds(self, test_client, clock):
        test_client.post("/cache", json={"key": "k", "data": "v", "ttl": 1500})
        clock.advance(1.6)

        assert test_client.get("/cache", params={"key": "k"}).status_code == 404

    def test_stats_and_clear(self, test_client):
        test_client.post("/cache", json={"key": "a", "data": 1})
        test_client.post("/cache", json={"key": "b", "data": 2})

        stats = test_client.get("/cache/stats").json()
        assert stats["size"] == 2
        assert sorted(stats["keys"]) == ["a", "b"]

        test_client.post("/cache/clear")
        assert test_client.get("/cache/stats").json()["size"] == 0

    def test_null_data_rejected(self, test_client):
        response = test_client.post("/cache", json={"key": "k", "data": None})

        assert response.status_code == 400
