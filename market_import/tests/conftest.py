"""공용 테스트 픽스처"""
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional
from urllib.parse import parse_qs
import asyncio
import json

import httpx
import pytest
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

from market_import.adapters.auth.oauth_client import HttpOAuthClient, build_provider_configs
from market_import.adapters.markets.mercadolivre_adapter import MercadoLivreAdapter
from market_import.adapters.persistence.models import create_session_factory, create_tables
from market_import.adapters.persistence.repositories import SqlAlchemyRepository
from market_import.core.entities.connection import Connection, ConnectionStatus, Marketplace
from market_import.core.ports.clock_port import ClockPort
from market_import.core.ports.marketplace_port import MarketplaceRegistry
from market_import.shared.config import Settings

ML_API = "https://api.mercadolibre.com"


class FakeClock(ClockPort):
    """sleep 하면 시간이 그만큼 흐르고 이벤트 루프에 한 번 양보하는 테스트용 시계"""

    def __init__(self, start: Optional[datetime] = None):
        self.current = start or datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
        self.sleeps: List[float] = []

    def now(self) -> datetime:
        return self.current

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.advance(seconds)
        await asyncio.sleep(0)

    def advance(self, seconds: float) -> None:
        self.current = self.current + timedelta(seconds=seconds)


def make_item(item_id: str, price: float = 100.0, **overrides) -> Dict[str, Any]:
    """/items/{id} 응답 샘플"""
    item = {
        "id": item_id,
        "title": f"Produto {item_id}",
        "price": price,
        "currency_id": "BRL",
        "available_quantity": 5,
        "sold_quantity": 2,
        "condition": "new",
        "category_id": "MLB1055",
        "permalink": f"https://produto.mercadolivre.com.br/{item_id}",
        "seller_id": 777,
        "pictures": [{"secure_url": f"https://img/{item_id}-1.jpg"}, {"url": f"http://img/{item_id}-2.jpg"}],
        "attributes": [
            {"id": "BRAND", "value_name": "Marca"},
            {"id": "MODEL", "value_name": "X1"},
            {"id": "COLOR", "value_name": "Azul"},
        ],
        "shipping": {"free_shipping": True, "mode": "me2"},
    }
    item.update(overrides)
    return item


class FakeMercadoLivre:
    """메르카도 리브레 API 흉내 (httpx.MockTransport 핸들러)"""

    def __init__(self):
        self.items: Dict[str, Dict[str, Any]] = {}
        self.search_results: List[Dict[str, Any]] = []
        self.search_status = 200
        self.search_body: Optional[Any] = None
        self.valid_codes = {"good-code"}
        self.refresh_tokens = {"refresh-1"}
        self.issued = 0
        self.profile_status = 200
        self.token_statuses: List[int] = []
        self.requests: List[httpx.Request] = []

    @property
    def market_calls(self) -> List[httpx.Request]:
        return [r for r in self.requests if r.url.path.startswith(("/sites/", "/items/"))]

    def add_items(self, count: int, prefix: str = "MLB") -> List[str]:
        ids = [f"{prefix}{i:04d}" for i in range(count)]
        for item_id in ids:
            self.items[item_id] = make_item(item_id)
        self.search_results = [{"id": item_id} for item_id in ids]
        return ids

    def _issue(self) -> Dict[str, Any]:
        self.issued += 1
        refresh = f"refresh-{self.issued + 1}"
        self.refresh_tokens.add(refresh)
        return {
            "access_token": f"APP_USR-access-{self.issued}",
            "token_type": "bearer",
            "expires_in": 21600,
            "scope": "offline_access read write",
            "user_id": 123456,
            "refresh_token": refresh,
        }

    def _json(self, status: int, body: Any) -> httpx.Response:
        return httpx.Response(status, content=json.dumps(body), headers={"Content-Type": "application/json"})

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if path == "/oauth/token":
            form = {k: v[0] for k, v in parse_qs(request.content.decode()).items()}
            grant = form.get("grant_type")
            if grant == "authorization_code":
                if form.get("code") in self.valid_codes:
                    self.valid_codes.discard(form["code"])
                    return self._json(200, self._issue())
                return self._json(400, {"error": "invalid_grant", "message": "code expired"})
            if grant == "refresh_token":
                if form.get("refresh_token") in self.refresh_tokens:
                    self.refresh_tokens.discard(form["refresh_token"])
                    return self._json(200, self._issue())
                return self._json(400, {"error": "invalid_grant"})
            if grant == "client_credentials":
                status = self.token_statuses.pop(0) if self.token_statuses else 200
                return self._json(status, {"access_token": "client-token"} if status == 200 else {"error": "x"})
            return self._json(400, {"error": "unsupported_grant_type"})

        if path == "/users/me":
            return self._json(self.profile_status, {"id": 123456, "nickname": "LOJA_TESTE"})

        if path.startswith("/sites/"):
            if self.search_status != 200:
                return self._json(self.search_status, {"error": "search failed"})
            if self.search_body is not None:
                return self._json(200, self.search_body)
            limit = int(request.url.params.get("limit", "50"))
            return self._json(200, {"results": self.search_results[:limit], "paging": {"total": len(self.search_results)}})

        if path.startswith("/items/"):
            item_id = path.rsplit("/", 1)[-1]
            item = self.items.get(item_id)
            if item is None:
                return self._json(404, {"error": "not_found"})
            return self._json(200, item)

        return self._json(404, {"error": "unknown"})


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        database_url="sqlite+aiosqlite://",
        mercadolivre_client_id="ml-client",
        mercadolivre_client_secret="ml-secret",
        mercadolivre_redirect_uri="https://loja.test/callback",
        amazon_client_id="amzn1.application-oa2-client.test",
        amazon_client_secret="amz-secret",
        amazon_redirect_uri="https://loja.test/amazon",
        auth_jwt_secret="test-secret",
        cache_sweep_interval_seconds=0,
        connection_test_base_delay=0.5,
    )


@pytest.fixture
def fake_ml():
    return FakeMercadoLivre()


@pytest.fixture
async def http_client(fake_ml):
    client = httpx.AsyncClient(transport=httpx.MockTransport(fake_ml))
    yield client
    await client.aclose()


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False}
    )
    await create_tables(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def repository(engine):
    return SqlAlchemyRepository(create_session_factory(engine))


@pytest.fixture
def ml_adapter(http_client):
    return MercadoLivreAdapter(base_url=ML_API, client=http_client)


@pytest.fixture
def registry(ml_adapter):
    return MarketplaceRegistry([ml_adapter])


@pytest.fixture
def oauth_client(settings, http_client):
    return HttpOAuthClient(build_provider_configs(settings), client=http_client)


@pytest.fixture
def make_connection(repository, clock):
    """저장된 메르카도 리브레 연결 생성"""

    async def _make(**overrides) -> Connection:
        values = dict(
            id="conn-1",
            user_id="user-1",
            marketplace=Marketplace.MERCADOLIVRE,
            connection_name="MercadoLivre",
            access_token="APP_USR-access-0",
            refresh_token="refresh-1",
            expires_at=clock.now() + timedelta(hours=6),
            status=ConnectionStatus.CONNECTED,
            is_active=True,
            created_at=clock.now(),
            updated_at=clock.now(),
        )
        values.update(overrides)
        connection = Connection(**values)
        return await repository.upsert_connection(connection)

    return _make
