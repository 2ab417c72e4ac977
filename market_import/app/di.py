"""의존성 주입 설정"""
from dataclasses import dataclass, field
from typing import List, Optional
import asyncio

import httpx
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker

from market_import.adapters.auth.oauth_client import HttpOAuthClient, build_provider_configs
from market_import.adapters.cache.http_cache_client import HttpCacheClient
from market_import.adapters.cache.ttl_cache import TTLCache
from market_import.adapters.markets.registry import build_registry
from market_import.adapters.persistence.clock_adapter import ClockAdapter
from market_import.adapters.persistence.models import create_engine_for, create_session_factory, create_tables
from market_import.adapters.persistence.repositories import SqlAlchemyRepository
from market_import.core.entities.product import MarkupPolicy
from market_import.core.exceptions import AuthenticationError
from market_import.core.ports.cache_port import CachePort
from market_import.core.ports.clock_port import ClockPort
from market_import.core.ports.marketplace_port import MarketplaceRegistry
from market_import.core.ports.oauth_port import OAuthPort
from market_import.core.ports.repo_port import RepositoryPort
from market_import.core.usecases.import_products import ImportLocks, ImportPolicy, ImportProductsUseCase
from market_import.core.usecases.sync_products import SyncPolicy, SyncProductsUseCase
from market_import.services.credential_service import CredentialService
from market_import.services.oauth_service import OAuthService
from market_import.services.product_service import ProductService
from market_import.shared.config import Settings
from market_import.shared.logging import get_logger

logger = get_logger(__name__)


@dataclass
class Container:
    """프로세스 단위 의존성 묶음 (lifespan 에서 생성/정리)"""
    settings: Settings
    clock: ClockPort
    engine: AsyncEngine
    session_factory: async_sessionmaker
    repository: RepositoryPort
    registry: MarketplaceRegistry
    oauth: OAuthPort
    cache: CachePort
    local_cache: TTLCache
    locks: ImportLocks
    http_client: httpx.AsyncClient
    owns_http_client: bool = True
    _tasks: List[asyncio.Task] = field(default_factory=list)

    async def startup(self) -> None:
        await create_tables(self.engine)
        interval = self.settings.cache_sweep_interval_seconds
        if interval and interval > 0:
            self._tasks.append(asyncio.create_task(self.local_cache.run_sweeper(interval)))
        logger.info(f"컨테이너 시작: marketplaces={self.registry.names()}")

    async def shutdown(self) -> None:
        for task in self._tasks:
            task.cancel()
        for task in self._tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._tasks.clear()

        await self.registry.aclose()
        if self.owns_http_client:
            await self.http_client.aclose()
        await self.engine.dispose()
        logger.info("컨테이너 종료")

    def import_policy(self) -> ImportPolicy:
        return ImportPolicy(
            request_delay_seconds=self.settings.import_request_delay_seconds,
            max_products=self.settings.import_max_products,
            search_limit=self.settings.import_search_limit,
            default_markup=MarkupPolicy.of(
                self.settings.default_markup_type, self.settings.default_markup_value
            )
        )

    def sync_policy(self) -> SyncPolicy:
        return SyncPolicy(
            request_delay_seconds=self.settings.import_request_delay_seconds,
            max_products=self.settings.sync_max_products
        )


def build_container(
    settings: Settings,
    clock: Optional[ClockPort] = None,
    http_client: Optional[httpx.AsyncClient] = None,
    engine: Optional[AsyncEngine] = None
) -> Container:
    """설정으로 어댑터 생성 및 연결"""
    clock = clock or ClockAdapter()
    owns_http_client = http_client is None
    http_client = http_client or httpx.AsyncClient(
        timeout=settings.request_timeout,
        headers={"User-Agent": settings.user_agent}
    )

    engine = engine or create_engine_for(settings)
    session_factory = create_session_factory(engine)

    local_cache = TTLCache(clock, default_ttl_seconds=settings.cache_default_ttl_seconds)
    if settings.cache_service_url:
        cache: CachePort = HttpCacheClient(settings.cache_service_url, client=http_client)
    else:
        cache = local_cache

    return Container(
        settings=settings,
        clock=clock,
        engine=engine,
        session_factory=session_factory,
        repository=SqlAlchemyRepository(session_factory),
        registry=build_registry(settings, client=http_client),
        oauth=HttpOAuthClient(
            build_provider_configs(settings),
            client=http_client,
            timeout=settings.request_timeout,
            user_agent=settings.user_agent
        ),
        cache=cache,
        local_cache=local_cache,
        locks=ImportLocks(),
        http_client=http_client,
        owns_http_client=owns_http_client
    )


def get_container(request: Request) -> Container:
    return request.app.state.container


# 서비스 팩토리
def get_oauth_service(container: Container = Depends(get_container)) -> OAuthService:
    """OAuth 서비스 파사드"""
    return OAuthService(
        container.oauth,
        container.repository,
        container.clock,
        refresh_buffer_minutes=container.settings.token_refresh_buffer_minutes
    )


def get_credential_service(container: Container = Depends(get_container)) -> CredentialService:
    """자격 증명 서비스"""
    return CredentialService(
        container.oauth,
        container.repository,
        container.clock,
        max_attempts=container.settings.connection_test_max_attempts,
        base_delay=container.settings.connection_test_base_delay
    )


def get_import_usecase(container: Container = Depends(get_container)) -> ImportProductsUseCase:
    """상품 가져오기 유즈케이스 (잠금은 컨테이너 공유)"""
    return ImportProductsUseCase(
        container.registry,
        container.repository,
        container.clock,
        policy=container.import_policy(),
        locks=container.locks
    )


def get_sync_usecase(container: Container = Depends(get_container)) -> SyncProductsUseCase:
    """상품 재동기화 유즈케이스 (가져오기와 잠금 공유)"""
    return SyncProductsUseCase(
        container.registry,
        container.repository,
        container.clock,
        policy=container.sync_policy(),
        locks=container.locks
    )


def get_product_service(
    container: Container = Depends(get_container),
    import_usecase: ImportProductsUseCase = Depends(get_import_usecase),
    sync_usecase: SyncProductsUseCase = Depends(get_sync_usecase)
) -> ProductService:
    """상품 서비스 파사드"""
    return ProductService(
        import_usecase,
        container.repository,
        sync_usecase=sync_usecase,
        cache=container.cache,
        cache_ttl_seconds=container.settings.cache_default_ttl_seconds
    )


def get_local_cache(container: Container = Depends(get_container)) -> TTLCache:
    return container.local_cache


# 인증
bearer_scheme = HTTPBearer(auto_error=False)


def get_current_user_id(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    container: Container = Depends(get_container)
) -> str:
    """Bearer JWT 검증 후 sub 반환"""
    if credentials is None:
        raise AuthenticationError("Authorization 헤더가 필요합니다")

    settings = container.settings
    try:
        payload = jwt.decode(
            credentials.credentials,
            settings.auth_jwt_secret,
            algorithms=[settings.auth_jwt_algorithm],
            audience=settings.auth_jwt_audience
        )
    except JWTError as e:
        raise AuthenticationError(f"유효하지 않거나 만료된 토큰입니다: {e}")

    user_id = payload.get("sub")
    if not user_id:
        raise AuthenticationError("토큰에 사용자 정보가 없습니다")
    return str(user_id)
