"""마켓 OAuth 서비스 파사드"""
from typing import Any, Dict, Optional

from market_import.core.entities.connection import Connection, Marketplace
from market_import.core.exceptions import ConnectionNotFoundError
from market_import.core.ports.clock_port import ClockPort
from market_import.core.ports.oauth_port import OAuthPort
from market_import.core.ports.repo_port import RepositoryPort
from market_import.core.usecases.exchange_oauth_code import ExchangeOAuthCodeUseCase
from market_import.core.usecases.refresh_token import RefreshTokenUseCase
from market_import.shared.logging import get_logger

logger = get_logger(__name__)


class OAuthService:
    """인가 URL 생성, 코드 교환, 토큰 갱신, 연결 해제"""

    def __init__(
        self,
        oauth_port: OAuthPort,
        repository: RepositoryPort,
        clock: ClockPort,
        refresh_buffer_minutes: int = 10
    ):
        self.oauth_port = oauth_port
        self.repository = repository
        self.clock = clock
        self.refresh_buffer_minutes = refresh_buffer_minutes
        self.exchange_usecase = ExchangeOAuthCodeUseCase(oauth_port, repository, clock)
        self.refresh_usecase = RefreshTokenUseCase(oauth_port, repository, clock)

    def get_auth_url(self, marketplace: str, redirect_uri: Optional[str] = None) -> Dict[str, Any]:
        request = self.oauth_port.authorization_url(Marketplace.parse(marketplace), redirect_uri)
        result = {"authUrl": request.auth_url}
        if request.state:
            result["state"] = request.state
        return result

    async def exchange(
        self,
        marketplace: str,
        code: str,
        redirect_uri: Optional[str],
        user_id: str,
        connection_name: Optional[str] = None,
        extra_settings: Optional[Dict[str, Any]] = None
    ) -> Connection:
        return await self.exchange_usecase.execute(
            marketplace=marketplace,
            authorization_code=code,
            redirect_uri=redirect_uri,
            user_id=user_id,
            connection_name=connection_name,
            extra_settings=extra_settings
        )

    def needs_refresh(self, connection: Connection) -> bool:
        """만료 임박 여부 (refresh_buffer_minutes 이내)"""
        return connection.needs_refresh(self.clock.now(), self.refresh_buffer_minutes)

    async def refresh(self, connection_id: str) -> Connection:
        return await self.refresh_usecase.execute_by_id(connection_id)

    async def disconnect(self, connection_id: str) -> Connection:
        """토큰 삭제 후 disconnected 로 전환 (상품/이력은 유지)"""
        connection = await self.repository.get_connection(connection_id)
        if connection is None:
            raise ConnectionNotFoundError(f"연결을 찾을 수 없습니다: {connection_id}")

        connection.disconnect(self.clock.now())
        await self.repository.save_connection(connection)
        logger.info(f"연결 해제: {connection.id} ({connection.marketplace.value})")
        return connection
