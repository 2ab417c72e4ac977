"""토큰 갱신 유즈케이스"""
from market_import.core.entities.connection import Connection
from market_import.core.exceptions import ConnectionNotFoundError, TokenRefreshError
from market_import.core.ports.clock_port import ClockPort
from market_import.core.ports.oauth_port import OAuthPort
from market_import.core.ports.repo_port import RepositoryPort
from market_import.shared.logging import get_logger

logger = get_logger(__name__)


class RefreshTokenUseCase:
    """리프레시 토큰으로 액세스 토큰 재발급"""

    def __init__(
        self,
        oauth_port: OAuthPort,
        repository: RepositoryPort,
        clock: ClockPort
    ):
        self.oauth_port = oauth_port
        self.repository = repository
        self.clock = clock

    async def execute(self, connection: Connection) -> Connection:
        """갱신 실행

        실패하면 연결을 error 상태로 저장하고 TokenRefreshError 를 그대로 올린다.
        기존 액세스 토큰은 성공할 때까지 건드리지 않는다. 재시도는 호출자 몫.
        """
        if not connection.refresh_token:
            raise TokenRefreshError(
                "리프레시 토큰이 없습니다. 마켓을 다시 연결하세요",
                {"connection_id": connection.id}
            )

        try:
            token = await self.oauth_port.refresh(connection.marketplace, connection.refresh_token)
        except TokenRefreshError as e:
            connection.mark_error(self.clock.now())
            await self.repository.save_connection(connection)
            logger.warning(f"토큰 갱신 실패, 연결을 error 로 전환: {connection.id} - {e.message}")
            e.details.setdefault("connection_id", connection.id)
            raise

        connection.apply_token(token, self.clock.now())
        await self.repository.save_connection(connection)
        logger.info(f"토큰 갱신 완료: {connection.id} (expires_at={connection.expires_at.isoformat()})")
        return connection

    async def execute_by_id(self, connection_id: str) -> Connection:
        """연결 ID로 조회 후 갱신"""
        connection = await self.repository.get_connection(connection_id)
        if connection is None:
            raise ConnectionNotFoundError(f"연결을 찾을 수 없습니다: {connection_id}")
        return await self.execute(connection)
