"""마켓 자격 증명 저장 및 연결 테스트"""
from typing import Any, Dict, List
import uuid

from market_import.core.entities.connection import Connection, ConnectionStatus, Marketplace
from market_import.core.exceptions import TransientUpstreamError, ValidationError
from market_import.core.ports.clock_port import ClockPort
from market_import.core.ports.oauth_port import OAuthPort
from market_import.core.ports.repo_port import RepositoryPort
from market_import.shared.logging import get_logger
from market_import.shared.retry import retry_with_backoff

logger = get_logger(__name__)

# 배포 환경에 등록해야 하는 환경 변수 이름
SECRET_NAMES: Dict[Marketplace, List[str]] = {
    Marketplace.MERCADOLIVRE: ["MERCADOLIVRE_CLIENT_ID", "MERCADOLIVRE_CLIENT_SECRET", "MERCADOLIVRE_REDIRECT_URI"],
    Marketplace.AMAZON: [
        "AMAZON_CLIENT_ID", "AMAZON_CLIENT_SECRET", "AMAZON_REFRESH_TOKEN", "AMAZON_REGION", "AMAZON_SELLER_ID"
    ],
    Marketplace.ALIEXPRESS: ["ALIEXPRESS_APP_KEY", "ALIEXPRESS_APP_SECRET"],
}

REQUIRED_FIELDS: Dict[Marketplace, List[str]] = {
    Marketplace.MERCADOLIVRE: ["clientId", "clientSecret"],
    Marketplace.AMAZON: ["clientId", "clientSecret", "refreshToken"],
    Marketplace.ALIEXPRESS: ["appKey", "appSecret"],
}

# 토큰 엔드포인트로 실제 검증 가능한 마켓
VERIFIED_MARKETPLACES = {Marketplace.MERCADOLIVRE, Marketplace.AMAZON}


class CredentialService:
    """자격 증명 저장 및 연결 테스트"""

    def __init__(
        self,
        oauth_port: OAuthPort,
        repository: RepositoryPort,
        clock: ClockPort,
        max_attempts: int = 3,
        base_delay: float = 1.0
    ):
        self.oauth_port = oauth_port
        self.repository = repository
        self.clock = clock
        self.max_attempts = max_attempts
        self.base_delay = base_delay

    async def save_credentials(self, user_id: str, marketplace: str, credentials: Dict[str, Any]) -> Dict[str, Any]:
        """(사용자, 마켓) 연결에 자격 증명을 설정으로 저장"""
        market = Marketplace.parse(marketplace)
        if not credentials:
            raise ValidationError("credentials 는 필수입니다", field="credentials")

        now = self.clock.now()
        existing = await self.repository.find_connection(user_id, market)
        connection = existing or Connection(
            id=str(uuid.uuid4()),
            user_id=user_id,
            marketplace=market,
            connection_name=f"{marketplace} API",
            created_at=now
        )
        connection.settings = {**connection.settings, **credentials}
        if connection.status == ConnectionStatus.ERROR and (connection.access_token or connection.refresh_token):
            # 갱신 실패로 남은 토큰은 재인가 전까지 error 유지
            logger.warning(f"갱신 실패 토큰이 남은 연결, error 상태 유지: {connection.id}")
        else:
            connection.status = ConnectionStatus.CONNECTED
        connection.is_active = True
        connection.updated_at = now

        saved = await self.repository.upsert_connection(connection)
        logger.info(f"자격 증명 저장: user={user_id} marketplace={market.value} connection={saved.id}")
        return {
            "success": True,
            "message": f"{marketplace} credentials saved successfully",
            "secretNames": SECRET_NAMES[market],
            "connectionId": saved.id,
            "connectionStatus": saved.status.value
        }

    async def test_connection(self, marketplace: str, credentials: Dict[str, Any]) -> Dict[str, Any]:
        """필수 필드 검증 후 토큰 엔드포인트 호출 (일시 오류만 재시도)"""
        market = Marketplace.parse(marketplace)
        credentials = credentials or {}

        missing = [name for name in REQUIRED_FIELDS[market] if not credentials.get(name)]
        if missing:
            raise ValidationError(
                f"{marketplace} 필수 자격 증명 누락: {', '.join(missing)}",
                field=missing[0],
                details={"missing": missing}
            )

        if market in VERIFIED_MARKETPLACES:
            await retry_with_backoff(
                lambda: self.oauth_port.verify_credentials(market, credentials),
                max_attempts=self.max_attempts,
                base_delay=self.base_delay,
                retry_on=(TransientUpstreamError,),
                sleep=self.clock.sleep,
                label=f"{market.value} 연결 테스트"
            )
        else:
            logger.info(f"{market.value} 는 필드 검증만 수행합니다")

        return {
            "success": True,
            "message": f"{marketplace} connection test successful",
            "tested_at": self.clock.now().isoformat()
        }
