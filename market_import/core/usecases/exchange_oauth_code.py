"""인가 코드 교환 유즈케이스"""
from typing import Any, Dict, Optional
import uuid

from market_import.core.entities.connection import Connection, Marketplace, TokenInfo
from market_import.core.exceptions import ValidationError
from market_import.core.ports.clock_port import ClockPort
from market_import.core.ports.oauth_port import OAuthPort
from market_import.core.ports.repo_port import RepositoryPort
from market_import.shared.logging import get_logger

logger = get_logger(__name__)

# SP-API 기본 마켓 (브라질)
AMAZON_DEFAULT_MARKETPLACE_IDS = ["A2Q3Y263D00KWC"]

DEFAULT_CONNECTION_NAMES = {
    Marketplace.MERCADOLIVRE: "MercadoLivre",
    Marketplace.AMAZON: "Amazon SP-API Connection",
    Marketplace.ALIEXPRESS: "AliExpress",
}


class ExchangeOAuthCodeUseCase:
    """인가 코드를 토큰으로 교환하고 (사용자, 마켓) 연결을 upsert"""

    def __init__(
        self,
        oauth_port: OAuthPort,
        repository: RepositoryPort,
        clock: ClockPort
    ):
        self.oauth_port = oauth_port
        self.repository = repository
        self.clock = clock

    async def execute(
        self,
        marketplace: str,
        authorization_code: str,
        redirect_uri: Optional[str],
        user_id: str,
        connection_name: Optional[str] = None,
        extra_settings: Optional[Dict[str, Any]] = None
    ) -> Connection:
        """교환 실행 (인가 코드는 1회용이므로 재시도하지 않음)"""
        market = Marketplace.parse(marketplace)
        if not authorization_code or not user_id:
            raise ValidationError("인가 코드와 userId 는 필수입니다", field="code")

        token = await self.oauth_port.exchange_code(market, authorization_code, redirect_uri)
        now = self.clock.now()

        profile = await self._fetch_profile(market, token)
        settings = self._build_settings(market, token, profile, extra_settings or {})

        existing = await self.repository.find_connection(user_id, market)
        if existing:
            connection = existing
            connection.settings = {**existing.settings, **settings}
        else:
            connection = Connection(
                id=str(uuid.uuid4()),
                user_id=user_id,
                marketplace=market,
                connection_name="",
                settings=settings,
                created_at=now
            )

        connection.connection_name = (
            connection_name
            or connection.connection_name
            or self._default_name(market, profile)
        )
        connection.apply_token(token, now)

        saved = await self.repository.upsert_connection(connection)
        logger.info(
            f"OAuth 연결 {'갱신' if existing else '생성'} 완료: "
            f"user={user_id} marketplace={market.value} connection={saved.id}"
        )
        return saved

    async def _fetch_profile(self, market: Marketplace, token: TokenInfo) -> Optional[Dict[str, Any]]:
        """판매자 프로필 조회 (실패해도 연결은 진행)"""
        try:
            return await self.oauth_port.fetch_profile(market, token.access_token)
        except Exception as e:
            logger.warning(f"{market.value} 프로필 조회 실패 (무시): {e}")
            return None

    def _build_settings(
        self,
        market: Marketplace,
        token: TokenInfo,
        profile: Optional[Dict[str, Any]],
        extra: Dict[str, Any]
    ) -> Dict[str, Any]:
        """마켓별 연결 설정"""
        settings: Dict[str, Any] = {
            "scope": token.scope,
            "token_type": token.token_type,
            "created_via": "oauth"
        }

        if market == Marketplace.MERCADOLIVRE:
            settings["user_id"] = token.provider_user_id
            settings["nickname"] = (profile or {}).get("nickname")
        elif market == Marketplace.AMAZON:
            settings["marketplace_ids"] = extra.pop("marketplace_ids", None) or AMAZON_DEFAULT_MARKETPLACE_IDS
            settings["region"] = extra.pop("region", None) or "us-east-1"

        settings.update(extra)
        return settings

    def _default_name(self, market: Marketplace, profile: Optional[Dict[str, Any]]) -> str:
        base = DEFAULT_CONNECTION_NAMES[market]
        nickname = (profile or {}).get("nickname")
        return f"{base} - {nickname}" if nickname else base
