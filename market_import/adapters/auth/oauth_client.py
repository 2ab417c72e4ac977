"""마켓 OAuth 토큰 엔드포인트 어댑터"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from urllib.parse import quote, urlencode
import time
import uuid

import httpx

from market_import.core.entities.connection import Marketplace, TokenInfo
from market_import.core.exceptions import (
    ConfigurationError, ConnectionTestError, OAuthExchangeError, TokenRefreshError,
    TransientUpstreamError, UnsupportedMarketplaceError, ValidationError
)
from market_import.core.ports.oauth_port import AuthorizationRequest, OAuthPort
from market_import.shared.config import Settings
from market_import.shared.logging import get_logger, log_api_request

logger = get_logger(__name__)


@dataclass
class OAuthProviderConfig:
    """마켓별 OAuth 설정"""
    marketplace: Marketplace
    token_url: str
    authorize_url: str
    client_id: Optional[str] = None
    client_secret: Optional[str] = None
    redirect_uri: Optional[str] = None
    scopes: List[str] = field(default_factory=list)
    profile_url: Optional[str] = None
    uses_state: bool = False

    def require_client(self) -> None:
        if not self.client_id or not self.client_secret:
            raise ConfigurationError(f"{self.marketplace.value} 클라이언트 자격 증명이 설정되지 않았습니다")


def build_provider_configs(settings: Settings) -> Dict[Marketplace, OAuthProviderConfig]:
    """설정에서 OAuth 제공자 테이블 생성"""
    ml_api = settings.mercadolivre_api_url.rstrip('/')
    return {
        Marketplace.MERCADOLIVRE: OAuthProviderConfig(
            marketplace=Marketplace.MERCADOLIVRE,
            token_url=f"{ml_api}/oauth/token",
            authorize_url=settings.mercadolivre_auth_url,
            client_id=settings.mercadolivre_client_id,
            client_secret=settings.mercadolivre_client_secret,
            redirect_uri=settings.mercadolivre_redirect_uri,
            scopes=["read", "write", "offline_access"],
            profile_url=f"{ml_api}/users/me"
        ),
        Marketplace.AMAZON: OAuthProviderConfig(
            marketplace=Marketplace.AMAZON,
            token_url=settings.amazon_token_url,
            authorize_url=settings.amazon_auth_url,
            client_id=settings.amazon_client_id,
            client_secret=settings.amazon_client_secret,
            redirect_uri=settings.amazon_redirect_uri,
            uses_state=True
        ),
    }


class HttpOAuthClient(OAuthPort):
    """폼 인코딩 토큰 요청 (authorization_code / refresh_token)"""

    def __init__(
        self,
        providers: Dict[Marketplace, OAuthProviderConfig],
        client: Optional[httpx.AsyncClient] = None,
        timeout: int = 30,
        user_agent: str = "market-import/1.0"
    ):
        self.providers = providers
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(timeout=timeout)
        self.user_agent = user_agent

    async def aclose(self):
        if self._owns_client:
            await self.client.aclose()

    def _provider(self, marketplace: Marketplace) -> OAuthProviderConfig:
        provider = self.providers.get(marketplace)
        if provider is None:
            raise UnsupportedMarketplaceError(marketplace.value)
        return provider

    def authorization_url(self, marketplace: Marketplace, redirect_uri: Optional[str]) -> AuthorizationRequest:
        """인가 URL 생성"""
        provider = self._provider(marketplace)
        if not provider.client_id:
            raise ConfigurationError(f"{marketplace.value} client_id 가 설정되지 않았습니다")

        redirect_uri = redirect_uri or provider.redirect_uri
        if not redirect_uri:
            raise ValidationError("redirectUri 는 필수입니다", field="redirectUri")

        if provider.uses_state:
            state = str(uuid.uuid4())
            params = {
                "application_id": provider.client_id,
                "state": state,
                "redirect_uri": redirect_uri,
                "version": "beta"
            }
        else:
            state = None
            params = {
                "response_type": "code",
                "client_id": provider.client_id,
                "redirect_uri": redirect_uri,
                "scope": " ".join(provider.scopes)
            }

        return AuthorizationRequest(
            marketplace=marketplace,
            auth_url=f"{provider.authorize_url}?{urlencode(params, quote_via=quote)}",
            state=state
        )

    async def exchange_code(self, marketplace: Marketplace, code: str, redirect_uri: Optional[str]) -> TokenInfo:
        """authorization_code 교환"""
        provider = self._provider(marketplace)
        provider.require_client()

        form = {
            "grant_type": "authorization_code",
            "client_id": provider.client_id,
            "client_secret": provider.client_secret,
            "code": code,
            "redirect_uri": redirect_uri or provider.redirect_uri or ""
        }

        try:
            response = await self._post_token(provider, form)
        except httpx.RequestError as e:
            logger.error(f"{marketplace.value} 토큰 교환 요청 실패: {e}")
            raise OAuthExchangeError(f"토큰 교환 요청 실패: {e}", {"marketplace": marketplace.value})

        if response.status_code >= 400:
            logger.error(f"{marketplace.value} 토큰 교환 실패: {response.status_code}")
            raise OAuthExchangeError(
                f"토큰 교환 실패: {response.status_code} - {response.text[:300]}",
                {"marketplace": marketplace.value, "status_code": response.status_code}
            )

        return self._parse_token(response, OAuthExchangeError)

    async def refresh(self, marketplace: Marketplace, refresh_token: str) -> TokenInfo:
        """refresh_token 갱신"""
        provider = self._provider(marketplace)
        provider.require_client()

        form = {
            "grant_type": "refresh_token",
            "client_id": provider.client_id,
            "client_secret": provider.client_secret,
            "refresh_token": refresh_token
        }

        try:
            response = await self._post_token(provider, form)
        except httpx.RequestError as e:
            logger.error(f"{marketplace.value} 토큰 갱신 요청 실패: {e}")
            raise TokenRefreshError(f"토큰 갱신 요청 실패: {e}", {"marketplace": marketplace.value})

        if response.status_code >= 400:
            logger.error(f"{marketplace.value} 토큰 갱신 실패: {response.status_code}")
            raise TokenRefreshError(
                f"토큰 갱신 실패: {response.status_code} - {response.text[:300]}",
                {"marketplace": marketplace.value, "status_code": response.status_code}
            )

        return self._parse_token(response, TokenRefreshError)

    async def fetch_profile(self, marketplace: Marketplace, access_token: str) -> Optional[Dict[str, Any]]:
        """판매자 프로필 (메르카도 리브레 /users/me)"""
        provider = self._provider(marketplace)
        if not provider.profile_url:
            return None

        response = await self.client.get(
            provider.profile_url,
            headers={"Authorization": f"Bearer {access_token}", "Accept": "application/json"}
        )
        response.raise_for_status()
        return response.json()

    async def verify_credentials(self, marketplace: Marketplace, credentials: Dict[str, Any]) -> None:
        """입력된 자격 증명으로 토큰 발급 시도"""
        provider = self._provider(marketplace)

        if marketplace == Marketplace.AMAZON:
            form = {
                "grant_type": "refresh_token",
                "client_id": credentials.get("clientId"),
                "client_secret": credentials.get("clientSecret"),
                "refresh_token": credentials.get("refreshToken")
            }
        else:
            form = {
                "grant_type": "client_credentials",
                "client_id": credentials.get("clientId"),
                "client_secret": credentials.get("clientSecret")
            }

        try:
            response = await self._post_token(provider, form)
        except httpx.RequestError as e:
            raise TransientUpstreamError(f"{marketplace.value} API 연결 실패: {e}")

        if response.status_code == 429 or response.status_code >= 500:
            raise TransientUpstreamError(
                f"{marketplace.value} API 일시 오류: {response.status_code}",
                {"status_code": response.status_code}
            )
        if response.status_code >= 400:
            raise ConnectionTestError(
                f"{marketplace.value} 자격 증명 거부: {response.status_code} - {response.text[:300]}",
                {"status_code": response.status_code}
            )

    async def _post_token(self, provider: OAuthProviderConfig, form: Dict[str, Any]) -> httpx.Response:
        started = time.monotonic()
        response = await self.client.post(
            provider.token_url,
            data=form,
            headers={
                "Content-Type": "application/x-www-form-urlencoded",
                "Accept": "application/json",
                "User-Agent": self.user_agent
            }
        )
        log_api_request(logger, "POST", provider.token_url, response.status_code, time.monotonic() - started)
        return response

    def _parse_token(self, response: httpx.Response, error_cls) -> TokenInfo:
        try:
            return TokenInfo.from_response(response.json())
        except (ValueError, KeyError) as e:
            raise error_cls(f"토큰 응답 형식 오류: {e!r}")
