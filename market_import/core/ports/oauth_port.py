"""마켓 OAuth 포트 (인터페이스)"""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Optional

from market_import.core.entities.connection import Marketplace, TokenInfo


@dataclass
class AuthorizationRequest:
    """인가 페이지 URL"""
    marketplace: Marketplace
    auth_url: str
    state: Optional[str] = None


class OAuthPort(ABC):
    """마켓 토큰 엔드포인트 인터페이스"""

    @abstractmethod
    def authorization_url(self, marketplace: Marketplace, redirect_uri: str) -> AuthorizationRequest:
        """인가 URL 생성"""
        pass

    @abstractmethod
    async def exchange_code(self, marketplace: Marketplace, code: str, redirect_uri: str) -> TokenInfo:
        """authorization_code 교환 (실패 시 OAuthExchangeError)"""
        pass

    @abstractmethod
    async def refresh(self, marketplace: Marketplace, refresh_token: str) -> TokenInfo:
        """refresh_token 갱신 (실패 시 TokenRefreshError)"""
        pass

    @abstractmethod
    async def fetch_profile(self, marketplace: Marketplace, access_token: str) -> Optional[Dict[str, Any]]:
        """판매자 프로필 조회 (지원하지 않으면 None)"""
        pass

    @abstractmethod
    async def verify_credentials(self, marketplace: Marketplace, credentials: Dict[str, Any]) -> None:
        """자격 증명으로 토큰 엔드포인트 호출 가능 여부 확인"""
        pass
