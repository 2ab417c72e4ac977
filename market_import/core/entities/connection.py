"""마켓 연결(자격 증명) 도메인 엔티티"""
from dataclasses import dataclass, field
from typing import Dict, Any, Optional
from datetime import datetime, timedelta, timezone
from enum import Enum

from market_import.core.exceptions import UnsupportedMarketplaceError
from market_import.core.ports.clock_port import as_utc


class Marketplace(Enum):
    """지원하는 마켓"""
    MERCADOLIVRE = "mercadolivre"
    AMAZON = "amazon"
    ALIEXPRESS = "aliexpress"

    @classmethod
    def parse(cls, name: Optional[str]) -> "Marketplace":
        """'MercadoLivre', 'mercado_livre' 등 표기 차이를 허용하여 변환"""
        key = (name or "").strip().lower().replace("_", "").replace("-", "").replace(" ", "")
        for marketplace in cls:
            if marketplace.value == key:
                return marketplace
        raise UnsupportedMarketplaceError(name or "")


class ConnectionStatus(Enum):
    """연결 상태"""
    DISCONNECTED = "disconnected"
    CONNECTED = "connected"
    ERROR = "error"


@dataclass
class TokenInfo:
    """토큰 엔드포인트 응답"""
    access_token: str
    expires_in: int
    refresh_token: Optional[str] = None
    token_type: str = "Bearer"
    scope: Optional[str] = None
    provider_user_id: Optional[str] = None

    @classmethod
    def from_response(cls, data: Dict[str, Any]) -> "TokenInfo":
        """OAuth 토큰 응답 JSON 변환"""
        return cls(
            access_token=data["access_token"],
            expires_in=int(data.get("expires_in") or 0),
            refresh_token=data.get("refresh_token"),
            token_type=data.get("token_type") or "Bearer",
            scope=data.get("scope"),
            provider_user_id=str(data["user_id"]) if data.get("user_id") is not None else None
        )


@dataclass
class Connection:
    """사용자별 마켓 OAuth 연결"""
    id: str
    user_id: str
    marketplace: Marketplace
    connection_name: str
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None
    expires_at: Optional[datetime] = None
    status: ConnectionStatus = ConnectionStatus.DISCONNECTED
    is_active: bool = True
    settings: Dict[str, Any] = field(default_factory=dict)
    last_test_at: Optional[datetime] = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def is_usable(self) -> bool:
        """마켓 API 호출에 사용 가능한 상태인지"""
        return self.is_active and self.status == ConnectionStatus.CONNECTED

    def is_token_expired(self, now: datetime) -> bool:
        """액세스 토큰 만료 여부 (now >= expires_at)"""
        if not self.access_token or self.expires_at is None:
            return True
        return now >= as_utc(self.expires_at)

    def needs_refresh(self, now: datetime, buffer_minutes: int = 10) -> bool:
        """만료 임박 여부"""
        if self.expires_at is None:
            return bool(self.refresh_token)
        return now + timedelta(minutes=buffer_minutes) >= as_utc(self.expires_at)

    def apply_token(self, token: TokenInfo, now: datetime) -> None:
        """새 토큰 반영 (리프레시 토큰 미제공 시 기존 값 유지)"""
        self.access_token = token.access_token
        self.refresh_token = token.refresh_token or self.refresh_token
        self.expires_at = now + timedelta(seconds=token.expires_in)
        self.status = ConnectionStatus.CONNECTED
        self.is_active = True
        self.last_test_at = now
        self.updated_at = now

    def mark_error(self, now: datetime) -> None:
        """오류 상태로 전환 (토큰은 유지)"""
        self.status = ConnectionStatus.ERROR
        self.updated_at = now

    def disconnect(self, now: datetime) -> None:
        """연결 해제 (행은 남기고 비밀 값만 제거)"""
        self.access_token = None
        self.refresh_token = None
        self.expires_at = None
        self.status = ConnectionStatus.DISCONNECTED
        self.is_active = False
        self.updated_at = now

    def to_dict(self) -> Dict[str, Any]:
        """딕셔너리 변환 (토큰 제외)"""
        return {
            'id': self.id,
            'user_id': self.user_id,
            'marketplace_name': self.marketplace.value,
            'connection_name': self.connection_name,
            'connection_status': self.status.value,
            'is_active': self.is_active,
            'expires_at': self.expires_at.isoformat() if self.expires_at else None,
            'settings': self.settings,
            'last_test_at': self.last_test_at.isoformat() if self.last_test_at else None,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None
        }
