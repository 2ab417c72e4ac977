"""마켓 OAuth 라우트"""
from fastapi import APIRouter, Depends

from market_import.core.entities.connection import Connection, Marketplace
from market_import.core.exceptions import ValidationError
from market_import.app.di import get_oauth_service
from market_import.presentation.schemas.oauth import (
    AuthUrlResponse, ConnectionResponse, ConnectionSummary, MarketplaceOAuthRequest, TokenData
)
from market_import.services.oauth_service import OAuthService
from market_import.shared.logging import get_logger

router = APIRouter()
logger = get_logger(__name__)


def _summary(connection: Connection, service: OAuthService) -> ConnectionSummary:
    return ConnectionSummary(
        id=connection.id,
        marketplace_name=connection.marketplace.value,
        connection_name=connection.connection_name,
        connection_status=connection.status.value,
        is_active=connection.is_active,
        expires_at=connection.expires_at.isoformat() if connection.expires_at else None,
        needs_refresh=connection.is_usable() and service.needs_refresh(connection)
    )


def _expires_in(connection: Connection) -> int:
    if connection.expires_at is None:
        return 0
    return max(0, int((connection.expires_at - connection.updated_at).total_seconds()))


async def _get_auth_url(body: MarketplaceOAuthRequest, service: OAuthService):
    result = service.get_auth_url(body.marketplace, body.redirect_uri)
    return AuthUrlResponse(marketplace=Marketplace.parse(body.marketplace).value, **result)


async def _exchange_code(body: MarketplaceOAuthRequest, service: OAuthService):
    if not body.code or not body.user_id:
        raise ValidationError("code 와 userId 는 필수입니다", field="code")

    extra = {"marketplace_ids": body.marketplace_ids} if body.marketplace_ids else None
    connection = await service.exchange(
        body.marketplace,
        body.code,
        body.redirect_uri,
        body.user_id,
        connection_name=body.connection_name,
        extra_settings=extra
    )
    return ConnectionResponse(
        connection=_summary(connection, service),
        tokenData=TokenData(
            expires_in=_expires_in(connection),
            user_id=connection.settings.get("user_id"),
            user_nickname=connection.settings.get("nickname")
        )
    )


async def _refresh_token(body: MarketplaceOAuthRequest, service: OAuthService):
    if not body.connection_id:
        raise ValidationError("connectionId 는 필수입니다", field="connectionId")

    connection = await service.refresh(body.connection_id)
    return ConnectionResponse(
        connection=_summary(connection, service),
        tokenData=TokenData(
            expires_in=_expires_in(connection),
            refreshed_at=connection.updated_at.isoformat()
        )
    )


ACTIONS = {
    "get_auth_url": _get_auth_url,
    "exchange_code": _exchange_code,
    "refresh_token": _refresh_token,
}


@router.post("/marketplace-oauth")
async def marketplace_oauth(
    body: MarketplaceOAuthRequest,
    service: OAuthService = Depends(get_oauth_service)
):
    """OAuth 액션 처리 (get_auth_url | exchange_code | refresh_token)"""
    logger.info(f"OAuth 요청: {body.action} ({body.marketplace})")
    return await ACTIONS[body.action](body, service)


@router.post("/connections/{connection_id}/disconnect")
async def disconnect(
    connection_id: str,
    service: OAuthService = Depends(get_oauth_service)
):
    """연결 해제"""
    connection = await service.disconnect(connection_id)
    return {"success": True, "connection": _summary(connection, service)}
