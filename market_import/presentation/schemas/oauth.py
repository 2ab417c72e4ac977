"""OAuth/연결 관련 DTO 스키마"""
from typing import Any, Dict, List, Literal, Optional
from pydantic import BaseModel, ConfigDict, Field


class MarketplaceOAuthRequest(BaseModel):
    """POST /marketplace-oauth 요청 (action 별 필드 사용)"""
    model_config = ConfigDict(populate_by_name=True)

    marketplace: str = Field(..., min_length=1)
    action: Literal["get_auth_url", "exchange_code", "refresh_token"]

    # get_auth_url / exchange_code
    redirect_uri: Optional[str] = Field(None, alias="redirectUri")
    code: Optional[str] = None
    user_id: Optional[str] = Field(None, alias="userId")
    connection_name: Optional[str] = Field(None, alias="connectionName")
    marketplace_ids: Optional[List[str]] = Field(None, alias="marketplaceIds")

    # refresh_token
    connection_id: Optional[str] = Field(None, alias="connectionId")


class ConnectionSummary(BaseModel):
    """연결 요약 (토큰 제외)"""
    id: str
    marketplace_name: str
    connection_name: str
    connection_status: str
    is_active: bool
    expires_at: Optional[str] = None
    needs_refresh: bool = False


class TokenData(BaseModel):
    """토큰 메타데이터 (토큰 값 제외)"""
    expires_in: Optional[int] = None
    user_id: Optional[str] = None
    user_nickname: Optional[str] = None
    refreshed_at: Optional[str] = None


class AuthUrlResponse(BaseModel):
    success: bool = True
    marketplace: str
    authUrl: str
    state: Optional[str] = None


class ConnectionResponse(BaseModel):
    success: bool = True
    connection: ConnectionSummary
    tokenData: TokenData


class CredentialsRequest(BaseModel):
    """자격 증명 저장/테스트 요청"""
    marketplace: str = Field(..., min_length=1)
    credentials: Dict[str, Any] = Field(default_factory=dict)


class SaveCredentialsResponse(BaseModel):
    success: bool = True
    message: str
    secretNames: List[str]
    connectionId: Optional[str] = None
    connectionStatus: Optional[str] = None


class TestConnectionResponse(BaseModel):
    success: bool = True
    message: str
    tested_at: str
