"""자격 증명 저장/테스트 라우트"""
from fastapi import APIRouter, Depends

from market_import.app.di import get_credential_service, get_current_user_id
from market_import.presentation.schemas.oauth import (
    CredentialsRequest, SaveCredentialsResponse, TestConnectionResponse
)
from market_import.services.credential_service import CredentialService

router = APIRouter()


@router.post("/save-marketplace-credentials", response_model=SaveCredentialsResponse)
async def save_marketplace_credentials(
    body: CredentialsRequest,
    user_id: str = Depends(get_current_user_id),
    service: CredentialService = Depends(get_credential_service)
):
    """자격 증명 저장 (인증 사용자 기준 upsert)"""
    return await service.save_credentials(user_id, body.marketplace, body.credentials)


@router.post("/test-marketplace-api", response_model=TestConnectionResponse)
async def test_marketplace_api(
    body: CredentialsRequest,
    service: CredentialService = Depends(get_credential_service)
):
    """자격 증명 연결 테스트"""
    return await service.test_connection(body.marketplace, body.credentials)
