"""도메인 예외 및 HTTP 변환"""
from typing import Any, Dict, Optional

from fastapi import Request, status
from fastapi.responses import JSONResponse


class MarketImportError(Exception):
    """마켓 가져오기 기본 예외"""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ValidationError(MarketImportError):
    """요청 데이터 검증 에러"""
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str, field: str = None, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details)
        self.field = field


class ConfigurationError(MarketImportError):
    """마켓 자격 증명/설정 누락"""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


class AuthenticationError(MarketImportError):
    """스토어프론트 사용자 인증 에러"""
    status_code = status.HTTP_401_UNAUTHORIZED


class UnsupportedMarketplaceError(MarketImportError):
    """지원하지 않는 마켓"""
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, marketplace: str):
        super().__init__(f"지원하지 않는 마켓: {marketplace}", {"marketplace": marketplace})
        self.marketplace = marketplace


class OAuthExchangeError(MarketImportError):
    """인가 코드 교환 실패 (재연결 필요)"""
    status_code = status.HTTP_400_BAD_REQUEST


class TokenRefreshError(MarketImportError):
    """리프레시 토큰 무효/폐기 (재연결 필요)"""
    status_code = status.HTTP_401_UNAUTHORIZED


class TokenExpiredError(MarketImportError):
    """액세스 토큰 만료 (갱신 후 재시도)"""
    status_code = status.HTTP_409_CONFLICT


class ConnectionNotFoundError(MarketImportError):
    """연결 정보 없음"""
    status_code = status.HTTP_404_NOT_FOUND


class ConnectionInactiveError(MarketImportError):
    """비활성/오류 상태 연결"""
    status_code = status.HTTP_409_CONFLICT


class ImportInProgressError(MarketImportError):
    """같은 연결에 대한 가져오기가 이미 실행 중"""
    status_code = status.HTTP_409_CONFLICT


class ImportRequestError(ValidationError):
    """가져오기 요청 파라미터 오류"""


class MarketplaceFetchError(MarketImportError):
    """마켓 API 호출 실패 (상품 단위)"""
    status_code = status.HTTP_502_BAD_GATEWAY

    def __init__(self, message: str, marketplace: str = None, status_code: int = None,
                 details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details)
        self.marketplace = marketplace
        self.upstream_status = status_code


class ConnectionTestError(MarketImportError):
    """마켓 API 연결 테스트 실패"""
    status_code = status.HTTP_502_BAD_GATEWAY


class TransientUpstreamError(ConnectionTestError):
    """일시적 외부 API 오류 (재시도 대상)"""
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE


class ProductNotFoundError(MarketImportError):
    """상품 없음"""
    status_code = status.HTTP_404_NOT_FOUND


def error_payload(error: MarketImportError) -> Dict[str, Any]:
    """에러 응답 본문 생성"""
    return {
        "success": False,
        "error": error.message,
        "type": error.__class__.__name__,
        "details": error.details
    }


async def market_import_error_handler(request: Request, exc: MarketImportError) -> JSONResponse:
    """도메인 예외를 JSON 응답으로 변환"""
    return JSONResponse(status_code=exc.status_code, content=error_payload(exc))
