"""애플리케이션 설정"""
from functools import lru_cache
from typing import Optional
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """애플리케이션 설정"""

    # 데이터베이스
    database_url: str = Field(default="sqlite+aiosqlite:///./market_import.db")

    # 로깅
    log_level: str = Field(default="INFO")
    log_format: str = Field(default="%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    # API 설정
    api_host: str = Field(default="0.0.0.0")
    api_port: int = Field(default=8000)
    api_reload: bool = Field(default=False)
    cors_origins: list = Field(default=["*"])

    # 인증 (스토어프론트 세션 JWT)
    auth_jwt_secret: str = Field(default="change-me")
    auth_jwt_algorithm: str = Field(default="HS256")
    auth_jwt_audience: Optional[str] = Field(default="authenticated")

    # 메르카도 리브레
    mercadolivre_client_id: Optional[str] = Field(default=None)
    mercadolivre_client_secret: Optional[str] = Field(default=None)
    mercadolivre_redirect_uri: Optional[str] = Field(default=None)
    mercadolivre_api_url: str = Field(default="https://api.mercadolibre.com")
    mercadolivre_auth_url: str = Field(default="https://auth.mercadolibre.com.br/authorization")
    mercadolivre_site_id: str = Field(default="MLB")

    # 아마존 SP-API
    amazon_client_id: Optional[str] = Field(default=None)
    amazon_client_secret: Optional[str] = Field(default=None)
    amazon_redirect_uri: Optional[str] = Field(default=None)
    amazon_region: str = Field(default="us-east-1")
    amazon_token_url: str = Field(default="https://api.amazon.com/auth/o2/token")
    amazon_auth_url: str = Field(default="https://sellercentral.amazon.com.br/apps/authorize/consent")
    amazon_api_url: str = Field(default="https://sellingpartnerapi-na.amazon.com")

    # 알리익스프레스
    aliexpress_app_key: Optional[str] = Field(default=None)
    aliexpress_app_secret: Optional[str] = Field(default=None)
    aliexpress_api_url: str = Field(default="https://api-sg.aliexpress.com/sync")

    # 외부 API 호출
    request_timeout: int = Field(default=30)
    user_agent: str = Field(default="market-import/1.0")

    # 상품 가져오기
    import_request_delay_seconds: float = Field(default=0.1)
    import_max_products: int = Field(default=20)
    import_search_limit: int = Field(default=50)

    # 상품 재동기화
    sync_max_products: int = Field(default=150)

    # 가격 정책
    default_markup_type: str = Field(default="percentage")
    default_markup_value: float = Field(default=30.0)

    # 토큰 갱신
    token_refresh_buffer_minutes: int = Field(default=10)

    # 연결 테스트 재시도
    connection_test_max_attempts: int = Field(default=3)
    connection_test_base_delay: float = Field(default=1.0)

    # 캐시
    cache_default_ttl_seconds: float = Field(default=3600.0)
    cache_sweep_interval_seconds: float = Field(default=300.0)
    cache_service_url: Optional[str] = Field(default=None)

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
        case_sensitive=False,
    )


@lru_cache
def get_settings() -> Settings:
    """설정 인스턴스 반환"""
    return Settings()
