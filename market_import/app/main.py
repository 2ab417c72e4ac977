"""FastAPI 애플리케이션 메인 파일 (헥사고날 아키텍처)"""
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, APIRouter
from fastapi.middleware.cors import CORSMiddleware

from market_import.app.di import Container, build_container
from market_import.app.routes import cache, credentials, health, oauth, products
from market_import.core.exceptions import MarketImportError, market_import_error_handler
from market_import.shared.config import Settings, get_settings
from market_import.shared.logging import configure_logging, get_logger

logger = get_logger(__name__)


def create_app(settings: Optional[Settings] = None, container: Optional[Container] = None) -> FastAPI:
    """FastAPI 애플리케이션 생성"""
    settings = settings or (container.settings if container else get_settings())
    configure_logging(settings.log_level, settings.log_format)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """애플리케이션 생명주기 관리"""
        app.state.container = container or build_container(settings)
        await app.state.container.startup()
        logger.info("마켓 상품 가져오기 서비스 시작")

        yield

        await app.state.container.shutdown()
        logger.info("마켓 상품 가져오기 서비스 종료")

    app = FastAPI(
        title="마켓 상품 가져오기 서비스",
        description="마켓플레이스 OAuth 연결, 상품 가져오기, TTL 캐시",
        version="1.0.0",
        lifespan=lifespan
    )

    # CORS 미들웨어
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(MarketImportError, market_import_error_handler)

    # API 라우터 등록
    api_router = APIRouter(prefix="/api/v1")
    api_router.include_router(health.router, tags=["health"])
    api_router.include_router(oauth.router, tags=["oauth"])
    api_router.include_router(credentials.router, tags=["credentials"])
    api_router.include_router(products.router, tags=["products"])
    app.include_router(api_router)

    app.include_router(cache.router, prefix="/cache", tags=["cache"])

    @app.get("/")
    async def root():
        """루트 엔드포인트"""
        return {
            "message": "마켓 상품 가져오기 API 서버",
            "docs": "/docs",
            "health": "/api/v1/health"
        }

    return app


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "market_import.app.main:create_app",
        factory=True,
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.api_reload,
        log_level=settings.log_level.lower()
    )
