"""헬스체크 라우트"""
from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from sqlalchemy import text

from market_import.app.di import Container, get_container
from market_import.shared.logging import get_logger

router = APIRouter()
logger = get_logger(__name__)


@router.get("/health")
async def health_check(container: Container = Depends(get_container)):
    """서비스 헬스체크"""
    try:
        async with container.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return {
            "status": "healthy",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "service": "market-import",
            "marketplaces": container.registry.names()
        }

    except Exception as e:
        logger.error(f"헬스체크 실패: {e}")
        return {
            "status": "unhealthy",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "error": str(e)
        }
