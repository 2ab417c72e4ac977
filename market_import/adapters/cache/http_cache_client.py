"""원격 캐시 서비스 클라이언트"""
from typing import Any, Optional

import httpx

from market_import.core.ports.cache_port import CachePort
from market_import.shared.logging import get_logger

logger = get_logger(__name__)


class HttpCacheClient(CachePort):
    """/cache 엔드포인트 클라이언트 (오류는 로그 후 미스/무시로 처리)"""

    def __init__(self, base_url: str, timeout: int = 5, client: Optional[httpx.AsyncClient] = None):
        self.base_url = base_url.rstrip('/')
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(timeout=timeout)

    async def aclose(self):
        if self._owns_client:
            await self.client.aclose()

    async def get(self, key: str) -> Optional[Any]:
        try:
            response = await self.client.get(f"{self.base_url}/cache", params={"key": key})
            if response.status_code == 404:
                return None
            response.raise_for_status()
            return response.json().get("data")
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"캐시 조회 실패, 미스로 처리 key={key}: {e}")
            return None

    async def set(self, key: str, value: Any, ttl_seconds: Optional[float] = None) -> None:
        payload = {"key": key, "data": value}
        if ttl_seconds is not None:
            payload["ttl"] = int(ttl_seconds * 1000)
        try:
            response = await self.client.post(f"{self.base_url}/cache", json=payload)
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning(f"캐시 저장 실패 key={key}: {e}")

    async def delete(self, key: str) -> None:
        try:
            response = await self.client.delete(f"{self.base_url}/cache", params={"key": key})
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning(f"캐시 삭제 실패 key={key}: {e}")

    async def clear(self) -> None:
        try:
            response = await self.client.post(f"{self.base_url}/cache/clear")
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning(f"캐시 초기화 실패: {e}")
