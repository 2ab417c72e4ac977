"""인메모리 TTL 캐시"""
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional
import asyncio
import json

from market_import.core.ports.cache_port import CachePort
from market_import.core.ports.clock_port import ClockPort
from market_import.shared.logging import LoggerMixin


@dataclass
class CacheEntry:
    value: Any
    expires_at: datetime


class TTLCache(CachePort, LoggerMixin):
    """키별 만료 시각을 가진 캐시 (조회 시 만료 항목 제거, 주기적 sweep)"""

    def __init__(self, clock: ClockPort, default_ttl_seconds: float = 3600):
        self.clock = clock
        self.default_ttl_seconds = default_ttl_seconds
        self._entries: Dict[str, CacheEntry] = {}

    async def get(self, key: str) -> Optional[Any]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._expired(entry):
            del self._entries[key]
            return None
        return entry.value

    async def set(self, key: str, value: Any, ttl_seconds: Optional[float] = None) -> None:
        if not key:
            raise ValueError("캐시 키가 필요합니다")
        if value is None:
            raise ValueError("None 값은 캐시할 수 없습니다")
        ttl = self.default_ttl_seconds if ttl_seconds is None else ttl_seconds
        self._entries[key] = CacheEntry(value=value, expires_at=self.clock.now() + timedelta(seconds=ttl))

    async def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    async def clear(self) -> None:
        self._entries.clear()

    def sweep(self) -> int:
        """만료 항목 일괄 제거, 제거 건수 반환"""
        expired = [key for key, entry in self._entries.items() if self._expired(entry)]
        for key in expired:
            del self._entries[key]
        if expired:
            self.logger.debug(f"캐시 만료 항목 {len(expired)}건 제거")
        return len(expired)

    def stats(self) -> Dict[str, Any]:
        """캐시 통계 (size, keys, memory_usage)"""
        keys: List[str] = list(self._entries.keys())
        snapshot = {key: entry.value for key, entry in self._entries.items()}
        return {
            "size": len(keys),
            "keys": keys,
            "memory_usage": len(json.dumps(snapshot, default=str))
        }

    async def run_sweeper(self, interval_seconds: float) -> None:
        """interval 마다 sweep (lifespan 에서 태스크로 실행, 취소로 종료)"""
        self.logger.info(f"캐시 sweeper 시작: interval={interval_seconds}s")
        try:
            while True:
                await self.clock.sleep(interval_seconds)
                self.sweep()
        except asyncio.CancelledError:
            self.logger.info("캐시 sweeper 종료")
            raise

    def _expired(self, entry: CacheEntry) -> bool:
        return self.clock.now() > entry.expires_at
