"""캐시 포트 (인터페이스)"""
from abc import ABC, abstractmethod
from typing import Any, Optional


class CachePort(ABC):
    """키/값 TTL 캐시 인터페이스 (미스는 None)"""

    @abstractmethod
    async def get(self, key: str) -> Optional[Any]:
        pass

    @abstractmethod
    async def set(self, key: str, value: Any, ttl_seconds: Optional[float] = None) -> None:
        pass

    @abstractmethod
    async def delete(self, key: str) -> None:
        pass

    @abstractmethod
    async def clear(self) -> None:
        pass
