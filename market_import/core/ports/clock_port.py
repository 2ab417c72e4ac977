"""시간 포트 (인터페이스)"""
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Optional


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """naive datetime 을 UTC 로 간주하여 tz-aware 로 변환"""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class ClockPort(ABC):
    """시간 및 대기 인터페이스"""

    @abstractmethod
    def now(self) -> datetime:
        """현재 시간 반환 (UTC, tz-aware)"""
        pass

    @abstractmethod
    async def sleep(self, seconds: float) -> None:
        """비동기 대기"""
        pass

