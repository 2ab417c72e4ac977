"""시간 어댑터"""
from datetime import datetime, timezone
import asyncio

from market_import.core.ports.clock_port import ClockPort


class ClockAdapter(ClockPort):
    """시스템 시계 구현체"""

    def now(self) -> datetime:
        """현재 시간 반환 (UTC)"""
        return datetime.now(timezone.utc)

    async def sleep(self, seconds: float) -> None:
        """비동기 대기"""
        await asyncio.sleep(seconds)
