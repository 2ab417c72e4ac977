"""지수 백오프 재시도 유틸리티"""
import asyncio
from typing import Awaitable, Callable, Optional, Tuple, Type, TypeVar

from market_import.shared.logging import get_logger

logger = get_logger(__name__)

T = TypeVar('T')


async def retry_with_backoff(
    operation: Callable[[], Awaitable[T]],
    max_attempts: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 10.0,
    retry_on: Tuple[Type[BaseException], ...] = (Exception,),
    sleep: Optional[Callable[[float], Awaitable[None]]] = None,
    label: str = "operation"
) -> T:
    """재시도 가능한 예외에 대해 지수 백오프로 재실행"""
    sleep = sleep or asyncio.sleep

    for attempt in range(max_attempts):
        try:
            return await operation()
        except retry_on as e:
            if attempt >= max_attempts - 1:
                logger.error(f"{label} 최종 실패 ({attempt + 1}/{max_attempts}): {e}")
                raise
            delay = min(base_delay * (2 ** attempt), max_delay)
            logger.warning(f"{label} 재시도 {attempt + 1}/{max_attempts - 1}, {delay:.1f}s 후: {e}")
            await sleep(delay)

    raise RuntimeError(f"{label}: max_attempts must be positive")
