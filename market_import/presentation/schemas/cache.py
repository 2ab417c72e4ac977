"""캐시 서비스 DTO 스키마"""
from typing import Any, List
from pydantic import BaseModel, Field

# 기본 TTL: 1시간 (ms)
DEFAULT_TTL_MS = 3_600_000


class CacheSetRequest(BaseModel):
    key: str = Field(..., min_length=1)
    data: Any
    ttl: int = Field(DEFAULT_TTL_MS, gt=0, description="TTL (밀리초)")


class CacheStatsResponse(BaseModel):
    size: int
    keys: List[str]
    memory_usage: int
