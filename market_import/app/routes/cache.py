"""캐시 서비스 라우트 (TTL 은 밀리초)"""
from fastapi import APIRouter, Depends, Query, Response, status
from fastapi.responses import JSONResponse

from market_import.adapters.cache.ttl_cache import TTLCache
from market_import.app.di import get_local_cache
from market_import.presentation.schemas.cache import CacheSetRequest, CacheStatsResponse

router = APIRouter()


@router.get("")
async def get_cached(
    response: Response,
    key: str = Query(..., min_length=1),
    cache: TTLCache = Depends(get_local_cache)
):
    """캐시 조회 (미스는 404)"""
    data = await cache.get(key)
    if data is None:
        return JSONResponse(
            status_code=status.HTTP_404_NOT_FOUND,
            content={"error": "Cache miss", "key": key}
        )
    response.headers["X-Cache"] = "HIT"
    return {"data": data, "key": key, "cached": True}


@router.post("")
async def set_cached(body: CacheSetRequest, cache: TTLCache = Depends(get_local_cache)):
    """캐시 저장"""
    if body.data is None:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": "Key and data are required"}
        )
    await cache.set(body.key, body.data, ttl_seconds=body.ttl / 1000)
    return {"success": True, "key": body.key, "ttl": body.ttl}


@router.delete("")
async def delete_cached(
    key: str = Query(..., min_length=1),
    cache: TTLCache = Depends(get_local_cache)
):
    """캐시 삭제"""
    await cache.delete(key)
    return {"success": True, "key": key}


@router.post("/clear")
async def clear_cache(cache: TTLCache = Depends(get_local_cache)):
    """전체 캐시 초기화"""
    await cache.clear()
    return {"success": True, "message": "Cache cleared"}


@router.get("/stats", response_model=CacheStatsResponse)
async def cache_stats(cache: TTLCache = Depends(get_local_cache)):
    """캐시 통계"""
    return cache.stats()
