"""Cache router — adaptive cache introspection and tuning."""

from fastapi import APIRouter, Depends

from venuescout.services.adaptive_cache import AdaptiveCache, adaptive_cache

router = APIRouter()


def get_cache() -> AdaptiveCache:
    return adaptive_cache


@router.get("/stats")
async def cache_stats(cache: AdaptiveCache = Depends(get_cache)):
    return cache.get_stats()


@router.post("/optimize")
async def optimize_cache(cache: AdaptiveCache = Depends(get_cache)):
    result = cache.optimize()
    return {**result, "stats": cache.get_stats()}
