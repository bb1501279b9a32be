from typing import Any, Dict

from fastapi import APIRouter, Depends, Request

from app.core.config import get_settings
from app.services.rates.cache_service import RateCacheController
from .convert import get_rate_cache

router = APIRouter(tags=["health"])


@router.get("/health", summary="Liveness check")
async def health(request: Request) -> Dict[str, str]:
    settings = getattr(request.app.state, "settings", None) or get_settings()
    return {"status": "ok", "version": settings.version}


@router.get("/rates/status", summary="Current rate cache state (no upstream call)")
async def rates_status(
    cache: RateCacheController = Depends(get_rate_cache),
) -> Dict[str, Any]:
    return cache.snapshot()
