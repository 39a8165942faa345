from __future__ import annotations
from fastapi import APIRouter, Depends, Request
from datetime import datetime, timezone
from redis.asyncio import Redis
from beatbound.config import settings
from beatbound.redis_deps import get_redis, redis_ok

router = APIRouter()

@router.get("/health")
async def health(request: Request, redis: Redis = Depends(get_redis)):
    return {
        "status": "ok",
        "env": settings.environment,
        "time": datetime.now(timezone.utc).isoformat(),
        "request_id": request.headers.get("x-request-id") or request.state.request_id,
        "redis": "ok" if await redis_ok(redis) else "unavailable",
    }

@router.get("/version")
async def version():
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "git_sha": settings.git_sha,
        "build": "docker",
    }
