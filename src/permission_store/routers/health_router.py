from __future__ import annotations

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from redis.exceptions import RedisError

from permission_store.utils.response import failure, success
from permission_store.configs.logging_config import get_logger

log = get_logger(__name__)

router = APIRouter()


@router.get("/health")
async def health(request: Request):
    try:
        await request.app.state.redis.ping()
    except RedisError as e:
        log.warning("health.redis_unreachable error=%s", e)
        return JSONResponse(status_code=503, content=failure("redis unreachable"))
    return success({"ok": True, "redis": True}, message="healthy")
