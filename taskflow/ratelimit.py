from __future__ import annotations

import hashlib
import logging

from fastapi import HTTPException, Request

from taskflow.config import settings
from taskflow.redis_client import redis_client

logger = logging.getLogger(__name__)

def _client_key(request: Request) -> str:
    ip = (request.client.host if request.client else "unknown").strip()
    return hashlib.sha256(ip.encode("utf-8")).hexdigest()[:24]

# fixed-window limiter on auth endpoints, redis INCR + EXPIRE
def rate_limit(name: str, limit_per_window: int, window_seconds: int = 60):
    async def _dep(request: Request) -> None:
        if not settings.rate_limit_enabled:
            return

        key = f"rl:{name}:{_client_key(request)}"
        try:
            pipe = redis_client.pipeline()
            pipe.incr(key)
            pipe.expire(key, window_seconds, nx=True)
            count, _ = pipe.execute()
        except Exception as e:
            # fail-open if redis is down
            logger.warning("rate limiter unavailable for %s: %s", name, e.__class__.__name__)
            return

        if int(count) > int(limit_per_window):
            logger.info("rate limited %s", name)
            raise HTTPException(status_code=429, detail="rate_limited")

    return _dep
