from fastapi import APIRouter
from fastapi.responses import JSONResponse

from taskflow.config import settings
from taskflow.db import db_ping
from taskflow.redis_client import redis_ping

router = APIRouter(tags=["health"])

@router.get("/health")
def health() -> dict:
    return {"status": "ok"}

def _probes():
    yield "db", db_ping
    # redis only backs rate limiting and the change feed
    if settings.rate_limit_enabled or settings.notify_redis_enabled:
        yield "redis", redis_ping

# readiness probe
@router.get("/ready")
def ready():
    checks: dict[str, bool] = {}
    errors: dict[str, str] = {}

    for name, fn in _probes():
        try:
            checks[name] = bool(fn())
        except Exception as e:
            checks[name] = False
            msg = str(e).strip()
            errors[name] = f"{e.__class__.__name__}{(': ' + msg) if msg else ''}"

    ok = all(checks.values())

    body: dict = {"status": "ok" if ok else "unready", "checks": checks}
    if errors:
        body["errors"] = errors

    return JSONResponse(status_code=200 if ok else 503, content=body)
