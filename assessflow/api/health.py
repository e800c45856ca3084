"""Health and readiness endpoints.

/health (liveness) answers 200 as long as the process can respond; the
``status`` field reports degraded dependencies.  /ready (readiness)
answers 503 when PostgreSQL is configured but unreachable, since attempts
cannot be persisted without it.  Redis is never critical: the queue and
cache have in-memory fallbacks.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Response
from sqlalchemy import text

from assessflow.db.engine import engine
from assessflow.db.redis import redis_pool
from assessflow.services.workflow_coordinator import scheduler

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


async def _check_redis() -> str:
    if redis_pool is None:
        return "not_configured"
    try:
        await redis_pool.ping()  # type: ignore[misc]
        return "ok"
    except Exception:
        logger.warning("Redis health check failed", exc_info=True)
        return "degraded"


async def _check_database() -> str:
    if engine is None:
        return "not_configured"
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return "ok"
    except Exception:
        logger.warning("Database health check failed", exc_info=True)
        return "degraded"


@router.get("/health")
async def health() -> dict:
    """Liveness probe + dependency status + countdown timers in flight."""
    checks = {
        "redis": await _check_redis(),
        "database": await _check_database(),
    }
    overall = "degraded" if "degraded" in checks.values() else "ok"
    return {
        "status": overall,
        "checks": checks,
        "active_timers": scheduler.pending_count,
    }


@router.get("/ready")
async def ready() -> Response:
    """Readiness probe: 503 while the database is unreachable."""
    if await _check_database() == "degraded":
        return Response(status_code=503)
    return Response(status_code=200)
