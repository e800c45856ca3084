from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from assessflow.api.attempts import router as attempts_router
from assessflow.api.health import router as health_router
from assessflow.api.metrics_endpoint import router as metrics_router
from assessflow.api.submissions import router as submissions_router
from assessflow.core.config import SETTINGS
from assessflow.core.logging import setup_logging
from assessflow.db.engine import lifespan_db
from assessflow.db.redis import lifespan_redis
from assessflow.middleware.metrics import MetricsMiddleware
from assessflow.middleware.request_context import RequestContextMiddleware
from assessflow.services.errors import NotFoundError
from assessflow.services.workflow_coordinator import coordinator, scheduler

# Configure logging before anything else runs.
setup_logging(SETTINGS.log_level, json_format=SETTINGS.log_json)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    # Teardown runs in reverse: pending countdowns are cancelled before
    # Redis and the database go away.
    async with lifespan_db():
        async with lifespan_redis():
            await coordinator.resume_timers()
            try:
                yield
            finally:
                await scheduler.shutdown()


app = FastAPI(
    title="assessment-workflow",
    lifespan=lifespan,
    docs_url="/docs" if SETTINGS.is_dev else None,
    redoc_url="/redoc" if SETTINGS.is_dev else None,
)


@app.exception_handler(NotFoundError)
async def _not_found(_request: Request, exc: NotFoundError) -> JSONResponse:
    logger.warning("Lookup failed: %s", exc)
    return JSONResponse(
        status_code=status.HTTP_404_NOT_FOUND,
        content={"detail": f"{exc.kind.capitalize()} not found"},
    )


app.add_middleware(
    CORSMiddleware,
    allow_origins=list(SETTINGS.cors_origins),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Last-added runs first: RequestContext (outermost) → Metrics → CORS → route.
app.add_middleware(MetricsMiddleware)
app.add_middleware(RequestContextMiddleware)

app.include_router(metrics_router)
app.include_router(health_router)
app.include_router(attempts_router)
app.include_router(submissions_router)

logger.info(
    "assessment-workflow started  env=%s log_level=%s port=%d docs=%s",
    SETTINGS.app_env,
    SETTINGS.log_level,
    SETTINGS.port,
    "on" if SETTINGS.is_dev else "off",
)
