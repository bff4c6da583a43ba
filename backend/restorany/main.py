from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

import sentry_sdk
from fastapi import APIRouter, Depends, FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse, RedirectResponse
from sentry_sdk.integrations.fastapi import FastApiIntegration

from .api.routes import reviews as reviews_routes
from .api.routes import venues as venues_routes
from .api.routes import visits as visits_routes
from .db.core import init_db
from .errors import EngineError, InvalidQuery
from .health import health_checker
from .logging_config import SERVICE_VERSION, configure_structlog, get_logger
from .metrics import PrometheusMiddleware, get_metrics
from .seed import seed
from .serializers import error_body
from .settings import settings
from .utils import add_cors, add_request_context, bind_path_params

# Configure structured logging (must be done before any logging calls)
configure_structlog(json_logs=not settings.DEBUG)

if settings.SENTRY_DSN:
    sentry_sdk.init(
        dsn=settings.SENTRY_DSN,
        environment=settings.SENTRY_ENVIRONMENT,
        release=settings.SENTRY_RELEASE or f"restorany@{SERVICE_VERSION}",
        integrations=[FastApiIntegration()],
        traces_sample_rate=settings.SENTRY_TRACES_SAMPLE_RATE,
    )

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    await init_db()
    if settings.SEED_ON_STARTUP:
        await seed()
    logger.info("startup_complete", database=settings.database_url.split("://", 1)[0])
    yield


app = FastAPI(
    title="RestorAny API",
    version=SERVICE_VERSION,
    description="Venue discovery and review aggregation",
    lifespan=lifespan,
)
add_cors(app)
add_request_context(app)
app.add_middleware(PrometheusMiddleware)

API_PREFIX = "/v1"
DISCOVERY_PATH = f"{API_PREFIX}/venues"


@app.exception_handler(EngineError)
async def engine_error_handler(request: Request, exc: EngineError) -> JSONResponse:
    extra: dict[str, Any] = {}
    if isinstance(exc, InvalidQuery) and request.url.path == DISCOVERY_PATH:
        # discovery errors short-circuit to an empty result set
        extra["results"] = []
    if exc.status_code >= 500:
        logger.error("engine_error", code=exc.code, detail=exc.detail)
    return JSONResponse(
        status_code=exc.status_code, content=error_body(exc.code, exc.detail, **extra)
    )


v1_router = APIRouter(prefix=API_PREFIX, dependencies=[Depends(bind_path_params)])
v1_router.include_router(venues_routes.router)
v1_router.include_router(reviews_routes.router)
v1_router.include_router(visits_routes.router)
app.include_router(v1_router)


@app.get("/health")
async def health():
    """Return service health including database connectivity."""
    health_status = await health_checker.check_all()
    status_code = 200 if health_status["status"] == "healthy" else 503
    body = {
        "status": health_status["status"],
        "timestamp": health_status.get("timestamp"),
        "checks": health_status.get("checks", {}) if settings.DEBUG else _scrub(health_status),
        "service": "restorany",
        "version": SERVICE_VERSION,
    }
    return JSONResponse(content=body, status_code=status_code)


@app.get("/metrics")
def metrics():
    """Expose Prometheus metrics."""
    try:
        return get_metrics()
    except ValueError as exc:  # pragma: no cover - registry collision
        logger.exception("metrics_export_failed")
        raise HTTPException(status_code=503, detail="metrics unavailable") from exc


@app.get("/", include_in_schema=False)
def root_redirect():
    return RedirectResponse(url="/docs", status_code=307)


def _scrub(payload: dict[str, Any]) -> dict[str, Any]:
    """Per-check status only, without error messages."""
    checks = payload.get("checks", {})
    return {name: {"status": check.get("status")} for name, check in checks.items()}
