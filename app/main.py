"""FastAPI application entrypoint."""

from __future__ import annotations

import logging
import resource
import sys
from contextlib import asynccontextmanager
from time import monotonic
from typing import Any

from fastapi import FastAPI, Request, Response, status
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from app.core.config import get_settings
from app.core.database import SessionLocal, close_engine, ping_database
from app.core.metrics import PrometheusMetricsSink, build_metrics_middleware, build_metrics_response
from app.modules.admin.repository import AdminRepository
from app.modules.admin.router import router as admin_router
from app.modules.cart.router import router as cart_router
from app.modules.certificates.router import router as certificates_router
from app.modules.notifications.router import router as notifications_router
from app.modules.orders.router import router as orders_router
from app.modules.payments.gateway import build_toss_client
from app.modules.payments.router import router as payments_router
from app.shared.exceptions import register_exception_handlers
from app.shared.utils import utc_now

settings = get_settings()
logger = logging.getLogger(__name__)
_STARTED_AT = monotonic()

NO_CACHE_HEADERS = {
    "Cache-Control": "no-cache, no-store, must-revalidate",
    "Pragma": "no-cache",
    "Expires": "0",
}


@asynccontextmanager
async def lifespan(application: FastAPI):
    """Application startup and shutdown hooks."""
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    logger.info("Starting %s (%s)", settings.app_name, settings.app_env)
    missing = settings.missing_required_values()
    if missing:
        logger.warning("Missing configuration values: %s", ", ".join(missing))
    application.state.toss_client = build_toss_client(settings)

    yield

    logger.info("Shutting down %s", settings.app_name)
    if application.state.toss_client is not None:
        await application.state.toss_client.aclose()
    await close_engine()


metrics_sink = PrometheusMetricsSink()

app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    debug=settings.debug,
    lifespan=lifespan,
)
app.state.metrics_sink = metrics_sink
app.state.toss_client = None
app.middleware("http")(build_metrics_middleware(metrics_sink))

register_exception_handlers(app)

app.include_router(orders_router, prefix=settings.api_prefix)
app.include_router(payments_router, prefix=settings.api_prefix)
app.include_router(certificates_router, prefix=settings.api_prefix)
app.include_router(cart_router, prefix=settings.api_prefix)
app.include_router(notifications_router, prefix=settings.api_prefix)
app.include_router(admin_router, prefix=settings.api_prefix)


async def _check_database() -> dict[str, Any]:
    try:
        elapsed_ms = await ping_database()
    except (SQLAlchemyError, OSError) as exc:
        logger.exception("Database health check failed")
        return {"status": "unhealthy", "error": str(exc) or exc.__class__.__name__, "response_time_ms": None}
    return {"status": "healthy", "response_time_ms": round(elapsed_ms, 2)}


def _check_environment() -> dict[str, Any]:
    missing = settings.missing_required_values()
    return {"status": "unhealthy" if missing else "healthy", "missing_variables": missing}


def _memory_usage() -> dict[str, float]:
    # ru_maxrss is kilobytes on Linux and bytes on macOS.
    max_rss = resource.getrusage(resource.RUSAGE_SELF).ru_maxrss
    divisor = 1024 * 1024 if sys.platform == "darwin" else 1024
    return {"max_rss_mb": round(max_rss / divisor, 2)}


@app.get(f"{settings.api_prefix}/health")
async def healthcheck() -> JSONResponse:
    """Report store reachability and configuration completeness."""
    database = await _check_database()
    environment = _check_environment()
    healthy = database["status"] == "healthy" and environment["status"] == "healthy"
    report = {
        "status": "healthy" if healthy else "unhealthy",
        "timestamp": utc_now().isoformat(),
        "version": settings.app_version,
        "environment": settings.app_env,
        "uptime": round(monotonic() - _STARTED_AT, 3),
        "memory": _memory_usage(),
        "services": {"database": database, "environment": environment},
    }
    return JSONResponse(
        status_code=status.HTTP_200_OK if healthy else status.HTTP_503_SERVICE_UNAVAILABLE,
        content=report,
        headers=NO_CACHE_HEADERS,
    )


async def _refresh_business_metrics(sink: PrometheusMetricsSink) -> None:
    try:
        async with SessionLocal() as session:
            overview = await AdminRepository(session).get_business_overview()
    except (SQLAlchemyError, OSError):
        logger.warning("Business metrics refresh failed", exc_info=True)
        return
    sink.update_business_metrics(
        active_users=overview["active_users"],
        courses_total=overview["courses_total"],
        enrollments_total=overview["enrollments_total"],
        revenue_total=overview["revenue_total"],
    )


@app.get(f"{settings.api_prefix}/metrics", include_in_schema=False)
async def metrics_endpoint(request: Request) -> Response:
    """Prometheus metrics endpoint."""
    sink: PrometheusMetricsSink = request.app.state.metrics_sink
    await _refresh_business_metrics(sink)
    return build_metrics_response(sink)
