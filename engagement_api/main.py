"""
Engagement Analytics API — entry point.

Startup sequence:
  1. Configure OTel tracing (→ Jaeger via OTLP)
  2. Open the PostgreSQL connection pool (AnalyticsStore)
  3. Expose Prometheus /metrics endpoint

Shutdown disposes the pool.
"""
import logging

from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from prometheus_client import make_asgi_app

from engagement_api.config import settings
from engagement_api.database import AnalyticsStore
from engagement_api.errors import register_exception_handlers
from engagement_api.schemas import HealthResponse
from engagement_api.telemetry import setup_tracing, instrument_app
from engagement_api.routers import engagement

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s [%(levelname)s] %(name)s — %(message)s",
)
logger = logging.getLogger(__name__)

# Set up tracing before the engine is created so SQLAlchemy is instrumented
setup_tracing()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Own the connection pool for the lifetime of the process."""
    logger.info("Starting Engagement Analytics API (env=%s)", settings.environment)

    store = AnalyticsStore()
    await store.start()
    app.state.store = store

    logger.info("Analytics store connected. API ready.")
    yield

    logger.info("Shutting down...")
    await store.stop()


app = FastAPI(
    title="Engagement Analytics API",
    description=(
        "Read-only aggregates over author, post and engagement data: "
        "monthly trends, day/hour heatmap, author scatter and 7-day comparison."
    ),
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_allow_origins,
    allow_methods=["GET"],
    allow_headers=["*"],
)

register_exception_handlers(app)

# ── Routers ────────────────────────────────────────────────────────────────
app.include_router(engagement.router, prefix="/api/engagement", tags=["Engagement"])

# ── Prometheus metrics endpoint ────────────────────────────────────────────
metrics_app = make_asgi_app()
app.mount("/metrics", metrics_app)

# ── OTel FastAPI instrumentation ──────────────────────────────────────────
instrument_app(app)


@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health():
    return {"status": "ok", "service": settings.service_name}
