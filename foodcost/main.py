"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.responses import PlainTextResponse

from foodcost import __version__
from foodcost.api.routes import api_router
from foodcost.core.config import settings
from foodcost.core.logging import configure_logging
from foodcost.core.metrics import DataQualityMetrics
from foodcost.db.base import Base
from foodcost.db.session import engine
# Register all models with Base.metadata
from foodcost import models  # noqa: F401

configure_logging(settings)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    logger.info("Starting Food Cost service")
    Base.metadata.create_all(bind=engine)
    yield
    logger.info("Shutting down Food Cost service")


app = FastAPI(
    title="Food Cost Core",
    description="Recipe cost explosion, inventory ledger reconciliation and vendor item matching",
    version=__version__,
    lifespan=lifespan,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
)

# One collector per process; services receive it explicitly
app.state.metrics = DataQualityMetrics()

app.include_router(api_router, prefix=settings.api_v1_prefix)


@app.get("/health")
def health_check():
    """Basic liveness check endpoint."""
    return {"status": "healthy", "version": __version__}


@app.get("/metrics")
def prometheus_metrics():
    """Prometheus-compatible data-quality counters."""
    return PlainTextResponse(app.state.metrics.get_prometheus_metrics(), media_type="text/plain")
