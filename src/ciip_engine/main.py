"""
CIIP Telemetry Engine - FastAPI Application
Operational API hosting the telemetry pipeline
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import uvicorn
import structlog
from contextlib import asynccontextmanager

from ciip_engine import __version__
from ciip_engine.api.routes import alerts, health, thresholds
from ciip_engine.core.config import settings
from ciip_engine.core.logging import configure_logging
from ciip_engine.processors.pipeline import PipelineRunner, TelemetryPipeline

configure_logging(settings.log_level)

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager"""
    logger.info("Starting CIIP Telemetry Engine API", pipeline_enabled=settings.pipeline_enabled)
    runner = None
    if settings.pipeline_enabled:
        runner = PipelineRunner(TelemetryPipeline(config=settings), interval=settings.tick_interval_seconds)
        await runner.start()
    app.state.runner = runner
    yield
    if runner is not None:
        await runner.stop()
    logger.info("Shutting down CIIP Telemetry Engine API")


# Create FastAPI application
app = FastAPI(
    title="CIIP Telemetry Engine API",
    description="Machine health derivation, status classification and threshold alerting",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(health.router, prefix="/api/v1", tags=["health"])
app.include_router(alerts.router, prefix="/api/v1", tags=["alerts"])
app.include_router(thresholds.router, prefix="/api/v1", tags=["thresholds"])


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "message": "CIIP Telemetry Engine API",
        "version": __version__,
        "docs": "/docs",
        "health": "/api/v1/health"
    }


@app.exception_handler(Exception)
async def global_exception_handler(request, exc):
    """Global exception handler"""
    logger.error("Unhandled exception", exc_info=exc, path=request.url.path)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error"}
    )


def run():
    uvicorn.run(
        "ciip_engine.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.debug,
        log_level=settings.log_level.lower()
    )


if __name__ == "__main__":
    run()
