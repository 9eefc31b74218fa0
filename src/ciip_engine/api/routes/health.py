"""
Health check endpoints
"""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session
from sqlalchemy import text
from ciip_engine import __version__
from ciip_engine.database.connection import get_database
import structlog

logger = structlog.get_logger(__name__)
router = APIRouter()

SERVICE_NAME = "CIIP Telemetry Engine"


@router.get("/health")
async def health_check():
    """Basic health check"""
    return {
        "status": "healthy",
        "service": SERVICE_NAME,
        "version": __version__
    }


@router.get("/health/detailed")
async def detailed_health_check(request: Request, db: Session = Depends(get_database)):
    """Database connectivity and the outcome of the last pipeline tick"""
    try:
        db.execute(text("SELECT 1"))
        db_status = "connected"
    except Exception as e:
        logger.error("Database health check failed", error=str(e))
        db_status = "disconnected"

    runner = getattr(request.app.state, "runner", None)
    report = runner.last_report if runner is not None else None
    pipeline = {
        "running": bool(runner and runner.running),
        "last_tick": report.finished_at.isoformat() if report and report.finished_at else None,
        "phases": [p.model_dump() for p in report.phases] if report else [],
    }

    healthy = db_status == "connected" and (report is None or report.succeeded)
    return {
        "status": "healthy" if healthy else "unhealthy",
        "database": db_status,
        "pipeline": pipeline,
        "service": SERVICE_NAME,
        "version": __version__
    }
