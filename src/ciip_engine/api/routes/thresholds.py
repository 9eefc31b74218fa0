"""
Threshold administration endpoints
"""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
import structlog

from ciip_engine.core.exceptions import PipelineError
from ciip_engine.database.connection import get_database
from ciip_engine.schemas.threshold import ThresholdInput, ThresholdResponse
from ciip_engine.services import threshold_service

logger = structlog.get_logger(__name__)
router = APIRouter()


@router.post("/thresholds", response_model=ThresholdResponse, status_code=201)
async def create_threshold(data: ThresholdInput, db: Session = Depends(get_database)):
    """Insert a new threshold rule version"""
    try:
        threshold = threshold_service.add_threshold(db, data)
        db.commit()
    except PipelineError as e:
        db.rollback()
        raise HTTPException(status_code=400, detail=str(e))

    db.refresh(threshold)
    return ThresholdResponse.model_validate(threshold)
