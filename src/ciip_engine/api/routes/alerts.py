"""
Alert acknowledgement and summary endpoints
"""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
import structlog

from ciip_engine.core.exceptions import AcknowledgementError, AlertNotFoundError
from ciip_engine.database.connection import get_database
from ciip_engine.schemas.alert import AcknowledgementRequest, AcknowledgementResponse, AlertSummary
from ciip_engine.services import acknowledgement_service

logger = structlog.get_logger(__name__)
router = APIRouter()


@router.post("/alerts/acknowledgements", response_model=AcknowledgementResponse, status_code=201)
async def acknowledge_alert(request: AcknowledgementRequest, db: Session = Depends(get_database)):
    """Record a technician acknowledgement; the alert status follows on the next tick"""
    try:
        ack = acknowledgement_service.acknowledge(db, request)
        db.commit()
    except AlertNotFoundError as e:
        db.rollback()
        raise HTTPException(status_code=404, detail=str(e))
    except AcknowledgementError as e:
        db.rollback()
        raise HTTPException(status_code=409, detail=str(e))

    db.refresh(ack)
    return AcknowledgementResponse.model_validate(ack)


@router.get("/tenants/{tenant_id}/alerts/summary", response_model=AlertSummary)
async def get_alert_summary(tenant_id: UUID, db: Session = Depends(get_database)):
    """Critical, warning and acknowledged alert counts for a tenant"""
    return acknowledgement_service.alert_summary(db, tenant_id)
