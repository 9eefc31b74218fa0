"""
Alert Pydantic schemas
"""

from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime
from uuid import UUID


class AcknowledgementRequest(BaseModel):
    """Schema for a technician acknowledging an alert"""
    alert_id: UUID
    technician_name: str = Field(..., min_length=1, description="Technician acknowledging the alert")
    reason: str = Field(..., min_length=1, description="Why the alert fired")
    action_taken: Optional[str] = Field(None, description="Corrective action performed")


class AcknowledgementResponse(BaseModel):
    acknowledgement_id: UUID
    alert_id: UUID
    technician_name: str
    reason: str
    action_taken: Optional[str]
    acknowledged_at: datetime

    class Config:
        from_attributes = True


class AlertSummary(BaseModel):
    """Per-tenant alert counts"""
    critical: int = 0
    warning: int = 0
    acknowledged: int = 0
