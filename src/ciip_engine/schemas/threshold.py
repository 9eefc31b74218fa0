"""
Threshold Pydantic schemas
"""

from pydantic import BaseModel, Field
from typing import Dict, Optional
from datetime import datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID


class BindingLevel(str, Enum):
    MACHINE_TYPE = "MACHINE_TYPE"
    TENANT = "TENANT"
    GLOBAL = "GLOBAL"


class ResolvedThreshold(BaseModel):
    """Effective warning/critical limits for one parameter"""
    parameter: str
    warning_value: Decimal
    critical_value: Decimal
    threshold_id: Optional[UUID] = None
    binding_level: BindingLevel
    effective_at: Optional[datetime] = None

    class Config:
        frozen = True


class ThresholdConfig(BaseModel):
    """Batch-resolved thresholds for a tenant and machine type"""
    tenant_id: Optional[UUID] = None
    machine_type: Optional[str] = None
    effective_time: Optional[datetime] = None
    thresholds: Dict[str, ResolvedThreshold] = Field(default_factory=dict)

    def get(self, parameter: str) -> Optional[ResolvedThreshold]:
        return self.thresholds.get(parameter)

    def __contains__(self, parameter: str) -> bool:
        return parameter in self.thresholds


class ThresholdInput(BaseModel):
    """Schema for inserting a new threshold rule version"""
    tenant_id: Optional[UUID] = Field(None, description="Owning tenant; omit for a global default")
    machine_type: Optional[str] = Field(None, description="Machine type; omit for a tenant-wide default")
    parameter: str = Field(..., description="Monitored parameter name")
    warning_value: Decimal = Field(..., description="Warning limit")
    critical_value: Decimal = Field(..., description="Critical limit")


class ThresholdResponse(ThresholdInput):
    """Schema for threshold response"""
    threshold_id: UUID
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
