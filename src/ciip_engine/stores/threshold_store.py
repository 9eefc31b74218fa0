"""
Threshold store: candidate rules for resolution and rule administration
"""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from sqlalchemy import case, or_, select
from sqlalchemy.orm import Session

from ciip_engine.core.timeutils import to_naive_utc, utcnow
from ciip_engine.models.threshold import AlertThreshold

effective_at = case(
    (AlertThreshold.updated_at > AlertThreshold.created_at, AlertThreshold.updated_at),
    else_=AlertThreshold.created_at,
)


class ThresholdStore:
    def __init__(self, session: Session):
        self.session = session

    def fetch_candidates(self, tenant_id: Optional[UUID], effective_time: Optional[datetime] = None) -> List[AlertThreshold]:
        """Tenant and global rules, newest effective version first"""
        tenant_filter = AlertThreshold.tenant_id.is_(None)
        if tenant_id is not None:
            tenant_filter = or_(AlertThreshold.tenant_id == tenant_id, tenant_filter)

        stmt = select(AlertThreshold).where(tenant_filter)
        if effective_time is not None:
            stmt = stmt.where(effective_at <= effective_time)
        stmt = stmt.order_by(effective_at.desc(), AlertThreshold.threshold_id)
        return list(self.session.scalars(stmt).all())

    def has_global(self, parameter: str) -> bool:
        return self.session.scalar(
            select(AlertThreshold.threshold_id)
            .where(
                AlertThreshold.parameter == parameter,
                AlertThreshold.tenant_id.is_(None),
                AlertThreshold.machine_type.is_(None),
            )
            .limit(1)
        ) is not None

    def add(
        self,
        parameter: str,
        warning_value: Decimal,
        critical_value: Decimal,
        tenant_id: Optional[UUID] = None,
        machine_type: Optional[str] = None,
        created_at: Optional[datetime] = None,
    ) -> AlertThreshold:
        now = to_naive_utc(created_at) if created_at else utcnow()
        threshold = AlertThreshold(
            tenant_id=tenant_id,
            machine_type=machine_type,
            parameter=parameter,
            warning_value=warning_value,
            critical_value=critical_value,
            created_at=now,
            updated_at=now,
        )
        self.session.add(threshold)
        self.session.flush()
        return threshold
