"""
Alert threshold rules, bound globally, per tenant or per tenant and machine type
"""

from sqlalchemy import Column, String, DateTime, Numeric, Uuid, Index
from ciip_engine.core.timeutils import utcnow
from ciip_engine.database.connection import Base
import uuid


class AlertThreshold(Base):
    """One version of a warning/critical rule for a parameter"""

    __tablename__ = "alert_threshold"
    __table_args__ = (
        Index("ix_alert_threshold_scope", "tenant_id", "machine_type", "parameter"),
    )

    threshold_id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    tenant_id = Column(Uuid, nullable=True)  # NULL = global
    machine_type = Column(String(100), nullable=True)  # NULL = all machine types
    parameter = Column(String(50), nullable=False)
    warning_value = Column(Numeric(15, 4), nullable=False)
    critical_value = Column(Numeric(15, 4), nullable=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow)

    @property
    def effective_at(self):
        """The moment this version of the rule took effect"""
        return max(self.created_at, self.updated_at)

    def __repr__(self):
        return f"<AlertThreshold(param={self.parameter}, tenant={self.tenant_id}, type={self.machine_type}, warn={self.warning_value}, crit={self.critical_value})>"
