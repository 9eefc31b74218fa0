"""
Alert events and their human acknowledgements
"""

from enum import Enum

from sqlalchemy import Column, String, DateTime, Numeric, ForeignKey, Uuid, Index, Text, text
from sqlalchemy.orm import relationship
from ciip_engine.core.timeutils import utcnow
from ciip_engine.database.connection import Base
import uuid


class AlertSeverity(str, Enum):
    WARNING = "WARNING"
    CRITICAL = "CRITICAL"


class AlertStatus(str, Enum):
    ACTIVE = "ACTIVE"
    PENDING = "PENDING"
    ACKNOWLEDGED = "ACKNOWLEDGED"


class AlertEvent(Base):
    """One triggered condition instance for a (machine, parameter)"""

    __tablename__ = "alert_event"
    __table_args__ = (
        # At most one open alert per machine and parameter
        Index(
            "uq_alert_event_active",
            "machine_id",
            "parameter",
            unique=True,
            postgresql_where=text("alert_status = 'ACTIVE'"),
            sqlite_where=text("alert_status = 'ACTIVE'"),
        ),
    )

    alert_id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    machine_id = Column(Uuid, ForeignKey("machine.machine_id"), nullable=False, index=True)
    parameter = Column(String(50), nullable=False)
    severity = Column(String(20), nullable=False)  # WARNING, CRITICAL
    actual_value = Column(Numeric)
    generated_at = Column(DateTime, nullable=False, index=True)
    alert_status = Column(String(20), nullable=False, default=AlertStatus.ACTIVE.value)
    threshold_id = Column(Uuid, ForeignKey("alert_threshold.threshold_id"), nullable=True)

    acknowledgement = relationship("AlertAcknowledgement", uselist=False, back_populates="alert")

    def __repr__(self):
        return f"<AlertEvent(id={self.alert_id}, machine={self.machine_id}, param={self.parameter}, severity={self.severity}, status={self.alert_status})>"


class AlertAcknowledgement(Base):
    """Technician acknowledgement, at most one per alert"""

    __tablename__ = "alert_acknowledgement"

    acknowledgement_id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    alert_id = Column(Uuid, ForeignKey("alert_event.alert_id", ondelete="CASCADE"), nullable=False, unique=True)
    technician_name = Column(String(255), nullable=False)
    reason = Column(Text, nullable=False)
    action_taken = Column(Text)
    acknowledged_at = Column(DateTime, nullable=False, default=utcnow)

    alert = relationship("AlertEvent", back_populates="acknowledgement")

    def __repr__(self):
        return f"<AlertAcknowledgement(alert={self.alert_id}, technician={self.technician_name})>"
