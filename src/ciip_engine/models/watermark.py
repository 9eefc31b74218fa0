"""
Store-backed processing cursor per pipeline phase
"""

from sqlalchemy import BigInteger, Column, DateTime, ForeignKey, String, Uuid
from ciip_engine.core.timeutils import utcnow
from ciip_engine.database.connection import Base


class ProcessingWatermark(Base):
    """Last telemetry row (recorded_at, ingestion_id) a phase has processed"""

    __tablename__ = "processing_watermark"

    phase = Column(String(100), primary_key=True)
    last_recorded_at = Column(DateTime, nullable=False)
    last_ingestion_id = Column(BigInteger, nullable=False)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    def __repr__(self):
        return f"<ProcessingWatermark(phase={self.phase}, recorded_at={self.last_recorded_at}, id={self.last_ingestion_id})>"


class HealthWatermark(Base):
    """Newest recorded_at per machine the health deriver has consumed, derived or skipped"""

    __tablename__ = "health_watermark"

    machine_id = Column(Uuid, ForeignKey("machine.machine_id"), primary_key=True)
    last_recorded_at = Column(DateTime, nullable=False)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    def __repr__(self):
        return f"<HealthWatermark(machine={self.machine_id}, recorded_at={self.last_recorded_at})>"
