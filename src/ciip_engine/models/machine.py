"""
Machine model
"""

from enum import Enum

from sqlalchemy import Column, String, DateTime, ForeignKey, Uuid
from sqlalchemy.orm import relationship
from ciip_engine.core.timeutils import utcnow
from ciip_engine.database.connection import Base
import uuid


class MachineStatus(str, Enum):
    RUNNING = "RUNNING"
    IDLE = "IDLE"


class Machine(Base):
    """Plant-floor machine; status is overwritten by the status classifier"""

    __tablename__ = "machine"

    machine_id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    plant_id = Column(Uuid, ForeignKey("plant.plant_id"), nullable=False, index=True)
    machine_code = Column(String(50))
    machine_name = Column(String(255))
    machine_type = Column(String(100))
    status = Column(String(20))  # RUNNING, IDLE
    created_at = Column(DateTime, default=utcnow)

    plant = relationship("Plant", back_populates="machines")

    def __repr__(self):
        return f"<Machine(id={self.machine_id}, type={self.machine_type}, status={self.status})>"
