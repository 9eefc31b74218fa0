"""
Plant model: the tenant boundary for machines
"""

from sqlalchemy import Column, String, DateTime, Uuid
from sqlalchemy.orm import relationship
from ciip_engine.core.timeutils import utcnow
from ciip_engine.database.connection import Base
import uuid


class Plant(Base):
    """A plant owned by a tenant"""

    __tablename__ = "plant"

    plant_id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    tenant_id = Column(Uuid, nullable=False, index=True)
    plant_code = Column(String(50))
    plant_name = Column(String(255))
    created_at = Column(DateTime, default=utcnow)

    machines = relationship("Machine", back_populates="plant")

    def __repr__(self):
        return f"<Plant(id={self.plant_id}, tenant={self.tenant_id}, name={self.plant_name})>"
