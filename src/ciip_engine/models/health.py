"""
Derived machine health records
"""

from sqlalchemy import Column, DateTime, ForeignKey, Integer, Numeric, Uuid
from ciip_engine.database.connection import Base


class MachineHealth(Base):
    """Append-only derived fact, one per (machine_id, recorded_at)"""

    __tablename__ = "machine_health"

    machine_id = Column(Uuid, ForeignKey("machine.machine_id"), primary_key=True)
    recorded_at = Column(DateTime, primary_key=True)
    health_score = Column(Integer, nullable=False)
    avg_load = Column(Numeric(7, 2), nullable=False)
    runtime_hours = Column(Numeric(18, 9), nullable=False)

    def __repr__(self):
        return f"<MachineHealth(machine={self.machine_id}, recorded_at={self.recorded_at}, score={self.health_score})>"
