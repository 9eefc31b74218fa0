"""
Raw telemetry ingestion rows and their optional sub-readings
"""

from sqlalchemy import BigInteger, Column, DateTime, ForeignKey, Integer, Numeric, String, Uuid
from sqlalchemy.orm import relationship
from ciip_engine.database.connection import Base

# SQLite only autoincrements INTEGER PRIMARY KEY
IngestionId = BigInteger().with_variant(Integer, "sqlite")


class TelemetryIngestion(Base):
    """One ingestion event for a machine at a timestamp"""

    __tablename__ = "telemetry_ingestion"

    ingestion_id = Column(IngestionId, primary_key=True, autoincrement=True)
    machine_id = Column(Uuid, ForeignKey("machine.machine_id"), nullable=False, index=True)
    recorded_at = Column(DateTime, nullable=False, index=True)
    status = Column(String(50))

    mechanical = relationship("TelemetryMechanical", uselist=False, back_populates="ingestion")
    electrical = relationship("TelemetryElectrical", uselist=False, back_populates="ingestion")
    environmental = relationship("TelemetryEnvironmental", uselist=False, back_populates="ingestion")
    energy = relationship("TelemetryEnergy", uselist=False, back_populates="ingestion")

    def __repr__(self):
        return f"<TelemetryIngestion(id={self.ingestion_id}, machine={self.machine_id}, recorded_at={self.recorded_at})>"


class TelemetryMechanical(Base):
    __tablename__ = "telemetry_mechanical"

    ingestion_id = Column(IngestionId, ForeignKey("telemetry_ingestion.ingestion_id", ondelete="CASCADE"), primary_key=True)
    vibration_x = Column(Numeric(12, 4))
    vibration_y = Column(Numeric(12, 4))
    vibration_z = Column(Numeric(12, 4))
    rpm = Column(Numeric(12, 2))

    ingestion = relationship("TelemetryIngestion", back_populates="mechanical")


class TelemetryElectrical(Base):
    __tablename__ = "telemetry_electrical"

    ingestion_id = Column(IngestionId, ForeignKey("telemetry_ingestion.ingestion_id", ondelete="CASCADE"), primary_key=True)
    r_voltage = Column(Numeric(12, 4))
    y_voltage = Column(Numeric(12, 4))
    b_voltage = Column(Numeric(12, 4))
    r_current = Column(Numeric(12, 4))
    y_current = Column(Numeric(12, 4))
    b_current = Column(Numeric(12, 4))
    frequency = Column(Numeric(8, 3))
    power_factor = Column(Numeric(6, 4))

    ingestion = relationship("TelemetryIngestion", back_populates="electrical")

    @property
    def phase_currents(self):
        return [self.r_current, self.y_current, self.b_current]


class TelemetryEnvironmental(Base):
    __tablename__ = "telemetry_environmental"

    ingestion_id = Column(IngestionId, ForeignKey("telemetry_ingestion.ingestion_id", ondelete="CASCADE"), primary_key=True)
    temperature = Column(Numeric(8, 3))
    humidity = Column(Numeric(8, 3))
    pressure = Column(Numeric(10, 3))
    flowrate = Column(Numeric(10, 3))

    ingestion = relationship("TelemetryIngestion", back_populates="environmental")


class TelemetryEnergy(Base):
    __tablename__ = "telemetry_energy"

    ingestion_id = Column(IngestionId, ForeignKey("telemetry_ingestion.ingestion_id", ondelete="CASCADE"), primary_key=True)
    energy_import_kwh = Column(Numeric(15, 4))
    energy_export_kwh = Column(Numeric(15, 4))
    energy_import_kvah = Column(Numeric(15, 4))
    energy_export_kvah = Column(Numeric(15, 4))

    ingestion = relationship("TelemetryIngestion", back_populates="energy")
