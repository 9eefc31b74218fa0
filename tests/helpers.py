"""
Shared fixtures: an in-memory database and factories for plants, machines,
telemetry and thresholds
"""

import os
import sys
import uuid
from datetime import datetime
from decimal import Decimal

# Add project root and src/ to path
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
sys.path.insert(0, ROOT)
sys.path.insert(0, os.path.join(ROOT, 'src'))

# Keep imports of the package away from a real server
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("PIPELINE_ENABLED", "false")

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from ciip_engine.database.connection import init_database
from ciip_engine.models import (
    AlertThreshold,
    Machine,
    Plant,
    TelemetryElectrical,
    TelemetryEnvironmental,
    TelemetryIngestion,
    TelemetryMechanical,
)

T0 = datetime(2026, 1, 5, 8, 0, 0)
# Thresholds are created before any telemetry in the tests
RULES_CREATED_AT = datetime(2025, 1, 1)


def create_test_engine():
    """Fresh in-memory SQLite database shared across threads"""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_database(bind=engine)
    return engine


def make_session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def add_plant(session, tenant_id=None, plant_code="PLANT_1"):
    plant = Plant(tenant_id=tenant_id or uuid.uuid4(), plant_code=plant_code, plant_name="Test Plant")
    session.add(plant)
    session.flush()
    return plant


def add_machine(session, plant, machine_type="Pump", machine_code="M_1"):
    machine = Machine(plant_id=plant.plant_id, machine_type=machine_type, machine_code=machine_code)
    session.add(machine)
    session.flush()
    return machine


def add_reading(
    session,
    machine,
    recorded_at,
    vibration=(0, 0, 0),
    rpm=1000,
    currents=(30, 30, 30),
    power_factor=Decimal("0.9"),
    temperature=40,
    mechanical=True,
    electrical=True,
    environmental=True,
):
    """One telemetry ingestion with the requested sub-readings"""
    ingestion = TelemetryIngestion(machine_id=machine.machine_id, recorded_at=recorded_at, status="OK")
    if mechanical:
        vx, vy, vz = vibration
        ingestion.mechanical = TelemetryMechanical(vibration_x=vx, vibration_y=vy, vibration_z=vz, rpm=rpm)
    if electrical:
        r, y, b = currents
        ingestion.electrical = TelemetryElectrical(
            r_current=r, y_current=y, b_current=b,
            r_voltage=415, y_voltage=415, b_voltage=415,
            frequency=50, power_factor=power_factor,
        )
    if environmental:
        ingestion.environmental = TelemetryEnvironmental(temperature=temperature)
    session.add(ingestion)
    session.flush()
    return ingestion


def add_threshold(session, parameter, warning, critical, tenant_id=None, machine_type=None, created_at=RULES_CREATED_AT):
    threshold = AlertThreshold(
        tenant_id=tenant_id,
        machine_type=machine_type,
        parameter=parameter,
        warning_value=Decimal(str(warning)),
        critical_value=Decimal(str(critical)),
        created_at=created_at,
        updated_at=created_at,
    )
    session.add(threshold)
    session.flush()
    return threshold
