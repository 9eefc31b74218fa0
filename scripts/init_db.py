#!/usr/bin/env python3
"""
Initialize the database: tables, global default thresholds and an optional demo plant
"""

import argparse
import sys
import os
import uuid

# Add src to path
sys.path.append(os.path.join(os.path.dirname(__file__), '..', 'src'))

from ciip_engine.core.logging import configure_logging
from ciip_engine.database.connection import init_database, engine
from ciip_engine.models import Machine, Plant
from ciip_engine.services.threshold_service import seed_global_thresholds
from sqlalchemy import select
from sqlalchemy.orm import sessionmaker

DEMO_TENANT_ID = uuid.UUID("00000000-0000-0000-0000-000000000001")


def create_demo_plant(session):
    """Create a demo plant with a few machines if it does not exist"""
    existing = session.scalars(select(Plant).where(Plant.plant_code == "DEMO_PLANT")).first()
    if existing:
        return existing

    plant = Plant(tenant_id=DEMO_TENANT_ID, plant_code="DEMO_PLANT", plant_name="Demo Plant")
    session.add(plant)

    sample_machines = [
        {"machine_code": "PUMP_001", "machine_name": "Cooling Water Pump 1", "machine_type": "Pump"},
        {"machine_code": "PUMP_002", "machine_name": "Cooling Water Pump 2", "machine_type": "Pump"},
        {"machine_code": "MOTOR_001", "machine_name": "Conveyor Drive Motor", "machine_type": "Motor"},
        {"machine_code": "COMP_001", "machine_name": "Air Compressor", "machine_type": "Compressor"},
    ]
    for machine_data in sample_machines:
        plant.machines.append(Machine(**machine_data))
    return plant


def initialize(with_demo_data=False):
    init_database()

    Session = sessionmaker(bind=engine)
    session = Session()

    try:
        created = seed_global_thresholds(session)
        print(f"✅ Global thresholds seeded ({len(created)} new)")

        if with_demo_data:
            create_demo_plant(session)
            print("✅ Demo plant and machines created")

        session.commit()
        print("\n🎉 Database initialization complete!")

    except Exception as e:
        print(f"❌ Error initializing database: {e}")
        session.rollback()
        raise
    finally:
        session.close()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--demo", action="store_true", help="also create a demo plant with machines")
    args = parser.parse_args()

    configure_logging()
    initialize(with_demo_data=args.demo)
