"""
Health store: derived MachineHealth rows and the history aggregates they need
"""

from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional, Tuple
from uuid import UUID

import structlog
from sqlalchemy import func, insert, select
from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.orm import Session

from ciip_engine.core.timeutils import utcnow
from ciip_engine.models.health import MachineHealth
from ciip_engine.models.telemetry import TelemetryElectrical, TelemetryIngestion, TelemetryMechanical
from ciip_engine.models.watermark import HealthWatermark

logger = structlog.get_logger(__name__)

_UPSERT_DIALECTS = {
    "postgresql": postgresql_insert,
    "sqlite": sqlite_insert,
}


class HealthStore:
    def __init__(self, session: Session):
        self.session = session

    def watermarks(self) -> Dict[UUID, datetime]:
        """Newest recorded_at per machine already consumed by the health deriver.

        Covers rows skipped as malformed; falls back to the derived records
        for machines processed before progress markers existed.
        """
        marks = dict(
            self.session.execute(
                select(MachineHealth.machine_id, func.max(MachineHealth.recorded_at)).group_by(MachineHealth.machine_id)
            ).all()
        )
        for machine_id, recorded_at in self.session.execute(
            select(HealthWatermark.machine_id, HealthWatermark.last_recorded_at)
        ).all():
            if machine_id not in marks or recorded_at > marks[machine_id]:
                marks[machine_id] = recorded_at
        return marks

    def advance_watermarks(self, progress: Dict[UUID, datetime]) -> None:
        """Move per-machine progress forward, never back"""
        for machine_id, recorded_at in progress.items():
            mark = self.session.get(HealthWatermark, machine_id)
            if mark is None:
                self.session.add(HealthWatermark(machine_id=machine_id, last_recorded_at=recorded_at, updated_at=utcnow()))
            elif recorded_at > mark.last_recorded_at:
                mark.last_recorded_at = recorded_at

    def exists(self, machine_id: UUID, recorded_at: datetime) -> bool:
        return self.find(machine_id, recorded_at) is not None

    def find(self, machine_id: UUID, recorded_at: datetime) -> Optional[MachineHealth]:
        return self.session.get(MachineHealth, (machine_id, recorded_at))

    def append_batch(self, records: List[MachineHealth]) -> int:
        """Insert records in one statement; keys that already exist are left untouched"""
        if not records:
            return 0

        rows = [
            {
                "machine_id": r.machine_id,
                "recorded_at": r.recorded_at,
                "health_score": r.health_score,
                "avg_load": r.avg_load,
                "runtime_hours": r.runtime_hours,
            }
            for r in records
        ]

        dialect = self.session.get_bind().dialect.name
        make_insert = _UPSERT_DIALECTS.get(dialect)
        if make_insert is None:
            self.session.execute(insert(MachineHealth), rows)
            return len(rows)

        stmt = make_insert(MachineHealth).values(rows).on_conflict_do_nothing(
            index_elements=["machine_id", "recorded_at"]
        )
        result = self.session.execute(stmt)
        inserted = result.rowcount if result.rowcount is not None and result.rowcount >= 0 else len(rows)
        if inserted < len(rows):
            logger.info("Health records already present, skipped", skipped=len(rows) - inserted)
        return inserted

    def latest_runtime_and_timestamp(self, machine_id: UUID) -> Optional[Tuple[Decimal, datetime]]:
        row = self.session.execute(
            select(MachineHealth.runtime_hours, MachineHealth.recorded_at)
            .where(MachineHealth.machine_id == machine_id)
            .order_by(MachineHealth.recorded_at.desc())
            .limit(1)
        ).first()
        if row is None:
            return None
        return Decimal(row.runtime_hours), row.recorded_at

    def max_current(self, machine_id: UUID) -> Optional[Decimal]:
        """Highest phase current ever recorded for the machine"""
        row = self.session.execute(
            select(
                func.max(TelemetryElectrical.r_current),
                func.max(TelemetryElectrical.y_current),
                func.max(TelemetryElectrical.b_current),
            )
            .join(TelemetryIngestion, TelemetryIngestion.ingestion_id == TelemetryElectrical.ingestion_id)
            .where(TelemetryIngestion.machine_id == machine_id)
        ).first()
        present = [v for v in (row or ()) if v is not None]
        return max(present) if present else None

    def max_rpm(self, machine_id: UUID) -> Optional[Decimal]:
        return self.session.scalar(
            select(func.max(TelemetryMechanical.rpm))
            .join(TelemetryIngestion, TelemetryIngestion.ingestion_id == TelemetryMechanical.ingestion_id)
            .where(TelemetryIngestion.machine_id == machine_id)
        )
