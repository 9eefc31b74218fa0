"""
Telemetry source: read-only access to raw ingestion rows
"""

from datetime import datetime
from typing import Dict, List, Optional, Tuple
from uuid import UUID

from sqlalchemy import and_, func, not_, or_, select
from sqlalchemy.orm import Session, selectinload

from ciip_engine.models.telemetry import TelemetryIngestion

# (recorded_at, ingestion_id)
Cursor = Tuple[datetime, int]


def _with_readings(stmt):
    return stmt.options(
        selectinload(TelemetryIngestion.mechanical),
        selectinload(TelemetryIngestion.electrical),
        selectinload(TelemetryIngestion.environmental),
        selectinload(TelemetryIngestion.energy),
    )


class TelemetryStore:
    def __init__(self, session: Session):
        self.session = session

    def fetch_unprocessed(self, watermarks: Dict[UUID, datetime], limit: int) -> List[TelemetryIngestion]:
        """Rows newer than each machine's watermark, oldest first.

        Machines absent from ``watermarks`` contribute their whole history.
        """
        conditions = [
            and_(TelemetryIngestion.machine_id == machine_id, TelemetryIngestion.recorded_at > since)
            for machine_id, since in watermarks.items()
        ]
        if watermarks:
            conditions.append(not_(TelemetryIngestion.machine_id.in_(list(watermarks))))

        stmt = select(TelemetryIngestion)
        if conditions:
            stmt = stmt.where(or_(*conditions))
        stmt = stmt.order_by(TelemetryIngestion.recorded_at, TelemetryIngestion.ingestion_id).limit(limit)
        return list(self.session.scalars(_with_readings(stmt)).all())

    def fetch_after(self, cursor: Optional[Cursor], limit: int) -> List[TelemetryIngestion]:
        """Rows strictly after a (recorded_at, ingestion_id) cursor, oldest first"""
        stmt = select(TelemetryIngestion)
        if cursor is not None:
            recorded_at, ingestion_id = cursor
            stmt = stmt.where(
                or_(
                    TelemetryIngestion.recorded_at > recorded_at,
                    and_(
                        TelemetryIngestion.recorded_at == recorded_at,
                        TelemetryIngestion.ingestion_id > ingestion_id,
                    ),
                )
            )
        stmt = stmt.order_by(TelemetryIngestion.recorded_at, TelemetryIngestion.ingestion_id).limit(limit)
        return list(self.session.scalars(_with_readings(stmt)).all())

    def fetch_latest_per_machine(self) -> List[TelemetryIngestion]:
        """The single newest row per machine; ties go to the highest ingestion_id"""
        ranked = (
            select(
                TelemetryIngestion.ingestion_id,
                func.row_number()
                .over(
                    partition_by=TelemetryIngestion.machine_id,
                    order_by=(TelemetryIngestion.recorded_at.desc(), TelemetryIngestion.ingestion_id.desc()),
                )
                .label("rank"),
            )
            .subquery()
        )
        latest_ids = select(ranked.c.ingestion_id).where(ranked.c.rank == 1)
        stmt = select(TelemetryIngestion).where(TelemetryIngestion.ingestion_id.in_(latest_ids))
        return list(self.session.scalars(_with_readings(stmt)).all())
