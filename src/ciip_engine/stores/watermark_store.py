"""
Watermark store: per-phase processing cursor kept in the database
"""

from datetime import datetime
from typing import Optional, Tuple

from sqlalchemy.orm import Session

from ciip_engine.core.timeutils import utcnow
from ciip_engine.models.watermark import ProcessingWatermark


class WatermarkStore:
    def __init__(self, session: Session):
        self.session = session

    def get(self, phase: str) -> Optional[Tuple[datetime, int]]:
        mark = self.session.get(ProcessingWatermark, phase)
        if mark is None:
            return None
        return mark.last_recorded_at, mark.last_ingestion_id

    def advance(self, phase: str, recorded_at: datetime, ingestion_id: int) -> None:
        mark = self.session.get(ProcessingWatermark, phase)
        if mark is None:
            self.session.add(
                ProcessingWatermark(
                    phase=phase,
                    last_recorded_at=recorded_at,
                    last_ingestion_id=ingestion_id,
                    updated_at=utcnow(),
                )
            )
            return
        if (recorded_at, ingestion_id) > (mark.last_recorded_at, mark.last_ingestion_id):
            mark.last_recorded_at = recorded_at
            mark.last_ingestion_id = ingestion_id
