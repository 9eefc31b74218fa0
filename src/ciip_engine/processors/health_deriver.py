"""
Health deriver: turns unprocessed telemetry into MachineHealth records
"""

from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional, Tuple
from uuid import UUID

import structlog

from ciip_engine.analytics import health_metrics
from ciip_engine.core.exceptions import MalformedReadingError
from ciip_engine.models.health import MachineHealth
from ciip_engine.models.telemetry import TelemetryIngestion
from ciip_engine.stores.health_store import HealthStore
from ciip_engine.stores.telemetry_store import TelemetryStore

logger = structlog.get_logger(__name__)


class HealthDeriver:
    """Derives vibration RMS, load, health score and runtime per reading"""

    phase = "health_deriver"

    def __init__(self, telemetry: TelemetryStore, health: HealthStore, batch_size: int = 300):
        self.telemetry = telemetry
        self.health = health
        self.batch_size = batch_size

    def run(self) -> int:
        """Process one batch; returns the number of health records written"""
        watermarks = self.health.watermarks()
        readings = self.telemetry.fetch_unprocessed(watermarks, self.batch_size)
        if not readings:
            return 0

        # Normalization maxima over full history, once per machine per tick
        maxima: Dict[UUID, Tuple[Optional[float], Optional[float]]] = {}
        # Per-machine (runtime_hours, recorded_at) of the last derived record
        cursors: Dict[UUID, Optional[Tuple[Decimal, datetime]]] = {}
        seen = set()
        records: List[MachineHealth] = []
        # Every fetched row counts as consumed, including skipped ones
        progress: Dict[UUID, datetime] = {}

        for reading in readings:
            progress[reading.machine_id] = reading.recorded_at
            key = (reading.machine_id, reading.recorded_at)
            if key in seen or self.health.exists(*key):
                continue
            seen.add(key)

            if reading.machine_id not in maxima:
                maxima[reading.machine_id] = self._maxima(reading.machine_id)
            if reading.machine_id not in cursors:
                cursors[reading.machine_id] = self.health.latest_runtime_and_timestamp(reading.machine_id)

            try:
                record = self.derive(reading, maxima[reading.machine_id], cursors[reading.machine_id])
            except MalformedReadingError as e:
                logger.warning(
                    "Skipping malformed telemetry row",
                    ingestion_id=reading.ingestion_id,
                    machine_id=str(reading.machine_id),
                    recorded_at=reading.recorded_at.isoformat(),
                    error=str(e),
                )
                continue

            cursors[reading.machine_id] = (record.runtime_hours, record.recorded_at)
            records.append(record)

        written = self.health.append_batch(records)
        self.health.advance_watermarks(progress)
        logger.info(
            "Health records derived",
            fetched=len(readings),
            derived=len(records),
            skipped=len(readings) - len(records),
            written=written,
            machines=len(cursors),
        )
        return written

    def _maxima(self, machine_id: UUID) -> Tuple[Optional[float], Optional[float]]:
        try:
            return (
                health_metrics.to_float(self.health.max_current(machine_id)),
                health_metrics.to_float(self.health.max_rpm(machine_id)),
            )
        except MalformedReadingError as e:
            logger.warning("Unusable history maxima, load ratio disabled", machine_id=str(machine_id), error=str(e))
            return None, None

    @staticmethod
    def derive(
        reading: TelemetryIngestion,
        maxima: Tuple[Optional[float], Optional[float]],
        previous: Optional[Tuple[Decimal, datetime]],
    ) -> MachineHealth:
        max_current, max_rpm = maxima
        mechanical = reading.mechanical
        electrical = reading.electrical

        vib_rms = health_metrics.vibration_rms(mechanical)
        avg_load = health_metrics.average_load(electrical, mechanical, max_current, max_rpm)
        rpm = health_metrics.to_float(mechanical.rpm) if mechanical is not None else None

        previous_runtime, previous_at = previous if previous else (None, None)
        runtime = health_metrics.accumulate_runtime(previous_runtime, previous_at, reading.recorded_at, rpm)

        return MachineHealth(
            machine_id=reading.machine_id,
            recorded_at=reading.recorded_at,
            health_score=health_metrics.health_score(vib_rms, avg_load),
            avg_load=health_metrics.quantize_load(avg_load),
            runtime_hours=runtime,
        )
