"""
Status classifier: RUNNING/IDLE from the newest telemetry row per machine
"""

from typing import Dict
from uuid import UUID

import structlog

from ciip_engine.analytics.alert_rules import classify_status
from ciip_engine.analytics.health_metrics import to_float
from ciip_engine.core.constants import RUNNING_RPM_THRESHOLD
from ciip_engine.core.exceptions import MalformedReadingError
from ciip_engine.stores.machine_store import MachineStore
from ciip_engine.stores.telemetry_store import TelemetryStore

logger = structlog.get_logger(__name__)


class StatusClassifier:
    """Last-value-wins operating status, no hysteresis"""

    phase = "status_classifier"

    def __init__(self, telemetry: TelemetryStore, machines: MachineStore, running_rpm_threshold: float = RUNNING_RPM_THRESHOLD):
        self.telemetry = telemetry
        self.machines = machines
        self.running_rpm_threshold = running_rpm_threshold

    def run(self) -> int:
        statuses: Dict[UUID, str] = {}
        for reading in self.telemetry.fetch_latest_per_machine():
            try:
                rpm = to_float(reading.mechanical.rpm) if reading.mechanical is not None else None
            except MalformedReadingError as e:
                logger.warning("Skipping status for malformed rpm", machine_id=str(reading.machine_id), error=str(e))
                continue
            statuses[reading.machine_id] = classify_status(rpm, self.running_rpm_threshold).value

        updated = self.machines.set_status(statuses)
        logger.info("Machine status classified", machines=len(statuses), updated=updated)
        return updated
