"""
Alert evaluator: drives each (machine, parameter) alert through its lifecycle.

    NONE --condition--> ACTIVE --cleared--> PENDING
                          |                    |
                          +--acknowledgement---+--> ACKNOWLEDGED (terminal)

A PENDING alert is history; if the condition returns a new ACTIVE alert is
opened. Acknowledgements are recorded by technicians outside the pipeline and
reconciled here on every tick.
"""

import math
from collections import Counter
from decimal import Decimal
from typing import Dict, List, Optional, Tuple
from uuid import UUID

import structlog

from ciip_engine.analytics import alert_rules, health_metrics
from ciip_engine.core.constants import RUNNING_RPM_THRESHOLD, Parameter
from ciip_engine.core.exceptions import MalformedReadingError
from ciip_engine.models.alert import AlertEvent, AlertSeverity, AlertStatus
from ciip_engine.models.telemetry import TelemetryIngestion
from ciip_engine.processors.threshold_resolver import ThresholdResolver
from ciip_engine.stores.alert_store import AlertStore
from ciip_engine.stores.health_store import HealthStore
from ciip_engine.stores.machine_store import MachineContext, MachineStore
from ciip_engine.stores.telemetry_store import TelemetryStore
from ciip_engine.stores.watermark_store import WatermarkStore

logger = structlog.get_logger(__name__)


class AlertEvaluator:
    """Evaluates telemetry samples against resolved thresholds"""

    phase = "alert_evaluator"

    def __init__(
        self,
        telemetry: TelemetryStore,
        health: HealthStore,
        machines: MachineStore,
        alerts: AlertStore,
        watermarks: WatermarkStore,
        resolver: ThresholdResolver,
        batch_size: int = 300,
        running_rpm_threshold: float = RUNNING_RPM_THRESHOLD,
        escalate_active_alerts: bool = False,
    ):
        self.telemetry = telemetry
        self.health = health
        self.machines = machines
        self.alerts = alerts
        self.watermarks = watermarks
        self.resolver = resolver
        self.batch_size = batch_size
        self.running_rpm_threshold = running_rpm_threshold
        self.escalate_active_alerts = escalate_active_alerts

    def run(self) -> int:
        """Evaluate one batch and reconcile acknowledgements; returns the number of transitions"""
        fetched = self.telemetry.fetch_after(self.watermarks.get(self.phase), self.batch_size)
        samples = self._derived_prefix(fetched)
        contexts = self.machines.contexts(s.machine_id for s in samples)

        # Open alert per (machine, parameter), valid for this tick only
        open_alerts: Dict[Tuple[UUID, str], Optional[AlertEvent]] = {}
        stats = Counter()

        for sample in samples:
            context = contexts.get(sample.machine_id)
            if context is None:
                logger.debug("Skipping telemetry for unknown machine", machine_id=str(sample.machine_id))
                continue
            for evaluation in self.evaluate_sample(sample, context):
                self._apply(sample, evaluation, open_alerts, stats)

        if samples:
            last = samples[-1]
            self.watermarks.advance(self.phase, last.recorded_at, last.ingestion_id)

        stats["acknowledged"] += self.reconcile()

        logger.info("Alerts evaluated", samples=len(samples), deferred=len(fetched) - len(samples), **stats)
        return sum(stats.values())

    def _derived_prefix(self, fetched: List[TelemetryIngestion]) -> List[TelemetryIngestion]:
        """Samples up to the first one the health deriver has not consumed yet.

        The cursor stops there so the load rules see the health record on a
        later tick instead of skipping it for good.
        """
        coverage = self.health.watermarks()
        for index, sample in enumerate(fetched):
            mark = coverage.get(sample.machine_id)
            if mark is None or sample.recorded_at > mark:
                logger.debug(
                    "Waiting for health derivation",
                    machine_id=str(sample.machine_id),
                    recorded_at=sample.recorded_at.isoformat(),
                )
                return fetched[:index]
        return fetched

    def evaluate_sample(self, sample: TelemetryIngestion, context: MachineContext) -> List[alert_rules.Evaluation]:
        config = self.resolver.resolve_all(context.tenant_id, context.machine_type, sample.recorded_at)
        mechanical = sample.mechanical
        electrical = sample.electrical
        environmental = sample.environmental

        values: Dict[str, Optional[float]] = {}
        rpm = None
        rpm_unusable = False
        if mechanical is not None and mechanical.rpm is not None:
            rpm = self._read(sample, "rpm", lambda: health_metrics.to_float(mechanical.rpm))
            rpm_unusable = rpm is None

        if mechanical is not None:
            values[Parameter.VIBRATION.value] = self._read(sample, Parameter.VIBRATION.value, lambda: health_metrics.vibration_rms(mechanical))
            values[Parameter.RPM_LOW.value] = rpm
            values[Parameter.RPM_HIGH.value] = rpm
        if electrical is not None:
            values[Parameter.CURRENT.value] = self._read(sample, Parameter.CURRENT.value, lambda: health_metrics.max_phase_current(electrical))
        if environmental is not None:
            values[Parameter.TEMPERATURE.value] = self._read(sample, Parameter.TEMPERATURE.value, lambda: health_metrics.to_float(environmental.temperature))
        if mechanical is not None and electrical is not None:
            record = self.health.find(sample.machine_id, sample.recorded_at)
            if record is not None:
                load = float(record.avg_load)
                values[Parameter.LOAD_HIGH.value] = load
                values[Parameter.LOAD_LOW.value] = load

        evaluations = []
        for parameter, value in values.items():
            band = config.get(parameter)
            if value is None or band is None:
                continue
            evaluations.append(alert_rules.evaluate_threshold(parameter, value, band))

        # Absent rpm counts as stopped; a corrupt one says nothing
        if not rpm_unusable:
            evaluations.append(alert_rules.evaluate_machine_status(rpm, self.running_rpm_threshold))
        return evaluations

    @staticmethod
    def _read(sample: TelemetryIngestion, field: str, compute) -> Optional[float]:
        try:
            value = compute()
        except MalformedReadingError as e:
            logger.warning(
                "Skipping malformed value",
                ingestion_id=sample.ingestion_id,
                machine_id=str(sample.machine_id),
                field=field,
                error=str(e),
            )
            return None
        if value is not None and not math.isfinite(value):
            logger.warning("Skipping non-finite value", ingestion_id=sample.ingestion_id, field=field)
            return None
        return value

    def _apply(self, sample, evaluation, open_alerts, stats) -> None:
        key = (sample.machine_id, evaluation.parameter)
        if key not in open_alerts:
            open_alerts[key] = self.alerts.find_active(*key)
        active = open_alerts[key]
        actual_value = Decimal(str(evaluation.value))
        threshold_id = evaluation.threshold.threshold_id if evaluation.threshold else None

        if evaluation.triggered:
            if active is None:
                open_alerts[key] = self.alerts.create(
                    AlertEvent(
                        machine_id=sample.machine_id,
                        parameter=evaluation.parameter,
                        severity=evaluation.severity.value,
                        actual_value=actual_value,
                        generated_at=sample.recorded_at,
                        alert_status=AlertStatus.ACTIVE.value,
                        threshold_id=threshold_id,
                    )
                )
                stats["created"] += 1
                logger.info(
                    "Alert opened",
                    machine_id=str(sample.machine_id),
                    parameter=evaluation.parameter,
                    severity=evaluation.severity.value,
                    value=evaluation.value,
                )
            elif (
                self.escalate_active_alerts
                and evaluation.severity == AlertSeverity.CRITICAL
                and active.severity == AlertSeverity.WARNING.value
            ):
                if self.alerts.update_severity(active.alert_id, AlertSeverity.CRITICAL, actual_value, threshold_id):
                    stats["escalated"] += 1
                    logger.info(
                        "Alert escalated",
                        alert_id=str(active.alert_id),
                        parameter=evaluation.parameter,
                        value=evaluation.value,
                    )
            return

        if active is not None:
            # Compare-and-set so a concurrent acknowledgement wins
            if self.alerts.set_status(active.alert_id, AlertStatus.PENDING, expected=[AlertStatus.ACTIVE]):
                stats["cleared"] += 1
                logger.info("Alert cleared", alert_id=str(active.alert_id), parameter=evaluation.parameter)
            open_alerts[key] = None

    def reconcile(self) -> int:
        """Move every acknowledged ACTIVE/PENDING alert to ACKNOWLEDGED"""
        acknowledged = self.alerts.acknowledged_alert_ids()
        if not acknowledged:
            return 0
        count = self.alerts.mark_acknowledged(acknowledged)
        logger.info("Acknowledgements reconciled", alerts=count)
        return count
