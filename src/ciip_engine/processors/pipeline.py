"""
Telemetry pipeline: one tick runs every phase in order, each in its own
transaction, and a background runner repeats ticks on a fixed interval.
"""

import asyncio
import time
from typing import Callable, List, Optional, Tuple

import structlog
from sqlalchemy.orm import Session

from ciip_engine.core.config import Settings, settings as default_settings
from ciip_engine.core.timeutils import utcnow
from ciip_engine.database.connection import SessionLocal, session_scope
from ciip_engine.processors.alert_evaluator import AlertEvaluator
from ciip_engine.processors.health_deriver import HealthDeriver
from ciip_engine.processors.status_classifier import StatusClassifier
from ciip_engine.processors.threshold_resolver import ThresholdResolver
from ciip_engine.schemas.pipeline import PhaseResult, TickReport
from ciip_engine.stores.alert_store import AlertStore
from ciip_engine.stores.health_store import HealthStore
from ciip_engine.stores.machine_store import MachineStore
from ciip_engine.stores.telemetry_store import TelemetryStore
from ciip_engine.stores.threshold_store import ThresholdStore
from ciip_engine.stores.watermark_store import WatermarkStore

logger = structlog.get_logger(__name__)

# A phase turns a session into a callable returning its processed count
PhaseFactory = Callable[[Session], Callable[[], int]]


class TelemetryPipeline:
    """Health Deriver -> Status Classifier -> Alert Evaluator"""

    def __init__(self, session_factory=SessionLocal, config: Optional[Settings] = None,
                 phases: Optional[List[Tuple[str, PhaseFactory]]] = None):
        self.session_factory = session_factory
        self.config = config or default_settings
        self.phases = phases if phases is not None else self.default_phases()

    def default_phases(self) -> List[Tuple[str, PhaseFactory]]:
        config = self.config

        def health_deriver(session):
            return HealthDeriver(
                TelemetryStore(session), HealthStore(session), batch_size=config.health_batch_size
            ).run

        def status_classifier(session):
            return StatusClassifier(
                TelemetryStore(session), MachineStore(session), running_rpm_threshold=config.running_rpm_threshold
            ).run

        def alert_evaluator(session):
            return AlertEvaluator(
                TelemetryStore(session),
                HealthStore(session),
                MachineStore(session),
                AlertStore(session),
                WatermarkStore(session),
                ThresholdResolver(ThresholdStore(session)),
                batch_size=config.alert_batch_size,
                running_rpm_threshold=config.running_rpm_threshold,
                escalate_active_alerts=config.escalate_active_alerts,
            ).run

        return [
            (HealthDeriver.phase, health_deriver),
            (StatusClassifier.phase, status_classifier),
            (AlertEvaluator.phase, alert_evaluator),
        ]

    def run_once(self) -> TickReport:
        """Run one tick; a failing phase is rolled back and the next one still runs"""
        report = TickReport(started_at=utcnow())
        for name, factory in self.phases:
            report.phases.append(self._run_phase(name, factory))
        report.finished_at = utcnow()

        logger.info(
            "Pipeline tick finished",
            succeeded=report.succeeded,
            phases={p.phase: p.processed for p in report.phases},
        )
        return report

    def _run_phase(self, name: str, factory: PhaseFactory) -> PhaseResult:
        started = time.perf_counter()
        try:
            with session_scope(self.session_factory) as session:
                processed = factory(session)()
        except Exception as e:
            logger.error("Pipeline phase failed", phase=name, error=str(e), exc_info=True)
            return PhaseResult(
                phase=name,
                succeeded=False,
                error=str(e),
                duration_ms=(time.perf_counter() - started) * 1000,
            )
        return PhaseResult(
            phase=name,
            succeeded=True,
            processed=processed,
            duration_ms=(time.perf_counter() - started) * 1000,
        )


class PipelineRunner:
    """Repeats pipeline ticks in the background until stopped"""

    def __init__(self, pipeline: TelemetryPipeline, interval: float = 10.0):
        self.pipeline = pipeline
        self.interval = interval
        self.running = False
        self.last_report: Optional[TickReport] = None
        self._stop_event: Optional[asyncio.Event] = None
        self._task: Optional[asyncio.Task] = None

    async def start(self):
        """Start the tick loop as a background task"""
        if self.running:
            return
        self.running = True
        self._stop_event = asyncio.Event()
        logger.info("Starting telemetry pipeline", interval=self.interval)
        self._task = asyncio.create_task(self._run_loop())

    def request_stop(self):
        """Stop scheduling ticks; safe to call from a signal handler"""
        self.running = False
        if self._stop_event is not None:
            self._stop_event.set()

    async def stop(self):
        """Stop the loop and wait for the in-flight tick to finish"""
        self.request_stop()
        if self._task is not None:
            await self._task
            self._task = None
        logger.info("Telemetry pipeline stopped")

    async def wait_closed(self):
        if self._task is not None:
            await self._task

    async def _run_loop(self):
        while self.running:
            try:
                # Ticks do blocking database work, keep them off the event loop
                self.last_report = await asyncio.to_thread(self.pipeline.run_once)
            except Exception as e:
                logger.error("Error in pipeline loop", error=str(e))
            if not self.running:
                break
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self.interval)
            except asyncio.TimeoutError:
                pass
