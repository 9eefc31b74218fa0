import asyncio
import unittest
import uuid
from datetime import timedelta
from decimal import Decimal
from unittest.mock import MagicMock, patch

from helpers import RULES_CREATED_AT, T0, add_machine, add_plant, add_reading, create_test_engine, make_session_factory
from sqlalchemy import func, select

from ciip_engine.core.config import Settings
from ciip_engine.core.timeutils import utcnow
from ciip_engine.models import AlertEvent, Machine, MachineHealth, Plant
from ciip_engine.processors.health_deriver import HealthDeriver
from ciip_engine.processors.pipeline import PipelineRunner, TelemetryPipeline
from ciip_engine.schemas.pipeline import PhaseResult, TickReport
from ciip_engine.services.threshold_service import seed_global_thresholds


class TestTelemetryPipeline(unittest.TestCase):
    """One tick across all phases"""

    def setUp(self):
        self.engine = create_test_engine()
        self.Session = make_session_factory(self.engine)
        self.session = self.Session()
        seed_global_thresholds(self.session, created_at=RULES_CREATED_AT)
        self.plant = add_plant(self.session)
        self.machine = add_machine(self.session, self.plant)
        add_reading(self.session, self.machine, T0, vibration=(6, 6, 6), rpm=0)
        add_reading(self.session, self.machine, T0 + timedelta(minutes=1), vibration=(6, 6, 6), rpm=0)
        self.session.commit()
        self.pipeline = TelemetryPipeline(self.Session, Settings(database_url="sqlite://"))

    def tearDown(self):
        self.session.close()
        self.engine.dispose()

    def count(self, model):
        return self.session.scalar(select(func.count()).select_from(model))

    def test_tick_runs_phases_in_order(self):
        report = self.pipeline.run_once()

        self.assertTrue(report.succeeded)
        self.assertEqual(
            [p.phase for p in report.phases],
            ["health_deriver", "status_classifier", "alert_evaluator"],
        )
        self.assertEqual(report.phase("health_deriver").processed, 2)
        self.assertEqual(self.count(MachineHealth), 2)
        self.session.expire_all()
        self.assertEqual(self.session.get(Machine, self.machine.machine_id).status, "IDLE")
        parameters = set(self.session.scalars(select(AlertEvent.parameter)).all())
        self.assertEqual(parameters, {"Vibration", "RPM_LOW", "MachineStatus"})
        self.assertIsNotNone(report.finished_at)

    def test_second_tick_is_a_no_op(self):
        self.pipeline.run_once()
        report = self.pipeline.run_once()

        self.assertTrue(report.succeeded)
        self.assertEqual(report.phase("health_deriver").processed, 0)
        self.assertEqual(report.phase("alert_evaluator").processed, 0)
        self.assertEqual(self.count(MachineHealth), 2)
        self.assertEqual(self.count(AlertEvent), 3)

    def test_failing_phase_does_not_stop_later_phases(self):
        with patch.object(HealthDeriver, "run", side_effect=RuntimeError("storage unavailable")):
            report = self.pipeline.run_once()

        self.assertFalse(report.succeeded)
        failed = report.phase("health_deriver")
        self.assertFalse(failed.succeeded)
        self.assertEqual(failed.error, "storage unavailable")
        self.assertTrue(report.phase("status_classifier").succeeded)
        self.assertTrue(report.phase("alert_evaluator").succeeded)
        self.assertEqual(self.count(MachineHealth), 0)
        # Nothing has been derived, so the alert cursor waits
        self.assertEqual(report.phase("alert_evaluator").processed, 0)
        self.assertEqual(self.count(AlertEvent), 0)

        # The next tick catches up
        report = self.pipeline.run_once()
        self.assertEqual(report.phase("health_deriver").processed, 2)
        self.assertEqual(self.count(AlertEvent), 3)

    def test_load_alert_survives_failed_health_tick(self):
        other = add_machine(self.session, self.plant, machine_code="M_2")
        add_reading(self.session, other, T0 + timedelta(minutes=2), currents=(100, 100, 100))
        # 0.6 * 1% + 0.2 * 10% + 0.2 * 0.1 = 4.6% load
        add_reading(self.session, other, T0 + timedelta(minutes=3), currents=(1, 1, 1), rpm=100,
                    power_factor=Decimal("0.1"))
        self.session.commit()

        with patch.object(HealthDeriver, "run", side_effect=RuntimeError("storage unavailable")):
            self.pipeline.run_once()
        report = self.pipeline.run_once()

        self.assertTrue(report.succeeded)
        load_alerts = self.session.scalars(
            select(AlertEvent).where(AlertEvent.machine_id == other.machine_id, AlertEvent.parameter == "LOAD_LOW")
        ).all()
        self.assertEqual([a.severity for a in load_alerts], ["CRITICAL"])

    def test_failed_phase_is_rolled_back(self):
        def half_done(session):
            def run():
                session.add(Plant(tenant_id=uuid.uuid4(), plant_code="PARTIAL"))
                session.flush()
                raise RuntimeError("crashed mid-phase")
            return run

        pipeline = TelemetryPipeline(self.Session, phases=[("partial", half_done)])
        report = pipeline.run_once()

        self.assertFalse(report.succeeded)
        self.session.expire_all()
        self.assertIsNone(self.session.scalars(select(Plant).where(Plant.plant_code == "PARTIAL")).first())


def tick_report():
    now = utcnow()
    return TickReport(started_at=now, finished_at=now, phases=[PhaseResult(phase="health_deriver", succeeded=True)])


class TestPipelineRunner(unittest.IsolatedAsyncioTestCase):
    """Background loop start/stop"""

    async def wait_for_calls(self, mock, calls, timeout=2.0):
        deadline = asyncio.get_running_loop().time() + timeout
        while mock.call_count < calls:
            if asyncio.get_running_loop().time() > deadline:
                self.fail(f"run_once called {mock.call_count} times, expected {calls}")
            await asyncio.sleep(0.01)

    async def test_runs_ticks_until_stopped(self):
        pipeline = MagicMock()
        pipeline.run_once.return_value = tick_report()
        runner = PipelineRunner(pipeline, interval=0.01)

        await runner.start()
        self.assertTrue(runner.running)
        await self.wait_for_calls(pipeline.run_once, 3)
        await runner.stop()

        self.assertFalse(runner.running)
        self.assertIs(runner.last_report, pipeline.run_once.return_value)
        calls = pipeline.run_once.call_count
        await asyncio.sleep(0.05)
        self.assertEqual(pipeline.run_once.call_count, calls)

    async def test_stop_interrupts_interval_wait(self):
        pipeline = MagicMock()
        pipeline.run_once.return_value = tick_report()
        runner = PipelineRunner(pipeline, interval=3600)

        await runner.start()
        await self.wait_for_calls(pipeline.run_once, 1)
        await asyncio.wait_for(runner.stop(), timeout=2.0)
        self.assertEqual(pipeline.run_once.call_count, 1)

    async def test_loop_survives_tick_errors(self):
        pipeline = MagicMock()
        report = tick_report()
        outcomes = iter([RuntimeError("boom")])

        def run_once():
            failure = next(outcomes, None)
            if failure is not None:
                raise failure
            return report

        pipeline.run_once.side_effect = run_once
        runner = PipelineRunner(pipeline, interval=0.01)

        await runner.start()
        await self.wait_for_calls(pipeline.run_once, 2)
        await runner.stop()
        self.assertIs(runner.last_report, report)

    async def test_start_is_idempotent(self):
        pipeline = MagicMock()
        pipeline.run_once.return_value = tick_report()
        runner = PipelineRunner(pipeline, interval=3600)

        await runner.start()
        task = runner._task
        await runner.start()
        self.assertIs(runner._task, task)
        await runner.stop()


if __name__ == '__main__':
    unittest.main()
