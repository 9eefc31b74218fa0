import unittest
import uuid
from decimal import Decimal
from unittest.mock import MagicMock, patch

from helpers import T0, add_machine, add_plant, create_test_engine, make_session_factory
from fastapi.testclient import TestClient

from ciip_engine.core.timeutils import utcnow
from ciip_engine.database.connection import get_database
from ciip_engine.main import app
from ciip_engine.models import AlertEvent
from ciip_engine.schemas.pipeline import PhaseResult, TickReport


class TestOperationalApi(unittest.TestCase):
    """Health, acknowledgement and threshold endpoints"""

    def setUp(self):
        self.engine = create_test_engine()
        self.Session = make_session_factory(self.engine)

        def override_get_database():
            db = self.Session()
            try:
                yield db
            finally:
                db.close()

        app.dependency_overrides[get_database] = override_get_database
        self.settings_patch = patch("ciip_engine.main.settings.pipeline_enabled", False)
        self.settings_patch.start()
        self.client = TestClient(app)
        self.client.__enter__()

    def tearDown(self):
        self.client.__exit__(None, None, None)
        self.settings_patch.stop()
        app.dependency_overrides.clear()
        self.engine.dispose()

    def add_alert(self):
        session = self.Session()
        try:
            plant = add_plant(session)
            machine = add_machine(session, plant)
            alert = AlertEvent(
                machine_id=machine.machine_id,
                parameter="Vibration",
                severity="WARNING",
                actual_value=Decimal("6"),
                generated_at=T0,
                alert_status="ACTIVE",
            )
            session.add(alert)
            session.commit()
            return alert.alert_id, plant.tenant_id
        finally:
            session.close()

    def test_health(self):
        response = self.client.get("/api/v1/health")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["status"], "healthy")

    def test_detailed_health_without_runner(self):
        response = self.client.get("/api/v1/health/detailed")
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["database"], "connected")
        self.assertFalse(body["pipeline"]["running"])
        self.assertEqual(body["status"], "healthy")

    def test_detailed_health_reports_failed_phase(self):
        now = utcnow()
        runner = MagicMock(running=True)
        runner.last_report = TickReport(
            started_at=now,
            finished_at=now,
            phases=[
                PhaseResult(phase="health_deriver", succeeded=False, error="storage unavailable"),
                PhaseResult(phase="status_classifier", succeeded=True, processed=3),
            ],
        )
        app.state.runner = runner

        body = self.client.get("/api/v1/health/detailed").json()
        self.assertEqual(body["status"], "unhealthy")
        self.assertTrue(body["pipeline"]["running"])
        self.assertEqual(body["pipeline"]["phases"][0]["error"], "storage unavailable")

    def test_acknowledge_alert(self):
        alert_id, tenant_id = self.add_alert()
        payload = {"alert_id": str(alert_id), "technician_name": "S. Novak", "reason": "Misalignment"}

        response = self.client.post("/api/v1/alerts/acknowledgements", json=payload)
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.json()["alert_id"], str(alert_id))

        duplicate = self.client.post("/api/v1/alerts/acknowledgements", json=payload)
        self.assertEqual(duplicate.status_code, 409)

        summary = self.client.get(f"/api/v1/tenants/{tenant_id}/alerts/summary").json()
        self.assertEqual(summary, {"critical": 0, "warning": 1, "acknowledged": 1})

    def test_acknowledge_unknown_alert(self):
        payload = {"alert_id": str(uuid.uuid4()), "technician_name": "S. Novak", "reason": "Misalignment"}
        response = self.client.post("/api/v1/alerts/acknowledgements", json=payload)
        self.assertEqual(response.status_code, 404)

    def test_create_threshold(self):
        payload = {"parameter": "Vibration", "warning_value": "4.5", "critical_value": "7"}
        response = self.client.post("/api/v1/thresholds", json=payload)
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.json()["parameter"], "Vibration")

        bad = self.client.post("/api/v1/thresholds", json={**payload, "critical_value": "1"})
        self.assertEqual(bad.status_code, 400)


if __name__ == '__main__':
    unittest.main()
