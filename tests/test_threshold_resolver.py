import unittest
import uuid
from datetime import datetime
from decimal import Decimal

from helpers import add_threshold, create_test_engine, make_session_factory

from ciip_engine.core.exceptions import ThresholdConfigurationError
from ciip_engine.processors.threshold_resolver import ThresholdResolver
from ciip_engine.schemas.threshold import BindingLevel
from ciip_engine.stores.threshold_store import ThresholdStore


class TestThresholdResolver(unittest.TestCase):
    """Three-tier fallback: machine type, tenant, global"""

    def setUp(self):
        self.engine = create_test_engine()
        self.session = make_session_factory(self.engine)()
        self.tenant_id = uuid.uuid4()
        add_threshold(self.session, "Vibration", 5, 8)
        add_threshold(self.session, "Current", 40, 50)
        add_threshold(self.session, "Vibration", 4, 7, tenant_id=self.tenant_id)
        add_threshold(self.session, "Vibration", 3, 6, tenant_id=self.tenant_id, machine_type="Pump")
        self.session.commit()

    def tearDown(self):
        self.session.close()
        self.engine.dispose()

    def resolver(self):
        return ThresholdResolver(ThresholdStore(self.session))

    def test_machine_type_rule_wins(self):
        resolved = self.resolver().resolve(self.tenant_id, "Pump", "Vibration")
        self.assertEqual(resolved.binding_level, BindingLevel.MACHINE_TYPE)
        self.assertEqual(resolved.warning_value, Decimal("3"))
        self.assertEqual(resolved.critical_value, Decimal("6"))

    def test_tenant_rule_for_other_machine_type(self):
        resolved = self.resolver().resolve(self.tenant_id, "Motor", "Vibration")
        self.assertEqual(resolved.binding_level, BindingLevel.TENANT)
        self.assertEqual(resolved.warning_value, Decimal("4"))

    def test_global_fallback(self):
        resolver = self.resolver()
        resolved = resolver.resolve(uuid.uuid4(), "Pump", "Vibration")
        self.assertEqual(resolved.binding_level, BindingLevel.GLOBAL)
        self.assertEqual(resolved.warning_value, Decimal("5"))
        # Tenant has no Current rule of its own
        self.assertEqual(resolver.resolve(self.tenant_id, "Pump", "Current").binding_level, BindingLevel.GLOBAL)

    def test_missing_global_raises(self):
        with self.assertRaises(ThresholdConfigurationError) as ctx:
            self.resolver().resolve(self.tenant_id, "Pump", "Temperature")
        self.assertEqual(ctx.exception.parameter, "Temperature")

    def test_newest_version_wins(self):
        add_threshold(self.session, "Current", 45, 55, created_at=datetime(2025, 6, 1))
        self.session.commit()
        resolved = self.resolver().resolve(self.tenant_id, "Pump", "Current")
        self.assertEqual(resolved.warning_value, Decimal("45"))

    def test_effective_time_bounds_versions(self):
        add_threshold(self.session, "Current", 45, 55, created_at=datetime(2025, 6, 1))
        self.session.commit()
        resolver = self.resolver()
        before = resolver.resolve(self.tenant_id, "Pump", "Current", effective_time=datetime(2025, 3, 1))
        after = resolver.resolve(self.tenant_id, "Pump", "Current", effective_time=datetime(2025, 7, 1))
        self.assertEqual(before.warning_value, Decimal("40"))
        self.assertEqual(after.warning_value, Decimal("45"))

    def test_sample_older_than_every_rule(self):
        with self.assertRaises(ThresholdConfigurationError):
            self.resolver().resolve(self.tenant_id, "Pump", "Current", effective_time=datetime(2024, 1, 1))

    def test_resolve_all_omits_missing_parameters(self):
        config = self.resolver().resolve_all(self.tenant_id, "Pump")
        self.assertIn("Vibration", config)
        self.assertIn("Current", config)
        self.assertNotIn("Temperature", config)
        self.assertEqual(config.get("Vibration").binding_level, BindingLevel.MACHINE_TYPE)

    def test_other_tenant_rules_are_invisible(self):
        other = uuid.uuid4()
        add_threshold(self.session, "Current", 1, 2, tenant_id=other)
        self.session.commit()
        resolved = self.resolver().resolve(self.tenant_id, "Pump", "Current")
        self.assertEqual(resolved.binding_level, BindingLevel.GLOBAL)
        self.assertEqual(resolved.warning_value, Decimal("40"))


if __name__ == '__main__':
    unittest.main()
