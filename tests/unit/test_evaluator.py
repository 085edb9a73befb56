"""
Unit tests for ScheduledMetricEvaluator, the public control surface.
"""
import time
import unittest
from unittest.mock import MagicMock

from src.common.exceptions import SettingsError
from src.monitoring.metrics import reset_metrics
from src.scraper.collector import LINK_COUNT_GAUGE, LINK_STATUS_GAUGE
from src.scraper.evaluator import ScheduledMetricEvaluator
from src.scraper.executor import SingleThreadScheduledExecutor
from src.scraper.probes import (
    ApplicationLink,
    ApplicationLinkStatusProbe,
    ApplicationStatus,
    StaticLinkRegistry,
    StatusResolver,
)
from src.scraper.settings_source import InMemorySettingsSource
from src.scraper.snapshot import NEVER_RUN


class FixedStatusResolver(StatusResolver):
    """Resolver answering from a dict keyed by remote address."""

    def __init__(self, statuses):
        self.statuses = statuses

    def resolve_status(self, remote_address, link_type="generic"):
        return self.statuses[remote_address].value


def wait_until(predicate, timeout=2.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


class TestScheduledMetricEvaluator(unittest.TestCase):
    """Tests for ScheduledMetricEvaluator."""

    def setUp(self):
        reset_metrics()
        self.settings_source = InMemorySettingsSource(1)
        self.size_probe = MagicMock()
        self.size_probe.name = "attachment_size"
        self.size_probe.fetch_total_size.return_value = 123456
        registry = StaticLinkRegistry([
            ApplicationLink("A", "http://a.example"),
            ApplicationLink("B", "http://b.example"),
        ])
        resolver = FixedStatusResolver({
            "http://a.example": ApplicationStatus.AVAILABLE,
            "http://b.example": ApplicationStatus.UNAVAILABLE,
        })
        self.evaluator = ScheduledMetricEvaluator(
            settings_source=self.settings_source,
            size_probe=self.size_probe,
            status_probe=ApplicationLinkStatusProbe(registry, resolver),
            delay_unit_seconds=0.05,
            executor=SingleThreadScheduledExecutor(lower_priority=False),
        )

    def tearDown(self):
        self.evaluator.teardown()
        reset_metrics()

    def _families(self):
        return {family.name: family for family in self.evaluator.collect()}

    def test_collect_before_init(self):
        families = self._families()
        self.assertEqual(families[LINK_STATUS_GAUGE].samples, [])
        self.assertEqual(families[LINK_COUNT_GAUGE].samples[0].value, 0)
        self.assertEqual(self.evaluator.get_last_execution_timestamp(), NEVER_RUN)
        self.assertEqual(self.evaluator.get_total_attachment_size(), 0)

    def test_one_tick_scenario(self):
        self.evaluator.init()
        self.assertTrue(wait_until(lambda: self.evaluator.get_last_execution_timestamp() > 0))

        families = self._families()
        self.assertEqual(families[LINK_COUNT_GAUGE].samples[0].value, 2)
        statuses = {
            s.labels["name"]: s.value for s in families[LINK_STATUS_GAUGE].samples
        }
        self.assertEqual(statuses, {"A": 0, "B": 1})
        self.assertEqual(self.evaluator.get_total_attachment_size(), 123456)

    def test_init_with_disabled_delay(self):
        self.settings_source.set_delay(0)
        self.evaluator.init()
        time.sleep(0.1)
        self.assertFalse(self.evaluator.scraper.is_active)
        self.assertEqual(self.evaluator.get_last_execution_timestamp(), NEVER_RUN)

    def test_set_delay_does_not_restart(self):
        self.evaluator.init()
        handle = self.evaluator.scraper._handle

        self.evaluator.set_delay(5)

        self.assertEqual(self.evaluator.get_delay(), 5)
        self.assertIs(self.evaluator.scraper._handle, handle)

    def test_restart_scraping(self):
        self.evaluator.init()
        handle = self.evaluator.scraper._handle

        self.evaluator.restart_scraping(2)

        self.assertTrue(handle.cancelled)
        self.assertIsNot(self.evaluator.scraper._handle, handle)
        self.assertTrue(self.evaluator.scraper.is_active)

    def test_teardown_stops_thread(self):
        self.evaluator.init()
        self.assertTrue(wait_until(lambda: self.evaluator.store.has_run))

        self.evaluator.teardown()

        self.assertTrue(self.evaluator.scraper.executor.is_terminated)

    def test_get_status(self):
        status = self.evaluator.get_status()
        self.assertEqual(status["delay_minutes"], 1)
        self.assertFalse(status["scraper_active"])
        self.assertEqual(status["last_execution_timestamp"], NEVER_RUN)

    def test_get_status_with_unreadable_delay(self):
        self.settings_source.get_delay = MagicMock(
            side_effect=SettingsError("Failed to read scrape delay: down")
        )

        status = self.evaluator.get_status()

        self.assertIsNone(status["delay_minutes"])
        self.assertIn("link_count", status)


if __name__ == "__main__":
    unittest.main()
