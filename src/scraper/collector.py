"""
Prometheus collector over the metrics snapshot.

``collect()`` only reads the snapshot store; it never runs a probe and never
waits on the scraper. Before the first tick it reports a zero link count and
a status family without samples.
"""
from typing import Iterable

from prometheus_client.core import GaugeMetricFamily, Metric
from prometheus_client.registry import Collector, CollectorRegistry

from src.scraper.snapshot import MetricsSnapshotStore

LINK_STATUS_GAUGE = "jira_application_link_status_gauge"
LINK_STATUS_HELP = "Application Link Status Gauge"
LINK_COUNT_GAUGE = "jira_application_link_count_gauge"
LINK_COUNT_HELP = "Application Link Count Gauge"


class SnapshotCollector(Collector):
    """Exports the link status and link count gauges."""

    def __init__(self, store: MetricsSnapshotStore):
        self.store = store

    def describe(self) -> Iterable[Metric]:
        # Registration must not read the store.
        return [
            GaugeMetricFamily(LINK_STATUS_GAUGE, LINK_STATUS_HELP, labels=["name"]),
            GaugeMetricFamily(LINK_COUNT_GAUGE, LINK_COUNT_HELP),
        ]

    def collect(self) -> Iterable[Metric]:
        snapshot = self.store.as_dict()

        status = GaugeMetricFamily(LINK_STATUS_GAUGE, LINK_STATUS_HELP, labels=["name"])
        for name, ordinal in sorted(snapshot["link_statuses"].items()):
            status.add_metric([name], ordinal)

        count = GaugeMetricFamily(
            LINK_COUNT_GAUGE, LINK_COUNT_HELP, value=snapshot["link_count"]
        )
        return [status, count]

    def register(self, registry: CollectorRegistry) -> "SnapshotCollector":
        registry.register(self)
        return self
