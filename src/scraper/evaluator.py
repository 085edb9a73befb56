"""
Scheduled metric evaluator: the exporter's public control surface.

Ties the settings source, snapshot store, periodic scraper and collector
together. The host calls ``init()`` once at start-up and ``teardown()`` once
at shutdown; the admin surface uses the remaining methods.
"""
from typing import Iterable, Optional

from prometheus_client.core import Metric
from prometheus_client.registry import CollectorRegistry

from src.common.exceptions import SettingsError
from src.common.logging_config import get_logger
from src.scraper.collector import SnapshotCollector
from src.scraper.executor import SingleThreadScheduledExecutor
from src.scraper.probes import ApplicationLinkStatusProbe, SizeProbe
from src.scraper.scheduler import PeriodicScraper, SECONDS_PER_MINUTE
from src.scraper.settings_source import SettingsSource
from src.scraper.snapshot import MetricsSnapshotStore

logger = get_logger(__name__)


class ScheduledMetricEvaluator:
    """
    Owns the scraper and exposes the snapshot.

    Usage:
        evaluator = ScheduledMetricEvaluator(settings_source, size_probe, status_probe)
        evaluator.register(registry)
        evaluator.init()
        ...
        evaluator.restart_scraping(5)
        ...
        evaluator.teardown()
    """

    def __init__(
        self,
        settings_source: SettingsSource,
        size_probe: SizeProbe,
        status_probe: ApplicationLinkStatusProbe,
        delay_unit_seconds: float = SECONDS_PER_MINUTE,
        shutdown_grace_seconds: float = 1.0,
        executor: Optional[SingleThreadScheduledExecutor] = None,
        store: Optional[MetricsSnapshotStore] = None
    ):
        self.settings_source = settings_source
        self.store = store or MetricsSnapshotStore()
        self.scraper = PeriodicScraper(
            store=self.store,
            settings_source=settings_source,
            size_probe=size_probe,
            status_probe=status_probe,
            executor=executor,
            delay_unit_seconds=delay_unit_seconds,
            shutdown_grace_seconds=shutdown_grace_seconds,
        )
        self.collector = SnapshotCollector(self.store)

    # -- Lifecycle hooks ----------------------------------------------------

    def init(self) -> None:
        logger.info("Starting scheduled metric evaluator")
        self.scraper.start()

    def teardown(self) -> None:
        logger.info("Stopping scheduled metric evaluator")
        self.scraper.shutdown()

    def register(self, registry: CollectorRegistry) -> None:
        """Expose ``collect()`` through a Prometheus registry."""
        self.collector.register(registry)

    # -- Control surface ----------------------------------------------------

    def restart_scraping(self, new_delay: int) -> None:
        logger.info(f"Restarting scraping with delay {new_delay} minute(s)")
        self.scraper.restart(new_delay)

    def get_delay(self) -> int:
        return self.settings_source.get_delay()

    def set_delay(self, delay: int) -> None:
        """Persist the delay. Call ``restart_scraping`` to apply it now."""
        self.settings_source.set_delay(delay)

    def get_total_attachment_size(self) -> int:
        return self.store.total_size

    def get_last_execution_timestamp(self) -> int:
        return self.store.last_execution_timestamp

    def collect(self) -> Iterable[Metric]:
        return self.collector.collect()

    def get_status(self) -> dict:
        """Snapshot and scraper state for the /status endpoint."""
        status = self.store.as_dict()
        status["scraper_active"] = self.scraper.is_active
        try:
            status["delay_minutes"] = self.get_delay()
        except SettingsError as e:
            logger.warning(f"Scrape delay unavailable for status: {e}")
            status["delay_minutes"] = None
        return status
