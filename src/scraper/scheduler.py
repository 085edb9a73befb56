"""
Periodic scraper: one recurring probe sequence on one background thread.

Each tick runs the size probe, then the link-status probe, then stamps the
execution time, always in that order. A failing probe is logged and counted;
its snapshot field keeps the last good value and the schedule keeps running.

start/restart/stop hold ``_lock`` only while swapping the task handle. The
tick itself never takes that lock, so a restart can cancel a tick that is
still writing; the tick finishes and the new task runs after it.
"""
import threading
import time
from typing import Callable, Optional

from src.common.correlation import CorrelationContext
from src.common.exceptions import SchedulingError
from src.common.logging_config import get_logger
from src.monitoring.metrics import MetricsCollector, get_metrics_collector
from src.scraper.executor import ScheduledTask, SingleThreadScheduledExecutor
from src.scraper.probes import ApplicationLinkStatusProbe, SizeProbe
from src.scraper.settings_source import SettingsSource
from src.scraper.snapshot import MetricsSnapshotStore

logger = get_logger(__name__)

SECONDS_PER_MINUTE = 60.0


class PeriodicScraper:
    """
    Restartable fixed-delay scraper.

    Args:
        store: Snapshot store written by every tick
        settings_source: Supplies the delay in minutes at start-up
        size_probe: Aggregate size probe
        status_probe: Link status probe
        executor: Scheduled executor (a private one by default)
        delay_unit_seconds: Length of one delay unit, 60 for minutes
        shutdown_grace_seconds: Wait for a running tick before forcing shutdown
        metrics: Self-metrics collector
        clock: Wall clock returning epoch seconds
    """

    def __init__(
        self,
        store: MetricsSnapshotStore,
        settings_source: SettingsSource,
        size_probe: SizeProbe,
        status_probe: ApplicationLinkStatusProbe,
        executor: Optional[SingleThreadScheduledExecutor] = None,
        delay_unit_seconds: float = SECONDS_PER_MINUTE,
        shutdown_grace_seconds: float = 1.0,
        metrics: Optional[MetricsCollector] = None,
        clock: Callable[[], float] = time.time
    ):
        self.store = store
        self.settings_source = settings_source
        self.size_probe = size_probe
        self.status_probe = status_probe
        self.executor = executor or SingleThreadScheduledExecutor()
        self.delay_unit_seconds = delay_unit_seconds
        self.shutdown_grace_seconds = shutdown_grace_seconds
        self.metrics = metrics or get_metrics_collector()
        self.clock = clock

        self._lock = threading.Lock()
        self._handle: Optional[ScheduledTask] = None

    # -- Control ------------------------------------------------------------

    @property
    def is_active(self) -> bool:
        """True while a periodic task is scheduled."""
        handle = self._handle
        return handle is not None and not handle.done

    def start(self) -> None:
        """
        Schedule scraping with the delay currently held by the settings source.
        Does nothing while a task is already scheduled; use ``restart`` to
        change the delay.
        """
        with self._lock:
            if self.is_active:
                logger.debug("Scraping already scheduled, ignoring start")
                return
            self._start(self.settings_source.get_delay())

    def restart(self, new_delay: int) -> None:
        """
        Cancel the active task (without waiting for a running tick) and
        schedule a new one with ``new_delay`` minutes.
        """
        with self._lock:
            self._stop()
            self._start(new_delay)
        self.metrics.inc_restarts()

    def stop(self) -> None:
        with self._lock:
            self._stop()

    def _start(self, delay: int) -> None:
        if delay <= 0:
            logger.info(f"Scraping disabled (delay={delay})")
            self.metrics.set_scraper_active(False)
            return

        try:
            self._handle = self.executor.schedule_with_fixed_delay(
                self._tick,
                initial_delay=0,
                delay=delay * self.delay_unit_seconds,
                name="scrape-tick"
            )
        except SchedulingError as e:
            logger.error(f"Unable to schedule scraping: {e}")
            self.metrics.set_scraper_active(False)
            return

        self.metrics.set_scraper_active(True)
        logger.info(f"Scraping scheduled every {delay} minute(s)")

    def _stop(self) -> None:
        handle, self._handle = self._handle, None
        if handle is None:
            return

        if not handle.cancel():
            logger.debug(
                "Unable to cancel scraping, typically because it has already completed."
            )
        self.metrics.set_scraper_active(False)

    def shutdown(self) -> None:
        """
        Stop the executor, wait up to the grace period for a running tick,
        then force it down. Never raises.
        """
        with self._lock:
            self._handle = None
        self.metrics.set_scraper_active(False)

        try:
            self.executor.shutdown()
            if not self.executor.await_termination(self.shutdown_grace_seconds):
                logger.warning(
                    f"Scrape tick still running after {self.shutdown_grace_seconds}s, "
                    f"forcing shutdown"
                )
                self.executor.shutdown_now()
        except (Exception, KeyboardInterrupt) as e:
            logger.warning(f"Interrupted while stopping scraper, forcing shutdown: {e}")
            self.executor.shutdown_now()

        logger.info("Scraper shut down")

    # -- Tick ---------------------------------------------------------------

    def _tick(self) -> None:
        with CorrelationContext(prefix="tick", component="scraper"):
            with self.metrics.tick_duration_timer():
                self._run_probe(self.size_probe.name, self._calculate_total_size)
                self._run_probe(self.status_probe.name, self._calculate_link_statuses)
                self.store.set_last_execution_timestamp(int(self.clock() * 1000))
            self.metrics.inc_ticks()
            logger.debug("Scrape tick complete")

    def _run_probe(self, name: str, step: Callable[[], None]) -> bool:
        try:
            step()
            return True
        except Exception:
            logger.exception(
                f"Probe {name} failed, keeping previous value", extra={"probe": name}
            )
            self.metrics.inc_probe_failures(name)
            return False

    def _calculate_total_size(self) -> None:
        self.store.set_total_size(self.size_probe.fetch_total_size())

    def _calculate_link_statuses(self) -> None:
        self.store.replace_link_statuses(self.status_probe.fetch_statuses())

    def run_once(self) -> None:
        """Run one tick on the calling thread, outside the schedule."""
        self._tick()
