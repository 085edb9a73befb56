"""
Self-observability metrics for the exporter and the Prometheus HTTP endpoint.

The scraped domain gauges are served by ``src.scraper.collector``; this module
tracks how the scraper itself behaves (ticks run, probe failures, tick
duration) and starts the HTTP server Prometheus pulls from.

Usage:
    from src.monitoring.metrics import get_metrics_collector, start_metrics_server

    start_metrics_server(port=9090, registry=registry)

    metrics = get_metrics_collector()
    with metrics.tick_duration_timer():
        run_probes()
    metrics.inc_ticks()
"""
import threading
from typing import Optional

from prometheus_client import (
    Counter,
    Histogram,
    Gauge,
    Info,
    start_http_server,
    CollectorRegistry,
    REGISTRY,
)

from src.common.logging_config import get_logger

logger = get_logger(__name__)

# ---------------------------------------------------------------------------
# Prometheus metric definitions (module-level singletons)
# ---------------------------------------------------------------------------

SCRAPE_TICKS_TOTAL = Counter(
    "applink_exporter_scrape_ticks_total",
    "Total number of scrape ticks executed",
)

PROBE_FAILURES_TOTAL = Counter(
    "applink_exporter_probe_failures_total",
    "Total number of probe failures contained by the scraper",
    ["probe"],
)

SCRAPER_RESTARTS_TOTAL = Counter(
    "applink_exporter_scraper_restarts_total",
    "Total number of scraper restarts with a new delay",
)

TICK_DURATION = Histogram(
    "applink_exporter_tick_duration_seconds",
    "Duration of a full probe sequence in seconds",
    buckets=(0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0),
)

SCRAPER_ACTIVE = Gauge(
    "applink_exporter_scraper_active",
    "1 while a periodic scrape task is scheduled, 0 otherwise",
)

BUILD_INFO = Info(
    "applink_exporter",
    "Application link metrics exporter build info",
)

# ---------------------------------------------------------------------------
# MetricsCollector: thin convenience wrapper around the raw metrics
# ---------------------------------------------------------------------------


class MetricsCollector:
    """
    Convenience wrapper around the exporter's own Prometheus metrics.
    All methods are thread-safe (Prometheus client handles it).
    """

    def __init__(self) -> None:
        BUILD_INFO.info({
            "version": "1.0.0",
            "component": "applink_exporter",
        })

    def inc_ticks(self, count: int = 1) -> None:
        SCRAPE_TICKS_TOTAL.inc(count)

    def inc_probe_failures(self, probe: str, count: int = 1) -> None:
        PROBE_FAILURES_TOTAL.labels(probe=probe).inc(count)

    def inc_restarts(self, count: int = 1) -> None:
        SCRAPER_RESTARTS_TOTAL.inc(count)

    def tick_duration_timer(self):
        """
        Return a context-manager / decorator that measures tick duration.

        Usage:
            with metrics.tick_duration_timer():
                tick()
        """
        return TICK_DURATION.time()

    def set_scraper_active(self, active: bool) -> None:
        SCRAPER_ACTIVE.set(1 if active else 0)

    # -- Accessors for testing ----------------------------------------------

    @staticmethod
    def get_ticks_total() -> float:
        return SCRAPE_TICKS_TOTAL._value.get()

    @staticmethod
    def get_probe_failures(probe: str) -> float:
        return PROBE_FAILURES_TOTAL.labels(probe=probe)._value.get()

    @staticmethod
    def get_restarts_total() -> float:
        return SCRAPER_RESTARTS_TOTAL._value.get()

    @staticmethod
    def get_scraper_active() -> float:
        return SCRAPER_ACTIVE._value.get()


# ---------------------------------------------------------------------------
# Module-level helpers
# ---------------------------------------------------------------------------

_metrics_collector: Optional[MetricsCollector] = None
_metrics_lock = threading.Lock()


def get_metrics_collector() -> MetricsCollector:
    """
    Return the singleton ``MetricsCollector`` instance.
    Creates one on first call (thread-safe).
    """
    global _metrics_collector
    if _metrics_collector is None:
        with _metrics_lock:
            if _metrics_collector is None:
                _metrics_collector = MetricsCollector()
    return _metrics_collector


def start_metrics_server(port: int = 9090, registry: CollectorRegistry = REGISTRY) -> None:
    """
    Start the Prometheus metrics HTTP server on *port*.

    Thin wrapper around ``prometheus_client.start_http_server`` that catches
    ``OSError`` when the port is already in use.
    """
    try:
        start_http_server(port, registry=registry)
        logger.info(
            f"Prometheus metrics server started on port {port} "
            f"(http://localhost:{port}/metrics)"
        )
    except OSError as exc:
        logger.error(f"Failed to start metrics server on port {port}: {exc}")


def reset_metrics() -> None:
    """
    Reset all counters / gauges to zero.
    Useful in test suites to get deterministic values.
    """
    global _metrics_collector
    for c in (SCRAPE_TICKS_TOTAL, SCRAPER_RESTARTS_TOTAL):
        c._value.set(0)

    SCRAPER_ACTIVE._value.set(0)
    PROBE_FAILURES_TOTAL._metrics.clear()

    _metrics_collector = None
