#!/usr/bin/env python3
"""
Application Link Metrics Exporter
Periodically probes attachment storage and application link health, and
serves the last computed snapshot to Prometheus.
"""
import sys
import sqlite3
import argparse
from functools import partial
from typing import List

from prometheus_client import REGISTRY

from config.settings import settings
from src.common.logging_config import setup_logging
from src.common.exceptions import ConfigurationError
from src.common.shutdown import ShutdownManager
from src.common.correlation import set_component
from src.common.health import HealthServer, HealthRegistry, HealthCheck
from src.common.redis_client import create_redis_client_from_config
from src.monitoring.metrics import start_metrics_server
from src.scraper.evaluator import ScheduledMetricEvaluator
from src.scraper.probes import (
    ApplicationLink,
    ApplicationLinkStatusProbe,
    AttachmentSizeProbe,
    ManifestStatusResolver,
    StaticLinkRegistry,
)
from src.scraper.settings_source import (
    RedisSettingsSource,
    create_settings_source_from_config,
)

logger = setup_logging(
    __name__,
    level=settings.logging.level if settings else "INFO",
    fmt=settings.logging.format if settings else "json"
)

set_component("exporter")


def parse_link(value: str) -> ApplicationLink:
    """Parse ``NAME=URL`` into an ``ApplicationLink``."""
    name, sep, url = value.partition("=")
    if not sep or not name.strip() or not url.strip():
        raise argparse.ArgumentTypeError(f"Expected NAME=URL, got {value!r}")
    return ApplicationLink(name=name.strip(), rpc_url=url.strip())


def build_evaluator(cfg, database: str, links: List[ApplicationLink]) -> ScheduledMetricEvaluator:
    """
    Wire probes and the settings source into an evaluator.

    Raises:
        ConfigurationError: If no attachment database is configured
    """
    if not database:
        raise ConfigurationError("An attachment database path is required")

    redis_client = None
    if cfg.scraper.settings_backend == "redis":
        redis_client = create_redis_client_from_config(cfg)

    size_probe = AttachmentSizeProbe(partial(sqlite3.connect, database))
    status_probe = ApplicationLinkStatusProbe(
        StaticLinkRegistry(links),
        ManifestStatusResolver(
            timeout=cfg.manifest.timeout_seconds,
            max_attempts=cfg.manifest.max_attempts
        )
    )

    return ScheduledMetricEvaluator(
        settings_source=create_settings_source_from_config(cfg, redis_client),
        size_probe=size_probe,
        status_probe=status_probe,
        delay_unit_seconds=cfg.scraper.delay_unit_seconds,
        shutdown_grace_seconds=cfg.scraper.shutdown_grace_seconds,
    )


def main():
    """Main entry point."""
    if settings is None:
        logger.critical("Settings could not be loaded, check the environment")
        sys.exit(1)

    parser = argparse.ArgumentParser(
        description="Application Link Metrics Exporter - periodic probes served to Prometheus"
    )
    parser.add_argument(
        "--delay",
        type=int,
        default=None,
        help="Scrape delay in minutes; stored in the settings source (<= 0 disables scraping)"
    )
    parser.add_argument(
        "--database",
        default=settings.database.path,
        help=f"SQLite attachment database (default: {settings.database.path})"
    )
    parser.add_argument(
        "--link",
        dest="links",
        type=parse_link,
        action="append",
        default=[],
        metavar="NAME=URL",
        help="Application link to monitor (repeatable)"
    )
    parser.add_argument(
        "--metrics-port",
        type=int,
        default=settings.monitoring.metrics_port,
        help=f"Prometheus port (default: {settings.monitoring.metrics_port})"
    )
    parser.add_argument(
        "--health-port",
        type=int,
        default=settings.monitoring.health_check_port,
        help=f"Health check port (default: {settings.monitoring.health_check_port})"
    )

    args = parser.parse_args()

    try:
        evaluator = build_evaluator(settings, args.database, args.links)
    except ConfigurationError as e:
        parser.error(str(e))

    if args.delay is not None:
        evaluator.set_delay(args.delay)

    # Shared with the self-metrics
    evaluator.register(REGISTRY)
    start_metrics_server(port=args.metrics_port)

    health_registry = HealthRegistry("exporter")
    health_registry.register_check(
        HealthCheck("scraper", lambda: evaluator.store.has_run, critical=True)
    )
    health_registry.register_stats_provider("scraper", evaluator.get_status)
    source = evaluator.settings_source
    if isinstance(source, RedisSettingsSource):
        health_registry.register_check(
            HealthCheck("redis", source.redis.ping, critical=False)
        )
    health_server = HealthServer(health_registry, port=args.health_port)
    health_server.start()

    shutdown = ShutdownManager(timeout=settings.scraper.shutdown_grace_seconds + 5)
    shutdown.register(health_server.stop, priority=5, name="health-server")
    shutdown.register(evaluator.teardown, priority=10, name="scraper")
    if isinstance(source, RedisSettingsSource):
        shutdown.register(source.redis.close, priority=30, name="redis")
    shutdown.install_signal_handlers()

    evaluator.init()
    logger.info(f"Exporter running with {len(args.links)} application link(s)")

    shutdown.wait_for_shutdown()
    logger.info("Exporter terminated")
    sys.exit(0)


if __name__ == "__main__":
    main()
