"""
Scraper module - periodic probe scheduling and the metrics snapshot.
"""
from src.scraper.evaluator import ScheduledMetricEvaluator
from src.scraper.scheduler import PeriodicScraper
from src.scraper.snapshot import MetricsSnapshotStore, NEVER_RUN
from src.scraper.collector import SnapshotCollector

__all__ = [
    "ScheduledMetricEvaluator",
    "PeriodicScraper",
    "MetricsSnapshotStore",
    "NEVER_RUN",
    "SnapshotCollector",
]
