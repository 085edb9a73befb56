"""
Monitoring module - exporter self-metrics and the Prometheus HTTP endpoint.
"""
from src.monitoring.metrics import (
    MetricsCollector,
    start_metrics_server,
    get_metrics_collector,
    reset_metrics,
)

__all__ = [
    "MetricsCollector",
    "start_metrics_server",
    "get_metrics_collector",
    "reset_metrics",
]
