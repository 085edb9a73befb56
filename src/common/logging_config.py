"""
Structured logging configuration.
Emits JSON (default) or plain text lines with correlation ID support, so every
line written during one scrape tick can be tied back to that tick.
"""
import logging
import sys
import json
from datetime import datetime, timezone
from typing import Optional

from src.common.correlation import CorrelationFilter

TEXT_FORMAT = "%(asctime)s [%(threadName)s] [%(name)s] [%(levelname)s] %(message)s"


class JSONFormatter(logging.Formatter):
    """JSON formatter for structured logging with correlation tracking"""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON with correlation, component and probe fields"""
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "thread": record.threadName,
            "function": record.funcName,
            "line": record.lineno
        }

        # Injected by CorrelationFilter
        correlation_id = getattr(record, 'correlation_id', None)
        if correlation_id:
            log_data['correlation_id'] = correlation_id

        component = getattr(record, 'component', None)
        if component:
            log_data['component'] = component

        # Passed via extra={"probe": ...} by the scraper
        if hasattr(record, 'probe'):
            log_data['probe'] = record.probe

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data)


def _make_formatter(fmt: str) -> logging.Formatter:
    if fmt == "text":
        return logging.Formatter(TEXT_FORMAT)
    return JSONFormatter()


def setup_logging(name: str, level: str = "INFO", fmt: str = "json") -> logging.Logger:
    """
    Configure structured logging for a component.

    Args:
        name: Logger name (usually __name__)
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        fmt: "json" or "text"

    Returns:
        Configured logger instance with correlation filter
    """
    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, level.upper()))

    # Remove existing handlers to avoid duplicates
    logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(_make_formatter(fmt))
    logger.addHandler(handler)

    if not any(isinstance(f, CorrelationFilter) for f in logger.filters):
        logger.addFilter(CorrelationFilter())

    logger.propagate = False

    return logger


def get_logger(name: str, level: Optional[str] = None) -> logging.Logger:
    """
    Get or create a logger with optional level override.

    Args:
        name: Logger name
        level: Optional log level override

    Returns:
        Logger instance with correlation filter
    """
    if level:
        return setup_logging(name, level)

    logger = logging.getLogger(name)
    if not logger.handlers:
        return setup_logging(name, "INFO")

    if not any(isinstance(f, CorrelationFilter) for f in logger.filters):
        logger.addFilter(CorrelationFilter())

    return logger
