"""
Unit tests for structured logging configuration.
"""
import logging
import json

from src.common.logging_config import JSONFormatter, setup_logging, get_logger
from src.common.correlation import CorrelationFilter


def make_record(msg="msg", args=(), level=logging.INFO, exc_info=None):
    return logging.LogRecord(
        name="test.logger", level=level, pathname="test.py", lineno=42,
        msg=msg, args=args, exc_info=exc_info
    )


class TestJSONFormatter:
    """Test JSONFormatter output"""

    def setup_method(self):
        self.formatter = JSONFormatter()

    def test_format_basic_fields(self):
        data = json.loads(self.formatter.format(make_record("Tick %s", ("done",))))

        assert data["level"] == "INFO"
        assert data["logger"] == "test.logger"
        assert data["message"] == "Tick done"
        assert data["line"] == 42
        assert "thread" in data
        assert data["timestamp"].endswith("Z")

    def test_format_includes_correlation_id(self):
        record = make_record()
        record.correlation_id = "tick-abc"
        data = json.loads(self.formatter.format(record))
        assert data["correlation_id"] == "tick-abc"

    def test_format_excludes_empty_correlation_id(self):
        record = make_record()
        record.correlation_id = ""
        data = json.loads(self.formatter.format(record))
        assert "correlation_id" not in data

    def test_format_includes_component(self):
        record = make_record()
        record.component = "scraper"
        data = json.loads(self.formatter.format(record))
        assert data["component"] == "scraper"

    def test_format_includes_probe(self):
        record = make_record()
        record.probe = "attachment_size"
        data = json.loads(self.formatter.format(record))
        assert data["probe"] == "attachment_size"

    def test_format_includes_exception(self):
        try:
            raise ValueError("db down")
        except ValueError:
            import sys
            exc_info = sys.exc_info()

        data = json.loads(self.formatter.format(
            make_record("probe failed", level=logging.ERROR, exc_info=exc_info)
        ))
        assert "ValueError: db down" in data["exception"]


class TestSetupLogging:
    """Test setup_logging function"""

    def test_sets_level(self):
        logger = setup_logging("test.level", level="WARNING")
        assert logger.level == logging.WARNING

    def test_uses_json_formatter_by_default(self):
        logger = setup_logging("test.formatter")
        assert isinstance(logger.handlers[0].formatter, JSONFormatter)

    def test_text_format(self):
        logger = setup_logging("test.text", fmt="text")
        formatter = logger.handlers[0].formatter
        assert not isinstance(formatter, JSONFormatter)
        assert "%(threadName)s" in formatter._fmt

    def test_attaches_correlation_filter(self):
        logger = setup_logging("test.filter_attach")
        assert any(isinstance(f, CorrelationFilter) for f in logger.filters)

    def test_no_duplicate_handlers(self):
        setup_logging("test.dedup")
        logger = setup_logging("test.dedup")
        assert len(logger.handlers) == 1

    def test_does_not_propagate(self):
        assert setup_logging("test.propagate").propagate is False


class TestGetLogger:
    """Test get_logger function"""

    def test_get_logger_with_level(self):
        logger = get_logger("test.get_level", level="ERROR")
        assert logger.level == logging.ERROR

    def test_get_logger_creates_new_if_no_handlers(self):
        name = "test.get_new_logger_unique_7"
        logging.getLogger(name).handlers.clear()
        assert len(get_logger(name).handlers) > 0

    def test_get_logger_reuses_configured_logger(self):
        first = setup_logging("test.reuse", level="DEBUG")
        second = get_logger("test.reuse")
        assert first is second
        assert second.level == logging.DEBUG
