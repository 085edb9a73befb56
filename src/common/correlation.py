"""
Correlation ID management for scrape ticks.
Every tick runs inside its own correlation context so the log lines of one
probe sequence can be grouped together.
"""
import uuid
import logging
from typing import Optional
from contextvars import ContextVar

_correlation_id_var: ContextVar[Optional[str]] = ContextVar(
    'correlation_id', default=None
)

_component_var: ContextVar[Optional[str]] = ContextVar(
    'component', default=None
)


def generate_correlation_id(prefix: str = "") -> str:
    """
    Generate a new unique correlation ID.

    Args:
        prefix: Optional prefix, e.g. "tick"

    Returns:
        UUID4 string, prefixed with "<prefix>-" when a prefix is given
    """
    value = str(uuid.uuid4())
    return f"{prefix}-{value}" if prefix else value


def set_correlation_id(correlation_id: str) -> None:
    _correlation_id_var.set(correlation_id)


def get_correlation_id() -> Optional[str]:
    return _correlation_id_var.get()


def clear_correlation_id() -> None:
    _correlation_id_var.set(None)


def set_component(component: str) -> None:
    """
    Set the component name for the current context.

    Args:
        component: Component name (e.g., "exporter", "scraper", "health")
    """
    _component_var.set(component)


def get_component() -> Optional[str]:
    return _component_var.get()


class CorrelationFilter(logging.Filter):
    """
    Logging filter that injects correlation_id and component into log records.
    Reads from ContextVar so nothing has to be passed explicitly.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = get_correlation_id() or ""
        record.component = get_component() or ""
        return True


class CorrelationContext:
    """
    Context manager for setting correlation ID within a scope.
    Restores the previous correlation ID (and component) on exit.

    Usage:
        with CorrelationContext(prefix="tick", component="scraper") as ctx:
            logger.info("probe sequence started")
    """

    def __init__(
        self,
        correlation_id: Optional[str] = None,
        prefix: str = "",
        component: Optional[str] = None
    ):
        self.correlation_id = correlation_id or generate_correlation_id(prefix)
        self.component = component
        self._previous_id: Optional[str] = None
        self._previous_component: Optional[str] = None

    def __enter__(self) -> 'CorrelationContext':
        self._previous_id = get_correlation_id()
        set_correlation_id(self.correlation_id)
        if self.component is not None:
            self._previous_component = get_component()
            set_component(self.component)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if self._previous_id is not None:
            set_correlation_id(self._previous_id)
        else:
            clear_correlation_id()
        if self.component is not None:
            _component_var.set(self._previous_component)
