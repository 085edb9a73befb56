"""
Graceful shutdown manager with ordered teardown callbacks.
Turns SIGINT/SIGTERM into a single, ordered teardown of the exporter.
"""
import signal
import threading
import time
from typing import Callable, List, Tuple, Optional
from enum import Enum

from src.common.logging_config import get_logger

logger = get_logger(__name__)


class ShutdownState(Enum):
    """Shutdown manager states"""
    RUNNING = "running"
    SHUTTING_DOWN = "shutting_down"
    STOPPED = "stopped"


class ShutdownManager:
    """
    Process-wide shutdown coordinator.

    Priority levels (lower = executed first):
        0-9:   Stop serving (health endpoint)
        10-19: Stop the scraper and wait for the running tick
        30-39: Close external connections (Redis, database)

    Usage:
        shutdown = ShutdownManager(timeout=10)
        shutdown.register(evaluator.teardown, priority=10, name="scraper")
        shutdown.install_signal_handlers()
        shutdown.wait_for_shutdown()
    """

    _instance: Optional['ShutdownManager'] = None
    _lock = threading.Lock()

    def __new__(cls, *args, **kwargs):
        """One shutdown manager per process."""
        with cls._lock:
            if cls._instance is None:
                cls._instance = super().__new__(cls)
                cls._instance._initialized = False
            return cls._instance

    def __init__(self, timeout: float = 10):
        """
        Args:
            timeout: Budget in seconds for running all callbacks
        """
        if self._initialized:
            return
        self._initialized = True

        self.timeout = timeout
        self.state = ShutdownState.RUNNING
        self._callbacks: List[Tuple[int, str, Callable]] = []
        self._state_lock = threading.Lock()
        self._shutdown_event = threading.Event()

        logger.info(f"ShutdownManager initialized (timeout={timeout}s)")

    @classmethod
    def reset(cls):
        """Drop the singleton (for testing)."""
        with cls._lock:
            cls._instance = None

    @property
    def is_running(self) -> bool:
        return self.state == ShutdownState.RUNNING

    def register(
        self,
        callback: Callable,
        priority: int = 20,
        name: str = "unnamed"
    ) -> None:
        self._callbacks.append((priority, name, callback))
        self._callbacks.sort(key=lambda x: x[0])
        logger.debug(f"Registered shutdown callback: {name} (priority={priority})")

    def install_signal_handlers(self) -> None:
        """Install SIGINT and SIGTERM handlers."""
        signal.signal(signal.SIGINT, self._signal_handler)
        signal.signal(signal.SIGTERM, self._signal_handler)
        logger.info("Signal handlers installed (SIGINT, SIGTERM)")

    def _signal_handler(self, signum: int, frame) -> None:
        sig_name = signal.Signals(signum).name
        logger.info(f"Received {sig_name}, initiating shutdown...")
        self.initiate_shutdown()

    def initiate_shutdown(self) -> None:
        """
        Run every callback once, in priority order.
        Safe to call from signal handlers and other threads; repeats are ignored.
        """
        with self._state_lock:
            if self.state != ShutdownState.RUNNING:
                logger.warning("Shutdown already in progress, ignoring")
                return
            self.state = ShutdownState.SHUTTING_DOWN

        self._shutdown_event.set()
        self._execute_callbacks()

        with self._state_lock:
            self.state = ShutdownState.STOPPED
        logger.info("Shutdown complete")

    def _execute_callbacks(self) -> None:
        deadline = time.monotonic() + self.timeout

        for priority, name, callback in self._callbacks:
            if time.monotonic() >= deadline:
                logger.error(
                    f"Shutdown timeout ({self.timeout}s) exceeded, "
                    f"skipping remaining callbacks"
                )
                break

            logger.info(f"Executing shutdown callback: {name} (priority={priority})")
            try:
                callback()
            except Exception as e:
                logger.error(f"Callback failed: {name} - {e}")

    def wait_for_shutdown(self, timeout: Optional[float] = None) -> bool:
        """
        Block until shutdown is initiated.

        Returns:
            True if shutdown was initiated, False on timeout
        """
        return self._shutdown_event.wait(timeout=timeout)

    def get_status(self) -> dict:
        return {
            "state": self.state.value,
            "is_running": self.is_running,
            "callback_names": [name for _, name, _ in self._callbacks],
            "timeout": self.timeout
        }
