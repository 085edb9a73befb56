"""
Scrape interval persistence.

The delay (in minutes) lives in a settings source; the scraper reads it at
start-up and the admin surface writes it. Writing the delay does not restart
the scraper by itself.
"""
import threading
from typing import Optional
from abc import ABC, abstractmethod

from src.common.exceptions import SettingsError
from src.common.logging_config import get_logger
from src.common.redis_client import RedisClient

logger = get_logger(__name__)


class SettingsSource(ABC):
    """Reads and persists the scrape delay in minutes."""

    @abstractmethod
    def get_delay(self) -> int:
        ...

    @abstractmethod
    def set_delay(self, delay: int) -> None:
        ...


class InMemorySettingsSource(SettingsSource):
    """Process-local delay, lost on restart."""

    def __init__(self, delay: int = 1):
        self._delay = int(delay)
        self._lock = threading.Lock()

    def get_delay(self) -> int:
        with self._lock:
            return self._delay

    def set_delay(self, delay: int) -> None:
        with self._lock:
            self._delay = int(delay)
        logger.info(f"Scrape delay set to {delay} minute(s)")


class RedisSettingsSource(SettingsSource):
    """
    Persists the delay in Redis under ``<key_prefix>:delay_minutes``.

    Args:
        redis_client: Redis client instance
        key_prefix: Namespace for the settings keys
        default_delay: Returned while no value has been stored
    """

    def __init__(
        self,
        redis_client: RedisClient,
        key_prefix: str = "applink_exporter",
        default_delay: int = 1
    ):
        self.redis = redis_client
        self.key_prefix = key_prefix
        self.default_delay = int(default_delay)

        logger.info(f"Redis settings source initialized (prefix={key_prefix})")

    @property
    def delay_key(self) -> str:
        return f"{self.key_prefix}:delay_minutes"

    def get_delay(self) -> int:
        """
        Get the stored delay.

        Returns:
            Stored delay, or ``default_delay`` if none is stored

        Raises:
            SettingsError: If Redis fails or the stored value is not an integer
        """
        try:
            value = self.redis.get(self.delay_key)
        except Exception as e:
            logger.error(f"Failed to read scrape delay: {e}")
            raise SettingsError(f"Failed to read scrape delay: {e}")

        if value is None or value == "":
            logger.debug(f"No stored delay, using default {self.default_delay}")
            return self.default_delay

        try:
            return int(value)
        except (TypeError, ValueError):
            raise SettingsError(f"Stored scrape delay is not an integer: {value!r}")

    def set_delay(self, delay: int) -> None:
        """
        Store the delay.

        Raises:
            SettingsError: If storage fails
        """
        try:
            self.redis.set(self.delay_key, str(int(delay)))
            logger.info(f"Stored scrape delay: {delay} minute(s)")
        except Exception as e:
            logger.error(f"Failed to store scrape delay: {e}")
            raise SettingsError(f"Failed to store scrape delay: {e}")


def create_settings_source_from_config(
    config,
    redis_client: Optional[RedisClient] = None
) -> SettingsSource:
    """
    Create the configured settings source.

    Args:
        config: Settings object with a ``scraper`` section
        redis_client: Required when ``scraper.settings_backend`` is "redis"
    """
    scraper_cfg = config.scraper
    if scraper_cfg.settings_backend == "redis":
        if redis_client is None:
            raise SettingsError("Redis settings backend requires a Redis client")
        return RedisSettingsSource(
            redis_client,
            key_prefix=scraper_cfg.settings_key_prefix,
            default_delay=scraper_cfg.delay_minutes
        )
    return InMemorySettingsSource(scraper_cfg.delay_minutes)
