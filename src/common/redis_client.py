"""
Redis client wrapper with connection pooling and retry logic.
Used as the persistence backend for scraper settings.
"""
import redis
from redis.connection import ConnectionPool
from redis.exceptions import RedisError, ConnectionError as RedisConnectionError
from typing import Optional, Any
from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type
)

from src.common.logging_config import get_logger
from src.common.exceptions import RedisConnectionError as CustomRedisConnectionError

logger = get_logger(__name__)


class RedisClient:
    """
    Redis client wrapper with connection pooling and retry logic.
    Thread-safe implementation using connection pooling.
    """

    def __init__(
        self,
        host: str = "localhost",
        port: int = 6379,
        password: Optional[str] = None,
        db: int = 0,
        max_connections: int = 5
    ):
        """
        Initialize Redis client with connection pool.

        Args:
            host: Redis server host
            port: Redis server port
            password: Optional password for authentication
            db: Database number
            max_connections: Maximum connections in pool
        """
        self.pool = ConnectionPool(
            host=host,
            port=port,
            password=password,
            db=db,
            max_connections=max_connections,
            decode_responses=True,
            socket_connect_timeout=5,
            socket_timeout=5
        )
        self.client = redis.Redis(connection_pool=self.pool)
        logger.info(f"Redis client initialized: {host}:{port}, db={db}")

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_exception_type((RedisError, RedisConnectionError))
    )
    def ping(self) -> bool:
        """
        Health check - test Redis connectivity.

        Raises:
            CustomRedisConnectionError: If connection fails
        """
        try:
            return self.client.ping()
        except Exception as e:
            logger.error(f"Redis ping failed: {e}")
            raise CustomRedisConnectionError(f"Redis connection failed: {e}")

    def set(self, key: str, value: Any, ex: Optional[int] = None) -> bool:
        """
        Set key-value with optional expiration.

        Args:
            key: Key name
            value: Value to store
            ex: Expiration in seconds

        Returns:
            True if successful
        """
        try:
            return self.client.set(key, value, ex=ex)
        except Exception as e:
            logger.error(f"SET failed for key {key}: {e}")
            raise CustomRedisConnectionError(f"Failed to set key: {e}")

    def get(self, key: str) -> Optional[str]:
        """
        Get value by key.

        Returns:
            Value or None if key doesn't exist
        """
        try:
            return self.client.get(key)
        except Exception as e:
            logger.error(f"GET failed for key {key}: {e}")
            raise CustomRedisConnectionError(f"Failed to get key: {e}")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def close(self):
        """Close connection pool"""
        try:
            self.pool.disconnect()
            logger.info("Redis connection pool closed")
        except Exception as e:
            logger.warning(f"Error closing Redis connection pool: {e}")


def create_redis_client_from_config(config) -> RedisClient:
    """
    Create Redis client from configuration object.

    Args:
        config: Configuration object with redis settings

    Returns:
        Configured RedisClient instance
    """
    return RedisClient(
        host=config.redis.host,
        port=config.redis.port,
        password=config.redis.password,
        db=config.redis.db
    )
