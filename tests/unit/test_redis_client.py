"""
Unit tests for RedisClient wrapper.
Uses mocking to test without requiring actual Redis instance.
"""
import pytest
from unittest.mock import patch, MagicMock
import redis

from src.common.redis_client import RedisClient, create_redis_client_from_config
from src.common.exceptions import RedisConnectionError as CustomRedisConnectionError


@pytest.fixture
def mock_redis_pool():
    """Mock Redis connection pool"""
    with patch('src.common.redis_client.ConnectionPool') as mock_pool:
        yield mock_pool


@pytest.fixture
def mock_redis_client():
    """Mock Redis client instance"""
    with patch('src.common.redis_client.redis.Redis') as mock_redis:
        mock_instance = MagicMock()
        mock_redis.return_value = mock_instance
        yield mock_instance


class TestRedisClientInit:
    """Test RedisClient initialization"""

    def test_init_with_defaults(self, mock_redis_pool, mock_redis_client):
        RedisClient()

        call_kwargs = mock_redis_pool.call_args[1]
        assert call_kwargs['host'] == 'localhost'
        assert call_kwargs['port'] == 6379
        assert call_kwargs['db'] == 0
        assert call_kwargs['decode_responses'] is True

    def test_from_config(self, mock_redis_pool, mock_redis_client):
        config = MagicMock()
        config.redis.host = "redis.internal"
        config.redis.port = 6380
        config.redis.password = "secret"
        config.redis.db = 2

        create_redis_client_from_config(config)

        call_kwargs = mock_redis_pool.call_args[1]
        assert call_kwargs['host'] == "redis.internal"
        assert call_kwargs['port'] == 6380
        assert call_kwargs['password'] == "secret"
        assert call_kwargs['db'] == 2


class TestRedisClientPing:
    """Test ping/health check"""

    def test_ping_success(self, mock_redis_pool, mock_redis_client):
        mock_redis_client.ping.return_value = True
        assert RedisClient().ping() is True

    def test_ping_failure(self, mock_redis_pool, mock_redis_client):
        mock_redis_client.ping.side_effect = redis.ConnectionError("Connection refused")

        with pytest.raises(CustomRedisConnectionError):
            RedisClient().ping()


class TestRedisClientSetGet:
    """Test SET/GET operations"""

    def test_set_get(self, mock_redis_pool, mock_redis_client):
        mock_redis_client.set.return_value = True
        mock_redis_client.get.return_value = "5"

        client = RedisClient()

        assert client.set("applink_exporter:delay_minutes", "5") is True
        assert client.get("applink_exporter:delay_minutes") == "5"

    def test_get_missing(self, mock_redis_pool, mock_redis_client):
        mock_redis_client.get.return_value = None
        assert RedisClient().get("missing") is None

    def test_set_failure(self, mock_redis_pool, mock_redis_client):
        mock_redis_client.set.side_effect = redis.ConnectionError("down")
        with pytest.raises(CustomRedisConnectionError):
            RedisClient().set("k", "v")

    def test_get_failure(self, mock_redis_pool, mock_redis_client):
        mock_redis_client.get.side_effect = redis.TimeoutError("slow")
        with pytest.raises(CustomRedisConnectionError):
            RedisClient().get("k")


class TestRedisClientContextManager:
    """Test context manager functionality"""

    def test_context_manager(self, mock_redis_pool, mock_redis_client):
        mock_pool_instance = MagicMock()
        mock_redis_pool.return_value = mock_pool_instance

        with RedisClient() as client:
            assert client is not None

        mock_pool_instance.disconnect.assert_called_once()
