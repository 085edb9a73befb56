"""
Unit tests for scrape delay settings sources.
"""
import pytest
from types import SimpleNamespace
from unittest.mock import MagicMock

from src.common.exceptions import SettingsError, RedisConnectionError
from src.scraper.settings_source import (
    InMemorySettingsSource,
    RedisSettingsSource,
    create_settings_source_from_config,
)


@pytest.fixture
def mock_redis():
    return MagicMock()


@pytest.fixture
def redis_source(mock_redis):
    return RedisSettingsSource(mock_redis, key_prefix="test", default_delay=7)


class TestInMemorySettingsSource:

    def test_default(self):
        assert InMemorySettingsSource().get_delay() == 1

    def test_set_and_get(self):
        source = InMemorySettingsSource(3)
        source.set_delay(0)
        assert source.get_delay() == 0


class TestRedisSettingsSource:

    def test_key(self, redis_source):
        assert redis_source.delay_key == "test:delay_minutes"

    def test_missing_value_uses_default(self, redis_source, mock_redis):
        mock_redis.get.return_value = None
        assert redis_source.get_delay() == 7
        mock_redis.get.assert_called_once_with("test:delay_minutes")

    def test_stored_value(self, redis_source, mock_redis):
        mock_redis.get.return_value = "15"
        assert redis_source.get_delay() == 15

    def test_negative_value_preserved(self, redis_source, mock_redis):
        mock_redis.get.return_value = "-1"
        assert redis_source.get_delay() == -1

    def test_garbage_value_raises(self, redis_source, mock_redis):
        mock_redis.get.return_value = "soon"
        with pytest.raises(SettingsError):
            redis_source.get_delay()

    def test_read_failure_raises(self, redis_source, mock_redis):
        mock_redis.get.side_effect = RedisConnectionError("down")
        with pytest.raises(SettingsError, match="down"):
            redis_source.get_delay()

    def test_set_delay(self, redis_source, mock_redis):
        redis_source.set_delay(5)
        mock_redis.set.assert_called_once_with("test:delay_minutes", "5")

    def test_set_failure_raises(self, redis_source, mock_redis):
        mock_redis.set.side_effect = RedisConnectionError("down")
        with pytest.raises(SettingsError):
            redis_source.set_delay(5)


class TestFactory:

    def _config(self, backend):
        return SimpleNamespace(scraper=SimpleNamespace(
            settings_backend=backend,
            settings_key_prefix="exp",
            delay_minutes=4,
        ))

    def test_memory_backend(self):
        source = create_settings_source_from_config(self._config("memory"))
        assert isinstance(source, InMemorySettingsSource)
        assert source.get_delay() == 4

    def test_redis_backend(self, mock_redis):
        source = create_settings_source_from_config(self._config("redis"), mock_redis)
        assert isinstance(source, RedisSettingsSource)
        assert source.key_prefix == "exp"
        assert source.default_delay == 4

    def test_redis_backend_requires_client(self):
        with pytest.raises(SettingsError):
            create_settings_source_from_config(self._config("redis"))
