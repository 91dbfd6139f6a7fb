"""
Unit tests for store client construction.
"""

from unittest.mock import MagicMock, patch

import pytest

from cache_client import BatchCacheClient, CacheClient, create_cache, create_client
from cache_client.factory import build_url
from shared.config import CacheSettings, RedisSettings


REDIS_ENV = ["REDIS_URL", "REDIS_HOST", "REDIS_PORT", "REDIS_PASSWORD", "REDIS_TLS"]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Start every test without REDIS_* variables."""
    for name in REDIS_ENV:
        monkeypatch.delenv(name, raising=False)


def echo(url):
    return url


class TestCreateClient:
    """Test cases for create_client."""

    def test_uses_url(self):
        """Test an explicit URL is used verbatim."""
        settings = RedisSettings(url="redis://localhost:6379")
        assert create_client(settings, redis_factory=echo) == "redis://localhost:6379"

    def test_uses_env_url(self, monkeypatch):
        """Test REDIS_URL is picked up from the environment."""
        monkeypatch.setenv("REDIS_URL", "rediss://localhost:3333")
        assert create_client(redis_factory=echo) == "rediss://localhost:3333"

    def test_uses_env_options(self, monkeypatch):
        """Test host, port and TLS come from the environment."""
        monkeypatch.setenv("REDIS_HOST", "127.0.0.0")
        monkeypatch.setenv("REDIS_PORT", "3333")
        monkeypatch.setenv("REDIS_TLS", "true")

        assert create_client(redis_factory=echo) == "rediss://127.0.0.0:3333"

    def test_default_options(self):
        """Test the default URL points at a local store."""
        assert create_client(redis_factory=echo) == "redis://localhost:6379"

    def test_password(self):
        """Test the password is URL encoded into the query string."""
        settings = RedisSettings(password="p@ss word")
        assert build_url(settings) == "redis://localhost:6379?password=p%40ss%20word"

    def test_tls(self):
        """Test TLS switches the scheme."""
        assert build_url(RedisSettings(tls=True)) == "rediss://localhost:6379"

    def test_default_factory_builds_redis_client(self):
        """Test the default factory hands the URL to redis.asyncio."""
        with patch("cache_client.factory.redis.from_url") as mock_from_url:
            create_client(RedisSettings(url="redis://cache:6379/1"))

        mock_from_url.assert_called_once()
        assert mock_from_url.call_args.args[0] == "redis://cache:6379/1"
        assert mock_from_url.call_args.kwargs["decode_responses"] is False

    def test_real_client_has_store_methods(self):
        """Test the default factory returns a client exposing the store interface."""
        client = create_client(RedisSettings(url="redis://localhost:6379"))

        for name in ["get", "set", "mget", "delete", "pipeline", "scan_iter", "ping"]:
            assert callable(getattr(client, name))


class TestCreateCache:
    """Test cases for create_cache."""

    def test_batch_client_by_default(self):
        """Test a batch client wired to the created store client."""
        store = MagicMock()
        with patch("cache_client.factory.create_client", return_value=store):
            cache = create_cache(CacheSettings(default_ttl=10))

        assert isinstance(cache, BatchCacheClient)
        assert cache.client is store
        assert cache.default_ttl == 10

    def test_single_client(self):
        """Test batch=False builds the single-key client."""
        cache = create_cache(batch=False, client=MagicMock(), hash_uuids=False)

        assert type(cache) is CacheClient
        assert cache.codec.hash_uuids is False

    def test_service_name_configures_logging(self):
        """Test logging is configured at the settings log level."""
        with patch("cache_client.factory.configure_logging") as mock_configure:
            create_cache(CacheSettings(log_level="debug"), client=MagicMock(), service_name="orders")

        mock_configure.assert_called_once_with("orders", "debug")

    def test_no_logging_setup_by_default(self):
        """Test the host application's logging is left alone."""
        with patch("cache_client.factory.configure_logging") as mock_configure:
            create_cache(client=MagicMock())

        mock_configure.assert_not_called()
