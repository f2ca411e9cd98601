"""Unit tests for Redis client singleton."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from shared.redis_client import close_redis_client, get_redis_client


@pytest.fixture(autouse=True)
def clear_client_cache():
    get_redis_client.cache_clear()
    yield
    get_redis_client.cache_clear()


class TestRedisClient:
    """Tests for Redis client singleton."""

    def test_get_redis_client_is_singleton(self):
        """from_url is only called once; later calls reuse the pool."""
        with patch("shared.redis_client.redis.from_url") as mock_from_url:
            mock_from_url.return_value = MagicMock()

            first = get_redis_client()
            second = get_redis_client()

        assert first is second
        assert mock_from_url.call_count == 1

    def test_client_configured_from_settings(self):
        with patch("shared.redis_client.redis.from_url") as mock_from_url:
            with patch("shared.redis_client.get_settings") as mock_settings:
                mock_settings.return_value.REDIS_URL = "redis://test:6379/0"

                get_redis_client()

        mock_from_url.assert_called_once_with(
            "redis://test:6379/0",
            max_connections=20,
            decode_responses=True,
            retry_on_timeout=True,
            health_check_interval=30,
        )


class TestCloseRedisClient:
    @pytest.mark.asyncio
    async def test_closes_pool(self):
        client = MagicMock()
        client.aclose = AsyncMock()

        with patch("shared.redis_client.redis.from_url", return_value=client):
            await close_redis_client()

        client.aclose.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_close_errors_are_logged_not_raised(self):
        client = MagicMock()
        client.aclose = AsyncMock(side_effect=ConnectionError("gone"))

        with patch("shared.redis_client.redis.from_url", return_value=client):
            await close_redis_client()
