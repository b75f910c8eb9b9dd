import pytest
from unittest.mock import AsyncMock, patch
import redis.asyncio as redis

from common.providers.locking.redis_lock import RedisLock
from common.providers.locking.factory import get_lock_provider


class TestRedisLock:
    """Unit tests for Redis distributed lock."""

    @pytest.fixture
    def redis_lock(self):
        return RedisLock(url="redis://localhost:6379/0")

    @pytest.fixture
    def mock_redis_client(self):
        return AsyncMock(spec=redis.Redis)

    async def test_acquire_lock_success(self, redis_lock, mock_redis_client):
        """Test successful lock acquisition."""
        redis_lock._client = mock_redis_client
        redis_lock._connected = True
        mock_redis_client.set = AsyncMock(return_value=True)

        token = await redis_lock.acquire_lock("billing:nightly_sweep", 3600)

        assert token is not None
        assert len(token) == 36  # UUID length
        mock_redis_client.set.assert_called_once_with(
            "lock:billing:nightly_sweep", token, nx=True, ex=3600
        )

    async def test_acquire_lock_already_locked(self, redis_lock, mock_redis_client):
        """Test lock acquisition when another sweep holds the lock."""
        redis_lock._client = mock_redis_client
        redis_lock._connected = True
        mock_redis_client.set = AsyncMock(return_value=None)

        token = await redis_lock.acquire_lock("billing:nightly_sweep", 3600)

        assert token is None

    async def test_acquire_lock_redis_error(self, redis_lock, mock_redis_client):
        """Redis errors are reported as a lock that was not acquired."""
        redis_lock._client = mock_redis_client
        redis_lock._connected = True
        mock_redis_client.set = AsyncMock(side_effect=redis.ConnectionError("down"))

        token = await redis_lock.acquire_lock("billing:nightly_sweep", 3600)

        assert token is None

    async def test_release_lock_success(self, redis_lock, mock_redis_client):
        """Test successful lock release."""
        redis_lock._client = mock_redis_client
        redis_lock._connected = True
        mock_redis_client.eval = AsyncMock(return_value=1)

        result = await redis_lock.release_lock("billing:nightly_sweep", "test_token")

        assert result is True
        args = mock_redis_client.eval.call_args.args
        assert args[1:] == (1, "lock:billing:nightly_sweep", "test_token")

    async def test_release_lock_token_mismatch(self, redis_lock, mock_redis_client):
        """Test lock release with wrong token."""
        redis_lock._client = mock_redis_client
        redis_lock._connected = True
        mock_redis_client.eval = AsyncMock(return_value=0)

        result = await redis_lock.release_lock("billing:nightly_sweep", "wrong_token")

        assert result is False

    async def test_auto_connect_on_operation(self, redis_lock):
        """Test that operations trigger connection if not connected."""
        with patch.object(redis_lock, "connect") as mock_connect:
            mock_connect.return_value = True
            redis_lock._client = AsyncMock()
            redis_lock._client.set = AsyncMock(return_value=True)

            await redis_lock.acquire_lock("billing:nightly_sweep", 30)

            mock_connect.assert_called_once()

    async def test_unreachable_redis_acquires_nothing(self, redis_lock):
        """A failed connection means no lock and no sweep."""
        with patch.object(redis_lock, "connect", AsyncMock(return_value=False)):
            assert await redis_lock.acquire_lock("billing:nightly_sweep", 30) is None
            assert await redis_lock.release_lock("billing:nightly_sweep", "t") is False


class TestLockFactory:
    """Test the lock provider factory."""

    def test_get_lock_provider_returns_redis_lock(self):
        """Test that factory returns Redis lock provider."""
        provider = get_lock_provider()
        assert isinstance(provider, RedisLock)

    def test_get_lock_provider_singleton(self):
        """Test that factory returns the same instance (singleton)."""
        provider1 = get_lock_provider()
        provider2 = get_lock_provider()
        assert provider1 is provider2
