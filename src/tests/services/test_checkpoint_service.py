"""Unit tests for checkpoint service."""

import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from redis.exceptions import ConnectionError as RedisConnectionError

from src.checkpoint_redis.config.redis_config import RedisSaverConfig
from src.checkpoint_redis.saver import AsyncRedisSaver
from src.checkpoint_redis.services.checkpoint_service import (
    CheckpointManager,
    create_checkpointer,
)


@pytest.fixture
def mock_config():
    """Create mock saver config."""
    config = MagicMock(spec=RedisSaverConfig)
    config.redis_url = "redis://localhost:6379/0"
    config.connection_pool_size = 10
    config.checkpoint_ttl = 120
    config.transactional_writes = True
    config.scan_count = 50
    return config


@pytest.mark.asyncio
class TestCheckpointManager:
    """Test suite for CheckpointManager."""

    async def test_init(self, mock_config):
        """Test initialization."""
        manager = CheckpointManager(config=mock_config)
        assert manager.config == mock_config
        assert manager._checkpointer is None
        assert manager._redis is None

    @patch("src.checkpoint_redis.services.checkpoint_service.Redis")
    @patch("src.checkpoint_redis.services.checkpoint_service.ConnectionPool")
    async def test_get_checkpointer(self, mock_pool_class, mock_redis_class, mock_config):
        """Test the saver is configured from config and cached."""
        mock_redis = AsyncMock()
        mock_redis.ping = AsyncMock()
        mock_redis_class.return_value = mock_redis

        manager = CheckpointManager(config=mock_config)

        checkpointer = await manager.get_checkpointer()
        checkpointer2 = await manager.get_checkpointer()

        assert isinstance(checkpointer, AsyncRedisSaver)
        assert checkpointer is checkpointer2
        assert checkpointer.connection is mock_redis
        assert checkpointer.ttl == 120
        assert checkpointer.scan_count == 50
        mock_pool_class.from_url.assert_called_once_with(
            "redis://localhost:6379/0",
            max_connections=10,
            decode_responses=False,
        )
        mock_redis.ping.assert_called_once()

    @patch("src.checkpoint_redis.services.checkpoint_service.asyncio.sleep", new_callable=AsyncMock)
    @patch("src.checkpoint_redis.services.checkpoint_service.Redis")
    @patch("src.checkpoint_redis.services.checkpoint_service.ConnectionPool")
    async def test_get_redis_retries(
        self, mock_pool_class, mock_redis_class, mock_sleep, mock_config
    ):
        """Test connection is retried before succeeding."""
        mock_redis = AsyncMock()
        mock_redis.ping = AsyncMock(side_effect=[RedisConnectionError("down"), True])
        mock_redis_class.return_value = mock_redis

        manager = CheckpointManager(config=mock_config)
        redis = await manager.get_redis()

        assert redis is mock_redis
        assert mock_redis.ping.call_count == 2
        mock_sleep.assert_called_once_with(1)

    @patch("src.checkpoint_redis.services.checkpoint_service.asyncio.sleep", new_callable=AsyncMock)
    @patch("src.checkpoint_redis.services.checkpoint_service.Redis")
    @patch("src.checkpoint_redis.services.checkpoint_service.ConnectionPool")
    async def test_get_redis_gives_up(
        self, mock_pool_class, mock_redis_class, mock_sleep, mock_config
    ):
        """Test the last connection error is raised after three attempts."""
        mock_redis = AsyncMock()
        mock_redis.ping = AsyncMock(side_effect=RedisConnectionError("down"))
        mock_redis_class.return_value = mock_redis

        mock_pool = AsyncMock()
        mock_pool_class.from_url.return_value = mock_pool

        manager = CheckpointManager(config=mock_config)

        with pytest.raises(RedisConnectionError):
            await manager.get_redis()

        assert mock_redis.ping.call_count == 3
        mock_redis.aclose.assert_called_once()
        mock_pool.aclose.assert_called_once()
        assert manager._redis is None
        assert manager._pool is None

    @patch("src.checkpoint_redis.services.checkpoint_service.asyncio.sleep", new_callable=AsyncMock)
    @patch("src.checkpoint_redis.services.checkpoint_service.Redis")
    @patch("src.checkpoint_redis.services.checkpoint_service.ConnectionPool")
    async def test_get_redis_reconnects_after_failure(
        self, mock_pool_class, mock_redis_class, mock_sleep, mock_config
    ):
        """Test a failed connection is not reused unverified by the next call."""
        failing = AsyncMock()
        failing.ping = AsyncMock(side_effect=RedisConnectionError("down"))
        healthy = AsyncMock()
        healthy.ping = AsyncMock()
        mock_redis_class.side_effect = [failing, healthy]
        mock_pool_class.from_url.return_value = AsyncMock()

        manager = CheckpointManager(config=mock_config)

        with pytest.raises(RedisConnectionError):
            await manager.get_redis()

        redis = await manager.get_redis()

        assert redis is healthy
        healthy.ping.assert_called_once()
        assert mock_pool_class.from_url.call_count == 2

    @patch("src.checkpoint_redis.services.checkpoint_service.Redis")
    @patch("src.checkpoint_redis.services.checkpoint_service.ConnectionPool")
    async def test_close(self, mock_pool_class, mock_redis_class, mock_config):
        """Test closing connections."""
        mock_redis = AsyncMock()
        mock_redis.ping = AsyncMock()
        mock_redis.aclose = AsyncMock()
        mock_redis_class.return_value = mock_redis

        mock_pool = AsyncMock()
        mock_pool.aclose = AsyncMock()
        mock_pool_class.from_url.return_value = mock_pool

        manager = CheckpointManager(config=mock_config)
        await manager.get_checkpointer()

        await manager.close()

        mock_redis.aclose.assert_called_once()
        mock_pool.aclose.assert_called_once()
        assert manager._redis is None
        assert manager._pool is None
        assert manager._checkpointer is None


class TestCreateCheckpointer:
    """Test suite for the checkpointer factory."""

    @patch("src.checkpoint_redis.services.checkpoint_service.Redis")
    def test_create_checkpointer(self, mock_redis_class):
        """Test the factory builds a saver from a URL."""
        checkpointer = create_checkpointer("redis://localhost:6379/0", ttl=60)

        mock_redis_class.from_url.assert_called_once_with(
            "redis://localhost:6379/0", decode_responses=False
        )
        assert isinstance(checkpointer, AsyncRedisSaver)
        assert checkpointer.connection is mock_redis_class.from_url.return_value
        assert checkpointer.ttl == 60
