"""Checkpoint management service wiring Redis and the LangGraph saver."""

import asyncio
import logging
from typing import Optional

from redis.asyncio import Redis, ConnectionPool
from redis.exceptions import RedisError

from ..config.redis_config import RedisSaverConfig
from ..saver import AsyncRedisSaver

logger = logging.getLogger(__name__)


class CheckpointManager:
    """
    Checkpoint manager for LangGraph state persistence.

    Owns the Redis connection pool and a single saver instance built
    from configuration, so a workflow can be compiled with
    ``workflow.compile(checkpointer=await manager.get_checkpointer())``.
    """

    connect_attempts = 3
    retry_delay = 1

    def __init__(self, config: RedisSaverConfig):
        """
        Initialize checkpoint manager.

        Args:
            config: Saver configuration
        """
        self.config = config
        self._pool: Optional[ConnectionPool] = None
        self._redis: Optional[Redis] = None
        self._checkpointer: Optional[AsyncRedisSaver] = None

    async def get_redis(self) -> Redis:
        """
        Get the pooled Redis client, connecting on first use.

        The client is only kept once a PING succeeds. When every attempt
        fails the pool is released, so the next call starts over.

        Returns:
            Redis async client returning raw bytes
        """
        if self._redis is not None:
            return self._redis

        pool = ConnectionPool.from_url(
            self.config.redis_url,
            max_connections=self.config.connection_pool_size,
            decode_responses=False,
        )
        client = Redis(connection_pool=pool)

        try:
            await self._ping(client)
        except RedisError:
            await client.aclose()
            await pool.aclose()
            raise

        self._pool = pool
        self._redis = client
        return client

    async def _ping(self, client: Redis) -> None:
        for attempt in range(1, self.connect_attempts + 1):
            try:
                await client.ping()
            except RedisError as e:
                if attempt == self.connect_attempts:
                    logger.error(
                        f"Redis at {self.config.redis_url} unreachable after "
                        f"{attempt} attempts: {e}"
                    )
                    raise
                logger.warning(f"Redis ping {attempt} failed ({e}), retrying")
                await asyncio.sleep(self.retry_delay)
            else:
                logger.info(f"Connected to Redis at {self.config.redis_url}")
                return

    async def get_checkpointer(self) -> AsyncRedisSaver:
        """
        Get the saver instance, creating it on first use.

        CRITICAL: Pass this to compile(), not invoke()

        Returns:
            AsyncRedisSaver checkpointer
        """
        if self._checkpointer is None:
            redis = await self.get_redis()
            self._checkpointer = AsyncRedisSaver(
                redis,
                ttl=self.config.checkpoint_ttl,
                transactional=self.config.transactional_writes,
                scan_count=self.config.scan_count,
            )
            logger.info(
                f"Created Redis checkpointer (ttl={self.config.checkpoint_ttl}, "
                f"transactional={self.config.transactional_writes})"
            )

        return self._checkpointer

    async def close(self) -> None:
        """Close Redis connection."""
        if self._redis:
            await self._redis.aclose()
            self._redis = None
        if self._pool:
            await self._pool.aclose()
            self._pool = None
        self._checkpointer = None
        logger.info("Redis connection closed")


def create_checkpointer(
    redis_url: str,
    ttl: Optional[int] = None,
    transactional: bool = True,
) -> AsyncRedisSaver:
    """
    Factory function to create a checkpointer from a Redis URL.

    PATTERN: Create once, reuse across workflow

    Args:
        redis_url: Redis connection URL
        ttl: Record expiry in seconds (None: never expire)
        transactional: Write each call in one MULTI/EXEC block

    Returns:
        AsyncRedisSaver checkpointer instance
    """
    connection = Redis.from_url(redis_url, decode_responses=False)
    checkpointer = AsyncRedisSaver(connection, ttl=ttl, transactional=transactional)

    logger.info(f"Created checkpointer with Redis URL: {redis_url}")
    return checkpointer
