"""Thin wrappers around the Redis calls the saver issues."""

import logging
from typing import Any, Dict, List, Mapping, NamedTuple, Optional, Sequence, Union

from redis.asyncio import Redis
from redis.exceptions import RedisError

from .errors import BackendError

logger = logging.getLogger(__name__)


class HashRecord(NamedTuple):
    """One hash to persist: key, fields and the write index it carries, if any."""

    key: str
    mapping: Mapping[str, Union[str, bytes]]
    idx: Optional[int] = None


async def scan_keys(
    connection: Redis,
    pattern: str,
    count: int = 100,
    **context: Any,
) -> List[str]:
    """
    Collect every key matching a glob pattern.

    SCAN may report a key more than once; duplicates are dropped while
    keeping first-seen order.

    Args:
        connection: Redis client
        pattern: Glob pattern
        count: SCAN page size hint
        **context: BackendError context fields

    Returns:
        Matching keys, decoded to str
    """
    try:
        keys = [
            key.decode("utf-8") if isinstance(key, bytes) else key
            async for key in connection.scan_iter(match=pattern, count=count)
        ]
    except RedisError as e:
        logger.error(f"Failed to scan keys matching {pattern}: {e}")
        raise BackendError(f"Failed to scan keys matching {pattern!r}", **context) from e

    return list(dict.fromkeys(keys))


async def fetch_hash(connection: Redis, key: str, **context: Any) -> Dict[Any, Any]:
    """Read all fields of one hash; an absent key yields an empty dict."""
    try:
        return await connection.hgetall(key) or {}
    except RedisError as e:
        logger.error(f"Failed to read {key}: {e}")
        raise BackendError("Failed to read hash", key=key, **context) from e


async def write_hashes(
    connection: Redis,
    records: Sequence[HashRecord],
    *,
    ttl: Optional[int] = None,
    transactional: bool = True,
    **context: Any,
) -> None:
    """
    Persist hashes, expiring each after ``ttl`` seconds when set.

    With ``transactional`` every HSET and EXPIRE is sent in one MULTI/EXEC
    block, so either all records (with their expiry) are stored or none.
    Otherwise each record is written, then expired, one round-trip at a
    time; a failure leaves the records written before it in place.

    Args:
        connection: Redis client
        records: Hashes to write, in order
        ttl: Expiry in seconds, or None for persistent keys
        transactional: Use a single MULTI/EXEC block
        **context: BackendError context fields
    """
    if not records:
        return

    if transactional:
        try:
            async with connection.pipeline(transaction=True) as pipe:
                for record in records:
                    pipe.hset(record.key, mapping=record.mapping)
                    if ttl:
                        pipe.expire(record.key, ttl)
                await pipe.execute()
        except RedisError as e:
            logger.error(f"Transaction writing {len(records)} record(s) failed: {e}")
            key = records[0].key if len(records) == 1 else None
            raise BackendError("Failed to write records", key=key, **context) from e
        return

    for record in records:
        try:
            await connection.hset(record.key, mapping=record.mapping)
            if ttl:
                await connection.expire(record.key, ttl)
        except RedisError as e:
            logger.error(f"Failed to write {record.key}: {e}")
            raise BackendError(
                "Failed to write record", key=record.key, idx=record.idx, **context
            ) from e


async def delete_keys(connection: Redis, keys: Sequence[str], **context: Any) -> int:
    """Delete keys in one DEL call; returns the number removed."""
    if not keys:
        return 0
    try:
        return await connection.delete(*keys)
    except RedisError as e:
        logger.error(f"Failed to delete {len(keys)} key(s): {e}")
        raise BackendError("Failed to delete keys", **context) from e
