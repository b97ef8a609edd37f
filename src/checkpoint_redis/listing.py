"""Enumeration of the checkpoints stored for a thread."""

import logging
from typing import Any, AsyncIterator, Dict, List, Optional

from langchain_core.runnables import RunnableConfig
from langgraph.checkpoint.base import CheckpointTuple
from langgraph.checkpoint.serde.base import SerializerProtocol
from redis.asyncio import Redis

from .backend import fetch_hash, scan_keys
from .keys import checkpoint_pattern, parse_checkpoint_key
from .serde import normalize_hash, parse_checkpoint_data

logger = logging.getLogger(__name__)


def filter_keys(
    keys: List[str],
    before: Optional[RunnableConfig] = None,
    limit: Optional[int] = None,
) -> List[str]:
    """
    Select and order checkpoint keys for listing.

    Keys are kept when their checkpoint id sorts strictly before the id
    pinned by ``before``, then sorted ascending by id and cut to the first
    ``limit`` entries. The cut keeps the oldest ids. A ``before`` config
    without a checkpoint id excludes every key; a zero limit is no limit.

    Args:
        keys: Checkpoint keys
        before: Config whose checkpoint_id is the exclusive upper bound
        limit: Maximum number of keys to keep, falsy for all

    Returns:
        Selected keys, oldest first
    """
    by_id = [(parse_checkpoint_key(key).checkpoint_id, key) for key in keys]

    if before:
        cutoff = (before.get("configurable") or {}).get("checkpoint_id")
        if cutoff is None:
            return []
        by_id = [(checkpoint_id, key) for checkpoint_id, key in by_id if checkpoint_id < cutoff]

    by_id.sort(key=lambda item: item[0])

    if limit:
        by_id = by_id[:limit]

    return [key for _, key in by_id]


def _matches(metadata: Any, query: Dict[str, Any]) -> bool:
    if not isinstance(metadata, dict):
        return False
    return all(metadata.get(k) == v for k, v in query.items())


class CheckpointLister:
    """Lists checkpoint tuples of a thread/namespace from a fresh key scan."""

    def __init__(
        self,
        connection: Redis,
        serde: SerializerProtocol,
        scan_count: int = 100,
    ):
        self.connection = connection
        self.serde = serde
        self.scan_count = scan_count

    async def list(
        self,
        thread_id: str,
        checkpoint_ns: str = "",
        *,
        filter: Optional[Dict[str, Any]] = None,
        before: Optional[RunnableConfig] = None,
        limit: Optional[int] = None,
    ) -> AsyncIterator[CheckpointTuple]:
        """
        Yield checkpoint tuples in ascending checkpoint id order.

        Records missing their checkpoint or metadata field (partially
        written, or deleted mid-scan) are skipped. Listed tuples carry no
        pending writes.

        Args:
            thread_id: Thread identifier
            checkpoint_ns: Namespace within the thread
            filter: Metadata key/value pairs a tuple must match
            before: Only list checkpoints with a smaller id than this config's
            limit: Maximum number of keys to read
        """
        keys = await scan_keys(
            self.connection,
            checkpoint_pattern(thread_id, checkpoint_ns),
            self.scan_count,
            thread_id=thread_id,
        )

        for key in filter_keys(keys, before, limit):
            data = normalize_hash(await fetch_hash(self.connection, key, thread_id=thread_id))
            if not data.get("checkpoint") or not data.get("metadata"):
                logger.warning(f"Skipping incomplete checkpoint record {key}")
                continue

            checkpoint_tuple = parse_checkpoint_data(self.serde, key, data)
            if filter and not _matches(checkpoint_tuple.metadata, filter):
                continue
            yield checkpoint_tuple
