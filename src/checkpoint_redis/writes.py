"""Pending writes attached to a checkpoint."""

import logging
from typing import Any, List, Optional, Sequence, Tuple

from langgraph.checkpoint.base import PendingWrite
from langgraph.checkpoint.serde.base import SerializerProtocol
from redis.asyncio import Redis

from .backend import HashRecord, fetch_hash, scan_keys, write_hashes
from .keys import make_writes_key, parse_writes_key, writes_pattern
from .serde import dump_writes, load_writes

logger = logging.getLogger(__name__)


def _write_order(parsed_key) -> Tuple[bool, int]:
    # unindexed writes go last; sorted() keeps their scan order
    return (parsed_key.idx is None, parsed_key.idx if parsed_key.idx is not None else 0)


class WritesStore:
    """
    Stores and loads the pending writes of tasks.

    Each write lives in its own hash,
    ``writes:<thread>:<ns>:<checkpoint>:<task>:<idx>``, holding the
    channel, the serializer type tag and the serialized value.
    """

    def __init__(
        self,
        connection: Redis,
        serde: SerializerProtocol,
        ttl: Optional[int] = None,
        transactional: bool = True,
        scan_count: int = 100,
    ):
        self.connection = connection
        self.serde = serde
        self.ttl = ttl
        self.transactional = transactional
        self.scan_count = scan_count

    async def put_writes(
        self,
        thread_id: str,
        checkpoint_ns: str,
        checkpoint_id: str,
        writes: Sequence[Tuple[str, Any]],
        task_id: str,
    ) -> None:
        """
        Persist writes in order, using their position as index.

        Args:
            thread_id: Thread identifier
            checkpoint_ns: Namespace within the thread
            checkpoint_id: Checkpoint the writes belong to
            writes: ``(channel, value)`` pairs
            task_id: Task that produced the writes
        """
        records = [
            HashRecord(
                key=make_writes_key(thread_id, checkpoint_ns, checkpoint_id, task_id, idx),
                mapping=write,
                idx=idx,
            )
            for idx, write in enumerate(dump_writes(self.serde, writes))
        ]

        await write_hashes(
            self.connection,
            records,
            ttl=self.ttl,
            transactional=self.transactional,
            thread_id=thread_id,
            checkpoint_id=checkpoint_id,
            task_id=task_id,
        )
        logger.debug(
            f"Stored {len(records)} write(s) for task {task_id} "
            f"on checkpoint {checkpoint_id}"
        )

    async def load_pending_writes(
        self, thread_id: str, checkpoint_ns: str, checkpoint_id: str
    ) -> List[PendingWrite]:
        """
        Load every write attached to one checkpoint, ordered by index.

        Args:
            thread_id: Thread identifier
            checkpoint_ns: Namespace within the thread
            checkpoint_id: Checkpoint identifier

        Returns:
            ``(task_id, channel, value)`` triples
        """
        keys = await scan_keys(
            self.connection,
            writes_pattern(thread_id, checkpoint_ns, checkpoint_id),
            self.scan_count,
            thread_id=thread_id,
            checkpoint_id=checkpoint_id,
        )
        parsed = sorted(
            ((parse_writes_key(key), key) for key in keys),
            key=lambda item: _write_order(item[0]),
        )

        records = []
        for parsed_key, key in parsed:
            data = await fetch_hash(
                self.connection,
                key,
                thread_id=thread_id,
                checkpoint_id=checkpoint_id,
                task_id=parsed_key.task_id,
                idx=parsed_key.idx,
            )
            records.append((parsed_key, data))

        return load_writes(self.serde, records)
