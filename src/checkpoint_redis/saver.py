"""Redis-backed LangGraph checkpoint saver.

Usage:

    from redis.asyncio import Redis
    from checkpoint_redis import AsyncRedisSaver

    saver = AsyncRedisSaver(Redis.from_url("redis://localhost:6379/0"), ttl=3600)
    app = workflow.compile(checkpointer=saver)
"""

import logging
from collections.abc import Mapping
from typing import Any, AsyncIterator, Dict, Optional, Sequence, Tuple

from langchain_core.runnables import RunnableConfig
from langgraph.checkpoint.base import (
    BaseCheckpointSaver,
    ChannelVersions,
    Checkpoint,
    CheckpointMetadata,
    CheckpointTuple,
)
from langgraph.checkpoint.serde.base import SerializerProtocol
from redis.asyncio import Redis

from .backend import HashRecord, fetch_hash, scan_keys, write_hashes
from .eraser import ThreadEraser
from .errors import ValidationError
from .keys import checkpoint_pattern, make_checkpoint_key, parse_checkpoint_key
from .listing import CheckpointLister
from .serde import dump_checkpoint, normalize_hash, parse_checkpoint_data
from .writes import WritesStore

logger = logging.getLogger(__name__)


def _configurable(config: Any, operation: str) -> Dict[str, Any]:
    if not isinstance(config, Mapping):
        raise ValidationError(f"{operation}() requires a valid RunnableConfig")
    configurable = config.get("configurable") or {}
    if not isinstance(configurable, Mapping):
        raise ValidationError(f"{operation}() requires a valid RunnableConfig")
    return dict(configurable)


def _thread_id(configurable: Dict[str, Any], operation: str) -> str:
    thread_id = configurable.get("thread_id")
    if thread_id is None or thread_id == "":
        raise ValidationError(
            f"{operation}() requires config.configurable.thread_id to be defined"
        )
    return thread_id


def _validate_ttl(ttl: Any) -> Optional[int]:
    if ttl is None:
        return None
    if isinstance(ttl, bool) or not isinstance(ttl, int) or ttl <= 0:
        raise ValidationError(f"Invalid TTL value: {ttl}")
    return ttl


class AsyncRedisSaver(BaseCheckpointSaver):
    """
    Checkpoint saver storing checkpoints and pending writes in Redis hashes.

    Keys:
        checkpoint:<thread_id>:<checkpoint_ns>:<checkpoint_id>
        writes:<thread_id>:<checkpoint_ns>:<checkpoint_id>:<task_id>:<idx>

    Only the async interface is implemented. The client must be created
    with ``decode_responses=False`` since serialized values are binary.
    """

    def __init__(
        self,
        connection: Redis,
        *,
        ttl: Optional[int] = None,
        transactional: bool = True,
        scan_count: int = 100,
        serde: Optional[SerializerProtocol] = None,
    ):
        """
        Initialize the saver.

        Args:
            connection: Async Redis client
            ttl: Expiry of every stored record in seconds (None: never expire)
            transactional: Write each put/put_writes call in one MULTI/EXEC
            scan_count: SCAN page size hint
            serde: Serializer (defaults to LangGraph's JsonPlusSerializer)
        """
        super().__init__(serde=serde)
        if connection is None:
            raise ValidationError("AsyncRedisSaver requires a valid Redis connection")
        if isinstance(scan_count, bool) or not isinstance(scan_count, int) or scan_count <= 0:
            raise ValidationError(f"Invalid scan count: {scan_count}")

        self.connection = connection
        self.ttl = _validate_ttl(ttl)
        self.transactional = transactional
        self.scan_count = scan_count

        self.writes = WritesStore(
            connection,
            self.serde,
            ttl=self.ttl,
            transactional=transactional,
            scan_count=scan_count,
        )
        self.lister = CheckpointLister(connection, self.serde, scan_count=scan_count)
        self.eraser = ThreadEraser(connection, scan_count=scan_count)

    async def aput(
        self,
        config: RunnableConfig,
        checkpoint: Checkpoint,
        metadata: CheckpointMetadata,
        new_versions: Optional[ChannelVersions] = None,
    ) -> RunnableConfig:
        """
        Store a checkpoint and its metadata.

        The incoming config's checkpoint_id is recorded as the parent of the
        new checkpoint.

        Args:
            config: Config carrying thread_id, and optionally checkpoint_ns
                and the parent checkpoint_id
            checkpoint: Checkpoint to store
            metadata: Metadata stored alongside it
            new_versions: Channel versions written (unused)

        Returns:
            Config pinning the stored checkpoint
        """
        configurable = _configurable(config, "aput")
        if not isinstance(checkpoint, Mapping):
            raise ValidationError("aput() requires a valid Checkpoint")
        if metadata is None:
            raise ValidationError("aput() requires valid CheckpointMetadata")

        thread_id = _thread_id(configurable, "aput")
        checkpoint_id = checkpoint.get("id")
        if not checkpoint_id:
            raise ValidationError("aput() requires checkpoint to have a valid id")

        checkpoint_ns = configurable.get("checkpoint_ns") or ""
        parent_checkpoint_id = configurable.get("checkpoint_id")

        key = make_checkpoint_key(thread_id, checkpoint_ns, checkpoint_id)
        data = dump_checkpoint(self.serde, checkpoint, metadata, parent_checkpoint_id)

        await write_hashes(
            self.connection,
            [HashRecord(key=key, mapping=data)],
            ttl=self.ttl,
            transactional=self.transactional,
            thread_id=str(thread_id),
            checkpoint_id=checkpoint_id,
        )
        logger.debug(
            f"Saved checkpoint {checkpoint_id} for thread {thread_id} "
            f"(parent: {parent_checkpoint_id or 'none'})"
        )

        return {
            "configurable": {
                "thread_id": thread_id,
                "checkpoint_ns": checkpoint_ns,
                "checkpoint_id": checkpoint_id,
            }
        }

    async def aput_writes(
        self,
        config: RunnableConfig,
        writes: Sequence[Tuple[str, Any]],
        task_id: str,
        task_path: str = "",
    ) -> None:
        """
        Store a task's pending writes against a checkpoint.

        Args:
            config: Config carrying thread_id, checkpoint_ns and checkpoint_id
            writes: ``(channel, value)`` pairs
            task_id: Task that produced the writes
            task_path: Path of the task (unused)
        """
        configurable = _configurable(config, "aput_writes")
        if not isinstance(writes, (list, tuple)):
            raise ValidationError("aput_writes() requires writes to be a list")
        if not isinstance(task_id, str) or not task_id:
            raise ValidationError("aput_writes() requires a valid task_id string")

        thread_id = configurable.get("thread_id")
        checkpoint_ns = configurable.get("checkpoint_ns")
        checkpoint_id = configurable.get("checkpoint_id")
        if thread_id in (None, "") or checkpoint_ns is None or checkpoint_id is None:
            raise ValidationError(
                'aput_writes() requires config.configurable to contain "thread_id", '
                '"checkpoint_ns" and "checkpoint_id" fields'
            )

        await self.writes.put_writes(
            thread_id, checkpoint_ns, checkpoint_id, writes, task_id
        )

    async def aget_tuple(self, config: RunnableConfig) -> Optional[CheckpointTuple]:
        """
        Fetch a checkpoint with its pending writes.

        Without a checkpoint_id the checkpoint with the greatest id in the
        thread/namespace is returned.

        Args:
            config: Config carrying thread_id, and optionally checkpoint_ns
                and checkpoint_id

        Returns:
            Checkpoint tuple, or None if nothing is stored
        """
        configurable = _configurable(config, "aget_tuple")
        thread_id = _thread_id(configurable, "aget_tuple")
        checkpoint_ns = configurable.get("checkpoint_ns") or ""
        checkpoint_id = configurable.get("checkpoint_id")

        key = await self._get_checkpoint_key(thread_id, checkpoint_ns, checkpoint_id)
        if key is None:
            return None

        data = normalize_hash(
            await fetch_hash(
                self.connection, key, thread_id=str(thread_id), checkpoint_id=checkpoint_id
            )
        )
        if not data.get("checkpoint") or not data.get("metadata"):
            logger.debug(f"No complete checkpoint record at {key}")
            return None

        checkpoint_id = parse_checkpoint_key(key).checkpoint_id
        pending_writes = await self.writes.load_pending_writes(
            thread_id, checkpoint_ns, checkpoint_id
        )
        return parse_checkpoint_data(self.serde, key, data, pending_writes)

    async def alist(
        self,
        config: Optional[RunnableConfig],
        *,
        filter: Optional[Dict[str, Any]] = None,
        before: Optional[RunnableConfig] = None,
        limit: Optional[int] = None,
    ) -> AsyncIterator[CheckpointTuple]:
        """
        List checkpoints of a thread/namespace, oldest id first.

        ``limit`` keeps the first entries of that ascending order, that is
        the oldest qualifying checkpoints.

        Args:
            config: Config carrying thread_id, and optionally checkpoint_ns
            filter: Metadata key/value pairs a checkpoint must match
            before: Only list checkpoints with a smaller id than this config's
            limit: Maximum number of checkpoints to read
        """
        configurable = _configurable(config, "alist")
        thread_id = _thread_id(configurable, "alist")
        checkpoint_ns = configurable.get("checkpoint_ns") or ""

        async for checkpoint_tuple in self.lister.list(
            thread_id, checkpoint_ns, filter=filter, before=before, limit=limit
        ):
            yield checkpoint_tuple

    async def adelete_thread(self, thread_id: str) -> None:
        """
        Delete every checkpoint and write of a thread, in all namespaces.

        Args:
            thread_id: Thread identifier
        """
        if thread_id is None or thread_id == "":
            raise ValidationError("adelete_thread() requires a valid thread_id")
        await self.eraser.delete_thread(thread_id)

    async def _get_checkpoint_key(
        self,
        thread_id: str,
        checkpoint_ns: str,
        checkpoint_id: Optional[str],
    ) -> Optional[str]:
        if checkpoint_id:
            return make_checkpoint_key(thread_id, checkpoint_ns, checkpoint_id)

        keys = await scan_keys(
            self.connection,
            checkpoint_pattern(thread_id, checkpoint_ns),
            self.scan_count,
            thread_id=str(thread_id),
        )
        if not keys:
            return None

        return max(keys, key=lambda k: parse_checkpoint_key(k).checkpoint_id)
