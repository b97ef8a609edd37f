"""Serializer integration: turning checkpoints and writes into Redis hashes and back."""

import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from langchain_core.runnables import RunnableConfig
from langgraph.checkpoint.base import (
    Checkpoint,
    CheckpointMetadata,
    CheckpointTuple,
    PendingWrite,
)
from langgraph.checkpoint.serde.base import SerializerProtocol

from .errors import SerializationMismatchError
from .keys import parse_checkpoint_key
from .models.checkpoint_models import WritesKey

logger = logging.getLogger(__name__)

RedisHash = Mapping[Union[str, bytes], Union[str, bytes]]


def _as_str(value: Union[str, bytes, None]) -> str:
    if value is None:
        return ""
    if isinstance(value, bytes):
        return value.decode("utf-8")
    return value


def _as_bytes(value: Union[str, bytes]) -> bytes:
    if isinstance(value, str):
        return value.encode("utf-8")
    return value


def normalize_hash(data: Optional[RedisHash]) -> Dict[str, Union[str, bytes]]:
    """Decode hash field names returned by HGETALL; values are left as-is."""
    if not data:
        return {}
    return {_as_str(field): value for field, value in data.items()}


def dump_checkpoint(
    serde: SerializerProtocol,
    checkpoint: Checkpoint,
    metadata: CheckpointMetadata,
    parent_checkpoint_id: Optional[str],
) -> Dict[str, Union[str, bytes]]:
    """
    Serialize a checkpoint and its metadata into checkpoint hash fields.

    Args:
        serde: Serializer
        checkpoint: Checkpoint to store
        metadata: Metadata stored alongside it
        parent_checkpoint_id: Checkpoint id the new one descends from

    Returns:
        Mapping ready for HSET

    Raises:
        SerializationMismatchError: If the two type tags differ
    """
    checkpoint_type, serialized_checkpoint = serde.dumps_typed(checkpoint)
    metadata_type, serialized_metadata = serde.dumps_typed(metadata)

    if checkpoint_type != metadata_type:
        raise SerializationMismatchError(
            f"Mismatched checkpoint and metadata types: "
            f"{checkpoint_type!r} != {metadata_type!r}"
        )

    return {
        "checkpoint": serialized_checkpoint,
        "type": checkpoint_type,
        "metadata_type": metadata_type,
        "metadata": serialized_metadata,
        "parent_checkpoint_id": parent_checkpoint_id or "",
    }


def dump_writes(
    serde: SerializerProtocol, writes: Sequence[Tuple[str, Any]]
) -> List[Dict[str, Union[str, bytes]]]:
    """Serialize ``(channel, value)`` pairs into write hash fields, in order."""
    dumped = []
    for channel, value in writes:
        type_, serialized_value = serde.dumps_typed(value)
        dumped.append({"channel": channel, "type": type_, "value": serialized_value})
    return dumped


def load_writes(
    serde: SerializerProtocol,
    records: Sequence[Tuple[WritesKey, RedisHash]],
) -> List[PendingWrite]:
    """
    Deserialize stored writes into ``(task_id, channel, value)`` triples.

    Records are returned in the order given; empty hashes (keys that
    vanished between SCAN and HGETALL) are dropped.
    """
    pending_writes: List[PendingWrite] = []
    for parsed_key, raw in records:
        data = normalize_hash(raw)
        if not data:
            logger.debug(f"Write record for task {parsed_key.task_id} disappeared")
            continue
        value = serde.loads_typed((_as_str(data["type"]), _as_bytes(data["value"])))
        pending_writes.append((parsed_key.task_id, _as_str(data["channel"]), value))
    return pending_writes


def parse_checkpoint_data(
    serde: SerializerProtocol,
    key: Union[str, bytes],
    data: RedisHash,
    pending_writes: Optional[List[PendingWrite]] = None,
) -> CheckpointTuple:
    """
    Rebuild a checkpoint tuple from a checkpoint key and its hash.

    Args:
        serde: Serializer
        key: Checkpoint key the hash was read from
        data: Hash fields as returned by HGETALL
        pending_writes: Writes attached to the checkpoint, if loaded

    Returns:
        Checkpoint tuple
    """
    parsed_key = parse_checkpoint_key(key)
    fields = normalize_hash(data)

    config: RunnableConfig = {
        "configurable": {
            "thread_id": parsed_key.thread_id,
            "checkpoint_ns": parsed_key.checkpoint_ns,
            "checkpoint_id": parsed_key.checkpoint_id,
        }
    }
    checkpoint = serde.loads_typed(
        (_as_str(fields["type"]), _as_bytes(fields["checkpoint"]))
    )
    metadata = serde.loads_typed(
        (_as_str(fields["metadata_type"]), _as_bytes(fields["metadata"]))
    )

    parent_checkpoint_id = _as_str(fields.get("parent_checkpoint_id"))
    parent_config: Optional[RunnableConfig] = None
    if parent_checkpoint_id:
        parent_config = {
            "configurable": {
                "thread_id": parsed_key.thread_id,
                "checkpoint_ns": parsed_key.checkpoint_ns,
                "checkpoint_id": parent_checkpoint_id,
            }
        }

    return CheckpointTuple(
        config=config,
        checkpoint=checkpoint,
        metadata=metadata,
        parent_config=parent_config,
        pending_writes=pending_writes,
    )
