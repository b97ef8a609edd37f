"""
Redis key layout for checkpoints and pending writes.

Two key families, colon-delimited with a fixed field order:

    checkpoint:<thread_id>:<checkpoint_ns>:<checkpoint_id>
    writes:<thread_id>:<checkpoint_ns>:<checkpoint_id>:<task_id>[:<idx>]

Field values are escaped so they can never introduce a separator: ``%``
becomes ``%25`` and ``:`` becomes ``%3A``. Values without either character
are stored verbatim, which keeps keys readable and identical to the plain
layout for ordinary ids.
"""

import re
from typing import List, Optional, Union

from .errors import KeyFormatError
from .models.checkpoint_models import CheckpointKey, WritesKey

KEY_SEPARATOR = ":"
CHECKPOINT_PREFIX = "checkpoint"
WRITES_PREFIX = "writes"

_UNESCAPE_RE = re.compile(r"%(25|3A)")
_GLOB_SPECIAL_RE = re.compile(r"([*?\[\]\\])")


def escape_field(value: str) -> str:
    """Escape a single key field."""
    return str(value).replace("%", "%25").replace(KEY_SEPARATOR, "%3A")


def unescape_field(value: str) -> str:
    """Reverse ``escape_field``."""
    return _UNESCAPE_RE.sub(lambda m: "%" if m.group(1) == "25" else ":", value)


def _glob_field(value: str) -> str:
    # SCAN MATCH treats these as wildcards; a literal field must not
    return _GLOB_SPECIAL_RE.sub(r"\\\1", escape_field(value))


def _join(*fields: str) -> str:
    return KEY_SEPARATOR.join(fields)


def make_checkpoint_key(thread_id: str, checkpoint_ns: str, checkpoint_id: str) -> str:
    """
    Build the key of a checkpoint record.

    Args:
        thread_id: Thread identifier
        checkpoint_ns: Namespace within the thread
        checkpoint_id: Checkpoint identifier

    Returns:
        Redis key string
    """
    return _join(
        CHECKPOINT_PREFIX,
        escape_field(thread_id),
        escape_field(checkpoint_ns),
        escape_field(checkpoint_id),
    )


def make_writes_key(
    thread_id: str,
    checkpoint_ns: str,
    checkpoint_id: str,
    task_id: str,
    idx: Optional[int],
) -> str:
    """
    Build the key of a pending write record.

    The index suffix is omitted when ``idx`` is None.

    Args:
        thread_id: Thread identifier
        checkpoint_ns: Namespace within the thread
        checkpoint_id: Checkpoint the write belongs to
        task_id: Task that produced the write
        idx: Position of the write within the task, or None

    Returns:
        Redis key string
    """
    fields = [
        WRITES_PREFIX,
        escape_field(thread_id),
        escape_field(checkpoint_ns),
        escape_field(checkpoint_id),
        escape_field(task_id),
    ]
    if idx is not None:
        fields.append(str(idx))
    return _join(*fields)


def checkpoint_pattern(thread_id: str, checkpoint_ns: str) -> str:
    """SCAN pattern matching every checkpoint of a thread/namespace."""
    return _join(CHECKPOINT_PREFIX, _glob_field(thread_id), _glob_field(checkpoint_ns), "*")


def writes_pattern(thread_id: str, checkpoint_ns: str, checkpoint_id: str) -> str:
    """SCAN pattern matching every write of one checkpoint, any task and index."""
    return _join(
        WRITES_PREFIX,
        _glob_field(thread_id),
        _glob_field(checkpoint_ns),
        _glob_field(checkpoint_id),
        "*",
    )


def thread_patterns(thread_id: str) -> List[str]:
    """SCAN patterns matching every checkpoint and write key of a thread."""
    thread = _glob_field(thread_id)
    return [
        _join(CHECKPOINT_PREFIX, thread, "*"),
        _join(WRITES_PREFIX, thread, "*"),
    ]


def _split(key: Union[str, bytes]) -> List[str]:
    if isinstance(key, bytes):
        key = key.decode("utf-8")
    return key.split(KEY_SEPARATOR)


def parse_checkpoint_key(key: Union[str, bytes]) -> CheckpointKey:
    """
    Parse a checkpoint key.

    Args:
        key: Redis key, as returned by SCAN or built by make_checkpoint_key

    Returns:
        Parsed key fields

    Raises:
        KeyFormatError: If the key is not a checkpoint key
    """
    parts = _split(key)
    if parts[0] != CHECKPOINT_PREFIX:
        raise KeyFormatError(
            f"Expected checkpoint key to start with '{CHECKPOINT_PREFIX}': {key!r}"
        )
    if len(parts) != 4:
        raise KeyFormatError(f"Malformed checkpoint key: {key!r}")

    _, thread_id, checkpoint_ns, checkpoint_id = parts
    return CheckpointKey(
        thread_id=unescape_field(thread_id),
        checkpoint_ns=unescape_field(checkpoint_ns),
        checkpoint_id=unescape_field(checkpoint_id),
    )


def parse_writes_key(key: Union[str, bytes]) -> WritesKey:
    """
    Parse a pending write key.

    Args:
        key: Redis key, as returned by SCAN or built by make_writes_key

    Returns:
        Parsed key fields; ``idx`` is None when the key has no index suffix

    Raises:
        KeyFormatError: If the key is not a writes key
    """
    parts = _split(key)
    if parts[0] != WRITES_PREFIX:
        raise KeyFormatError(
            f"Expected writes key to start with '{WRITES_PREFIX}': {key!r}"
        )
    if len(parts) not in (5, 6):
        raise KeyFormatError(f"Malformed writes key: {key!r}")

    idx: Optional[int] = None
    if len(parts) == 6:
        try:
            idx = int(parts[5])
        except ValueError as e:
            raise KeyFormatError(f"Invalid write index in key: {key!r}") from e

    return WritesKey(
        thread_id=unescape_field(parts[1]),
        checkpoint_ns=unescape_field(parts[2]),
        checkpoint_id=unescape_field(parts[3]),
        task_id=unescape_field(parts[4]),
        idx=idx,
    )
