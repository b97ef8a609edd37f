"""Redis checkpoint saver for LangGraph."""

from .errors import (
    BackendError,
    CheckpointError,
    KeyFormatError,
    SerializationMismatchError,
    ValidationError,
)
from .keys import (
    make_checkpoint_key,
    make_writes_key,
    parse_checkpoint_key,
    parse_writes_key,
)
from .saver import AsyncRedisSaver

__all__ = [
    "AsyncRedisSaver",
    "BackendError",
    "CheckpointError",
    "KeyFormatError",
    "SerializationMismatchError",
    "ValidationError",
    "make_checkpoint_key",
    "make_writes_key",
    "parse_checkpoint_key",
    "parse_writes_key",
]
