"""Exceptions raised by the Redis checkpoint saver."""

from typing import Any, Dict, Optional


class CheckpointError(Exception):
    """Base class for checkpoint saver errors."""

    pass


class ValidationError(CheckpointError, ValueError):
    """Raised on missing or invalid inputs, before any Redis call."""

    pass


class KeyFormatError(CheckpointError, ValueError):
    """Raised when a Redis key does not follow the expected grammar."""

    pass


class SerializationMismatchError(CheckpointError, TypeError):
    """Raised when checkpoint and metadata serialize to different type tags."""

    pass


class BackendError(CheckpointError):
    """
    Raised when a Redis operation fails.

    The original ``RedisError`` is chained as ``__cause__``. Contextual
    fields that were known at the time of the failure are exposed as
    attributes and collected in ``context``.
    """

    def __init__(
        self,
        message: str,
        *,
        key: Optional[str] = None,
        thread_id: Optional[str] = None,
        checkpoint_id: Optional[str] = None,
        task_id: Optional[str] = None,
        idx: Optional[int] = None,
    ):
        self.key = key
        self.thread_id = thread_id
        self.checkpoint_id = checkpoint_id
        self.task_id = task_id
        self.idx = idx
        self.context: Dict[str, Any] = {
            name: value
            for name, value in (
                ("key", key),
                ("thread_id", thread_id),
                ("checkpoint_id", checkpoint_id),
                ("task_id", task_id),
                ("idx", idx),
            )
            if value is not None
        }
        if self.context:
            details = ", ".join(f"{k}={v}" for k, v in self.context.items())
            message = f"{message} ({details})"
        super().__init__(message)
