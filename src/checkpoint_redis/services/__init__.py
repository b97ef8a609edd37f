"""Services package for the Redis checkpoint saver."""

from .checkpoint_service import CheckpointManager, create_checkpointer

__all__ = [
    "CheckpointManager",
    "create_checkpointer",
]
