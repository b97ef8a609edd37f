"""Models package for the Redis checkpoint saver."""

from .checkpoint_models import CheckpointKey, WritesKey

__all__ = [
    "CheckpointKey",
    "WritesKey",
]
