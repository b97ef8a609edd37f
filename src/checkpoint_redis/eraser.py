"""Removal of every record belonging to a thread."""

import logging

from redis.asyncio import Redis

from .backend import delete_keys, scan_keys
from .keys import thread_patterns

logger = logging.getLogger(__name__)


class ThreadEraser:
    """Deletes all checkpoint and write keys of a thread, across namespaces."""

    def __init__(self, connection: Redis, scan_count: int = 100):
        self.connection = connection
        self.scan_count = scan_count

    async def delete_thread(self, thread_id: str) -> int:
        """
        Delete a thread's checkpoints and writes in one DEL.

        Deleting a thread with nothing stored is a no-op.

        Args:
            thread_id: Thread identifier

        Returns:
            Number of keys removed
        """
        keys = []
        for pattern in thread_patterns(thread_id):
            keys.extend(
                await scan_keys(self.connection, pattern, self.scan_count, thread_id=thread_id)
            )

        deleted = await delete_keys(self.connection, keys, thread_id=thread_id)
        logger.info(f"Deleted {deleted} key(s) for thread {thread_id}")
        return deleted
