"""Shared fixtures for the checkpoint saver test suite."""

import fakeredis
import pytest

from src.checkpoint_redis.saver import AsyncRedisSaver


@pytest.fixture
def redis_client():
    """Create an isolated in-memory async Redis client."""
    return fakeredis.FakeAsyncRedis(server=fakeredis.FakeServer())


@pytest.fixture
def saver(redis_client):
    """Create a saver without TTL."""
    return AsyncRedisSaver(redis_client)


@pytest.fixture
def saver_with_ttl(redis_client):
    """Create a saver expiring records after 60 seconds."""
    return AsyncRedisSaver(redis_client, ttl=60)


@pytest.fixture
def checkpoint_1():
    """First checkpoint of a thread."""
    return {
        "v": 1,
        "id": "1ef4f797-8335-6428-8001-8a1503f9b875",
        "ts": "2024-04-19T17:19:07.952Z",
        "channel_values": {"someKey1": "someValue1"},
        "channel_versions": {"someKey2": 1},
        "versions_seen": {"someKey3": {"someKey4": 1}},
        "pending_sends": [],
    }


@pytest.fixture
def checkpoint_2():
    """Second checkpoint of a thread; its id sorts after checkpoint_1."""
    return {
        "v": 1,
        "id": "1ef4f797-8335-6428-8002-8a1503f9b875",
        "ts": "2024-04-20T17:19:07.952Z",
        "channel_values": {"someKey1": "someValue2"},
        "channel_versions": {"someKey2": 2},
        "versions_seen": {"someKey3": {"someKey4": 2}},
        "pending_sends": [],
    }


@pytest.fixture
def metadata():
    """Checkpoint metadata."""
    return {"source": "update", "step": -1, "writes": None}
