"""Configuration for the Redis checkpoint saver."""

from .redis_config import RedisSaverConfig

__all__ = ["RedisSaverConfig"]
