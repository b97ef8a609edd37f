"""Checkpoint saver configuration with environment variable loading."""

import os
from typing import Optional
from pydantic import BaseModel, Field, field_validator
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


def _optional_int(name: str) -> Optional[int]:
    value = os.getenv(name)
    return int(value) if value else None


class RedisSaverConfig(BaseModel):
    """Configuration for the Redis checkpoint saver."""

    # Redis Configuration
    redis_url: str = Field(
        default_factory=lambda: os.getenv("REDIS_URL", "redis://localhost:6379/0"),
        description="Redis connection URL",
    )
    connection_pool_size: int = Field(
        default_factory=lambda: int(os.getenv("CONNECTION_POOL_SIZE", "10")),
        gt=0,
        description="Connection pool size for Redis",
    )

    # Checkpoint Configuration
    checkpoint_ttl: Optional[int] = Field(
        default_factory=lambda: _optional_int("CHECKPOINT_TTL"),
        description="TTL for checkpoint and write records (seconds, unset = persistent)",
    )
    transactional_writes: bool = Field(
        default_factory=lambda: os.getenv("CHECKPOINT_TRANSACTIONAL", "true").lower()
        in ("1", "true", "yes"),
        description="Write each put in a single MULTI/EXEC block",
    )
    scan_count: int = Field(
        default_factory=lambda: int(os.getenv("CHECKPOINT_SCAN_COUNT", "100")),
        gt=0,
        description="SCAN page size hint",
    )

    @field_validator("checkpoint_ttl")
    @classmethod
    def _check_ttl(cls, value: Optional[int]) -> Optional[int]:
        if value is not None and value <= 0:
            raise ValueError(f"checkpoint_ttl must be positive, got {value}")
        return value

    class Config:
        """Pydantic config."""

        validate_default = True
