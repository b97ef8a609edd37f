"""Parsed key models for checkpoint persistence."""

from pydantic import BaseModel, Field
from typing import Optional


class CheckpointKey(BaseModel):
    """Fields of a ``checkpoint:<thread>:<ns>:<id>`` key."""

    thread_id: str = Field(description="Thread identifier")
    checkpoint_ns: str = Field(default="", description="Namespace within the thread")
    checkpoint_id: str = Field(description="Checkpoint identifier")


class WritesKey(CheckpointKey):
    """Fields of a ``writes:<thread>:<ns>:<id>:<task>[:<idx>]`` key."""

    task_id: str = Field(description="Task that produced the write")
    idx: Optional[int] = Field(
        default=None, description="Position of the write within its task"
    )
