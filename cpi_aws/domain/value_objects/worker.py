"""
Worker Value Object

Architectural Intent:
- Provider-agnostic view of a single compute instance
- Rebuilt from backend records on every call; never the source of truth
- id is immutable and names exactly one backend instance for its lifetime
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


class WorkerState(Enum):
    PENDING = "Pending"
    RUNNING = "Running"
    STOPPING = "Stopping"
    STOPPED = "Stopped"
    TERMINATED = "Terminated"
    UNKNOWN = "Unknown"


@dataclass(frozen=True)
class Worker:
    """
    Value Object representing a compute instance.
    """
    id: str
    state: WorkerState = WorkerState.UNKNOWN
    region: str = ""
    tags: dict[str, str] = field(default_factory=dict)
    name: Optional[str] = None
    instance_type: Optional[str] = None
    availability_zone: Optional[str] = None
    private_ip: Optional[str] = None
    public_ip: Optional[str] = None

    def __post_init__(self) -> None:
        if not self.id:
            raise ValueError("Worker id cannot be empty")

    def __str__(self) -> str:
        return f"{self.id} ({self.state.value})"

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "state": self.state.value,
            "region": self.region,
            "tags": dict(self.tags),
            "name": self.name,
            "instance_type": self.instance_type,
            "availability_zone": self.availability_zone,
            "private_ip": self.private_ip,
            "public_ip": self.public_ip,
        }
