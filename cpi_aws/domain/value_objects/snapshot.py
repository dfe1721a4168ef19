"""
Snapshot Value Object

Architectural Intent:
- Point-in-time copy of a volume, as seen by the CPI host
- Immutable once COMPLETED on the backend side; this view never changes it
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


class SnapshotState(Enum):
    PENDING = "Pending"
    COMPLETED = "Completed"
    ERROR = "Error"
    UNKNOWN = "Unknown"


@dataclass(frozen=True)
class Snapshot:
    id: str
    source_volume_id: str = ""
    state: SnapshotState = SnapshotState.UNKNOWN
    region: str = ""
    name: Optional[str] = None
    description: Optional[str] = None
    progress: Optional[str] = None
    size_gb: Optional[int] = None
    tags: dict[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.id:
            raise ValueError("Snapshot id cannot be empty")

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "source_volume_id": self.source_volume_id,
            "state": self.state.value,
            "region": self.region,
            "name": self.name,
            "description": self.description,
            "progress": self.progress,
            "size_gb": self.size_gb,
            "tags": dict(self.tags),
        }
