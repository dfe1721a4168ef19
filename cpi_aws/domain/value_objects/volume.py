"""
Volume Value Object

Architectural Intent:
- Provider-agnostic view of a block storage volume
- attached_to is set if and only if the volume is IN_USE
- A volume attaches to at most one worker at a time
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


class VolumeState(Enum):
    CREATING = "Creating"
    AVAILABLE = "Available"
    IN_USE = "InUse"
    DELETING = "Deleting"
    UNKNOWN = "Unknown"


@dataclass(frozen=True)
class Volume:
    """
    Value Object representing a block storage volume.
    """
    id: str
    size_gb: int = 0
    state: VolumeState = VolumeState.UNKNOWN
    attached_to: Optional[str] = None
    region: str = ""
    availability_zone: Optional[str] = None
    volume_type: Optional[str] = None
    device: Optional[str] = None
    tags: dict[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.id:
            raise ValueError("Volume id cannot be empty")
        if (self.attached_to is not None) != (self.state is VolumeState.IN_USE):
            raise ValueError(
                f"Volume {self.id}: attached_to must be set exactly when state "
                f"is {VolumeState.IN_USE.value} (state={self.state.value}, "
                f"attached_to={self.attached_to!r})"
            )

    @property
    def is_attached(self) -> bool:
        return self.attached_to is not None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "size_gb": self.size_gb,
            "state": self.state.value,
            "attached_to": self.attached_to,
            "region": self.region,
            "availability_zone": self.availability_zone,
            "volume_type": self.volume_type,
            "device": self.device,
            "tags": dict(self.tags),
        }
