"""
Action Catalog

Architectural Intent:
- Single declarative source for the fixed CPI action vocabulary
- Each ActionDefinition lists its parameters with type, requiredness,
  default and accepted aliases
- Drives both parameter validation and the host-facing action descriptions

Design Decisions:
- region is appended to every definition, optional, defaulting to the
  process-wide default region resolved by the dispatcher
- Aliases keep requests written for older hosts working (e.g. "ami")
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


class ParamType(Enum):
    STRING = "string"
    INTEGER = "integer"
    NUMBER = "number"
    BOOLEAN = "boolean"
    STRING_MAP = "map<string,string>"
    STRING_LIST = "list<string>"


@dataclass(frozen=True)
class ParamSpec:
    name: str
    description: str
    type: ParamType = ParamType.STRING
    required: bool = False
    default: Any = None
    aliases: tuple[str, ...] = ()
    minimum: Optional[float] = None
    allow_empty: bool = False

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "name": self.name,
            "description": self.description,
            "type": self.type.value,
            "required": self.required,
        }
        if self.default is not None:
            data["default"] = self.default
        if self.minimum is not None:
            data["minimum"] = self.minimum
        if self.aliases:
            data["aliases"] = list(self.aliases)
        return data


@dataclass(frozen=True)
class ActionDefinition:
    name: str
    description: str
    parameters: tuple[ParamSpec, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "parameters": [p.to_dict() for p in self.parameters],
        }


REGION = ParamSpec("region", "AWS region; defaults to the configured region")

_WORKER_ID = ParamSpec("worker_id", "ID of the instance", required=True)
_VOLUME_ID = ParamSpec("volume_id", "ID of the volume", required=True)
_SNAPSHOT_ID = ParamSpec("snapshot_id", "ID of the snapshot", required=True)
_SNAPSHOT_PARAMS = (
    ParamSpec(
        "volume_id", "ID of the source volume", required=True,
        aliases=("source_volume_id",),
    ),
    ParamSpec("snapshot_name", "Name tag applied to the snapshot"),
    ParamSpec("description", "Snapshot description"),
)


def _define(name: str, description: str, *params: ParamSpec) -> ActionDefinition:
    return ActionDefinition(name=name, description=description, parameters=params + (REGION,))


_DEFINITIONS = (
    _define("test_install", "Test if AWS credentials are properly configured"),
    _define("list_workers", "List all EC2 instances"),
    _define(
        "create_worker",
        "Launch a new EC2 instance, optionally wait for it and tag it",
        ParamSpec("image_id", "Amazon Machine Image ID", required=True, aliases=("ami",)),
        ParamSpec("instance_type", "EC2 instance type", required=True),
        ParamSpec("worker_name", "Value of the Name tag", aliases=("name",)),
        ParamSpec("tags", "Additional tags to apply", ParamType.STRING_MAP),
        ParamSpec(
            "wait_for_running", "Wait until the instance is running",
            ParamType.BOOLEAN, default=False,
        ),
        ParamSpec(
            "wait_timeout", "Ceiling for the running-state wait, in seconds",
            ParamType.NUMBER, minimum=0,
        ),
        ParamSpec("key_name", "EC2 key pair name"),
        ParamSpec("subnet_id", "Subnet to launch into"),
        ParamSpec("security_group_ids", "Security groups to attach", ParamType.STRING_LIST),
        ParamSpec("user_data", "Cloud-init user data"),
    ),
    _define("delete_worker", "Terminate an EC2 instance", _WORKER_ID),
    _define("get_worker", "Get information about an EC2 instance", _WORKER_ID),
    _define("has_worker", "Check if an EC2 instance exists", _WORKER_ID),
    _define("start_worker", "Start an EC2 instance", _WORKER_ID),
    _define("reboot_worker", "Reboot an EC2 instance", _WORKER_ID),
    _define("get_volumes", "List all EBS volumes"),
    _define("has_volume", "Check if an EBS volume exists", _VOLUME_ID),
    _define(
        "create_volume",
        "Create a new EBS volume",
        ParamSpec(
            "size", "Size in GB", ParamType.INTEGER, required=True,
            aliases=("size_gb",), minimum=1,
        ),
        ParamSpec("availability_zone", "Availability zone", required=True),
        ParamSpec("volume_type", "Volume type (gp2, gp3, io1, ...)"),
    ),
    _define("delete_volume", "Delete an EBS volume", _VOLUME_ID),
    _define(
        "attach_volume",
        "Attach an EBS volume to an EC2 instance",
        _VOLUME_ID,
        _WORKER_ID,
        ParamSpec("device", "Device name (e.g. /dev/sdf)", required=True, aliases=("device_name",)),
    ),
    _define(
        "detach_volume",
        "Detach an EBS volume from its instance; the volume reads Unknown while detaching",
        _VOLUME_ID,
        ParamSpec("force", "Force the detachment", ParamType.BOOLEAN, default=False),
    ),
    _define("snapshot_volume", "Create a snapshot of an EBS volume", *_SNAPSHOT_PARAMS),
    _define("create_snapshot", "Create a snapshot of an EBS volume", *_SNAPSHOT_PARAMS),
    _define("delete_snapshot", "Delete a snapshot", _SNAPSHOT_ID),
    _define("has_snapshot", "Check if a snapshot exists", _SNAPSHOT_ID),
    _define(
        "set_worker_metadata",
        "Set metadata (tags) on an EC2 instance",
        _WORKER_ID,
        ParamSpec("tags", "Tags to apply", ParamType.STRING_MAP),
        ParamSpec("key", "Single metadata key"),
        ParamSpec("value", "Single metadata value", allow_empty=True),
    ),
)

ACTIONS: dict[str, ActionDefinition] = {d.name: d for d in _DEFINITIONS}


def list_actions() -> list[str]:
    return list(ACTIONS)


def get_action_definition(action: str) -> Optional[ActionDefinition]:
    return ACTIONS.get(action)
