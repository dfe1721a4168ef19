"""
Resource Mapper

Architectural Intent:
- Pure translation from EC2-native records (boto3 response dicts) to the
  canonical Worker / Volume / Snapshot value objects
- Total: absent or unrecognized native fields map to UNKNOWN / defaults,
  never to an exception
- Lossy on purpose: native fields outside the canonical shape are dropped

Design Decisions:
- Inputs are plain Mappings, so no SDK import is needed here
- Region is passed in by the caller; when absent it is derived from the
  availability zone ("eu-west-1b" -> "eu-west-1")
"""

from collections.abc import Iterable, Mapping
from typing import Any, Optional

from cpi_aws.domain.value_objects.snapshot import Snapshot, SnapshotState
from cpi_aws.domain.value_objects.volume import Volume, VolumeState
from cpi_aws.domain.value_objects.worker import Worker, WorkerState

NAME_TAG = "Name"

_WORKER_STATES = {
    "pending": WorkerState.PENDING,
    "running": WorkerState.RUNNING,
    "stopping": WorkerState.STOPPING,
    "shutting-down": WorkerState.STOPPING,
    "stopped": WorkerState.STOPPED,
    "terminated": WorkerState.TERMINATED,
}

_VOLUME_STATES = {
    "creating": VolumeState.CREATING,
    "available": VolumeState.AVAILABLE,
    "in-use": VolumeState.IN_USE,
    "deleting": VolumeState.DELETING,
}

_SNAPSHOT_STATES = {
    "pending": SnapshotState.PENDING,
    "completed": SnapshotState.COMPLETED,
    "error": SnapshotState.ERROR,
    "recoverable": SnapshotState.PENDING,
    "recovering": SnapshotState.PENDING,
}

# Attachment states that still bind the volume to an instance. A detaching
# attachment is already on its way out and no longer names an owner.
_BOUND_ATTACHMENT_STATES = {"attaching", "attached", "busy"}

_UNKNOWN_ID = "unknown"


def _as_mapping(value: Any) -> Mapping[str, Any]:
    return value if isinstance(value, Mapping) else {}


def _as_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    return str(value)


def _as_int(value: Any, default: int = 0) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def tags_to_dict(tags: Any) -> dict[str, str]:
    """Convert the EC2 [{"Key": k, "Value": v}] list into a plain dict."""
    result: dict[str, str] = {}
    if not isinstance(tags, Iterable) or isinstance(tags, (str, bytes, Mapping)):
        return result
    for tag in tags:
        tag = _as_mapping(tag)
        key = tag.get("Key")
        if key is None:
            continue
        value = tag.get("Value")
        result[str(key)] = "" if value is None else str(value)
    return result


def dict_to_tags(tags: Mapping[str, str]) -> list[dict[str, str]]:
    """Inverse of tags_to_dict, in the shape EC2 expects on requests."""
    return [{"Key": key, "Value": value} for key, value in tags.items()]


def region_from_zone(zone: Optional[str]) -> str:
    """Strip the zone letter: "us-east-1a" -> "us-east-1"."""
    if not zone:
        return ""
    if zone[-1].isalpha() and len(zone) > 1 and zone[-2].isdigit():
        return zone[:-1]
    return zone


def map_worker_state(native_state: Any) -> WorkerState:
    name = _as_mapping(native_state).get("Name")
    if not isinstance(name, str):
        return WorkerState.UNKNOWN
    return _WORKER_STATES.get(name.lower(), WorkerState.UNKNOWN)


def map_worker(native: Mapping[str, Any], region: str = "") -> Worker:
    """
    Map an EC2 Instance record to a Worker.

    Also accepts the state-change records returned by StartInstances and
    TerminateInstances, which carry CurrentState instead of State.
    """
    native = _as_mapping(native)
    state_record = native.get("State") or native.get("CurrentState")
    zone = _as_str(_as_mapping(native.get("Placement")).get("AvailabilityZone"))
    tags = tags_to_dict(native.get("Tags"))
    return Worker(
        id=_as_str(native.get("InstanceId")) or _UNKNOWN_ID,
        state=map_worker_state(state_record),
        region=region or region_from_zone(zone),
        tags=tags,
        name=tags.get(NAME_TAG),
        instance_type=_as_str(native.get("InstanceType")),
        availability_zone=zone,
        private_ip=_as_str(native.get("PrivateIpAddress")),
        public_ip=_as_str(native.get("PublicIpAddress")),
    )


def map_workers(instances: Iterable[Mapping[str, Any]], region: str = "") -> list[Worker]:
    return [map_worker(instance, region) for instance in instances]


def _bound_attachment(attachments: Any) -> Mapping[str, Any]:
    if not isinstance(attachments, list):
        return {}
    for attachment in attachments:
        attachment = _as_mapping(attachment)
        state = attachment.get("State")
        if attachment.get("InstanceId") and (state is None or state in _BOUND_ATTACHMENT_STATES):
            return attachment
    return {}


def map_volume(native: Mapping[str, Any], region: str = "") -> Volume:
    """
    Map an EC2 Volume record to a Volume.

    attached_to is only reported for in-use volumes; an in-use volume without
    an attachment naming an instance is reported as UNKNOWN.
    """
    native = _as_mapping(native)
    raw_state = native.get("State")
    state = (
        _VOLUME_STATES.get(raw_state.lower(), VolumeState.UNKNOWN)
        if isinstance(raw_state, str)
        else VolumeState.UNKNOWN
    )
    attachment = _bound_attachment(native.get("Attachments"))
    attached_to: Optional[str] = None
    device: Optional[str] = None
    if state is VolumeState.IN_USE:
        if attachment:
            attached_to = str(attachment["InstanceId"])
            device = _as_str(attachment.get("Device"))
        else:
            state = VolumeState.UNKNOWN

    zone = _as_str(native.get("AvailabilityZone"))
    return Volume(
        id=_as_str(native.get("VolumeId")) or _UNKNOWN_ID,
        size_gb=_as_int(native.get("Size")),
        state=state,
        attached_to=attached_to,
        region=region or region_from_zone(zone),
        availability_zone=zone,
        volume_type=_as_str(native.get("VolumeType")),
        device=device,
        tags=tags_to_dict(native.get("Tags")),
    )


def map_volumes(volumes: Iterable[Mapping[str, Any]], region: str = "") -> list[Volume]:
    return [map_volume(volume, region) for volume in volumes]


def map_snapshot(native: Mapping[str, Any], region: str = "") -> Snapshot:
    native = _as_mapping(native)
    raw_state = native.get("State")
    state = (
        _SNAPSHOT_STATES.get(raw_state.lower(), SnapshotState.UNKNOWN)
        if isinstance(raw_state, str)
        else SnapshotState.UNKNOWN
    )
    tags = tags_to_dict(native.get("Tags"))
    size = native.get("VolumeSize")
    return Snapshot(
        id=_as_str(native.get("SnapshotId")) or _UNKNOWN_ID,
        source_volume_id=_as_str(native.get("VolumeId")) or "",
        state=state,
        region=region,
        name=tags.get(NAME_TAG),
        description=_as_str(native.get("Description")),
        progress=_as_str(native.get("Progress")),
        size_gb=_as_int(size) if size is not None else None,
        tags=tags,
    )
