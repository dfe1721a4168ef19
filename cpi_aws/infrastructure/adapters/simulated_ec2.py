"""
Simulated EC2 Backend

Architectural Intent:
- Implements Ec2BackendPort against an in-memory registry, so the adapter
  can be exercised in tests and local development with zero cloud
  credentials (cpi-aws --simulate)
- Responses mirror the structure of boto3 response dictionaries and
  failures are raised as real botocore ClientErrors with EC2 error codes,
  so the Resource Mapper and Error Classifier see exactly what they would
  see against AWS

Design Decisions:
- One SimulatedEc2Backend per region; SimulatedEc2Cloud is the resolver and
  records every region it was asked for
- Transitional states advance on the next describe call: a pending instance
  becomes running, a pending snapshot becomes completed
- fail_next() queues a one-shot error for an operation; it is how tests
  provoke partial failures in composite actions
- Every simulated API call is logged at DEBUG level

Simulated AMI: ami-0abcdef1234567890 (placeholder)
"""

import datetime
import logging
import uuid
from collections import defaultdict
from typing import Any, Optional

from botocore.exceptions import ClientError

from cpi_aws.domain.services.resource_mapper import dict_to_tags, tags_to_dict

logger = logging.getLogger(__name__)

SIMULATED_AMI = "ami-0abcdef1234567890"
SIMULATED_REGIONS = ("us-east-1", "us-east-2", "us-west-2", "eu-west-1", "eu-central-1")


# ---------------------------------------------------------------------------
# Internal helpers that mimic the shape of real EC2 identifiers and errors.
# ---------------------------------------------------------------------------

def _make_id(prefix: str) -> str:
    """Return a plausible EC2 resource ID (i-..., vol-..., snap-...)."""
    return f"{prefix}-" + uuid.uuid4().hex[:17]


def _make_private_ip(index: int = 0) -> str:
    """Return a deterministic private IP for simulation."""
    return f"10.0.{(index // 256) % 256}.{index % 256 + 1}"


def _now() -> str:
    return datetime.datetime.now(datetime.UTC).isoformat()


def _client_error(operation: str, code: str, message: str, status: int = 400) -> ClientError:
    return ClientError(
        {
            "Error": {"Code": code, "Message": message},
            "ResponseMetadata": {
                "RequestId": str(uuid.uuid4()),
                "HTTPStatusCode": status,
                "HTTPHeaders": {},
            },
        },
        operation,
    )


def _state(name: str) -> dict[str, Any]:
    codes = {
        "pending": 0, "running": 16, "shutting-down": 32,
        "terminated": 48, "stopping": 64, "stopped": 80,
    }
    return {"Code": codes.get(name, 0), "Name": name}


# ---------------------------------------------------------------------------
# Public backend
# ---------------------------------------------------------------------------

class SimulatedEc2Backend:
    """
    In-memory EC2 for one region.

    The registries (_instances, _volumes, _snapshots) play the role of the
    EC2 control plane and hold boto3-shaped records keyed by resource ID.
    """

    def __init__(self, region: str = "us-east-1") -> None:
        self.region = region
        self._instances: dict[str, dict[str, Any]] = {}
        self._volumes: dict[str, dict[str, Any]] = {}
        self._snapshots: dict[str, dict[str, Any]] = {}
        self._failures: dict[str, list[ClientError]] = defaultdict(list)
        self.calls: list[str] = []

        logger.debug("SimulatedEc2Backend initialised (region=%s)", region)

    # ------------------------------------------------------------------
    # Test hooks
    # ------------------------------------------------------------------

    def fail_next(
        self,
        operation: str,
        code: str,
        message: Optional[str] = None,
        status: int = 400,
    ) -> None:
        """Make the next call to operation (e.g. "create_tags") raise code."""
        api_name = "".join(part.title() for part in operation.split("_"))
        self._failures[operation].append(
            _client_error(api_name, code, message or f"Simulated {code}", status)
        )

    def _enter(self, operation: str, **payload: Any) -> None:
        self.calls.append(operation)
        logger.debug("Simulated EC2 %s (region=%s) %s", operation, self.region, payload)
        pending = self._failures.get(operation)
        if pending:
            raise pending.pop(0)

    def _zone(self) -> str:
        return f"{self.region}a"

    def _get_instance(self, operation: str, instance_id: str) -> dict[str, Any]:
        instance = self._instances.get(instance_id)
        if instance is None:
            raise _client_error(
                operation,
                "InvalidInstanceID.NotFound",
                f"The instance ID '{instance_id}' does not exist",
            )
        return instance

    def _get_volume(self, operation: str, volume_id: str) -> dict[str, Any]:
        volume = self._volumes.get(volume_id)
        if volume is None:
            raise _client_error(
                operation,
                "InvalidVolume.NotFound",
                f"The volume '{volume_id}' does not exist.",
            )
        return volume

    def _get_snapshot(self, operation: str, snapshot_id: str) -> dict[str, Any]:
        snapshot = self._snapshots.get(snapshot_id)
        if snapshot is None:
            raise _client_error(
                operation,
                "InvalidSnapshot.NotFound",
                f"The snapshot '{snapshot_id}' does not exist.",
            )
        return snapshot

    # ------------------------------------------------------------------
    # Instances
    # ------------------------------------------------------------------

    async def describe_instances(
        self, instance_ids: Optional[list[str]] = None
    ) -> list[dict[str, Any]]:
        self._enter("describe_instances", InstanceIds=instance_ids)
        if instance_ids:
            selected = [self._get_instance("DescribeInstances", iid) for iid in instance_ids]
        else:
            selected = list(self._instances.values())

        for instance in selected:
            if instance["State"]["Name"] == "pending":
                instance["State"] = _state("running")
            elif instance["State"]["Name"] == "shutting-down":
                instance["State"] = _state("terminated")
        return [dict(instance) for instance in selected]

    async def run_instance(
        self,
        image_id: str,
        instance_type: str,
        key_name: Optional[str] = None,
        subnet_id: Optional[str] = None,
        security_group_ids: Optional[list[str]] = None,
        user_data: Optional[str] = None,
    ) -> dict[str, Any]:
        self._enter("run_instance", ImageId=image_id, InstanceType=instance_type)
        if not image_id.startswith("ami-"):
            raise _client_error(
                "RunInstances", "InvalidAMIID.Malformed", f"Invalid id: \"{image_id}\""
            )

        instance = {
            "InstanceId": _make_id("i"),
            "InstanceType": instance_type,
            "ImageId": image_id,
            "State": _state("pending"),
            "PrivateIpAddress": _make_private_ip(len(self._instances)),
            "SubnetId": subnet_id or "subnet-00000000",
            "VpcId": "vpc-00000000",
            "SecurityGroups": [
                {"GroupId": sg, "GroupName": "default"}
                for sg in (security_group_ids or [])
            ],
            "KeyName": key_name,
            "LaunchTime": _now(),
            "Placement": {"AvailabilityZone": self._zone()},
            "Tags": [],
            "Architecture": "x86_64",
            "RootDeviceType": "ebs",
        }
        self._instances[instance["InstanceId"]] = instance
        logger.info("Simulated launch of %s in %s", instance["InstanceId"], self.region)
        return dict(instance)

    async def terminate_instances(self, instance_ids: list[str]) -> list[dict[str, Any]]:
        self._enter("terminate_instances", InstanceIds=instance_ids)
        instances = [self._get_instance("TerminateInstances", iid) for iid in instance_ids]
        changes = []
        for instance in instances:
            previous = instance["State"]
            if previous["Name"] != "terminated":
                instance["State"] = _state("shutting-down")
                self._release_volumes(instance["InstanceId"])
            changes.append({
                "InstanceId": instance["InstanceId"],
                "CurrentState": dict(instance["State"]),
                "PreviousState": dict(previous),
            })
        return changes

    async def start_instances(self, instance_ids: list[str]) -> list[dict[str, Any]]:
        self._enter("start_instances", InstanceIds=instance_ids)
        instances = [self._get_instance("StartInstances", iid) for iid in instance_ids]
        changes = []
        for instance in instances:
            previous = instance["State"]
            if previous["Name"] in ("terminated", "shutting-down"):
                raise _client_error(
                    "StartInstances",
                    "IncorrectInstanceState",
                    f"The instance '{instance['InstanceId']}' is not in a state from which it can be started.",
                )
            if previous["Name"] != "running":
                instance["State"] = _state("pending")
            changes.append({
                "InstanceId": instance["InstanceId"],
                "CurrentState": dict(instance["State"]),
                "PreviousState": dict(previous),
            })
        return changes

    async def reboot_instances(self, instance_ids: list[str]) -> None:
        self._enter("reboot_instances", InstanceIds=instance_ids)
        for iid in instance_ids:
            instance = self._get_instance("RebootInstances", iid)
            if instance["State"]["Name"] in ("terminated", "shutting-down"):
                raise _client_error(
                    "RebootInstances",
                    "IncorrectInstanceState",
                    f"The instance '{iid}' is not in a state from which it can be rebooted.",
                )

    # ------------------------------------------------------------------
    # Volumes
    # ------------------------------------------------------------------

    def _release_volumes(self, instance_id: str) -> None:
        for volume in self._volumes.values():
            if any(a.get("InstanceId") == instance_id for a in volume["Attachments"]):
                volume["Attachments"] = []
                volume["State"] = "available"

    async def describe_volumes(
        self, volume_ids: Optional[list[str]] = None
    ) -> list[dict[str, Any]]:
        self._enter("describe_volumes", VolumeIds=volume_ids)
        if volume_ids:
            selected = [self._get_volume("DescribeVolumes", vid) for vid in volume_ids]
        else:
            selected = list(self._volumes.values())
        return [
            {**volume, "Attachments": [dict(a) for a in volume["Attachments"]]}
            for volume in selected
        ]

    async def create_volume(
        self, size_gb: int, availability_zone: str, volume_type: str
    ) -> dict[str, Any]:
        self._enter(
            "create_volume",
            Size=size_gb, AvailabilityZone=availability_zone, VolumeType=volume_type,
        )
        if not availability_zone.startswith(self.region) or availability_zone == self.region:
            raise _client_error(
                "CreateVolume",
                "InvalidParameterValue",
                f"Invalid availability zone: [{availability_zone}]",
            )
        volume = {
            "VolumeId": _make_id("vol"),
            "Size": size_gb,
            "AvailabilityZone": availability_zone,
            "State": "available",
            "VolumeType": volume_type,
            "CreateTime": _now(),
            "Encrypted": False,
            "Attachments": [],
            "Tags": [],
        }
        self._volumes[volume["VolumeId"]] = volume
        return {**volume, "State": "creating", "Attachments": []}

    async def delete_volume(self, volume_id: str) -> None:
        self._enter("delete_volume", VolumeId=volume_id)
        volume = self._get_volume("DeleteVolume", volume_id)
        if volume["State"] == "in-use":
            raise _client_error(
                "DeleteVolume", "VolumeInUse", f"Volume {volume_id} is currently attached"
            )
        del self._volumes[volume_id]

    async def attach_volume(
        self, volume_id: str, instance_id: str, device: str
    ) -> dict[str, Any]:
        self._enter("attach_volume", VolumeId=volume_id, InstanceId=instance_id, Device=device)
        volume = self._get_volume("AttachVolume", volume_id)
        instance = self._get_instance("AttachVolume", instance_id)
        if volume["State"] == "in-use":
            raise _client_error(
                "AttachVolume",
                "VolumeInUse",
                f"{volume_id} is already attached to an instance",
            )
        if instance["Placement"]["AvailabilityZone"] != volume["AvailabilityZone"]:
            raise _client_error(
                "AttachVolume",
                "InvalidVolume.ZoneMismatch",
                f"The volume '{volume_id}' is not in the same availability zone "
                f"as instance '{instance_id}'",
            )

        attach_time = _now()
        volume["State"] = "in-use"
        volume["Attachments"] = [{
            "VolumeId": volume_id,
            "InstanceId": instance_id,
            "Device": device,
            "State": "attached",
            "AttachTime": attach_time,
            "DeleteOnTermination": False,
        }]
        return {
            "VolumeId": volume_id,
            "InstanceId": instance_id,
            "Device": device,
            "State": "attaching",
            "AttachTime": attach_time,
        }

    async def detach_volume(self, volume_id: str, force: bool = False) -> dict[str, Any]:
        self._enter("detach_volume", VolumeId=volume_id, Force=force)
        volume = self._get_volume("DetachVolume", volume_id)
        if not volume["Attachments"]:
            raise _client_error(
                "DetachVolume", "IncorrectState", f"Volume '{volume_id}' is in the 'available' state."
            )
        attachment = volume["Attachments"][0]
        # Real EC2 passes through "detaching"; here the detach is immediate.
        volume["Attachments"] = []
        volume["State"] = "available"
        return {**attachment, "State": "detaching"}

    # ------------------------------------------------------------------
    # Snapshots
    # ------------------------------------------------------------------

    async def create_snapshot(
        self,
        volume_id: str,
        description: str = "",
        tags: Optional[dict[str, str]] = None,
    ) -> dict[str, Any]:
        self._enter("create_snapshot", VolumeId=volume_id, Description=description)
        volume = self._get_volume("CreateSnapshot", volume_id)
        snapshot = {
            "SnapshotId": _make_id("snap"),
            "VolumeId": volume_id,
            "State": "pending",
            "StartTime": _now(),
            "Progress": "",
            "OwnerId": "123456789012",
            "Description": description,
            "VolumeSize": volume["Size"],
            "Encrypted": False,
            "Tags": dict_to_tags(tags or {}),
        }
        self._snapshots[snapshot["SnapshotId"]] = snapshot
        return dict(snapshot)

    async def delete_snapshot(self, snapshot_id: str) -> None:
        self._enter("delete_snapshot", SnapshotId=snapshot_id)
        self._get_snapshot("DeleteSnapshot", snapshot_id)
        del self._snapshots[snapshot_id]

    async def describe_snapshots(
        self, snapshot_ids: Optional[list[str]] = None
    ) -> list[dict[str, Any]]:
        self._enter("describe_snapshots", SnapshotIds=snapshot_ids)
        if snapshot_ids:
            selected = [self._get_snapshot("DescribeSnapshots", sid) for sid in snapshot_ids]
        else:
            selected = list(self._snapshots.values())
        for snapshot in selected:
            if snapshot["State"] == "pending":
                snapshot["State"] = "completed"
                snapshot["Progress"] = "100%"
        return [dict(snapshot) for snapshot in selected]

    # ------------------------------------------------------------------
    # Tags and account
    # ------------------------------------------------------------------

    async def create_tags(self, resource_ids: list[str], tags: dict[str, str]) -> None:
        self._enter("create_tags", Resources=resource_ids, Tags=tags)
        records = []
        for resource_id in resource_ids:
            if resource_id.startswith("vol-"):
                records.append(self._get_volume("CreateTags", resource_id))
            elif resource_id.startswith("snap-"):
                records.append(self._get_snapshot("CreateTags", resource_id))
            else:
                records.append(self._get_instance("CreateTags", resource_id))
        for record in records:
            merged = {**tags_to_dict(record.get("Tags")), **tags}
            record["Tags"] = dict_to_tags(merged)

    async def describe_regions(self) -> list[dict[str, Any]]:
        self._enter("describe_regions")
        return [
            {
                "RegionName": name,
                "Endpoint": f"ec2.{name}.amazonaws.com",
                "OptInStatus": "opt-in-not-required",
            }
            for name in SIMULATED_REGIONS
        ]


class SimulatedEc2Cloud:
    """BackendResolverPort over per-region simulated backends."""

    def __init__(self) -> None:
        self.backends: dict[str, SimulatedEc2Backend] = {}
        self.requested_regions: list[str] = []

    def for_region(self, region: str) -> SimulatedEc2Backend:
        self.requested_regions.append(region)
        backend = self.backends.get(region)
        if backend is None:
            backend = SimulatedEc2Backend(region)
            self.backends[region] = backend
        return backend
