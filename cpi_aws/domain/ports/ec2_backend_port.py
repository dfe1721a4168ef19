"""
EC2 Backend Port

Architectural Intent:
- Port interface for the native EC2 operations the dispatcher needs
- Implemented by the boto3 facade and by the in-memory simulated backend
- Methods return native (boto3-shaped) dicts and raise native errors
  (botocore ClientError); no mapping or classification happens behind it

Design Decisions:
- Uses Protocol for structural typing (no inheritance needed)
- One backend object is bound to exactly one region
"""

from typing import Any, Optional, Protocol, runtime_checkable


@runtime_checkable
class Ec2BackendPort(Protocol):
    """Native EC2 operations for a single region."""

    region: str

    async def describe_instances(
        self, instance_ids: Optional[list[str]] = None
    ) -> list[dict[str, Any]]:
        """Return instance records, flattened out of their reservations."""
        ...

    async def run_instance(
        self,
        image_id: str,
        instance_type: str,
        key_name: Optional[str] = None,
        subnet_id: Optional[str] = None,
        security_group_ids: Optional[list[str]] = None,
        user_data: Optional[str] = None,
    ) -> dict[str, Any]:
        """Launch one instance and return its record."""
        ...

    async def terminate_instances(self, instance_ids: list[str]) -> list[dict[str, Any]]:
        """Return the TerminatingInstances state-change records."""
        ...

    async def start_instances(self, instance_ids: list[str]) -> list[dict[str, Any]]:
        """Return the StartingInstances state-change records."""
        ...

    async def reboot_instances(self, instance_ids: list[str]) -> None:
        ...

    async def describe_volumes(
        self, volume_ids: Optional[list[str]] = None
    ) -> list[dict[str, Any]]:
        ...

    async def create_volume(
        self, size_gb: int, availability_zone: str, volume_type: str
    ) -> dict[str, Any]:
        ...

    async def delete_volume(self, volume_id: str) -> None:
        ...

    async def attach_volume(
        self, volume_id: str, instance_id: str, device: str
    ) -> dict[str, Any]:
        """Return the VolumeAttachment record."""
        ...

    async def detach_volume(self, volume_id: str, force: bool = False) -> dict[str, Any]:
        """Return the VolumeAttachment record."""
        ...

    async def create_snapshot(
        self,
        volume_id: str,
        description: str = "",
        tags: Optional[dict[str, str]] = None,
    ) -> dict[str, Any]:
        ...

    async def delete_snapshot(self, snapshot_id: str) -> None:
        ...

    async def describe_snapshots(
        self, snapshot_ids: Optional[list[str]] = None
    ) -> list[dict[str, Any]]:
        ...

    async def create_tags(self, resource_ids: list[str], tags: dict[str, str]) -> None:
        ...

    async def describe_regions(self) -> list[dict[str, Any]]:
        ...


@runtime_checkable
class BackendResolverPort(Protocol):
    """Selects the backend bound to a region."""

    def for_region(self, region: str) -> Ec2BackendPort:
        ...
