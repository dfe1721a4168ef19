"""
EC2 Client Facade

Architectural Intent:
- Implements Ec2BackendPort over a boto3 EC2 client bound to one region
- The only module that issues real EC2 API calls
- Returns native response records and lets botocore errors propagate
  untouched; classification happens in the dispatcher

Design Decisions:
- boto3 is synchronous, so every call runs in a worker thread through
  asyncio.to_thread to keep the event loop responsive
- Describe operations go through botocore paginators and return the full,
  flattened record list
- Every call is logged at DEBUG level with its request payload
"""

import asyncio
import logging
from typing import Any, Optional

from cpi_aws.domain.services.resource_mapper import dict_to_tags

logger = logging.getLogger(__name__)

_METADATA_KEY = "ResponseMetadata"


def _strip_metadata(response: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in response.items() if k != _METADATA_KEY}


class Ec2ClientFacade:
    """
    Thin async facade over a boto3 EC2 client.

    session is a RegionSession (or anything with region and client
    attributes).
    """

    def __init__(self, session: Any) -> None:
        self.session = session
        self.region: str = session.region
        self._client = session.client

    # ------------------------------------------------------------------
    # Call plumbing
    # ------------------------------------------------------------------

    def _call(self, operation: str, **kwargs: Any) -> dict[str, Any]:
        logger.debug("EC2 %s (region=%s) %s", operation, self.region, kwargs)
        return getattr(self._client, operation)(**kwargs)

    def _paginate(self, operation: str, result_key: str, **kwargs: Any) -> list[dict[str, Any]]:
        logger.debug("EC2 %s [paginated] (region=%s) %s", operation, self.region, kwargs)
        paginator = self._client.get_paginator(operation)
        records: list[dict[str, Any]] = []
        for page in paginator.paginate(**kwargs):
            records.extend(page.get(result_key, []))
        return records

    async def _invoke(self, operation: str, **kwargs: Any) -> dict[str, Any]:
        return await asyncio.to_thread(self._call, operation, **kwargs)

    async def _invoke_paginated(
        self, operation: str, result_key: str, **kwargs: Any
    ) -> list[dict[str, Any]]:
        return await asyncio.to_thread(self._paginate, operation, result_key, **kwargs)

    # ------------------------------------------------------------------
    # Instances
    # ------------------------------------------------------------------

    async def describe_instances(
        self, instance_ids: Optional[list[str]] = None
    ) -> list[dict[str, Any]]:
        kwargs: dict[str, Any] = {}
        if instance_ids:
            kwargs["InstanceIds"] = list(instance_ids)
        reservations = await self._invoke_paginated(
            "describe_instances", "Reservations", **kwargs
        )
        return [
            instance
            for reservation in reservations
            for instance in reservation.get("Instances", [])
        ]

    async def run_instance(
        self,
        image_id: str,
        instance_type: str,
        key_name: Optional[str] = None,
        subnet_id: Optional[str] = None,
        security_group_ids: Optional[list[str]] = None,
        user_data: Optional[str] = None,
    ) -> dict[str, Any]:
        kwargs: dict[str, Any] = {
            "ImageId": image_id,
            "InstanceType": instance_type,
            "MinCount": 1,
            "MaxCount": 1,
        }
        if key_name:
            kwargs["KeyName"] = key_name
        if subnet_id:
            kwargs["SubnetId"] = subnet_id
        if security_group_ids:
            kwargs["SecurityGroupIds"] = list(security_group_ids)
        if user_data:
            kwargs["UserData"] = user_data
        response = await self._invoke("run_instances", **kwargs)
        instances = response.get("Instances") or [{}]
        return instances[0]

    async def terminate_instances(self, instance_ids: list[str]) -> list[dict[str, Any]]:
        response = await self._invoke("terminate_instances", InstanceIds=list(instance_ids))
        return response.get("TerminatingInstances", [])

    async def start_instances(self, instance_ids: list[str]) -> list[dict[str, Any]]:
        response = await self._invoke("start_instances", InstanceIds=list(instance_ids))
        return response.get("StartingInstances", [])

    async def reboot_instances(self, instance_ids: list[str]) -> None:
        await self._invoke("reboot_instances", InstanceIds=list(instance_ids))

    # ------------------------------------------------------------------
    # Volumes
    # ------------------------------------------------------------------

    async def describe_volumes(
        self, volume_ids: Optional[list[str]] = None
    ) -> list[dict[str, Any]]:
        kwargs: dict[str, Any] = {}
        if volume_ids:
            kwargs["VolumeIds"] = list(volume_ids)
        return await self._invoke_paginated("describe_volumes", "Volumes", **kwargs)

    async def create_volume(
        self, size_gb: int, availability_zone: str, volume_type: str
    ) -> dict[str, Any]:
        response = await self._invoke(
            "create_volume",
            Size=size_gb,
            AvailabilityZone=availability_zone,
            VolumeType=volume_type,
        )
        return _strip_metadata(response)

    async def delete_volume(self, volume_id: str) -> None:
        await self._invoke("delete_volume", VolumeId=volume_id)

    async def attach_volume(
        self, volume_id: str, instance_id: str, device: str
    ) -> dict[str, Any]:
        response = await self._invoke(
            "attach_volume",
            VolumeId=volume_id,
            InstanceId=instance_id,
            Device=device,
        )
        return _strip_metadata(response)

    async def detach_volume(self, volume_id: str, force: bool = False) -> dict[str, Any]:
        response = await self._invoke("detach_volume", VolumeId=volume_id, Force=force)
        return _strip_metadata(response)

    # ------------------------------------------------------------------
    # Snapshots
    # ------------------------------------------------------------------

    async def create_snapshot(
        self,
        volume_id: str,
        description: str = "",
        tags: Optional[dict[str, str]] = None,
    ) -> dict[str, Any]:
        kwargs: dict[str, Any] = {"VolumeId": volume_id}
        if description:
            kwargs["Description"] = description
        if tags:
            kwargs["TagSpecifications"] = [
                {"ResourceType": "snapshot", "Tags": dict_to_tags(tags)}
            ]
        response = await self._invoke("create_snapshot", **kwargs)
        return _strip_metadata(response)

    async def delete_snapshot(self, snapshot_id: str) -> None:
        await self._invoke("delete_snapshot", SnapshotId=snapshot_id)

    async def describe_snapshots(
        self, snapshot_ids: Optional[list[str]] = None
    ) -> list[dict[str, Any]]:
        # Without IDs, only snapshots owned by this account are listed.
        if snapshot_ids:
            kwargs: dict[str, Any] = {"SnapshotIds": list(snapshot_ids)}
        else:
            kwargs = {"OwnerIds": ["self"]}
        return await self._invoke_paginated("describe_snapshots", "Snapshots", **kwargs)

    # ------------------------------------------------------------------
    # Tags and account
    # ------------------------------------------------------------------

    async def create_tags(self, resource_ids: list[str], tags: dict[str, str]) -> None:
        await self._invoke(
            "create_tags", Resources=list(resource_ids), Tags=dict_to_tags(tags)
        )

    async def describe_regions(self) -> list[dict[str, Any]]:
        response = await self._invoke("describe_regions")
        return response.get("Regions", [])
