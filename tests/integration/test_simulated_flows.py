"""
End-to-end action flows against the simulated EC2 cloud.

Everything below the backend port is in-memory, so these tests cover the
dispatcher, validation, the Resource Mapper and the Error Classifier working
together on boto3-shaped records and real botocore ClientErrors.
"""

import pytest

from cpi_aws.domain.value_objects.action_result import ResultStatus
from cpi_aws.domain.value_objects.error_kind import ErrorKind
from cpi_aws.domain.value_objects.snapshot import SnapshotState
from cpi_aws.domain.value_objects.volume import VolumeState
from cpi_aws.domain.value_objects.worker import WorkerState
from cpi_aws.infrastructure.adapters.simulated_ec2 import SIMULATED_AMI

pytestmark = pytest.mark.asyncio


async def _launch(dispatcher, **extra):
    params = {"image_id": SIMULATED_AMI, "instance_type": "t3.micro", **extra}
    result = await dispatcher.dispatch("create_worker", params)
    assert result.ok, result.error
    return result.payload


class TestWorkerLifecycle:
    async def test_create_get_list_has(self, dispatcher):
        worker = await _launch(dispatcher, worker_name="web", tags={"env": "dev"})
        assert worker.state is WorkerState.PENDING
        assert worker.name == "web"
        assert worker.tags == {"env": "dev", "Name": "web"}

        fetched = await dispatcher.dispatch("get_worker", {"worker_id": worker.id})
        listed = await dispatcher.dispatch("list_workers", {})
        exists = await dispatcher.dispatch("has_worker", {"worker_id": worker.id})

        assert fetched.payload.id == worker.id
        assert fetched.payload.state is WorkerState.RUNNING
        assert fetched.payload.availability_zone == "us-east-1a"
        assert [w.id for w in listed.payload] == [worker.id]
        assert exists.payload is True

    async def test_wait_for_running(self, dispatcher, clock):
        worker = await _launch(dispatcher, wait_for_running=True)

        assert worker.state is WorkerState.RUNNING
        assert clock.sleeps == [5.0]

    async def test_missing_worker(self, dispatcher):
        fetched = await dispatcher.dispatch("get_worker", {"worker_id": "i-0missing"})
        exists = await dispatcher.dispatch("has_worker", {"worker_id": "i-0missing"})

        assert fetched.status is ResultStatus.FAILURE
        assert fetched.error.kind is ErrorKind.NOT_FOUND
        assert fetched.error.code == "InvalidInstanceID.NotFound"
        assert exists.status is ResultStatus.SUCCESS
        assert exists.payload is False

    async def test_delete_then_start_conflicts(self, dispatcher):
        worker = await _launch(dispatcher)

        deleted = await dispatcher.dispatch("delete_worker", {"worker_id": worker.id})
        fetched = await dispatcher.dispatch("get_worker", {"worker_id": worker.id})
        started = await dispatcher.dispatch("start_worker", {"worker_id": worker.id})
        rebooted = await dispatcher.dispatch("reboot_worker", {"worker_id": worker.id})

        assert deleted.status is ResultStatus.SUCCESS
        assert fetched.payload.state is WorkerState.TERMINATED
        assert started.error.kind is ErrorKind.CONFLICT
        assert rebooted.error.kind is ErrorKind.CONFLICT

    async def test_set_worker_metadata(self, dispatcher):
        worker = await _launch(dispatcher, worker_name="web")

        result = await dispatcher.dispatch(
            "set_worker_metadata",
            {"worker_id": worker.id, "tags": {"team": "infra"}, "key": "env", "value": "prod"},
        )
        fetched = await dispatcher.dispatch("get_worker", {"worker_id": worker.id})

        assert result.ok
        assert fetched.payload.tags == {"Name": "web", "team": "infra", "env": "prod"}

    async def test_empty_metadata_value(self, dispatcher):
        worker = await _launch(dispatcher, worker_name="web")

        result = await dispatcher.dispatch(
            "set_worker_metadata", {"worker_id": worker.id, "key": "env", "value": ""}
        )
        fetched = await dispatcher.dispatch("get_worker", {"worker_id": worker.id})

        assert result.ok
        assert fetched.payload.tags == {"Name": "web", "env": ""}

    async def test_unbounded_wait_rejected(self, dispatcher, cloud, clock):
        result = await dispatcher.dispatch(
            "create_worker",
            {"image_id": SIMULATED_AMI, "instance_type": "t3.micro",
             "wait_for_running": True, "wait_timeout": "inf"},
        )

        assert result.error.kind is ErrorKind.INVALID_PARAMETERS
        assert cloud.requested_regions == []
        assert clock.sleeps == []

    async def test_tagging_failure_keeps_the_worker(self, dispatcher, cloud):
        cloud.for_region("us-east-1").fail_next("create_tags", "RequestLimitExceeded")

        result = await dispatcher.dispatch(
            "create_worker",
            {"image_id": SIMULATED_AMI, "instance_type": "t3.micro", "worker_name": "web"},
        )

        assert result.status is ResultStatus.PARTIAL_SUCCESS
        assert result.payload.id.startswith("i-")
        assert result.warning.kind is ErrorKind.RATE_LIMITED
        listed = await dispatcher.dispatch("list_workers", {})
        assert [w.id for w in listed.payload] == [result.payload.id]

    async def test_malformed_image(self, dispatcher):
        result = await dispatcher.dispatch(
            "create_worker", {"image_id": "not-an-ami", "instance_type": "t3.micro"}
        )
        assert result.error.kind is ErrorKind.INVALID_PARAMETERS
        assert result.error.code == "InvalidAMIID.Malformed"


class TestVolumeLifecycle:
    async def test_attach_detach_delete(self, dispatcher):
        worker = await _launch(dispatcher)
        created = await dispatcher.dispatch(
            "create_volume", {"size": 10, "availability_zone": "us-east-1a"}
        )
        volume = created.payload
        assert volume.state is VolumeState.CREATING
        assert volume.volume_type == "gp2"

        attached = await dispatcher.dispatch(
            "attach_volume",
            {"volume_id": volume.id, "worker_id": worker.id, "device": "/dev/sdf"},
        )
        assert attached.status is ResultStatus.SUCCESS
        assert attached.payload.state is VolumeState.IN_USE
        assert attached.payload.attached_to == worker.id
        assert attached.payload.device == "/dev/sdf"

        listed = await dispatcher.dispatch("get_volumes", {})
        assert [(v.id, v.state) for v in listed.payload] == [(volume.id, VolumeState.IN_USE)]

        busy = await dispatcher.dispatch("delete_volume", {"volume_id": volume.id})
        assert busy.error.kind is ErrorKind.CONFLICT
        assert busy.error.code == "VolumeInUse"

        detached = await dispatcher.dispatch("detach_volume", {"volume_id": volume.id})
        assert detached.payload.state is VolumeState.AVAILABLE
        assert detached.payload.attached_to is None

        deleted = await dispatcher.dispatch("delete_volume", {"volume_id": volume.id})
        gone = await dispatcher.dispatch("has_volume", {"volume_id": volume.id})
        assert deleted.ok
        assert gone.payload is False

    async def test_zone_mismatch_is_conflict(self, dispatcher):
        worker = await _launch(dispatcher)
        volume = (await dispatcher.dispatch(
            "create_volume", {"size": 10, "availability_zone": "us-east-1c"}
        )).payload

        result = await dispatcher.dispatch(
            "attach_volume",
            {"volume_id": volume.id, "worker_id": worker.id, "device": "/dev/sdf"},
        )

        assert result.error.kind is ErrorKind.CONFLICT
        assert result.error.code == "InvalidVolume.ZoneMismatch"

    async def test_invalid_size_never_reaches_backend(self, dispatcher, cloud):
        result = await dispatcher.dispatch(
            "create_volume", {"size": 0, "availability_zone": "us-east-1a"}
        )

        assert result.error.kind is ErrorKind.INVALID_PARAMETERS
        assert cloud.requested_regions == []


class TestSnapshots:
    async def test_snapshot_flow(self, dispatcher):
        volume = (await dispatcher.dispatch(
            "create_volume", {"size": 8, "availability_zone": "us-east-1a"}
        )).payload

        created = await dispatcher.dispatch(
            "snapshot_volume", {"volume_id": volume.id, "snapshot_name": "nightly"}
        )
        snapshot = created.payload
        assert snapshot.state is SnapshotState.PENDING
        assert snapshot.source_volume_id == volume.id
        assert snapshot.name == "nightly"
        assert snapshot.description == f"Snapshot of {volume.id}"

        exists = await dispatcher.dispatch("has_snapshot", {"snapshot_id": snapshot.id})
        deleted = await dispatcher.dispatch("delete_snapshot", {"snapshot_id": snapshot.id})
        again = await dispatcher.dispatch("delete_snapshot", {"snapshot_id": snapshot.id})
        gone = await dispatcher.dispatch("has_snapshot", {"snapshot_id": snapshot.id})

        assert exists.payload is True
        assert deleted.ok
        assert again.error.kind is ErrorKind.NOT_FOUND
        assert gone.payload is False

    async def test_snapshot_of_missing_volume(self, dispatcher):
        result = await dispatcher.dispatch("create_snapshot", {"volume_id": "vol-0missing"})
        assert result.error.kind is ErrorKind.NOT_FOUND


class TestRegions:
    async def test_resources_are_region_scoped(self, dispatcher, cloud):
        worker = await _launch(dispatcher, region="eu-west-1")

        here = await dispatcher.dispatch("has_worker", {"worker_id": worker.id, "region": "eu-west-1"})
        elsewhere = await dispatcher.dispatch("has_worker", {"worker_id": worker.id})

        assert worker.region == "eu-west-1"
        assert worker.availability_zone == "eu-west-1a"
        assert here.payload is True
        assert elsewhere.payload is False
        assert cloud.requested_regions == ["eu-west-1", "eu-west-1", "us-east-1"]

    async def test_test_install(self, dispatcher, cloud):
        ok = await dispatcher.dispatch("test_install", {})
        cloud.for_region("us-east-1").fail_next("describe_regions", "AuthFailure", status=401)
        denied = await dispatcher.dispatch("test_install", {})

        assert ok.status is ResultStatus.SUCCESS
        assert denied.error.kind is ErrorKind.AUTHENTICATION_ERROR
        assert denied.error.code == "AuthFailure"
        assert denied.error.message.startswith("Failed to connect to AWS")

    async def test_unsupported_action_touches_nothing(self, dispatcher, cloud):
        result = await dispatcher.dispatch("resize_worker", {"worker_id": "i-1"})

        assert result.error.kind is ErrorKind.UNSUPPORTED_ACTION
        assert cloud.requested_regions == []
