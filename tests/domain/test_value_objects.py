"""Tests for domain value objects."""

import pytest

from cpi_aws.domain.errors import (
    BackendTimeoutError,
    InvalidParametersError,
    NotFoundError,
)
from cpi_aws.domain.value_objects.action_result import (
    ActionError,
    ActionResult,
    ResultStatus,
)
from cpi_aws.domain.value_objects.credentials import Credentials
from cpi_aws.domain.value_objects.error_kind import ErrorKind
from cpi_aws.domain.value_objects.snapshot import Snapshot, SnapshotState
from cpi_aws.domain.value_objects.volume import Volume, VolumeState
from cpi_aws.domain.value_objects.worker import Worker, WorkerState


class TestWorker:
    def test_defaults(self):
        worker = Worker(id="i-1")
        assert worker.state is WorkerState.UNKNOWN
        assert worker.tags == {}
        assert str(worker) == "i-1 (Unknown)"

    def test_empty_id_rejected(self):
        with pytest.raises(ValueError):
            Worker(id="")

    def test_immutable(self):
        worker = Worker(id="i-1")
        with pytest.raises(AttributeError):
            worker.id = "i-2"

    def test_to_dict(self):
        worker = Worker(id="i-1", state=WorkerState.RUNNING, region="us-east-1",
                        tags={"Name": "web"}, name="web")
        data = worker.to_dict()
        assert data["id"] == "i-1"
        assert data["state"] == "Running"
        assert data["name"] == "web"
        assert data["tags"] == {"Name": "web"}


class TestVolume:
    def test_in_use_requires_attachment(self):
        with pytest.raises(ValueError):
            Volume(id="vol-1", state=VolumeState.IN_USE)

    def test_attachment_requires_in_use(self):
        with pytest.raises(ValueError):
            Volume(id="vol-1", state=VolumeState.AVAILABLE, attached_to="i-1")

    def test_attached(self):
        volume = Volume(id="vol-1", size_gb=8, state=VolumeState.IN_USE, attached_to="i-1")
        assert volume.is_attached
        assert volume.to_dict()["state"] == "InUse"

    def test_available(self):
        volume = Volume(id="vol-1", state=VolumeState.AVAILABLE)
        assert not volume.is_attached
        assert volume.to_dict()["attached_to"] is None


class TestSnapshot:
    def test_to_dict(self):
        snap = Snapshot(id="snap-1", source_volume_id="vol-1", state=SnapshotState.COMPLETED)
        assert snap.to_dict()["state"] == "Completed"
        assert snap.to_dict()["source_volume_id"] == "vol-1"

    def test_empty_id_rejected(self):
        with pytest.raises(ValueError):
            Snapshot(id="")


class TestCredentials:
    def test_secrets_hidden_from_repr(self):
        creds = Credentials("AKIAEXAMPLE", "s3cr3t", "tok3n")
        text = repr(creds)
        assert "AKIAEXAMPLE" in text
        assert "s3cr3t" not in text
        assert "tok3n" not in text
        assert creds.is_temporary

    def test_long_term(self):
        assert not Credentials("AKIA", "secret").is_temporary

    @pytest.mark.parametrize("key,secret", [("", "secret"), ("AKIA", "")])
    def test_empty_values_rejected(self, key, secret):
        with pytest.raises(ValueError):
            Credentials(key, secret)


class TestActionResult:
    def test_success(self):
        result = ActionResult.success(True)
        assert result.ok
        assert result.status is ResultStatus.SUCCESS
        assert result.error_kind is None
        assert result.to_dict() == {"success": True, "status": "success", "result": True}

    def test_partial_keeps_payload_and_warning(self):
        warning = ActionError(ErrorKind.RATE_LIMITED, "slow down", "Throttling", "create_worker")
        result = ActionResult.partial(Worker(id="i-1"), warning)
        assert result.ok
        data = result.to_dict()
        assert data["status"] == "partial_success"
        assert data["result"]["id"] == "i-1"
        assert data["warning"]["kind"] == "RateLimited"
        assert "error" not in data

    def test_failure(self):
        error = ActionError(ErrorKind.NOT_FOUND, "gone", "InvalidVolume.NotFound")
        result = ActionResult.failure(error)
        assert not result.ok
        assert result.error_kind is ErrorKind.NOT_FOUND
        data = result.to_dict()
        assert data["success"] is False
        assert data["result"] is None
        assert data["error"]["code"] == "InvalidVolume.NotFound"

    def test_list_payload_serialized(self):
        result = ActionResult.success([Worker(id="i-1"), Worker(id="i-2")])
        assert [w["id"] for w in result.to_dict()["result"]] == ["i-1", "i-2"]

    def test_failure_requires_error(self):
        with pytest.raises(ValueError):
            ActionResult(status=ResultStatus.FAILURE)

    def test_partial_requires_warning(self):
        with pytest.raises(ValueError):
            ActionResult(status=ResultStatus.PARTIAL_SUCCESS, payload=True)


class TestErrors:
    def test_invalid_parameters_lists_problems(self):
        err = InvalidParametersError(["missing a", "missing b"], action="create_volume")
        assert err.kind is ErrorKind.INVALID_PARAMETERS
        assert err.problems == ["missing a", "missing b"]
        assert "create_volume" in str(err)
        assert "missing a; missing b" in str(err)
        assert err.code == "InvalidParameters"

    def test_not_found_custom_code(self):
        err = NotFoundError("no such instance", code="InvalidInstanceID.NotFound")
        assert err.to_dict()["error"]["code"] == "InvalidInstanceID.NotFound"
        assert err.to_dict()["error"]["kind"] == "NotFound"

    def test_timeout_is_unknown_backend_error(self):
        err = BackendTimeoutError("too slow", details={"instance_id": "i-1"})
        assert err.kind is ErrorKind.UNKNOWN_BACKEND_ERROR
        assert err.code == "WaitTimeout"
        assert err.details == {"instance_id": "i-1"}

    def test_error_kind_str(self):
        assert str(ErrorKind.CONFLICT) == "Conflict"
