"""Tests for the host-facing EC2 extension."""

from unittest.mock import AsyncMock

import pytest

from cpi_aws.application.actions.catalog import ACTIONS
from cpi_aws.domain.value_objects.action_result import ActionResult
from cpi_aws.infrastructure.host.extension import Ec2Extension, get_extension


@pytest.fixture
def extension(dispatcher):
    return Ec2Extension(dispatcher, default_region="us-east-1")


class TestIdentity:
    def test_name_and_type(self, extension):
        assert extension.name == "ec2"
        assert extension.provider_type == "cloud"

    def test_list_actions(self, extension):
        actions = extension.list_actions()
        assert len(actions) == 19
        assert set(actions) == set(ACTIONS)

    def test_action_definition(self, extension):
        definition = extension.get_action_definition("create_volume")
        params = {p["name"]: p for p in definition["parameters"]}
        assert definition["name"] == "create_volume"
        assert params["size"]["required"] is True
        assert params["region"]["required"] is False

    def test_unknown_definition(self, extension):
        assert extension.get_action_definition("resize_worker") is None


class TestDispatch:
    @pytest.mark.asyncio
    async def test_dispatch_uses_requested_region(self, extension, cloud):
        result = await extension.dispatch("list_workers", {"region": "eu-west-1"})
        assert result.ok
        assert cloud.requested_regions == ["eu-west-1"]

    @pytest.mark.asyncio
    async def test_dispatch_delegates_to_provider(self):
        provider = AsyncMock()
        provider.dispatch.return_value = ActionResult.success(True)
        extension = Ec2Extension(provider)

        result = await extension.dispatch("test_install", {})

        assert result.payload is True
        provider.dispatch.assert_awaited_once_with("test_install", {})

    def test_execute_action_returns_wire_dict(self, extension):
        response = extension.execute_action(
            "create_volume", {"size": 8, "availability_zone": "us-east-1a"}
        )
        assert response["success"] is True
        assert response["status"] == "success"
        assert response["result"]["size_gb"] == 8

    def test_execute_unknown_action(self, extension):
        response = extension.execute_action("resize_worker", {})
        assert response["success"] is False
        assert response["error"]["kind"] == "UnsupportedAction"


class TestGetExtension:
    def test_builds_from_default_configuration(self, monkeypatch):
        monkeypatch.setenv("CPI_AWS_REGION", "eu-central-1")
        extension = get_extension()
        assert isinstance(extension, Ec2Extension)
        assert extension.default_region == "eu-central-1"
