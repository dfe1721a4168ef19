"""Tests for the action catalog and parameter validation."""

import pytest

from cpi_aws.application.actions.catalog import (
    ACTIONS,
    ParamType,
    get_action_definition,
    list_actions,
)
from cpi_aws.application.actions.validation import validate_parameters
from cpi_aws.application.dtos.action_dtos import ActionRequest
from cpi_aws.domain.errors import InvalidParametersError

EXPECTED_ACTIONS = {
    "test_install", "list_workers", "create_worker", "delete_worker",
    "get_worker", "has_worker", "start_worker", "reboot_worker",
    "get_volumes", "has_volume", "create_volume", "delete_volume",
    "attach_volume", "detach_volume", "snapshot_volume", "create_snapshot",
    "delete_snapshot", "has_snapshot", "set_worker_metadata",
}


class TestCatalog:
    def test_vocabulary(self):
        assert set(list_actions()) == EXPECTED_ACTIONS
        assert len(list_actions()) == 19

    def test_every_action_accepts_region(self):
        for definition in ACTIONS.values():
            names = [p.name for p in definition.parameters]
            assert "region" in names, definition.name

    def test_unknown_action(self):
        assert get_action_definition("resize_worker") is None
        assert get_action_definition("CREATE_WORKER") is None

    def test_definition_to_dict(self):
        data = get_action_definition("create_volume").to_dict()
        assert data["name"] == "create_volume"
        params = {p["name"]: p for p in data["parameters"]}
        assert params["size"]["required"] is True
        assert params["size"]["type"] == "integer"
        assert params["size"]["aliases"] == ["size_gb"]
        assert params["region"]["required"] is False

    def test_tags_are_string_maps(self):
        specs = {p.name: p for p in get_action_definition("create_worker").parameters}
        assert specs["tags"].type is ParamType.STRING_MAP
        assert specs["security_group_ids"].type is ParamType.STRING_LIST


class TestValidateParameters:
    def test_required_missing(self):
        with pytest.raises(InvalidParametersError) as exc:
            validate_parameters(ACTIONS["create_volume"], {})
        assert len(exc.value.problems) == 2

    def test_empty_string_is_missing(self):
        with pytest.raises(InvalidParametersError):
            validate_parameters(ACTIONS["get_worker"], {"worker_id": ""})

    def test_aliases(self):
        args = validate_parameters(
            ACTIONS["create_worker"], {"ami": "ami-1", "instance_type": "t3.micro", "name": "web"}
        )
        assert args["image_id"] == "ami-1"
        assert args["worker_name"] == "web"

    def test_canonical_name_wins_over_alias(self):
        args = validate_parameters(
            ACTIONS["create_volume"],
            {"size": 10, "size_gb": 20, "availability_zone": "us-east-1a"},
        )
        assert args["size"] == 10

    def test_defaults_filled(self):
        args = validate_parameters(ACTIONS["detach_volume"], {"volume_id": "vol-1"})
        assert args["force"] is False
        assert args["region"] is None

    def test_string_coercion(self):
        args = validate_parameters(
            ACTIONS["create_worker"],
            {"image_id": "ami-1", "instance_type": "t3.micro",
             "wait_for_running": "true", "wait_timeout": "12.5",
             "security_group_ids": "sg-1, sg-2"},
        )
        assert args["wait_for_running"] is True
        assert args["wait_timeout"] == 12.5
        assert args["security_group_ids"] == ["sg-1", "sg-2"]

    @pytest.mark.parametrize("size", [0, -4, "zero", True, 1.5])
    def test_bad_sizes(self, size):
        with pytest.raises(InvalidParametersError):
            validate_parameters(
                ACTIONS["create_volume"], {"size": size, "availability_zone": "us-east-1a"}
            )

    def test_integer_string_accepted(self):
        args = validate_parameters(
            ACTIONS["create_volume"], {"size": "8", "availability_zone": "us-east-1a"}
        )
        assert args["size"] == 8

    def test_tags_must_map_strings(self):
        with pytest.raises(InvalidParametersError):
            validate_parameters(
                ACTIONS["set_worker_metadata"], {"worker_id": "i-1", "tags": {"n": 1}}
            )

    def test_non_mapping_rejected(self):
        with pytest.raises(InvalidParametersError):
            validate_parameters(ACTIONS["list_workers"], ["region"])

    def test_none_means_no_parameters(self):
        assert validate_parameters(ACTIONS["list_workers"], None) == {"region": None}

    def test_unknown_keys_ignored(self):
        args = validate_parameters(ACTIONS["has_volume"], {"volume_id": "vol-1", "colour": "blue"})
        assert "colour" not in args

    @pytest.mark.parametrize("timeout", ["inf", "NaN", " -Infinity ", float("inf"), float("nan")])
    def test_non_finite_numbers_rejected(self, timeout):
        with pytest.raises(InvalidParametersError) as exc:
            validate_parameters(
                ACTIONS["create_worker"],
                {"image_id": "ami-1", "instance_type": "t3.micro", "wait_timeout": timeout},
            )
        assert exc.value.problems == [
            f"parameter 'wait_timeout': expected a finite number, got {timeout!r}"
        ]

    def test_empty_tag_value_accepted(self):
        args = validate_parameters(
            ACTIONS["set_worker_metadata"], {"worker_id": "i-1", "key": "env", "value": ""}
        )
        assert args["key"] == "env"
        assert args["value"] == ""

    def test_empty_key_is_missing(self):
        args = validate_parameters(
            ACTIONS["set_worker_metadata"], {"worker_id": "i-1", "key": "", "value": "x"}
        )
        assert args["key"] is None


class TestActionRequest:
    def test_from_wire_shape(self):
        request = ActionRequest.from_dict({"id": 7, "action": "get_worker", "params": {"worker_id": "i-1"}})
        assert request.action_name == "get_worker"
        assert request.parameters == {"worker_id": "i-1"}

    def test_long_form_keys(self):
        request = ActionRequest.from_dict({"action_name": "list_workers", "parameters": {}})
        assert request.action_name == "list_workers"

    def test_missing_action(self):
        with pytest.raises(ValueError):
            ActionRequest.from_dict({"params": {}})

    def test_params_must_be_object(self):
        with pytest.raises(ValueError):
            ActionRequest.from_dict({"action": "list_workers", "params": [1, 2]})
