"""
Dispatch Action Use Case

Architectural Intent:
- Orchestration point of the adapter: one CPI action in, one ActionResult out
- Validates the action name and parameters before touching the backend
- Resolves the effective region and the backend bound to it
- Runs single-call and composite actions, mapping native records through
  the Resource Mapper and failures through the Error Classifier

Design Decisions:
- Stateless per call; the only collaborator state is the backend resolver's
  read-only session cache
- Composite steps run strictly in order; a failure after the primary
  resource exists becomes a PARTIAL_SUCCESS warning instead of a failure,
  and nothing is rolled back
- Existence checks turn NotFound into a successful False; that is the only
  place a backend failure is converted into success
- The create_worker wait is a bounded poll; on timeout the worker is still
  returned, with an UnknownBackendError warning
"""

import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, Optional

from cpi_aws.application.actions.catalog import ACTIONS
from cpi_aws.application.actions.validation import validate_parameters
from cpi_aws.application.dtos.action_dtos import ActionRequest
from cpi_aws.domain.errors import (
    BackendTimeoutError,
    InvalidParametersError,
    NotFoundError,
    UnknownBackendStateError,
    UnsupportedActionError,
)
from cpi_aws.domain.ports.ec2_backend_port import BackendResolverPort, Ec2BackendPort
from cpi_aws.domain.services.error_classifier import classify, describe_error, to_action_error
from cpi_aws.domain.services.resource_mapper import (
    NAME_TAG,
    dict_to_tags,
    map_snapshot,
    map_volume,
    map_volumes,
    map_worker,
    map_worker_state,
    map_workers,
    tags_to_dict,
)
from cpi_aws.domain.value_objects.action_result import ActionError, ActionResult
from cpi_aws.domain.value_objects.error_kind import ErrorKind
from cpi_aws.domain.value_objects.worker import WorkerState

logger = logging.getLogger(__name__)

DEFAULT_REGION = "us-east-1"
DEFAULT_VOLUME_TYPE = "gp2"
DEFAULT_WAIT_TIMEOUT = 300.0
DEFAULT_POLL_INTERVAL = 5.0

Handler = Callable[[Ec2BackendPort, str, dict[str, Any]], Awaitable[ActionResult]]


def _combine_warnings(warnings: list[ActionError]) -> Optional[ActionError]:
    if not warnings:
        return None
    if len(warnings) == 1:
        return warnings[0]
    first = warnings[0]
    return ActionError(
        kind=first.kind,
        message="; ".join(w.message for w in warnings),
        code=first.code,
        action=first.action,
    )


def _log_context(action: str, region: str, error: ActionError) -> dict[str, str]:
    return {
        "action": action,
        "region": region,
        "error_kind": error.kind.value,
        "error_code": error.code,
    }


class ActionDispatcher:
    """
    EC2 implementation of the CPI dispatch capability.
    """

    def __init__(
        self,
        backends: BackendResolverPort,
        default_region: str = DEFAULT_REGION,
        default_volume_type: str = DEFAULT_VOLUME_TYPE,
        wait_timeout: float = DEFAULT_WAIT_TIMEOUT,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.backends = backends
        self.default_region = default_region
        self.default_volume_type = default_volume_type
        self.wait_timeout = wait_timeout
        self.poll_interval = poll_interval
        self._sleep = sleep
        self._clock = clock
        self._handlers: dict[str, Handler] = {
            "test_install": self._test_install,
            "list_workers": self._list_workers,
            "create_worker": self._create_worker,
            "delete_worker": self._delete_worker,
            "get_worker": self._get_worker,
            "has_worker": self._has_worker,
            "start_worker": self._start_worker,
            "reboot_worker": self._reboot_worker,
            "get_volumes": self._get_volumes,
            "has_volume": self._has_volume,
            "create_volume": self._create_volume,
            "delete_volume": self._delete_volume,
            "attach_volume": self._attach_volume,
            "detach_volume": self._detach_volume,
            "snapshot_volume": self._create_snapshot,
            "create_snapshot": self._create_snapshot,
            "delete_snapshot": self._delete_snapshot,
            "has_snapshot": self._has_snapshot,
            "set_worker_metadata": self._set_worker_metadata,
        }
        # Action-specific checks that need more than one parameter.
        self._preparers: dict[str, Callable[[dict[str, Any]], dict[str, Any]]] = {
            "set_worker_metadata": self._prepare_metadata,
        }

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    async def execute(self, request: ActionRequest) -> ActionResult:
        return await self.dispatch(request.action_name, request.parameters)

    async def dispatch(
        self, action_name: str, parameters: Optional[dict[str, Any]] = None
    ) -> ActionResult:
        """Run one action to completion. Never raises for backend failures."""
        handler = self._handlers.get(action_name) if isinstance(action_name, str) else None
        if handler is None:
            logger.warning("Unsupported action requested: %r", action_name)
            error = UnsupportedActionError(f"Action '{action_name}' not found")
            return ActionResult.failure(to_action_error(error, str(action_name)))

        try:
            args = validate_parameters(ACTIONS[action_name], parameters)
            preparer = self._preparers.get(action_name)
            if preparer is not None:
                args = preparer(args)
        except InvalidParametersError as e:
            logger.warning("Rejected %s: %s", action_name, e)
            return ActionResult.failure(to_action_error(e, action_name))

        region = args.pop("region", None) or self.default_region
        logger.info("Dispatching %s (region=%s)", action_name, region)

        try:
            backend = self.backends.for_region(region)
            result = await handler(backend, region, args)
        except Exception as e:
            error = to_action_error(e, action_name)
            logger.warning(
                "%s failed in %s: %s [%s] %s",
                action_name, region, error.kind.value, error.code, error.message,
                extra=_log_context(action_name, region, error),
            )
            return ActionResult.failure(error)

        if result.warning is not None:
            logger.warning(
                "%s partially succeeded in %s: %s [%s] %s",
                action_name, region, result.warning.kind.value,
                result.warning.code, result.warning.message,
                extra=_log_context(action_name, region, result.warning),
            )
        return result

    # ------------------------------------------------------------------
    # Shared helpers
    # ------------------------------------------------------------------

    @staticmethod
    async def _exists(describe: Callable[[list[str]], Awaitable[list]], resource_id: str) -> ActionResult:
        try:
            records = await describe([resource_id])
        except Exception as e:
            if classify(e) is ErrorKind.NOT_FOUND:
                return ActionResult.success(False)
            raise
        return ActionResult.success(bool(records))

    async def _refresh_volume(
        self,
        backend: Ec2BackendPort,
        region: str,
        action: str,
        attachment: dict[str, Any],
        volume_id: str,
    ) -> ActionResult:
        """Re-read a volume after an attach/detach call that already succeeded."""
        try:
            records = await backend.describe_volumes([volume_id])
        except Exception as e:
            warning = to_action_error(e, action)
        else:
            if records:
                return ActionResult.success(map_volume(records[0], region))
            warning = ActionError(
                kind=ErrorKind.NOT_FOUND,
                message=f"Volume {volume_id} not visible after {action}",
                code="InvalidVolume.NotFound",
                action=action,
            )

        bound = attachment.get("State") in ("attaching", "attached")
        fallback = {
            "VolumeId": volume_id,
            "State": "in-use" if bound else None,
            "Attachments": [attachment] if bound else [],
        }
        return ActionResult.partial(map_volume(fallback, region), warning)

    # ------------------------------------------------------------------
    # Workers
    # ------------------------------------------------------------------

    async def _test_install(self, backend, region, args) -> ActionResult:
        try:
            await backend.describe_regions()
        except Exception as e:
            code, message = describe_error(e)
            return ActionResult.failure(
                ActionError(
                    kind=ErrorKind.AUTHENTICATION_ERROR,
                    message=f"Failed to connect to AWS: {message}",
                    code=code,
                    action="test_install",
                )
            )
        return ActionResult.success()

    async def _list_workers(self, backend, region, args) -> ActionResult:
        instances = await backend.describe_instances()
        return ActionResult.success(map_workers(instances, region))

    async def _create_worker(self, backend, region, args) -> ActionResult:
        instance = await backend.run_instance(
            image_id=args["image_id"],
            instance_type=args["instance_type"],
            key_name=args["key_name"],
            subnet_id=args["subnet_id"],
            security_group_ids=args["security_group_ids"],
            user_data=args["user_data"],
        )
        instance_id = instance.get("InstanceId")
        if not instance_id:
            raise UnknownBackendStateError("No instance was created")
        logger.info("Launched instance %s in %s", instance_id, region)

        warnings: list[ActionError] = []

        if args["wait_for_running"]:
            timeout = args["wait_timeout"]
            if timeout is None:
                timeout = self.wait_timeout
            instance, failure = await self._wait_for_running(backend, instance, timeout)
            if failure is not None:
                warnings.append(to_action_error(failure, "create_worker"))

        tags = dict(args["tags"] or {})
        if args["worker_name"]:
            tags[NAME_TAG] = args["worker_name"]
        if tags:
            try:
                await backend.create_tags([instance_id], tags)
            except Exception as e:
                warnings.append(to_action_error(e, "create_worker"))
            else:
                merged = {**tags_to_dict(instance.get("Tags")), **tags}
                instance = {**instance, "Tags": dict_to_tags(merged)}

        worker = map_worker(instance, region)
        warning = _combine_warnings(warnings)
        if warning is not None:
            return ActionResult.partial(worker, warning)
        return ActionResult.success(worker)

    async def _wait_for_running(
        self, backend: Ec2BackendPort, instance: dict[str, Any], timeout: float
    ) -> tuple[dict[str, Any], Optional[Exception]]:
        """
        Poll until the instance is running or the ceiling is reached.

        Returns the last observed record and the reason the wait gave up, if
        it did. NotFound while polling is treated as "not visible yet".
        """
        instance_id = instance["InstanceId"]
        deadline = self._clock() + timeout
        current = instance
        while True:
            state = map_worker_state(current.get("State"))
            if state is WorkerState.RUNNING:
                return current, None
            if state in (WorkerState.TERMINATED, WorkerState.STOPPED):
                return current, UnknownBackendStateError(
                    f"Instance {instance_id} entered {state.value} while waiting for Running"
                )
            remaining = deadline - self._clock()
            if remaining <= 0:
                return current, BackendTimeoutError(
                    f"Instance {instance_id} not running after {timeout:g}s "
                    f"(last state {state.value})",
                    details={"instance_id": instance_id, "state": state.value},
                )
            await self._sleep(min(self.poll_interval, remaining))
            try:
                records = await backend.describe_instances([instance_id])
            except Exception as e:
                if classify(e) is ErrorKind.NOT_FOUND:
                    logger.debug("Instance %s not visible yet", instance_id)
                    continue
                return current, e
            if records:
                current = records[0]

    async def _delete_worker(self, backend, region, args) -> ActionResult:
        # Terminating an already terminated instance succeeds on EC2.
        await backend.terminate_instances([args["worker_id"]])
        return ActionResult.success()

    async def _get_worker(self, backend, region, args) -> ActionResult:
        worker_id = args["worker_id"]
        instances = await backend.describe_instances([worker_id])
        if not instances:
            raise NotFoundError(
                f"Instance with ID {worker_id} not found",
                code="InvalidInstanceID.NotFound",
            )
        return ActionResult.success(map_worker(instances[0], region))

    async def _has_worker(self, backend, region, args) -> ActionResult:
        return await self._exists(backend.describe_instances, args["worker_id"])

    async def _start_worker(self, backend, region, args) -> ActionResult:
        worker_id = args["worker_id"]
        changes = await backend.start_instances([worker_id])
        record = next(
            (c for c in changes if c.get("InstanceId") == worker_id),
            {"InstanceId": worker_id},
        )
        return ActionResult.success(map_worker(record, region))

    async def _reboot_worker(self, backend, region, args) -> ActionResult:
        await backend.reboot_instances([args["worker_id"]])
        return ActionResult.success()

    @staticmethod
    def _prepare_metadata(args: dict[str, Any]) -> dict[str, Any]:
        tags = dict(args.get("tags") or {})
        key, value = args.get("key"), args.get("value")
        problems = []
        if key is not None and value is None:
            problems.append("parameter 'key' requires 'value'")
        elif value is not None and key is None:
            problems.append("parameter 'value' requires 'key'")
        elif key is not None:
            tags[key] = value
        if not tags and not problems:
            problems.append("at least one tag is required ('tags' or 'key'/'value')")
        if problems:
            raise InvalidParametersError(problems, action="set_worker_metadata")
        return {"worker_id": args["worker_id"], "tags": tags, "region": args.get("region")}

    async def _set_worker_metadata(self, backend, region, args) -> ActionResult:
        await backend.create_tags([args["worker_id"]], args["tags"])
        return ActionResult.success()

    # ------------------------------------------------------------------
    # Volumes
    # ------------------------------------------------------------------

    async def _get_volumes(self, backend, region, args) -> ActionResult:
        volumes = await backend.describe_volumes()
        return ActionResult.success(map_volumes(volumes, region))

    async def _has_volume(self, backend, region, args) -> ActionResult:
        return await self._exists(backend.describe_volumes, args["volume_id"])

    async def _create_volume(self, backend, region, args) -> ActionResult:
        native = await backend.create_volume(
            size_gb=args["size"],
            availability_zone=args["availability_zone"],
            volume_type=args["volume_type"] or self.default_volume_type,
        )
        if not native.get("VolumeId"):
            raise UnknownBackendStateError("No volume ID was returned")
        return ActionResult.success(map_volume(native, region))

    async def _delete_volume(self, backend, region, args) -> ActionResult:
        await backend.delete_volume(args["volume_id"])
        return ActionResult.success()

    async def _attach_volume(self, backend, region, args) -> ActionResult:
        attachment = await backend.attach_volume(
            volume_id=args["volume_id"],
            instance_id=args["worker_id"],
            device=args["device"],
        )
        return await self._refresh_volume(
            backend, region, "attach_volume", attachment, args["volume_id"]
        )

    async def _detach_volume(self, backend, region, args) -> ActionResult:
        attachment = await backend.detach_volume(args["volume_id"], force=args["force"])
        return await self._refresh_volume(
            backend, region, "detach_volume", attachment, args["volume_id"]
        )

    # ------------------------------------------------------------------
    # Snapshots
    # ------------------------------------------------------------------

    async def _create_snapshot(self, backend, region, args) -> ActionResult:
        volume_id = args["volume_id"]
        tags = {NAME_TAG: args["snapshot_name"]} if args["snapshot_name"] else None
        native = await backend.create_snapshot(
            volume_id=volume_id,
            description=args["description"] or f"Snapshot of {volume_id}",
            tags=tags,
        )
        if not native.get("SnapshotId"):
            raise UnknownBackendStateError("No snapshot ID was returned")
        return ActionResult.success(map_snapshot(native, region))

    async def _delete_snapshot(self, backend, region, args) -> ActionResult:
        await backend.delete_snapshot(args["snapshot_id"])
        return ActionResult.success()

    async def _has_snapshot(self, backend, region, args) -> ActionResult:
        return await self._exists(backend.describe_snapshots, args["snapshot_id"])
