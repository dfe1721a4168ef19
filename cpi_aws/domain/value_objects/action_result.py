"""
Action Result Value Objects

Architectural Intent:
- Every dispatched action produces exactly one ActionResult
- Tagged variant: SUCCESS(payload), PARTIAL_SUCCESS(payload, warning),
  FAILURE(error)
- PARTIAL_SUCCESS keeps the identity of a resource that was created even
  though a follow-up step failed, so the host can retry or clean up

Design Decisions:
- Single frozen dataclass with factory classmethods instead of three classes;
  the status enum is the tag
- to_dict() is the host wire shape; payload entities serialize themselves
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Union

from cpi_aws.domain.value_objects.error_kind import ErrorKind
from cpi_aws.domain.value_objects.snapshot import Snapshot
from cpi_aws.domain.value_objects.volume import Volume
from cpi_aws.domain.value_objects.worker import Worker

Entity = Union[Worker, Volume, Snapshot]
Payload = Union[Entity, list, bool, None]


class ResultStatus(Enum):
    SUCCESS = "success"
    PARTIAL_SUCCESS = "partial_success"
    FAILURE = "failure"


@dataclass(frozen=True)
class ActionError:
    kind: ErrorKind
    message: str
    code: str = ""
    action: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "message": self.message,
            "code": self.code,
            "action": self.action,
        }


def _serialize(payload: Payload) -> Any:
    if isinstance(payload, list):
        return [_serialize(item) for item in payload]
    if isinstance(payload, (Worker, Volume, Snapshot)):
        return payload.to_dict()
    return payload


@dataclass(frozen=True)
class ActionResult:
    status: ResultStatus
    payload: Payload = None
    warning: Optional[ActionError] = None
    error: Optional[ActionError] = None

    def __post_init__(self) -> None:
        if self.status is ResultStatus.FAILURE and self.error is None:
            raise ValueError("A failed ActionResult must carry an error")
        if self.status is ResultStatus.PARTIAL_SUCCESS and self.warning is None:
            raise ValueError("A partial ActionResult must carry a warning")

    @classmethod
    def success(cls, payload: Payload = None) -> "ActionResult":
        return cls(status=ResultStatus.SUCCESS, payload=payload)

    @classmethod
    def partial(cls, payload: Payload, warning: ActionError) -> "ActionResult":
        return cls(status=ResultStatus.PARTIAL_SUCCESS, payload=payload, warning=warning)

    @classmethod
    def failure(cls, error: ActionError) -> "ActionResult":
        return cls(status=ResultStatus.FAILURE, error=error)

    @property
    def ok(self) -> bool:
        """True when the primary resource operation succeeded."""
        return self.status is not ResultStatus.FAILURE

    @property
    def error_kind(self) -> Optional[ErrorKind]:
        return self.error.kind if self.error else None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "success": self.ok,
            "status": self.status.value,
            "result": _serialize(self.payload),
        }
        if self.warning is not None:
            data["warning"] = self.warning.to_dict()
        if self.error is not None:
            data["error"] = self.error.to_dict()
        return data
