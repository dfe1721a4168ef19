"""
Action DTOs

Architectural Intent:
- Data Transfer Object for one host call at the application boundary
- Issued once per call, never persisted
"""

from dataclasses import dataclass, field
from typing import Any, Mapping


@dataclass(frozen=True)
class ActionRequest:
    action_name: str
    parameters: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not isinstance(self.action_name, str) or not self.action_name:
            raise ValueError("action_name cannot be empty")
        if not isinstance(self.parameters, dict):
            raise ValueError("parameters must be a dict")

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ActionRequest":
        """Build a request from the host wire shape {"action": ..., "params": ...}."""
        action = data.get("action") or data.get("action_name") or ""
        params = data.get("params")
        if params is None:
            params = data.get("parameters") or {}
        return cls(action_name=action, parameters=params)
