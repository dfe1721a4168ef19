"""
CPI Provider Port

Architectural Intent:
- Provider-agnostic capability every CPI backend implements
- Hosts pick an implementation at load time; no shared base class
"""

from typing import Any, Optional, Protocol, runtime_checkable

from cpi_aws.domain.value_objects.action_result import ActionResult


@runtime_checkable
class CpiProviderPort(Protocol):
    """Port for dispatching CPI actions to a provider."""

    async def dispatch(
        self, action_name: str, parameters: Optional[dict[str, Any]] = None
    ) -> ActionResult:
        """Run one action to completion and return its classified result."""
        ...
