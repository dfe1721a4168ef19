"""
CPI Host Extension

Architectural Intent:
- The surface a CPI host loads: identity ("ec2", "cloud"), action
  discovery, and action execution
- Wraps the dispatcher with per-action telemetry
- execute_action is the synchronous entry point; it runs one event loop per
  call and returns the host wire dict

Design Decisions:
- The extension owns no EC2 logic; everything goes through CpiProviderPort
- get_extension() builds a fully wired extension from the default
  configuration, the way a host plugin loader expects
"""

import asyncio
import logging
from typing import Any, Mapping, Optional

from cpi_aws.application.actions.catalog import get_action_definition, list_actions
from cpi_aws.domain.ports.cpi_provider_port import CpiProviderPort
from cpi_aws.domain.value_objects.action_result import ActionResult
from cpi_aws.infrastructure.telemetry.otel_exporter import ActionTelemetry

logger = logging.getLogger(__name__)

EXTENSION_NAME = "ec2"
PROVIDER_TYPE = "cloud"


class Ec2Extension:
    """EC2 cloud provider extension."""

    name = EXTENSION_NAME
    provider_type = PROVIDER_TYPE

    def __init__(
        self,
        provider: CpiProviderPort,
        telemetry: Optional[ActionTelemetry] = None,
        default_region: str = "us-east-1",
    ) -> None:
        self.provider = provider
        self.telemetry = telemetry or ActionTelemetry()
        self.default_region = default_region

    def list_actions(self) -> list[str]:
        return list_actions()

    def get_action_definition(self, action: str) -> Optional[dict[str, Any]]:
        definition = get_action_definition(action)
        return definition.to_dict() if definition is not None else None

    async def dispatch(
        self, action: str, params: Optional[Mapping[str, Any]] = None
    ) -> ActionResult:
        region = self.default_region
        if isinstance(params, Mapping) and isinstance(params.get("region"), str):
            region = params["region"] or region

        async with self.telemetry.action_span(str(action), region) as span:
            result = await self.provider.dispatch(action, params)
            span.record_result(result)
        return result

    def execute_action(
        self, action: str, params: Optional[Mapping[str, Any]] = None
    ) -> dict[str, Any]:
        """Run one action to completion and return the wire dict."""
        return asyncio.run(self.dispatch(action, params)).to_dict()


def get_extension() -> Ec2Extension:
    """Build the extension from cpi_aws.json and CPI_AWS_* settings."""
    from cpi_aws.composition_root import create_container

    return create_container().extension
