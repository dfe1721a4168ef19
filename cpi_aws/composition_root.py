"""
Composition Root

Architectural Intent:
- Dependency injection composition root for the EC2 CPI adapter
- Single place where credentials, sessions, backends, the dispatcher and the
  host extension are wired together
- No adapter instantiation should occur outside this module (except tests)

Design Decisions:
- Uses a simple dataclass container instead of a DI framework
- simulate=True swaps the boto3-backed resolver for the in-memory EC2, with
  everything above the backend port unchanged
- Credentials are resolved lazily, on the first call that needs a region
"""

from dataclasses import dataclass
from typing import Optional

from cpi_aws.application.use_cases.dispatch_action import ActionDispatcher
from cpi_aws.domain.ports.ec2_backend_port import BackendResolverPort
from cpi_aws.infrastructure.adapters.credentials import DefaultChainCredentialProvider
from cpi_aws.infrastructure.adapters.session_cache import (
    Ec2BackendResolver,
    RegionSessionCache,
)
from cpi_aws.infrastructure.adapters.simulated_ec2 import SimulatedEc2Cloud
from cpi_aws.infrastructure.config import CpiConfig, load_config
from cpi_aws.infrastructure.host.extension import Ec2Extension
from cpi_aws.infrastructure.telemetry.otel_exporter import ActionTelemetry


@dataclass
class CpiContainer:
    """DI container holding all wired dependencies."""

    config: CpiConfig
    backends: BackendResolverPort
    dispatcher: ActionDispatcher
    extension: Ec2Extension


def create_backends(config: CpiConfig, simulate: bool = False) -> BackendResolverPort:
    if simulate:
        return SimulatedEc2Cloud()
    sessions = RegionSessionCache(
        credential_provider=DefaultChainCredentialProvider(config.profile),
        transport=config.transport,
        endpoint_url=config.endpoint_url,
    )
    return Ec2BackendResolver(sessions)


def create_container(
    config: Optional[CpiConfig] = None,
    simulate: bool = False,
    backends: Optional[BackendResolverPort] = None,
) -> CpiContainer:
    """Create and wire all dependencies."""
    config = config or load_config()
    backends = backends or create_backends(config, simulate)

    dispatcher = ActionDispatcher(
        backends,
        default_region=config.region,
        default_volume_type=config.defaults.volume_type,
        wait_timeout=config.wait.timeout_seconds,
        poll_interval=config.wait.poll_interval_seconds,
    )
    extension = Ec2Extension(
        dispatcher,
        telemetry=ActionTelemetry(),
        default_region=config.region,
    )

    return CpiContainer(
        config=config,
        backends=backends,
        dispatcher=dispatcher,
        extension=extension,
    )
