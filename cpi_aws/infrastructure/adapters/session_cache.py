"""
Region Session Cache

Architectural Intent:
- Builds one (region, credentials, EC2 client) triple per region on first
  use and reuses it while the provider keeps handing out the same
  credentials
- Ec2BackendResolver implements BackendResolverPort over the cache, handing
  the dispatcher a facade bound to the requested region

Design Decisions:
- A RegionSession is immutable; a new region never disturbs existing ones
- The credential provider is consulted on every lookup; when it returns
  rotated credentials the region session is rebuilt around them
- Transport behaviour (retries, timeouts) comes from TransportConfig through
  a botocore Config object, so every client in the process behaves the same
- The client factory is injectable so tests can substitute stubbed clients
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

import boto3
from botocore.config import Config as BotoConfig

from cpi_aws.domain.ports.credential_provider_port import CredentialProviderPort
from cpi_aws.domain.value_objects.credentials import Credentials
from cpi_aws.infrastructure.adapters.ec2_client import Ec2ClientFacade
from cpi_aws.infrastructure.config import TransportConfig

logger = logging.getLogger(__name__)

ClientFactory = Callable[[str, Credentials], Any]


@dataclass(frozen=True)
class RegionSession:
    region: str
    credentials: Credentials = field(repr=False)
    client: Any = field(repr=False, compare=False)


def build_client_config(transport: TransportConfig) -> BotoConfig:
    return BotoConfig(
        retries={"max_attempts": transport.max_attempts, "mode": transport.retry_mode},
        connect_timeout=transport.connect_timeout,
        read_timeout=transport.read_timeout,
    )


class RegionSessionCache:
    """Lazily built, per-region EC2 sessions."""

    def __init__(
        self,
        credential_provider: CredentialProviderPort,
        transport: Optional[TransportConfig] = None,
        endpoint_url: Optional[str] = None,
        client_factory: Optional[ClientFactory] = None,
    ) -> None:
        self.credential_provider = credential_provider
        self.transport = transport or TransportConfig()
        self.endpoint_url = endpoint_url or None
        self._client_factory = client_factory or self._build_client
        self._sessions: dict[str, RegionSession] = {}

    def _build_client(self, region: str, credentials: Credentials) -> Any:
        session = boto3.Session(
            aws_access_key_id=credentials.access_key_id,
            aws_secret_access_key=credentials.secret_access_key,
            aws_session_token=credentials.session_token,
            region_name=region,
        )
        return session.client(
            "ec2",
            config=build_client_config(self.transport),
            endpoint_url=self.endpoint_url,
        )

    def session_for(self, region: str) -> RegionSession:
        """Return the session for region, building it on first use and
        rebuilding it when the provider's credentials have rotated.

        Raises AuthenticationError when credentials cannot be resolved.
        """
        credentials = self.credential_provider.get_credentials()
        cached = self._sessions.get(region)
        if cached is not None and cached.credentials == credentials:
            return cached

        client = self._client_factory(region, credentials)
        session = RegionSession(region=region, credentials=credentials, client=client)
        self._sessions[region] = session
        if cached is None:
            logger.info("Created EC2 session for region %s", region)
        else:
            logger.info("Credentials rotated; rebuilt EC2 session for region %s", region)
        return session

    @property
    def regions(self) -> list[str]:
        return sorted(self._sessions)

    def clear(self) -> None:
        self._sessions.clear()


class Ec2BackendResolver:
    """BackendResolverPort backed by real EC2 clients."""

    def __init__(self, sessions: RegionSessionCache) -> None:
        self.sessions = sessions

    def for_region(self, region: str) -> Ec2ClientFacade:
        return Ec2ClientFacade(self.sessions.session_for(region))
