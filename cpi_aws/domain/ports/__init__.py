"""
Domain Ports Package

Architectural Intent:
- Contains port interfaces (abstract contracts) for external dependencies
- Ports define what the domain needs, adapters implement how
- Follows Hexagonal Architecture principles
"""

from cpi_aws.domain.ports.ec2_backend_port import Ec2BackendPort, BackendResolverPort
from cpi_aws.domain.ports.credential_provider_port import CredentialProviderPort
from cpi_aws.domain.ports.cpi_provider_port import CpiProviderPort

__all__ = [
    "Ec2BackendPort",
    "BackendResolverPort",
    "CredentialProviderPort",
    "CpiProviderPort",
]
