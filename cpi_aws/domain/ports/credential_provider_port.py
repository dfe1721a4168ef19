"""
Credential Provider Port

Architectural Intent:
- Opaque source of valid backend credentials, resolved on demand
- Chain resolution (env, profile, instance role, SSO) lives behind it
"""

from abc import ABC, abstractmethod

from cpi_aws.domain.value_objects.credentials import Credentials


class CredentialProviderPort(ABC):
    """
    Port interface for acquiring backend credentials.
    """

    @abstractmethod
    def get_credentials(self) -> Credentials:
        """
        Returns currently valid credentials.
        Raises AuthenticationError when none can be resolved.
        """
        pass
