"""
Credential Provider Adapters

Architectural Intent:
- Implements CredentialProviderPort on top of the boto3 default chain
  (environment, shared config/profile, SSO, container and instance roles)
- A static provider covers explicit keys and tests

Design Decisions:
- The boto3 session and its credential object are resolved once and kept;
  every get_credentials() call takes a fresh frozen snapshot, so botocore's
  refreshable credentials (SSO, assume-role, instance and container roles)
  are renewed before they expire
- A failed resolution is not remembered; the next call walks the chain again
- Every resolution failure surfaces as AuthenticationError
"""

import logging
from typing import Any, Optional

import boto3
from botocore.exceptions import BotoCoreError

from cpi_aws.domain.errors import AuthenticationError
from cpi_aws.domain.ports.credential_provider_port import CredentialProviderPort
from cpi_aws.domain.value_objects.credentials import Credentials

logger = logging.getLogger(__name__)


class DefaultChainCredentialProvider(CredentialProviderPort):
    """Resolves credentials the way the AWS CLI does."""

    def __init__(self, profile: Optional[str] = None) -> None:
        self.profile = profile or None
        self._resolved: Optional[Any] = None

    def _resolve(self) -> Optional[Any]:
        if self._resolved is None:
            session = boto3.Session(profile_name=self.profile)
            self._resolved = session.get_credentials()
            if self._resolved is not None:
                logger.debug(
                    "Resolved AWS credentials (profile=%s, method=%s)",
                    self.profile, getattr(self._resolved, "method", "unknown"),
                )
        return self._resolved

    def get_credentials(self) -> Credentials:
        try:
            resolved = self._resolve()
            # Refreshable credentials renew themselves here when close to expiry.
            frozen = resolved.get_frozen_credentials() if resolved is not None else None
        except BotoCoreError as e:
            self._resolved = None
            raise AuthenticationError(
                f"Unable to resolve AWS credentials: {e}",
                code=type(e).__name__,
            ) from e

        if frozen is None or not frozen.access_key or not frozen.secret_key:
            self._resolved = None
            raise AuthenticationError(
                "No AWS credentials found in the default provider chain",
                code="NoCredentials",
            )

        return Credentials(
            access_key_id=frozen.access_key,
            secret_access_key=frozen.secret_key,
            session_token=frozen.token,
        )


class StaticCredentialProvider(CredentialProviderPort):
    def __init__(self, credentials: Credentials) -> None:
        self._credentials = credentials

    def get_credentials(self) -> Credentials:
        return self._credentials
