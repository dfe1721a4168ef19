"""
Domain Errors

Architectural Intent:
- Exceptions raised below the dispatcher that already know their ErrorKind
- The dispatcher is the only place that turns them into ActionResults
"""

from typing import Any, Optional

from cpi_aws.domain.value_objects.error_kind import ErrorKind


class CpiError(Exception):
    """Structured CPI error carrying its taxonomy kind."""

    kind: ErrorKind = ErrorKind.UNKNOWN_BACKEND_ERROR

    def __init__(
        self,
        message: str,
        code: str = "",
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.code = code or self.kind.value
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": {
                "kind": self.kind.value,
                "code": self.code,
                "message": str(self),
                "details": self.details,
            }
        }


class InvalidParametersError(CpiError):
    kind = ErrorKind.INVALID_PARAMETERS

    def __init__(self, problems: list[str], action: str = "") -> None:
        prefix = f"Invalid parameters for '{action}'" if action else "Invalid parameters"
        super().__init__(
            f"{prefix}: " + "; ".join(problems),
            details={"problems": list(problems)},
        )
        self.problems = list(problems)


class UnsupportedActionError(CpiError):
    kind = ErrorKind.UNSUPPORTED_ACTION


class AuthenticationError(CpiError):
    kind = ErrorKind.AUTHENTICATION_ERROR


class NotFoundError(CpiError):
    kind = ErrorKind.NOT_FOUND


class UnknownBackendStateError(CpiError):
    """The backend answered, but not in a shape the adapter can use."""

    kind = ErrorKind.UNKNOWN_BACKEND_ERROR


class BackendTimeoutError(CpiError):
    """A bounded wait on backend state ran past its ceiling."""

    kind = ErrorKind.UNKNOWN_BACKEND_ERROR

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None) -> None:
        super().__init__(message, code="WaitTimeout", details=details)
