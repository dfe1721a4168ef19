"""
Error Classifier

Architectural Intent:
- Collapses any backend failure into exactly one ErrorKind
- Pure and total: unknown shapes fall back to UNKNOWN_BACKEND_ERROR, the
  classifier itself never raises

Design Decisions:
- botocore ClientError is inspected through its response dict
  (Error.Code, ResponseMetadata.HTTPStatusCode)
- The code tables are the extension point: add codes as they are observed
- HTTP status is only consulted when the code is not in any table
"""

from typing import Any, Optional

from botocore.exceptions import (
    BotoCoreError,
    ClientError,
    NoCredentialsError,
    NoRegionError,
    ParamValidationError,
    PartialCredentialsError,
)

from cpi_aws.domain.errors import CpiError
from cpi_aws.domain.value_objects.action_result import ActionError
from cpi_aws.domain.value_objects.error_kind import ErrorKind

AUTHENTICATION_CODES = frozenset({
    "AuthFailure",
    "UnauthorizedOperation",
    "InvalidClientTokenId",
    "SignatureDoesNotMatch",
    "ExpiredToken",
    "RequestExpired",
    "AccessDenied",
    "AccessDeniedException",
    "OptInRequired",
    "Blocked",
})

INVALID_PARAMETER_CODES = frozenset({
    "InvalidParameterValue",
    "InvalidParameter",
    "InvalidParameterCombination",
    "MissingParameter",
    "UnknownParameter",
    "ValidationError",
    "InvalidAvailabilityZone",
})

RATE_LIMIT_CODES = frozenset({
    "RequestLimitExceeded",
    "Throttling",
    "ThrottlingException",
    "TooManyRequestsException",
    "SlowDown",
})

CONFLICT_CODES = frozenset({
    "IncorrectState",
    "IncorrectInstanceState",
    "VolumeInUse",
    "InvalidVolume.ZoneMismatch",
    "InvalidSnapshot.InUse",
    "DependencyViolation",
    "IdempotentParameterMismatch",
    "IncorrectModificationState",
})

_STATUS_FALLBACK = {
    401: ErrorKind.AUTHENTICATION_ERROR,
    403: ErrorKind.AUTHENTICATION_ERROR,
    404: ErrorKind.NOT_FOUND,
    409: ErrorKind.CONFLICT,
    429: ErrorKind.RATE_LIMITED,
}


def _client_error_fields(error: BaseException) -> tuple[str, str, Optional[int]]:
    response: Any = getattr(error, "response", None)
    if not isinstance(response, dict):
        return "", str(error), None
    err = response.get("Error")
    if not isinstance(err, dict):
        err = {}
    meta = response.get("ResponseMetadata")
    if not isinstance(meta, dict):
        meta = {}
    status = meta.get("HTTPStatusCode")
    try:
        status = int(status) if status is not None else None
    except (TypeError, ValueError):
        status = None
    return str(err.get("Code") or ""), str(err.get("Message") or error), status


def classify_code(code: str, status: Optional[int] = None) -> ErrorKind:
    """Map a raw backend error code (and optionally HTTP status) to a kind."""
    if code:
        if code in AUTHENTICATION_CODES:
            return ErrorKind.AUTHENTICATION_ERROR
        if code in RATE_LIMIT_CODES:
            return ErrorKind.RATE_LIMITED
        if code in CONFLICT_CODES:
            return ErrorKind.CONFLICT
        if code in INVALID_PARAMETER_CODES or code.endswith(".Malformed"):
            return ErrorKind.INVALID_PARAMETERS
        if code.endswith("NotFound"):
            return ErrorKind.NOT_FOUND
    if status is not None:
        return _STATUS_FALLBACK.get(status, ErrorKind.UNKNOWN_BACKEND_ERROR)
    return ErrorKind.UNKNOWN_BACKEND_ERROR


def classify(error: BaseException) -> ErrorKind:
    """Classify a backend failure into the closed ErrorKind taxonomy."""
    if isinstance(error, CpiError):
        return error.kind
    if isinstance(error, ClientError):
        code, _, status = _client_error_fields(error)
        return classify_code(code, status)
    if isinstance(error, (NoCredentialsError, PartialCredentialsError)):
        return ErrorKind.AUTHENTICATION_ERROR
    if isinstance(error, (ParamValidationError, NoRegionError)):
        return ErrorKind.INVALID_PARAMETERS
    return ErrorKind.UNKNOWN_BACKEND_ERROR


def describe_error(error: BaseException) -> tuple[str, str]:
    """Return (code, message) for diagnostics; the raw backend message is kept."""
    if isinstance(error, CpiError):
        return error.code, str(error)
    if isinstance(error, ClientError):
        code, message, _ = _client_error_fields(error)
        return code, message
    if isinstance(error, BotoCoreError):
        return type(error).__name__, str(error)
    return type(error).__name__, str(error) or type(error).__name__


def to_action_error(error: BaseException, action: str = "") -> ActionError:
    code, message = describe_error(error)
    return ActionError(kind=classify(error), message=message, code=code, action=action)
