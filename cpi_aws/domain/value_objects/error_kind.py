from enum import Enum


class ErrorKind(Enum):
    """Closed error taxonomy shared by every CPI provider."""

    INVALID_PARAMETERS = "InvalidParameters"
    NOT_FOUND = "NotFound"
    AUTHENTICATION_ERROR = "AuthenticationError"
    RATE_LIMITED = "RateLimited"
    CONFLICT = "Conflict"
    UNKNOWN_BACKEND_ERROR = "UnknownBackendError"
    # Raised by the dispatcher itself, never by a backend.
    UNSUPPORTED_ACTION = "UnsupportedAction"

    def __str__(self) -> str:
        return self.value
