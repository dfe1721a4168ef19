from dataclasses import dataclass, field
from typing import Optional


@dataclass(frozen=True)
class Credentials:
    """
    Value Object holding a resolved set of backend credentials.
    Secrets are excluded from repr so they never reach the logs.
    """
    access_key_id: str
    secret_access_key: str = field(repr=False)
    session_token: Optional[str] = field(default=None, repr=False)

    def __post_init__(self):
        if not self.access_key_id:
            raise ValueError("Access key id cannot be empty")
        if not self.secret_access_key:
            raise ValueError("Secret access key cannot be empty")

    @property
    def is_temporary(self) -> bool:
        return self.session_token is not None
