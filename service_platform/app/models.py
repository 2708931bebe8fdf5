"""
Call and credential data models for the Platform Access executor.
"""

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, Union

from shared.errors import ClientError, ServerError


class Method(str, Enum):
    """Outbound HTTP methods."""
    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"

    @classmethod
    def parse(cls, value: Union[str, "Method"]) -> "Method":
        """Accept a member or a case-insensitive method name."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.upper())
            except ValueError:
                pass
        raise ValueError(f"Unsupported method: {value!r}")


class CredentialState(str, Enum):
    """Validity of the process-wide credential."""
    UNSET = "unset"
    VALID = "valid"
    SUSPECTED_STALE = "suspected_stale"


@dataclass(frozen=True)
class Credential:
    """Session token issued by the upstream login exchange."""
    token: str
    obtained_at: float = field(default_factory=time.time)

    def __repr__(self) -> str:
        return f"Credential(token='{self.token[:3]}***', obtained_at={self.obtained_at})"


@dataclass(frozen=True)
class OutboundCall:
    """One request to forward upstream."""
    endpoint: str
    method: Method = Method.GET
    payload: Optional[Any] = None

    def __post_init__(self):
        if not self.endpoint.startswith("/"):
            raise ValueError(f"Endpoint must start with '/': {self.endpoint!r}")
        object.__setattr__(self, "method", Method.parse(self.method))


@dataclass(frozen=True)
class RawResponse:
    """Status and decoded body of an upstream response."""
    status_code: int
    body: Any
    text: str = ""
    reason: str = ""


class CallOutcome(str, Enum):
    """Classification of a single attempt."""
    SUCCESS = "success"
    AUTH_FAILURE = "auth_failure"
    CLIENT_ERROR = "client_error"
    SERVER_ERROR = "server_error"


@dataclass(frozen=True)
class CallResult:
    """Classified result of one dispatch attempt."""
    outcome: CallOutcome
    status_code: int
    body: Any = None
    message: str = ""

    @property
    def ok(self) -> bool:
        return self.outcome is CallOutcome.SUCCESS

    def raise_for_outcome(self) -> None:
        """Raise the passthrough error for client and server failures."""
        if self.outcome is CallOutcome.CLIENT_ERROR:
            raise ClientError(self.status_code, self.body, self.message or "Upstream client error")
        if self.outcome is CallOutcome.SERVER_ERROR:
            raise ServerError(self.status_code, self.body, self.message or "Upstream server error")
