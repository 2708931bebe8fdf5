"""
Shared error taxonomy for the Platform Access layer.
"""

from enum import Enum
from typing import Dict, Any, Optional
from pydantic import BaseModel


class ErrorResponse(BaseModel):
    """Standard error response format."""

    code: str
    kind: Optional[str] = None
    message: str
    status_code: Optional[int] = None
    details: Dict[str, Any] = {}


class AuthErrorKind(str, Enum):
    """Reasons a credential could not be obtained or was not accepted."""
    REJECTED = "rejected"
    MALFORMED_RESPONSE = "malformed_response"
    TRANSPORT = "transport"


class TransportErrorKind(str, Enum):
    """Reasons the upstream could not be reached."""
    TIMEOUT = "timeout"
    CONNECTION_FAILED = "connection_failed"
    DNS_FAILURE = "dns_failure"


class ExecutorError(Exception):
    """Base exception for the authenticated request executor."""

    code = "EXECUTOR_ERROR"

    def __init__(
        self,
        message: str,
        kind: Optional[Enum] = None,
        status_code: Optional[int] = None,
        body: Any = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.kind = kind
        self.status_code = status_code
        self.body = body
        self.details = details or {}
        super().__init__(message)

    def to_response(self) -> ErrorResponse:
        """Convert to error response, keeping the upstream status and body."""
        details = dict(self.details)
        if self.body is not None:
            details.setdefault("upstream_body", self.body)

        return ErrorResponse(
            code=self.code,
            kind=self.kind.value if self.kind is not None else None,
            message=self.message,
            status_code=self.status_code,
            details=details,
        )

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(kind={self.kind!r}, "
            f"status_code={self.status_code!r}, message={self.message!r})"
        )


class AuthError(ExecutorError):
    """The backend could not be authenticated to."""

    code = "AUTHENTICATION_ERROR"

    def __init__(
        self,
        kind: AuthErrorKind,
        message: str = "Authentication failed",
        status_code: Optional[int] = None,
        body: Any = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, kind, status_code, body, details)


class TransportError(ExecutorError):
    """No response was received from the upstream."""

    code = "TRANSPORT_ERROR"

    def __init__(
        self,
        kind: TransportErrorKind,
        message: str = "Upstream unreachable",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, kind, None, None, details)


class ClientError(ExecutorError):
    """The upstream rejected this specific operation (3xx/4xx)."""

    code = "UPSTREAM_CLIENT_ERROR"

    def __init__(self, status_code: int, body: Any = None, message: str = "Upstream client error"):
        super().__init__(message, None, status_code, body)


class ServerError(ExecutorError):
    """The upstream failed while handling the operation (5xx)."""

    code = "UPSTREAM_SERVER_ERROR"

    def __init__(self, status_code: int, body: Any = None, message: str = "Upstream server error"):
        super().__init__(message, None, status_code, body)
