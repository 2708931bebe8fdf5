"""
Call dispatcher for the platform-management API.
"""

import socket
import time
from typing import Any, Dict, Iterable, Optional

import httpx

from shared.errors import TransportError, TransportErrorKind
from shared.logging import get_logger
from shared.metrics import ExecutorMetrics
from service_platform.app.models import (
    CallOutcome,
    CallResult,
    Credential,
    OutboundCall,
    RawResponse,
)

# Fragments of resolver errors raised through httpx.ConnectError
DNS_ERROR_MARKERS = (
    "name or service not known",
    "nodename nor servname",
    "temporary failure in name resolution",
    "getaddrinfo failed",
    "no address associated with hostname",
)


def decode_body(response: httpx.Response) -> Any:
    """Decode a JSON body, falling back to text."""
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return response.text


def upstream_message(body: Any, default: str = "") -> str:
    """Pull the human-readable message out of an upstream body."""
    if isinstance(body, dict):
        for key in ("message", "description", "error"):
            value = body.get(key)
            if isinstance(value, str) and value:
                return value
    return default


class CallDispatcher:
    """Sends outbound calls with the credential attached and classifies responses."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        auth_header: str = "x-captain-auth",
        auth_scheme: str = "",
        unauthorized_statuses: Iterable[int] = (1102, 1106),
        metrics: Optional[ExecutorMetrics] = None,
    ):
        self.client = client
        self.auth_header = auth_header
        self.auth_scheme = auth_scheme
        self.unauthorized_statuses = frozenset(unauthorized_statuses)
        self.metrics = metrics
        self.logger = get_logger("platform.dispatcher")

    def auth_headers(self, credential: Credential) -> Dict[str, str]:
        """Build the header that carries the credential."""
        value = f"{self.auth_scheme} {credential.token}" if self.auth_scheme else credential.token
        return {self.auth_header: value}

    async def send(
        self,
        call: OutboundCall,
        credential: Credential,
        timeout: Optional[float] = None,
    ) -> RawResponse:
        """Issue the call and return the raw response for any HTTP status."""
        self.logger.info(
            "Dispatching upstream call",
            method=call.method.value,
            endpoint=call.endpoint,
        )
        if call.payload is not None:
            self.logger.debug("Upstream call payload", endpoint=call.endpoint, payload=call.payload)

        kwargs: Dict[str, Any] = {"headers": self.auth_headers(credential)}
        if call.payload is not None:
            kwargs["json"] = call.payload
        if timeout is not None:
            kwargs["timeout"] = timeout

        start = time.monotonic()
        try:
            response = await self.client.request(call.method.value, call.endpoint, **kwargs)
        except httpx.HTTPError as exc:
            error = map_transport_error(exc)
            self._record("transport_error", start)
            self.logger.error(
                "Upstream call failed without response",
                method=call.method.value,
                endpoint=call.endpoint,
                kind=error.kind.value,
                error=str(exc),
            )
            raise error from exc

        raw = RawResponse(
            status_code=response.status_code,
            body=decode_body(response),
            text=response.text,
            reason=response.reason_phrase,
        )
        self._record(self.classify(raw).outcome.value, start)

        if response.status_code >= 300:
            self.logger.error(
                "Upstream error response",
                method=call.method.value,
                endpoint=call.endpoint,
                status_code=response.status_code,
                response=raw.body,
            )
        return raw

    def classify(self, raw: RawResponse) -> CallResult:
        """Turn a raw response into a call result."""
        message = upstream_message(raw.body, raw.reason)

        if self._has_unauthorized_marker(raw.body) or raw.status_code == 401:
            outcome = CallOutcome.AUTH_FAILURE
        elif raw.status_code < 300:
            outcome = CallOutcome.SUCCESS
        elif raw.status_code < 500:
            outcome = CallOutcome.CLIENT_ERROR
        else:
            outcome = CallOutcome.SERVER_ERROR

        return CallResult(
            outcome=outcome,
            status_code=raw.status_code,
            body=raw.body,
            message=message,
        )

    def _has_unauthorized_marker(self, body: Any) -> bool:
        return isinstance(body, dict) and body.get("status") in self.unauthorized_statuses

    def _record(self, outcome: str, start: float):
        if self.metrics is not None:
            self.metrics.record_dispatch(outcome, time.monotonic() - start)


def map_transport_error(exc: httpx.HTTPError) -> TransportError:
    """Map an httpx failure with no response to the transport taxonomy."""
    if isinstance(exc, httpx.TimeoutException):
        return TransportError(
            TransportErrorKind.TIMEOUT,
            "Upstream call timed out",
            details={"error": str(exc)},
        )

    if isinstance(exc, httpx.ConnectError) and _is_dns_failure(exc):
        return TransportError(
            TransportErrorKind.DNS_FAILURE,
            "Upstream host could not be resolved",
            details={"error": str(exc)},
        )

    return TransportError(
        TransportErrorKind.CONNECTION_FAILED,
        "Upstream connection failed",
        details={"error": str(exc)},
    )


def _is_dns_failure(exc: BaseException) -> bool:
    seen = set()
    current: Optional[BaseException] = exc
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        text = str(current).lower()
        if any(marker in text for marker in DNS_ERROR_MARKERS):
            return True
        if isinstance(current, socket.gaierror):
            return True
        current = current.__cause__ or current.__context__
    return False
