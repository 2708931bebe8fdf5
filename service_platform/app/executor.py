"""
Authenticated request executor for the platform-management API.

Wires the credential manager and the call dispatcher together and runs the
per-call policy: attach the current credential, and on an authorization
failure invalidate it, log in again and retry the call once.
"""

from __future__ import annotations

import asyncio
import time
from typing import Any, Optional, Union

import httpx

from shared.config import PlatformConfig, get_config
from shared.errors import AuthError, AuthErrorKind, ExecutorError, TransportError, TransportErrorKind
from shared.logging import configure_logging, get_logger
from shared.metrics import ExecutorMetrics
from service_platform.app.adapters.dispatcher import CallDispatcher
from service_platform.app.auth.credentials import CredentialManager
from service_platform.app.models import CallOutcome, Method, OutboundCall, RawResponse


class Deadline:
    """Whole-call time budget shared by every step of one ``execute()``."""

    def __init__(self, timeout: Optional[float]):
        self.timeout = timeout
        self._expires_at = None if timeout is None else time.monotonic() + timeout

    def remaining(self) -> Optional[float]:
        """Seconds left, or None when unbounded; raises once the budget is spent."""
        if self._expires_at is None:
            return None
        left = self._expires_at - time.monotonic()
        if left <= 0:
            raise TransportError(
                TransportErrorKind.TIMEOUT,
                "Call deadline exceeded",
                details={"timeout": self.timeout},
            )
        return left


class AuthenticatedRequestExecutor:
    """Executes upstream calls with a managed session credential."""

    # Re-authentications allowed per execute() call
    max_reauth_attempts = 1

    def __init__(
        self,
        credentials: CredentialManager,
        dispatcher: CallDispatcher,
        *,
        metrics: Optional[ExecutorMetrics] = None,
        health_endpoint: str = "/api/v1/user/apps/appDefinitions",
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.credentials = credentials
        self.dispatcher = dispatcher
        self.metrics = metrics
        self.health_endpoint = health_endpoint
        self.logger = get_logger("platform.executor")
        self._client = client

    async def execute(
        self,
        endpoint: str,
        method: Union[Method, str] = Method.GET,
        payload: Optional[Any] = None,
        *,
        timeout: Optional[float] = None,
    ) -> Any:
        """Run one call and return the upstream response body.

        Raises ``AuthError`` when no accepted credential could be obtained,
        ``TransportError`` when the upstream could not be reached, and
        ``ClientError``/``ServerError`` with the upstream status and body
        when the operation itself failed.
        """
        call = OutboundCall(endpoint=endpoint, method=Method.parse(method), payload=payload)
        deadline = Deadline(timeout)
        reauth_attempts = 0

        while True:
            try:
                credential = await self.credentials.get(timeout=deadline.remaining())
                raw = await self._send(call, credential, deadline)
            except ExecutorError:
                if reauth_attempts:
                    self._record_reauth("failed")
                raise
            result = self.dispatcher.classify(raw)

            if result.outcome is CallOutcome.AUTH_FAILURE:
                if reauth_attempts >= self.max_reauth_attempts:
                    self._record_reauth("rejected")
                    self.logger.error(
                        "Authorization still failing after re-authentication",
                        endpoint=call.endpoint,
                        status_code=result.status_code,
                    )
                    raise AuthError(
                        AuthErrorKind.REJECTED,
                        "Re-authentication did not resolve authorization failure",
                        status_code=result.status_code,
                        body=result.body,
                    )

                reauth_attempts += 1
                self.logger.info(
                    "Authorization failed, re-authenticating",
                    endpoint=call.endpoint,
                    status_code=result.status_code,
                )
                self.credentials.invalidate(credential)
                continue

            if reauth_attempts:
                self._record_reauth("success" if result.ok else "failed")

            result.raise_for_outcome()
            return result.body

    async def check_health(self) -> str:
        """Return 'ok' if a credential is accepted by the upstream, otherwise 'error'."""
        try:
            await self.execute(self.health_endpoint, Method.GET)
            return "ok"
        except ExecutorError as exc:
            self.logger.error(
                "Platform health check failed",
                code=exc.code,
                kind=exc.kind.value if exc.kind is not None else None,
                status_code=exc.status_code,
                error=exc.message,
            )
            return "error"

    async def close(self) -> None:
        """Close the underlying HTTP client when this executor owns it."""
        if self._client is not None:
            await self._client.aclose()

    async def __aenter__(self) -> "AuthenticatedRequestExecutor":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def _send(self, call: OutboundCall, credential, deadline: Deadline) -> RawResponse:
        # httpx timeouts apply per connect/read step, not to the whole exchange
        remaining = deadline.remaining()
        try:
            return await asyncio.wait_for(
                self.dispatcher.send(call, credential, timeout=remaining),
                remaining,
            )
        except asyncio.TimeoutError:
            self.logger.warning(
                "Call deadline exceeded during dispatch",
                endpoint=call.endpoint,
                timeout=deadline.timeout,
            )
            raise TransportError(
                TransportErrorKind.TIMEOUT,
                "Call deadline exceeded",
                details={"timeout": deadline.timeout},
            )

    def _record_reauth(self, outcome: str):
        if self.metrics is not None:
            self.metrics.record_reauth(outcome)


def create_executor(
    config: Optional[PlatformConfig] = None,
    *,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    metrics: Optional[ExecutorMetrics] = None,
) -> AuthenticatedRequestExecutor:
    """Build an executor and the HTTP client it shares with its parts."""
    config = config or get_config()
    configure_logging("platform", config.log_level)
    metrics = metrics or ExecutorMetrics()

    client = httpx.AsyncClient(
        base_url=config.url,
        timeout=config.request_timeout,
        headers={
            "Content-Type": "application/json",
            "x-namespace": config.namespace,
        },
        transport=transport,
    )

    credentials = CredentialManager(
        client,
        config.password.get_secret_value(),
        login_path=config.login_path,
        token_path=config.token_path,
        ok_statuses=config.ok_statuses,
        metrics=metrics,
    )
    dispatcher = CallDispatcher(
        client,
        auth_header=config.auth_header,
        auth_scheme=config.auth_scheme,
        unauthorized_statuses=config.unauthorized_statuses,
        metrics=metrics,
    )

    return AuthenticatedRequestExecutor(
        credentials,
        dispatcher,
        metrics=metrics,
        health_endpoint=config.health_endpoint,
        client=client,
    )
