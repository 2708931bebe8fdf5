"""
Session credential management for the platform-management API.
"""

from __future__ import annotations

import asyncio
from typing import Any, Iterable, Optional

import httpx

from shared.errors import AuthError, AuthErrorKind, TransportError, TransportErrorKind
from shared.logging import get_logger
from shared.metrics import ExecutorMetrics
from service_platform.app.adapters.dispatcher import decode_body, upstream_message
from service_platform.app.models import Credential, CredentialState


class CredentialManager:
    """Owns the process-wide session credential.

    ``get()`` logs in lazily. Concurrent callers that find no valid
    credential join the login already in flight instead of sending their
    own, and each of them waits no longer than its own timeout.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        password: str,
        *,
        login_path: str = "/api/v1/login",
        token_path: str = "data.token",
        ok_statuses: Iterable[int] = (100, 101, 102),
        metrics: Optional[ExecutorMetrics] = None,
    ) -> None:
        self.client = client
        self.login_path = login_path
        self.token_path = token_path.split(".")
        self.ok_statuses = frozenset(ok_statuses)
        self.metrics = metrics
        self.logger = get_logger("platform.credentials")

        self._password = password
        self._credential: Optional[Credential] = None
        self._state = CredentialState.UNSET
        self._login_task: Optional[asyncio.Task] = None
        self.login_count = 0

    @property
    def state(self) -> CredentialState:
        return self._state

    @property
    def login_in_flight(self) -> bool:
        return self._login_task is not None

    async def get(self, timeout: Optional[float] = None) -> Credential:
        """Return the current credential, logging in if there is none."""
        credential = self._credential
        if credential is not None:
            return credential

        # No await between the check and the assignment: one login at a time.
        task = self._login_task
        if task is None:
            task = asyncio.get_running_loop().create_task(self._login())
            task.add_done_callback(self._on_login_done)
            self._login_task = task
        else:
            self.logger.debug("Joining login already in flight")
            if self.metrics is not None:
                self.metrics.record_login_join()

        try:
            return await asyncio.wait_for(asyncio.shield(task), timeout)
        except asyncio.TimeoutError:
            self.logger.warning("Timed out waiting for login", timeout=timeout)
            raise TransportError(
                TransportErrorKind.TIMEOUT,
                "Timed out waiting for credential",
                details={"timeout": timeout},
            )

    def invalidate(self, stale: Optional[Credential] = None) -> None:
        """Drop the current credential; the next ``get()`` logs in again.

        With ``stale`` given, only that credential is dropped, so a caller
        holding an old token cannot discard one refreshed in the meantime.
        """
        current = self._credential
        if current is None:
            return
        if stale is not None and stale != current:
            self.logger.debug("Credential already refreshed, keeping current")
            return

        self._credential = None
        self._state = CredentialState.SUSPECTED_STALE
        self.logger.info("Credential invalidated")

    async def _login(self) -> Credential:
        self.login_count += 1
        self.logger.info("Logging in to platform", path=self.login_path)

        try:
            response = await self.client.post(
                self.login_path,
                json={"password": self._password},
            )
        except httpx.HTTPError as exc:
            self._record("transport_error")
            self.logger.error("Login request failed", error=str(exc))
            raise AuthError(
                AuthErrorKind.TRANSPORT,
                "Login request failed",
                details={"error": str(exc), "error_type": type(exc).__name__},
            ) from exc

        body = decode_body(response)

        if not response.is_success:
            self._record("rejected")
            self.logger.error("Login rejected", status_code=response.status_code, response=body)
            raise AuthError(
                AuthErrorKind.REJECTED,
                upstream_message(body, f"Login rejected with status {response.status_code}"),
                status_code=response.status_code,
                body=body,
            )

        if not isinstance(body, dict):
            self._record("malformed")
            raise AuthError(
                AuthErrorKind.MALFORMED_RESPONSE,
                "Login response is not a JSON object",
                status_code=response.status_code,
                body=body,
            )

        platform_status = body.get("status")
        if platform_status is not None and platform_status not in self.ok_statuses:
            self._record("rejected")
            self.logger.error("Login rejected", platform_status=platform_status, response=body)
            raise AuthError(
                AuthErrorKind.REJECTED,
                upstream_message(body, f"Login rejected with platform status {platform_status}"),
                status_code=response.status_code,
                body=body,
                details={"platform_status": platform_status},
            )

        token = self._extract_token(body)
        if not token:
            self._record("malformed")
            self.logger.error("Login response missing token", token_path=".".join(self.token_path))
            raise AuthError(
                AuthErrorKind.MALFORMED_RESPONSE,
                f"Login response missing '{'.'.join(self.token_path)}'",
                status_code=response.status_code,
                body=body,
            )

        credential = Credential(token=token)
        self._credential = credential
        self._state = CredentialState.VALID
        self._record("success")
        self.logger.info("Login succeeded")
        return credential

    def _extract_token(self, body: Any) -> Optional[str]:
        node = body
        for key in self.token_path:
            if not isinstance(node, dict):
                return None
            node = node.get(key)
        return node if isinstance(node, str) and node else None

    def _on_login_done(self, task: asyncio.Task) -> None:
        if self._login_task is task:
            self._login_task = None
        # Mark the exception retrieved; waiters that timed out never see it.
        if not task.cancelled():
            task.exception()

    def _record(self, outcome: str):
        if self.metrics is not None:
            self.metrics.record_login(outcome)
