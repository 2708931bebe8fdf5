"""
Tests for shared configuration, errors and logging helpers.
"""

import httpx
import pytest
from pydantic import ValidationError

from shared.config import PlatformConfig, get_config
from shared.errors import (
    AuthError,
    AuthErrorKind,
    ClientError,
    ServerError,
    TransportError,
    TransportErrorKind,
)
from shared.logging import (
    REDACTED,
    add_correlation_context,
    clear_context,
    redact_secrets,
    set_request_id,
)
from shared.metrics import ExecutorMetrics
from service_platform.app.executor import create_executor
from service_platform.tests.fakes import APPS_PATH, FakePlatform


class TestPlatformConfig:
    """Test cases for PlatformConfig."""

    def test_reads_caprover_environment(self, monkeypatch):
        """The original CAPROVER_* variable names are honoured."""
        monkeypatch.setenv("CAPROVER_URL", "https://captain.example.com/")
        monkeypatch.setenv("CAPROVER_PASSWORD", "hunter2")
        monkeypatch.setenv("CAPROVER_REQUEST_TIMEOUT", "5")

        config = get_config()

        assert config.url == "https://captain.example.com"
        assert config.password.get_secret_value() == "hunter2"
        assert "hunter2" not in repr(config)
        assert config.request_timeout == 5.0

    def test_defaults(self):
        """Defaults match the captain API conventions."""
        config = PlatformConfig(url="http://captain.test", password="s3cret")

        assert config.namespace == "captain"
        assert config.login_path == "/api/v1/login"
        assert config.token_path == "data.token"
        assert config.auth_header == "x-captain-auth"
        assert config.auth_scheme == ""
        assert config.unauthorized_statuses == [1102, 1106]

    def test_password_required(self, monkeypatch):
        """A missing secret is a configuration error."""
        monkeypatch.delenv("CAPROVER_PASSWORD", raising=False)

        with pytest.raises(ValidationError):
            PlatformConfig(url="http://captain.test")

    def test_login_path_must_be_absolute(self):
        """Paths must start with a slash."""
        with pytest.raises(ValidationError):
            PlatformConfig(url="http://captain.test", password="s3cret", login_path="api/v1/login")

    @pytest.mark.asyncio
    async def test_factory_applies_header_settings(self):
        """The factory wires header name and scheme into the dispatcher."""
        platform = FakePlatform()
        config = PlatformConfig(
            url="http://captain.test",
            password="s3cret",
            auth_header="Authorization",
            auth_scheme="Bearer",
            namespace="ops",
        )
        executor = create_executor(config, transport=platform.transport())
        platform.routes[APPS_PATH] = lambda request: httpx.Response(200, json={"ok": True})

        async with executor:
            assert await executor.execute(APPS_PATH) == {"ok": True}

        request = platform.dispatched[0]
        assert request.headers["Authorization"] == "Bearer abc"
        assert request.headers["x-namespace"] == "ops"


class TestErrors:
    """Test cases for the error taxonomy."""

    def test_client_error_response_keeps_upstream_details(self):
        error = ClientError(404, {"description": "App not found"}, "App not found")

        response = error.to_response()

        assert response.code == "UPSTREAM_CLIENT_ERROR"
        assert response.status_code == 404
        assert response.details["upstream_body"] == {"description": "App not found"}

    def test_auth_error_response_carries_kind(self):
        error = AuthError(AuthErrorKind.MALFORMED_RESPONSE, "Login response missing 'data.token'")

        response = error.to_response()

        assert response.code == "AUTHENTICATION_ERROR"
        assert response.kind == "malformed_response"
        assert response.status_code is None

    def test_transport_error_has_no_status(self):
        error = TransportError(TransportErrorKind.DNS_FAILURE)

        assert error.status_code is None
        assert error.to_response().kind == "dns_failure"

    def test_server_error_is_distinct_from_auth_error(self):
        assert not isinstance(ServerError(500), AuthError)


class TestRedaction:
    """Test cases for the log redaction processor."""

    def test_secret_keys_masked(self):
        event = redact_secrets(None, "info", {
            "event": "Login rejected",
            "password": "s3cret",
            "response": {"status": 100, "data": {"token": "abc"}},
        })

        assert event["password"] == REDACTED
        assert event["response"]["data"]["token"] == REDACTED
        assert event["response"]["status"] == 100

    def test_line_breaks_stripped(self):
        event = redact_secrets(None, "info", {"event": "Dispatching", "endpoint": "/x\nFAKE ENTRY"})

        assert event["endpoint"] == "/x FAKE ENTRY"

    def test_exception_text_untouched(self):
        event = redact_secrets(None, "error", {"event": "boom", "exception": "Traceback\n  line"})

        assert event["exception"] == "Traceback\n  line"


class TestCorrelationContext:
    """Test cases for request correlation."""

    def test_request_id_attached_and_cleared(self):
        request_id = set_request_id("req-42")
        try:
            event = add_correlation_context(None, "info", {"event": "Dispatching"})
            assert request_id == "req-42"
            assert event["request_id"] == "req-42"
        finally:
            clear_context()

        assert "request_id" not in add_correlation_context(None, "info", {"event": "Dispatching"})


class TestMetricsExport:
    """Test cases for the metrics exposition."""

    def test_export_renders_recorded_samples(self):
        metrics = ExecutorMetrics()
        metrics.record_login("success")
        metrics.record_dispatch("success", 0.01)

        output = metrics.export().decode()

        assert 'platform_logins_total{outcome="success"} 1.0' in output
        assert "platform_dispatch_duration_seconds_count 1.0" in output
