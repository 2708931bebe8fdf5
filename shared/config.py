"""
Shared configuration management for the Platform Access layer.
"""

from typing import List

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class PlatformConfig(BaseSettings):
    """Connection settings for the upstream platform-management API.

    Values are read from ``CAPROVER_*`` environment variables (or ``.env``),
    e.g. ``CAPROVER_URL`` and ``CAPROVER_PASSWORD``.
    """

    model_config = SettingsConfigDict(
        env_prefix="CAPROVER_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    # Environment
    env: str = "local"
    log_level: str = "info"

    # Upstream
    url: str
    password: SecretStr
    namespace: str = "captain"
    request_timeout: float = Field(default=30.0, gt=0)

    # Login exchange
    login_path: str = "/api/v1/login"
    token_path: str = "data.token"
    ok_statuses: List[int] = [100, 101, 102]

    # Credential attachment
    auth_header: str = "x-captain-auth"
    auth_scheme: str = ""
    unauthorized_statuses: List[int] = [1102, 1106]

    # Health
    health_endpoint: str = "/api/v1/user/apps/appDefinitions"

    @field_validator("url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")

    @field_validator("login_path", "health_endpoint")
    @classmethod
    def _require_leading_slash(cls, value: str) -> str:
        if not value.startswith("/"):
            raise ValueError("path must start with '/'")
        return value


def get_config(**overrides) -> PlatformConfig:
    """Get platform configuration, with explicit overrides taking precedence."""
    return PlatformConfig(**overrides)
