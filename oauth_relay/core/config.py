from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Literal

AppEnv = Literal["dev", "test", "prod"]
LogLevel = Literal["debug", "info", "warning", "error"]

DEFAULT_TOKEN_URL = "https://oauth2.googleapis.com/token"

_REQUIRED = (
    "UI_BASE_URL",
    "GOOGLE_CLIENT_ID",
    "GOOGLE_CLIENT_SECRET",
    "GOOGLE_REDIRECT_URI",
    "AWS_API_BASE_URL",
    "AWS_INTERNAL_API_KEY",
)


def _getenv(name: str, default: str) -> str:
    # Centralize env access so type casting and required checks live in one place
    return os.environ.get(name, default).strip()


@dataclass(frozen=True)
class Settings:
    app_env: AppEnv
    log_level: LogLevel
    log_json: bool
    port: int
    ui_base_url: str
    google_client_id: str
    google_client_secret: str = field(repr=False)
    google_redirect_uri: str
    oauth_token_url: str
    internal_api_base_url: str
    internal_api_key: str = field(repr=False)
    http_timeout_seconds: float = 5.0

    @property
    def is_dev(self) -> bool:
        return self.app_env == "dev"

    @property
    def is_test(self) -> bool:
        return self.app_env == "test"

    @property
    def is_prod(self) -> bool:
        return self.app_env == "prod"

    @property
    def settings_url(self) -> str:
        return f"{self.ui_base_url}/settings"

    @property
    def token_storage_url(self) -> str:
        return f"{self.internal_api_base_url}/internal/store-google-token"


def load_settings() -> Settings:
    """Read and validate configuration from the environment.

    Called once at startup. Any problem raises ValueError so the process
    refuses to boot instead of failing on the first callback.
    """
    app_env_raw = _getenv("APP_ENV", "dev").lower()
    log_level_raw = _getenv("LOG_LEVEL", "info").lower()
    log_json_raw = _getenv("LOG_JSON", "false").lower()
    port_raw = _getenv("PORT", "3000")
    timeout_raw = _getenv("HTTP_TIMEOUT_SECONDS", "5")

    if app_env_raw not in ("dev", "test", "prod"):
        raise ValueError(f"APP_ENV must be dev|test|prod (got {app_env_raw!r})")

    if log_level_raw not in ("debug", "info", "warning", "error"):
        raise ValueError(
            f"LOG_LEVEL must be debug|info|warning|error (got {log_level_raw!r})"
        )

    try:
        port = int(port_raw)
    except ValueError:
        raise ValueError(f"PORT must be an integer (got {port_raw!r})") from None

    try:
        timeout = float(timeout_raw)
    except ValueError:
        raise ValueError(
            f"HTTP_TIMEOUT_SECONDS must be a number (got {timeout_raw!r})"
        ) from None
    if timeout <= 0:
        raise ValueError(f"HTTP_TIMEOUT_SECONDS must be positive (got {timeout_raw!r})")

    missing = [name for name in _REQUIRED if not _getenv(name, "")]
    if missing:
        raise ValueError(f"missing required configuration: {', '.join(missing)}")

    return Settings(  # type: ignore[arg-type]
        app_env=app_env_raw,
        log_level=log_level_raw,
        log_json=log_json_raw in ("1", "true", "yes"),
        port=port,
        ui_base_url=_getenv("UI_BASE_URL", "").rstrip("/"),
        google_client_id=_getenv("GOOGLE_CLIENT_ID", ""),
        google_client_secret=_getenv("GOOGLE_CLIENT_SECRET", ""),
        google_redirect_uri=_getenv("GOOGLE_REDIRECT_URI", ""),
        oauth_token_url=_getenv("OAUTH_TOKEN_URL", "") or DEFAULT_TOKEN_URL,
        internal_api_base_url=_getenv("AWS_API_BASE_URL", "").rstrip("/"),
        internal_api_key=_getenv("AWS_INTERNAL_API_KEY", ""),
        http_timeout_seconds=timeout,
    )
