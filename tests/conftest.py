from __future__ import annotations

import json
import sys
from collections.abc import Callable, Iterator
from dataclasses import dataclass, field
from pathlib import Path
from urllib.parse import parse_qs

import httpx
import pytest
from fastapi.testclient import TestClient

# Ensure repo root is on sys.path so `import oauth_relay` works under pytest.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from oauth_relay.core.config import Settings  # noqa: E402
from oauth_relay.main import create_app  # noqa: E402

UI_BASE = "https://ui.example.com"
TOKEN_URL = "https://oauth2.googleapis.com/token"
STORAGE_URL = "https://internal.example.com/internal/store-google-token"
CLIENT_SECRET = "client-s3cret-value"
INTERNAL_API_KEY = "internal-api-key-value"

# Environment a deployment must provide; load_settings() refuses to start without it.
REQUIRED_ENV = {
    "UI_BASE_URL": "https://ui.example.com",
    "GOOGLE_CLIENT_ID": "cid",
    "GOOGLE_CLIENT_SECRET": "csecret",
    "GOOGLE_REDIRECT_URI": "https://relay.example.com/oauth/callback",
    "AWS_API_BASE_URL": "https://api.example.com",
    "AWS_INTERNAL_API_KEY": "ikey",
}

TOKEN_RESPONSE = {
    "access_token": "ya29.access-token-value",
    "refresh_token": "1//refresh-token-value",
    "expires_in": 3599,
    "scope": "https://www.googleapis.com/auth/calendar openid",
    "token_type": "Bearer",
}


def make_settings(**overrides: object) -> Settings:
    values: dict[str, object] = {
        "app_env": "test",
        "log_level": "info",
        "log_json": False,
        "port": 3000,
        "ui_base_url": UI_BASE,
        "google_client_id": "client-id.apps.googleusercontent.com",
        "google_client_secret": CLIENT_SECRET,
        "google_redirect_uri": "https://relay.example.com/oauth/callback",
        "oauth_token_url": TOKEN_URL,
        "internal_api_base_url": "https://internal.example.com",
        "internal_api_key": INTERNAL_API_KEY,
        "http_timeout_seconds": 5.0,
    }
    values.update(overrides)
    return Settings(**values)  # type: ignore[arg-type]


Responder = Callable[[httpx.Request], httpx.Response]


@dataclass
class FakeUpstreams:
    """Stands in for the identity provider and the storage API.

    Each upstream is a callable returning an httpx.Response (or raising an
    httpx exception).  Every request that reaches the fake is recorded.
    """

    token: Responder = field(
        default=lambda request: httpx.Response(200, json=TOKEN_RESPONSE)
    )
    storage: Responder = field(
        default=lambda request: httpx.Response(200, json={"ok": True})
    )
    requests: list[httpx.Request] = field(default_factory=list)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        url = str(request.url)
        if url == TOKEN_URL:
            return self.token(request)
        if url == STORAGE_URL:
            return self.storage(request)
        return httpx.Response(599, text=f"unexpected upstream call {url}")

    def calls_to(self, url: str) -> list[httpx.Request]:
        return [r for r in self.requests if str(r.url) == url]

    def token_form(self) -> dict[str, str]:
        (request,) = self.calls_to(TOKEN_URL)
        return {k: v[0] for k, v in parse_qs(request.content.decode()).items()}

    def storage_body(self) -> dict:
        (request,) = self.calls_to(STORAGE_URL)
        return json.loads(request.content)


@pytest.fixture
def upstreams() -> FakeUpstreams:
    return FakeUpstreams()


@pytest.fixture
def settings() -> Settings:
    return make_settings()


@pytest.fixture
def client(settings: Settings, upstreams: FakeUpstreams) -> Iterator[TestClient]:
    app = create_app(settings, transport=httpx.MockTransport(upstreams.handler))
    # Context manager so the lifespan opens the shared HTTP client.
    with TestClient(app, follow_redirects=False) as test_client:
        yield test_client
