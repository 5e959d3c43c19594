"""Tests for the request context middleware.

Verifies that every response gets an X-Request-ID header (generated or
echoed from the request) and that the completion line leaves out the
query string.
"""

from __future__ import annotations

import logging
import uuid

import pytest
from fastapi.testclient import TestClient

from oauth_relay.middleware.request_context import (
    _RequestContextFilter,
    install_request_context_filter,
    request_id_var,
)


def test_request_id_generated_when_not_provided(client: TestClient) -> None:
    resp = client.get("/health")
    req_id = resp.headers.get("x-request-id")
    assert req_id is not None
    uuid.UUID(req_id)  # raises ValueError if invalid


def test_request_id_echoed_when_provided(client: TestClient) -> None:
    custom_id = "my-custom-request-id-123"
    resp = client.get("/health", headers={"X-Request-ID": custom_id})
    assert resp.headers.get("x-request-id") == custom_id


def test_request_id_present_on_redirects_and_errors(client: TestClient) -> None:
    assert client.get("/oauth/callback").headers.get("x-request-id") is not None
    assert client.get("/nope").headers.get("x-request-id") is not None


def test_completion_log_omits_query_string(
    client: TestClient, caplog: pytest.LogCaptureFixture
) -> None:
    with caplog.at_level(logging.INFO, logger="oauth_relay.middleware.request_context"):
        client.get("/oauth/callback", params={"code": "4/secret-code", "state": "u-1"})

    lines = [
        r for r in caplog.records
        if r.name == "oauth_relay.middleware.request_context"
    ]
    assert len(lines) == 1
    assert "/oauth/callback" in lines[0].getMessage()
    assert "4/secret-code" not in lines[0].getMessage()
    assert lines[0].status_code == 302  # type: ignore[attr-defined]


def test_filter_stamps_current_request_id() -> None:
    token = request_id_var.set("req-42")
    try:
        record = logging.LogRecord("x", logging.INFO, "x.py", 1, "m", (), None)
        assert _RequestContextFilter().filter(record) is True
        assert record.request_id == "req-42"  # type: ignore[attr-defined]
    finally:
        request_id_var.reset(token)


def test_install_filter_is_idempotent() -> None:
    root = logging.getLogger()
    handler = logging.NullHandler()
    root.addHandler(handler)
    try:
        install_request_context_filter()
        install_request_context_filter()
        installed = [f for f in handler.filters if isinstance(f, _RequestContextFilter)]
        assert len(installed) == 1
    finally:
        root.removeHandler(handler)
