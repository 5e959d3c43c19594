"""Prometheus metrics for oauth-relay.

All metrics are defined here so there is a single inventory of what the
service measures.  Other modules import the metric they own and update it
at the point of action.

  http_*                   every inbound request (MetricsMiddleware)
  oauth_callbacks_total    one increment per /oauth/callback, labeled
                           with the outcome that went into the redirect
  oauth_upstream_*         latency of the two outbound calls
"""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

# ---------------------------------------------------------------------------
# HTTP metrics (populated by the MetricsMiddleware)
# ---------------------------------------------------------------------------

REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total HTTP requests by method, endpoint, and status code",
    ["method", "endpoint", "status_code"],
)

REQUEST_DURATION = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    # A callback is two upstream round-trips, so the tail is wider than
    # a typical API; anything above the 5s upstream timeout is a bug.
    buckets=[0.005, 0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

ACTIVE_REQUESTS = Gauge(
    "http_active_requests",
    "Number of HTTP requests currently being processed",
)

# ---------------------------------------------------------------------------
# OAuth relay metrics
# ---------------------------------------------------------------------------

CALLBACK_OUTCOMES = Counter(
    "oauth_callbacks_total",
    "OAuth callbacks by outcome",
    # "ok", "missing_code", "invalid_parameter", "token_exchange_failed", "storage_failed",
    # "exception", or "provider_error" for any provider-reported error
    ["outcome"],
)

UPSTREAM_DURATION = Histogram(
    "oauth_upstream_request_duration_seconds",
    "Duration of outbound calls made while handling a callback",
    ["call"],  # "token_exchange" or "token_storage"
    buckets=[0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0],
)
