"""Liveness endpoint.

The relay holds no connections of its own worth checking (the HTTP client
is lazy), so liveness is simply "the process can answer".  Upstream
health shows up in oauth_callbacks_total instead.
"""

from __future__ import annotations

from datetime import UTC, datetime

from fastapi import APIRouter

router = APIRouter(tags=["health"])

# Name the existing uptime checks match on.
SERVICE_NAME = "external-oauth-callback"


@router.get("/health")
async def health() -> dict:
    return {
        "status": "healthy",
        "service": SERVICE_NAME,
        "timestamp": datetime.now(UTC).isoformat(),
    }
