from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import httpx
import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from oauth_relay.api.callback import router as callback_router
from oauth_relay.api.health import router as health_router
from oauth_relay.api.metrics_endpoint import router as metrics_router
from oauth_relay.core.config import Settings, load_settings
from oauth_relay.core.logging import setup_logging
from oauth_relay.middleware.metrics import MetricsMiddleware
from oauth_relay.middleware.request_context import (
    RequestContextMiddleware,
    install_request_context_filter,
)

logger = logging.getLogger(__name__)

_ERROR_MESSAGES = {
    status.HTTP_404_NOT_FOUND: "Endpoint not found",
    status.HTTP_405_METHOD_NOT_ALLOWED: "Method not allowed",
}


def _lifespan(transport: httpx.AsyncBaseTransport | None):
    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        # One pooled client for the process; every callback reuses its
        # connections to the provider and the storage API.
        settings: Settings = app.state.settings
        async with httpx.AsyncClient(
            timeout=settings.http_timeout_seconds, transport=transport
        ) as client:
            app.state.http_client = client
            logger.info(
                "HTTP client ready  timeout=%.1fs token_url=%s",
                settings.http_timeout_seconds,
                settings.oauth_token_url,
            )
            yield
        logger.info("HTTP client closed")

    return lifespan


async def _http_error_handler(
    _request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    message = _ERROR_MESSAGES.get(exc.status_code, str(exc.detail))
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": message},
        headers=getattr(exc, "headers", None),
    )


async def _unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "Unhandled error on %s %s",
        request.method,
        request.url.path,
        exc_info=exc,
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "Internal server error"},
    )


def create_app(
    settings: Settings | None = None,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> FastAPI:
    """Build the relay application.

    Settings are loaded from the environment when not given, so a missing
    variable stops the process here rather than on the first callback.
    ``transport`` replaces httpx's network transport (tests pass a
    MockTransport).
    """
    if settings is None:
        settings = load_settings()

    app = FastAPI(
        title="oauth-relay",
        lifespan=_lifespan(transport),
        docs_url="/docs" if settings.is_dev else None,
        redoc_url="/redoc" if settings.is_dev else None,
        openapi_url="/openapi.json" if settings.is_dev else None,
    )
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.ui_base_url],
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )

    # Middleware execution order: last-added runs first (outermost layer).
    # RequestContext (outermost) → Metrics → CORS → route handler
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestContextMiddleware)

    app.add_exception_handler(StarletteHTTPException, _http_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, _unhandled_error_handler)

    app.include_router(metrics_router)
    app.include_router(health_router)
    app.include_router(callback_router)

    return app


def serve() -> None:
    """Process entry point: configure logging, then run uvicorn on PORT."""
    settings = load_settings()
    setup_logging(settings.log_level, json_format=settings.log_json)
    install_request_context_filter()

    app = create_app(settings)
    logger.info(
        "oauth-relay starting  env=%s port=%d callback=/oauth/callback health=/health",
        settings.app_env,
        settings.port,
    )
    uvicorn.run(app, host="0.0.0.0", port=settings.port, log_config=None)


if __name__ == "__main__":
    serve()
