from __future__ import annotations

from typing import Annotated

import httpx
from fastapi import Depends, Request

from oauth_relay.core.config import Settings
from oauth_relay.services.callback_service import CallbackService

# Settings and the shared HTTP client are created once in create_app() /
# the lifespan and hung off app.state; handlers only reach them through here.


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_http_client(request: Request) -> httpx.AsyncClient:
    return request.app.state.http_client


def get_callback_service(
    settings: Annotated[Settings, Depends(get_settings)],
    client: Annotated[httpx.AsyncClient, Depends(get_http_client)],
) -> CallbackService:
    return CallbackService(settings, client)
