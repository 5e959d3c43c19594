from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import RedirectResponse

from oauth_relay.api.dependencies import get_callback_service
from oauth_relay.models.callback import CallbackRequest
from oauth_relay.services.callback_service import CallbackService

router = APIRouter(tags=["oauth"])


# ========================== GET /oauth/callback ===========================
# The identity provider redirects the user's browser here after consent.
# The response is always a 302 back to the UI, never a JSON error.
#
# code/state/error are read from the raw query string instead of FastAPI
# Query params: Starlette decodes with errors="replace", which would alter a
# non-UTF-8 state before it is used as the storage user id.


@router.get("/oauth/callback")
async def oauth_callback(
    request: Request,
    service: Annotated[CallbackService, Depends(get_callback_service)],
) -> RedirectResponse:
    callback = CallbackRequest.from_raw_query(request.scope.get("query_string", b""))
    result = await service.handle(callback)
    return RedirectResponse(url=result.redirect_url, status_code=status.HTTP_302_FOUND)
