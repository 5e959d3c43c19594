from __future__ import annotations

import logging
import time

import httpx
from pydantic import ValidationError

from oauth_relay.core.config import Settings
from oauth_relay.core.metrics import UPSTREAM_DURATION
from oauth_relay.models.callback import TokenSet
from oauth_relay.services.errors import TokenExchangeError, UnexpectedCallbackError

# Authorization code → token set, server-to-server.
#
# The provider answers with JSON on both success and failure. Error bodies
# look like {"error": "invalid_grant", "error_description": "..."}; only the
# "error" field is logged, since descriptions sometimes echo request data.

logger = logging.getLogger(__name__)


def _provider_error_code(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return "unparseable"
    if isinstance(body, dict) and isinstance(body.get("error"), str):
        return body["error"]
    return "unknown"


async def exchange_code(
    client: httpx.AsyncClient, settings: Settings, code: str
) -> TokenSet:
    """POST the authorization code to the provider's token endpoint.

    Raises:
        TokenExchangeError: non-2xx response or timeout.
        UnexpectedCallbackError: any other transport failure, or a 2xx body
            that isn't a token set.
    """
    form = {
        "grant_type": "authorization_code",
        "code": code,
        "client_id": settings.google_client_id,
        "client_secret": settings.google_client_secret,
        "redirect_uri": settings.google_redirect_uri,
    }

    start = time.monotonic()
    try:
        response = await client.post(settings.oauth_token_url, data=form)
    except httpx.TimeoutException as exc:
        raise TokenExchangeError(f"token endpoint timed out: {exc!r}") from exc
    except httpx.HTTPError as exc:
        raise UnexpectedCallbackError(
            f"network error during token exchange: {exc!r}"
        ) from exc
    finally:
        UPSTREAM_DURATION.labels(call="token_exchange").observe(
            time.monotonic() - start
        )

    logger.info(
        "token endpoint responded  status=%d",
        response.status_code,
        extra={"oauth_step": "token_exchange", "upstream_status": response.status_code},
    )

    if not response.is_success:
        raise TokenExchangeError(
            f"token endpoint returned HTTP {response.status_code} "
            f"error={_provider_error_code(response)}",
            status_code=response.status_code,
        )

    try:
        return TokenSet.model_validate(response.json())
    except ValueError as exc:
        # json.JSONDecodeError and pydantic.ValidationError are both ValueErrors.
        # The cause is dropped: its text can contain the token values.
        kind = "invalid token set" if isinstance(exc, ValidationError) else "invalid JSON"
        raise UnexpectedCallbackError(
            f"{kind} in token response (HTTP {response.status_code})"
        ) from None
