from __future__ import annotations

import logging
import time

import httpx

from oauth_relay.core.config import Settings
from oauth_relay.core.metrics import UPSTREAM_DURATION
from oauth_relay.models.callback import TokenSet
from oauth_relay.services.errors import TokenStorageError, UnexpectedCallbackError

logger = logging.getLogger(__name__)


async def store_tokens(
    client: httpx.AsyncClient,
    settings: Settings,
    user_id: str | None,
    tokens: TokenSet,
) -> None:
    """Hand the token set to the internal storage API, keyed by user_id.

    user_id is the OAuth ``state`` value, forwarded exactly as received.

    Raises:
        TokenStorageError: non-2xx response or timeout.
        UnexpectedCallbackError: any other transport failure.
    """
    headers = {"Authorization": f"Bearer {settings.internal_api_key}"}

    start = time.monotonic()
    try:
        response = await client.post(
            settings.token_storage_url,
            json=tokens.storage_payload(user_id),
            headers=headers,
        )
    except httpx.TimeoutException as exc:
        raise TokenStorageError(f"storage API timed out: {exc!r}") from exc
    except httpx.HTTPError as exc:
        raise UnexpectedCallbackError(
            f"network error during token storage: {exc!r}"
        ) from exc
    finally:
        UPSTREAM_DURATION.labels(call="token_storage").observe(
            time.monotonic() - start
        )

    logger.info(
        "storage API responded  status=%d",
        response.status_code,
        extra={"oauth_step": "token_storage", "upstream_status": response.status_code},
    )

    if not response.is_success:
        raise TokenStorageError(
            f"storage API returned HTTP {response.status_code}",
            status_code=response.status_code,
        )
