from __future__ import annotations

import logging
from datetime import UTC, datetime
from urllib.parse import urlencode

import httpx

from oauth_relay.core.config import Settings
from oauth_relay.core.metrics import CALLBACK_OUTCOMES
from oauth_relay.models.callback import CallbackRequest, CallbackResult
from oauth_relay.services.errors import (
    CallbackError,
    InvalidParameterError,
    MissingCodeError,
    ProviderError,
    TokenExchangeError,
    UnexpectedCallbackError,
)
from oauth_relay.services.token_exchange import exchange_code
from oauth_relay.services.token_store import store_tokens

# ---------------------------------------------------------------------------
# Authorization-code relay
#
#   provider redirect → validate query → exchange code → store tokens
#   → redirect browser to {UI_BASE}/settings
#
# Every path ends in a redirect. Failures are reduced to a short reason code;
# the details only go to the server log.
#
# TRUST BOUNDARY: `state` is used as the storage user id without any check.
# The app that starts the authorization flow is responsible for putting a
# user id there; the relay neither decodes nor verifies it.
# ---------------------------------------------------------------------------

logger = logging.getLogger(__name__)

SUCCESS_PROVIDER = "google"


class CallbackService:
    def __init__(self, settings: Settings, client: httpx.AsyncClient) -> None:
        self._settings = settings
        self._client = client

    def success_url(self) -> str:
        return self._redirect(oauth=SUCCESS_PROVIDER, ok="1")

    def error_url(self, reason: str) -> str:
        return self._redirect(oauth="error", reason=reason)

    def _redirect(self, **params: str) -> str:
        return f"{self._settings.settings_url}?{urlencode(params)}"

    async def handle(self, request: CallbackRequest) -> CallbackResult:
        flags = {
            "has_code": request.code is not None,
            "has_state": request.state is not None,
            "has_error": request.error is not None,
        }
        logger.info(
            "OAUTH CALLBACK step 1: received  has_code=%s has_state=%s has_error=%s at=%s",
            flags["has_code"],
            flags["has_state"],
            flags["has_error"],
            datetime.now(UTC).isoformat(),
            extra={**flags, "oauth_step": "received"},
        )

        try:
            await self._run(request)
        except ProviderError as exc:
            # A failed exchange keeps its own label; provider-chosen strings
            # share one label to bound metric cardinality.
            outcome = exc.reason if isinstance(exc, TokenExchangeError) else "provider_error"
            return self._fail(exc, outcome)
        except CallbackError as exc:
            return self._fail(exc, exc.reason)
        except Exception:
            # Anything the outbound boundaries did not classify.
            logger.exception(
                "OAUTH CALLBACK FAIL: unexpected error",
                extra={"oauth_outcome": UnexpectedCallbackError.reason},
            )
            CALLBACK_OUTCOMES.labels(outcome=UnexpectedCallbackError.reason).inc()
            return CallbackResult(
                redirect_url=self.error_url(UnexpectedCallbackError.reason),
                outcome=UnexpectedCallbackError.reason,
            )

        logger.info(
            "OAUTH CALLBACK step 5: tokens stored, redirecting to UI  ✓",
            extra={"oauth_step": "done", "oauth_outcome": "ok"},
        )
        CALLBACK_OUTCOMES.labels(outcome="ok").inc()
        return CallbackResult(redirect_url=self.success_url(), outcome="ok")

    async def _run(self, request: CallbackRequest) -> None:
        # --- Query values decoded losslessly ----------------------------------
        # FAIL POINT: a value that was not UTF-8 cannot be relayed byte-for-byte.
        # An undecodable error is rejected before the provider-error branch so
        # the replacement characters never reach the redirect.
        if "error" in request.invalid:
            raise InvalidParameterError("error parameter is not valid UTF-8")

        # --- Provider-reported error ---------------------------------------
        # FAIL POINT: user denied consent, or the provider rejected the request.
        if request.error is not None:
            raise ProviderError(request.error)

        # --- Authorization code present -------------------------------------
        if request.code is None:
            raise MissingCodeError("no authorization code in callback")
        bad = sorted(request.invalid & {"code", "state"})
        if bad:
            raise InvalidParameterError(f"not valid UTF-8: {', '.join(bad)}")
        logger.info(
            "OAUTH CALLBACK step 2: authorization code present  ✓",
            extra={"oauth_step": "validated"},
        )

        # --- Exchange code for tokens ---------------------------------------
        # FAIL POINT: codes are single-use; a replayed callback fails here.
        tokens = await exchange_code(self._client, self._settings, request.code)
        logger.info(
            "OAUTH CALLBACK step 3: code exchanged  refresh_token=%s scope=%s  ✓",
            "yes" if tokens.refresh_token else "no",
            tokens.scope,
            extra={"oauth_step": "token_exchange", "oauth_outcome": "ok"},
        )

        # --- Store tokens ----------------------------------------------------
        await store_tokens(self._client, self._settings, request.state, tokens)
        logger.info(
            "OAUTH CALLBACK step 4: storage API accepted tokens  ✓",
            extra={"oauth_step": "token_storage", "oauth_outcome": "ok"},
        )

    def _fail(self, exc: CallbackError, outcome: str) -> CallbackResult:
        logger.warning(
            "OAUTH CALLBACK FAIL: reason=%s  %s",
            exc.reason,
            exc,
            extra={"oauth_outcome": outcome},
        )
        CALLBACK_OUTCOMES.labels(outcome=outcome).inc()
        return CallbackResult(redirect_url=self.error_url(exc.reason), outcome=outcome)
