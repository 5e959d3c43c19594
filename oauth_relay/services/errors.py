"""Failure classes for the callback flow.

Each class carries the ``reason`` code that ends up in the UI redirect.
Details go into the exception message for server-side logs only; the
browser never sees more than the reason.
"""

from __future__ import annotations

from oauth_relay.models.callback import CallbackReason


class CallbackError(Exception):
    reason: str = CallbackReason.EXCEPTION.value


class ProviderError(CallbackError):
    """The identity provider refused or failed the flow."""

    def __init__(self, reason: str, message: str = "") -> None:
        super().__init__(message or f"provider reported error {reason!r}")
        self.reason = reason


class TokenExchangeError(ProviderError):
    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(CallbackReason.TOKEN_EXCHANGE_FAILED.value, message)
        self.status_code = status_code


class MissingCodeError(CallbackError):
    reason = CallbackReason.MISSING_CODE.value


class InvalidParameterError(CallbackError):
    """A query value was not valid UTF-8 and cannot be forwarded unchanged."""

    reason = CallbackReason.INVALID_PARAMETER.value


class DownstreamError(CallbackError):
    """An internal service the relay depends on failed."""


class TokenStorageError(DownstreamError):
    reason = CallbackReason.STORAGE_FAILED.value

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class UnexpectedCallbackError(CallbackError):
    reason = CallbackReason.EXCEPTION.value
